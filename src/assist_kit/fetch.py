"""Fetch collaborator: retrieve file trees from git repositories.

``CloneCache`` owns the temporary clones made during one provisioning run.
It is a context manager: every clone is removed when the block exits, so the
lifetime of remote checkouts is tied to the run that created them.

``GitFetcher.fetch_tree`` copies a subtree of a (cached) clone into a local
target directory and reports the files it wrote.
"""

from __future__ import annotations

import itertools
import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from assist_kit.content.copying import Items, copy_items
from assist_kit.errors import FetchError, SourceNotFound

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 120

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass(frozen=True)
class FetchOptions:
    """What to fetch and how.

    Attributes:
        repository: Git URL to clone
        ref: Preferred tag or branch (e.g. the running tool version)
        fallback_ref: Branch to use when ``ref`` does not exist
        items: Item selection inside the source directory (see ``copy_items``)
        filters: Content filters applied to copied text files
    """

    repository: str
    ref: Optional[str] = None
    fallback_ref: Optional[str] = None
    items: Items = None
    filters: Sequence[Mapping[str, Any]] = ()


@dataclass
class FetchResult:
    files: List[Path] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)


class Fetcher(Protocol):
    def fetch_tree(self, source: str, target: Path, options: FetchOptions) -> FetchResult: ...


class CloneCache:
    """Shallow clones keyed by ``(url, ref)``, removed on exit."""

    def __init__(
        self,
        base_dir: Optional[Path] = None,
        runner: Runner = subprocess.run,
        timeout: int = GIT_TIMEOUT_SECONDS,
    ):
        self._base_dir = base_dir
        self._runner = runner
        self._timeout = timeout
        self._workdir: Optional[Path] = None
        self._clones: Dict[Tuple[str, Optional[str]], Path] = {}
        self._counter = itertools.count()

    def __enter__(self) -> "CloneCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def __contains__(self, key: Tuple[str, Optional[str]]) -> bool:
        return key in self._clones

    def __len__(self) -> int:
        return len(self._clones)

    def _new_clone_dir(self) -> Path:
        if self._workdir is None:
            if self._base_dir is not None:
                Path(self._base_dir).mkdir(parents=True, exist_ok=True)
            self._workdir = Path(tempfile.mkdtemp(prefix="assist-kit-", dir=self._base_dir))
        return self._workdir / f"clone-{next(self._counter)}"

    def _clone(self, url: str, ref: Optional[str], destination: Path) -> None:
        command = ["git", "clone", "--depth", "1", "--single-branch"]
        if ref:
            command += ["--branch", ref]
        command += [url, str(destination)]
        logger.debug("Running %s", " ".join(command))
        try:
            self._runner(command, check=True, capture_output=True, text=True, timeout=self._timeout)
        except FileNotFoundError as e:
            raise FetchError("git executable not found; install git to fetch remote files") from e
        except subprocess.TimeoutExpired as e:
            raise FetchError(f"Timed out cloning {url}") from e
        except subprocess.CalledProcessError as e:
            shutil.rmtree(destination, ignore_errors=True)
            detail = (e.stderr or "").strip() or f"exit code {e.returncode}"
            raise FetchError(f"Failed to clone {url}{f' ({ref})' if ref else ''}: {detail}") from e

    def checkout(self, url: str, ref: Optional[str] = None, fallback_ref: Optional[str] = None) -> Path:
        """Return a local checkout of ``url`` at ``ref``, cloning on first use.

        When ``ref`` cannot be cloned and ``fallback_ref`` is given, the
        fallback is cloned and cached under the requested key as well.
        """
        key = (url, ref)
        if key in self._clones:
            return self._clones[key]

        destination = self._new_clone_dir()
        try:
            self._clone(url, ref, destination)
        except FetchError:
            if fallback_ref is None or fallback_ref == ref:
                raise
            logger.info("Ref %s not found in %s, falling back to %s", ref, url, fallback_ref)
            fallback_key = (url, fallback_ref)
            if fallback_key not in self._clones:
                self._clone(url, fallback_ref, destination)
                self._clones[fallback_key] = destination
            destination = self._clones[fallback_key]

        self._clones[key] = destination
        return destination

    def cleanup(self) -> None:
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            logger.debug("Removed clone cache %s", self._workdir)
        self._workdir = None
        self._clones.clear()


class GitFetcher:
    """Default fetch collaborator backed by a ``CloneCache``."""

    def __init__(self, cache: CloneCache):
        self.cache = cache

    def fetch_tree(self, source: str, target: Path, options: FetchOptions) -> FetchResult:
        """Copy ``source`` (a path inside the repository) into ``target``.

        Raises:
            FetchError: The clone failed
            SourceNotFound: ``source`` is not in the repository
        """
        checkout = self.cache.checkout(options.repository, options.ref, options.fallback_ref)
        source_path = checkout / source
        if not source_path.exists():
            raise SourceNotFound(source, options.repository)

        result = FetchResult()
        result.files = copy_items(
            source_path,
            target,
            options.items,
            options.filters,
            on_missing=result.missing.append,
        )
        return result
