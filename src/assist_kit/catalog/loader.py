"""Load the task catalog from YAML.

The packaged catalog lives at ``assist_kit/config/catalog.yaml``; the
``ASSIST_KIT_CATALOG`` environment variable points at an alternative file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from assist_kit.catalog.models import TaskCatalog
from assist_kit.catalog.validation import validate_catalog
from assist_kit.errors import CatalogError
from assist_kit.settings import Settings

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    """Convert ruamel's round-trip containers into plain dicts and lists."""
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def read_catalog_data(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise CatalogError(f"Task catalog not found: {path}")

    yaml = YAML(typ="safe")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.load(f) or {}
    except (OSError, YAMLError) as e:
        raise CatalogError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise CatalogError(f"Task catalog must be a mapping at the top level: {path}")
    return _plain(data)


def load_catalog(path: Optional[Path] = None, settings: Optional[Settings] = None) -> TaskCatalog:
    """Load, parse and validate a task catalog.

    Args:
        path: Catalog file; defaults to ``settings.catalog_path``
        settings: Process settings; defaults to ``Settings.from_env()``

    Returns:
        A validated TaskCatalog with every task entry already parsed

    Raises:
        CatalogError: Missing file, bad YAML, malformed entries or dangling references
    """
    if path is None:
        path = (settings or Settings.from_env()).catalog_path
    logger.debug("Loading task catalog from %s", path)
    catalog = TaskCatalog.from_dict(read_catalog_data(path))
    validate_catalog(catalog)
    return catalog


def catalog_from_dict(data: Dict[str, Any]) -> TaskCatalog:
    """Build and validate a catalog from an in-memory mapping."""
    catalog = TaskCatalog.from_dict(data)
    validate_catalog(catalog)
    return catalog
