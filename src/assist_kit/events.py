"""Structured progress events emitted by the provisioning core.

The core never prints. Task handlers and the multi-step orchestrator emit
``ProgressEvent`` instances into an ``EventSink``; the CLI decides how (and
whether) to render them.

Event kinds:
- task.started / task.succeeded / task.failed
- step.started / step.succeeded / step.failed
- file.tracked
- warning
- multi-step.finished (data: state = completed | completed-with-errors | aborted)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

TASK_STARTED = "task.started"
TASK_SUCCEEDED = "task.succeeded"
TASK_FAILED = "task.failed"
STEP_STARTED = "step.started"
STEP_SUCCEEDED = "step.succeeded"
STEP_FAILED = "step.failed"
FILE_TRACKED = "file.tracked"
WARNING = "warning"
MULTI_STEP_FINISHED = "multi-step.finished"

STATE_COMPLETED = "completed"
STATE_COMPLETED_WITH_ERRORS = "completed-with-errors"
STATE_ABORTED = "aborted"


@dataclass(frozen=True)
class ProgressEvent:
    """One observable state change during a provisioning run.

    Attributes:
        kind: Event kind (see module constants)
        subject: What the event is about (task id, step name, file path)
        detail: Human-readable detail (output summary, error message)
        data: Extra structured fields (step index, total steps, hash)
        emitted_at: UTC timestamp
    """

    kind: str
    subject: str
    detail: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventSink(Protocol):
    def emit(self, event: ProgressEvent) -> None: ...


class NullSink:
    """Discard every event."""

    def emit(self, event: ProgressEvent) -> None:
        return None


class RecordingSink:
    """Keep every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: List[ProgressEvent] = []

    def emit(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [event.kind for event in self.events]

    def of_kind(self, kind: str) -> List[ProgressEvent]:
        return [event for event in self.events if event.kind == kind]


class CallbackSink:
    """Forward events to a callable (used by the CLI renderer)."""

    def __init__(self, callback: Callable[[ProgressEvent], None]):
        self._callback = callback

    def emit(self, event: ProgressEvent) -> None:
        self._callback(event)


def emit(
    sink: Optional[EventSink],
    kind: str,
    subject: str,
    detail: str = "",
    **data: Any,
) -> None:
    """Emit an event if a sink is attached; always log at debug level."""
    logger.debug("%s %s %s", kind, subject, detail)
    if sink is None:
        return
    sink.emit(ProgressEvent(kind=kind, subject=subject, detail=detail, data=dict(data)))
