from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from clipforge.errors import InvalidTransitionError

logger = logging.getLogger(__name__)

JobStatus = Literal["pending", "processing", "completed", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing", "failed"}),
    "processing": frozenset({"completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Job:
    """Long-running export/render job; terminal states are immutable."""

    kind: str
    clip_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str | None = None
    status: JobStatus = "pending"
    settings: dict[str, Any] = field(default_factory=dict)
    processing_options: dict[str, Any] = field(default_factory=dict)
    style_pack_id: str | None = None
    result: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, status: JobStatus) -> None:
        allowed = ALLOWED_TRANSITIONS[self.status]
        if status not in allowed:
            raise InvalidTransitionError(f"Job {self.id} cannot move from {self.status} to {status}.")
        logger.debug("Job %s: %s -> %s", self.id, self.status, status)
        self.status = status
        if status in TERMINAL_STATUSES:
            self.completed_at = _utcnow()

    def start(self) -> None:
        self.transition("processing")

    def complete(self, **result: Any) -> None:
        self.transition("completed")
        self.result.update(result)

    def fail(self, message: str) -> None:
        self.transition("failed")
        self.error_message = message
        logger.error("Job %s failed: %s", self.id, message)
