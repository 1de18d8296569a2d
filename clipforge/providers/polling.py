from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from clipforge.errors import ProviderTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]
Sleeper = Callable[[float], None]


@dataclass(slots=True, frozen=True)
class Deadline:
    """Absolute monotonic cut-off shared by a pipeline run and its collaborators."""

    expires_at: float
    clock: Clock = time.monotonic

    @classmethod
    def after(cls, seconds: float, clock: Clock = time.monotonic) -> "Deadline":
        return cls(expires_at=clock() + max(seconds, 0.0), clock=clock)

    def remaining(self) -> float:
        return max(self.expires_at - self.clock(), 0.0)

    def expired(self) -> bool:
        return self.clock() >= self.expires_at


def poll_until(
    fetch: Callable[[], T],
    is_terminal: Callable[[T], bool],
    *,
    interval_seconds: float,
    max_attempts: int,
    label: str,
    deadline: Deadline | None = None,
    sleep: Sleeper = time.sleep,
) -> T:
    """Poll ``fetch`` until ``is_terminal`` holds, with bounded attempts and an optional deadline.

    Raises ``ProviderTimeoutError`` when attempts run out or the deadline passes first.
    The terminal state is returned as-is; interpreting success vs failure is up to the caller.
    """

    attempts = 0
    while attempts < max(max_attempts, 1):
        if deadline is not None and deadline.expired():
            raise ProviderTimeoutError(f"{label} timed out: deadline reached after {attempts} polls.")

        result = fetch()
        attempts += 1
        if is_terminal(result):
            return result

        logger.debug("%s not finished (%d/%d)", label, attempts, max_attempts)
        wait = interval_seconds
        if deadline is not None:
            wait = min(wait, deadline.remaining())
        sleep(wait)

    raise ProviderTimeoutError(
        f"{label} timed out after {attempts} polls ({attempts * interval_seconds:.0f}s)."
    )
