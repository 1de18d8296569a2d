from __future__ import annotations

import pytest

from clipforge.errors import ProviderTimeoutError
from clipforge.providers.polling import Deadline, poll_until


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def test_poll_until_returns_first_terminal_result() -> None:
    states = iter(["queued", "rendering", "done"])
    sleeps: list[float] = []

    result = poll_until(
        lambda: next(states),
        lambda state: state == "done",
        interval_seconds=5,
        max_attempts=10,
        label="Render r-1",
        sleep=sleeps.append,
    )

    assert result == "done"
    assert sleeps == [5, 5]


def test_poll_until_gives_up_after_max_attempts() -> None:
    calls: list[int] = []

    with pytest.raises(ProviderTimeoutError, match="timed out after 3 polls"):
        poll_until(
            lambda: calls.append(1) or "queued",
            lambda state: state == "done",
            interval_seconds=2,
            max_attempts=3,
            label="Transcription p-1",
            sleep=lambda _: None,
        )

    assert len(calls) == 3


def test_poll_until_respects_deadline() -> None:
    clock = _FakeClock()
    deadline = Deadline.after(12, clock=clock)

    with pytest.raises(ProviderTimeoutError, match="deadline"):
        poll_until(
            lambda: "queued",
            lambda state: state == "done",
            interval_seconds=5,
            max_attempts=100,
            label="Render r-1",
            deadline=deadline,
            sleep=clock.sleep,
        )

    assert clock.now == pytest.approx(12)


def test_deadline_remaining_never_negative() -> None:
    clock = _FakeClock()
    deadline = Deadline.after(3, clock=clock)

    clock.now = 10
    assert deadline.remaining() == 0.0
    assert deadline.expired()
