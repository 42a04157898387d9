"""Instantaneous CPU load from cumulative tick counters."""

from __future__ import annotations

from .models import CpuTicks


def counter_reset(previous: CpuTicks, current: CpuTicks) -> bool:
    """True when ``current`` cannot have been sampled after ``previous``.

    Counters run backwards after a sleep/resume cycle or a wraparound, and a
    changed state layout means the two vectors are not comparable at all.
    """
    if previous.states != current.states:
        return True
    return any(cur < prev for prev, cur in zip(previous.values, current.values))


def compute_rate(previous: CpuTicks, current: CpuTicks) -> float:
    """Fraction of elapsed ticks spent in non-idle states, in [0.0, 1.0]."""
    if counter_reset(previous, current):
        return 0.0
    total = current.total() - previous.total()
    if total <= 0:
        return 0.0
    idle = current.idle() - previous.idle()
    busy = (total - idle) / total
    return min(1.0, max(0.0, busy))


class RateTracker:
    """Holds the previous tick sample between cycles.

    Only the scheduler owns an instance. ``commit`` is called once a cycle has
    fully completed, so an abandoned cycle never replaces the baseline.
    """

    def __init__(self, previous: CpuTicks | None = None) -> None:
        self._previous = previous

    @property
    def previous(self) -> CpuTicks | None:
        return self._previous

    def seed(self, ticks: CpuTicks | None) -> None:
        self._previous = ticks

    def rate(self, current: CpuTicks) -> float | None:
        if self._previous is None:
            return None
        return compute_rate(self._previous, current)

    def commit(self, current: CpuTicks | None) -> None:
        if current is not None:
            self._previous = current
