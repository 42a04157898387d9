"""Failure taxonomy for hardware reads."""

from __future__ import annotations


class TelemetryError(RuntimeError):
    pass


class SubsystemUnavailable(TelemetryError):
    """The data source does not support this query on this platform or hardware."""


class TransientReadFailure(TelemetryError):
    """A query that normally succeeds failed this cycle; retried next cycle."""
