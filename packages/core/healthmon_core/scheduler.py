"""Fixed-interval snapshot scheduler with subscriber fan-out."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from healthmon_telemetry import RateTracker, Snapshot, SnapshotAssembler

from .logging_setup import get_logger


logger = get_logger("scheduler")

Subscriber = Callable[[Snapshot], None]


class SchedulerState(str, Enum):
    IDLE = "Idle"
    SAMPLING = "Sampling"
    STOPPED = "Stopped"


@dataclass
class SchedulerStatus:
    state: SchedulerState = SchedulerState.IDLE
    cycles: int = 0
    failed_cycles: int = 0
    skipped_ticks: int = 0
    last_duration_s: float = 0.0
    last_error: str | None = None


class Scheduler:
    """Runs one assembly cycle per interval and publishes every Snapshot.

    Cycles never overlap: the timer thread and ``run_once`` share a cycle lock.
    The previous CPU tick sample lives in ``self._tracker`` and is only replaced
    after a cycle completes. Subscribers are called on the scheduler thread and
    receive frozen snapshots, so they can hand them to another thread as-is.
    """

    def __init__(self, assembler: SnapshotAssembler, interval_s: float = 3.0) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.assembler = assembler
        self.interval_s = interval_s

        self._tracker = RateTracker()
        self._status = SchedulerStatus()
        self._lock = threading.RLock()
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._subscribers: list[Subscriber] = []
        self._latest: Snapshot | None = None
        self._seeded = False
        self._events: list[dict[str, Any]] = []

    @property
    def state(self) -> SchedulerState:
        return self._status.state

    @property
    def status(self) -> SchedulerStatus:
        return self._status

    @property
    def latest(self) -> Snapshot | None:
        return self._latest

    def recent_events(self, limit: int = 200) -> list[dict[str, Any]]:
        with self._lock:
            return self._events[-limit:]

    def _log_event(self, event: str, **fields: Any) -> None:
        row = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "state": self._status.state.value,
        }
        row.update(fields)
        with self._lock:
            self._events.append(row)
            if len(self._events) > 1000:
                self._events = self._events[-1000:]

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def seed(self) -> None:
        """Take the zero-delay baseline tick sample the first load needs."""
        with self._cycle_lock:
            self._tracker.seed(self.assembler.baseline())
            self._seeded = True
            self._log_event("seeded", has_baseline=self._tracker.previous is not None)

    def start(self) -> None:
        with self._lock:
            if self._status.state == SchedulerState.STOPPED:
                raise RuntimeError("scheduler has been stopped")
            if self._thread is not None and self._thread.is_alive():
                return
        if not self._seeded:
            self.seed()
        with self._lock:
            self._thread = threading.Thread(target=self._run, name="healthmon-scheduler", daemon=True)
            self._thread.start()
        self._log_event("started", interval_s=self.interval_s)
        logger.info("scheduler started interval=%.2fs", self.interval_s, extra={"event": "scheduler_started"})

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        with self._lock:
            self._status.state = SchedulerState.STOPPED
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self.assembler.close()
        self._log_event("stopped")
        logger.info("scheduler stopped after %d cycles", self._status.cycles, extra={"event": "scheduler_stopped"})

    def run_once(self) -> Snapshot:
        """Run a single cycle on the calling thread and publish its Snapshot."""
        if self._stop_event.is_set():
            raise RuntimeError("scheduler has been stopped")
        snapshot = self._cycle()
        if snapshot is None:
            raise RuntimeError("cycle abandoned because the scheduler stopped")
        return snapshot

    def _run(self) -> None:
        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            self._cycle()

            next_tick += self.interval_s
            now = time.monotonic()
            if next_tick < now:
                # Cycle overran one or more ticks; drop them instead of bursting.
                missed = int((now - next_tick) // self.interval_s) + 1
                next_tick += missed * self.interval_s
                with self._lock:
                    self._status.skipped_ticks += missed
                self._log_event("ticks_skipped", missed=missed)
            if self._stop_event.wait(max(0.0, next_tick - now)):
                break

    def _cycle(self) -> Snapshot | None:
        with self._cycle_lock:
            with self._lock:
                if self._stop_event.is_set():
                    return None
                self._status.state = SchedulerState.SAMPLING

            previous = self._tracker.previous
            started = time.monotonic()
            error: str | None = None
            try:
                snapshot, new_ticks = self.assembler.assemble(previous)
            except Exception as exc:
                error = str(exc) or type(exc).__name__
                logger.exception("snapshot cycle failed", extra={"event": "cycle_failed"})
                snapshot = Snapshot.unavailable(datetime.now(timezone.utc), detail=error)
                new_ticks = previous
            duration = time.monotonic() - started

            with self._lock:
                # stop() sets the event before taking this lock, so a cycle that
                # finishes after shutdown is dropped without touching the baseline.
                abandoned = self._stop_event.is_set()
                if not abandoned:
                    self._tracker.commit(new_ticks)
                    self._latest = snapshot
                    self._status.cycles += 1
                    self._status.last_duration_s = duration
                    self._status.last_error = error
                    if error is not None:
                        self._status.failed_cycles += 1
                    self._status.state = SchedulerState.IDLE
                    subscribers = list(self._subscribers)

            if abandoned:
                self._log_event("cycle_abandoned", duration_s=duration)
                return None
            self._log_event(
                "cycle_ok" if error is None else "cycle_error",
                duration_s=duration,
                failures=len(snapshot.failures),
                error=error,
            )

        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("snapshot subscriber failed", extra={"event": "subscriber_failed"})
        return snapshot
