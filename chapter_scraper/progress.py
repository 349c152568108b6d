"""Thread-safe progress accounting and observers."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Protocol

from tqdm import tqdm

from .outcomes import OutcomeKind, RunSummary, TaskOutcome

if TYPE_CHECKING:
    from .jobs import ChapterJob

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    total: int = 0
    started: int = 0
    in_flight: int = 0
    counts: dict[OutcomeKind, int] = field(default_factory=dict)

    def count(self, kind: OutcomeKind) -> int:
        return self.counts.get(kind, 0)

    @property
    def succeeded(self) -> int:
        return self.count(OutcomeKind.SUCCESS)

    @property
    def skipped(self) -> int:
        return self.count(OutcomeKind.SKIPPED)

    @property
    def failed(self) -> int:
        return sum(value for kind, value in self.counts.items() if kind.is_failure)

    @property
    def completed(self) -> int:
        return self.succeeded + self.failed


class ProgressObserver(Protocol):
    """Receives progress events; called while the reporter holds its lock."""

    def on_run_started(self, total: int, skipped: int) -> None:
        ...

    def on_task_started(self, job: "ChapterJob", snapshot: ProgressSnapshot) -> None:
        ...

    def on_task_finished(self, outcome: TaskOutcome, snapshot: ProgressSnapshot) -> None:
        ...

    def on_run_finished(self, summary: RunSummary) -> None:
        ...


class ProgressReporter:
    """Aggregates task events from any number of worker threads.

    Counters are only touched under ``_lock``; observers are notified under the
    same lock so each one sees events and snapshots in a single total order.
    """

    def __init__(self, observers: Iterable[ProgressObserver] = ()) -> None:
        self._observers = list(observers)
        self._lock = threading.RLock()
        self._counts: Counter[OutcomeKind] = Counter()
        self._total = 0
        self._started = 0
        self._in_flight = 0

    def start_run(self, total: int, skipped: int = 0) -> None:
        with self._lock:
            self._total = total
            self._notify("on_run_started", total, skipped)

    def task_started(self, job: "ChapterJob") -> None:
        with self._lock:
            self._started += 1
            self._in_flight += 1
            self._notify("on_task_started", job, self._snapshot_locked())

    def record(self, outcome: TaskOutcome) -> None:
        with self._lock:
            self._counts[outcome.kind] += 1
            if outcome.kind is not OutcomeKind.SKIPPED:
                self._in_flight = max(0, self._in_flight - 1)
            self._notify("on_task_finished", outcome, self._snapshot_locked())

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def summarize(self, *, elapsed: float, malformed: int = 0, duplicates: int = 0) -> RunSummary:
        snapshot = self.snapshot()
        return RunSummary(
            succeeded=snapshot.succeeded,
            fetch_failed=snapshot.count(OutcomeKind.FETCH_FAILED),
            extract_failed=snapshot.count(OutcomeKind.EXTRACT_FAILED),
            write_failed=snapshot.count(OutcomeKind.WRITE_FAILED),
            internal_errors=snapshot.count(OutcomeKind.INTERNAL_ERROR),
            skipped=snapshot.skipped,
            malformed=malformed,
            duplicates=duplicates,
            elapsed=elapsed,
        )

    def finish_run(self, summary: RunSummary) -> None:
        with self._lock:
            self._notify("on_run_finished", summary)

    def _snapshot_locked(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            total=self._total,
            started=self._started,
            in_flight=self._in_flight,
            counts=dict(self._counts),
        )

    def _notify(self, event: str, *args) -> None:
        for observer in self._observers:
            try:
                getattr(observer, event)(*args)
            except Exception:
                LOGGER.exception("Progress observer %r raised during %s", observer, event)


class TqdmProgressObserver:
    """Render run progress as a tqdm bar with ok/failed/active counts."""

    def __init__(self, *, disable: bool | None = None, position: int | None = None) -> None:
        self._disable = disable
        self._position = position
        self._bar: tqdm | None = None

    def on_run_started(self, total: int, skipped: int) -> None:
        self._bar = tqdm(
            total=total,
            desc="Chapters",
            unit="chapter",
            disable=self._disable,
            position=self._position,
            dynamic_ncols=True,
        )
        if skipped and not self._bar.disable:
            self._bar.write(f"Skipping {skipped} chapters with existing output")

    def on_task_started(self, job: "ChapterJob", snapshot: ProgressSnapshot) -> None:
        self._set_postfix(snapshot)

    def on_task_finished(self, outcome: TaskOutcome, snapshot: ProgressSnapshot) -> None:
        if self._bar is None or outcome.kind is OutcomeKind.SKIPPED:
            return
        self._bar.update(1)
        self._set_postfix(snapshot)

    def on_run_finished(self, summary: RunSummary) -> None:
        if self._bar is None:
            return
        self._bar.close()
        self._bar = None

    def _set_postfix(self, snapshot: ProgressSnapshot) -> None:
        if self._bar is None:
            return
        self._bar.set_postfix(
            ok=snapshot.succeeded,
            failed=snapshot.failed,
            active=snapshot.in_flight,
            refresh=False,
        )
