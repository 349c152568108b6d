"""Terminal task results and the aggregate run summary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .jobs import ChapterJob


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    FETCH_FAILED = "fetch_failed"
    EXTRACT_FAILED = "extract_failed"
    WRITE_FAILED = "write_failed"
    SKIPPED = "skipped"
    INTERNAL_ERROR = "internal_error"

    @property
    def is_failure(self) -> bool:
        return self not in (OutcomeKind.SUCCESS, OutcomeKind.SKIPPED)


@dataclass(frozen=True, slots=True)
class TaskOutcome:
    """Result of one chapter's fetch/extract/write pipeline. Never mutated."""

    kind: OutcomeKind
    chapter_number: int
    url: str
    reason: str | None = None
    message: str | None = None

    @classmethod
    def success(cls, job: "ChapterJob") -> "TaskOutcome":
        return cls(OutcomeKind.SUCCESS, job.chapter_number, job.url)

    @classmethod
    def skipped(cls, job: "ChapterJob") -> "TaskOutcome":
        return cls(OutcomeKind.SKIPPED, job.chapter_number, job.url, reason="exists")

    @classmethod
    def failure(cls, kind: OutcomeKind, job: "ChapterJob", exc: BaseException) -> "TaskOutcome":
        reason = getattr(exc, "reason", None) or type(exc).__name__
        return cls(kind, job.chapter_number, job.url, reason=reason, message=str(exc) or type(exc).__name__)

    @property
    def is_failure(self) -> bool:
        return self.kind.is_failure

    def describe(self) -> str:
        if self.kind is OutcomeKind.SUCCESS:
            return f"chapter {self.chapter_number}: saved ({self.url})"
        if self.kind is OutcomeKind.SKIPPED:
            return f"chapter {self.chapter_number}: skipped, output already exists"
        return f"chapter {self.chapter_number}: {self.kind.value} [{self.reason}] {self.message} ({self.url})"


@dataclass(frozen=True, slots=True)
class RunSummary:
    succeeded: int = 0
    fetch_failed: int = 0
    extract_failed: int = 0
    write_failed: int = 0
    internal_errors: int = 0
    skipped: int = 0
    malformed: int = 0
    duplicates: int = 0
    elapsed: float = 0.0

    @property
    def failed(self) -> int:
        return self.fetch_failed + self.extract_failed + self.write_failed + self.internal_errors

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def describe(self) -> str:
        return (
            f"Processed {self.processed} chapters in {self.elapsed:.1f}s: "
            f"{self.succeeded} succeeded, {self.failed} failed "
            f"(fetch={self.fetch_failed}, extract={self.extract_failed}, "
            f"write={self.write_failed}, internal={self.internal_errors}), "
            f"{self.skipped} skipped, {self.malformed} malformed rows, {self.duplicates} duplicate rows"
        )
