"""Chapter job loading and resume filtering."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .storage import ChapterStore

LOGGER = logging.getLogger(__name__)


class SourceUnreadableError(RuntimeError):
    """Raised when the jobs file cannot be opened at all."""


class MalformedRecordError(ValueError):
    """Raised when a CSV row cannot be turned into a chapter job."""


@dataclass(frozen=True, slots=True)
class ChapterJob:
    url: str
    chapter_number: int
    line_number: int = 0


@dataclass(slots=True)
class JobLoaderStats:
    total: int = 0
    emitted: int = 0
    skipped_invalid: int = 0
    skipped_duplicate: int = 0


def parse_record(row: Sequence[str], line_number: int = 0) -> ChapterJob:
    if len(row) < 2:
        raise MalformedRecordError(f"expected 2 columns, got {len(row)}")

    url = row[0].strip()
    if not url:
        raise MalformedRecordError("missing link")

    raw_number = row[1].strip()
    # int() would also take "+5", "1_0" and non-ASCII digits
    if not (raw_number.isascii() and raw_number.isdigit()):
        raise MalformedRecordError(f"chapter number {raw_number!r} is not a plain integer")
    chapter_number = int(raw_number)
    if chapter_number <= 0:
        raise MalformedRecordError(f"chapter number {chapter_number} is not positive")

    return ChapterJob(url=url, chapter_number=chapter_number, line_number=line_number)


class CsvJobLoader:
    """Read chapter jobs from a ``link,chapter_number`` CSV file.

    Iteration is lazy and restarts from the top of the file each time; ``stats``
    describe the most recent pass. Malformed rows and repeated chapter numbers
    are logged and skipped.
    """

    def __init__(self, jobs_file: Path) -> None:
        self._jobs_file = jobs_file
        self.stats = JobLoaderStats()
        self._seen_chapters: set[int] = set()

    def __iter__(self) -> Iterator[ChapterJob]:
        self.stats = JobLoaderStats()
        self._seen_chapters.clear()

        try:
            handle = self._jobs_file.open("r", encoding="utf-8-sig", newline="")
        except OSError as exc:
            raise SourceUnreadableError(f"Cannot open jobs file '{self._jobs_file}': {exc}") from exc

        with handle:
            reader = csv.reader(handle)
            try:
                next(reader)
            except StopIteration:
                return
            except (csv.Error, UnicodeDecodeError) as exc:
                raise SourceUnreadableError(f"Cannot read header of '{self._jobs_file}': {exc}") from exc

            while True:
                try:
                    row = next(reader)
                except StopIteration:
                    break
                except UnicodeDecodeError as exc:
                    raise SourceUnreadableError(f"'{self._jobs_file}' is not valid UTF-8: {exc}") from exc
                except csv.Error as exc:
                    self.stats.total += 1
                    self.stats.skipped_invalid += 1
                    LOGGER.warning("Skipping unreadable row on line %d: %s", reader.line_num, exc)
                    continue

                if not row or not any(cell.strip() for cell in row):
                    continue
                self.stats.total += 1

                try:
                    job = parse_record(row, reader.line_num)
                except MalformedRecordError as exc:
                    self.stats.skipped_invalid += 1
                    LOGGER.warning("Skipping malformed row on line %d: %s", reader.line_num, exc)
                    continue

                if job.chapter_number in self._seen_chapters:
                    self.stats.skipped_duplicate += 1
                    LOGGER.warning(
                        "Skipping duplicate chapter %d on line %d (%s)",
                        job.chapter_number,
                        job.line_number,
                        job.url,
                    )
                    continue
                self._seen_chapters.add(job.chapter_number)

                self.stats.emitted += 1
                yield job


def partition_existing(
    jobs: Iterable[ChapterJob], store: ChapterStore
) -> tuple[list[ChapterJob], list[ChapterJob]]:
    """Split jobs into (pending, existing) by output file presence, keeping order.

    Presence is all that is checked: an empty or truncated file from an earlier
    run still counts as done.
    """

    pending: list[ChapterJob] = []
    existing: list[ChapterJob] = []
    for job in jobs:
        if store.exists(job.chapter_number):
            existing.append(job)
        else:
            pending.append(job)
    return pending, existing


def filter_existing(jobs: Iterable[ChapterJob], store: ChapterStore) -> list[ChapterJob]:
    pending, _ = partition_existing(jobs, store)
    return pending
