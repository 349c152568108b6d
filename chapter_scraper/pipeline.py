"""Bounded-concurrency fetch, extract and write pipeline."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import ExitStack
from typing import Callable, Iterable, Protocol

from .config import ScraperConfig
from .extractor import ContentExtractor, ExtractionError
from .http_client import HttpFetcher, HttpFetchError
from .jobs import ChapterJob, CsvJobLoader, partition_existing
from .outcomes import OutcomeKind, RunSummary, TaskOutcome
from .progress import ProgressObserver, ProgressReporter
from .storage import ChapterStore, OutputWriteError

LOGGER = logging.getLogger(__name__)


class PageFetcher(Protocol):
    def fetch_html(self, url: str) -> str:
        ...


class ChapterPipeline:
    """Fetch, extract and store a single chapter, mapping each failure to an outcome."""

    def __init__(self, fetcher: PageFetcher, extractor: ContentExtractor, store: ChapterStore) -> None:
        self._fetcher = fetcher
        self._extractor = extractor
        self._store = store

    def __call__(self, job: ChapterJob) -> TaskOutcome:
        LOGGER.debug("Starting chapter %d: %s", job.chapter_number, job.url)

        try:
            html = self._fetcher.fetch_html(job.url)
        except HttpFetchError as exc:
            return self._failed(OutcomeKind.FETCH_FAILED, job, exc)

        try:
            text = self._extractor.extract(html)
        except ExtractionError as exc:
            return self._failed(OutcomeKind.EXTRACT_FAILED, job, exc)
        if not text:
            LOGGER.warning("Chapter %d produced no text (%s)", job.chapter_number, job.url)

        try:
            path = self._store.write(job.chapter_number, text)
        except OutputWriteError as exc:
            return self._failed(OutcomeKind.WRITE_FAILED, job, exc)

        outcome = TaskOutcome.success(job)
        LOGGER.info("%s -> %s", outcome.describe(), path)
        return outcome

    @staticmethod
    def _failed(kind: OutcomeKind, job: ChapterJob, exc: Exception) -> TaskOutcome:
        outcome = TaskOutcome.failure(kind, job, exc)
        LOGGER.error("%s", outcome.describe())
        return outcome


class ChapterScheduler:
    """Dispatch jobs in order with at most ``max_concurrent_tasks`` running at once.

    The dispatch loop blocks on the gate when it is full and sleeps
    ``task_delay`` seconds between launches. Every dispatched job yields exactly
    one outcome; a fault in one task never cancels the others.
    """

    def __init__(
        self,
        pipeline: Callable[[ChapterJob], TaskOutcome],
        *,
        max_concurrent_tasks: int,
        task_delay: float = 0.0,
        reporter: ProgressReporter | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_concurrent_tasks < 1:
            raise ValueError("max_concurrent_tasks must be at least 1")
        self._pipeline = pipeline
        self._max_concurrent_tasks = max_concurrent_tasks
        self._task_delay = max(0.0, task_delay)
        self._reporter = reporter or ProgressReporter()
        self._sleep = sleep

    @property
    def reporter(self) -> ProgressReporter:
        return self._reporter

    def run(self, jobs: Iterable[ChapterJob]) -> list[TaskOutcome]:
        gate = threading.BoundedSemaphore(self._max_concurrent_tasks)
        futures: list[Future[TaskOutcome]] = []

        def _release_slot(_future: Future[TaskOutcome]) -> None:
            gate.release()

        with ThreadPoolExecutor(
            max_workers=self._max_concurrent_tasks,
            thread_name_prefix="chapter",
        ) as executor:
            for index, job in enumerate(jobs):
                if index and self._task_delay:
                    self._sleep(self._task_delay)
                gate.acquire()
                self._reporter.task_started(job)
                try:
                    future = executor.submit(self._run_task, job)
                except BaseException:
                    gate.release()
                    raise
                future.add_done_callback(_release_slot)
                futures.append(future)

            return [future.result() for future in futures]

    def _run_task(self, job: ChapterJob) -> TaskOutcome:
        try:
            outcome = self._pipeline(job)
        except Exception as exc:
            LOGGER.exception("Unhandled error for chapter %d (%s)", job.chapter_number, job.url)
            outcome = TaskOutcome.failure(OutcomeKind.INTERNAL_ERROR, job, exc)
        self._reporter.record(outcome)
        return outcome


def run_scraper(
    config: ScraperConfig,
    *,
    fetcher: PageFetcher | None = None,
    observers: Iterable[ProgressObserver] = (),
    sleep: Callable[[float], None] = time.sleep,
) -> RunSummary:
    """Run one full scrape described by ``config`` and return its summary.

    Raises ``SourceUnreadableError`` when the jobs file cannot be read and
    ``OutputDirectoryError`` when the output directory cannot be created; every
    other failure is recorded per chapter.
    """

    started_at = time.monotonic()
    store = ChapterStore(config.output_dir)

    loader = CsvJobLoader(config.input_path)
    jobs = list(loader)
    pending, existing = partition_existing(jobs, store)
    store.ensure_directory()
    LOGGER.info(
        "Loaded %d chapters from %s: %d to fetch, %d already saved",
        len(jobs),
        config.input_path,
        len(pending),
        len(existing),
    )

    reporter = ProgressReporter(observers)
    reporter.start_run(len(pending), skipped=len(existing))
    for job in existing:
        outcome = TaskOutcome.skipped(job)
        LOGGER.debug("%s", outcome.describe())
        reporter.record(outcome)

    with ExitStack() as stack:
        if fetcher is None:
            fetcher = stack.enter_context(HttpFetcher(config.extraction_config()))
        pipeline = ChapterPipeline(fetcher, ContentExtractor(config.extraction_config()), store)
        scheduler = ChapterScheduler(
            pipeline,
            max_concurrent_tasks=config.max_concurrent_tasks,
            task_delay=config.task_delay,
            reporter=reporter,
            sleep=sleep,
        )
        scheduler.run(pending)

    summary = reporter.summarize(
        elapsed=time.monotonic() - started_at,
        malformed=loader.stats.skipped_invalid,
        duplicates=loader.stats.skipped_duplicate,
    )
    reporter.finish_run(summary)
    return summary
