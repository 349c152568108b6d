"""Concurrent chapter scraper: fetch pages, extract a content region, save text."""

from .config import ExtractionConfig, ScraperConfig
from .outcomes import OutcomeKind, RunSummary, TaskOutcome
from .pipeline import ChapterPipeline, ChapterScheduler, run_scraper

__all__ = [
    "ChapterPipeline",
    "ChapterScheduler",
    "ExtractionConfig",
    "OutcomeKind",
    "RunSummary",
    "ScraperConfig",
    "TaskOutcome",
    "run_scraper",
]
