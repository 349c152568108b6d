"""Output file layout and atomic chapter writes."""

from __future__ import annotations

import logging
import os
from pathlib import Path

LOGGER = logging.getLogger(__name__)

CHAPTER_FILE_TEMPLATE = "chapter_{number}.txt"


class OutputWriteError(RuntimeError):
    """Raised when a chapter file cannot be written."""

    reason = "io_error"


class OutputDirectoryError(RuntimeError):
    """Raised when the output directory cannot be created."""


class ChapterStore:
    """Maps chapter numbers to files under ``output_dir``."""

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = output_dir

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def chapter_path(self, chapter_number: int) -> Path:
        return self._output_dir / CHAPTER_FILE_TEMPLATE.format(number=chapter_number)

    def exists(self, chapter_number: int) -> bool:
        return self.chapter_path(chapter_number).exists()

    def ensure_directory(self) -> None:
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputDirectoryError(f"Cannot create output directory '{self._output_dir}': {exc}") from exc

    def write(self, chapter_number: int, text: str) -> Path:
        """Write ``text`` in full, then move it into place.

        Readers see either the previous file or the complete new one.
        """

        target = self.chapter_path(chapter_number)
        temporary_target = target.with_name(f"{target.name}.{os.getpid()}.tmp")
        try:
            temporary_target.write_bytes(text.encode("utf-8"))
            temporary_target.replace(target)
        except OSError as exc:
            try:
                temporary_target.unlink(missing_ok=True)
            except OSError:  # pragma: no cover - filesystem failure path
                LOGGER.debug("Could not remove temporary file %s", temporary_target)
            raise OutputWriteError(f"Failed to write {target}: {exc}") from exc

        LOGGER.debug("Wrote %d characters to %s", len(text), target)
        return target
