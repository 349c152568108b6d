import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from chapter_scraper.jobs import (
    ChapterJob,
    CsvJobLoader,
    MalformedRecordError,
    SourceUnreadableError,
    filter_existing,
    parse_record,
    partition_existing,
)
from chapter_scraper.storage import ChapterStore


def _write_csv(directory: Path, body: str) -> Path:
    path = directory / "links.csv"
    path.write_text(body, encoding="utf-8")
    return path


class ParseRecordTestCase(unittest.TestCase):
    def test_parses_url_and_chapter_number(self) -> None:
        job = parse_record([" https://example.com/c/7 ", " 7 "], line_number=3)
        self.assertEqual(job, ChapterJob(url="https://example.com/c/7", chapter_number=7, line_number=3))

    def test_rejects_bad_rows(self) -> None:
        for row in (["https://example.com/c/1"], ["", "1"], ["https://example.com", "one"], ["https://example.com", "0"]):
            with self.subTest(row=row):
                with self.assertRaises(MalformedRecordError):
                    parse_record(row)

    def test_rejects_loose_integer_spellings(self) -> None:
        for raw in ("1_0", "+5", "-3", "٣", "1.0", "0x1f"):
            with self.subTest(raw=raw):
                with self.assertRaises(MalformedRecordError):
                    parse_record(["https://example.com/c", raw])


class CsvJobLoaderTestCase(unittest.TestCase):
    def test_reads_rows_in_order_after_header(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = _write_csv(
                Path(tmpdir),
                "link,chapter_number\nhttps://example.com/a,1\nhttps://example.com/b,2\nhttps://example.com/c,10\n",
            )
            loader = CsvJobLoader(path)
            jobs = list(loader)

        self.assertEqual([job.chapter_number for job in jobs], [1, 2, 10])
        self.assertEqual(jobs[0].url, "https://example.com/a")
        self.assertEqual(jobs[0].line_number, 2)
        self.assertEqual(loader.stats.emitted, 3)
        self.assertEqual(loader.stats.skipped_invalid, 0)

    def test_malformed_rows_are_skipped_not_fatal(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = _write_csv(
                Path(tmpdir),
                "link,chapter_number\n"
                "https://example.com/a,1\n"
                "https://example.com/b,not-a-number\n"
                "\n"
                "https://example.com/c\n"
                "https://example.com/d,-4\n"
                "https://example.com/e,5\n",
            )
            loader = CsvJobLoader(path)
            jobs = list(loader)

        self.assertEqual([job.chapter_number for job in jobs], [1, 5])
        self.assertEqual(loader.stats.skipped_invalid, 3)
        self.assertEqual(loader.stats.total, 5)

    def test_duplicate_chapter_numbers_keep_first_row(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = _write_csv(
                Path(tmpdir),
                "link,chapter_number\nhttps://example.com/a,3\nhttps://example.com/b,3\nhttps://example.com/c,4\n",
            )
            loader = CsvJobLoader(path)
            jobs = list(loader)

        self.assertEqual([(job.url, job.chapter_number) for job in jobs], [
            ("https://example.com/a", 3),
            ("https://example.com/c", 4),
        ])
        self.assertEqual(loader.stats.skipped_duplicate, 1)

    def test_iteration_restarts_and_resets_stats(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = _write_csv(Path(tmpdir), "link,chapter_number\nhttps://example.com/a,1\nbad\n")
            loader = CsvJobLoader(path)
            first = list(loader)
            second = list(loader)

        self.assertEqual(first, second)
        self.assertEqual(loader.stats.emitted, 1)
        self.assertEqual(loader.stats.skipped_invalid, 1)

    def test_header_only_file_yields_nothing(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = _write_csv(Path(tmpdir), "link,chapter_number\n")
            self.assertEqual(list(CsvJobLoader(path)), [])

    def test_missing_file_is_unreadable(self) -> None:
        with TemporaryDirectory() as tmpdir:
            loader = CsvJobLoader(Path(tmpdir) / "missing.csv")
            with self.assertRaises(SourceUnreadableError):
                list(loader)


class ExistingOutputFilterTestCase(unittest.TestCase):
    def test_existing_outputs_are_removed_in_order(self) -> None:
        jobs = [ChapterJob(f"https://example.com/{n}", n) for n in (5, 1, 4, 2, 3)]
        with TemporaryDirectory() as tmpdir:
            store = ChapterStore(Path(tmpdir))
            store.write(4, "done")
            store.write(1, "done")

            pending, existing = partition_existing(jobs, store)
            filtered = filter_existing(jobs, store)

        self.assertEqual([job.chapter_number for job in pending], [5, 2, 3])
        self.assertEqual([job.chapter_number for job in existing], [1, 4])
        self.assertEqual(filtered, pending)

    def test_zero_byte_output_counts_as_existing(self) -> None:
        jobs = [ChapterJob("https://example.com/a", 1), ChapterJob("https://example.com/b", 2)]
        with TemporaryDirectory() as tmpdir:
            store = ChapterStore(Path(tmpdir))
            store.chapter_path(2).touch()

            self.assertEqual(filter_existing(jobs, store), [jobs[0]])


if __name__ == "__main__":
    unittest.main()
