"""Command-line entrypoint for chapter scraping."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from tqdm.contrib.logging import logging_redirect_tqdm

from .config import ConfigError, ScraperConfig, config_from_mapping, load_config_file, write_sample_config
from .jobs import SourceUnreadableError
from .pipeline import run_scraper
from .progress import TqdmProgressObserver
from .storage import OutputDirectoryError

LOGGER = logging.getLogger(__name__)

# argparse destination -> ScraperConfig field
_OVERRIDES = {
    "input": "input_path",
    "output": "output_dir",
    "selector": "selector",
    "concurrent": "max_concurrent_tasks",
    "delay": "task_delay",
    "timeout": "request_timeout",
    "user_agent": "user_agent",
    "skip_nodes": "skip_leading_nodes",
    "filter_patterns": "filter_patterns",
}


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Download chapter pages listed in a CSV file and save their text content"
    )
    parser.add_argument("-c", "--config", type=Path, help="Path to a TOML configuration file")
    parser.add_argument("-i", "--input", type=str, help="CSV file with link,chapter_number rows")
    parser.add_argument("-o", "--output", type=str, help="Directory for chapter_N.txt files")
    parser.add_argument("-s", "--selector", type=str, help="CSS selector of the content element")
    parser.add_argument("--concurrent", type=int, help="Maximum number of chapters fetched at once")
    parser.add_argument("--delay", type=float, help="Seconds to wait between task launches")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds")
    parser.add_argument("--user-agent", type=str, help="User-Agent header sent with each request")
    parser.add_argument("--skip-nodes", type=int, help="Number of leading text nodes to drop")
    parser.add_argument(
        "--filter-pattern",
        dest="filter_patterns",
        action="append",
        help="Drop text nodes starting with this prefix (repeatable; replaces configured patterns)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--generate-config",
        type=Path,
        metavar="PATH",
        help="Write a sample configuration file to PATH and exit",
    )
    return parser


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # basicConfig is a no-op once handlers exist, so set the level directly
    logging.getLogger().setLevel(level)
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.NOTSET if verbose else logging.WARNING)


def build_config(args: argparse.Namespace) -> ScraperConfig:
    """Resolve defaults, then the config file, then command-line flags."""

    config = load_config_file(args.config) if args.config else ScraperConfig()

    overrides: dict[str, object] = {}
    for dest, key in _OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides[key] = value
    if getattr(args, "verbose", False):
        overrides["verbose"] = True

    config = config_from_mapping(overrides, base=config)
    config.validate()
    return config


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.generate_config:
        write_sample_config(args.generate_config)
        LOGGER.info("Edit the file and run with --config %s", args.generate_config)
        return 0

    try:
        config = build_config(args)
    except ConfigError as exc:
        parser.error(str(exc))

    configure_logging(config.verbose)

    try:
        with logging_redirect_tqdm():
            summary = run_scraper(config, observers=[TqdmProgressObserver()])
    except (SourceUnreadableError, OutputDirectoryError) as exc:
        LOGGER.error("%s", exc)
        return 1

    LOGGER.info("%s", summary.describe())
    return 0 if summary.ok else 1


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
