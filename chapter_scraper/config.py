"""Configuration shared by the scraping pipeline and its command line."""

from __future__ import annotations

import json
import logging
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import soupsieve

LOGGER = logging.getLogger(__name__)

DEFAULT_INPUT_PATH = Path("out/links.csv")
DEFAULT_OUTPUT_DIR = Path("out")
DEFAULT_SELECTOR = ".content-inner"
DEFAULT_FILTER_PATTERNS = ("window.pubfuturetag",)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

MAX_CONCURRENT_TASKS_LIMIT = 50
MAX_REQUEST_TIMEOUT = 300.0


class ConfigError(ValueError):
    """Raised when configuration values are missing, malformed or out of range."""


@dataclass(frozen=True, slots=True)
class ExtractionConfig:
    """Read-only settings shared by every fetch/extract task of a run."""

    selector: str = DEFAULT_SELECTOR
    skip_leading_nodes: int = 5
    filter_patterns: tuple[str, ...] = DEFAULT_FILTER_PATTERNS
    timeout: float = 45.0
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(slots=True)
class ScraperConfig:
    input_path: Path = DEFAULT_INPUT_PATH
    output_dir: Path = DEFAULT_OUTPUT_DIR
    selector: str = DEFAULT_SELECTOR
    max_concurrent_tasks: int = 20
    task_delay: float = 0.1
    request_timeout: float = 45.0
    user_agent: str = DEFAULT_USER_AGENT
    skip_leading_nodes: int = 5
    filter_patterns: tuple[str, ...] = DEFAULT_FILTER_PATTERNS
    verbose: bool = False

    def extraction_config(self) -> ExtractionConfig:
        return ExtractionConfig(
            selector=self.selector,
            skip_leading_nodes=self.skip_leading_nodes,
            filter_patterns=tuple(self.filter_patterns),
            timeout=self.request_timeout,
            user_agent=self.user_agent,
        )

    def validate(self) -> None:
        """Raise ``ConfigError`` for values the pipeline cannot run with."""

        if self.max_concurrent_tasks < 1:
            raise ConfigError("max_concurrent_tasks must be greater than 0")
        if self.max_concurrent_tasks > MAX_CONCURRENT_TASKS_LIMIT:
            raise ConfigError(f"max_concurrent_tasks must not exceed {MAX_CONCURRENT_TASKS_LIMIT}")
        if self.task_delay < 0:
            raise ConfigError("task_delay must not be negative")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be greater than 0")
        if self.request_timeout > MAX_REQUEST_TIMEOUT:
            raise ConfigError(f"request_timeout must not exceed {MAX_REQUEST_TIMEOUT:.0f} seconds")
        if self.skip_leading_nodes < 0:
            raise ConfigError("skip_leading_nodes must not be negative")
        if not self.selector.strip():
            raise ConfigError("selector must not be empty")
        try:
            soupsieve.compile(self.selector)
        except soupsieve.SelectorSyntaxError as exc:
            raise ConfigError(f"Invalid CSS selector {self.selector!r}: {exc}") from exc

        if not self.input_path.exists():
            LOGGER.warning("Input file %s does not exist", self.input_path)


_PATH_FIELDS = {"input_path", "output_dir"}
_INT_FIELDS = {"max_concurrent_tasks", "skip_leading_nodes"}
_FLOAT_FIELDS = {"task_delay", "request_timeout"}
_STR_FIELDS = {"selector", "user_agent"}


def _coerce_value(key: str, value: Any) -> Any:
    if key in _PATH_FIELDS:
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"{key} must be a non-empty string")
        return Path(value)
    if key in _INT_FIELDS:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{key} must be an integer")
        return value
    if key in _FLOAT_FIELDS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{key} must be a number")
        return float(value)
    if key in _STR_FIELDS:
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string")
        return value
    if key == "filter_patterns":
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ConfigError("filter_patterns must be a list of strings")
        return tuple(value)
    if key == "verbose":
        if not isinstance(value, bool):
            raise ConfigError("verbose must be a boolean")
        return value
    raise ConfigError(f"Unknown configuration key {key!r}")


def config_from_mapping(values: Mapping[str, Any], base: ScraperConfig | None = None) -> ScraperConfig:
    """Overlay ``values`` on ``base`` (or the defaults) and return a new config."""

    config = ScraperConfig() if base is None else replace(base)
    for key, value in values.items():
        setattr(config, key, _coerce_value(key, value))
    return config


def load_config_file(path: Path) -> ScraperConfig:
    try:
        with path.open("rb") as handle:
            payload = tomllib.load(handle)
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc

    config = config_from_mapping(payload)
    LOGGER.debug("Loaded configuration from %s", path)
    return config


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, Path):
        return json.dumps(value.as_posix(), ensure_ascii=False)
    if isinstance(value, (tuple, list)):
        return "[" + ", ".join(_toml_value(item) for item in value) + "]"
    return json.dumps(str(value), ensure_ascii=False)


def write_sample_config(path: Path, config: ScraperConfig | None = None) -> Path:
    """Write ``config`` (defaults when omitted) as a TOML file at ``path``."""

    config = config or ScraperConfig()
    lines = [f"{item.name} = {_toml_value(getattr(config, item.name))}" for item in fields(ScraperConfig)]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    LOGGER.info("Wrote sample configuration to %s", path)
    return path
