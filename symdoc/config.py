"""Corpus configuration — loaded from a YAML file, every key optional."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import yaml

from symdoc.bitcode.ids import VERSION_NUMBER

DEFAULT_CONFIG_FILE = "symdoc.yml"


class LogFormat(Enum):
    CONSOLE = "console"
    JSON = "json"


_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


@dataclass
class CorpusConfig:
    """Settings for decoding and merging a set of containers."""

    expected_version: int = VERSION_NUMBER
    workers: int = 4  # Thread pool size; 1 runs sequentially
    ignore_failures: bool = True  # Skip failing units instead of aborting
    log_level: str = "info"
    log_format: LogFormat = LogFormat.CONSOLE

    def __post_init__(self):
        if isinstance(self.workers, bool) or not isinstance(self.workers, int) or self.workers < 1:
            raise ValueError(f"workers must be a positive integer, got {self.workers!r}")
        if isinstance(self.expected_version, bool) or not isinstance(self.expected_version, int):
            raise ValueError(f"expected_version must be an integer, got {self.expected_version!r}")
        if not isinstance(self.ignore_failures, bool):
            raise ValueError(f"ignore_failures must be true or false, got {self.ignore_failures!r}")
        self.log_level = str(self.log_level).lower()
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level {self.log_level!r}")
        self.log_format = LogFormat(self.log_format)

    def override(self, **values) -> CorpusConfig:
        """Return a copy with the given non-None values replaced."""
        current = {
            "expected_version": self.expected_version,
            "workers": self.workers,
            "ignore_failures": self.ignore_failures,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }
        current.update({k: v for k, v in values.items() if v is not None})
        return CorpusConfig(**current)


def load_config(path: str | Path) -> CorpusConfig:
    """Load corpus settings from a YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")

    unknown = set(data) - {"expected_version", "workers", "ignore_failures", "log_level", "log_format"}
    if unknown:
        raise ValueError(f"{path}: unknown key(s): {', '.join(sorted(unknown))}")

    try:
        log_format = LogFormat(data.get("log_format", "console"))
    except ValueError:
        raise ValueError(f"{path}: unknown log format {data['log_format']!r}") from None

    return CorpusConfig(
        expected_version=data.get("expected_version", VERSION_NUMBER),
        workers=data.get("workers", 4),
        ignore_failures=data.get("ignore_failures", True),
        log_level=data.get("log_level", "info"),
        log_format=log_format,
    )


def find_config(start: str | Path = ".") -> Path | None:
    """Return the default config file in the given directory, if present."""
    candidate = Path(start) / DEFAULT_CONFIG_FILE
    return candidate if candidate.is_file() else None
