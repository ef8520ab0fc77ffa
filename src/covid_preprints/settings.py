"""
Run configuration validated once at startup.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

from . import __version__
from .errors import ConfigError

DEFAULT_START_DATE = date(2020, 1, 1)


def parse_iso_date(value: str | date, name: str) -> date:
    """Parse an ISO 8601 calendar date, raising ConfigError on bad input."""

    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as error:
        raise ConfigError(f"{name} must be an ISO 8601 date (YYYY-MM-DD), got {value!r}") from error


@dataclass(frozen=True, slots=True)
class HarvestSettings:
    """Configuration for one harvest run."""

    cutoff: date
    start_date: date = DEFAULT_START_DATE
    min_count: int = 100
    mailto: Optional[str] = None
    timeout: float = 30.0
    concurrency: int = 8
    arxiv_limit: int = 10000
    arxiv_delay: float = 3.0
    page_size: int = 1000
    output_dir: Path = Path("data")
    correct_dates: bool = True

    def __post_init__(self) -> None:
        if self.cutoff < self.start_date:
            raise ConfigError(
                f"cutoff {self.cutoff.isoformat()} is before start date {self.start_date.isoformat()}"
            )
        if self.min_count < 0:
            raise ConfigError("min_count must not be negative")
        if self.concurrency < 1:
            raise ConfigError("concurrency must be at least 1")
        if self.page_size < 1 or self.arxiv_limit < 1:
            raise ConfigError("page_size and arxiv_limit must be positive")
        if self.arxiv_delay < 0:
            raise ConfigError("arxiv_delay must not be negative")
        if self.mailto is not None and "@" not in self.mailto:
            raise ConfigError("mailto must contain a valid email address")

    @property
    def user_agent(self) -> str:
        agent = f"covid-preprints/{__version__}"
        if self.mailto:
            agent += f" (mailto:{self.mailto})"
        return agent
