"""Data types shared by the usage pipeline.

Samples flow from the scanner into the block builder; blocks flow into the
selector and formatter, which produce a UsageSnapshot for the status line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

WINDOW_HOURS = 5
CUTOFF_HOURS = 96
COMPACT_THRESHOLD = 10_000


@dataclass(frozen=True, order=True)
class Sample:
    """A single billable log record: when it happened and how many tokens."""

    timestamp: datetime
    tokens: int = field(compare=False)


@dataclass
class SessionBlock:
    """Aggregated usage for one fixed-length rolling window."""

    start_time: datetime
    end_time: datetime
    total_tokens: int = 0
    message_count: int = 0
    first_timestamp: datetime | None = None
    last_timestamp: datetime | None = None
    is_active: bool = False

    def contains(self, ts: datetime) -> bool:
        return self.start_time <= ts < self.end_time

    def add(self, sample: Sample) -> bool:
        """Accumulate a sample; returns False if it falls outside the window."""
        if not self.contains(sample.timestamp):
            return False
        self.total_tokens += sample.tokens
        self.message_count += 1
        self.last_timestamp = sample.timestamp
        return True


@dataclass(frozen=True)
class PlanLimits:
    """Token and message caps for one subscription plan."""

    token_limit: int
    message_limit: int


@dataclass(frozen=True)
class UsageSnapshot:
    """Display-ready usage values for the current session block."""

    tokens_display: str
    messages_display: str
    reset_countdown: str
    token_pct: int = 0
    message_pct: int = 0
    seconds_until_reset: int = WINDOW_HOURS * 3600


@dataclass(frozen=True)
class TokenFieldNames:
    """Alternate spellings for each logical token field, in probe order.

    Producers disagree on naming (snake_case from the Anthropic API,
    camelCase from some wrappers, prompt/completion from OpenAI-style logs).
    """

    input: tuple[str, ...] = ("input_tokens", "inputTokens", "prompt_tokens")
    output: tuple[str, ...] = ("output_tokens", "outputTokens", "completion_tokens")
    cache_creation: tuple[str, ...] = (
        "cache_creation_tokens",
        "cache_creation_input_tokens",
        "cacheCreationInputTokens",
    )
    cache_read: tuple[str, ...] = (
        "cache_read_input_tokens",
        "cache_read_tokens",
        "cacheReadInputTokens",
    )


@dataclass(frozen=True)
class UsageConfig:
    """Tunables for scanning, bucketing and formatting.

    include_cache_tokens defaults to False: a sample's total is input + output
    only, cache creation/read tokens are extracted but not counted.
    """

    field_names: TokenFieldNames = field(default_factory=TokenFieldNames)
    include_cache_tokens: bool = False
    compact_threshold: int = COMPACT_THRESHOLD
    cutoff_hours: int = CUTOFF_HOURS
    window_hours: int = WINDOW_HOURS

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.window_hours)

    @property
    def cutoff(self) -> timedelta:
        return timedelta(hours=self.cutoff_hours)


DEFAULT_CONFIG = UsageConfig()
