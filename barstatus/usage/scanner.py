"""Scan Claude Code JSONL logs into time-ordered usage samples.

Every line of every ``*.jsonl`` file under the log root is a candidate
record. Records older than the cutoff, duplicates of an already counted
(message id, request id) pair, and records without any positive input or
output token count are dropped.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from barstatus.usage.models import DEFAULT_CONFIG, Sample, TokenFieldNames, UsageConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenCounts:
    """Token fields extracted from one usage source."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0

    @property
    def billable(self) -> bool:
        return self.input_tokens > 0 or self.output_tokens > 0

    def total(self, include_cache_tokens: bool = False) -> int:
        total = self.input_tokens + self.output_tokens
        if include_cache_tokens:
            total += self.cache_creation_tokens + self.cache_read_tokens
        return total


def default_cutoff(now: datetime | None = None, config: UsageConfig = DEFAULT_CONFIG) -> datetime:
    """Return the intake horizon: records older than this are ignored."""
    now = now or datetime.now(timezone.utc)
    return now - config.cutoff


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime."""
    if not isinstance(value, str) or not value:
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def dedup_key(entry: dict[str, Any]) -> str | None:
    """Composite (message id, request id) key, or None if either is missing."""
    message = entry.get("message")
    message_id = entry.get("message_id")
    if not message_id and isinstance(message, dict):
        message_id = message.get("id")
    request_id = entry.get("requestId") or entry.get("request_id")
    if message_id and request_id:
        return f"{message_id}:{request_id}"
    return None


def _token_sources(entry: dict[str, Any]) -> list[dict[str, Any]]:
    """Candidate objects to probe for usage, most specific first."""
    message = entry.get("message")
    message_usage = message.get("usage") if isinstance(message, dict) else None
    top_usage = entry.get("usage")

    if entry.get("type") == "assistant":
        ordered = [message_usage, top_usage]
    else:
        ordered = [top_usage, message_usage]
    ordered.append(entry)
    return [s for s in ordered if isinstance(s, dict)]


def _first_positive(source: dict[str, Any], names: tuple[str, ...]) -> int:
    for name in names:
        value = source.get(name)
        # bool is an int subclass; a flag is never a token count
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        # json.loads turns 1e400 into inf
        if isinstance(value, float) and not math.isfinite(value):
            continue
        if value > 0:
            return int(value)
    return 0


def extract_tokens(entry: dict[str, Any], field_names: TokenFieldNames | None = None) -> TokenCounts | None:
    """Return the token counts of the first source with positive input or output.

    Returns None when no candidate source carries billable usage.
    """
    names = field_names or DEFAULT_CONFIG.field_names
    for source in _token_sources(entry):
        counts = TokenCounts(
            input_tokens=_first_positive(source, names.input),
            output_tokens=_first_positive(source, names.output),
            cache_creation_tokens=_first_positive(source, names.cache_creation),
            cache_read_tokens=_first_positive(source, names.cache_read),
        )
        if counts.billable:
            return counts
    return None


def iter_records(path: Path) -> Iterator[dict[str, Any]]:
    """Stream JSON objects from a JSONL file, skipping blank and malformed lines."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(entry, dict):
                    yield entry
    except OSError as e:
        logger.debug("Could not read %s: %s", path, e)


def find_log_files(log_root: Path) -> list[Path]:
    """All ``*.jsonl`` files below log_root, in a deterministic order."""
    if not log_root.is_dir():
        return []
    try:
        return sorted(p for p in log_root.rglob("*.jsonl") if p.is_file())
    except OSError as e:
        logger.debug("Could not list %s: %s", log_root, e)
        return []


def scan_usage(
    log_root: Path | str,
    cutoff: datetime,
    config: UsageConfig | None = None,
) -> list[Sample]:
    """Collect deduplicated usage samples newer than cutoff, sorted by time."""
    config = config or DEFAULT_CONFIG
    if cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=timezone.utc)
    seen_keys: set[str] = set()
    samples: list[Sample] = []

    for path in find_log_files(Path(log_root)):
        for entry in iter_records(path):
            ts = parse_timestamp(entry.get("timestamp"))
            if ts is None or ts < cutoff:
                continue

            key = dedup_key(entry)
            if key is not None and key in seen_keys:
                continue

            counts = extract_tokens(entry, config.field_names)
            if counts is None:
                continue

            if key is not None:
                seen_keys.add(key)
            samples.append(Sample(timestamp=ts, tokens=counts.total(config.include_cache_tokens)))

    # list.sort is stable: equal timestamps keep encounter order
    samples.sort(key=lambda s: s.timestamp)
    logger.debug("Scanned %d usage samples from %s", len(samples), log_root)
    return samples
