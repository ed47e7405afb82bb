"""Turn a session block and plan limits into status-line display values."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from barstatus.usage.blocks import as_utc, build_blocks, select_active_block
from barstatus.usage.models import DEFAULT_CONFIG, PlanLimits, Sample, SessionBlock, UsageConfig, UsageSnapshot
from barstatus.usage.scanner import default_cutoff, scan_usage

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero (Python's round() is banker's rounding)."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def percentage(current: int, limit: int) -> int:
    """Utilisation in whole percent. Not clamped: over-quota exceeds 100."""
    if limit <= 0:
        return 0
    return round_half_up(current / limit * 100)


def format_countdown(seconds: int) -> str:
    """Render seconds as ``{h}h{m}m``, e.g. ``2h13m`` or ``0h0m``."""
    seconds = max(0, int(seconds))
    return f"{seconds // 3600}h{(seconds % 3600) // 60}m"


def compact_count(value: int, threshold: int = DEFAULT_CONFIG.compact_threshold) -> str:
    """Token count as an integer, or ``12.3k`` from threshold upwards."""
    if value >= threshold:
        return f"{math.floor(value / 100 + 0.5) / 10:.1f}k"
    return str(value)


def compact_limit(limit: int) -> str:
    """Plan limit in whole thousands, e.g. ``88k``."""
    if limit >= 1000:
        return f"{limit // 1000}k"
    return str(limit)


def default_snapshot(limits: PlanLimits, config: UsageConfig | None = None) -> UsageSnapshot:
    """Zero usage and a full-window countdown, so the line is never blank."""
    config = config or DEFAULT_CONFIG
    window_seconds = int(config.window.total_seconds())
    return UsageSnapshot(
        tokens_display=f"0/{compact_limit(limits.token_limit)}",
        messages_display=f"0/{limits.message_limit}",
        reset_countdown=format_countdown(window_seconds),
        token_pct=0,
        message_pct=0,
        seconds_until_reset=window_seconds,
    )


def format_usage(
    block: SessionBlock | None,
    limits: PlanLimits,
    now: datetime | None = None,
    config: UsageConfig | None = None,
) -> UsageSnapshot:
    """Build the display snapshot for block (or the default when block is None)."""
    config = config or DEFAULT_CONFIG
    if block is None:
        return default_snapshot(limits, config)

    now = as_utc(now) if now else datetime.now(timezone.utc)
    seconds_until_reset = max(0, int((block.end_time - now).total_seconds()))
    current_tokens = compact_count(block.total_tokens, config.compact_threshold)

    return UsageSnapshot(
        tokens_display=f"{current_tokens}/{compact_limit(limits.token_limit)}",
        messages_display=f"{block.message_count}/{limits.message_limit}",
        reset_countdown=format_countdown(seconds_until_reset),
        token_pct=percentage(block.total_tokens, limits.token_limit),
        message_pct=percentage(block.message_count, limits.message_limit),
        seconds_until_reset=seconds_until_reset,
    )


# ── Pipeline ─────────────────────────────────────────────────────────────────


def aggregate(
    samples: Iterable[Sample],
    limits: PlanLimits,
    now: datetime | None = None,
    config: UsageConfig | None = None,
) -> UsageSnapshot:
    """Bucket samples, select the active block and format it.

    Never raises: any failure yields the default snapshot.
    """
    config = config or DEFAULT_CONFIG
    now = as_utc(now) if now else datetime.now(timezone.utc)
    try:
        blocks = build_blocks(samples, config.window)
        block = select_active_block(blocks, now)
        return format_usage(block, limits, now, config)
    except Exception as e:
        logger.warning("Usage aggregation failed: %s", e)
        return default_snapshot(limits, config)


def compute_usage(
    log_root: Path | str,
    limits: PlanLimits,
    now: datetime | None = None,
    config: UsageConfig | None = None,
) -> UsageSnapshot:
    """Scan the log root and aggregate it into a snapshot. Never raises."""
    config = config or DEFAULT_CONFIG
    now = as_utc(now) if now else datetime.now(timezone.utc)
    try:
        samples = scan_usage(log_root, default_cutoff(now, config), config)
    except Exception as e:
        logger.warning("Usage scan of %s failed: %s", log_root, e)
        return default_snapshot(limits, config)
    return aggregate(samples, limits, now, config)
