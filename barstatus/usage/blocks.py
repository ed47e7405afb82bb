"""Partition samples into 5-hour session blocks and pick the active one."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from barstatus.usage.models import WINDOW_HOURS, Sample, SessionBlock

WINDOW_DURATION = timedelta(hours=WINDOW_HOURS)


def as_utc(ts: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def floor_to_hour(ts: datetime) -> datetime:
    """Truncate to the start of the UTC hour."""
    return as_utc(ts).replace(minute=0, second=0, microsecond=0)


def new_block(ts: datetime, window: timedelta = WINDOW_DURATION) -> SessionBlock:
    start = floor_to_hour(ts)
    return SessionBlock(
        start_time=start,
        end_time=start + window,
        first_timestamp=ts,
        last_timestamp=ts,
    )


def _needs_new_block(current: SessionBlock | None, ts: datetime, window: timedelta) -> bool:
    if current is None:
        return True
    if ts >= current.end_time:
        return True
    # Idle gap: a full window without activity resets even inside the span
    return current.last_timestamp is not None and ts - current.last_timestamp >= window


def build_blocks(samples: Iterable[Sample], window: timedelta = WINDOW_DURATION) -> list[SessionBlock]:
    """Group time-ordered samples into non-overlapping session blocks.

    A block starts at the hour boundary of its first sample and spans
    ``window``. Gaps without samples leave no block behind.
    """
    blocks: list[SessionBlock] = []
    current: SessionBlock | None = None

    for sample in samples:
        if sample.timestamp.tzinfo is None:
            sample = replace(sample, timestamp=as_utc(sample.timestamp))
        if _needs_new_block(current, sample.timestamp, window):
            if current is not None:
                blocks.append(current)
            current = new_block(sample.timestamp, window)
        current.add(sample)

    if current is not None:
        blocks.append(current)
    return blocks


def mark_active(blocks: Iterable[SessionBlock], now: datetime) -> list[SessionBlock]:
    """Return copies of blocks with is_active set for windows still open at now."""
    now = as_utc(now)
    return [replace(b, is_active=b.end_time > now) for b in blocks]


def _recency(block: SessionBlock) -> datetime:
    return block.last_timestamp or block.first_timestamp or block.start_time


def select_active_block(blocks: Iterable[SessionBlock], now: datetime) -> SessionBlock | None:
    """Pick the block that represents "now".

    The earliest still-open block wins, since the quota window is anchored
    at first activation. When every window has elapsed, the most recently
    used block is returned instead. None means there is no data at all.
    """
    marked = mark_active(blocks, now)
    if not marked:
        return None
    for block in marked:
        if block.is_active:
            return block
    return max(marked, key=_recency)
