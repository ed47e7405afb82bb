"""Tests for session block building and active block selection."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from barstatus.usage.blocks import build_blocks, floor_to_hour, mark_active, new_block, select_active_block
from barstatus.usage.models import Sample, SessionBlock


def at(hhmm: str, day: int = 19) -> datetime:
    hour, minute = (int(x) for x in hhmm.split(":"))
    return datetime(2026, 2, day, hour, minute, tzinfo=timezone.utc)


def samples(*times: str, tokens: int = 100, day: int = 19) -> list[Sample]:
    return [Sample(timestamp=at(t, day), tokens=tokens) for t in times]


class TestFloorToHour:
    def test_truncates(self):
        assert floor_to_hour(at("10:59")) == at("10:00")

    def test_converts_to_utc_first(self):
        local = datetime(2026, 2, 19, 12, 30, tzinfo=timezone(timedelta(hours=2)))
        assert floor_to_hour(local) == at("10:00")

    def test_naive_is_utc(self):
        assert floor_to_hour(datetime(2026, 2, 19, 10, 59)) == at("10:00")


class TestBuildBlocks:
    def test_empty(self):
        assert build_blocks([]) == []

    def test_idle_gap_scenario(self):
        blocks = build_blocks(samples("10:05", "10:40", "15:50"))
        assert len(blocks) == 2
        first, second = blocks
        assert (first.start_time, first.end_time) == (at("10:00"), at("15:00"))
        assert first.message_count == 2
        assert first.total_tokens == 200
        assert second.start_time == at("15:00")
        assert second.message_count == 1

    def test_same_window_single_block(self):
        blocks = build_blocks(samples("10:05", "11:30", "13:00", "14:59"))
        assert len(blocks) == 1
        block = blocks[0]
        assert block.message_count == 4
        assert block.first_timestamp == at("10:05")
        assert block.last_timestamp == at("14:59")

    def test_gap_over_five_hours_splits(self):
        blocks = build_blocks(samples("10:00", "15:01"))
        assert len(blocks) == 2
        assert blocks[1].start_time == at("15:00")

    def test_sample_at_end_time_starts_new_block(self):
        blocks = build_blocks(samples("10:30", "15:00"))
        assert [b.start_time for b in blocks] == [at("10:00"), at("15:00")]

    def test_blocks_need_not_be_contiguous(self):
        blocks = build_blocks(samples("00:10", "12:30"))
        assert [(b.start_time, b.end_time) for b in blocks] == [
            (at("00:00"), at("05:00")),
            (at("12:00"), at("17:00")),
        ]

    def test_every_sample_inside_its_block(self):
        data = samples("01:15", "02:00", "05:59", "06:01", "09:00", "20:45")
        blocks = build_blocks(data)
        assert sum(b.message_count for b in blocks) == len(data)
        for block in blocks:
            assert block.start_time <= block.first_timestamp < block.end_time
            assert block.start_time <= block.last_timestamp < block.end_time
            assert block.end_time - block.start_time == timedelta(hours=5)
        for earlier, later in zip(blocks, blocks[1:]):
            assert earlier.end_time <= later.start_time

    def test_custom_window(self):
        blocks = build_blocks(samples("10:05", "11:10"), window=timedelta(hours=1))
        assert len(blocks) == 2


class TestSessionBlock:
    def test_add_rejects_outside_window(self):
        block = new_block(at("10:05"))
        assert block.add(Sample(at("16:00"), 10)) is False
        assert block.message_count == 0

    def test_new_block_seeds_timestamps(self):
        block = new_block(at("10:05"))
        assert block.first_timestamp == block.last_timestamp == at("10:05")
        assert block.total_tokens == 0


class TestSelectActiveBlock:
    def test_empty(self):
        assert select_active_block([], at("12:00")) is None

    def test_single_active_among_many(self):
        blocks = build_blocks(samples("00:10", "06:20", "12:30", "18:05", day=18) + samples("09:15"))
        active = select_active_block(blocks, at("10:00"))
        assert active is not None
        assert active.start_time == at("09:00")
        assert active.is_active

    def test_first_active_wins(self):
        blocks = [
            SessionBlock(start_time=at("10:00"), end_time=at("15:00"), last_timestamp=at("10:30")),
            SessionBlock(start_time=at("15:00"), end_time=at("20:00"), last_timestamp=at("15:30")),
        ]
        assert select_active_block(blocks, at("14:00")).start_time == at("10:00")

    def test_falls_back_to_most_recent(self):
        blocks = build_blocks(samples("01:00", "07:00", "08:30"))
        chosen = select_active_block(blocks, at("23:00"))
        assert chosen.last_timestamp == at("08:30")
        assert chosen.is_active is False

    def test_fallback_uses_first_timestamp_when_last_missing(self):
        blocks = [
            SessionBlock(start_time=at("01:00"), end_time=at("06:00"), first_timestamp=at("01:10")),
            SessionBlock(start_time=at("07:00"), end_time=at("12:00"), first_timestamp=at("07:10")),
        ]
        assert select_active_block(blocks, at("23:00")).start_time == at("07:00")

    def test_mark_active_does_not_mutate(self):
        blocks = build_blocks(samples("09:15"))
        marked = mark_active(blocks, at("10:00"))
        assert marked[0].is_active is True
        assert blocks[0].is_active is False
