"""Shared test fixtures."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

from barstatus.config import Settings

NOW = datetime(2026, 2, 19, 12, 0, tzinfo=timezone.utc)

_ENV_VARS = (
    "CLAUDE_STATUS_PLAN",
    "CLAUDE_PLAN",
    "CLAUDE_CODE_PLAN",
    "CLAUDE_STATUS_DISPLAY_MODE",
    "CLAUDE_STATUS_INFO_MODE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own plan/display settings out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def write_jsonl() -> Callable[[Path, list[Any]], Path]:
    """Write entries (dicts, or raw strings for malformed lines) as JSONL."""

    def _write(path: Path, entries: list[Any]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for entry in entries:
                f.write(entry if isinstance(entry, str) else json.dumps(entry))
                f.write("\n")
        return path

    return _write


@pytest.fixture
def make_entry() -> Callable[..., dict[str, Any]]:
    """Build an assistant log record shaped like Claude Code writes them."""

    def _entry(
        timestamp: str,
        input_tokens: int = 60,
        output_tokens: int = 40,
        message_id: str | None = None,
        request_id: str | None = None,
        **usage_extra: int,
    ) -> dict[str, Any]:
        message: dict[str, Any] = {
            "role": "assistant",
            "model": "claude-sonnet-4-6",
            "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens, **usage_extra},
        }
        if message_id is not None:
            message["id"] = message_id
        entry: dict[str, Any] = {"type": "assistant", "timestamp": timestamp, "message": message}
        if request_id is not None:
            entry["requestId"] = request_id
        return entry

    return _entry


@pytest.fixture
def claude_dir(tmp_path: Path) -> Path:
    """A fake ~/.claude with an empty projects directory."""
    d = tmp_path / ".claude"
    (d / "projects").mkdir(parents=True)
    return d


@pytest.fixture
def isolated_settings(claude_dir: Path) -> Settings:
    return Settings(claude_dir=claude_dir, fetch_quota=False)
