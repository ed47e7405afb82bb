"""Context-window fill percentage from a session transcript."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from barstatus.usage.formatter import round_half_up
from barstatus.usage.scanner import iter_records

logger = logging.getLogger(__name__)

CONTEXT_LIMIT_TOKENS = 200_000


def _context_tokens(usage: dict[str, Any]) -> int:
    return (
        (usage.get("input_tokens", 0) or 0)
        + (usage.get("cache_read_input_tokens", 0) or 0)
        + (usage.get("cache_creation_input_tokens", 0) or 0)
    )


def context_fill(transcript_path: Path | str | None, max_tokens: int = CONTEXT_LIMIT_TOKENS) -> int:
    """Percentage of the context window used by the latest recorded turn.

    Each usage record overwrites the running value: the last assistant
    turn already includes the whole conversation as input. Returns 0 on
    any failure.
    """
    if not transcript_path or max_tokens <= 0:
        return 0
    path = Path(transcript_path)
    try:
        if not path.is_file():
            return 0
        tokens = 0
        for entry in iter_records(path):
            if entry.get("isSidechain") is True or entry.get("isApiErrorMessage") is True:
                continue
            message = entry.get("message")
            usage = message.get("usage") if isinstance(message, dict) else None
            if not isinstance(usage, dict):
                continue
            tokens = int(_context_tokens(usage))
        return round_half_up(tokens / max_tokens * 100)
    except Exception as e:
        logger.debug("Context fill unavailable for %s: %s", path, e)
        return 0
