from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from barstatus.usage.models import PlanLimits, UsageConfig

logger = logging.getLogger(__name__)

DEFAULT_PLAN = "max"

# Estimated per-5h-window caps. Anthropic doesn't publish exact numbers.
PLAN_LIMITS: dict[str, PlanLimits] = {
    "pro": PlanLimits(token_limit=19_000, message_limit=250),
    "max5": PlanLimits(token_limit=88_000, message_limit=1_000),
    "max20": PlanLimits(token_limit=220_000, message_limit=2_000),
    "custom": PlanLimits(token_limit=44_000, message_limit=250),
    "max": PlanLimits(token_limit=88_000, message_limit=1_000),  # alias for max5
}


def _claude_dir() -> Path:
    return Path.home() / ".claude"


class Settings(BaseSettings):
    """Central configuration loaded from the environment."""

    model_config = {"env_prefix": "BARSTATUS_", "extra": "ignore", "populate_by_name": True}

    # Plan (several env names accepted for compatibility with other tools)
    plan: str | None = Field(
        default=None,
        validation_alias=AliasChoices("CLAUDE_STATUS_PLAN", "CLAUDE_PLAN", "CLAUDE_CODE_PLAN"),
    )

    # Display: colors | minimal | background
    display_mode: str = Field(
        default="colors",
        validation_alias=AliasChoices("CLAUDE_STATUS_DISPLAY_MODE"),
    )
    # Segment labels: none | emoji | text
    info_mode: str = Field(
        default="none",
        validation_alias=AliasChoices("CLAUDE_STATUS_INFO_MODE"),
    )

    # Paths
    claude_dir: Path = Field(default_factory=_claude_dir)
    config_file: Path | None = None  # defaults to <claude_dir>/barstatus.config.json

    # Usage engine
    include_cache_tokens: bool = False
    compact_threshold: int = 10_000
    cutoff_hours: int = 96
    window_hours: int = 5
    context_limit: int = 200_000

    # Remote quota (undocumented OAuth usage endpoint)
    fetch_quota: bool = True
    quota_timeout: float = 2.0

    # Logging goes to stderr; stdout carries only the status line
    log_level: str = "WARNING"

    @property
    def projects_dir(self) -> Path:
        return self.claude_dir / "projects"

    @property
    def display_config_path(self) -> Path:
        return self.config_file or self.claude_dir / "barstatus.config.json"

    def usage_config(self) -> UsageConfig:
        return UsageConfig(
            include_cache_tokens=self.include_cache_tokens,
            compact_threshold=self.compact_threshold,
            cutoff_hours=self.cutoff_hours,
            window_hours=self.window_hours,
        )


def _plan_from_claude_settings(claude_dir: Path) -> str | None:
    """Read the ``model`` key of ~/.claude/settings.json."""
    path = claude_dir / "settings.json"
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    value = data.get("model")
    return value if isinstance(value, str) else None


def detect_plan(cfg: Settings, plans: dict[str, PlanLimits] | None = None) -> str:
    """Environment first, then ~/.claude/settings.json, then the default.

    A source is only used if it names a known plan.
    """
    plans = plans if plans is not None else PLAN_LIMITS
    if cfg.plan and cfg.plan in plans:
        return cfg.plan
    from_file = _plan_from_claude_settings(cfg.claude_dir)
    if from_file and from_file in plans:
        return from_file
    return DEFAULT_PLAN


def resolve_limits(plan: str | None, plans: dict[str, PlanLimits] | None = None) -> PlanLimits:
    plans = plans if plans is not None else PLAN_LIMITS
    if plan and plan in plans:
        return plans[plan]
    return plans.get(DEFAULT_PLAN) or PLAN_LIMITS[DEFAULT_PLAN]


# ── Display config file ──────────────────────────────────────────────────────


class DisplayConfig(BaseModel):
    """Segment toggles saved by the bar-status settings menu."""

    model_config = {"extra": "ignore"}

    version: int = 1
    bar_style: Literal["blocks", "tqdm", "percent_only"] = "blocks"
    show_5h: bool = True
    show_7d: bool = True
    show_ctx: bool = True
    show_git: bool = True
    show_duration: bool = True


def load_display_config(path: Path) -> DisplayConfig:
    """Load the display config, falling back to defaults on any problem."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return DisplayConfig.model_validate(data)
    except FileNotFoundError:
        return DisplayConfig()
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        logger.debug("Ignoring display config %s: %s", path, e)
        return DisplayConfig()


settings = Settings()
