"""Entry point for the barstatus status line."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from barstatus.config import Settings, detect_plan, load_display_config, resolve_limits, settings
from barstatus.providers.credentials import CredentialProvider, default_credentials
from barstatus.providers.git import GitStatus, GitStatusProvider, SubprocessGitStatusProvider
from barstatus.providers.quota import QuotaClient, QuotaReport
from barstatus.render import StatusLineData, StatusLineRenderer
from barstatus.usage import (
    build_blocks,
    compute_usage,
    context_fill,
    default_cutoff,
    format_usage,
    mark_active,
    scan_usage,
    select_active_block,
)

logger = logging.getLogger(__name__)


# ── Stdin payload (Claude Code status-line protocol) ─────────────────────────


class _Workspace(BaseModel):
    current_dir: str | None = None


class _Model(BaseModel):
    display_name: str | None = None


class _Cost(BaseModel):
    total_lines_added: int = 0
    total_lines_removed: int = 0
    total_duration_ms: int = 0


class StatusInput(BaseModel):
    model_config = {"extra": "ignore"}

    workspace: _Workspace | None = None
    cwd: str | None = None
    model: _Model | None = None
    transcript_path: str | None = None
    session_id: str | None = None
    cost: _Cost | None = None

    @property
    def current_dir(self) -> str | None:
        if self.workspace and self.workspace.current_dir:
            return self.workspace.current_dir
        return self.cwd

    @property
    def model_name(self) -> str | None:
        return self.model.display_name if self.model else None


def parse_input(raw: str) -> StatusInput:
    """Parse the JSON payload; anything unusable becomes an empty payload."""
    if not raw.strip():
        return StatusInput()
    try:
        return StatusInput.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.debug("Ignoring status input: %s", e)
        return StatusInput()


# ── Status line ──────────────────────────────────────────────────────────────


def _git_status(provider: GitStatusProvider, directory: str | None) -> GitStatus | None:
    if not directory:
        return None
    try:
        return provider.status(Path(directory))
    except Exception as e:
        logger.debug("Git status unavailable: %s", e)
        return None


def _quota(cfg: Settings, credentials: CredentialProvider) -> QuotaReport | None:
    try:
        return QuotaClient(credentials, timeout=cfg.quota_timeout).fetch()
    except Exception as e:
        logger.debug("Quota unavailable: %s", e)
        return None


def build_status_line(
    payload: StatusInput,
    cfg: Settings,
    *,
    git: GitStatusProvider | None = None,
    credentials: CredentialProvider | None = None,
    fetch_quota: bool = True,
    color: bool = True,
    now: datetime | None = None,
) -> str:
    """Compute every segment and render the line. Never raises."""
    now = now or datetime.now(timezone.utc)
    display = load_display_config(cfg.display_config_path)
    limits = resolve_limits(detect_plan(cfg))
    usage = compute_usage(cfg.projects_dir, limits, now, cfg.usage_config())

    current_dir = payload.current_dir
    data = StatusLineData(
        directory=Path(current_dir).name if current_dir else None,
        model=payload.model_name,
        usage=usage,
        now=now,
    )
    if payload.cost is not None:
        data.duration_ms = payload.cost.total_duration_ms
        data.lines_added = payload.cost.total_lines_added
        data.lines_removed = payload.cost.total_lines_removed

    if display.show_git:
        data.git = _git_status(git or SubprocessGitStatusProvider(), current_dir)
    if display.show_ctx:
        data.context_pct = context_fill(payload.transcript_path, cfg.context_limit)
    if fetch_quota and cfg.fetch_quota and (display.show_5h or display.show_7d):
        data.quota = _quota(cfg, credentials or default_credentials(cfg.claude_dir))

    renderer = StatusLineRenderer(cfg.display_mode, cfg.info_mode, display)
    try:
        return renderer.render(data, color=color)
    except Exception as e:
        logger.warning("Rendering failed: %s", e)
        return f"{usage.tokens_display} · {usage.messages_display} · {usage.reset_countdown}"


def run_line(cfg: Settings, *, plain: bool = False, no_quota: bool = False) -> None:
    payload = parse_input(sys.stdin.read() if not sys.stdin.isatty() else "")
    line = build_status_line(payload, cfg, fetch_quota=not no_quota, color=not plain)
    sys.stdout.write(line + "\n")


# ── Report ───────────────────────────────────────────────────────────────────


def run_report(cfg: Settings, console: Console | None = None, now: datetime | None = None) -> None:
    """Print the session blocks of the intake window and the active block."""
    console = console or Console()
    now = now or datetime.now(timezone.utc)
    config = cfg.usage_config()
    plan = detect_plan(cfg)
    limits = resolve_limits(plan)

    samples = scan_usage(cfg.projects_dir, default_cutoff(now, config), config)
    blocks = mark_active(build_blocks(samples, config.window), now)
    active = select_active_block(blocks, now)

    table = Table(title=f"Session blocks (last {config.cutoff_hours}h)")
    table.add_column("Start (UTC)")
    table.add_column("End (UTC)")
    table.add_column("Tokens", justify="right")
    table.add_column("Messages", justify="right")
    table.add_column("Active", justify="center")
    for block in blocks:
        table.add_row(
            block.start_time.strftime("%Y-%m-%d %H:%M"),
            block.end_time.strftime("%Y-%m-%d %H:%M"),
            f"{block.total_tokens:,}",
            str(block.message_count),
            "●" if block.is_active else "",
        )
    console.print(table)

    snapshot = format_usage(active, limits, now, config)
    console.print(
        Panel(
            f"Tokens: {snapshot.tokens_display} ({snapshot.token_pct}%)\n"
            f"Messages: {snapshot.messages_display} ({snapshot.message_pct}%)\n"
            f"Resets in: {snapshot.reset_countdown}",
            title=f"Plan: {plan}",
            style="bold blue",
        )
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Claude Code usage status line")
    parser.add_argument("--plain", action="store_true", help="Disable ANSI colours")
    parser.add_argument("--no-quota", action="store_true", help="Skip the remote quota request")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("line", help="Print the status line (default; reads JSON on stdin)")
    sub.add_parser("report", help=f"Show session blocks for the last {settings.cutoff_hours} hours")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.WARNING),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command == "report":
        run_report(settings)
    else:
        run_line(settings, plain=args.plain, no_quota=args.no_quota)


if __name__ == "__main__":
    main()
