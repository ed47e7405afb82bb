"""Status-line rendering with rich.

Builds a single ``rich.text.Text`` from the computed values and renders it
to an ANSI string (Claude Code pipes stdout, so the terminal is forced) or
to plain text.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime, timezone

from rich.console import Console
from rich.text import Text

from barstatus.config import DisplayConfig
from barstatus.providers.git import GitStatus
from barstatus.providers.quota import QuotaReport, QuotaWindow, format_reset_in
from barstatus.usage.models import UsageSnapshot

GRAY = "bright_black"

COLOR_SCHEMES: dict[str, dict[str, str]] = {
    "colors": {
        "directory": "color(51)",
        "model": "color(105)",
        "tokens": "color(141)",
        "messages": "color(147)",
        "time": "color(220)",
        "git_clean": "color(154)",
        "git_dirty": "color(222)",
    },
    "minimal": {
        "directory": "color(250)",
        "model": "color(248)",
        "tokens": "color(248)",
        "messages": "color(248)",
        "time": "color(248)",
        "git_clean": "color(248)",
        "git_dirty": "color(248)",
    },
    "background": {
        "directory": "white on blue",
        "model": "white on magenta",
        "tokens": "black on cyan",
        "messages": "black on green",
        "time": "black on yellow",
        "git_clean": "white on green",
        "git_dirty": "white on yellow",
    },
}

EMOJIS = {
    "directory": "📁",
    "git": "🔀",
    "model": "🦾",
    "tokens": "📓",
    "messages": "✏️",
    "time": "⏱️",
}

BAR_CHARS = {
    "blocks": ("█", "░"),
    "tqdm": ("━", "─"),
}


def color_for_percentage(pct: int) -> str:
    if pct >= 90:
        return "bold red"
    if pct >= 75:
        return "red"
    if pct >= 50:
        return "yellow"
    return "green"


def progress_bar(pct: int, width: int = 10, bar_style: str = "blocks") -> Text:
    """``[████░░░░]`` coloured by pct; empty Text for ``percent_only``."""
    if bar_style not in BAR_CHARS:
        return Text()
    full, empty = BAR_CHARS[bar_style]
    filled = max(0, min(width, int(pct / 100 * width + 0.5)))
    bar = Text("[", style=GRAY)
    bar.append(full * filled, style=color_for_percentage(pct))
    bar.append(empty * (width - filled), style=GRAY)
    bar.append("]", style=GRAY)
    return bar


def format_duration(duration_ms: int) -> str | None:
    if duration_ms <= 0:
        return None
    total_seconds = duration_ms // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    return f"{hours}h{minutes}m" if hours > 0 else f"{minutes}m"


@dataclass
class StatusLineData:
    """Everything the renderer needs; any field may be missing."""

    directory: str | None = None
    git: GitStatus | None = None
    model: str | None = None
    duration_ms: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    context_pct: int = 0
    usage: UsageSnapshot | None = None
    quota: QuotaReport | None = None
    now: datetime | None = None


class StatusLineRenderer:
    """Assembles segments according to display mode, info mode and toggles."""

    def __init__(
        self,
        display_mode: str = "colors",
        info_mode: str = "none",
        display: DisplayConfig | None = None,
    ) -> None:
        self.display_mode = display_mode if display_mode in COLOR_SCHEMES else "colors"
        self.info_mode = info_mode
        self.display = display or DisplayConfig()
        self._colors = COLOR_SCHEMES[self.display_mode]

    @property
    def _background(self) -> bool:
        return self.display_mode == "background"

    def _labelled(self, text: str, kind: str, style_key: str | None = None) -> Text:
        style = self._colors.get(style_key or kind, "")
        if self.info_mode == "emoji" and kind in EMOJIS:
            text = f"{EMOJIS[kind]} {text}"
        if self._background:
            text = f" {text} "
        return Text(text, style=style)

    def _meter(self, label: str, pct: int, width: int) -> Text:
        seg = Text(f"{label} ", style=GRAY)
        bar = progress_bar(pct, width, self.display.bar_style)
        if bar.plain:
            seg.append_text(bar)
            seg.append(" ")
        seg.append(f"{pct}%", style=color_for_percentage(pct))
        return seg

    def _git(self, git: GitStatus) -> Text:
        return self._labelled(str(git), "git", "git_dirty" if git.dirty else "git_clean")

    def _lines_changed(self, added: int, removed: int) -> Text | None:
        if added <= 0 and removed <= 0:
            return None
        seg = Text()
        if added > 0:
            seg.append(f"+{added}", style="green")
        if removed > 0:
            if seg.plain:
                seg.append(" ")
            seg.append(f"-{removed}", style="red")
        return seg

    def _quota(self, label: str, window: QuotaWindow, now: datetime) -> Text:
        reset = format_reset_in(window.resets_at, now)
        title = f"{label}({reset})" if reset else label
        return self._meter(title, window.percent, 10)

    def segments(self, data: StatusLineData) -> list[Text]:
        now = data.now or datetime.now(timezone.utc)
        parts: list[Text | None] = []

        if data.directory:
            parts.append(self._labelled(data.directory if self._background else f"{data.directory}/", "directory"))
        if self.display.show_git and data.git is not None:
            parts.append(self._git(data.git))
        if data.model:
            parts.append(self._labelled(data.model, "model"))
        if self.display.show_duration:
            duration = format_duration(data.duration_ms)
            if duration:
                parts.append(Text(duration, style=GRAY))
        parts.append(self._lines_changed(data.lines_added, data.lines_removed))
        if self.display.show_ctx and data.context_pct > 0:
            parts.append(self._meter("ctx", data.context_pct, 8))

        if self.display.show_5h and data.usage is not None:
            parts.append(self._meter("tok", data.usage.token_pct, 8))
            parts.append(self._meter("msg", data.usage.message_pct, 8))
            parts.append(self._labelled(data.usage.reset_countdown, "time"))

        if data.quota is not None:
            if self.display.show_5h and data.quota.five_hour is not None:
                parts.append(self._quota("5h", data.quota.five_hour, now))
            if self.display.show_7d and data.quota.seven_day is not None:
                parts.append(self._quota("7d", data.quota.seven_day, now))

        return [p for p in parts if p is not None and p.plain]

    def build(self, data: StatusLineData) -> Text:
        # assemble() keeps the separator colour as a span, not the line's base style
        separator = Text(" ") if self._background else Text.assemble((" · ", GRAY))
        return separator.join(self.segments(data))

    def render(self, data: StatusLineData, color: bool = True) -> str:
        line = self.build(data)
        if not color:
            return line.plain
        buf = io.StringIO()
        console = Console(
            file=buf,
            force_terminal=True,
            color_system="256",
            width=max(80, len(line.plain) + 1),
            soft_wrap=True,
            highlight=False,
        )
        console.print(line, end="")
        return buf.getvalue()
