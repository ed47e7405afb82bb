"""Git branch/status lookup for the status line.

The usage engine never shells out; the CLI asks a GitStatusProvider.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SEC = 2


@dataclass(frozen=True)
class GitStatus:
    branch: str
    untracked: bool = False
    staged: bool = False
    modified: bool = False
    ahead: int = 0
    behind: int = 0

    @property
    def indicators(self) -> str:
        out = ""
        if self.untracked:
            out += "?"
        if self.staged:
            out += "+"
        if self.modified:
            out += "!"
        if self.ahead > 0:
            out += f"↑{self.ahead}"
        if self.behind > 0:
            out += f"↓{self.behind}"
        return out

    @property
    def dirty(self) -> bool:
        return bool(self.indicators)

    def __str__(self) -> str:
        return f"{self.branch}{self.indicators}"


class GitStatusProvider(Protocol):
    def status(self, directory: Path) -> GitStatus | None: ...


def parse_porcelain(output: str) -> tuple[bool, bool, bool]:
    """Return (untracked, staged, modified) flags from ``git status --porcelain``."""
    untracked = re.search(r"^\?\?", output, re.MULTILINE) is not None
    staged = re.search(r"^[AM]", output, re.MULTILINE) is not None
    modified = re.search(r"^[MD]", output, re.MULTILINE) is not None
    return untracked, staged, modified


def parse_ahead_behind(output: str) -> tuple[int, int]:
    """Parse ``git rev-list --left-right --count origin/b...b`` into (ahead, behind)."""
    m = re.match(r"^(\d+)\s+(\d+)$", output.strip())
    if not m:
        return 0, 0
    behind, ahead = int(m.group(1)), int(m.group(2))
    return ahead, behind


class SubprocessGitStatusProvider:
    """Runs git (no shell) in the workspace directory."""

    def __init__(self, git_cmd: str = "git", timeout_sec: int = GIT_TIMEOUT_SEC) -> None:
        self._git = git_cmd
        self._timeout = timeout_sec

    def _run(self, args: list[str], cwd: Path) -> str:
        try:
            result = subprocess.run(
                [self._git, *args],
                cwd=str(cwd),
                capture_output=True,
                text=True,
                timeout=self._timeout,
                encoding="utf-8",
                errors="replace",
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.debug("git %s failed in %s: %s", " ".join(args), cwd, e)
            return ""
        if result.returncode != 0:
            return ""
        return result.stdout.strip()

    def status(self, directory: Path) -> GitStatus | None:
        if not (directory / ".git").exists():
            return None

        branch = self._run(["rev-parse", "--abbrev-ref", "HEAD"], directory)
        if not branch:
            return None

        untracked, staged, modified = parse_porcelain(self._run(["status", "--porcelain"], directory))
        ahead, behind = parse_ahead_behind(
            self._run(["rev-list", "--left-right", "--count", f"origin/{branch}...{branch}"], directory)
        )
        return GitStatus(
            branch=branch,
            untracked=untracked,
            staged=staged,
            modified=modified,
            ahead=ahead,
            behind=behind,
        )
