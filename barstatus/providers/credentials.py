"""OAuth access-token lookup for the remote quota endpoint."""

from __future__ import annotations

import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

KEYCHAIN_SERVICE = "Claude Code-credentials"


class CredentialProvider(Protocol):
    def access_token(self) -> str | None: ...


def _token_from_payload(raw: str) -> str | None:
    """Extract claudeAiOauth.accessToken from a credentials JSON blob."""
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    oauth = data.get("claudeAiOauth")
    if not isinstance(oauth, dict):
        return None
    token = oauth.get("accessToken")
    return token if isinstance(token, str) and token else None


class KeychainCredentialProvider:
    """Reads the macOS login keychain via ``security``."""

    def __init__(self, service: str = KEYCHAIN_SERVICE, timeout_sec: int = 2) -> None:
        self._service = service
        self._timeout = timeout_sec

    def access_token(self) -> str | None:
        if sys.platform != "darwin":
            return None
        try:
            result = subprocess.run(
                ["security", "find-generic-password", "-s", self._service, "-w"],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.debug("Keychain lookup failed: %s", e)
            return None
        if result.returncode != 0 or not result.stdout.strip():
            return None
        return _token_from_payload(result.stdout.strip())


class FileCredentialProvider:
    """Reads ~/.claude/.credentials.json (Linux and Windows installs)."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def access_token(self) -> str | None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError:
            return None
        return _token_from_payload(raw)


class ChainedCredentialProvider:
    """First provider that yields a token wins."""

    def __init__(self, *providers: CredentialProvider) -> None:
        self._providers = providers

    def access_token(self) -> str | None:
        for provider in self._providers:
            token = provider.access_token()
            if token:
                return token
        return None


def default_credentials(claude_dir: Path) -> CredentialProvider:
    return ChainedCredentialProvider(
        KeychainCredentialProvider(),
        FileCredentialProvider(claude_dir / ".credentials.json"),
    )
