"""httpx client for the Anthropic OAuth usage endpoint.

The endpoint is undocumented (beta header ``oauth-2025-04-20``) and may
change without notice, so every failure degrades to ``None``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx
from pydantic import BaseModel, ValidationError

from barstatus.providers.credentials import CredentialProvider

logger = logging.getLogger(__name__)

USAGE_URL = "https://api.anthropic.com/api/oauth/usage"
BETA_HEADER = "oauth-2025-04-20"
DEFAULT_TIMEOUT = 2.0


class QuotaWindow(BaseModel):
    utilization: float | None = 0.0
    resets_at: datetime | None = None

    @property
    def percent(self) -> int:
        value = self.utilization or 0.0
        return int(value + 0.5) if value >= 0 else 0


class QuotaReport(BaseModel):
    model_config = {"extra": "ignore"}

    five_hour: QuotaWindow | None = None
    seven_day: QuotaWindow | None = None


class QuotaClient:
    """Synchronous client; one GET per status-line refresh."""

    def __init__(
        self,
        credentials: CredentialProvider,
        url: str = USAGE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._credentials = credentials
        self._url = url
        self._timeout = timeout
        self._transport = transport

    def fetch(self) -> QuotaReport | None:
        token = self._credentials.access_token()
        if not token:
            return None

        headers = {
            "Authorization": f"Bearer {token}",
            "anthropic-beta": BETA_HEADER,
        }
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                resp = client.get(self._url, headers=headers)
        except httpx.TimeoutException:
            logger.debug("Quota request timed out")
            return None
        except httpx.HTTPError as e:
            logger.debug("Quota request failed: %s", e)
            return None

        if resp.status_code != 200:
            logger.debug("Quota endpoint returned %d", resp.status_code)
            return None
        try:
            return QuotaReport.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            logger.debug("Unexpected quota payload: %s", e)
            return None


def format_reset_in(resets_at: datetime | None, now: datetime | None = None) -> str | None:
    """Compact time-until-reset: ``6d4h``, ``2h05m`` or ``13m``. None once passed."""
    if resets_at is None:
        return None
    now = now or datetime.now(timezone.utc)
    if resets_at.tzinfo is None:
        resets_at = resets_at.replace(tzinfo=timezone.utc)
    seconds = int((resets_at - now).total_seconds())
    if seconds <= 0:
        return None
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    if days > 0:
        return f"{days}d{hours}h"
    if hours > 0:
        return f"{hours}h{minutes:02d}m"
    return f"{minutes}m"
