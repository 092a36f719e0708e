"""
Automation webhook (Make) — mirrors every classified incident.

The payload is flattened so the Make scenario can map fields directly:
analysis fields + original_message, tenant_name, first_name, last_name,
room, timestamp and a fixed source tag.

notify() never raises: the caller fires it and moves on, so every failure is
reported through the return value and the log.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

import config
from incidents.types import IncidentAnalysis, TenantIdentity

logger = logging.getLogger(__name__)


def split_name(full_name: str) -> tuple[str, str]:
    """First word is the first name, the rest is the last name."""
    parts = full_name.strip().split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def _iso_now() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class WebhookNotifier:
    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        source_tag: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = config.WEBHOOK_URL if url is None else url
        self.timeout = timeout or config.WEBHOOK_TIMEOUT_SECONDS
        self.source_tag = source_tag or config.WEBHOOK_SOURCE_TAG
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def build_payload(
        self,
        analysis: IncidentAnalysis,
        original_message: str,
        tenant: TenantIdentity,
    ) -> dict:
        first_name, last_name = split_name(tenant.name)
        return {
            **analysis.analysis_fields(),
            "original_message": original_message,
            "tenant_name": tenant.name,
            "first_name": first_name,
            "last_name": last_name,
            "room": tenant.room,
            "timestamp": _iso_now(),
            "source": self.source_tag,
        }

    async def notify(
        self,
        analysis: IncidentAnalysis,
        original_message: str,
        tenant: TenantIdentity,
    ) -> bool:
        """POST the flattened payload. True only on a 2xx response."""
        if not self.configured:
            logger.info("WEBHOOK_URL not set — skipping automation webhook.")
            return False

        payload = self.build_payload(analysis, original_message, tenant)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Error sending to webhook: %s", exc)
            return False

        if not response.is_success:
            logger.error(
                "Webhook error: %s %s", response.status_code, response.reason_phrase
            )
            return False
        return True
