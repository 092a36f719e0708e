"""
Tests for the automation webhook notifier.

httpx.MockTransport stands in for the Make endpoint.
"""
import json

import httpx
import pytest

from incidents.types import TenantIdentity
from services.webhook_notifier import WebhookNotifier, split_name

URL = "https://hook.example.test/incidents"


def _notifier(handler) -> WebhookNotifier:
    return WebhookNotifier(url=URL, timeout=5, source_tag="IncidenBot Web App",
                           transport=httpx.MockTransport(handler))


class TestSplitName:

    @pytest.mark.parametrize("full,expected", [
        ("James Bond", ("James", "Bond")),
        ("Ana María García López", ("Ana", "María García López")),
        ("Cher", ("Cher", "")),
        ("   ", ("", "")),
    ])
    def test_first_word_is_first_name(self, full, expected):
        assert split_name(full) == expected


class TestNotify:

    @pytest.mark.asyncio
    async def test_posts_flattened_payload(self, analysis):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, text="Accepted")

        ok = await _notifier(handler).notify(
            analysis, "Inquilino: James Bond, ...", TenantIdentity("James Bond", "007")
        )

        assert ok is True
        assert seen["method"] == "POST"
        assert seen["url"] == URL
        body = seen["body"]
        assert body["category"] == "Maintenance"
        assert body["urgency_level"] == 4
        assert body["original_message"] == "Inquilino: James Bond, ..."
        assert (body["first_name"], body["last_name"]) == ("James", "Bond")
        assert body["tenant_name"] == "James Bond"
        assert body["room"] == "007"
        assert body["source"] == "IncidenBot Web App"
        assert body["timestamp"].endswith("Z")

    @pytest.mark.asyncio
    async def test_non_2xx_returns_false(self, analysis):
        notifier = _notifier(lambda request: httpx.Response(500))

        assert await notifier.notify(analysis, "msg", TenantIdentity("Ana", "1")) is False

    @pytest.mark.asyncio
    async def test_transport_error_returns_false(self, analysis):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert await _notifier(handler).notify(analysis, "msg", TenantIdentity("Ana", "1")) is False

    @pytest.mark.asyncio
    async def test_unconfigured_skips(self, analysis):
        notifier = WebhookNotifier(url="")

        assert notifier.configured is False
        assert await notifier.notify(analysis, "msg", TenantIdentity("Ana", "1")) is False

    @pytest.mark.asyncio
    async def test_malformed_url_returns_false(self, analysis):
        notifier = WebhookNotifier(url="http://exa mple.com:notaport/")

        assert await notifier.notify(analysis, "msg", TenantIdentity("Ana", "1")) is False
