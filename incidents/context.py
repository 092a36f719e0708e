"""
PortalContext — everything the API needs, built once at startup.

Holds the store, the live feed, the lifecycle controller and the session
registry. Routers reach it through request.app.state.portal; nothing else in
the process keeps mutable state.
"""
import logging
from dataclasses import dataclass
from datetime import timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import config
from incidents.feed import LiveIncidentFeed
from incidents.lifecycle import IncidentLifecycle
from incidents.session import SessionRegistry
from incidents.types import TenantIdentity

logger = logging.getLogger(__name__)


@dataclass
class PortalContext:
    store: object
    feed: LiveIncidentFeed
    lifecycle: IncidentLifecycle
    sessions: SessionRegistry
    classifier: object
    notifier: object
    staff_password: str

    def start(self) -> None:
        self.feed.start()

    async def stop(self) -> None:
        self.sessions.end_all()
        self.feed.stop()
        await self.lifecycle.notifications.drain()


def local_timezone(name: Optional[str] = None):
    name = name or config.LOCAL_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown LOCAL_TIMEZONE '%s' — using UTC.", name)
        return timezone.utc


def build_portal_context(
    store=None,
    classifier=None,
    notifier=None,
    staff_password: Optional[str] = None,
    tz=None,
) -> PortalContext:
    """Wire the default services from config; any of them can be passed in instead."""
    if store is None:
        from services.incident_store import build_incident_store  # noqa: PLC0415
        store = build_incident_store()
    if classifier is None:
        from services.classifier import IncidentClassifier  # noqa: PLC0415
        classifier = IncidentClassifier()
    if notifier is None:
        from services.webhook_notifier import WebhookNotifier  # noqa: PLC0415
        notifier = WebhookNotifier()

    return PortalContext(
        store=store,
        feed=LiveIncidentFeed(store, tz=tz or local_timezone()),
        lifecycle=IncidentLifecycle(classifier, store, notifier),
        sessions=SessionRegistry(
            default_language=config.DEFAULT_LANGUAGE,
            test_mode_default=config.TEST_MODE_DEFAULT,
            demo=TenantIdentity(name=config.DEMO_TENANT_NAME, room=config.DEMO_TENANT_ROOM),
            ttl_seconds=config.PORTAL_SESSION_TTL_SECONDS,
        ),
        classifier=classifier,
        notifier=notifier,
        staff_password=config.STAFF_PASSWORD if staff_password is None else staff_password,
    )
