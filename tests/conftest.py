"""Shared fixtures: sample analyses/records, fake services and a fixed clock."""
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

# Keep config away from real services before anything imports it
os.environ.setdefault("FIRESTORE_ENABLED", "false")
os.environ.setdefault("WEBHOOK_URL", "")

from incidents.types import IncidentAnalysis, IncidentRecord, TenantIdentity  # noqa: E402
from incidents.session import SessionRegistry  # noqa: E402
from services.incident_store import InMemoryIncidentStore  # noqa: E402

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_analysis(**overrides) -> IncidentAnalysis:
    data = {
        "category": "Maintenance",
        "urgency_level": 4,
        "sentiment": "Neutral",
        "action_summary": "AC leak",
        "suggested_reply": "...",
    }
    data.update(overrides)
    return IncidentAnalysis.model_validate(data)


def make_record(
    incident_id: str = "inc-1",
    created_at: datetime = NOW,
    resolved_after: timedelta | None = None,
    status: str = "open",
    **overrides,
) -> IncidentRecord:
    data = {
        "id": incident_id,
        "category": "Maintenance",
        "urgency_level": 3,
        "sentiment": "Neutral",
        "action_summary": "Fix it",
        "suggested_reply": "On it",
        "tenantName": "Ana García",
        "room": "12",
        "description": "Something broke",
        "status": status,
        "source": "tenant_portal",
        "coliving": "Bali Coliving",
        "createdAt": created_at,
        "updatedAt": created_at,
        "resolvedAt": created_at + resolved_after if resolved_after is not None else None,
    }
    data.update(overrides)
    return IncidentRecord.model_validate(data)


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def analysis() -> IncidentAnalysis:
    return make_analysis()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def classifier(analysis):
    fake = AsyncMock()
    fake.analyze = AsyncMock(return_value=analysis)
    fake.configured = True
    return fake


@pytest.fixture
def notifier():
    fake = AsyncMock()
    fake.notify = AsyncMock(return_value=True)
    fake.configured = True
    return fake


@pytest.fixture
def store() -> InMemoryIncidentStore:
    return InMemoryIncidentStore()


@pytest.fixture
def sessions() -> SessionRegistry:
    return SessionRegistry(
        default_language="es",
        test_mode_default=True,
        demo=TenantIdentity(name="James Bond", room="007"),
    )
