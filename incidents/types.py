"""
Incident data model.

IncidentAnalysis is what the classifier returns; IncidentRecord is what the
store holds. Python attributes are snake_case; the store document keeps the
camelCase keys the dashboard has always read (tenantName, createdAt, ...).

Firestore document (incidents/{auto_id})
----------------------------------------
    category        "Maintenance" | "Cleaning" | "Internet" | "Administration" | "Emergency"
    urgency_level   int 1..5
    sentiment       "Positive" | "Neutral" | "Angry"
    action_summary  str
    suggested_reply str
    tenantName      str
    room            str
    description     str   (older documents: original_message)
    status          "open" | "in_progress" | "resolved" | "canceled"
    source          str   ("tenant_portal", "whatsapp", ...)
    coliving        str
    createdAt       Timestamp
    updatedAt       Timestamp
    resolvedAt      Timestamp | null
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class IncidentCategory(str, Enum):
    MAINTENANCE = "Maintenance"
    CLEANING = "Cleaning"
    INTERNET = "Internet"
    ADMINISTRATION = "Administration"
    EMERGENCY = "Emergency"

    @classmethod
    def _missing_(cls, value):
        # Documents written by the first version of the portal use Spanish values
        return _LEGACY_CATEGORIES.get(value)


_LEGACY_CATEGORIES = {
    "Mantenimiento": IncidentCategory.MAINTENANCE,
    "Limpieza": IncidentCategory.CLEANING,
    "Administración": IncidentCategory.ADMINISTRATION,
    "Administracion": IncidentCategory.ADMINISTRATION,
    "Emergencia": IncidentCategory.EMERGENCY,
}


class Sentiment(str, Enum):
    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    ANGRY = "Angry"

    @classmethod
    def _missing_(cls, value):
        return _LEGACY_SENTIMENTS.get(value)


_LEGACY_SENTIMENTS = {
    "Positivo": Sentiment.POSITIVE,
    "Neutro": Sentiment.NEUTRAL,
    "Enfadado": Sentiment.ANGRY,
}


class IncidentStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CANCELED = "canceled"


class IncidentAnalysis(BaseModel):
    """Structured classification of a tenant message. Immutable once produced."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    category: IncidentCategory
    urgency_level: int = Field(ge=1, le=5)
    sentiment: Sentiment
    action_summary: str
    suggested_reply: str

    def analysis_fields(self) -> dict:
        """The five classification fields as plain JSON-friendly values."""
        return {
            "category": self.category.value,
            "urgency_level": self.urgency_level,
            "sentiment": self.sentiment.value,
            "action_summary": self.action_summary,
            "suggested_reply": self.suggested_reply,
        }


class IncidentRecord(IncidentAnalysis):
    id: Optional[str] = None
    tenant_name: str = Field(alias="tenantName")
    room: str
    description: str = Field(
        alias="description",
        validation_alias=AliasChoices("description", "original_message"),
    )
    status: IncidentStatus = IncidentStatus.OPEN
    source: str
    coliving: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    resolved_at: Optional[datetime] = Field(default=None, alias="resolvedAt")

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "IncidentRecord":
        """Build a record from a raw store document; missing timestamps default to now."""
        now = datetime.now(timezone.utc)
        payload = {**data, "id": doc_id}
        payload.setdefault("createdAt", now)
        payload.setdefault("updatedAt", payload["createdAt"])
        return cls.model_validate(payload)

    def to_document(self) -> dict:
        """Store document (camelCase keys, enums as strings, no id)."""
        return {
            **self.analysis_fields(),
            "tenantName": self.tenant_name,
            "room": self.room,
            "description": self.description,
            "status": self.status.value,
            "source": self.source,
            "coliving": self.coliving,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "resolvedAt": self.resolved_at,
        }

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


@dataclass(frozen=True)
class TenantIdentity:
    name: str
    room: str


def status_update_fields(status: IncidentStatus, now: datetime) -> dict:
    """
    Partial-update payload for a status change.

    resolvedAt is stamped on entering `resolved` and cleared on any other
    status, so a reopened incident never carries a stale resolution time.
    """
    return {
        "status": status.value,
        "updatedAt": now,
        "resolvedAt": now if status == IncidentStatus.RESOLVED else None,
    }


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


_TEXT_FIELDS = ("action_summary", "suggested_reply", "tenantName", "room", "source", "coliving")


def repair_document(data: dict) -> dict:
    """
    Best-effort fix of a document another channel wrote loosely: unknown
    category → Administration, unknown sentiment → Neutral, unknown status →
    open, urgency clamped to 1..5 (3 when unreadable), missing or non-string
    text fields → strings.
    """
    fixed = dict(data)
    try:
        IncidentCategory(fixed.get("category"))
    except (TypeError, ValueError):
        fixed["category"] = IncidentCategory.ADMINISTRATION.value
    try:
        Sentiment(fixed.get("sentiment"))
    except (TypeError, ValueError):
        fixed["sentiment"] = Sentiment.NEUTRAL.value
    try:
        IncidentStatus(fixed.get("status", IncidentStatus.OPEN.value))
    except (TypeError, ValueError):
        fixed["status"] = IncidentStatus.OPEN.value
    try:
        level = int(fixed.get("urgency_level"))
    except (TypeError, ValueError):
        level = 3
    fixed["urgency_level"] = min(max(level, 1), 5)
    for key in _TEXT_FIELDS:
        value = fixed.get(key)
        fixed[key] = "" if value is None else str(value)
    if fixed.get("description") is None and fixed.get("original_message") is None:
        fixed["description"] = ""
    return fixed
