"""
Staff API router — /admin/api

Exposes:
  POST   /admin/api/login                 → check the staff password (switches a portal session to staff view)
  GET    /admin/api/incidents             → live incident list (filters: status, category, limit)
  GET    /admin/api/incidents/{id}        → one incident
  PATCH  /admin/api/incidents/{id}        → change status
  GET    /admin/api/stats                 → dashboard analytics (memoized per snapshot)

  WS     /admin/ws                        → live snapshots (see ws/handler.py)

Auth: shared STAFF_PASSWORD from .env.
  Authorization: Bearer PASSWORD  OR  ?key=PASSWORD
"""
import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, WebSocket
from pydantic import BaseModel

from incidents.context import PortalContext
from incidents.errors import IncidentNotFoundError, PersistenceError
from incidents.translations import (
    CATEGORY_ICONS,
    CATEGORY_LABELS,
    CHANNEL_LABELS,
    SENTIMENT_ICONS,
    SENTIMENT_LABELS,
    STATUS_LABELS,
    channel_of,
    message,
    normalize_language,
    urgency_band,
    urgency_label,
)
from incidents.types import IncidentCategory, IncidentRecord, IncidentStatus

router = APIRouter(prefix="/admin", tags=["staff"])
logger = logging.getLogger(__name__)


def _portal(request: Request) -> PortalContext:
    return request.app.state.portal


# ── Auth dependency ───────────────────────────────────────────────────────────

def staff_key(authorization: Optional[str], key: Optional[str]) -> str:
    """Password offered by a client: Bearer header first, then ?key=."""
    if authorization and authorization.startswith("Bearer "):
        provided = authorization[7:].strip()
        if provided:
            return provided
    return key or ""


def is_staff(provided: str, password: str) -> bool:
    """An empty STAFF_PASSWORD disables staff access rather than opening it."""
    return bool(password) and secrets.compare_digest(provided.encode(), password.encode())


async def require_staff(
    request: Request,
    authorization: Optional[str] = Header(None),
    key: Optional[str] = Query(None),
    lang: Optional[str] = Query(None),
) -> None:
    if not is_staff(staff_key(authorization, key), _portal(request).staff_password):
        raise HTTPException(status_code=401, detail=message("auth_required", normalize_language(lang)))


# ── Login ─────────────────────────────────────────────────────────────────────

class StaffLogin(BaseModel):
    password: str
    session_id: Optional[str] = None


@router.post("/api/login")
async def api_login(body: StaffLogin, request: Request):
    portal = _portal(request)
    session = portal.sessions.get(body.session_id) if body.session_id else None
    lang = session.language if session else "es"
    if not is_staff(body.password, portal.staff_password):
        raise HTTPException(status_code=401, detail=message("wrong_password", lang))
    if session is not None:
        session.enter_staff_view()
    return {"authenticated": True, "session": session.to_dict() if session else None}


# ── Incidents ─────────────────────────────────────────────────────────────────

def _serialize_incident(incident: IncidentRecord, lang: str) -> dict:
    channel = channel_of(incident.source)
    return {
        **incident.to_api(),
        "status_label": STATUS_LABELS[lang][incident.status],
        "urgency_band": urgency_band(incident.urgency_level),
        "urgency_label": urgency_label(incident.urgency_level, lang),
        "category_label": CATEGORY_LABELS[lang][incident.category],
        "category_icon": CATEGORY_ICONS[incident.category],
        "sentiment_label": SENTIMENT_LABELS[lang][incident.sentiment],
        "sentiment_icon": SENTIMENT_ICONS[incident.sentiment],
        "channel": channel,
        "channel_label": CHANNEL_LABELS[lang][channel],
    }


def serialize_incidents(incidents: list[IncidentRecord], lang: str) -> list[dict]:
    return [_serialize_incident(i, lang) for i in incidents]


@router.get("/api/incidents")
async def api_list_incidents(
    request: Request,
    status: Optional[IncidentStatus] = None,
    category: Optional[IncidentCategory] = None,
    lang: Optional[str] = None,
    limit: int = Query(200, ge=1, le=1000),
    _auth=Depends(require_staff),
):
    lang = normalize_language(lang)
    incidents = _portal(request).feed.incidents()
    if status:
        incidents = [i for i in incidents if i.status == status]
    if category:
        incidents = [i for i in incidents if i.category == category]
    return serialize_incidents(incidents[:limit], lang)


@router.get("/api/incidents/{incident_id}")
async def api_get_incident(
    incident_id: str,
    request: Request,
    lang: Optional[str] = None,
    _auth=Depends(require_staff),
):
    lang = normalize_language(lang)
    incident = _portal(request).feed.get(incident_id)
    if incident is None:
        raise HTTPException(status_code=404, detail=message("incident_not_found", lang))
    return _serialize_incident(incident, lang)


class PatchIncident(BaseModel):
    status: IncidentStatus


@router.patch("/api/incidents/{incident_id}")
async def api_change_status(
    incident_id: str,
    body: PatchIncident,
    request: Request,
    lang: Optional[str] = None,
    _auth=Depends(require_staff),
):
    """
    Persist the new status. The response only acknowledges the write; the
    incident itself changes for every client with the next live snapshot.
    """
    lang = normalize_language(lang)
    try:
        updated_at = await _portal(request).lifecycle.change_status(incident_id, body.status)
    except IncidentNotFoundError:
        raise HTTPException(status_code=404, detail=message("incident_not_found", lang))
    except PersistenceError:
        raise HTTPException(status_code=502, detail=message("status_update_failed", lang))
    return {
        "id": incident_id,
        "status": body.status.value,
        "updatedAt": updated_at.isoformat(),
        "resolvedAt": updated_at.isoformat() if body.status == IncidentStatus.RESOLVED else None,
    }


# ── Analytics ─────────────────────────────────────────────────────────────────

@router.get("/api/stats")
async def api_stats(request: Request, lang: Optional[str] = None, _auth=Depends(require_staff)):
    """Dashboard analytics; null when there are no incidents yet."""
    stats = _portal(request).feed.stats(lang=normalize_language(lang))
    return stats.model_dump(mode="json") if stats else None


# ── Live feed ─────────────────────────────────────────────────────────────────

@router.websocket("/ws")
async def ws_route(websocket: WebSocket):
    from ws.handler import live_feed_endpoint  # noqa: PLC0415
    lang = normalize_language(websocket.query_params.get("lang"))
    await live_feed_endpoint(websocket, lang)
