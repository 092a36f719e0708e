"""
Tenant portal API — /api

Exposes:
  POST   /api/sessions                 → open a portal session
  GET    /api/sessions/{id}            → session state (poll after submit)
  PATCH  /api/sessions/{id}            → language, test mode, view (login/tenant)
  DELETE /api/sessions/{id}            → end session (cancels auto-reset)
  POST   /api/sessions/{id}/submit     → classify + notify + save an incident
  GET    /api/examples                 → canned example messages

The UI disables the submit button while a submission is in flight or a field
is blank; the controller re-checks both and treats such calls as no-ops.
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from incidents.context import PortalContext
from incidents.session import PortalSession, ViewMode
from incidents.translations import EXAMPLES, message, normalize_language

router = APIRouter(prefix="/api", tags=["portal"])
logger = logging.getLogger(__name__)


def _portal(request: Request) -> PortalContext:
    return request.app.state.portal


def _session_or_404(request: Request, session_id: str) -> PortalSession:
    session = _portal(request).sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=message("session_not_found"))
    return session


# ── Sessions ──────────────────────────────────────────────────────────────────

class CreateSession(BaseModel):
    language: Optional[str] = None
    test_mode: Optional[bool] = None


class PatchSession(BaseModel):
    language: Optional[str] = None
    test_mode: Optional[bool] = None
    view: Optional[Literal["login", "tenant"]] = None


@router.post("/sessions", status_code=201)
async def api_create_session(request: Request, body: Optional[CreateSession] = None):
    body = body or CreateSession()
    session = _portal(request).sessions.create(language=body.language, test_mode=body.test_mode)
    return session.to_dict()


@router.get("/sessions/{session_id}")
async def api_get_session(session_id: str, request: Request):
    return _session_or_404(request, session_id).to_dict()


@router.patch("/sessions/{session_id}")
async def api_patch_session(session_id: str, body: PatchSession, request: Request):
    session = _session_or_404(request, session_id)
    if body.language is not None:
        session.language = normalize_language(body.language, session.language)
    if body.view == ViewMode.TENANT.value:
        session.enter_tenant_view()
    elif body.view == ViewMode.LOGIN.value:
        session.go_to_login()
    if body.test_mode is not None:
        session.set_test_mode(body.test_mode)
    return session.to_dict()


@router.delete("/sessions/{session_id}")
async def api_end_session(session_id: str, request: Request):
    if not _portal(request).sessions.end(session_id):
        raise HTTPException(status_code=404, detail=message("session_not_found"))
    return {"ended": session_id}


# ── Submission ────────────────────────────────────────────────────────────────

class SubmitIncident(BaseModel):
    tenant_name: Optional[str] = None
    room: Optional[str] = None
    description: str = ""


@router.post("/sessions/{session_id}/submit")
async def api_submit_incident(session_id: str, body: SubmitIncident, request: Request):
    """
    Runs the whole submission and returns the session afterwards:
    state "success" with last_analysis, "error" with a message, or unchanged
    (idle) when an input was blank.
    """
    session = _session_or_404(request, session_id)
    if session.view != ViewMode.TENANT:
        session.enter_tenant_view()
    await _portal(request).lifecycle.submit(
        session,
        tenant_name=body.tenant_name,
        room=body.room,
        description=body.description,
    )
    return session.to_dict()


# ── Examples ──────────────────────────────────────────────────────────────────

@router.get("/examples")
async def api_examples(lang: Optional[str] = Query(None)):
    return EXAMPLES[normalize_language(lang)]
