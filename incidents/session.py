"""
Portal sessions: per-client view, language, test mode, form fields and
submission state.

A session is created when a client opens the portal and ended when it leaves;
ending it cancels any pending auto-reset timer.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from incidents.translations import message, normalize_language
from incidents.types import IncidentAnalysis, TenantIdentity

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


class ViewMode(str, Enum):
    LOGIN = "login"
    TENANT = "tenant"
    STAFF = "staff"


@dataclass
class PendingSubmission:
    """Classification kept after a failed insert, keyed by the exact inputs."""
    key: tuple[str, str, str]
    analysis: IncidentAnalysis


@dataclass
class PortalSession:
    demo: TenantIdentity
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    language: str = "es"
    test_mode: bool = True
    view: ViewMode = ViewMode.LOGIN
    tenant_name: str = ""
    room: str = ""
    description: str = ""
    state: SubmissionState = SubmissionState.IDLE
    error: Optional[str] = None
    last_analysis: Optional[IncidentAnalysis] = None
    last_incident_id: Optional[str] = None
    pending: Optional[PendingSubmission] = None
    reset_task: Optional[asyncio.Task] = field(default=None, repr=False)
    created_at: datetime = field(default_factory=_utcnow)
    last_seen: datetime = field(default_factory=_utcnow)

    # ── View transitions ──────────────────────────────────────────────────────

    def enter_tenant_view(self) -> None:
        self.view = ViewMode.TENANT
        self._apply_test_mode()

    def enter_staff_view(self) -> None:
        self.view = ViewMode.STAFF

    def go_to_login(self) -> None:
        self.view = ViewMode.LOGIN

    def set_test_mode(self, enabled: bool) -> None:
        self.test_mode = enabled
        if self.view == ViewMode.TENANT:
            self._apply_test_mode()

    def _apply_test_mode(self) -> None:
        if self.test_mode:
            self.tenant_name = self.demo.name
            self.room = self.demo.room
        else:
            self.tenant_name = ""
            self.room = ""

    # ── Submission ────────────────────────────────────────────────────────────

    @property
    def can_submit(self) -> bool:
        return (
            self.state != SubmissionState.SUBMITTING
            and bool(self.tenant_name.strip())
            and bool(self.room.strip())
            and bool(self.description.strip())
        )

    def cancel_reset(self) -> None:
        if self.reset_task is not None and not self.reset_task.done():
            self.reset_task.cancel()
        self.reset_task = None

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "language": self.language,
            "test_mode": self.test_mode,
            "view": self.view.value,
            "tenant_name": self.tenant_name,
            "room": self.room,
            "description": self.description,
            "state": self.state.value,
            "error": self.error,
            "notice": message("submission_success", self.language) if self.state == SubmissionState.SUCCESS else None,
            "can_submit": self.can_submit,
            "last_incident_id": self.last_incident_id,
            "last_analysis": self.last_analysis.analysis_fields() if self.last_analysis else None,
            "retry_pending": self.pending is not None,
        }


class SessionRegistry:
    """
    Open portal sessions by id.

    Sessions not seen for ttl_seconds are evicted whenever a new one is
    created (or on evict_idle()); None keeps them until ended explicitly.
    """

    def __init__(
        self,
        default_language: str,
        test_mode_default: bool,
        demo: TenantIdentity,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._default_language = default_language
        self._test_mode_default = test_mode_default
        self._demo = demo
        self._ttl = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, PortalSession] = {}

    def create(self, language: Optional[str] = None, test_mode: Optional[bool] = None) -> PortalSession:
        self.evict_idle()
        now = self._clock()
        session = PortalSession(
            demo=self._demo,
            language=normalize_language(language, self._default_language),
            test_mode=self._test_mode_default if test_mode is None else test_mode,
            created_at=now,
            last_seen=now,
        )
        self._sessions[session.session_id] = session
        logger.info("Portal session %s opened (lang=%s).", session.session_id, session.language)
        return session

    def get(self, session_id: str) -> Optional[PortalSession]:
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_seen = self._clock()
        return session

    def end(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.cancel_reset()
        logger.info("Portal session %s closed.", session_id)
        return True

    def evict_idle(self) -> int:
        if not self._ttl:
            return 0
        now = self._clock()
        idle = [
            session_id
            for session_id, session in self._sessions.items()
            if (now - session.last_seen).total_seconds() > self._ttl
            and session.state != SubmissionState.SUBMITTING
        ]
        for session_id in idle:
            self.end(session_id)
        if idle:
            logger.info("Evicted %d idle portal session(s).", len(idle))
        return len(idle)

    def end_all(self) -> None:
        for session_id in list(self._sessions):
            self.end(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
