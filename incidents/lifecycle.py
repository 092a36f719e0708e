"""
Incident lifecycle controller.

    submit:        classify → notify (fire-and-forget) → persist → confirm
    change_status: staff partial update of status / updatedAt / resolvedAt

Submission state per session:

    idle → submitting → success ─(SUCCESS_RESET_SECONDS)→ idle + login view
                      ↘ error

The live subscription is the only source of incident data shown to staff;
nothing here mutates a local copy of an incident.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import config
from incidents.errors import ClassificationError, PersistenceError
from incidents.session import PendingSubmission, PortalSession, SubmissionState
from incidents.translations import build_context, message
from incidents.types import (
    IncidentAnalysis,
    IncidentRecord,
    IncidentStatus,
    TenantIdentity,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationDispatcher:
    """
    Fire-and-forget delivery of the automation webhook.

    dispatch() starts a detached task and returns immediately. The task's
    outcome is observed only by _on_done (the log); the submission flow never
    awaits it, so a slow or failing webhook cannot delay or block persistence.
    drain() exists for shutdown and tests.
    """

    def __init__(self, notifier):
        self._notifier = notifier
        self._tasks: set[asyncio.Task] = set()

    def dispatch(self, analysis: IncidentAnalysis, original_message: str, tenant: TenantIdentity) -> None:
        task = asyncio.create_task(
            self._notifier.notify(analysis, original_message, tenant),
            name=f"webhook:{tenant.room}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Webhook task %s cancelled.", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Webhook failed but continuing: %s", exc)
        elif task.result():
            logger.info("Webhook delivered (%s).", task.get_name())
        else:
            logger.warning("Webhook not delivered (%s); incident flow unaffected.", task.get_name())

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class IncidentLifecycle:
    def __init__(
        self,
        classifier,
        store,
        notifier,
        coliving: Optional[str] = None,
        source: Optional[str] = None,
        reset_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._classifier = classifier
        self._store = store
        self.notifications = NotificationDispatcher(notifier)
        self.coliving = coliving or config.COLIVING_NAME
        self.source = source or config.INCIDENT_SOURCE
        self.reset_seconds = config.SUCCESS_RESET_SECONDS if reset_seconds is None else reset_seconds
        self._clock = clock

    # ── Tenant submission ─────────────────────────────────────────────────────

    async def submit(
        self,
        session: PortalSession,
        tenant_name: Optional[str] = None,
        room: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PortalSession:
        """
        Run one submission for the session. Never raises for pipeline
        failures: they leave the session in the `error` state.

        Fields left as None keep the value already in the session form.
        Blank inputs (after trimming) make this a no-op, as does a call while
        another submission of the same session is in flight.
        """
        if session.state == SubmissionState.SUBMITTING:
            logger.info("Session %s: submission already in flight, ignoring.", session.session_id)
            return session

        if tenant_name is not None:
            session.tenant_name = tenant_name
        if room is not None:
            session.room = room
        if description is not None:
            session.description = description

        name = session.tenant_name.strip()
        room_number = session.room.strip()
        text = session.description.strip()
        if not (name and room_number and text):
            return session

        session.cancel_reset()
        session.state = SubmissionState.SUBMITTING
        session.error = None
        try:
            return await self._run_submission(session, name, room_number, text)
        except Exception as exc:
            logger.error("Unexpected error submitting for room %s: %s", room_number, exc, exc_info=True)
            return self._fail(session)
        finally:
            # Cancelled mid-flight: release the in-flight guard
            if session.state == SubmissionState.SUBMITTING:
                session.state = SubmissionState.IDLE

    async def _run_submission(
        self, session: PortalSession, name: str, room_number: str, text: str
    ) -> PortalSession:
        key = (name, room_number, text)

        if session.pending is not None and session.pending.key == key:
            # Insert failed last time: retry persistence only
            analysis = session.pending.analysis
            logger.info("Session %s: reusing classification from failed insert.", session.session_id)
        else:
            session.pending = None
            context = build_context(name, room_number, text, session.language)
            try:
                analysis = await self._classifier.analyze(context, session.language)
            except ClassificationError as exc:
                logger.error("Classification failed for room %s: %s", room_number, exc)
                return self._fail(session)

            self.notifications.dispatch(analysis, context, TenantIdentity(name=name, room=room_number))

        now = self._clock()
        record = IncidentRecord(
            **analysis.analysis_fields(),
            tenant_name=name,
            room=room_number,
            description=text,
            status=IncidentStatus.OPEN,
            source=self.source,
            coliving=self.coliving,
            created_at=now,
            updated_at=now,
        )
        try:
            incident_id = await self._store.insert(record)
        except PersistenceError as exc:
            logger.error("Could not save incident for room %s: %s", room_number, exc)
            session.pending = PendingSubmission(key=key, analysis=analysis)
            return self._fail(session)

        logger.info(
            "Incident %s created (%s, urgency %d, room %s).",
            incident_id, analysis.category.value, analysis.urgency_level, room_number,
        )
        session.pending = None
        session.state = SubmissionState.SUCCESS
        session.last_analysis = analysis
        session.last_incident_id = incident_id
        session.description = ""
        if not session.test_mode:
            session.tenant_name = ""
            session.room = ""
        self._schedule_reset(session)
        return session

    def _fail(self, session: PortalSession) -> PortalSession:
        session.state = SubmissionState.ERROR
        session.error = message("submission_failed", session.language)
        return session

    def _schedule_reset(self, session: PortalSession) -> None:
        session.cancel_reset()
        session.reset_task = asyncio.create_task(self._auto_reset(session, self.reset_seconds))

    async def _auto_reset(self, session: PortalSession, delay: float) -> None:
        await asyncio.sleep(delay)
        session.reset_task = None
        session.state = SubmissionState.IDLE
        session.description = ""
        session.go_to_login()
        logger.debug("Session %s returned to login.", session.session_id)

    # ── Staff triage ──────────────────────────────────────────────────────────

    async def change_status(
        self, incident_id: str, new_status: IncidentStatus, now: Optional[datetime] = None
    ) -> datetime:
        """
        Persist a status change and return the timestamp used.

        Raises:
            PersistenceError (IncidentNotFoundError for unknown ids). The
            caller surfaces it; the displayed data only changes when the next
            snapshot arrives.
        """
        now = now or self._clock()
        try:
            await self._store.update_status(incident_id, new_status, now)
        except PersistenceError as exc:
            logger.error("Failed to update status of %s: %s", incident_id, exc)
            raise
        logger.info("Incident %s → %s", incident_id, new_status.value)
        return now
