"""
Incident store — Firestore in production, in-memory for local development.

Both implementations share one contract:

    subscribe(on_snapshot) -> unsubscribe()
        on_snapshot(list[IncidentRecord]) receives the whole collection ordered
        by createdAt descending, once right after connecting and again after
        every change. It may be called from a background thread.

    await insert(record) -> str          store-assigned id
    await update_status(id, status, now) partial update: status, updatedAt, resolvedAt

Nothing here deletes incidents.

build_incident_store() picks Firestore when FIRESTORE_ENABLED and the client
can be created; otherwise it falls back to the in-memory store (incidents
are lost on restart).
"""
import asyncio
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import ValidationError

import config
from incidents.errors import IncidentNotFoundError, PersistenceError
from incidents.types import IncidentRecord, IncidentStatus, repair_document, status_update_fields

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[IncidentRecord]], None]


def _col(name: str) -> str:
    """Apply the optional collection prefix."""
    return f"{config.FIRESTORE_COLLECTION_PREFIX}{name}"


def _newest_first(records: list[IncidentRecord]) -> list[IncidentRecord]:
    return sorted(records, key=lambda r: r.created_at, reverse=True)


# ── Firestore ─────────────────────────────────────────────────────────────────

class FirestoreIncidentStore:
    kind = "firestore"

    def __init__(self, client=None, collection: Optional[str] = None):
        if client is None:
            from google.cloud import firestore  # noqa: PLC0415
            kwargs = {}
            if config.GOOGLE_CLOUD_PROJECT:
                kwargs["project"] = config.GOOGLE_CLOUD_PROJECT
            client = firestore.Client(**kwargs)
        self._db = client
        self._collection = collection or _col(config.INCIDENTS_COLLECTION)

    def _records_from(self, docs) -> list[IncidentRecord]:
        records = []
        for doc in docs:
            data = doc.to_dict() or {}
            try:
                records.append(IncidentRecord.from_document(doc.id, data))
                continue
            except ValidationError as exc:
                logger.warning("Incident %s does not match the schema, repairing: %s", doc.id, exc)
            try:
                records.append(IncidentRecord.from_document(doc.id, repair_document(data)))
            except ValidationError as exc:
                logger.warning("Skipping unreadable incident %s: %s", doc.id, exc)
        return records

    def subscribe(self, on_snapshot: SnapshotCallback) -> Callable[[], None]:
        from google.cloud import firestore  # noqa: PLC0415

        query = self._db.collection(self._collection).order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        )

        def _on_change(docs, changes, read_time):
            try:
                on_snapshot(self._records_from(docs))
            except Exception as exc:
                logger.error("Incident snapshot listener failed: %s", exc, exc_info=True)

        try:
            watch = query.on_snapshot(_on_change)
        except Exception as exc:
            logger.error("Error connecting to Firestore: %s", exc)
            raise PersistenceError(f"Could not subscribe to incidents: {exc}") from exc
        logger.info("Subscribed to Firestore collection '%s'.", self._collection)
        return watch.unsubscribe

    async def insert(self, record: IncidentRecord) -> str:
        try:
            _, ref = await asyncio.to_thread(
                self._db.collection(self._collection).add, record.to_document()
            )
        except Exception as exc:
            logger.error("Error adding incident: %s", exc)
            raise PersistenceError(f"Could not save incident: {exc}") from exc
        return ref.id

    async def update_status(
        self, incident_id: str, status: IncidentStatus, now: Optional[datetime] = None
    ) -> None:
        from google.api_core.exceptions import NotFound  # noqa: PLC0415

        now = now or datetime.now(timezone.utc)
        ref = self._db.collection(self._collection).document(incident_id)
        try:
            await asyncio.to_thread(ref.update, status_update_fields(status, now))
        except NotFound as exc:
            raise IncidentNotFoundError(incident_id) from exc
        except Exception as exc:
            logger.error("Error updating incident %s: %s", incident_id, exc)
            raise PersistenceError(f"Could not update incident {incident_id}: {exc}") from exc


# ── In-memory ─────────────────────────────────────────────────────────────────

class InMemoryIncidentStore:
    """Same contract as FirestoreIncidentStore; snapshots are delivered synchronously."""

    kind = "memory"

    def __init__(self, seed: Optional[list[IncidentRecord]] = None):
        self._lock = threading.Lock()
        self._docs: dict[str, dict] = {}
        self._listeners: list[SnapshotCallback] = []
        for record in seed or []:
            self._docs[record.id or uuid.uuid4().hex[:20]] = record.to_document()

    def snapshot(self) -> list[IncidentRecord]:
        with self._lock:
            items = list(self._docs.items())
        return _newest_first([IncidentRecord.from_document(i, d) for i, d in items])

    def _emit(self) -> None:
        records = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(records)
            except Exception as exc:
                logger.error("Incident snapshot listener failed: %s", exc, exc_info=True)

    def subscribe(self, on_snapshot: SnapshotCallback) -> Callable[[], None]:
        self._listeners.append(on_snapshot)
        on_snapshot(self.snapshot())

        def unsubscribe() -> None:
            if on_snapshot in self._listeners:
                self._listeners.remove(on_snapshot)

        return unsubscribe

    async def insert(self, record: IncidentRecord) -> str:
        incident_id = uuid.uuid4().hex[:20]
        with self._lock:
            self._docs[incident_id] = record.to_document()
        self._emit()
        return incident_id

    async def update_status(
        self, incident_id: str, status: IncidentStatus, now: Optional[datetime] = None
    ) -> None:
        now = now or datetime.now(timezone.utc)
        with self._lock:
            doc = self._docs.get(incident_id)
            if doc is None:
                raise IncidentNotFoundError(incident_id)
            doc.update(status_update_fields(status, now))
        self._emit()


# ── Factory ───────────────────────────────────────────────────────────────────

def build_incident_store():
    if config.FIRESTORE_ENABLED:
        try:
            store = FirestoreIncidentStore()
            logger.info(
                "Firestore incident store ready (project=%s).",
                config.GOOGLE_CLOUD_PROJECT or "default",
            )
            return store
        except Exception as exc:
            logger.warning("Firestore unavailable — using in-memory incident store: %s", exc)
    else:
        logger.info("Firestore disabled (FIRESTORE_ENABLED=false).")

    seed = None
    if config.SEED_DEMO_DATA:
        from mock_data.incidents import demo_incidents  # noqa: PLC0415
        seed = demo_incidents()
    logger.warning("Using InMemoryIncidentStore (incidents lost on restart).")
    return InMemoryIncidentStore(seed=seed)
