"""
LiveIncidentFeed — the one in-memory copy of the incident collection.

The store's subscription replaces the whole snapshot on every change (never a
delta). Readers always see a complete snapshot plus its version; analytics are
memoized on that version so unrelated requests don't recompute them.

Snapshots may arrive on a store thread (Firestore watch). Each listener is
bound to the event loop it registered from and is woken there.
"""
import asyncio
import logging
import threading
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional

from incidents.analytics import IncidentStats, compute_stats
from incidents.types import IncidentRecord, as_utc

logger = logging.getLogger(__name__)


class LiveIncidentFeed:
    def __init__(self, store, tz: Optional[tzinfo] = None):
        self._store = store
        self._tz = tz
        self._lock = threading.Lock()
        self._incidents: list[IncidentRecord] = []
        self._version = 0
        self._connected = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._listeners: dict[int, tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = {}
        self._next_listener_id = 0
        self._stats_cache: dict[tuple, Optional[IncidentStats]] = {}

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._store.subscribe(self._on_snapshot)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    # ── Snapshots ─────────────────────────────────────────────────────────────

    def _on_snapshot(self, incidents: list[IncidentRecord]) -> None:
        with self._lock:
            self._incidents = list(incidents)
            self._version += 1
            self._connected = True
            self._stats_cache.clear()
            version = self._version
            listeners = list(self._listeners.values())
        logger.debug("Incident snapshot v%d (%d incidents).", version, len(incidents))
        for loop, queue in listeners:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, version)
            except RuntimeError:
                # Listener's loop already closed; it will be removed on disconnect
                pass

    @property
    def version(self) -> int:
        return self._version

    def snapshot(self) -> tuple[int, list[IncidentRecord]]:
        with self._lock:
            return self._version, list(self._incidents)

    def incidents(self) -> list[IncidentRecord]:
        return self.snapshot()[1]

    def get(self, incident_id: str) -> Optional[IncidentRecord]:
        return next((i for i in self.incidents() if i.id == incident_id), None)

    def stats(self, now: Optional[datetime] = None, lang: str = "es") -> Optional[IncidentStats]:
        """compute_stats() memoized on (snapshot version, local date, language)."""
        now = as_utc(now or datetime.now(timezone.utc))
        version, incidents = self.snapshot()
        today = now.astimezone(self._tz or now.tzinfo).date()
        key = (version, today, lang)
        with self._lock:
            if key in self._stats_cache:
                return self._stats_cache[key]
        stats = compute_stats(incidents, now, lang=lang, tz=self._tz)
        with self._lock:
            if self._version == version:
                self._stats_cache[key] = stats
        return stats

    # ── Listeners ─────────────────────────────────────────────────────────────

    def add_listener(self) -> tuple[int, asyncio.Queue]:
        """Register the calling loop; the queue receives a version number per snapshot."""
        queue: asyncio.Queue = asyncio.Queue()
        loop = asyncio.get_running_loop()
        with self._lock:
            listener_id = self._next_listener_id
            self._next_listener_id += 1
            self._listeners[listener_id] = (loop, queue)
        return listener_id, queue

    def remove_listener(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)
