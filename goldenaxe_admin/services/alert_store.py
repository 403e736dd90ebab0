"""
Alert Store - process-wide, in-memory alert state

Owns the newest-first alert list, the dedup window and the per-database
deadlock counters remembered between check passes. All mutations happen
under one asyncio.Lock so overlapping check passes never interleave a
dedup check with an insert.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from goldenaxe_admin.api.models.alert import Alert, AlertCandidate, NOTIFY_SEVERITIES
from goldenaxe_admin.config import DEDUP_WINDOW_SECONDS, MAX_ALERTS

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_alert_id(now: datetime) -> str:
    """Time-based prefix + random suffix"""
    return f"alert-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}"


class AlertStore:
    """Alert list with dedup, capacity eviction and acknowledge/clear"""

    def __init__(
        self,
        on_new_alert: Optional[Callable[[Alert], None]] = None,
        max_alerts: int = MAX_ALERTS,
        dedup_window_seconds: int = DEDUP_WINDOW_SECONDS,
        clock: Callable[[], datetime] = utcnow
    ):
        self.on_new_alert = on_new_alert
        self.max_alerts = max_alerts
        self.dedup_window = timedelta(seconds=dedup_window_seconds)
        self.clock = clock
        self.last_check: Optional[datetime] = None
        self._alerts: List[Alert] = []
        self._deadlocks: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------------

    async def add_alert(self, candidate: AlertCandidate) -> Optional[Alert]:
        """
        Insert unless an alert with the same (type, chain) was created inside
        the dedup window. Returns the new alert, or None for a duplicate.
        A suppressed duplicate leaves the existing alert untouched.
        """
        async with self._lock:
            now = self.clock()
            cutoff = now - self.dedup_window
            key = candidate.dedup_key

            if any(a.dedup_key == key and a.timestamp > cutoff for a in self._alerts):
                logger.debug(f"Duplicate alert suppressed: {key}")
                return None

            alert = Alert(
                **candidate.model_dump(),
                id=new_alert_id(now),
                timestamp=now,
                acknowledged=False,
            )
            self._alerts.insert(0, alert)
            del self._alerts[self.max_alerts:]

        logger.info(f"🚨 New {alert.severity.value} alert [{alert.type.value}] {alert.message}")

        if alert.severity in NOTIFY_SEVERITIES and self.on_new_alert is not None:
            try:
                self.on_new_alert(alert)
            except Exception as e:
                logger.error(f"❌ Could not hand alert {alert.id} to the dispatcher: {e}")

        return alert

    async def acknowledge(self, alert_id: str) -> bool:
        """False when the id is unknown (not an error)"""
        async with self._lock:
            for alert in self._alerts:
                if alert.id == alert_id:
                    alert.acknowledged = True
                    return True
        return False

    async def acknowledge_all(self) -> int:
        async with self._lock:
            for alert in self._alerts:
                alert.acknowledged = True
            return len(self._alerts)

    async def clear_acknowledged(self) -> int:
        """Drop acknowledged alerts, returns how many were removed"""
        async with self._lock:
            before = len(self._alerts)
            self._alerts = [a for a in self._alerts if not a.acknowledged]
            return before - len(self._alerts)

    async def swap_deadlocks(self, database: str, count: int) -> Optional[int]:
        """Remember this pass's deadlock counter, return the previous one"""
        async with self._lock:
            previous = self._deadlocks.get(database)
            self._deadlocks[database] = count
            return previous

    async def reset(self):
        async with self._lock:
            self._alerts = []
            self._deadlocks = {}
            self.last_check = None

    # ------------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------------

    def list_alerts(self) -> Tuple[List[Alert], int]:
        """Snapshot of the list (newest first) and the unacknowledged count"""
        alerts = [a.model_copy() for a in self._alerts]
        return alerts, sum(1 for a in alerts if not a.acknowledged)

    def __len__(self) -> int:
        return len(self._alerts)
