"""
Alert models
In-memory only - alerts are never written to the database
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class AlertType(str, Enum):
    SYNC_BEHIND = "sync_behind"
    RPC_ERROR = "rpc_error"
    SYNC_STALLED = "sync_stalled"
    DB_CONNECTIONS = "db_connections"
    DB_CACHE = "db_cache"
    DB_LONG_QUERY = "db_long_query"
    DB_DEADLOCK = "db_deadlock"
    BACKEND_DOWN = "backend_down"
    BACKEND_SLOW = "backend_slow"
    CUSTOM = "custom"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


# Severities that trigger notification dispatch
NOTIFY_SEVERITIES = (Severity.WARNING, Severity.CRITICAL)


class AlertCandidate(BaseModel):
    """Condition found by a check pass, before dedup"""
    model_config = ConfigDict(populate_by_name=True)

    type: AlertType
    severity: Severity
    chain: Optional[int] = None
    chain_name: Optional[str] = Field(default=None, alias="chainName")
    message: str
    details: Optional[str] = None

    @property
    def dedup_key(self) -> Tuple[str, Optional[int]]:
        return self.type.value, self.chain


class Alert(AlertCandidate):
    """Alert as stored and returned to the dashboard"""
    id: str
    timestamp: datetime
    acknowledged: bool = False

    @property
    def notification_key(self) -> str:
        """Cooldown key: type, chain (or 'system') and severity"""
        return f"{self.type.value}-{self.chain or 'system'}-{self.severity.value}"
