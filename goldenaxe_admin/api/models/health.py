"""
Probe result models
Shapes of what the backend indexer, RPC endpoints and Postgres report
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Backend indexer GET /health/detailed
# ============================================================================

class PoolStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    connected: bool = False
    max_connections: int = 0
    active: int = 0
    idle: int = 0
    waiting: int = 0


class DatabaseCheck(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str = "error"
    latency_ms: float = 0
    pools: Dict[str, PoolStatus] = Field(default_factory=dict)


class ChainSync(BaseModel):
    """Per-chain sync state as the indexer sees it"""
    model_config = ConfigDict(extra="ignore")

    chain_id: int
    chain_name: str = ""
    status: str  # synced | syncing | stalled | disabled
    synced_block: int = 0
    head_block: int = 0
    blocks_behind: int = 0
    sync_percentage: float = 0
    estimated_time_to_sync: Optional[str] = None


class SyncCheck(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str = "error"
    chains: List[ChainSync] = Field(default_factory=list)


class HealthChecks(BaseModel):
    model_config = ConfigDict(extra="ignore")

    database: DatabaseCheck = Field(default_factory=DatabaseCheck)
    sync: SyncCheck = Field(default_factory=SyncCheck)


class BackendHealth(BaseModel):
    """Parsed detailed-health body plus the measured round trip"""
    model_config = ConfigDict(extra="ignore")

    status: str  # healthy | degraded | unhealthy
    timestamp: Optional[datetime] = None
    uptime_seconds: int = 0
    version: str = ""
    checks: HealthChecks = Field(default_factory=HealthChecks)
    probe_latency_ms: int = 0


# ============================================================================
# JSON-RPC eth_blockNumber
# ============================================================================

class RpcProbeResult(BaseModel):
    """
    Outcome of one eth_blockNumber call
    outcome: ok | remote_error | transport_error
    """
    outcome: str
    latency_ms: int
    block_number: Optional[int] = None
    http_status: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == "ok"


class RpcHealth(BaseModel):
    """RPC health row for the dashboard (URL redacted)"""
    model_config = ConfigDict(populate_by_name=True)

    chain: int
    name: str
    url: str
    latency: int
    block_number: Optional[int] = Field(default=None, alias="blockNumber")
    error: Optional[str] = None


# ============================================================================
# Postgres internal statistics
# ============================================================================

class ConnectionStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    active: int = 0
    idle: int = 0
    max_connections: int = 0
    usage_percent: int = Field(default=0, alias="usagePercent")


class LongQuery(BaseModel):
    pid: int
    duration_seconds: float
    state: Optional[str] = None
    query: str


class DatabaseStats(BaseModel):
    """
    One database's internal stats
    Failed sub-queries leave their defaults and add an entry to errors
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str
    connections: ConnectionStats = Field(default_factory=ConnectionStats)
    cache_hit_ratio: float = Field(default=100.0, alias="cacheHitRatio")
    deadlocks: int = 0
    size_bytes: Optional[int] = None
    size: Optional[str] = None
    long_queries: List[LongQuery] = Field(default_factory=list, alias="longQueries")
    errors: Dict[str, str] = Field(default_factory=dict)


# ============================================================================
# Views
# ============================================================================

class HealthResponse(BaseModel):
    """Liveness check response"""
    status: str
    frontend_db: str
    backend_db: str
    redis: str
    timestamp: datetime


class SystemHealthResponse(BaseModel):
    """Detailed health view (cached)"""
    model_config = ConfigDict(populate_by_name=True)

    backend_reachable: bool = Field(alias="backendReachable")
    backend: Optional[BackendHealth] = None
    databases: Dict[str, DatabaseStats]
    rpc: List[RpcHealth]
    timestamp: datetime
