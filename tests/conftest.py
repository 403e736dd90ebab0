# tests/conftest.py

import pytest
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from goldenaxe_admin.api.models.alert import AlertCandidate, AlertType, Severity
from goldenaxe_admin.api.models.health import (
    BackendHealth,
    ChainSync,
    ConnectionStats,
    DatabaseStats,
    RpcProbeResult,
)
from goldenaxe_admin.database.models.alert_rule import DBAlertRule
from goldenaxe_admin.database.models.chain_config import DBChainConfig
from goldenaxe_admin.database.redis_client import RedisClient


# ============================================================================
# Clocks
# ============================================================================

class FakeClock:
    """Manually advanced clock - returns datetimes"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Manually advanced monotonic clock - returns seconds"""

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


# ============================================================================
# Repositories / probes
# ============================================================================

class FakeChainRepository:
    def __init__(self, chains: List[DBChainConfig]):
        self.chains = chains

    async def list_enabled(self):
        return [c for c in self.chains if c.enabled]

    async def list_all(self):
        return list(self.chains)


class FakeRuleRepository:
    def __init__(self, rules: List[DBAlertRule]):
        self.rules = rules

    async def list_enabled(self):
        return [r for r in self.rules if r.enabled]


class FakeRuleTriggers:
    """Records which rules fired"""

    def __init__(self):
        self.recorded: List[int] = []

    def record(self, rule_id: int):
        self.recorded.append(rule_id)


class FakeBackendProbe:
    def __init__(self, health: Optional[BackendHealth] = None, error: Optional[Exception] = None):
        self.health = health
        self.error = error
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.health


class FakeRpcProbe:
    """Result per URL; unknown URLs answer ok with block 0x100"""

    def __init__(self, results: Optional[Dict[str, RpcProbeResult]] = None):
        self.results = results or {}
        self.calls: List[tuple] = []

    async def block_number(self, url: str, timeout=None):
        self.calls.append((url, timeout))
        return self.results.get(url, RpcProbeResult(outcome="ok", latency_ms=50, block_number=256))


class FakeDbProbe:
    def __init__(self, name: str, stats: Optional[DatabaseStats] = None):
        self.name = name
        self.stats = stats or DatabaseStats(name=name)
        self.thresholds: List[int] = []

    async def collect(self, long_query_seconds: int) -> DatabaseStats:
        self.thresholds.append(long_query_seconds)
        return self.stats.model_copy(deep=True)


class FakeStatsReader:
    """Per-chain block/log counts and table totals; chains (or tables) in failing raise"""

    def __init__(self, counts=None, failing=(), block_rows=None, log_rows=None):
        self.counts_by_chain = counts or {}
        self.failing = set(failing)
        self.block_rows = block_rows or []
        self.log_rows = log_rows or []

    async def counts(self, chain: int) -> dict:
        if chain in self.failing:
            raise RuntimeError("relation blocks does not exist")
        return self.counts_by_chain.get(chain, {"block_count": 0, "latest_block": 0, "log_count": 0})

    async def block_totals(self) -> List[dict]:
        if "blocks" in self.failing:
            raise RuntimeError("relation blocks does not exist")
        return list(self.block_rows)

    async def log_totals(self) -> List[dict]:
        if "logs" in self.failing:
            raise RuntimeError("relation logs does not exist")
        return list(self.log_rows)


class FakeChannelStore:
    """Channel bookkeeping recorded in memory"""

    def __init__(self, channels=None, fail_marks: bool = False):
        self.channels = list(channels or [])
        self.fail_marks = fail_marks
        self.successes: List[int] = []
        self.errors: Dict[int, str] = {}
        self.emails_sent: List[int] = []

    async def enabled_channels(self):
        return list(self.channels)

    async def mark_webhook_success(self, webhook_id: int):
        if self.fail_marks:
            raise RuntimeError("db down")
        self.successes.append(webhook_id)
        self.errors.pop(webhook_id, None)

    async def mark_webhook_error(self, webhook_id: int, error: str):
        if self.fail_marks:
            raise RuntimeError("db down")
        self.errors[webhook_id] = error

    async def mark_email_sent(self, email_id: int):
        if self.fail_marks:
            raise RuntimeError("db down")
        self.emails_sent.append(email_id)


# ============================================================================
# Factories
# ============================================================================

def make_chain(chain: int = 1, name: str = "Ethereum", enabled: bool = True, start_block=None) -> DBChainConfig:
    return DBChainConfig(
        chain=chain,
        name=name,
        url=f"https://rpc.example.com/{name.lower()}/secret-key-{chain}",
        enabled=enabled,
        batch_size=2000,
        concurrency=10,
        start_block=start_block,
    )


def make_rule(rule_id: int = 1, name: str = "Slow RPC", type: str = "rpc_latency", chain=1,
              threshold: float = 1000, comparison: str = "gt", severity: str = "warning",
              enabled: bool = True) -> DBAlertRule:
    return DBAlertRule(
        id=rule_id,
        name=name,
        type=type,
        chain=chain,
        threshold=threshold,
        comparison=comparison,
        severity=severity,
        enabled=enabled,
    )


def make_backend_health(status: str = "healthy", chains: Optional[List[ChainSync]] = None,
                        probe_latency_ms: int = 25) -> BackendHealth:
    health = BackendHealth(status=status, version="1.4.0", uptime_seconds=3600, probe_latency_ms=probe_latency_ms)
    health.checks.database.status = "ok"
    health.checks.sync.status = "ok"
    health.checks.sync.chains = chains or []
    return health


def make_db_stats(name: str, active: int = 5, idle: int = 5, max_connections: int = 100,
                  cache_hit_ratio: float = 99.5, deadlocks: int = 0, **kwargs) -> DatabaseStats:
    return DatabaseStats(
        name=name,
        connections=ConnectionStats(
            active=active,
            idle=idle,
            max_connections=max_connections,
            usage_percent=round((active + idle) / max_connections * 100) if max_connections else 0,
        ),
        cache_hit_ratio=cache_hit_ratio,
        deadlocks=deadlocks,
        **kwargs
    )


def make_candidate(type: AlertType = AlertType.SYNC_BEHIND, severity: Severity = Severity.WARNING,
                   chain: Optional[int] = 1, message: str = "Chain is 150 blocks behind") -> AlertCandidate:
    return AlertCandidate(type=type, severity=severity, chain=chain, chain_name="Ethereum", message=message)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def no_redis(monkeypatch):
    """Cache disabled: every read is a miss, writes are dropped"""
    monkeypatch.setattr(RedisClient, "_instance", None)
    monkeypatch.setattr(RedisClient, "_disabled", True)
