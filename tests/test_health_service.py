"""
Tests for the system health view and its Redis cache
"""
import pytest

from goldenaxe_admin.database.redis_client import RedisClient
from goldenaxe_admin.services.health_service import HealthService
from tests.conftest import (
    FakeBackendProbe,
    FakeChainRepository,
    FakeDbProbe,
    FakeRpcProbe,
    make_backend_health,
    make_chain,
    make_db_stats,
)


class FakeRedis:
    def __init__(self, fail: bool = False):
        self.data = {}
        self.ttls = {}
        self.fail = fail

    async def get(self, key):
        if self.fail:
            raise ConnectionError("redis went away")
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        if self.fail:
            raise ConnectionError("redis went away")
        self.data[key] = value
        self.ttls[key] = ttl


@pytest.fixture
def fake_redis(monkeypatch):
    redis = FakeRedis()
    monkeypatch.setattr(RedisClient, "_instance", redis)
    monkeypatch.setattr(RedisClient, "_disabled", False)
    return redis


def make_service(backend=None):
    return HealthService(
        chain_repository=FakeChainRepository([make_chain(1, "Ethereum")]),
        backend_probe=backend or FakeBackendProbe(make_backend_health(status="degraded")),
        rpc_probe=FakeRpcProbe(),
        db_probes=[FakeDbProbe("frontend", make_db_stats("frontend", cache_hit_ratio=91.25)),
                   FakeDbProbe("backend", make_db_stats("backend"))],
    )


class TestSystemHealthCache:

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, fake_redis):
        """✅ Miss probes and stores; hit skips the probes"""
        backend = FakeBackendProbe(make_backend_health(status="degraded"))
        service = make_service(backend)

        first = await service.get_system_health()
        second = await service.get_system_health()

        assert backend.calls == 1
        assert second.backend.status == "degraded"
        assert second.databases["frontend"].cache_hit_ratio == 91.25
        assert second.rpc[0].url == "https://rpc.example.com/ethereum/***"
        assert second.timestamp == first.timestamp

    @pytest.mark.asyncio
    async def test_stored_under_namespaced_key_with_ttl(self, fake_redis):
        await make_service().get_system_health()

        assert list(fake_redis.data) == ["goldenaxe-admin:health:system"]
        assert fake_redis.ttls["goldenaxe-admin:health:system"] == 10
        assert '"backendReachable":true' in fake_redis.data["goldenaxe-admin:health:system"]

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_a_miss(self, fake_redis):
        """✅ Garbage in the cache -> probe again"""
        fake_redis.data["goldenaxe-admin:health:system"] = "{not json"
        backend = FakeBackendProbe(make_backend_health())

        result = await make_service(backend).get_system_health()

        assert backend.calls == 1
        assert result.backend_reachable is True

    @pytest.mark.asyncio
    async def test_redis_errors_never_fail_the_request(self, monkeypatch):
        monkeypatch.setattr(RedisClient, "_instance", FakeRedis(fail=True))
        monkeypatch.setattr(RedisClient, "_disabled", False)

        result = await make_service().get_system_health()

        assert set(result.databases) == {"frontend", "backend"}


class TestSystemHealthContent:

    @pytest.mark.asyncio
    async def test_backend_unreachable(self, no_redis):
        result = await make_service(FakeBackendProbe(None)).get_system_health()

        assert result.backend_reachable is False
        assert result.backend is None

    @pytest.mark.asyncio
    async def test_long_query_threshold_is_30s(self, no_redis):
        service = make_service()
        await service.get_system_health()

        assert [p.thresholds for p in service.db_probes] == [[30], [30]]

    @pytest.mark.asyncio
    async def test_rpc_health_only_enabled_chains(self, no_redis):
        service = HealthService(
            chain_repository=FakeChainRepository([make_chain(1, "Ethereum"), make_chain(10, "Optimism", enabled=False)]),
            backend_probe=FakeBackendProbe(make_backend_health()),
            rpc_probe=FakeRpcProbe(),
            db_probes=[],
        )

        rpc = await service.get_rpc_health()

        assert [r.chain for r in rpc] == [1]
        assert rpc[0].latency == 50
        assert rpc[0].block_number == 256
