"""
Health Service - detailed system health and RPC health views
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import List

from goldenaxe_admin.api.models.health import HealthResponse, RpcHealth, SystemHealthResponse
from goldenaxe_admin.config import HEALTH_CACHE_TTL_SECONDS, HEALTH_LONG_QUERY_SECONDS
from goldenaxe_admin.database.postgres_client import be_engine, fe_engine, ping
from goldenaxe_admin.database.redis_client import RedisClient
from goldenaxe_admin.probes.rpc import redact_url

logger = logging.getLogger(__name__)

SYSTEM_HEALTH_CACHE_KEY = "health:system"


class HealthService:
    """Service for the read-only health views"""

    def __init__(self, chain_repository, backend_probe, rpc_probe, db_probes: list):
        self.chain_repository = chain_repository
        self.backend_probe = backend_probe
        self.rpc_probe = rpc_probe
        self.db_probes = db_probes

    async def get_system_health(self) -> SystemHealthResponse:
        """Backend + both databases + RPC endpoints, with Redis cache"""
        cached = await RedisClient.get_model(SYSTEM_HEALTH_CACHE_KEY, SystemHealthResponse)
        if cached is not None:
            logger.info(f"🎯 CACHE HIT: {SYSTEM_HEALTH_CACHE_KEY}")
            return cached

        logger.info(f"❌ CACHE MISS: {SYSTEM_HEALTH_CACHE_KEY} - probing...")
        backend, databases, rpc = await asyncio.gather(
            self.backend_probe.fetch(),
            asyncio.gather(*(p.collect(HEALTH_LONG_QUERY_SECONDS) for p in self.db_probes)),
            self.get_rpc_health(),
        )

        result = SystemHealthResponse(
            backend_reachable=backend is not None,
            backend=backend,
            databases={stats.name: stats for stats in databases},
            rpc=rpc,
            timestamp=datetime.now(timezone.utc),
        )

        await RedisClient.set_model(SYSTEM_HEALTH_CACHE_KEY, result, ttl_seconds=HEALTH_CACHE_TTL_SECONDS)
        logger.info(f"💾 CACHED: {SYSTEM_HEALTH_CACHE_KEY} (TTL: {HEALTH_CACHE_TTL_SECONDS}s)")

        return result

    async def get_rpc_health(self) -> List[RpcHealth]:
        """One eth_blockNumber probe per enabled chain, URLs redacted"""
        configs = await self.chain_repository.list_enabled()
        results = await asyncio.gather(*(self.rpc_probe.block_number(c.url) for c in configs))

        return [
            RpcHealth(
                chain=config.chain,
                name=config.name,
                url=redact_url(config.url),
                latency=result.latency_ms,
                block_number=result.block_number,
                error=result.error,
            )
            for config, result in zip(configs, results)
        ]


async def liveness() -> HealthResponse:
    """Service is up; report whether each dependency answers"""
    frontend_ok, backend_ok = await asyncio.gather(ping(fe_engine), ping(be_engine))
    redis = await RedisClient.get_client()

    return HealthResponse(
        status="healthy" if frontend_ok and backend_ok else "degraded",
        frontend_db="connected" if frontend_ok else "error",
        backend_db="connected" if backend_ok else "error",
        redis="connected" if redis is not None else "disabled",
        timestamp=datetime.now(timezone.utc),
    )
