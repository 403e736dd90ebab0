"""
Health routes: liveness, detailed system health, RPC health
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from goldenaxe_admin.api.models.health import HealthResponse, RpcHealth, SystemHealthResponse
from goldenaxe_admin.database.postgres_client import get_be_db
from goldenaxe_admin.repositories.chain_repository import ChainRepository
from goldenaxe_admin.services.health_service import HealthService, liveness
from goldenaxe_admin.state import AppState, get_state

health_router = APIRouter(tags=["health"])


async def get_health_service(
    state: AppState = Depends(get_state),
    be_db: AsyncSession = Depends(get_be_db)
) -> HealthService:
    return HealthService(
        chain_repository=ChainRepository(be_db),
        backend_probe=state.backend_probe,
        rpc_probe=state.rpc_probe,
        db_probes=state.db_probes,
    )


@health_router.get("/health", response_model=HealthResponse)
async def health():
    """Service liveness + dependency connectivity"""
    return await liveness()


@health_router.get("/system-health", response_model=SystemHealthResponse)
async def system_health(service: HealthService = Depends(get_health_service)):
    """Backend indexer, database stats and RPC endpoints (cached)"""
    return await service.get_system_health()


@health_router.get("/rpc-health", response_model=List[RpcHealth])
async def rpc_health(service: HealthService = Depends(get_health_service)):
    """eth_blockNumber latency per enabled chain"""
    return await service.get_rpc_health()
