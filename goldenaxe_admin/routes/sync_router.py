"""
Sync history route
Every GET records one snapshot per enabled chain
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from goldenaxe_admin.api.models.api_models import SyncHistoryResponse
from goldenaxe_admin.database.postgres_client import get_be_db
from goldenaxe_admin.repositories.chain_repository import ChainRepository
from goldenaxe_admin.services.sync_history import SyncHistoryService
from goldenaxe_admin.state import AppState, get_state

sync_router = APIRouter(tags=["sync"])


async def get_sync_service(
    state: AppState = Depends(get_state),
    be_db: AsyncSession = Depends(get_be_db)
) -> SyncHistoryService:
    return SyncHistoryService(
        recorder=state.sync_recorder,
        chain_repository=ChainRepository(be_db),
        stats_reader=state.stats_reader,
        rpc_probe=state.rpc_probe,
    )


@sync_router.get("/sync-history", response_model=SyncHistoryResponse)
async def sync_history(service: SyncHistoryService = Depends(get_sync_service)):
    """Current counts, retained history, rates, ETA and sparkline per chain"""
    return await service.poll()
