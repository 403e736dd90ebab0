"""
Status route - enabled chains with indexed totals
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from goldenaxe_admin.api.models.api_models import StatusResponse
from goldenaxe_admin.database.postgres_client import get_be_db
from goldenaxe_admin.repositories.chain_repository import ChainRepository
from goldenaxe_admin.services.status_service import StatusService
from goldenaxe_admin.state import AppState, get_state

status_router = APIRouter(tags=["sync"])


async def get_status_service(
    state: AppState = Depends(get_state),
    be_db: AsyncSession = Depends(get_be_db)
) -> StatusService:
    return StatusService(ChainRepository(be_db), state.stats_reader)


@status_router.get("/status", response_model=StatusResponse)
async def status(service: StatusService = Depends(get_status_service)):
    """Enabled configs, latest synced block and log totals per chain"""
    return await service.get_status()
