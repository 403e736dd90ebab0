"""
Network Routes - chain config CRUD
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from goldenaxe_admin.api.models.api_models import ActionResult, NetworkConfig, NetworkUpsert
from goldenaxe_admin.database.postgres_client import get_be_db
from goldenaxe_admin.repositories.chain_repository import ChainRepository
from goldenaxe_admin.services.network_service import NetworkService

networks_router = APIRouter(prefix="/networks", tags=["networks"])


async def get_network_service(db: AsyncSession = Depends(get_be_db)) -> NetworkService:
    return NetworkService(ChainRepository(db))


@networks_router.get("", response_model=List[NetworkConfig])
async def list_networks(service: NetworkService = Depends(get_network_service)):
    """All configured chains, enabled or not"""
    return await service.list_networks()


@networks_router.post("", response_model=ActionResult, response_model_exclude_none=True)
async def upsert_network(
    network: NetworkUpsert,
    service: NetworkService = Depends(get_network_service)
):
    """Insert or update the chain's config row"""
    return await service.upsert_network(network)


@networks_router.delete("", response_model=ActionResult, response_model_exclude_none=True)
async def delete_network(
    chain: int = Query(..., gt=0),
    service: NetworkService = Depends(get_network_service)
):
    """
    Query params:
    - chain: Chain ID to remove
    """
    if not await service.delete_network(chain):
        raise HTTPException(status_code=404, detail=f"Network {chain} not found")

    return ActionResult()
