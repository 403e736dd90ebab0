"""
API Key Routes - list, create, revoke
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from goldenaxe_admin.api.models.api_models import ActionResult, ApiKey, ApiKeyCreate, ApiKeyCreated
from goldenaxe_admin.database.postgres_client import get_fe_db
from goldenaxe_admin.repositories.account_repository import ApiKeyRepository, UserRepository
from goldenaxe_admin.services.account_service import AccountService

keys_router = APIRouter(prefix="/keys", tags=["accounts"])


async def get_account_service(db: AsyncSession = Depends(get_fe_db)) -> AccountService:
    return AccountService(ApiKeyRepository(db), UserRepository(db))


@keys_router.get("", response_model=List[ApiKey])
async def list_keys(service: AccountService = Depends(get_account_service)):
    """Every key, revoked ones included, newest first"""
    return await service.list_keys()


@keys_router.post("", response_model=ApiKeyCreated)
async def create_key(request: ApiKeyCreate, service: AccountService = Depends(get_account_service)):
    return await service.create_key(request)


@keys_router.delete("", response_model=ActionResult, response_model_exclude_none=True)
async def revoke_key(
    secret: Optional[str] = Query(None),
    service: AccountService = Depends(get_account_service)
):
    """
    Query params:
    - secret: Key to revoke (sets deleted_at, the row is kept)
    """
    if not secret:
        raise HTTPException(status_code=400, detail="secret required")

    if not await service.revoke_key(secret):
        raise HTTPException(status_code=404, detail="API key not found")

    return ActionResult()
