"""
User Routes - customer overview and per-user detail
"""
from typing import List

from fastapi import APIRouter, Depends

from goldenaxe_admin.api.models.api_models import UserDetail, UserSummary
from goldenaxe_admin.routes.keys_router import get_account_service
from goldenaxe_admin.services.account_service import AccountService

users_router = APIRouter(prefix="/users", tags=["accounts"])


@users_router.get("", response_model=List[UserSummary])
async def list_users(service: AccountService = Depends(get_account_service)):
    """Latest paid plan, live key count and 30-day query total per customer"""
    return await service.list_users()


@users_router.get("/{email}", response_model=UserDetail)
async def get_user(email: str, service: AccountService = Depends(get_account_service)):
    return await service.get_user(email)
