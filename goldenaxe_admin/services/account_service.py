"""
Account Service - API keys and customer overview
"""
import logging
import uuid
from typing import List

from goldenaxe_admin.api.mappers import map_api_key_to_api, map_user_key_row
from goldenaxe_admin.api.models.api_models import (
    ApiKey,
    ApiKeyCreate,
    ApiKeyCreated,
    UserCollab,
    UserDetail,
    UserPlan,
    UserSummary,
    UserUsageDay,
)
from goldenaxe_admin.repositories.account_repository import ApiKeyRepository, UserRepository

logger = logging.getLogger(__name__)


def redact_secret(secret: str) -> str:
    return f"{secret[:8]}***"


class AccountService:
    """Service for api_keys and the per-user views"""

    def __init__(self, key_repository: ApiKeyRepository, user_repository: UserRepository):
        self.key_repository = key_repository
        self.user_repository = user_repository

    # ------------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------------

    async def list_keys(self) -> List[ApiKey]:
        keys = await self.key_repository.list_keys()
        return [map_api_key_to_api(k) for k in keys]

    async def create_key(self, request: ApiKeyCreate) -> ApiKeyCreated:
        """New key with a random UUID secret; the secret is only returned here and in the list"""
        secret = str(uuid.uuid4())
        await self.key_repository.create(request.owner_email, secret, request.origins)
        logger.info(f"🔑 API key {redact_secret(secret)} created for {request.owner_email}")
        return ApiKeyCreated(secret=secret)

    async def revoke_key(self, secret: str) -> bool:
        revoked = await self.key_repository.soft_delete(secret)
        if revoked:
            logger.info(f"🗑️ API key {redact_secret(secret)} revoked")
        return revoked

    # ------------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------------

    async def list_users(self) -> List[UserSummary]:
        rows = await self.user_repository.list_users()
        return [UserSummary(**row) for row in rows]

    async def get_user(self, email: str) -> UserDetail:
        """Keys, plan history, last 30 usage days and collaborators (empty lists for an unknown email)"""
        detail = await self.user_repository.get_user(email)
        return UserDetail(
            email=email,
            keys=[map_user_key_row(row) for row in detail["keys"]],
            plans=[UserPlan(**row) for row in detail["plans"]],
            usage=[UserUsageDay(**row) for row in detail["usage"]],
            collabs=[UserCollab(**row) for row in detail["collabs"]],
        )
