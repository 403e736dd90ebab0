"""
Network Service - chain config management
The indexer picks changes up on its next config reload
"""
import logging
from typing import List

from goldenaxe_admin.api.mappers import map_network_to_api
from goldenaxe_admin.api.models.api_models import ActionResult, NetworkConfig, NetworkUpsert
from goldenaxe_admin.probes.rpc import redact_url
from goldenaxe_admin.repositories.chain_repository import ChainRepository

logger = logging.getLogger(__name__)


class NetworkService:
    """Service for the config table"""

    def __init__(self, repository: ChainRepository):
        self.repository = repository

    async def list_networks(self) -> List[NetworkConfig]:
        configs = await self.repository.list_all()
        return [map_network_to_api(c) for c in configs]

    async def upsert_network(self, network: NetworkUpsert) -> ActionResult:
        values = network.model_dump()
        values["url"] = str(network.url)
        await self.repository.upsert(values)
        logger.info(
            f"✅ Network {network.chain} ({network.name}) saved: "
            f"{redact_url(values['url'])}, enabled={network.enabled}"
        )
        return ActionResult()

    async def delete_network(self, chain: int) -> bool:
        deleted = await self.repository.delete(chain)
        if deleted:
            logger.info(f"🗑️ Network {chain} deleted")
        return deleted
