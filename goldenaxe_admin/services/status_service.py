"""
Status Service - enabled chain configs with indexed block/log totals
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List

from goldenaxe_admin.api.mappers import map_network_to_api
from goldenaxe_admin.api.models.api_models import ChainIndexStatus, StatusResponse

logger = logging.getLogger(__name__)


async def read_totals(query: Callable[[], Awaitable[List[dict]]], table: str) -> List[dict]:
    """Rows, or [] when the table is missing or unreadable"""
    try:
        return await query()
    except Exception as e:
        logger.warning(f"⚠️ Could not read {table} totals: {e}")
        return []


class StatusService:

    def __init__(self, chain_repository, stats_reader):
        self.chain_repository = chain_repository
        self.stats_reader = stats_reader

    async def get_status(self) -> StatusResponse:
        configs = await self.chain_repository.list_enabled()
        blocks, logs = await asyncio.gather(
            read_totals(self.stats_reader.block_totals, "blocks"),
            read_totals(self.stats_reader.log_totals, "logs"),
        )

        chain_status: Dict[int, ChainIndexStatus] = {}
        for row in blocks:
            chain_status[int(row["chain"])] = ChainIndexStatus(
                latest_synced_block=int(row["latest_synced_block"] or 0),
                total_blocks=int(row["total_blocks"] or 0),
            )
        for row in logs:
            status = chain_status.setdefault(int(row["chain"]), ChainIndexStatus())
            status.latest_log_block = int(row["latest_log_block"] or 0)
            status.total_logs = int(row["total_logs"] or 0)

        return StatusResponse(
            config=[map_network_to_api(c) for c in configs],
            chain_status=chain_status,
            db_connected=bool(blocks or logs),
        )
