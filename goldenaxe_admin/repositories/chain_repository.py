"""
Chain Repository - chain config and indexed block/log counts (backend DB)
"""
import asyncio
from typing import List, Optional

from sqlalchemy import select, delete, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from goldenaxe_admin.database.models.chain_config import DBChainConfig


class ChainRepository:
    """Repository for the config table"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> List[DBChainConfig]:
        result = await self.session.execute(select(DBChainConfig).order_by(DBChainConfig.chain))
        return list(result.scalars().all())

    async def list_enabled(self) -> List[DBChainConfig]:
        query = (
            select(DBChainConfig)
            .where(DBChainConfig.enabled.is_(True))
            .order_by(DBChainConfig.chain)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def upsert(self, values: dict):
        """Insert or replace the row for values['chain']"""
        statement = insert(DBChainConfig).values(**values)
        statement = statement.on_conflict_do_update(
            index_elements=[DBChainConfig.chain],
            set_={key: statement.excluded[key] for key in values if key != "chain"},
        )
        await self.session.execute(statement)
        await self.session.commit()

    async def delete(self, chain: int) -> bool:
        result = await self.session.execute(delete(DBChainConfig).where(DBChainConfig.chain == chain))
        await self.session.commit()
        return result.rowcount > 0


BLOCK_STATS_SQL = text("""
    SELECT count(1)::bigint AS block_count, max(num)::bigint AS latest_block
    FROM blocks
    WHERE chain = :chain
""")

LOG_STATS_SQL = text("""
    SELECT count(1)::bigint AS log_count
    FROM logs
    WHERE chain = :chain
""")

BLOCK_TOTALS_SQL = text("""
    SELECT chain, max(num)::bigint AS latest_synced_block, count(1)::bigint AS total_blocks
    FROM blocks
    GROUP BY chain
    ORDER BY chain
""")

LOG_TOTALS_SQL = text("""
    SELECT chain, max(block_num)::bigint AS latest_log_block, count(1)::bigint AS total_logs
    FROM logs
    GROUP BY chain
    ORDER BY chain
""")


class ChainStatsReader:
    """
    Per-chain counts from the indexed tables
    Uses the engine directly so several chains can be read concurrently
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def _scalar_row(self, statement, chain: int) -> Optional[dict]:
        async with self.engine.connect() as conn:
            result = await conn.execute(statement, {"chain": chain})
            row = result.mappings().first()
            return dict(row) if row else None

    async def counts(self, chain: int) -> dict:
        """block_count, latest_block, log_count (block and log queries run in parallel)"""
        blocks, logs = await asyncio.gather(
            self._scalar_row(BLOCK_STATS_SQL, chain),
            self._scalar_row(LOG_STATS_SQL, chain),
        )
        blocks = blocks or {}
        logs = logs or {}
        return {
            "block_count": int(blocks.get("block_count") or 0),
            "latest_block": int(blocks.get("latest_block") or 0),
            "log_count": int(logs.get("log_count") or 0),
        }

    async def _all_rows(self, statement) -> List[dict]:
        async with self.engine.connect() as conn:
            result = await conn.execute(statement)
            return [dict(row) for row in result.mappings().all()]

    async def block_totals(self) -> List[dict]:
        """chain, latest_synced_block, total_blocks for every indexed chain"""
        return await self._all_rows(BLOCK_TOTALS_SQL)

    async def log_totals(self) -> List[dict]:
        """chain, latest_log_block, total_logs for every indexed chain"""
        return await self._all_rows(LOG_TOTALS_SQL)
