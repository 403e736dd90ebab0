"""
Postgres internal statistics probe
Runs once per tracked database; every sub-query fails on its own
"""
import asyncio
import logging
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from goldenaxe_admin.api.models.health import ConnectionStats, DatabaseStats, LongQuery
from goldenaxe_admin.config import LONG_QUERY_LIMIT
from goldenaxe_admin.utils.numbers import cache_hit_ratio, connection_usage_percent

logger = logging.getLogger(__name__)


CONNECTIONS_SQL = text("""
    SELECT
        count(*) FILTER (WHERE state = 'active')::int AS active,
        count(*) FILTER (WHERE state = 'idle')::int AS idle,
        (SELECT setting::int FROM pg_settings WHERE name = 'max_connections') AS max_connections
    FROM pg_stat_activity
    WHERE datname = current_database()
""")

DATABASE_SQL = text("""
    SELECT blks_hit, blks_read, deadlocks
    FROM pg_stat_database
    WHERE datname = current_database()
""")

SIZE_SQL = text("""
    SELECT pg_database_size(current_database()) AS size_bytes,
           pg_size_pretty(pg_database_size(current_database())) AS size
""")

LONG_QUERIES_SQL = text("""
    SELECT
        pid,
        EXTRACT(EPOCH FROM (now() - query_start))::float AS duration_seconds,
        state,
        left(query, 200) AS query
    FROM pg_stat_activity
    WHERE state IS NOT NULL
      AND state != 'idle'
      AND query_start < now() - CAST(:threshold AS INTEGER) * interval '1 second'
      AND pid != pg_backend_pid()
      AND query NOT ILIKE '%pg_stat_activity%'
    ORDER BY query_start
    LIMIT :limit
""")


class PostgresStatsProbe:
    """Reads pg_stat_activity / pg_stat_database / pg_settings for one database"""

    def __init__(self, name: str, engine: AsyncEngine):
        self.name = name
        self.engine = engine

    async def collect(self, long_query_seconds: int) -> DatabaseStats:
        """Whatever succeeded plus defaults for what failed"""
        stats = DatabaseStats(name=self.name)

        connections, database, size, long_queries = await asyncio.gather(
            self._guard("connections", self.fetch_connections()),
            self._guard("cache", self.fetch_database_counters()),
            self._guard("size", self.fetch_size()),
            self._guard("long_queries", self.fetch_long_queries(long_query_seconds)),
        )

        errors = {}
        for label, result in (
            ("connections", connections),
            ("cache", database),
            ("size", size),
            ("long_queries", long_queries),
        ):
            if isinstance(result, Exception):
                errors[label] = str(result)

        if not isinstance(connections, Exception):
            stats.connections = connections
        if not isinstance(database, Exception):
            stats.cache_hit_ratio = cache_hit_ratio(database["blks_hit"], database["blks_read"])
            stats.deadlocks = database["deadlocks"]
        if not isinstance(size, Exception):
            stats.size_bytes, stats.size = size
        if not isinstance(long_queries, Exception):
            stats.long_queries = long_queries

        stats.errors = errors
        return stats

    async def _guard(self, label: str, coro):
        try:
            return await coro
        except Exception as e:
            logger.warning(f"⚠️ [{self.name}] {label} stats failed: {e}")
            return e

    # ------------------------------------------------------------------------
    # Sub-queries
    # ------------------------------------------------------------------------

    async def _fetch_one(self, statement, params: Optional[dict] = None):
        async with self.engine.connect() as conn:
            result = await conn.execute(statement, params or {})
            return result.mappings().first()

    async def fetch_connections(self) -> ConnectionStats:
        row = await self._fetch_one(CONNECTIONS_SQL)
        active = int(row["active"] or 0) if row else 0
        idle = int(row["idle"] or 0) if row else 0
        max_connections = int(row["max_connections"] or 0) if row else 0
        return ConnectionStats(
            active=active,
            idle=idle,
            max_connections=max_connections,
            usage_percent=connection_usage_percent(active, idle, max_connections),
        )

    async def fetch_database_counters(self) -> dict:
        row = await self._fetch_one(DATABASE_SQL)
        if not row:
            return {"blks_hit": 0, "blks_read": 0, "deadlocks": 0}
        return {
            "blks_hit": int(row["blks_hit"] or 0),
            "blks_read": int(row["blks_read"] or 0),
            "deadlocks": int(row["deadlocks"] or 0),
        }

    async def fetch_size(self):
        row = await self._fetch_one(SIZE_SQL)
        if not row:
            return None, None
        return int(row["size_bytes"]), row["size"]

    async def fetch_long_queries(self, threshold_seconds: int) -> List[LongQuery]:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                LONG_QUERIES_SQL,
                {"threshold": threshold_seconds, "limit": LONG_QUERY_LIMIT}
            )
            rows = result.mappings().all()

        return [
            LongQuery(
                pid=row["pid"],
                duration_seconds=round(float(row["duration_seconds"] or 0), 1),
                state=row["state"],
                query=row["query"] or "",
            )
            for row in rows
        ]
