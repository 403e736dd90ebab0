"""
Account Repository - API keys and customer usage (frontend DB)
"""
from typing import List

from sqlalchemy import func, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from goldenaxe_admin.database.models.api_key import DBApiKey


class ApiKeyRepository:
    """Repository for the api_keys table"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_keys(self) -> List[DBApiKey]:
        result = await self.session.execute(select(DBApiKey).order_by(DBApiKey.created_at.desc()))
        return list(result.scalars().all())

    async def create(self, owner_email: str, secret: str, origins: List[str]) -> DBApiKey:
        key = DBApiKey(owner_email=owner_email, secret=secret, origins=origins)
        self.session.add(key)
        await self.session.commit()
        await self.session.refresh(key)
        return key

    async def soft_delete(self, secret: str) -> bool:
        """Stamp deleted_at; a key revoked earlier keeps its first timestamp"""
        result = await self.session.execute(
            update(DBApiKey)
            .where(DBApiKey.secret == secret)
            .values(deleted_at=func.coalesce(DBApiKey.deleted_at, func.now()))
        )
        await self.session.commit()
        return result.rowcount > 0


USERS_SQL = text("""
    WITH user_plans AS (
        SELECT DISTINCT ON (owner_email)
            owner_email,
            name AS plan_name,
            rate,
            timeout,
            connections,
            queries,
            created_at AS plan_date
        FROM plan_changes
        WHERE daimo_tx IS NOT NULL OR stripe_customer IS NOT NULL
        ORDER BY owner_email, created_at DESC
    ),
    user_keys AS (
        SELECT owner_email, count(1) AS key_count
        FROM api_keys
        WHERE deleted_at IS NULL
        GROUP BY owner_email
    ),
    user_usage AS (
        SELECT owner_email, sum(n) AS total_queries, max(day) AS last_active
        FROM daily_user_queries
        WHERE day >= now() - interval '30 days'
        GROUP BY owner_email
    )
    SELECT
        COALESCE(p.owner_email, k.owner_email) AS email,
        p.plan_name,
        p.rate,
        p.timeout,
        p.connections,
        p.queries AS query_limit,
        p.plan_date,
        COALESCE(k.key_count, 0) AS key_count,
        COALESCE(u.total_queries, 0) AS queries_30d,
        u.last_active
    FROM user_plans p
    FULL OUTER JOIN user_keys k ON p.owner_email = k.owner_email
    LEFT JOIN user_usage u ON COALESCE(p.owner_email, k.owner_email) = u.owner_email
    ORDER BY COALESCE(p.plan_date, now()) DESC
""")

USER_KEYS_SQL = text("""
    SELECT secret, origins, created_at, deleted_at
    FROM api_keys
    WHERE owner_email = :email
    ORDER BY created_at DESC
""")

USER_PLANS_SQL = text("""
    SELECT name, amount, rate, timeout, connections, queries, created_at, daimo_tx, stripe_customer
    FROM plan_changes
    WHERE owner_email = :email
    ORDER BY created_at DESC
""")

USER_USAGE_SQL = text("""
    SELECT day, n AS queries
    FROM daily_user_queries
    WHERE owner_email = :email
    ORDER BY day DESC
    LIMIT 30
""")

USER_COLLABS_SQL = text("""
    SELECT email, created_at, disabled_at
    FROM collabs
    WHERE owner_email = :email
    ORDER BY created_at DESC
""")


class UserRepository:
    """Read-only view over plans, keys and daily usage"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _rows(self, statement, **params) -> List[dict]:
        result = await self.session.execute(statement, params)
        return [dict(row) for row in result.mappings().all()]

    async def list_users(self) -> List[dict]:
        """One row per customer: latest paid plan, live key count, last 30 days of queries"""
        return await self._rows(USERS_SQL)

    async def get_user(self, email: str) -> dict:
        # One session, so the four reads run one after another
        return {
            "keys": await self._rows(USER_KEYS_SQL, email=email),
            "plans": await self._rows(USER_PLANS_SQL, email=email),
            "usage": await self._rows(USER_USAGE_SQL, email=email),
            "collabs": await self._rows(USER_COLLABS_SQL, email=email),
        }
