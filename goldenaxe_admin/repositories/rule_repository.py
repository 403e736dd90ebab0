"""
Alert Rule Repository - Data access layer for alert_rules
"""
import asyncio
from typing import List, Set

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from goldenaxe_admin.database.models.alert_rule import DBAlertRule
from goldenaxe_admin.utils.best_effort import best_effort


class RuleRepository:
    """Repository for user-defined alert rules"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_rules(self) -> List[DBAlertRule]:
        query = select(DBAlertRule).order_by(DBAlertRule.created_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_enabled(self) -> List[DBAlertRule]:
        """Only enabled rules take part in a check pass"""
        query = select(DBAlertRule).where(DBAlertRule.enabled.is_(True)).order_by(DBAlertRule.id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        name: str,
        type: str,
        chain,
        threshold: float,
        comparison: str = "gt",
        severity: str = "warning"
    ) -> DBAlertRule:
        rule = DBAlertRule(
            name=name,
            type=type,
            chain=chain,
            threshold=threshold,
            comparison=comparison,
            severity=severity,
            enabled=True,
        )
        self.session.add(rule)
        await self.session.commit()
        await self.session.refresh(rule)
        return rule

    async def set_enabled(self, rule_id: int, enabled: bool) -> bool:
        """Returns False when the rule doesn't exist"""
        result = await self.session.execute(
            update(DBAlertRule).where(DBAlertRule.id == rule_id).values(enabled=enabled)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def delete(self, rule_id: int) -> bool:
        result = await self.session.execute(delete(DBAlertRule).where(DBAlertRule.id == rule_id))
        await self.session.commit()
        return result.rowcount > 0

    async def touch_triggered(self, rule_id: int):
        """Stamp last_triggered_at"""
        await self.session.execute(
            update(DBAlertRule).where(DBAlertRule.id == rule_id).values(last_triggered_at=func.now())
        )
        await self.session.commit()


class RuleTriggerRecorder:
    """
    last_triggered_at stamps for fired rules, written in the background
    One task and one short session per write; the check pass never waits on it
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self._pending: Set[asyncio.Task] = set()

    def record(self, rule_id: int):
        task = asyncio.create_task(
            best_effort(self._touch(rule_id), f"rule {rule_id} last_triggered_at update"),
            name=f"rule-{rule_id}-triggered",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _touch(self, rule_id: int):
        async with self.session_factory() as session:
            await RuleRepository(session).touch_triggered(rule_id)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self):
        """Wait for outstanding writes (shutdown, tests)"""
        if self._pending:
            await asyncio.gather(*list(self._pending))
