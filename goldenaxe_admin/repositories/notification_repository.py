"""
Notification Repository - webhooks and email channels (frontend DB)
"""
from typing import List

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from goldenaxe_admin.api.mappers import map_email_to_channel, map_webhook_to_channel
from goldenaxe_admin.database.models.notification import DBWebhook, DBEmail


class NotificationRepository:
    """Repository for notification channels"""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------------

    async def list_webhooks(self) -> List[DBWebhook]:
        result = await self.session.execute(select(DBWebhook).order_by(DBWebhook.created_at.desc()))
        return list(result.scalars().all())

    async def list_emails(self) -> List[DBEmail]:
        result = await self.session.execute(select(DBEmail).order_by(DBEmail.created_at.desc()))
        return list(result.scalars().all())

    async def enabled_webhooks(self) -> List[DBWebhook]:
        result = await self.session.execute(select(DBWebhook).where(DBWebhook.enabled.is_(True)))
        return list(result.scalars().all())

    async def enabled_emails(self) -> List[DBEmail]:
        result = await self.session.execute(select(DBEmail).where(DBEmail.enabled.is_(True)))
        return list(result.scalars().all())

    # ------------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------------

    async def add_webhook(self, name: str, url: str, events: List[str]) -> DBWebhook:
        webhook = DBWebhook(name=name, url=url, events=events, enabled=True)
        self.session.add(webhook)
        await self.session.commit()
        await self.session.refresh(webhook)
        return webhook

    async def add_email(self, name: str, email: str, events: List[str]) -> DBEmail:
        channel = DBEmail(name=name, email=email, events=events, enabled=True)
        self.session.add(channel)
        await self.session.commit()
        await self.session.refresh(channel)
        return channel

    async def set_enabled(self, model, channel_id: int, enabled: bool) -> bool:
        result = await self.session.execute(
            update(model).where(model.id == channel_id).values(enabled=enabled)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def delete(self, model, channel_id: int) -> bool:
        result = await self.session.execute(delete(model).where(model.id == channel_id))
        await self.session.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------------
    # Delivery bookkeeping
    # ------------------------------------------------------------------------

    async def mark_webhook_success(self, webhook_id: int):
        await self.session.execute(
            update(DBWebhook)
            .where(DBWebhook.id == webhook_id)
            .values(last_triggered_at=func.now(), last_error=None)
        )
        await self.session.commit()

    async def mark_webhook_error(self, webhook_id: int, error: str):
        await self.session.execute(
            update(DBWebhook).where(DBWebhook.id == webhook_id).values(last_error=error)
        )
        await self.session.commit()

    async def mark_email_sent(self, email_id: int):
        await self.session.execute(
            update(DBEmail).where(DBEmail.id == email_id).values(last_sent_at=func.now())
        )
        await self.session.commit()


class ChannelStore:
    """
    Channel access for the background dispatcher
    Opens a short session per call so concurrent deliveries never share one
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def enabled_channels(self) -> list:
        async with self.session_factory() as session:
            repository = NotificationRepository(session)
            webhooks = await repository.enabled_webhooks()
            emails = await repository.enabled_emails()

        return [map_webhook_to_channel(w) for w in webhooks] + [map_email_to_channel(e) for e in emails]

    async def mark_webhook_success(self, webhook_id: int):
        async with self.session_factory() as session:
            await NotificationRepository(session).mark_webhook_success(webhook_id)

    async def mark_webhook_error(self, webhook_id: int, error: str):
        async with self.session_factory() as session:
            await NotificationRepository(session).mark_webhook_error(webhook_id, error)

    async def mark_email_sent(self, email_id: int):
        async with self.session_factory() as session:
            await NotificationRepository(session).mark_email_sent(email_id)
