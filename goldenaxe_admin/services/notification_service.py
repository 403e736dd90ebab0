"""
Notification Dispatcher
New warning/critical alerts are queued by the alert store and delivered by a
background worker to every enabled, subscribed channel
"""
import asyncio
import logging
import time
from typing import Callable, Dict, Optional

import httpx

from goldenaxe_admin.api.models.alert import Alert
from goldenaxe_admin.api.models.api_models import DeliveryResult, DeliveryResults, SendResponse, SentCounts
from goldenaxe_admin.config import NOTIFICATION_COOLDOWN_SECONDS, POSTMARK_KEY
from goldenaxe_admin.services.channels import DeliveryContext

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Fans an alert out to channels

    - enqueue(): non-blocking handoff used by the alert store
    - dispatch(): cooldown-gated delivery (what the worker runs)
    - deliver(): immediate delivery, no cooldown (manual send endpoint)
    """

    def __init__(
        self,
        store,
        client: httpx.AsyncClient,
        cooldown_seconds: float = NOTIFICATION_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        postmark_key: Optional[str] = POSTMARK_KEY
    ):
        self.store = store
        self.context = DeliveryContext(client=client, store=store, postmark_key=postmark_key)
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self._cooldowns: Dict[str, float] = {}
        self._queue: "asyncio.Queue[Alert]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------------
    # Worker lifecycle
    # ------------------------------------------------------------------------

    def enqueue(self, alert: Alert):
        self._queue.put_nowait(alert)

    def start(self):
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
            logger.info("✅ Notification dispatcher started")

    async def stop(self):
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Notification dispatcher stopped")

    async def drain(self):
        """Wait until every queued alert has been processed"""
        await self._queue.join()

    async def _run(self):
        while True:
            alert = await self._queue.get()
            try:
                await self.dispatch(alert)
            except Exception as e:
                # Never let one alert kill the worker
                logger.error(f"❌ Notification dispatch failed for {alert.id}: {e}")
            finally:
                self._queue.task_done()

    # ------------------------------------------------------------------------
    # Cooldown
    # ------------------------------------------------------------------------

    def _claim(self, key: str) -> bool:
        """Reserve the cooldown slot for key; False while a previous one is still active"""
        now = self.clock()
        self._cooldowns = {k: expiry for k, expiry in self._cooldowns.items() if expiry > now}
        if key in self._cooldowns:
            return False
        self._cooldowns[key] = now + self.cooldown_seconds
        return True

    def in_cooldown(self, alert: Alert) -> bool:
        expiry = self._cooldowns.get(alert.notification_key)
        return expiry is not None and expiry > self.clock()

    # ------------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------------

    async def dispatch(self, alert: Alert) -> Optional[SendResponse]:
        """None when suppressed by the cooldown"""
        key = alert.notification_key
        if not self._claim(key):
            logger.debug(f"🔕 Notification suppressed (cooldown): {key}")
            return None
        return await self.deliver(alert)

    async def deliver(self, alert: Alert) -> SendResponse:
        channels = await self.store.enabled_channels()
        targets = [c for c in channels if c.subscribes_to(alert.type.value)]

        results = await asyncio.gather(*(self._deliver_one(channel, alert) for channel in targets))

        webhooks = [r for c, r in zip(targets, results) if c.kind == "webhook"]
        emails = [r for c, r in zip(targets, results) if c.kind == "email"]

        response = SendResponse(
            success=True,
            sent=SentCounts(
                webhooks=sum(1 for r in webhooks if r.success),
                emails=sum(1 for r in emails if r.success),
            ),
            results=DeliveryResults(webhooks=webhooks, emails=emails),
        )
        logger.info(
            f"📣 Alert {alert.type.value} sent to {response.sent.webhooks}/{len(webhooks)} webhooks, "
            f"{response.sent.emails}/{len(emails)} emails"
        )
        return response

    async def _deliver_one(self, channel, alert: Alert) -> DeliveryResult:
        try:
            return await channel.deliver(alert, self.context)
        except Exception as e:
            logger.error(f"❌ Channel '{channel.name}' crashed: {e}")
            return DeliveryResult(name=channel.name, success=False, error=str(e))
