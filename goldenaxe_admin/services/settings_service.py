"""
Notification Settings Service - channels and alert rules CRUD
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Union

import httpx

from goldenaxe_admin.api.mappers import map_email_to_api, map_rule_to_api, map_webhook_to_api
from goldenaxe_admin.api.models.alert import AlertType
from goldenaxe_admin.api.models.api_models import (
    ActionResult,
    AddEmailAction,
    AddRuleAction,
    AddWebhookAction,
    CatalogEntry,
    DeleteAction,
    NotificationSettings,
    ToggleAction,
    WebhookTestAction,
    WebhookTestResult,
)
from goldenaxe_admin.config import WEBHOOK_TIMEOUT_SECONDS
from goldenaxe_admin.database.models.notification import DBEmail, DBWebhook
from goldenaxe_admin.probes.rpc import redact_url
from goldenaxe_admin.repositories.notification_repository import NotificationRepository
from goldenaxe_admin.repositories.rule_repository import RuleRepository

logger = logging.getLogger(__name__)


EVENT_TYPES = [
    CatalogEntry(value=AlertType.SYNC_BEHIND.value, label="Sync Behind"),
    CatalogEntry(value=AlertType.SYNC_STALLED.value, label="Sync Stalled"),
    CatalogEntry(value=AlertType.RPC_ERROR.value, label="RPC Error"),
    CatalogEntry(value=AlertType.BACKEND_DOWN.value, label="Backend Down"),
    CatalogEntry(value=AlertType.BACKEND_SLOW.value, label="Backend Slow"),
    CatalogEntry(value=AlertType.DB_CONNECTIONS.value, label="DB Connections"),
    CatalogEntry(value=AlertType.DB_CACHE.value, label="DB Cache Hit Ratio"),
    CatalogEntry(value=AlertType.DB_LONG_QUERY.value, label="DB Long Query"),
    CatalogEntry(value=AlertType.DB_DEADLOCK.value, label="DB Deadlock"),
    CatalogEntry(value=AlertType.CUSTOM.value, label="Custom Rule"),
]

RULE_TYPES = [
    CatalogEntry(value="sync_behind", label="Blocks Behind", unit="blocks"),
    CatalogEntry(value="rpc_latency", label="RPC Latency", unit="ms"),
    CatalogEntry(value="db_connections", label="DB Connection Usage", unit="%"),
    CatalogEntry(value="db_cache", label="DB Cache Hit Ratio", unit="%"),
    CatalogEntry(value="backend_latency", label="Backend Latency", unit="ms"),
]

CHANNEL_MODELS = {
    "webhook": DBWebhook,
    "email": DBEmail,
}


class SettingsService:
    """Service for notification settings"""

    def __init__(
        self,
        repository: NotificationRepository,
        rule_repository: RuleRepository,
        client: httpx.AsyncClient
    ):
        self.repository = repository
        self.rule_repository = rule_repository
        self.client = client

    async def get_settings(self) -> NotificationSettings:
        webhooks = await self.repository.list_webhooks()
        emails = await self.repository.list_emails()
        rules = await self.rule_repository.list_rules()

        return NotificationSettings(
            webhooks=[map_webhook_to_api(w) for w in webhooks],
            emails=[map_email_to_api(e) for e in emails],
            rules=[map_rule_to_api(r) for r in rules],
            event_types=EVENT_TYPES,
            rule_types=RULE_TYPES,
        )

    async def apply_action(self, action) -> Optional[Union[ActionResult, WebhookTestResult]]:
        """None when a toggle/delete targets a missing entity"""
        if isinstance(action, AddWebhookAction):
            webhook = await self.repository.add_webhook(action.name, str(action.url), action.events)
            logger.info(f"✅ Webhook '{webhook.name}' added ({redact_url(webhook.url)})")
            return ActionResult(id=webhook.id)

        if isinstance(action, AddEmailAction):
            channel = await self.repository.add_email(action.name, action.email, action.events)
            logger.info(f"✅ Email channel '{channel.name}' added")
            return ActionResult(id=channel.id)

        if isinstance(action, AddRuleAction):
            rule = await self.rule_repository.create(
                name=action.name,
                type=action.type,
                chain=action.chain,
                threshold=action.threshold,
                comparison=action.comparison,
                severity=action.severity,
            )
            logger.info(f"✅ Alert rule '{rule.name}' added ({rule.type} {rule.comparison} {rule.threshold})")
            return ActionResult(id=rule.id)

        if isinstance(action, ToggleAction):
            target = action.action.removeprefix("toggle_")
            if target == "rule":
                found = await self.rule_repository.set_enabled(action.id, action.enabled)
            else:
                found = await self.repository.set_enabled(CHANNEL_MODELS[target], action.id, action.enabled)
            return ActionResult() if found else None

        if isinstance(action, DeleteAction):
            target = action.action.removeprefix("delete_")
            if target == "rule":
                found = await self.rule_repository.delete(action.id)
            else:
                found = await self.repository.delete(CHANNEL_MODELS[target], action.id)
            if found:
                logger.info(f"🗑️ Deleted {target} {action.id}")
            return ActionResult() if found else None

        if isinstance(action, WebhookTestAction):
            return await self.test_webhook(str(action.url))

        raise ValueError(f"Unsupported action: {action!r}")

    async def test_webhook(self, url: str) -> WebhookTestResult:
        """POST a test payload; the outcome is reported, never raised"""
        try:
            response = await self.client.post(
                url,
                json={
                    "type": "test",
                    "message": "Test notification from Golden Axe Admin",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
                timeout=WEBHOOK_TIMEOUT_SECONDS,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"⚠️ Test webhook {redact_url(url)} failed: {e!r}")
            return WebhookTestResult(success=False, error=str(e) or type(e).__name__)

        return WebhookTestResult(success=response.is_success, status=response.status_code)
