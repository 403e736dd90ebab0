"""
Notification Routes - channel/rule settings and manual send
"""
import uuid
from datetime import datetime, timezone
from typing import Union

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from goldenaxe_admin.api.models.alert import Alert
from goldenaxe_admin.api.models.api_models import (
    ActionResult,
    ManualAlert,
    NotificationAction,
    NotificationSettings,
    SendResponse,
    WebhookTestResult,
)
from goldenaxe_admin.database.postgres_client import get_fe_db
from goldenaxe_admin.repositories.notification_repository import NotificationRepository
from goldenaxe_admin.repositories.rule_repository import RuleRepository
from goldenaxe_admin.services.notification_service import NotificationDispatcher
from goldenaxe_admin.services.settings_service import SettingsService
from goldenaxe_admin.state import AppState, get_state

notifications_router = APIRouter(prefix="/notifications", tags=["notifications"])


async def get_settings_service(
    state: AppState = Depends(get_state),
    db: AsyncSession = Depends(get_fe_db)
) -> SettingsService:
    return SettingsService(NotificationRepository(db), RuleRepository(db), state.client)


def get_dispatcher(state: AppState = Depends(get_state)) -> NotificationDispatcher:
    return state.dispatcher


# ============================================================================
# SETTINGS
# ============================================================================

@notifications_router.get("", response_model=NotificationSettings)
async def get_notification_settings(service: SettingsService = Depends(get_settings_service)):
    """Webhooks, emails, rules and the type catalogues for the settings form"""
    return await service.get_settings()


@notifications_router.post("", response_model=None)
async def notification_action(
    action: NotificationAction,
    service: SettingsService = Depends(get_settings_service)
) -> Union[ActionResult, WebhookTestResult]:
    """
    Body action:
    - add_webhook / add_email / add_rule
    - toggle_webhook / toggle_email / toggle_rule (id, enabled)
    - delete_webhook / delete_email / delete_rule (id)
    - test_webhook (url)
    """
    result = await service.apply_action(action)

    if result is None:
        raise HTTPException(status_code=404, detail=f"{action.action}: id {action.id} not found")

    return result


# ============================================================================
# MANUAL SEND
# ============================================================================

@notifications_router.post("/send", response_model=SendResponse)
async def send_notification(
    body: ManualAlert,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Deliver an alert to every subscribed channel now (no cooldown)"""
    timestamp = body.timestamp or datetime.now(timezone.utc)
    alert = Alert(
        **body.model_dump(exclude={"timestamp"}),
        id=f"manual-{int(timestamp.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}",
        timestamp=timestamp,
    )
    return await dispatcher.deliver(alert)
