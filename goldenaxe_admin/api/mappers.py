"""
Mappers to convert between DB models and API/domain models
DB (SQLAlchemy) → API (Pydantic)
"""
from goldenaxe_admin.database.models.alert_rule import DBAlertRule
from goldenaxe_admin.database.models.api_key import DBApiKey
from goldenaxe_admin.database.models.chain_config import DBChainConfig
from goldenaxe_admin.database.models.notification import DBWebhook, DBEmail
from goldenaxe_admin.api.models.api_models import (
    AlertRule,
    ApiKey,
    EmailResponse,
    NetworkConfig,
    UserKey,
    WebhookResponse,
)
from goldenaxe_admin.services.channels import WebhookChannel, EmailChannel


def map_rule_to_api(db_rule: DBAlertRule) -> AlertRule:
    return AlertRule.model_validate(db_rule)


def map_webhook_to_api(db_webhook: DBWebhook) -> WebhookResponse:
    return WebhookResponse(
        id=db_webhook.id,
        name=db_webhook.name,
        url=db_webhook.url,
        enabled=bool(db_webhook.enabled),
        events=list(db_webhook.events or []),
        created_at=db_webhook.created_at,
        last_triggered_at=db_webhook.last_triggered_at,
        last_error=db_webhook.last_error
    )


def map_email_to_api(db_email: DBEmail) -> EmailResponse:
    return EmailResponse(
        id=db_email.id,
        name=db_email.name,
        email=db_email.email,
        enabled=bool(db_email.enabled),
        events=list(db_email.events or []),
        created_at=db_email.created_at,
        last_sent_at=db_email.last_sent_at
    )


def map_network_to_api(db_config: DBChainConfig) -> NetworkConfig:
    return NetworkConfig.model_validate(db_config)


def map_webhook_to_channel(db_webhook: DBWebhook) -> WebhookChannel:
    """DBWebhook → deliverable channel"""
    return WebhookChannel(
        id=db_webhook.id,
        name=db_webhook.name,
        url=db_webhook.url,
        events=list(db_webhook.events or [])
    )


def map_email_to_channel(db_email: DBEmail) -> EmailChannel:
    """DBEmail → deliverable channel"""
    return EmailChannel(
        id=db_email.id,
        name=db_email.name,
        email=db_email.email,
        events=list(db_email.events or [])
    )


def map_api_key_to_api(db_key: DBApiKey) -> ApiKey:
    return ApiKey(
        owner_email=db_key.owner_email,
        secret=db_key.secret,
        origins=list(db_key.origins or []),
        created_at=db_key.created_at,
        deleted_at=db_key.deleted_at
    )


def map_user_key_row(row: dict) -> UserKey:
    """api_keys row from the per-user query (origins may be NULL)"""
    return UserKey(**{**row, "origins": list(row.get("origins") or [])})
