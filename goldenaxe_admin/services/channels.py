"""
Notification channels
Channel = WebhookChannel | EmailChannel, each with deliver(alert) -> DeliveryResult
A channel never raises: failures come back in the result and in its bookkeeping
"""
import html
import logging
from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

import httpx
from pydantic import BaseModel, Field

from goldenaxe_admin.api.models.alert import Alert, Severity
from goldenaxe_admin.api.models.api_models import DeliveryResult
from goldenaxe_admin.config import (
    ALERT_EMAIL_FROM,
    ALERT_SOURCE,
    POSTMARK_KEY,
    POSTMARK_URL,
    WEBHOOK_TIMEOUT_SECONDS,
)
from goldenaxe_admin.probes.rpc import redact_url
from goldenaxe_admin.utils.best_effort import best_effort

logger = logging.getLogger(__name__)

SEVERITY_COLORS = {
    Severity.CRITICAL: "#dc3545",
    Severity.WARNING: "#ffc107",
    Severity.INFO: "#17a2b8",
}


class DeliveryContext:
    """What a channel needs to deliver: HTTP client, bookkeeping store, provider config"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        store,
        postmark_key: Optional[str] = POSTMARK_KEY,
        postmark_url: str = POSTMARK_URL,
        email_from: str = ALERT_EMAIL_FROM
    ):
        self.client = client
        self.store = store
        self.postmark_key = postmark_key
        self.postmark_url = postmark_url
        self.email_from = email_from


class BaseChannel(BaseModel):
    id: int
    name: str
    events: List[str] = Field(default_factory=list)

    def subscribes_to(self, alert_type: str) -> bool:
        """Empty events means every alert type"""
        return not self.events or alert_type in self.events


# ============================================================================
# Webhook
# ============================================================================

def build_webhook_payload(alert: Alert, webhook_name: str) -> dict:
    """Fixed envelope POSTed to every webhook"""
    return {
        "source": ALERT_SOURCE,
        "alert": {
            "type": alert.type.value,
            "severity": alert.severity.value,
            "chain": alert.chain,
            "chainName": alert.chain_name,
            "message": alert.message,
            "details": alert.details,
            "timestamp": alert.timestamp.isoformat(),
        },
        "webhook_name": webhook_name,
        "sent_at": datetime.now(timezone.utc).isoformat(),
    }


class WebhookChannel(BaseChannel):
    kind: Literal["webhook"] = "webhook"
    url: str

    async def deliver(self, alert: Alert, context: DeliveryContext) -> DeliveryResult:
        try:
            response = await context.client.post(
                self.url,
                json=build_webhook_payload(alert, self.name),
                headers={
                    "X-Alert-Type": alert.type.value,
                    "X-Alert-Severity": alert.severity.value,
                },
                timeout=WEBHOOK_TIMEOUT_SECONDS,
            )
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.warning(f"⚠️ Webhook '{self.name}' ({redact_url(self.url)}) failed: {error}")
            await best_effort(context.store.mark_webhook_error(self.id, error), f"webhook {self.id} error update")
            return DeliveryResult(name=self.name, success=False, error=error)

        if response.is_success:
            await best_effort(context.store.mark_webhook_success(self.id), f"webhook {self.id} success update")
            logger.info(f"📨 Webhook '{self.name}' notified: {alert.type.value}")
            return DeliveryResult(name=self.name, success=True)

        error = f"HTTP {response.status_code}"
        logger.warning(f"⚠️ Webhook '{self.name}' returned {error}")
        await best_effort(context.store.mark_webhook_error(self.id, error), f"webhook {self.id} error update")
        return DeliveryResult(name=self.name, success=False, error=error)


# ============================================================================
# Email
# ============================================================================

def build_email_subject(alert: Alert) -> str:
    return f"[{alert.severity.value.upper()}] Golden Axe Alert: {alert.message}"


def build_email_text(alert: Alert) -> str:
    lines = [
        f"Alert Type: {alert.type.value}",
        f"Severity: {alert.severity.value}",
    ]
    if alert.chain_name:
        lines.append(f"Chain: {alert.chain_name}")
    lines.append(f"Message: {alert.message}")
    if alert.details:
        lines.append(f"Details: {alert.details}")
    lines.append(f"Time: {alert.timestamp.isoformat()}")
    lines.extend(["", "---", "Golden Axe Admin Panel"])
    return "\n".join(lines)


def build_email_html(alert: Alert) -> str:
    """Severity-colored heading plus a detail table"""
    cell = 'style="padding: 8px; border: 1px solid #ddd;"'
    rows = [("Type", alert.type.value), ("Severity", alert.severity.value)]
    if alert.chain_name:
        rows.append(("Chain", alert.chain_name))
    if alert.details:
        rows.append(("Details", alert.details))
    rows.append(("Time", alert.timestamp.isoformat()))

    table_rows = "\n".join(
        f"  <tr><td {cell}><strong>{label}:</strong></td><td {cell}>{html.escape(str(value))}</td></tr>"
        for label, value in rows
    )
    color = SEVERITY_COLORS.get(alert.severity, SEVERITY_COLORS[Severity.INFO])
    return (
        f'<h2 style="color: {color}">\n'
        f"  [{alert.severity.value.upper()}] {html.escape(alert.message)}\n"
        f"</h2>\n"
        f'<table style="border-collapse: collapse; margin: 20px 0;">\n'
        f"{table_rows}\n"
        f"</table>\n"
        f'<p style="color: #666; font-size: 12px;">Golden Axe Admin Panel</p>'
    )


class EmailChannel(BaseChannel):
    kind: Literal["email"] = "email"
    email: str

    async def deliver(self, alert: Alert, context: DeliveryContext) -> DeliveryResult:
        logger.info(f"📧 [EMAIL] To: {self.email}, Subject: [{alert.severity.value.upper()}] {alert.message}")

        if not context.postmark_key:
            # No provider configured: bookkeeping only, reported as sent
            await best_effort(context.store.mark_email_sent(self.id), f"email {self.id} sent update")
            return DeliveryResult(name=self.name, success=True)

        try:
            response = await context.client.post(
                context.postmark_url,
                json={
                    "From": context.email_from,
                    "To": self.email,
                    "Subject": build_email_subject(alert),
                    "TextBody": build_email_text(alert),
                    "HtmlBody": build_email_html(alert),
                },
                headers={
                    "Accept": "application/json",
                    "X-Postmark-Server-Token": context.postmark_key,
                },
                timeout=WEBHOOK_TIMEOUT_SECONDS,
            )
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.warning(f"⚠️ Email to {self.email} failed: {error}")
            return DeliveryResult(name=self.name, success=False, error=error)

        if not response.is_success:
            error = f"Postmark error: {response.status_code}"
            logger.warning(f"⚠️ Email to {self.email} failed: {error}")
            return DeliveryResult(name=self.name, success=False, error=error)

        await best_effort(context.store.mark_email_sent(self.id), f"email {self.id} sent update")
        return DeliveryResult(name=self.name, success=True)


Channel = Annotated[Union[WebhookChannel, EmailChannel], Field(discriminator="kind")]
