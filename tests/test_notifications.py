"""
Tests for notification channels and the dispatcher
Outbound HTTP goes through httpx.MockTransport
"""
import json
import pytest
from datetime import datetime, timezone

import httpx

from goldenaxe_admin.api.models.alert import Alert, AlertType, Severity
from goldenaxe_admin.services.channels import (
    DeliveryContext,
    EmailChannel,
    WebhookChannel,
    build_email_html,
    build_email_subject,
    build_webhook_payload,
)
from goldenaxe_admin.services.notification_service import NotificationDispatcher
from tests.conftest import FakeChannelStore


def make_alert(type: AlertType = AlertType.SYNC_BEHIND, severity: Severity = Severity.CRITICAL,
               chain=1, alert_id: str = "alert-1717243200000-abcdef123") -> Alert:
    return Alert(
        id=alert_id,
        type=type,
        severity=severity,
        chain=chain,
        chain_name="Ethereum" if chain else None,
        message="Chain is 1,500 blocks behind",
        details="Synced: 19,000,000, Head: 19,001,500",
        timestamp=datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc),
    )


class Recorder:
    """MockTransport handler that records requests and answers per host"""

    def __init__(self, statuses=None, fail_hosts=()):
        self.statuses = statuses or {}
        self.fail_hosts = set(fail_hosts)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host in self.fail_hosts:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(self.statuses.get(request.url.host, 200), json={"ok": True})

    def hosts(self):
        return [r.url.host for r in self.requests]


# ============================================================================
# Channels
# ============================================================================

class TestWebhookChannel:

    def test_payload_envelope(self):
        """✅ {source, alert:{...}, webhook_name, sent_at}."""
        payload = build_webhook_payload(make_alert(), "ops")

        assert payload["source"] == "golden-axe"
        assert payload["webhook_name"] == "ops"
        assert payload["alert"] == {
            "type": "sync_behind",
            "severity": "critical",
            "chain": 1,
            "chainName": "Ethereum",
            "message": "Chain is 1,500 blocks behind",
            "details": "Synced: 19,000,000, Head: 19,001,500",
            "timestamp": "2024-06-01T12:00:00+00:00",
        }
        assert "sent_at" in payload

    @pytest.mark.asyncio
    async def test_success_marks_triggered(self):
        """✅ 2xx -> success bookkeeping and alert headers."""
        handler = Recorder()
        store = FakeChannelStore()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            channel = WebhookChannel(id=7, name="ops", url="https://hooks.example.com/ops")
            result = await channel.deliver(make_alert(), DeliveryContext(client, store))

        assert result.success is True
        assert store.successes == [7]
        request = handler.requests[0]
        assert request.headers["X-Alert-Type"] == "sync_behind"
        assert request.headers["X-Alert-Severity"] == "critical"
        assert json.loads(request.content)["webhook_name"] == "ops"

    @pytest.mark.asyncio
    async def test_non_2xx_records_error(self):
        """✅ HTTP 500 -> last_error 'HTTP 500', no exception."""
        handler = Recorder(statuses={"hooks.example.com": 500})
        store = FakeChannelStore()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            channel = WebhookChannel(id=7, name="ops", url="https://hooks.example.com/ops")
            result = await channel.deliver(make_alert(), DeliveryContext(client, store))

        assert result.success is False
        assert result.error == "HTTP 500"
        assert store.errors == {7: "HTTP 500"}

    @pytest.mark.asyncio
    async def test_transport_error_records_message(self):
        """✅ Connection failure -> last_error is the exception message."""
        handler = Recorder(fail_hosts={"hooks.example.com"})
        store = FakeChannelStore()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            channel = WebhookChannel(id=7, name="ops", url="https://hooks.example.com/ops")
            result = await channel.deliver(make_alert(), DeliveryContext(client, store))

        assert result.success is False
        assert result.error == "connection refused"
        assert store.errors[7] == "connection refused"

    @pytest.mark.asyncio
    async def test_bookkeeping_failure_is_swallowed(self):
        """✅ Failing last_triggered_at update doesn't fail delivery."""
        handler = Recorder()
        store = FakeChannelStore(fail_marks=True)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            channel = WebhookChannel(id=7, name="ops", url="https://hooks.example.com/ops")
            result = await channel.deliver(make_alert(), DeliveryContext(client, store))

        assert result.success is True

    def test_subscription(self):
        """✅ events=['sync_behind'] only; events=[] means everything."""
        scoped = WebhookChannel(id=1, name="sync", url="https://a.example.com/", events=["sync_behind"])
        catch_all = WebhookChannel(id=2, name="all", url="https://b.example.com/")

        assert scoped.subscribes_to("sync_behind") is True
        assert scoped.subscribes_to("rpc_error") is False
        assert catch_all.subscribes_to("rpc_error") is True


class TestEmailChannel:

    @pytest.mark.asyncio
    async def test_without_provider_key_marks_sent(self):
        """✅ No POSTMARK_KEY -> bookkeeping only, reported as sent, nothing posted."""
        handler = Recorder()
        store = FakeChannelStore()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            channel = EmailChannel(id=3, name="oncall", email="oncall@example.com")
            result = await channel.deliver(make_alert(), DeliveryContext(client, store, postmark_key=None))

        assert result.success is True
        assert store.emails_sent == [3]
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_postmark_request(self):
        """✅ Provider call carries token, subject and both bodies."""
        handler = Recorder()
        store = FakeChannelStore()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            context = DeliveryContext(client, store, postmark_key="pm-token",
                                      postmark_url="https://api.postmarkapp.com/email")
            channel = EmailChannel(id=3, name="oncall", email="oncall@example.com")
            result = await channel.deliver(make_alert(), context)

        assert result.success is True
        assert store.emails_sent == [3]
        request = handler.requests[0]
        assert request.headers["X-Postmark-Server-Token"] == "pm-token"
        body = json.loads(request.content)
        assert body["To"] == "oncall@example.com"
        assert body["Subject"] == "[CRITICAL] Golden Axe Alert: Chain is 1,500 blocks behind"
        assert "Chain: Ethereum" in body["TextBody"]
        assert "#dc3545" in body["HtmlBody"]

    @pytest.mark.asyncio
    async def test_postmark_error(self):
        """✅ Provider non-2xx -> failure result, not marked sent."""
        handler = Recorder(statuses={"api.postmarkapp.com": 422})
        store = FakeChannelStore()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            context = DeliveryContext(client, store, postmark_key="pm-token",
                                      postmark_url="https://api.postmarkapp.com/email")
            channel = EmailChannel(id=3, name="oncall", email="oncall@example.com")
            result = await channel.deliver(make_alert(), context)

        assert result.success is False
        assert result.error == "Postmark error: 422"
        assert store.emails_sent == []

    def test_html_is_escaped_and_colored(self):
        """✅ Warning color and escaped message."""
        alert = make_alert(severity=Severity.WARNING)
        alert.message = "<script>alert(1)</script>"

        html_body = build_email_html(alert)

        assert "#ffc107" in html_body
        assert "<script>" not in html_body
        assert build_email_subject(alert).startswith("[WARNING]")


# ============================================================================
# Dispatcher
# ============================================================================

def webhook(channel_id: int, host: str, events=None) -> WebhookChannel:
    return WebhookChannel(id=channel_id, name=host, url=f"https://{host}/hook", events=events or [])


class TestDispatcherFanOut:

    @pytest.mark.asyncio
    async def test_fan_out_respects_events(self, monotonic):
        """✅ Scoped webhook only gets its types, catch-all gets everything."""
        handler = Recorder()
        store = FakeChannelStore([
            webhook(1, "sync.example.com", events=["sync_behind"]),
            webhook(2, "all.example.com"),
        ])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = NotificationDispatcher(store, client, clock=monotonic)

            await dispatcher.dispatch(make_alert(type=AlertType.SYNC_BEHIND))
            await dispatcher.dispatch(make_alert(type=AlertType.RPC_ERROR))

        assert handler.hosts().count("sync.example.com") == 1
        assert handler.hosts().count("all.example.com") == 2

    @pytest.mark.asyncio
    async def test_channel_failure_is_isolated(self, monotonic):
        """✅ Channel X failing doesn't stop channel Y."""
        handler = Recorder(fail_hosts={"broken.example.com"})
        store = FakeChannelStore([webhook(1, "broken.example.com"), webhook(2, "good.example.com")])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = NotificationDispatcher(store, client, clock=monotonic)
            response = await dispatcher.dispatch(make_alert())

        assert response.sent.webhooks == 1
        assert store.successes == [2]
        assert 1 in store.errors and 2 not in store.errors
        assert {r.name: r.success for r in response.results.webhooks} == {
            "broken.example.com": False,
            "good.example.com": True,
        }

    @pytest.mark.asyncio
    async def test_crashing_channel_is_isolated(self, monotonic):
        """✅ A channel raising from deliver() becomes a failed result."""

        class Exploding(WebhookChannel):
            async def deliver(self, alert, context):
                raise RuntimeError("boom")

        handler = Recorder()
        store = FakeChannelStore([
            webhook(2, "good.example.com"),
            Exploding(id=9, name="exploding", url="https://x.example.com/"),
        ])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = NotificationDispatcher(store, client, clock=monotonic)
            response = await dispatcher.deliver(make_alert())

        assert response.sent.webhooks == 1
        assert {r.name: r.error for r in response.results.webhooks}["exploding"] == "boom"

    @pytest.mark.asyncio
    async def test_emails_and_webhooks_counted_separately(self, monotonic):
        handler = Recorder()
        store = FakeChannelStore([
            webhook(1, "hooks.example.com"),
            EmailChannel(id=5, name="oncall", email="oncall@example.com"),
        ])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = NotificationDispatcher(store, client, clock=monotonic, postmark_key=None)
            response = await dispatcher.deliver(make_alert())

        assert response.success is True
        assert response.sent.webhooks == 1
        assert response.sent.emails == 1
        assert store.emails_sent == [5]


class TestDispatcherCooldown:

    @pytest.mark.asyncio
    async def test_same_key_suppressed_for_ten_minutes(self, monotonic):
        """✅ (type, chain, severity) notified once per 10 minutes."""
        handler = Recorder()
        store = FakeChannelStore([webhook(1, "hooks.example.com")])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = NotificationDispatcher(store, client, clock=monotonic)

            assert await dispatcher.dispatch(make_alert(alert_id="a1")) is not None
            monotonic.advance(9 * 60)
            assert await dispatcher.dispatch(make_alert(alert_id="a2")) is None
            monotonic.advance(60)
            assert await dispatcher.dispatch(make_alert(alert_id="a3")) is not None

        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_key_includes_severity_and_chain(self, monotonic):
        """✅ Other severity, other chain or system-wide alerts have their own cooldown."""
        handler = Recorder()
        store = FakeChannelStore([webhook(1, "hooks.example.com")])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = NotificationDispatcher(store, client, clock=monotonic)

            await dispatcher.dispatch(make_alert(severity=Severity.WARNING))
            await dispatcher.dispatch(make_alert(severity=Severity.CRITICAL))
            await dispatcher.dispatch(make_alert(chain=10))
            await dispatcher.dispatch(make_alert(type=AlertType.BACKEND_DOWN, chain=None))

        assert len(handler.requests) == 4

    def test_notification_key(self):
        assert make_alert().notification_key == "sync_behind-1-critical"
        assert make_alert(type=AlertType.BACKEND_DOWN, chain=None).notification_key == "backend_down-system-critical"

    @pytest.mark.asyncio
    async def test_manual_deliver_ignores_cooldown(self, monotonic):
        """✅ deliver() always sends."""
        handler = Recorder()
        store = FakeChannelStore([webhook(1, "hooks.example.com")])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = NotificationDispatcher(store, client, clock=monotonic)
            await dispatcher.dispatch(make_alert())
            await dispatcher.deliver(make_alert())

        assert len(handler.requests) == 2


class TestDispatcherWorker:

    @pytest.mark.asyncio
    async def test_enqueued_alerts_are_delivered(self, monotonic):
        """✅ enqueue() returns immediately, the worker delivers."""
        handler = Recorder()
        store = FakeChannelStore([webhook(1, "hooks.example.com")])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = NotificationDispatcher(store, client, clock=monotonic)
            dispatcher.start()

            dispatcher.enqueue(make_alert(chain=1))
            dispatcher.enqueue(make_alert(chain=2))
            await dispatcher.drain()
            await dispatcher.stop()

        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_worker_survives_store_failure(self, monotonic):
        """✅ A failing channel lookup doesn't kill the worker."""

        class FlakyStore(FakeChannelStore):
            calls = 0

            async def enabled_channels(self):
                self.calls += 1
                if self.calls == 1:
                    raise RuntimeError("db down")
                return await super().enabled_channels()

        handler = Recorder()
        store = FlakyStore([webhook(1, "hooks.example.com")])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = NotificationDispatcher(store, client, clock=monotonic)
            dispatcher.start()

            dispatcher.enqueue(make_alert(chain=1))
            dispatcher.enqueue(make_alert(chain=2))
            await dispatcher.drain()
            await dispatcher.stop()

        assert len(handler.requests) == 1
