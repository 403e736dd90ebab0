"""
Alert Service - Business logic layer
Runs a check pass over every probe, applies the built-in thresholds and the
user rules, and feeds the resulting candidates to the alert store
"""
import asyncio
import logging
from typing import Optional

from goldenaxe_admin.api.models.alert import AlertCandidate, AlertType, Severity
from goldenaxe_admin.api.models.api_models import (
    AcknowledgeAction,
    AcknowledgeAllAction,
    ActionResult,
    AlertsResponse,
    ClearAcknowledgedAction,
)
from goldenaxe_admin.api.models.health import BackendHealth, DatabaseStats
from goldenaxe_admin.config import ALERT_LONG_QUERY_SECONDS, BACKEND_SLOW_MS, BE_URL
from goldenaxe_admin.probes.rpc import redact_url
from goldenaxe_admin.services.alert_store import AlertStore
from goldenaxe_admin.services.rule_evaluator import (
    MetricSnapshot,
    MetricValue,
    build_rule_alert,
    evaluate,
    metric_key,
    resolve_metric,
)

logger = logging.getLogger(__name__)

# Built-in thresholds
SYNC_BEHIND_WARNING = 100
SYNC_BEHIND_CRITICAL = 1000
CONNECTIONS_WARNING = 75
CONNECTIONS_CRITICAL = 90
CACHE_HIT_WARNING = 80


class AlertService:
    """Service for alert checks and alert list actions"""

    def __init__(
        self,
        store: AlertStore,
        chain_repository,
        rule_repository,
        rule_triggers,
        backend_probe,
        rpc_probe,
        db_probes: list
    ):
        self.store = store
        self.chain_repository = chain_repository
        self.rule_repository = rule_repository
        self.rule_triggers = rule_triggers
        self.backend_probe = backend_probe
        self.rpc_probe = rpc_probe
        self.db_probes = db_probes

    # ========================================================================
    # Dashboard
    # ========================================================================

    async def get_alerts(self) -> AlertsResponse:
        """Run a check pass, then return the current list"""
        await self.run_check_pass()
        alerts, unacknowledged = self.store.list_alerts()
        return AlertsResponse(
            alerts=alerts,
            unacknowledged_count=unacknowledged,
            last_check=self.store.last_check,
        )

    async def apply_action(self, action) -> ActionResult:
        if isinstance(action, AcknowledgeAction):
            if not await self.store.acknowledge(action.alert_id):
                logger.debug(f"Acknowledge ignored, unknown alert {action.alert_id}")
        elif isinstance(action, AcknowledgeAllAction):
            await self.store.acknowledge_all()
        elif isinstance(action, ClearAcknowledgedAction):
            removed = await self.store.clear_acknowledged()
            logger.info(f"🧹 Cleared {removed} acknowledged alerts")
        return ActionResult(success=True)

    # ========================================================================
    # Check pass
    # ========================================================================

    async def run_check_pass(self):
        """
        One full pass. Every step is isolated: a failing probe or rule is
        logged and the rest of the pass carries on.
        """
        snapshot: MetricSnapshot = {}

        chains = await self._guard("load chains", self.chain_repository.list_enabled()) or []
        rules = await self._guard("load rules", self.rule_repository.list_enabled()) or []

        await asyncio.gather(
            self._guard("backend check", self.check_backend(snapshot)),
            *(self._guard(f"rpc check chain {c.chain}", self.check_rpc(c, snapshot)) for c in chains),
            *(self._guard(f"{p.name} database check", self.check_database(p, snapshot)) for p in self.db_probes),
        )

        for rule in rules:
            await self._guard(f"rule {rule.id}", self.apply_rule(rule, snapshot))

        self.store.last_check = self.store.clock()
        logger.debug(f"✅ Check pass done: {len(chains)} chains, {len(rules)} rules, {len(snapshot)} metrics")

    async def _guard(self, step: str, coro):
        try:
            return await coro
        except Exception as e:
            logger.error(f"❌ Alert check step '{step}' failed: {e}")
            return None

    # ------------------------------------------------------------------------
    # Backend indexer
    # ------------------------------------------------------------------------

    async def check_backend(self, snapshot: MetricSnapshot):
        health = await self.backend_probe.fetch()

        if health is None:
            await self.store.add_alert(AlertCandidate(
                type=AlertType.BACKEND_DOWN,
                severity=Severity.CRITICAL,
                message="Backend service is unreachable",
                details=f"No response from {BE_URL}/health/detailed",
            ))
            return

        snapshot["backend_latency"] = MetricValue(value=0)

        if health.status in ("unhealthy", "degraded"):
            await self.store.add_alert(AlertCandidate(
                type=AlertType.BACKEND_DOWN,
                severity=Severity.CRITICAL if health.status == "unhealthy" else Severity.WARNING,
                message=f"Backend reports {health.status} status",
                details=f"Database: {health.checks.database.status}, Sync: {health.checks.sync.status}",
            ))

        if health.probe_latency_ms > BACKEND_SLOW_MS:
            await self.store.add_alert(AlertCandidate(
                type=AlertType.BACKEND_SLOW,
                severity=Severity.WARNING,
                message=f"Backend health check took {health.probe_latency_ms:,}ms",
                details=f"Threshold: {BACKEND_SLOW_MS:,}ms",
            ))

        await self.check_sync(health, snapshot)

    async def check_sync(self, health: BackendHealth, snapshot: MetricSnapshot):
        for chain in health.checks.sync.chains:
            if chain.status == "disabled":
                continue

            behind = chain.blocks_behind
            snapshot[metric_key("sync_behind", chain.chain_id)] = MetricValue(
                value=behind, chain=chain.chain_id, chain_name=chain.chain_name
            )

            if behind > SYNC_BEHIND_WARNING:
                await self.store.add_alert(AlertCandidate(
                    type=AlertType.SYNC_BEHIND,
                    severity=Severity.CRITICAL if behind > SYNC_BEHIND_CRITICAL else Severity.WARNING,
                    chain=chain.chain_id,
                    chain_name=chain.chain_name,
                    message=f"Chain is {behind:,} blocks behind",
                    details=f"Synced: {chain.synced_block:,}, Head: {chain.head_block:,}",
                ))

            if chain.status == "stalled":
                await self.store.add_alert(AlertCandidate(
                    type=AlertType.SYNC_STALLED,
                    severity=Severity.WARNING,
                    chain=chain.chain_id,
                    chain_name=chain.chain_name,
                    message="Sync appears to be stalled",
                    details=f"No new blocks synced, last synced block {chain.synced_block:,}",
                ))

    # ------------------------------------------------------------------------
    # RPC endpoints
    # ------------------------------------------------------------------------

    async def check_rpc(self, config, snapshot: MetricSnapshot):
        result = await self.rpc_probe.block_number(config.url)

        snapshot[metric_key("rpc_latency", config.chain)] = MetricValue(
            value=result.latency_ms, chain=config.chain, chain_name=config.name
        )

        if result.ok:
            return

        if result.outcome == "remote_error":
            candidate = AlertCandidate(
                type=AlertType.RPC_ERROR,
                severity=Severity.WARNING,
                message=f"RPC error: {result.error}",
                chain=config.chain,
                chain_name=config.name,
            )
        elif result.http_status is not None:
            candidate = AlertCandidate(
                type=AlertType.RPC_ERROR,
                severity=Severity.CRITICAL,
                message=f"RPC endpoint returned HTTP {result.http_status}",
                details=f"URL: {redact_url(config.url)}",
                chain=config.chain,
                chain_name=config.name,
            )
        else:
            candidate = AlertCandidate(
                type=AlertType.RPC_ERROR,
                severity=Severity.CRITICAL,
                message=f"RPC connection failed: {result.error}",
                chain=config.chain,
                chain_name=config.name,
            )

        await self.store.add_alert(candidate)

    # ------------------------------------------------------------------------
    # Postgres
    # ------------------------------------------------------------------------

    async def check_database(self, probe, snapshot: MetricSnapshot):
        stats: DatabaseStats = await probe.collect(ALERT_LONG_QUERY_SECONDS)
        label = stats.name.capitalize()

        if "connections" not in stats.errors:
            usage = stats.connections.usage_percent
            snapshot[metric_key("db_connections", stats.name)] = MetricValue(value=usage)

            if usage > CONNECTIONS_WARNING:
                critical = usage > CONNECTIONS_CRITICAL
                await self.store.add_alert(AlertCandidate(
                    type=AlertType.DB_CONNECTIONS,
                    severity=Severity.CRITICAL if critical else Severity.WARNING,
                    message=f"{label} database connection usage is {'critically ' if critical else ''}high: {usage}%",
                    details=(
                        f"Active: {stats.connections.active}, Idle: {stats.connections.idle}, "
                        f"Max: {stats.connections.max_connections}"
                    ),
                ))

        if "cache" not in stats.errors:
            ratio = stats.cache_hit_ratio
            snapshot[metric_key("db_cache", stats.name)] = MetricValue(value=ratio)

            if ratio < CACHE_HIT_WARNING:
                await self.store.add_alert(AlertCandidate(
                    type=AlertType.DB_CACHE,
                    severity=Severity.WARNING,
                    message=f"{label} database cache hit ratio is low: {ratio}%",
                    details=f"Expected at least {CACHE_HIT_WARNING}%",
                ))

            await self.check_deadlocks(stats)

        if stats.long_queries:
            longest = max(stats.long_queries, key=lambda q: q.duration_seconds)
            await self.store.add_alert(AlertCandidate(
                type=AlertType.DB_LONG_QUERY,
                severity=Severity.WARNING,
                message=f"{len(stats.long_queries)} long-running queries on {stats.name} database",
                details=f"Longest: {longest.duration_seconds}s (pid {longest.pid}): {longest.query[:100]}",
            ))

    async def check_deadlocks(self, stats: DatabaseStats):
        """Deadlocks is a cumulative counter - alert when it grew since the previous pass"""
        previous: Optional[int] = await self.store.swap_deadlocks(stats.name, stats.deadlocks)
        if previous is None or stats.deadlocks <= previous:
            return

        await self.store.add_alert(AlertCandidate(
            type=AlertType.DB_DEADLOCK,
            severity=Severity.WARNING,
            message=f"{stats.deadlocks - previous} new deadlocks on {stats.name} database",
            details=f"Total deadlocks: {stats.deadlocks:,}",
        ))

    # ------------------------------------------------------------------------
    # User rules
    # ------------------------------------------------------------------------

    async def apply_rule(self, rule, snapshot: MetricSnapshot):
        metric = resolve_metric(rule, snapshot)
        if metric is None or not evaluate(rule, snapshot):
            return

        await self.store.add_alert(build_rule_alert(rule, metric))
        self.rule_triggers.record(rule.id)
