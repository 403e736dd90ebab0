"""
Rule Evaluator - user-defined thresholds against the latest metric snapshot

Snapshot keys:
    sync_behind_{chain}      blocks behind head (backend health)
    rpc_latency_{chain}      eth_blockNumber round trip in ms
    db_connections_{db}      connection usage % (frontend / backend)
    db_cache_{db}            cache hit ratio %
    backend_latency          0 whenever the backend answered (see resolve_metric)
"""
import operator
from typing import Dict, Optional

from pydantic import BaseModel

from goldenaxe_admin.api.models.alert import AlertCandidate, AlertType, Severity
from goldenaxe_admin.utils.numbers import format_value

DATABASES = ("frontend", "backend")

COMPARATORS = {
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
    "eq": operator.eq,
}


class MetricValue(BaseModel):
    value: float
    chain: Optional[int] = None
    chain_name: Optional[str] = None


MetricSnapshot = Dict[str, MetricValue]


def metric_key(kind: str, suffix) -> str:
    return f"{kind}_{suffix}"


def compare(value: float, comparison: str, threshold: float) -> bool:
    """Unknown comparisons fall back to gt"""
    return COMPARATORS.get(comparison, operator.gt)(value, threshold)


def resolve_metric(rule, snapshot: MetricSnapshot) -> Optional[MetricValue]:
    """
    Metric a rule is evaluated against, or None when the snapshot has nothing
    for it (the rule is then skipped)
    """
    if rule.type in ("sync_behind", "rpc_latency"):
        if rule.chain is None:
            return None
        return snapshot.get(metric_key(rule.type, rule.chain))

    if rule.type in ("db_connections", "db_cache"):
        values = [snapshot[k] for k in (metric_key(rule.type, db) for db in DATABASES) if k in snapshot]
        if not values:
            return None
        # Worst database drives the alert: highest usage, lowest hit ratio
        pick = max if rule.type == "db_connections" else min
        return MetricValue(value=pick(v.value for v in values))

    if rule.type == "backend_latency":
        # Only ever 0 (backend answered) or absent - usable as an "is it up" check
        return snapshot.get("backend_latency")

    return None


def evaluate(rule, snapshot: MetricSnapshot) -> bool:
    metric = resolve_metric(rule, snapshot)
    return metric is not None and compare(metric.value, rule.comparison, rule.threshold)


def _severity(name: str) -> Severity:
    try:
        return Severity(name)
    except ValueError:
        return Severity.WARNING


def build_rule_alert(rule, metric: MetricValue) -> AlertCandidate:
    """custom alert for a fired rule: '{name}: {value} {comparison} {threshold}'"""
    return AlertCandidate(
        type=AlertType.CUSTOM,
        severity=_severity(rule.severity),
        chain=metric.chain,
        chain_name=metric.chain_name,
        message=f"{rule.name}: {format_value(metric.value)} {rule.comparison} {format_value(rule.threshold)}",
        details="Custom rule triggered",
    )
