"""
Tests for the rule evaluator
Comparison semantics, metric resolution per rule type, custom alert shape
"""
import pytest

from goldenaxe_admin.api.models.alert import AlertType, Severity
from goldenaxe_admin.services.rule_evaluator import (
    MetricValue,
    build_rule_alert,
    compare,
    evaluate,
    resolve_metric,
)
from tests.conftest import make_rule


class TestComparisons:
    """Native operator semantics at the boundary (threshold == value == 100)"""

    @pytest.mark.parametrize("comparison,expected", [
        ("gt", False),
        ("gte", True),
        ("lt", False),
        ("lte", True),
        ("eq", True),
    ])
    def test_boundary(self, comparison, expected):
        """✅ value == threshold."""
        assert compare(100, comparison, 100) is expected

    def test_unknown_comparison_falls_back_to_gt(self):
        """✅ Unrecognised comparison behaves as gt."""
        assert compare(101, "between", 100) is True
        assert compare(100, "between", 100) is False


class TestMetricResolution:

    def test_chain_rule_looks_up_its_chain(self):
        """✅ sync_behind + chain -> sync_behind_{chain}."""
        snapshot = {
            "sync_behind_1": MetricValue(value=500, chain=1, chain_name="Ethereum"),
            "sync_behind_10": MetricValue(value=5, chain=10, chain_name="Optimism"),
        }
        rule = make_rule(type="sync_behind", chain=10, threshold=100)

        assert resolve_metric(rule, snapshot).value == 5
        assert evaluate(rule, snapshot) is False

    def test_chain_rule_without_chain_is_skipped(self):
        """✅ rpc_latency without a chain never resolves."""
        snapshot = {"rpc_latency_1": MetricValue(value=5000, chain=1)}
        rule = make_rule(type="rpc_latency", chain=None)

        assert resolve_metric(rule, snapshot) is None
        assert evaluate(rule, snapshot) is False

    def test_missing_metric_is_skipped(self):
        """✅ No snapshot entry -> not fired, no error."""
        rule = make_rule(type="rpc_latency", chain=137)
        assert evaluate(rule, {}) is False

    def test_db_connections_takes_worst_database(self):
        """✅ db_connections uses the max of both databases."""
        snapshot = {
            "db_connections_frontend": MetricValue(value=40),
            "db_connections_backend": MetricValue(value=85),
        }
        rule = make_rule(type="db_connections", chain=None, threshold=80)

        assert resolve_metric(rule, snapshot).value == 85
        assert evaluate(rule, snapshot) is True

    def test_db_cache_takes_worst_database(self):
        """✅ db_cache uses the min of both databases."""
        snapshot = {
            "db_cache_frontend": MetricValue(value=99.9),
            "db_cache_backend": MetricValue(value=72.5),
        }
        rule = make_rule(type="db_cache", chain=None, threshold=90, comparison="lt")

        assert resolve_metric(rule, snapshot).value == 72.5
        assert evaluate(rule, snapshot) is True

    def test_db_metric_with_one_database(self):
        """✅ A database whose stats failed is just left out."""
        snapshot = {"db_connections_backend": MetricValue(value=60)}
        rule = make_rule(type="db_connections", chain=None, threshold=50)
        assert resolve_metric(rule, snapshot).value == 60

    def test_backend_latency_is_zero_when_backend_answers(self):
        """✅ backend_latency only ever resolves to 0 - a real threshold never fires."""
        snapshot = {"backend_latency": MetricValue(value=0)}

        slow = make_rule(type="backend_latency", chain=None, threshold=500, comparison="gt")
        up = make_rule(type="backend_latency", chain=None, threshold=0, comparison="eq")

        assert evaluate(slow, snapshot) is False
        assert evaluate(up, snapshot) is True

    def test_backend_latency_absent_when_backend_down(self):
        """✅ Backend down -> backend_latency rule is skipped."""
        rule = make_rule(type="backend_latency", chain=None, threshold=0, comparison="eq")
        assert resolve_metric(rule, {}) is None

    def test_unknown_rule_type_is_skipped(self):
        """✅ Unknown metric types resolve to nothing."""
        rule = make_rule(type="memory_usage", chain=None)
        assert resolve_metric(rule, {"memory_usage": MetricValue(value=99)}) is None


class TestRuleAlert:

    def test_custom_alert_message(self):
        """✅ '{name}: {value} {comparison} {threshold}' with the rule's severity."""
        rule = make_rule(name="Slow RPC", type="rpc_latency", chain=1, threshold=1000, severity="critical")
        metric = MetricValue(value=1200, chain=1, chain_name="Ethereum")

        alert = build_rule_alert(rule, metric)

        assert alert.type == AlertType.CUSTOM
        assert alert.severity == Severity.CRITICAL
        assert alert.chain == 1
        assert alert.chain_name == "Ethereum"
        assert alert.message == "Slow RPC: 1200 gt 1000"
        assert alert.details == "Custom rule triggered"

    def test_chain_agnostic_rule_alert_has_no_chain(self):
        """✅ db rules produce system-wide alerts."""
        rule = make_rule(name="Pool pressure", type="db_connections", chain=None, threshold=80)
        alert = build_rule_alert(rule, MetricValue(value=85))

        assert alert.chain is None
        assert alert.message == "Pool pressure: 85 gt 80"

    def test_unknown_severity_becomes_warning(self):
        """✅ Bad severity in the table doesn't break the pass."""
        rule = make_rule(severity="urgent")
        assert build_rule_alert(rule, MetricValue(value=2000, chain=1)).severity == Severity.WARNING
