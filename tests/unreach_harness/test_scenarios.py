"""
Tests for the Scenario Registry.

============================================================
TEST COVERAGE
============================================================
1. Catalog contents and order
2. Selection rules
3. Advisory evaluation
============================================================
"""

import pytest

from unreach_harness import (
    SCENARIOS,
    FailureKind,
    ProbeOutcome,
    ProbeStatus,
    ScenarioCategory,
    Verdict,
    get_all_scenarios,
    get_scenario,
    get_scenarios_by_category,
    select_scenarios,
)
from unreach_harness.models import ProbeMode


def failure(kind: FailureKind) -> ProbeOutcome:
    return ProbeOutcome(
        status=ProbeStatus.FAILURE,
        mode=ProbeMode.CONNECT,
        host="192.0.2.5",
        port=12345,
        kind=kind,
        code=kind.value,
    )


def response(status: int) -> ProbeOutcome:
    return ProbeOutcome(
        status=ProbeStatus.SUCCESS,
        mode=ProbeMode.REQUEST,
        host="127.0.0.1",
        port=8080,
        http_status=status,
        body="",
    )


# ============================================================
# CATALOG TESTS
# ============================================================

class TestCatalog:
    """Test the static catalog."""

    def test_unique_ids(self):
        ids = [s.scenario_id for s in SCENARIOS]
        assert len(ids) == len(set(ids))

    def test_basic_scenarios_first(self):
        ids = [s.scenario_id for s in get_all_scenarios()]
        assert ids[:2] == ["basic-host-unreachable", "basic-net-unreachable"]

    def test_cluster_scenarios(self):
        ids = [s.scenario_id for s in get_scenarios_by_category(ScenarioCategory.CLUSTER)]
        assert ids[:3] == [
            "cluster-stale-endpoint",
            "cluster-pod-terminating",
            "cluster-network-policy",
        ]
        assert all(i.startswith("cluster-") for i in ids)

    def test_every_scenario_has_expectations(self):
        for scenario in SCENARIOS:
            assert scenario.expected_kinds or scenario.expected_statuses, scenario.scenario_id

    def test_get_scenario(self):
        assert get_scenario("cluster-lb-draining").category == ScenarioCategory.CLUSTER
        assert get_scenario("missing") is None

    def test_get_all_returns_copy(self):
        scenarios = get_all_scenarios()
        scenarios.clear()
        assert len(get_all_scenarios()) == len(SCENARIOS)


# ============================================================
# SELECTION TESTS
# ============================================================

class TestSelectScenarios:
    """Test select_scenarios."""

    def test_no_filter_selects_all(self):
        assert select_scenarios() == SCENARIOS

    def test_by_category(self):
        selected = select_scenarios(category=ScenarioCategory.BASIC)
        assert [s.scenario_id for s in selected] == [
            "basic-host-unreachable",
            "basic-net-unreachable",
        ]

    def test_by_id(self):
        selected = select_scenarios(scenario_id="cluster-pod-terminating")
        assert [s.scenario_id for s in selected] == ["cluster-pod-terminating"]

    def test_unknown_id_selects_nothing(self):
        assert select_scenarios(scenario_id="nope") == []

    def test_category_wins_over_id(self):
        selected = select_scenarios(
            category=ScenarioCategory.BASIC,
            scenario_id="cluster-pod-terminating",
        )
        assert all(s.category == ScenarioCategory.BASIC for s in selected)
        assert len(selected) == 2

    def test_custom_pool(self):
        pool = [get_scenario("cluster-healthy-path")]
        assert select_scenarios(scenarios=pool) == pool


# ============================================================
# EVALUATION TESTS
# ============================================================

class TestEvaluate:
    """Test ScenarioDescriptor.evaluate."""

    def test_expected_kind(self):
        scenario = get_scenario("basic-host-unreachable")
        assert scenario.evaluate(failure(FailureKind.HOST_UNREACHABLE)) == Verdict.EXPECTED

    def test_acceptable_substitution(self):
        scenario = get_scenario("basic-net-unreachable")
        assert scenario.evaluate(failure(FailureKind.NETWORK_UNREACHABLE)) == Verdict.EXPECTED
        assert scenario.evaluate(failure(FailureKind.HOST_UNREACHABLE)) == Verdict.ACCEPTABLE

    def test_unexpected_kind(self):
        scenario = get_scenario("basic-host-unreachable")
        assert scenario.evaluate(failure(FailureKind.CONNECTION_REFUSED)) == Verdict.UNEXPECTED

    def test_timeout_is_unexpected_for_host_unreachable(self):
        timeout = ProbeOutcome(
            status=ProbeStatus.TIMEOUT,
            mode=ProbeMode.CONNECT,
            host="192.0.2.5",
            port=12345,
        )
        assert get_scenario("basic-host-unreachable").evaluate(timeout) == Verdict.UNEXPECTED

    def test_unexpected_connect_success(self):
        success = ProbeOutcome(
            status=ProbeStatus.SUCCESS,
            mode=ProbeMode.CONNECT,
            host="192.0.2.5",
            port=12345,
        )
        assert get_scenario("basic-host-unreachable").evaluate(success) == Verdict.UNEXPECTED

    @pytest.mark.parametrize("scenario_id, status, verdict", [
        ("cluster-stale-endpoint", 502, Verdict.EXPECTED),
        ("cluster-stale-endpoint", 504, Verdict.EXPECTED),
        ("cluster-stale-endpoint", 200, Verdict.UNEXPECTED),
        ("cluster-pod-terminating", 502, Verdict.EXPECTED),
        ("cluster-lb-draining", 503, Verdict.EXPECTED),
        ("cluster-healthy-path", 200, Verdict.EXPECTED),
        ("cluster-healthy-path", 500, Verdict.UNEXPECTED),
    ])
    def test_status_expectations(self, scenario_id, status, verdict):
        assert get_scenario(scenario_id).evaluate(response(status)) == verdict

    def test_probe_failure_through_proxy_is_unexpected(self):
        """Test the proxy itself being unreachable never matches."""
        scenario = get_scenario("cluster-pod-terminating")
        assert scenario.evaluate(failure(FailureKind.CONNECTION_REFUSED)) == Verdict.UNEXPECTED
