"""
Scenario Registry.

============================================================
PURPOSE
============================================================
Static catalog of connection-failure scenarios, in run order.

BASIC
-----
Direct socket connections to reserved addresses that the
external setup step rejects (host-unreachable) or that have no
route (network-unreachable).

CLUSTER SIMULATION
------------------
A proxy standing in for a cluster load balancer, in front of a
target standing in for a pod:

- stale endpoint       LB still routes to a terminated pod port
- pod terminating      pod refuses connections
- network policy       traffic to the pod address is rejected
- pod reset            pod resets mid-request while draining
- pod unresponsive     pod accepts but never answers
- LB draining          LB drops traffic itself
- healthy path         baseline, nothing injected

============================================================
"""

import logging
from typing import List, Optional

from .context import ScenarioContext
from .models import (
    FailureKind,
    ProbeOutcome,
    ScenarioCategory,
    ScenarioDescriptor,
    TargetConfig,
)


logger = logging.getLogger(__name__)


# ============================================================
# LIFECYCLE HOOKS
# ============================================================

async def no_setup(ctx: ScenarioContext) -> None:
    """Nothing to set up."""


async def release_endpoints(ctx: ScenarioContext) -> None:
    """Tear down every endpoint the scenario started."""
    await ctx.release()


async def probe_host_unreachable(ctx: ScenarioContext) -> ProbeOutcome:
    return await ctx.probe.connect(ctx.config.host_unreachable_ip, ctx.config.probe_port)


async def probe_net_unreachable(ctx: ScenarioContext) -> ProbeOutcome:
    return await ctx.probe.connect(ctx.config.net_unreachable_ip, ctx.config.probe_port)


async def probe_through_proxy(ctx: ScenarioContext) -> ProbeOutcome:
    """Make a service call through the proxy."""
    port = ctx.proxy.port if ctx.proxy is not None else ctx.config.proxy_port
    return await ctx.probe.request(ctx.config.proxy_host, port, path="/")


async def setup_stale_endpoint(ctx: ScenarioContext) -> None:
    # Proxy only; its endpoint no longer has a listener behind it
    await ctx.start_proxy(ctx.proxy_config(simulate_stale_endpoint=True))


async def setup_pod_terminating(ctx: ScenarioContext) -> None:
    await ctx.start_target(TargetConfig(accept_connections=False))
    await ctx.start_proxy(ctx.proxy_config())


async def setup_network_policy(ctx: ScenarioContext) -> None:
    # The pod is healthy; the rejected address sits on the path to it
    await ctx.start_target(TargetConfig(response_delay=ctx.config.response_delay))
    await ctx.start_proxy(ctx.proxy_config(target_host=ctx.config.host_unreachable_ip))


async def setup_pod_reset(ctx: ScenarioContext) -> None:
    await ctx.start_target(TargetConfig(
        respond_to_requests=False,
        delay_before_reset=ctx.config.reset_delay,
    ))
    await ctx.start_proxy(ctx.proxy_config())


async def setup_pod_unresponsive(ctx: ScenarioContext) -> None:
    await ctx.start_target(TargetConfig(respond_to_requests=False))
    await ctx.start_proxy(ctx.proxy_config())


async def setup_lb_draining(ctx: ScenarioContext) -> None:
    await ctx.start_target(TargetConfig(response_delay=ctx.config.response_delay))
    await ctx.start_proxy(ctx.proxy_config(forward_traffic=False))


async def setup_healthy_path(ctx: ScenarioContext) -> None:
    await ctx.start_target(TargetConfig(response_delay=ctx.config.response_delay))
    await ctx.start_proxy(ctx.proxy_config())


# ============================================================
# CATALOG
# ============================================================

SCENARIOS: List[ScenarioDescriptor] = [
    ScenarioDescriptor(
        scenario_id="basic-host-unreachable",
        name="Basic Host Unreachable Test",
        description="Direct connection to an address with a host-unreachable reject rule",
        category=ScenarioCategory.BASIC,
        setup=no_setup,
        probe=probe_host_unreachable,
        teardown=release_endpoints,
        expected_kinds=frozenset({FailureKind.HOST_UNREACHABLE}),
    ),
    ScenarioDescriptor(
        scenario_id="basic-net-unreachable",
        name="Basic Network Unreachable Test",
        description="Direct connection to an address with no route to its network",
        category=ScenarioCategory.BASIC,
        setup=no_setup,
        probe=probe_net_unreachable,
        teardown=release_endpoints,
        expected_kinds=frozenset({FailureKind.NETWORK_UNREACHABLE}),
        # Some kernels report the missing route as a host failure
        acceptable_kinds=frozenset({FailureKind.HOST_UNREACHABLE}),
    ),
    ScenarioDescriptor(
        scenario_id="cluster-stale-endpoint",
        name="Cluster LB Stale Endpoint",
        description="Load balancer forwarding to a terminated pod (stale endpoint)",
        category=ScenarioCategory.CLUSTER,
        setup=setup_stale_endpoint,
        probe=probe_through_proxy,
        teardown=release_endpoints,
        expected_statuses=frozenset({502, 504}),
    ),
    ScenarioDescriptor(
        scenario_id="cluster-pod-terminating",
        name="Cluster Pod Terminating",
        description="Pod received SIGTERM and refuses new connections",
        category=ScenarioCategory.CLUSTER,
        setup=setup_pod_terminating,
        probe=probe_through_proxy,
        teardown=release_endpoints,
        expected_statuses=frozenset({502}),
    ),
    ScenarioDescriptor(
        scenario_id="cluster-network-policy",
        name="Cluster Network Policy Block",
        description="Network policy rejecting traffic between namespaces",
        category=ScenarioCategory.CLUSTER,
        setup=setup_network_policy,
        probe=probe_through_proxy,
        teardown=release_endpoints,
        expected_statuses=frozenset({502, 504}),
    ),
    ScenarioDescriptor(
        scenario_id="cluster-pod-reset",
        name="Cluster Pod Reset While Draining",
        description="Pod accepts the request, then resets the connection while shutting down",
        category=ScenarioCategory.CLUSTER,
        setup=setup_pod_reset,
        probe=probe_through_proxy,
        teardown=release_endpoints,
        expected_statuses=frozenset({500, 502}),
    ),
    ScenarioDescriptor(
        scenario_id="cluster-pod-unresponsive",
        name="Cluster Pod Unresponsive",
        description="Pod accepts the request and never answers",
        category=ScenarioCategory.CLUSTER,
        setup=setup_pod_unresponsive,
        probe=probe_through_proxy,
        teardown=release_endpoints,
        expected_statuses=frozenset({504}),
    ),
    ScenarioDescriptor(
        scenario_id="cluster-lb-draining",
        name="Cluster LB Draining",
        description="Load balancer drops traffic without forwarding",
        category=ScenarioCategory.CLUSTER,
        setup=setup_lb_draining,
        probe=probe_through_proxy,
        teardown=release_endpoints,
        expected_statuses=frozenset({503}),
    ),
    ScenarioDescriptor(
        scenario_id="cluster-healthy-path",
        name="Cluster Healthy Path",
        description="Baseline: load balancer forwards to a responding pod",
        category=ScenarioCategory.CLUSTER,
        setup=setup_healthy_path,
        probe=probe_through_proxy,
        teardown=release_endpoints,
        expected_statuses=frozenset({200}),
    ),
]


# ============================================================
# LOOKUP
# ============================================================

def get_all_scenarios() -> List[ScenarioDescriptor]:
    """All scenarios in registry order."""
    return list(SCENARIOS)


def get_scenario(scenario_id: str) -> Optional[ScenarioDescriptor]:
    """Scenario by exact id."""
    for scenario in SCENARIOS:
        if scenario.scenario_id == scenario_id:
            return scenario
    return None


def get_scenarios_by_category(category: ScenarioCategory) -> List[ScenarioDescriptor]:
    """Scenarios of one category, in registry order."""
    return [s for s in SCENARIOS if s.category == category]


def select_scenarios(
    category: Optional[ScenarioCategory] = None,
    scenario_id: Optional[str] = None,
    scenarios: Optional[List[ScenarioDescriptor]] = None,
) -> List[ScenarioDescriptor]:
    """
    Select scenarios to run.

    Category filter wins over id filter; with neither, all are
    selected. Registry order is kept.
    """
    pool = SCENARIOS if scenarios is None else scenarios

    if category is not None:
        return [s for s in pool if s.category == category]
    if scenario_id is not None:
        return [s for s in pool if s.scenario_id == scenario_id]
    return list(pool)
