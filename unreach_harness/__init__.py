"""
Connection Failure Harness.

============================================================
PURPOSE
============================================================
Reproduces host-unreachable, network-unreachable,
connection-refused and timeout failures under repeatable
conditions, and checks that a simulated reverse proxy turns
them into deterministic upstream responses.

============================================================
COMPONENTS
============================================================

1. Error classifier   - failure kind -> status/message
2. Target endpoint    - simulated backend (pod)
3. Proxy endpoint     - simulated load balancer
4. Client probe       - raw connect / HTTP request
5. Scenario registry  - catalog of scenarios
6. Scenario runner    - setup -> probe -> teardown, in order

============================================================
PREREQUISITES
============================================================
Reject rules for 192.0.2.0/24, 198.51.100.0/24 and
203.0.113.0/24 (host-unreach) are installed by an external
privileged step. The harness only references those addresses.

============================================================
USAGE
============================================================

    from unreach_harness import (
        ScenarioCategory,
        create_runner,
        select_scenarios,
    )

    runner = create_runner()
    run = await runner.run(select_scenarios(category=ScenarioCategory.CLUSTER))

    for result in run.results:
        print(result.scenario_id, result.verdict)

Direct classification:

    from unreach_harness import classify_failure

    classify_failure("ECONNREFUSED")    # 502 Connection Refused

============================================================
"""

# Models
from .models import (
    FailureKind,
    ProbeStatus,
    ProbeMode,
    ProbeOutcome,
    TargetConfig,
    ProxyConfig,
    ScenarioCategory,
    ScenarioPhase,
    Verdict,
    ScenarioDescriptor,
    ScenarioResult,
    HarnessRun,
)

# Exceptions
from .exceptions import (
    HarnessError,
    ConfigurationError,
    EndpointError,
    SlotOccupiedError,
    ScenarioError,
    ScenarioStateError,
)

# Classification
from .classification import (
    ErrorClassification,
    classify_failure,
    failure_kind_from_exception,
    errno_name,
)

# Configuration
from .config import (
    HarnessConfig,
    get_config,
    set_config,
)

# Endpoints and probe
from .endpoints import TargetEndpoint, ProxyEndpoint
from .probe import ClientProbe
from .context import ScenarioContext

# Registry
from .scenarios import (
    SCENARIOS,
    get_all_scenarios,
    get_scenario,
    get_scenarios_by_category,
    select_scenarios,
)

# Runner
from .reporter import HarnessReporter
from .runner import ScenarioRunner, create_runner


__version__ = "1.0.0"

__all__ = [
    # Models
    "FailureKind",
    "ProbeStatus",
    "ProbeMode",
    "ProbeOutcome",
    "TargetConfig",
    "ProxyConfig",
    "ScenarioCategory",
    "ScenarioPhase",
    "Verdict",
    "ScenarioDescriptor",
    "ScenarioResult",
    "HarnessRun",

    # Exceptions
    "HarnessError",
    "ConfigurationError",
    "EndpointError",
    "SlotOccupiedError",
    "ScenarioError",
    "ScenarioStateError",

    # Classification
    "ErrorClassification",
    "classify_failure",
    "failure_kind_from_exception",
    "errno_name",

    # Configuration
    "HarnessConfig",
    "get_config",
    "set_config",

    # Endpoints and probe
    "TargetEndpoint",
    "ProxyEndpoint",
    "ClientProbe",
    "ScenarioContext",

    # Registry
    "SCENARIOS",
    "get_all_scenarios",
    "get_scenario",
    "get_scenarios_by_category",
    "select_scenarios",

    # Runner
    "HarnessReporter",
    "ScenarioRunner",
    "create_runner",
]
