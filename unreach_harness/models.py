"""
Harness Models.

============================================================
PURPOSE
============================================================
Data models for the connection-failure harness.

- Failure kinds observed on the wire
- Probe outcomes
- Scenario descriptors, phases and results
- Endpoint configurations

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .context import ScenarioContext


# ============================================================
# FAILURE KINDS
# ============================================================

class FailureKind(Enum):
    """Low-level connection failure kinds, named by errno code."""
    HOST_UNREACHABLE = "EHOSTUNREACH"
    NETWORK_UNREACHABLE = "ENETUNREACH"
    CONNECTION_REFUSED = "ECONNREFUSED"
    TIMED_OUT = "ETIMEDOUT"
    CONNECTION_RESET = "ECONNRESET"
    OTHER = "OTHER"


# ============================================================
# PROBE OUTCOME
# ============================================================

class ProbeStatus(Enum):
    """How a single probe settled."""
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


class ProbeMode(Enum):
    """Kind of attempt a probe makes."""
    CONNECT = "connect"     # Raw TCP connect
    REQUEST = "request"     # HTTP request


@dataclass
class ProbeOutcome:
    """
    Result of a single probe.

    Exactly one of success, failure or timeout.
    """
    status: ProbeStatus
    mode: ProbeMode
    host: str
    port: int

    # Success details
    http_status: Optional[int] = None
    body: Optional[str] = None

    # Failure details
    kind: Optional[FailureKind] = None
    code: Optional[str] = None
    message: Optional[str] = None
    syscall: Optional[str] = None

    elapsed: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == ProbeStatus.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status == ProbeStatus.FAILURE

    @property
    def timed_out(self) -> bool:
        return self.status == ProbeStatus.TIMEOUT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "mode": self.mode.value,
            "host": self.host,
            "port": self.port,
            "http_status": self.http_status,
            "body": self.body,
            "kind": self.kind.value if self.kind else None,
            "code": self.code,
            "message": self.message,
            "syscall": self.syscall,
            "elapsed": round(self.elapsed, 3),
        }


# ============================================================
# ENDPOINT CONFIGURATION
# ============================================================

@dataclass
class TargetConfig:
    """
    Behavior of a simulated backend.

    - accept_connections=False: refuse every connection
    - respond_to_requests=True: answer with a minimal 200
    - delay_before_reset > 0: reset the connection after the delay
    - otherwise: accept and stay silent
    """
    accept_connections: bool = True
    respond_to_requests: bool = True
    delay_before_reset: float = 0.0
    response_delay: float = 0.1


@dataclass
class ProxyConfig:
    """Behavior of a simulated load balancer."""
    target_host: str = "127.0.0.1"
    target_port: int = 8081
    forward_traffic: bool = True
    simulate_stale_endpoint: bool = False
    stale_port: int = 65333
    upstream_timeout: float = 4.0

    @property
    def effective_port(self) -> int:
        """Port the proxy actually forwards to."""
        if self.simulate_stale_endpoint:
            return self.stale_port
        return self.target_port


# ============================================================
# SCENARIOS
# ============================================================

class ScenarioCategory(Enum):
    """Scenario categories."""
    BASIC = "basic"
    CLUSTER = "cluster-simulation"


class ScenarioPhase(Enum):
    """Lifecycle phase of a scenario execution."""
    PENDING = "pending"
    SETTING_UP = "setting-up"
    PROBING = "probing"
    TEARING_DOWN = "tearing-down"
    DONE = "done"


class Verdict(Enum):
    """Advisory evaluation of an outcome against expectations."""
    EXPECTED = "expected"
    ACCEPTABLE = "acceptable"       # OS-dependent substitution
    UNEXPECTED = "unexpected"
    ERROR = "error"                 # Harness-level exception


SetupHook = Callable[["ScenarioContext"], Awaitable[None]]
ProbeHook = Callable[["ScenarioContext"], Awaitable[ProbeOutcome]]
TeardownHook = Callable[["ScenarioContext"], Awaitable[None]]


@dataclass(frozen=True)
class ScenarioDescriptor:
    """
    Definition of a scenario.

    Immutable. The three hooks receive the execution context of the
    current run; the expectation fields drive advisory evaluation.
    """
    scenario_id: str
    name: str
    description: str
    category: ScenarioCategory
    setup: SetupHook
    probe: ProbeHook
    teardown: TeardownHook

    expected_kinds: FrozenSet[FailureKind] = frozenset()
    acceptable_kinds: FrozenSet[FailureKind] = frozenset()
    expected_statuses: FrozenSet[int] = frozenset()
    tags: FrozenSet[str] = frozenset()

    def evaluate(self, outcome: ProbeOutcome) -> Verdict:
        """Evaluate an outcome against this scenario's expectations."""
        if outcome.succeeded:
            if outcome.http_status is not None and outcome.http_status in self.expected_statuses:
                return Verdict.EXPECTED
            return Verdict.UNEXPECTED

        kind = FailureKind.TIMED_OUT if outcome.timed_out else outcome.kind
        if kind in self.expected_kinds:
            return Verdict.EXPECTED
        if kind in self.acceptable_kinds:
            return Verdict.ACCEPTABLE
        return Verdict.UNEXPECTED


@dataclass
class ScenarioResult:
    """Result of one scenario execution."""
    descriptor: ScenarioDescriptor
    phase: ScenarioPhase = ScenarioPhase.PENDING
    phase_history: List[ScenarioPhase] = field(
        default_factory=lambda: [ScenarioPhase.PENDING]
    )
    outcome: Optional[ProbeOutcome] = None
    verdict: Optional[Verdict] = None
    error_message: Optional[str] = None
    failed_phase: Optional[ScenarioPhase] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: Optional[datetime] = None

    @property
    def scenario_id(self) -> str:
        return self.descriptor.scenario_id

    @property
    def duration_seconds(self) -> float:
        if self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds()

    @property
    def matched(self) -> bool:
        """Whether the outcome confirmed the scenario."""
        return self.verdict in (Verdict.EXPECTED, Verdict.ACCEPTABLE)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "scenario_id": self.scenario_id,
            "category": self.descriptor.category.value,
            "phase": self.phase.value,
            "phase_history": [p.value for p in self.phase_history],
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "verdict": self.verdict.value if self.verdict else None,
            "error_message": self.error_message,
            "failed_phase": self.failed_phase.value if self.failed_phase else None,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class HarnessRun:
    """All results of one harness invocation."""
    results: List[ScenarioResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: Optional[datetime] = None

    @property
    def total(self) -> int:
        return len(self.results)

    def count(self, verdict: Verdict) -> int:
        """Number of results with the given verdict."""
        return sum(1 for r in self.results if r.verdict == verdict)

    @property
    def all_matched(self) -> bool:
        return all(r.matched for r in self.results)
