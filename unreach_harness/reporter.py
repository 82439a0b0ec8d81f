"""
Harness Reporter.

============================================================
PURPOSE
============================================================
Human-readable progress lines for every scenario phase.

Every failure line carries:
- raw kind / code
- message
- syscall
- address and port

Not a machine-readable contract. Output goes through logging
so the configured format (text or json) applies.

============================================================
"""

import logging
from typing import List, Optional

from .classification import classify_failure
from .models import (
    HarnessRun,
    ProbeOutcome,
    ScenarioDescriptor,
    Verdict,
)


logger = logging.getLogger(__name__)


WIDTH = 80


class HarnessReporter:
    """Writes harness progress to a logger."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    # --------------------------------------------------------
    # STRUCTURE
    # --------------------------------------------------------

    def divider(self, title: str) -> None:
        self._log.info("=" * WIDTH)
        self._log.info(title)
        self._log.info("=" * WIDTH)

    def section(self, title: str) -> None:
        self._log.info("-" * (WIDTH // 2))
        self._log.info(title)
        self._log.info("-" * (WIDTH // 2))

    def run_started(self, count: int) -> None:
        self.divider("CONNECTION FAILURE HARNESS")
        self._log.info(f"Running {count} scenarios")

    def scenario_started(self, scenario: ScenarioDescriptor) -> None:
        self.divider(f"SCENARIO: {scenario.name} [{scenario.scenario_id}]")
        self._log.info(scenario.description)

    # --------------------------------------------------------
    # OUTCOMES
    # --------------------------------------------------------

    def outcome(
        self,
        scenario: ScenarioDescriptor,
        outcome: ProbeOutcome,
        verdict: Verdict,
    ) -> None:
        """Report a probe outcome and its advisory verdict."""
        if outcome.succeeded:
            if outcome.http_status is None:
                self._log.info(f"  Connection established to {outcome.host}:{outcome.port}")
            else:
                self._log.info(f"  Response status: {outcome.http_status}")
                self._log.info(f"  Response body: {outcome.body}")
        elif outcome.timed_out:
            self._log.info(f"  Attempt to {outcome.host}:{outcome.port} timed out ({outcome.message})")
        else:
            self.failure_details(outcome)

        self._log.info(f"  {self.verdict_line(scenario, outcome, verdict)}")

    def failure_details(self, outcome: ProbeOutcome) -> None:
        self._log.info("  Error details:")
        self._log.info(f"  - Code: {outcome.code}")
        self._log.info(f"  - Message: {outcome.message}")
        self._log.info(f"  - Syscall: {outcome.syscall}")
        self._log.info(f"  - Address: {outcome.host}")
        self._log.info(f"  - Port: {outcome.port}")

    @staticmethod
    def observed(outcome: ProbeOutcome) -> str:
        """Short description of what was observed."""
        if outcome.succeeded:
            if outcome.http_status is None:
                return "connection succeeded"
            return f"HTTP {outcome.http_status}"
        if outcome.timed_out:
            return "timeout"
        return outcome.code or (outcome.kind.value if outcome.kind else "unknown error")

    def verdict_line(
        self,
        scenario: ScenarioDescriptor,
        outcome: ProbeOutcome,
        verdict: Verdict,
    ) -> str:
        observed = self.observed(outcome)
        wanted = sorted(k.value for k in scenario.expected_kinds) + sorted(
            str(s) for s in scenario.expected_statuses
        )
        wanted_text = " or ".join(wanted) or "nothing specific"

        if verdict == Verdict.EXPECTED:
            return f"[OK] Received {observed} as expected"
        if verdict == Verdict.ACCEPTABLE:
            return f"[OK] Received {observed} instead of {wanted_text} (OS-dependent)"
        if outcome.failed and outcome.kind is not None:
            surfaced = classify_failure(outcome.kind)
            return (
                f"[UNEXPECTED] Received {observed} (would surface as {surfaced}), "
                f"wanted {wanted_text}"
            )
        return f"[UNEXPECTED] Received {observed}, wanted {wanted_text}"

    # --------------------------------------------------------
    # SUMMARY
    # --------------------------------------------------------

    def run_finished(self, run: HarnessRun) -> None:
        self.divider("HARNESS COMPLETE")
        for result in run.results:
            verdict = result.verdict.value if result.verdict else "none"
            line = f"  {result.scenario_id:32s} {verdict:11s}"
            if result.error_message:
                line += f" {result.error_message}"
            self._log.info(line)

        self._log.info(
            f"  {run.total} scenarios: "
            f"{run.count(Verdict.EXPECTED)} expected, "
            f"{run.count(Verdict.ACCEPTABLE)} acceptable, "
            f"{run.count(Verdict.UNEXPECTED)} unexpected, "
            f"{run.count(Verdict.ERROR)} errors"
        )

    def list_scenarios(self, scenarios: List[ScenarioDescriptor]) -> None:
        """Print the catalog."""
        print("Available scenarios:")
        for scenario in scenarios:
            print(
                f"  {scenario.scenario_id:28s} [{scenario.category.value}] "
                f"{scenario.description}"
            )
