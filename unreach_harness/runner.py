"""
Scenario Runner.

============================================================
PURPOSE
============================================================
Runs selected scenarios one after another:

    pending -> setting-up -> probing -> tearing-down -> done

GUARANTEES
----------
1. Teardown always runs, whatever setup or probe did
2. Scenarios never overlap; the next setup starts only after
   the previous teardown released its ports and the cooldown
   elapsed
3. A failing scenario is recorded and never aborts the run

Verdicts are advisory: expected failure kinds depend on the
host's routing and firewall setup.

============================================================
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

from .config import HarnessConfig, get_config
from .context import ScenarioContext
from .exceptions import ScenarioError, ScenarioStateError
from .models import (
    HarnessRun,
    ScenarioDescriptor,
    ScenarioPhase,
    ScenarioResult,
    Verdict,
)
from .reporter import HarnessReporter


logger = logging.getLogger(__name__)


# ============================================================
# PHASE TRANSITIONS
# ============================================================

VALID_TRANSITIONS: Dict[ScenarioPhase, Set[ScenarioPhase]] = {
    ScenarioPhase.PENDING: {ScenarioPhase.SETTING_UP},
    ScenarioPhase.SETTING_UP: {ScenarioPhase.PROBING, ScenarioPhase.TEARING_DOWN},
    ScenarioPhase.PROBING: {ScenarioPhase.TEARING_DOWN},
    ScenarioPhase.TEARING_DOWN: {ScenarioPhase.DONE},
    ScenarioPhase.DONE: set(),
}


def transition(result: ScenarioResult, to_phase: ScenarioPhase) -> None:
    """Move a result to the next phase, enforcing the transition table."""
    if to_phase not in VALID_TRANSITIONS[result.phase]:
        raise ScenarioStateError(
            f"Invalid transition {result.phase.value} -> {to_phase.value}",
            scenario_id=result.scenario_id,
        )
    logger.debug(f"[{result.scenario_id}] {result.phase.value} -> {to_phase.value}")
    result.phase = to_phase
    result.phase_history.append(to_phase)


# ============================================================
# RUNNER
# ============================================================

ContextFactory = Callable[[HarnessConfig, str], ScenarioContext]


class ScenarioRunner:
    """
    Executes scenarios sequentially with mandatory teardown.
    """

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        reporter: Optional[HarnessReporter] = None,
        context_factory: ContextFactory = ScenarioContext,
    ):
        self.config = config or get_config()
        self.reporter = reporter or HarnessReporter()
        self._context_factory = context_factory

    # ========================================================
    # SINGLE SCENARIO
    # ========================================================

    async def run_scenario(self, scenario: ScenarioDescriptor) -> ScenarioResult:
        """Run one scenario through its full lifecycle."""
        result = ScenarioResult(descriptor=scenario)
        ctx = self._context_factory(self.config, scenario.scenario_id)
        self.reporter.scenario_started(scenario)

        try:
            transition(result, ScenarioPhase.SETTING_UP)
            await scenario.setup(ctx)

            transition(result, ScenarioPhase.PROBING)
            outcome = await scenario.probe(ctx)
            result.outcome = outcome
            result.verdict = scenario.evaluate(outcome)
            self.reporter.outcome(scenario, outcome, result.verdict)
        except Exception as e:
            self._record_error(result, e)
        finally:
            transition(result, ScenarioPhase.TEARING_DOWN)
            await self._teardown(scenario, ctx, result)

        transition(result, ScenarioPhase.DONE)
        result.ended_at = datetime.now(timezone.utc)
        return result

    async def _teardown(
        self,
        scenario: ScenarioDescriptor,
        ctx: ScenarioContext,
        result: ScenarioResult,
    ) -> None:
        self.reporter.section("Tearing down")
        try:
            await scenario.teardown(ctx)
        except Exception as e:
            self._record_error(result, e)

        if ctx.has_live_endpoints:
            # Teardown hook left a slot occupied; release it anyway
            logger.warning(f"[{result.scenario_id}] endpoints still bound after teardown")
            try:
                await ctx.release()
            except Exception as e:
                self._record_error(result, e)

    def _record_error(self, result: ScenarioResult, exc: Exception) -> None:
        error = ScenarioError(
            f"Error in scenario {result.descriptor.name}",
            scenario_id=result.scenario_id,
            original_error=exc,
        )
        logger.exception(f"[{result.scenario_id}] {result.phase.value} failed: {exc}")

        # Keep the first error; teardown errors must not mask setup errors
        if result.error_message is None:
            result.error_message = str(error)
            result.failed_phase = result.phase
        result.verdict = Verdict.ERROR

    # ========================================================
    # BATCH
    # ========================================================

    async def run(self, scenarios: List[ScenarioDescriptor]) -> HarnessRun:
        """Run scenarios strictly in order with a cooldown in between."""
        run = HarnessRun()
        self.reporter.run_started(len(scenarios))

        for i, scenario in enumerate(scenarios):
            if i > 0 and self.config.cooldown_seconds > 0:
                await asyncio.sleep(self.config.cooldown_seconds)

            result = await self.run_scenario(scenario)
            run.results.append(result)

        run.ended_at = datetime.now(timezone.utc)
        self.reporter.run_finished(run)
        return run


def create_runner(config: Optional[HarnessConfig] = None) -> ScenarioRunner:
    """Create a runner with the global (or given) configuration."""
    return ScenarioRunner(config=config)
