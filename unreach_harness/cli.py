"""
Harness - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the connection-failure harness.

- Mutually exclusive scenario selection
- Configuration from .env / environment / YAML, then flags
- Optional keep-alive for manual inspection afterwards

Firewall reject rules for the reserved test ranges must be
installed beforehand by a privileged setup step.

============================================================
USAGE
============================================================
python -m unreach_harness                     # all scenarios
python -m unreach_harness --basic
python -m unreach_harness --cluster
python -m unreach_harness --scenario cluster-stale-endpoint
python -m unreach_harness --keep-alive --strict

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import HarnessConfig, set_config
from .exceptions import ConfigurationError
from .models import ScenarioCategory, Verdict
from .reporter import HarnessReporter
from .runner import ScenarioRunner
from .scenarios import get_all_scenarios, get_scenario, select_scenarios


logger = logging.getLogger(__name__)


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(level: str = "INFO", log_format: str = "text") -> None:
    """
    Set up logging on stdout.

    Args:
        level: Log level
        log_format: Output format (json or text)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s",
            datefmt="%H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    # aiohttp logs every client disconnect at DEBUG/INFO
    logging.getLogger("aiohttp").setLevel(max(log_level, logging.WARNING))


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="unreach-harness",
        description="Reproduce and classify host/network-unreachable connection failures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Categories:
  basic      - Direct socket connections to rejected / unroutable addresses
  cluster    - Proxy (load balancer) in front of a target (pod)

Examples:
  %(prog)s                                  # Run every scenario
  %(prog)s --basic                          # Network-level scenarios only
  %(prog)s --scenario cluster-stale-endpoint
  %(prog)s --list                           # Show available scenarios
        """
    )

    # --------------------------------------------------------
    # Selection
    # --------------------------------------------------------
    selection = parser.add_mutually_exclusive_group()

    selection.add_argument(
        "--basic",
        action="store_true",
        help="Run only basic network-level scenarios",
    )

    selection.add_argument(
        "--cluster", "--k8s",
        dest="cluster",
        action="store_true",
        help="Run only cluster-simulation scenarios",
    )

    selection.add_argument(
        "--scenario",
        type=str,
        metavar="ID",
        help="Run a single scenario by id",
    )

    selection.add_argument(
        "--list",
        action="store_true",
        help="List available scenarios and exit",
    )

    # --------------------------------------------------------
    # Execution Options
    # --------------------------------------------------------
    execution_group = parser.add_argument_group("Execution Options")

    execution_group.add_argument(
        "--keep-alive",
        action="store_true",
        help="Keep the process running after the scenarios complete",
    )

    execution_group.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero if any scenario observed an unexpected outcome",
    )

    execution_group.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="YAML configuration file",
    )

    execution_group.add_argument(
        "--cooldown",
        type=float,
        metavar="SECONDS",
        help="Pause between scenarios (default: 1.0)",
    )

    execution_group.add_argument(
        "--probe-timeout",
        type=float,
        metavar="SECONDS",
        help="Timeout for each probe (default: 5.0)",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        default="text",
        help="Logging format (default: text)",
    )

    return parser


# ============================================================
# CLI VALIDATION
# ============================================================

def validate_args(args: argparse.Namespace) -> List[str]:
    """
    Validate CLI arguments.

    Returns:
        List of validation errors
    """
    errors = []

    if args.scenario is not None and get_scenario(args.scenario) is None:
        errors.append(f"Unknown scenario: {args.scenario}")

    if args.cooldown is not None and args.cooldown < 0:
        errors.append("--cooldown must not be negative")

    if args.probe_timeout is not None and args.probe_timeout <= 0:
        errors.append("--probe-timeout must be positive")

    if args.config is not None and not Path(args.config).is_file():
        errors.append(f"Config file not found: {args.config}")

    return errors


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> HarnessConfig:
    """
    Build harness configuration: YAML or environment, then flags.
    """
    if args.config:
        config = HarnessConfig.from_yaml(Path(args.config))
    else:
        config = HarnessConfig.from_env()

    if args.cooldown is not None:
        config.cooldown_seconds = args.cooldown

    if args.probe_timeout is not None:
        config.probe_timeout = args.probe_timeout
        # Keep the proxy's upstream leg inside the probe window
        if config.upstream_timeout >= config.probe_timeout:
            config.upstream_timeout = config.probe_timeout * 0.8

    return config.ensure_valid()


def selected_category(args: argparse.Namespace) -> Optional[ScenarioCategory]:
    if args.basic:
        return ScenarioCategory.BASIC
    if args.cluster:
        return ScenarioCategory.CLUSTER
    return None


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(args: argparse.Namespace, config: HarnessConfig) -> int:
    """
    Async main entry point.

    Returns:
        Exit code
    """
    scenarios = select_scenarios(
        category=selected_category(args),
        scenario_id=args.scenario,
    )

    runner = ScenarioRunner(config=config)
    run = await runner.run(scenarios)

    exit_code = 0
    if args.strict and not run.all_matched:
        mismatched = run.count(Verdict.UNEXPECTED) + run.count(Verdict.ERROR)
        logger.error(f"Strict mode: {mismatched} scenario(s) did not match expectations")
        exit_code = 1

    if args.keep_alive:
        logger.info("Run complete. Process will remain running for inspection (Ctrl+C to exit).")
        await wait_forever()

    return exit_code


async def wait_forever() -> None:
    """Block until the process is interrupted."""
    await asyncio.Event().wait()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.list:
        HarnessReporter().list_scenarios(get_all_scenarios())
        return 0

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        for detail in e.context.get("errors", []):
            print(f"  - {detail}", file=sys.stderr)
        return 1

    setup_logging(args.log_level, args.log_format)
    set_config(config)

    try:
        return asyncio.run(async_main(args, config))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 130


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
