#!/usr/bin/env python3
"""
DRAT Pipeline Coordinator - Unified CLI

This script provides a single command-line entry point that drives the
crawl -> index -> map -> reduce audit pipeline against the backend services,
checks that those services are up (or down, for reset), and resets their
persisted state.
"""

import sys
import json
import logging
import argparse
from typing import Any, Callable, Dict, List, Optional, Sequence
from datetime import datetime

from drat_pipeline.base import setup_logging
from drat_pipeline.config import PipelineConfig
from drat_pipeline.errors import (
    ArgumentCountError,
    PipelineError,
    StatusQueryError,
    UnrecognizedCommandError,
    UsageError,
    UserDeclinedError,
)
from drat_pipeline.gate import PreconditionGate
from drat_pipeline.probe import PortProber
from drat_pipeline.reset import ResetOperation
from drat_pipeline.runner import PipelineRunner
from drat_pipeline.stages import (
    Stage,
    CrawlStage,
    IndexStage,
    MapStage,
    ReduceStage,
)
from drat_pipeline.status import AUDIT_TASK_KIND, TaskStatusReader

logger = logging.getLogger("drat_pipeline")


# ============================================================================
# COMMAND METADATA
# ============================================================================

# Positional argument count per command
COMMAND_ARITY = {
    "crawl": Stage.CRAWL.arity,
    "index": Stage.INDEX.arity,
    "map": Stage.MAP.arity,
    "reduce": Stage.REDUCE.arity,
    "go": 1,
    "reset": 0,
    "status": 0,
    "help": 0,
}

USAGE = """\
Usage: drat-pipeline [--verbose] <command> [args]

Commands:
  crawl <path>    Crawl a source directory into the catalog
  index <path>    Rebuild the search index from the catalog
  map             Trigger MIME partitioning and the per-partition audits
  reduce          Trigger aggregation of the audit results
  go <path>       Run crawl, index, map and reduce in sequence
  reset           Delete all catalog, workflow and index state
  status          Show which backend services are up
  help            Show this message

Environment:
  DRAT_HOME       Root of the backend installation (required)
"""


# ============================================================================
# PIPELINE COORDINATOR
# ============================================================================

class PipelineCoordinator:
    """Wires the gate, status reader, stages, runner and reset together"""

    def __init__(
        self,
        config: PipelineConfig,
        prober: Optional[PortProber] = None,
        session=None,
        runner: Optional[Callable] = None,
        input_fn: Callable[[str], str] = input,
        sleep: Optional[Callable[[float], Any]] = None,
        show_progress: bool = True
    ):
        self.config = config
        self.gate = PreconditionGate(config, prober)
        self.status_reader = TaskStatusReader(config, session)

        self.stages = {
            Stage.CRAWL: CrawlStage(config, self.gate, runner=runner),
            Stage.INDEX: IndexStage(config, self.gate, runner=runner),
            Stage.MAP: MapStage(config, self.gate, runner=runner),
            Stage.REDUCE: ReduceStage(
                config, self.gate, self.status_reader,
                runner=runner, input_fn=input_fn
            ),
        }

        self.pipeline = PipelineRunner(
            config,
            self.gate,
            crawl=self.stages[Stage.CRAWL],
            index=self.stages[Stage.INDEX],
            map_stage=self.stages[Stage.MAP],
            reduce=self.stages[Stage.REDUCE],
            status_reader=self.status_reader,
            sleep=sleep,
            show_progress=show_progress
        )

        self.reset = ResetOperation(config, self.gate, input_fn=input_fn)

    def get_status(self) -> dict:
        """
        Get status of the backend services

        Returns: {
            "services": {name: {"port": int, "up": bool}},
            "all_up": bool,
            "all_down": bool,
            "running_tasks": int or None
        }
        """
        service_status = self.gate.service_status()
        all_up = all(service_status.values())

        # The status UI is only reachable when the backend is up
        running_tasks = None
        if all_up:
            try:
                running_tasks = len(self.status_reader.running(AUDIT_TASK_KIND))
            except StatusQueryError as e:
                logger.warning(f"Running task count unknown: {e}")

        return {
            "services": {
                endpoint.name: {"port": endpoint.port, "up": up}
                for endpoint, up in service_status.items()
            },
            "all_up": all_up,
            "all_down": not any(service_status.values()),
            "running_tasks": running_tasks,
        }


def build_coordinator(config: PipelineConfig) -> PipelineCoordinator:
    return PipelineCoordinator(config)


# ============================================================================
# CLI FORMATTER
# ============================================================================

class CLIFormatter:
    """Format output for CLI display"""

    @staticmethod
    def print_usage(stream=None):
        print(USAGE, file=stream or sys.stdout)

    @staticmethod
    def print_status_table(status_dict: dict):
        """Print formatted table with service status"""
        print("\nDRAT Pipeline - Backend Status")
        print("=" * 60)
        print()

        for name, service in status_dict["services"].items():
            indicator = "✓" if service["up"] else "○"
            state = "listening" if service["up"] else "down"
            print(f"  {indicator} {name:<16} port {service['port']:<6} {state}")

        print()
        print("=" * 60)
        if status_dict["all_up"]:
            running_tasks = status_dict["running_tasks"]
            if running_tasks is None:
                running_tasks = "unknown (status UI unreachable)"
            print(f"Running {AUDIT_TASK_KIND} tasks: {running_tasks}")
        elif status_dict["all_down"]:
            print("Backend is stopped (reset allowed)")
        else:
            print("Backend is partially up (stages and reset both blocked)")
        print()

    @staticmethod
    def print_stage_summary(result: dict):
        """Print summary after stage execution"""
        print(f"\n{'='*60}")
        print(f"Stage: {result['stage']}")
        print(f"{'='*60}")
        print(f"Status: {result['status']}")
        print(f"Duration: {result.get('duration_seconds', 0):.1f} seconds")
        print()

    @staticmethod
    def print_pipeline_summary(results: List[dict]):
        """Print summary of full pipeline run"""
        print(f"\n{'='*60}")
        print("Pipeline Execution Summary")
        print(f"{'='*60}\n")

        for r in results:
            if "polls" in r:
                print(f"  ✓ {r['stage']:<8} {r['polls']} status queries")
            else:
                print(f"  ✓ {r['stage']:<8} {r.get('duration_seconds', 0):.1f} seconds")

        print()


# ============================================================================
# COMMAND HANDLERS
# ============================================================================

def check_arity(command: str, args: Sequence[str]):
    expected = COMMAND_ARITY[command]
    if len(args) != expected:
        raise ArgumentCountError(command, expected, len(args))


def handle_stage_command(coordinator: PipelineCoordinator, args):
    """Handle crawl, index, map and reduce"""
    stage = Stage(args.command)
    result = coordinator.stages[stage].invoke(args.args)
    CLIFormatter.print_stage_summary(result)


def handle_go_command(coordinator: PipelineCoordinator, args):
    """Handle go command"""
    results = coordinator.pipeline.run(args.args[0])
    CLIFormatter.print_pipeline_summary(results)


def handle_reset_command(coordinator: PipelineCoordinator, args):
    """Handle reset command"""
    report = coordinator.reset.run()

    if report.failed:
        print(f"\n⚠️  {len(report.failed)} path(s) could not be removed, see log.\n")
    else:
        print("\nReset complete.\n")


def handle_status_command(coordinator: PipelineCoordinator, args):
    """Handle status command"""
    status = coordinator.get_status()

    if args.json:
        status["timestamp"] = datetime.now().isoformat()
        print(json.dumps(status, indent=2))
    else:
        CLIFormatter.print_status_table(status)


HANDLERS: Dict[str, Callable] = {
    "crawl": handle_stage_command,
    "index": handle_stage_command,
    "map": handle_stage_command,
    "reduce": handle_stage_command,
    "go": handle_go_command,
    "reset": handle_reset_command,
    "status": handle_status_command,
}


# ============================================================================
# ARGUMENT PARSING
# ============================================================================

class CommandParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with code 2"""

    def error(self, message):
        raise UsageError(message)


def build_parser() -> CommandParser:
    parser = CommandParser(
        prog="drat-pipeline",
        description="DRAT audit pipeline coordinator",
        add_help=False
    )
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', parser_class=CommandParser)

    for command in COMMAND_ARITY:
        sub = subparsers.add_parser(command, add_help=False)
        sub.add_argument('args', nargs='*')
        if command == 'status':
            sub.add_argument('--json', action='store_true',
                             help='Output as JSON')

    return parser


def find_command(argv: Sequence[str]) -> Optional[str]:
    """First argument that is not an option"""
    for arg in argv:
        if not arg.startswith('-'):
            return arg
    return None


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    """
    Parse the command line

    Raises:
        UnrecognizedCommandError: If the subcommand is unknown
        UsageError: If options are malformed
    """
    command = find_command(argv)
    if command is not None and command not in COMMAND_ARITY:
        raise UnrecognizedCommandError(command)

    if command is None and any(a in ('-h', '--help') for a in argv):
        return argparse.Namespace(command='help', args=[], verbose=False)

    return build_parser().parse_args(list(argv))


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def dispatch(
    argv: Sequence[str],
    coordinator_factory: Callable[[PipelineConfig], PipelineCoordinator] = build_coordinator,
    config: Optional[PipelineConfig] = None
) -> int:
    """
    Run one command and return its exit code

    Every PipelineError is resolved here: its message is printed (plus usage
    text where the error calls for it) and its exit code returned.
    """
    try:
        args = parse_args(argv)

        if not args.command:
            CLIFormatter.print_usage(sys.stderr)
            return 1

        check_arity(args.command, args.args)

        if args.command == 'help':
            CLIFormatter.print_usage()
            return 0

        config = config or PipelineConfig.from_env()
        setup_logging(
            log_file=config.get_path(config.log_file),
            level=logging.DEBUG if args.verbose else logging.INFO
        )

        coordinator = coordinator_factory(config)
        HANDLERS[args.command](coordinator, args)
        return 0

    except UserDeclinedError as e:
        print(f"\n{e}\n")
        return e.exit_code
    except PipelineError as e:
        print(f"\nERROR: {e}\n", file=sys.stderr)
        if e.show_usage:
            CLIFormatter.print_usage(sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.\n")
        return 130
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"\nERROR: {e}\n", file=sys.stderr)
        return 1


def main():
    """Main entry point"""
    sys.exit(dispatch(sys.argv[1:]))


if __name__ == "__main__":
    main()
