"""
Reset operation: delete the backend's persisted state.

Only allowed while every backend service is stopped, and only after the
operator confirms. Each state root is deleted independently; a failure on one
is reported and the rest are still attempted.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .config import PipelineConfig
from .gate import PreconditionGate
from .prompts import confirm
from .utils import banner, clear_directory, remove_path

logger = logging.getLogger(__name__)

# State roots whose directory is kept and only emptied
KEEP_DIRECTORY = {"archived products"}


@dataclass
class PathOutcome:
    label: str
    path: Path
    status: str  # "removed", "missing" or "failed"
    error: Optional[str] = None


@dataclass
class ResetReport:
    outcomes: List[PathOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[PathOutcome]:
        return [o for o in self.outcomes if o.status == "failed"]


class ResetOperation:
    """Deletes workflow, catalog, search index and archive state."""

    def __init__(
        self,
        config: PipelineConfig,
        gate: PreconditionGate,
        input_fn: Callable[[str], str] = input
    ):
        self.config = config
        self.gate = gate
        self.input_fn = input_fn

    def preview(self) -> None:
        print(banner("RESET: delete all pipeline state"))
        print("\nThis will remove:")
        for label, path in self.config.state_roots().items():
            suffix = " (contents only)" if label in KEEP_DIRECTORY else ""
            print(f"  - {label}: {path}{suffix}")
        print()

    def delete_state(self) -> ResetReport:
        """
        Delete every state root, best-effort.

        Returns:
            Outcome per root; deletion failures are recorded, never raised
        """
        report = ResetReport()

        for label, path in self.config.state_roots().items():
            try:
                if label in KEEP_DIRECTORY:
                    status = clear_directory(path)
                else:
                    status = remove_path(path)
            except OSError as e:
                logger.error(f"Failed to delete {label} at {path}: {e}")
                report.outcomes.append(PathOutcome(label, path, "failed", str(e)))
                continue

            logger.info(f"{label}: {status} ({path})")
            report.outcomes.append(PathOutcome(label, path, status))

        return report

    def run(self) -> ResetReport:
        """
        Check services are stopped, confirm, then delete.

        Raises:
            ServicesStillRunningError: If any backend service is up
            UserDeclinedError: If the operator answers no
            UserInputInvalidError: If the answer is neither yes nor no
        """
        self.gate.require_stopped()
        self.preview()
        confirm("Delete all pipeline state?", self.input_fn)

        report = self.delete_state()
        for outcome in report.outcomes:
            if outcome.status == "removed":
                print(f"  ✓ Removed {outcome.label}")
            elif outcome.status == "missing":
                print(f"  - {outcome.label} (not found)")
            else:
                print(f"  ✗ {outcome.label}: {outcome.error}")

        return report
