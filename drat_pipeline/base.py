"""
Base classes and interfaces for the pipeline coordinator

Provides the abstract StageInvoker class that every pipeline stage inherits
from, along with the logging setup shared by the CLI and all components.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, TYPE_CHECKING

from .config import PipelineConfig
from .errors import ArgumentCountError, StageFailedError
from .utils import format_command, run_command

if TYPE_CHECKING:
    from .gate import PreconditionGate
    from .stages import Stage


# Configure logging
def setup_logging(
    log_file: Optional[Path] = None,
    level: int = logging.INFO
) -> logging.Logger:
    """
    Configure logging for the coordinator.

    Args:
        log_file: Optional path to log file (default: console only)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("drat_pipeline")
    logger.setLevel(level)

    # Clear existing handlers
    logger.handlers = []

    # Format
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler (if specified)
    if log_file:
        log_file = Path(log_file)
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            logger.warning(f"Cannot write log file {log_file}: {e}")
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


class StageInvoker(ABC):
    """
    Abstract base class for all pipeline stages.

    Each stage forwards a fixed-shape command to one external collaborator.
    Invoking a stage re-checks that the backend is up and validates the
    argument count before anything is launched.
    """

    def __init__(
        self,
        config: PipelineConfig,
        gate: "PreconditionGate",
        runner: Optional[Callable] = None
    ):
        """
        Initialize pipeline stage.

        Args:
            config: Pipeline configuration
            gate: Precondition gate consulted before every invocation
            runner: Process launcher with the subprocess.run signature
        """
        self.config = config
        self.gate = gate
        self.runner = runner
        self.logger = logging.getLogger(f"drat_pipeline.{self.stage.value}")

    @property
    @abstractmethod
    def stage(self) -> "Stage":
        """The Stage this invoker drives."""

    @abstractmethod
    def build_command(self, args: Sequence[str]) -> List[str]:
        """
        Build the collaborator's argv for this stage.

        Args:
            args: Caller-supplied arguments, already arity-checked

        Returns:
            argv list
        """
        raise NotImplementedError(f"{self.__class__.__name__}.build_command() must be implemented")

    def check_arity(self, args: Sequence[str]) -> None:
        """
        Raises:
            ArgumentCountError: If ``args`` does not match the stage's arity
        """
        if len(args) != self.stage.arity:
            raise ArgumentCountError(self.stage.value, self.stage.arity, len(args))

    def before_launch(self, args: Sequence[str]) -> None:
        """Hook run after the checks and before the command is launched."""

    def run(self, args: Sequence[str]) -> int:
        """
        Launch the collaborator and wait for it to exit.

        Returns:
            The collaborator's exit code

        Raises:
            StageFailedError: If the collaborator exits non-zero
        """
        command = self.build_command(args)
        self.logger.info(f"Launching: {format_command(command)}")

        returncode = run_command(command, runner=self.runner)
        if returncode != 0:
            self.logger.error(f"{self.stage.value} exited with code {returncode}")
            raise StageFailedError(self.stage.value, returncode)

        return returncode

    def invoke(self, args: Sequence[str] = ()) -> Dict[str, Any]:
        """
        Execute the stage: gate check, arity check, launch.

        Args:
            args: Caller-supplied positional arguments

        Returns:
            Execution result with stage name, status and duration

        Raises:
            ServicesNotReadyError: If the backend is not up
            ArgumentCountError: If the argument count is wrong
            StageFailedError: If the collaborator exits non-zero
        """
        self.gate.require_running()
        self.check_arity(args)
        self.before_launch(args)

        start_time = datetime.now()
        self.logger.info(f"Starting stage: {self.stage.value}")

        self.run(args)

        duration = (datetime.now() - start_time).total_seconds()
        self.logger.info(
            f"Completed stage: {self.stage.value} in {duration:.1f} seconds"
        )

        return {
            "stage": self.stage.value,
            "status": "completed",
            "duration_seconds": duration,
        }
