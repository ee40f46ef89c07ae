"""
Exceptions raised by the pipeline coordinator.

Every error carries the process exit code it resolves to. Errors are raised
where they are detected and resolved once, by the CLI entry point, which
prints the message (plus usage text where ``show_usage`` is set) and exits.
"""


class PipelineError(Exception):
    """Base exception for all coordinator errors."""

    exit_code = 1
    show_usage = False


class ConfigurationError(PipelineError):
    """Raised when the installation root or an override is unusable."""
    pass


class ServicesNotReadyError(PipelineError):
    """Raised when a stage needs the backend services up and they are not."""

    def __init__(self, missing=None):
        """
        Initialize with the endpoints that were found down.

        Args:
            missing: List of ServiceEndpoint that are not listening
        """
        self.missing = list(missing or [])
        names = ", ".join(f"{e.name} (port {e.port})" for e in self.missing)
        message = "Backend services are not running"
        if names:
            message += f": {names} not listening"
        message += ".\nStart the backend before running a pipeline stage."
        super().__init__(message)


class ServicesStillRunningError(PipelineError):
    """Raised when reset needs the backend services down and they are not."""

    def __init__(self, running=None):
        """
        Initialize with the endpoints that were found up.

        Args:
            running: List of ServiceEndpoint that are still listening
        """
        self.running = list(running or [])
        names = ", ".join(f"{e.name} (port {e.port})" for e in self.running)
        message = "Backend services are still running"
        if names:
            message += f": {names} listening"
        message += ".\nStop the backend before resetting its data."
        super().__init__(message)


class ArgumentCountError(PipelineError):
    """Raised when a subcommand receives the wrong number of arguments."""

    show_usage = True

    def __init__(self, command: str, expected: int, received: int):
        self.command = command
        self.expected = expected
        self.received = received
        plural = "" if expected == 1 else "s"
        super().__init__(
            f"'{command}' takes {expected} argument{plural}, got {received}"
        )


class UnrecognizedCommandError(PipelineError):
    """Raised when the subcommand is unknown."""

    show_usage = True

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Unrecognized command: '{command}'")


class UserDeclinedError(PipelineError):
    """Raised when the operator answers no to a confirmation prompt."""

    exit_code = 0

    def __init__(self, message: str = "Cancelled."):
        super().__init__(message)


class UserInputInvalidError(PipelineError):
    """Raised when the operator answers neither yes nor no."""

    def __init__(self, answer: str = ""):
        self.answer = answer
        super().__init__(f"Invalid response {answer!r}, expected y or n. Aborting.")


class ProbeError(PipelineError):
    """Raised when the OS socket table cannot be queried at all."""
    pass


class StatusQueryError(PipelineError):
    """Raised when the workflow status UI cannot be read."""
    pass


class StageFailedError(PipelineError):
    """Raised when an external collaborator exits non-zero."""

    def __init__(self, stage: str, returncode: int):
        self.stage = stage
        self.returncode = returncode
        # Killed by signal N maps to 128 + N
        self.exit_code = 128 - returncode if returncode < 0 else returncode
        if returncode < 0:
            message = f"Stage '{stage}' was killed by signal {-returncode}"
        else:
            message = f"Stage '{stage}' failed with exit code {returncode}"
        super().__init__(message)


class PollCancelledError(PipelineError):
    """Raised when polling for running tasks is cancelled."""

    exit_code = 130

    def __init__(self, message: str = "Polling cancelled before tasks finished"):
        super().__init__(message)


class UsageError(PipelineError):
    """Raised when the command line cannot be parsed."""

    show_usage = True
