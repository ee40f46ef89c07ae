"""
Precondition gate for pipeline commands.

Composes the port prober across the required service endpoints to decide
whether the backend is up (required before any stage) or down (required
before a destructive reset).
"""

import logging
from typing import Dict, List, Optional

from .config import PipelineConfig, ServiceEndpoint
from .errors import ServicesNotReadyError, ServicesStillRunningError
from .probe import PortProber

logger = logging.getLogger(__name__)


class PreconditionGate:
    """
    Single-shot up/down checks over the backend service ports.

    Checks run immediately before the action they guard; there is no
    wait-and-recheck, so a transient false result aborts the command.
    """

    def __init__(self, config: PipelineConfig, prober: Optional[PortProber] = None):
        """
        Initialize the gate.

        Args:
            config: Pipeline configuration (supplies the service endpoints)
            prober: Port prober (default: psutil-backed PortProber)
        """
        self.config = config
        self.prober = prober or PortProber()

    def service_status(self) -> Dict[ServiceEndpoint, bool]:
        """Map each required endpoint to whether its port is bound."""
        return {
            endpoint: self.prober.is_bound(endpoint.port)
            for endpoint in self.config.service_endpoints()
        }

    def _partition(self):
        status = self.service_status()
        up: List[ServiceEndpoint] = [e for e, bound in status.items() if bound]
        down: List[ServiceEndpoint] = [e for e, bound in status.items() if not bound]
        return up, down

    def require_running(self) -> None:
        """
        Require every service port to be bound.

        Raises:
            ServicesNotReadyError: If any required port is not bound
        """
        _, down = self._partition()
        if down:
            logger.error(f"Services not ready: {[e.name for e in down]}")
            raise ServicesNotReadyError(down)
        logger.debug("All services are up")

    def require_stopped(self) -> None:
        """
        Require every service port to be free.

        Raises:
            ServicesStillRunningError: If any required port is bound
        """
        up, _ = self._partition()
        if up:
            logger.error(f"Services still running: {[e.name for e in up]}")
            raise ServicesStillRunningError(up)
        logger.debug("All services are stopped")
