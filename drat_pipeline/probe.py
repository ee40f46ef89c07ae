"""
Port liveness probing.

Answers whether a TCP port is currently bound by a listening socket, using the
OS socket table via psutil. A single point-in-time check: no retries, no
timeout, no side effects.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import psutil

from .errors import ProbeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Listener:
    """A socket listening on a probed port."""

    port: int
    address: str
    pid: Optional[int]


class PortProber:
    """Queries the OS for sockets listening on a given port."""

    def listeners(self, port: int) -> List[Listener]:
        """
        List the sockets listening on ``port``.

        Args:
            port: TCP port number

        Returns:
            Listening sockets (empty list = nothing listening)

        Raises:
            ProbeError: If the socket table cannot be read at all
        """
        try:
            connections = psutil.net_connections(kind="inet")
        except (psutil.AccessDenied, OSError) as e:
            raise ProbeError(f"Unable to query listening sockets: {e}") from e

        found = []
        for conn in connections:
            if conn.status != psutil.CONN_LISTEN or not conn.laddr:
                continue
            if conn.laddr.port != port:
                continue
            found.append(Listener(port=port, address=conn.laddr.ip, pid=conn.pid))

        logger.debug(f"Port {port}: {len(found)} listener(s)")
        return found

    def is_bound(self, port: int) -> bool:
        return bool(self.listeners(port))
