"""
Workflow manager status client

Reads the workflow manager's running-instance listing from its status UI and
reports the task instances of a given kind that have not finished.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

import requests

from .config import PipelineConfig
from .errors import StatusQueryError

logger = logging.getLogger(__name__)

# Task kind launched by the map stage, one instance per partition
AUDIT_TASK_KIND = "RatCodeAudit"

TERMINAL_STATUS = "FINISHED"


@dataclass(frozen=True)
class TaskInstance:
    """One workflow task instance as reported by the status UI."""

    name: str
    status: str
    raw: str = ""


def _instances_from_json(data: Any) -> List[TaskInstance]:
    """
    Extract instances from a JSON listing.

    Accepts either a list of instance objects or an object holding one under
    ``instances``. Each object names its kind under ``name`` or ``kind`` and
    its state under ``status`` or ``state``.
    """
    if isinstance(data, dict):
        if "instances" not in data:
            raise ValueError("object has no 'instances' listing")
        data = data["instances"]
    if not isinstance(data, list):
        raise ValueError("expected a list of task instances")

    instances = []
    for item in data:
        if not isinstance(item, dict):
            continue
        name = str(item.get("name") or item.get("kind") or "")
        status = str(item.get("status") or item.get("state") or "")
        instances.append(TaskInstance(name=name, status=status, raw=json.dumps(item)))
    return instances


def _instances_from_text(lines: Iterable[str], kind: str) -> List[TaskInstance]:
    """
    Extract instances from a plain listing, one instance per line.

    A line belongs to ``kind`` if it mentions it; it is finished if it
    mentions the terminal status in any case.
    """
    instances = []
    for line in lines:
        line = line.strip()
        if not line or kind not in line:
            continue
        status = TERMINAL_STATUS if TERMINAL_STATUS in line.upper() else "RUNNING"
        instances.append(TaskInstance(name=kind, status=status, raw=line))
    return instances


def task_kind(name: str) -> str:
    """
    Task kind without its namespace.

    Examples:
        >>> task_kind("urn:drat:RatCodeAudit")
        "RatCodeAudit"
    """
    return name.rsplit(":", 1)[-1].strip()


def is_running(instance: TaskInstance, kind: str) -> bool:
    """True if ``instance`` is of ``kind`` and has not finished."""
    return (
        task_kind(instance.name) == kind
        and instance.status.strip().upper() != TERMINAL_STATUS
    )


class TaskStatusReader:
    """
    Client for the workflow manager's status UI.

    Each call issues one fresh request; nothing is cached between calls.
    """

    def __init__(
        self,
        config: PipelineConfig,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the status reader.

        Args:
            config: Pipeline configuration with status URL and timeout
            session: HTTP session (default: a new requests.Session)
        """
        self.config = config
        self.session = session or requests.Session()

    def fetch(self) -> requests.Response:
        """
        Fetch the current instance listing.

        Raises:
            StatusQueryError: If the status UI is unreachable or errors
        """
        url = self.config.status_url
        try:
            response = self.session.get(url, timeout=self.config.status_timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error querying task status at {url}: {e}")
            raise StatusQueryError(f"Unable to read task status from {url}: {e}") from e

        return response

    def running(self, kind: str = AUDIT_TASK_KIND) -> List[TaskInstance]:
        """
        List instances of ``kind`` that are not yet finished.

        Args:
            kind: Task kind to filter on (default: RatCodeAudit)

        Returns:
            Non-terminal instances of that kind (empty = none running)

        Raises:
            StatusQueryError: If the listing cannot be fetched or parsed
        """
        response = self.fetch()
        content_type = response.headers.get("Content-Type", "")

        if "json" in content_type:
            try:
                instances = _instances_from_json(response.json())
            except ValueError as e:
                raise StatusQueryError(f"Malformed task status listing: {e}") from e
        else:
            instances = _instances_from_text(response.text.splitlines(), kind)

        matching = [instance for instance in instances if is_running(instance, kind)]
        logger.debug(f"{len(matching)} {kind} instance(s) still running")
        return matching
