"""
Test doubles for the backend collaborators.

Stand-ins for the port prober, process launcher, status reader and operator
input, so stages can be exercised without any backend running.
"""

import json
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import requests

from drat_pipeline.config import PipelineConfig, SERVICE_PORTS
from drat_pipeline.status import AUDIT_TASK_KIND, TaskInstance

ALL_PORTS = set(SERVICE_PORTS.values())


def make_config(home, **overrides) -> PipelineConfig:
    """Config rooted at ``home`` with no settle or poll delays."""
    values = {"settle_delay": 0.0, "poll_interval": 0.0}
    values.update(overrides)
    return PipelineConfig(home=Path(home), **values)


class FakeProber:
    """Reports a fixed set of ports as bound."""

    def __init__(self, bound: Iterable[int] = ()):
        self.bound = set(bound)
        self.queries: List[int] = []

    def listeners(self, port):
        self.queries.append(port)
        return ["listener"] if port in self.bound else []

    def is_bound(self, port):
        return bool(self.listeners(port))


class FakeRunner:
    """Records launched commands instead of running them."""

    def __init__(self, returncodes: Optional[Dict[str, int]] = None, log=None):
        self.returncodes = returncodes or {}
        self.commands: List[List[str]] = []
        self.log = log if log is not None else []

    def __call__(self, command, check=False):
        self.commands.append(list(command))
        label = command_label(command)
        self.log.append(label)
        return subprocess.CompletedProcess(command, self.returncodes.get(label, 0))


def command_label(command) -> str:
    """Short name for a launched command: crawl, index or the task id."""
    if command[0] == "java":
        return "index"
    if command[0].endswith("crawler_launcher"):
        return "crawl"
    if "--taskIds" in command:
        return command[command.index("--taskIds") + 1].split(":")[-1]
    return command[0]


def running(count: int) -> List[TaskInstance]:
    return [TaskInstance(AUDIT_TASK_KIND, "RUNNING", f"task-{i}") for i in range(count)]


class FakeStatusReader:
    """Returns a scripted sequence of running-instance counts."""

    def __init__(self, counts: Iterable[int] = (0,), log=None):
        self.counts = list(counts)
        self.calls = 0
        self.log = log if log is not None else []

    def running(self, kind=AUDIT_TASK_KIND):
        index = min(self.calls, len(self.counts) - 1)
        self.calls += 1
        count = self.counts[index]
        self.log.append(f"status:{count}")
        return running(count)


class ScriptedInput:
    """Answers prompts from a list; raises EOFError when exhausted."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts: List[str] = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, body, content_type="text/plain", status_code=200):
        self.text = body if isinstance(body, str) else json.dumps(body)
        self.headers = {"Content-Type": content_type}
        self.status_code = status_code

    def json(self):
        return json.loads(self.text)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Server Error")
