"""
DRAT Pipeline Coordinator

Drives the crawl -> index -> map -> reduce audit pipeline against an
already-running set of backend services.
"""

__version__ = "0.1.0"

from .config import PipelineConfig, ServiceEndpoint
from .gate import PreconditionGate
from .probe import PortProber
from .reset import ResetOperation
from .runner import PipelineRunner, RunnerState
from .stages import (
    Stage,
    STAGE_ORDER,
    CrawlStage,
    IndexStage,
    MapStage,
    ReduceStage,
)
from .status import TaskStatusReader, TaskInstance

__all__ = [
    "PipelineConfig",
    "ServiceEndpoint",
    "PreconditionGate",
    "PortProber",
    "ResetOperation",
    "PipelineRunner",
    "RunnerState",
    "Stage",
    "STAGE_ORDER",
    "CrawlStage",
    "IndexStage",
    "MapStage",
    "ReduceStage",
    "TaskStatusReader",
    "TaskInstance",
]
