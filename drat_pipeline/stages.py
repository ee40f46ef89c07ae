"""
Pipeline stages: crawl, index, map, reduce.

Crawl and index block until their tool exits. Map and reduce only trigger
tasks in the workflow manager and return as soon as the client does.
"""

from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .base import StageInvoker
from .config import COLLABORATORS, PipelineConfig
from .gate import PreconditionGate
from .prompts import confirm
from .status import AUDIT_TASK_KIND, TaskStatusReader
from .utils import banner


class Stage(Enum):
    """A pipeline stage, its argument count and its workflow task."""

    CRAWL = "crawl"
    INDEX = "index"
    MAP = "map"
    REDUCE = "reduce"

    @property
    def arity(self) -> int:
        return STAGE_ARITY[self]

    @property
    def task_id(self) -> Optional[str]:
        """Workflow task triggered by this stage (None for process stages)."""
        return STAGE_TASKS.get(self)


STAGE_ARITY = {
    Stage.CRAWL: 1,
    Stage.INDEX: 1,
    Stage.MAP: 0,
    Stage.REDUCE: 0,
}

STAGE_TASKS = {
    Stage.MAP: "MimePartitioner",
    Stage.REDUCE: "RatAggregator",
}

# Ordered list of stages for sequential execution
STAGE_ORDER = [Stage.CRAWL, Stage.INDEX, Stage.MAP, Stage.REDUCE]


class CrawlStage(StageInvoker):
    """Ingest a product directory into the catalog via the crawler."""

    stage = Stage.CRAWL

    def build_command(self, args: Sequence[str]) -> List[str]:
        product_path = Path(args[0]).expanduser().resolve()
        return [
            str(self.config.get_path(self.config.crawler_launcher)),
            "--operation", "--launchMetCrawler",
            "--clientTransferer", COLLABORATORS["transfer_factory"],
            "--productPath", str(product_path),
            "--filemgrUrl", self.config.catalog_url,
            "--metExtractorConfig", str(self.config.get_path(self.config.extractor_config)),
            "--metExtractor", COLLABORATORS["extractor_class"],
        ]


class IndexStage(StageInvoker):
    """
    Rebuild and optimize the search index from the catalog.

    The path argument is forwarded to the indexer as given, but the indexer
    always indexes every product in the catalog; the path does not select
    what gets indexed.
    """

    stage = Stage.INDEX

    def before_launch(self, args: Sequence[str]) -> None:
        self.logger.info(
            f"Indexing all catalog products (path argument {args[0]!r} is "
            "passed through, not used as a filter)"
        )

    def build_command(self, args: Sequence[str]) -> List[str]:
        return [
            "java",
            f"-Djava.ext.dirs={self.config.get_path(self.config.catalog_lib_dir)}",
            f"-DSOLR_INDEXER_CONFIG={self.config.get_path(self.config.indexer_properties)}",
            COLLABORATORS["indexer_class"],
            "--all",
            "--fmUrl", self.config.catalog_url,
            "--optimize",
            "--solrUrl", self.config.search_index_url,
            args[0],
        ]


class WorkflowTriggerStage(StageInvoker):
    """Trigger this stage's task in the workflow manager."""

    def build_command(self, args: Sequence[str]) -> List[str]:
        task_id = COLLABORATORS["task_namespace"] + self.stage.task_id
        return [
            str(self.config.get_path(self.config.workflow_client)),
            "--url", self.config.workflow_url,
            "--operation", "--dynWorkflow",
            "--taskIds", task_id,
        ]


class MapStage(WorkflowTriggerStage):
    """Partition the catalog by MIME type; returns once the trigger is sent."""

    stage = Stage.MAP


class ReduceStage(WorkflowTriggerStage):
    """
    Aggregate the audit results.

    If audit tasks from the map stage are still running, the operator must
    confirm before the aggregation is triggered.
    """

    stage = Stage.REDUCE

    def __init__(
        self,
        config: PipelineConfig,
        gate: PreconditionGate,
        status_reader: TaskStatusReader,
        runner: Optional[Callable] = None,
        input_fn: Callable[[str], str] = input
    ):
        super().__init__(config, gate, runner=runner)
        self.status_reader = status_reader
        self.input_fn = input_fn

    def before_launch(self, args: Sequence[str]) -> None:
        running = self.status_reader.running(AUDIT_TASK_KIND)
        if not running:
            return

        self.logger.warning(f"{len(running)} {AUDIT_TASK_KIND} task(s) still running")
        print(banner("WARNING: map tasks are still running"))
        print(f"\n{len(running)} {AUDIT_TASK_KIND} task(s) have not finished.")
        print("Reducing now will aggregate incomplete results.\n")

        confirm("Run reduce anyway?", self.input_fn)
        self.logger.info("Operator confirmed reduce while map tasks are running")
