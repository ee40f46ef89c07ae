"""
Full pipeline runner ("go").

Sequences crawl, index and map, waits for the map stage's audit tasks to
drain, then runs reduce. Each stage starts only after the previous one has
completed; the first failure stops the pipeline.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from tqdm import tqdm

from .config import PipelineConfig
from .errors import PollCancelledError
from .gate import PreconditionGate
from .stages import CrawlStage, IndexStage, MapStage, ReduceStage
from .status import AUDIT_TASK_KIND, TaskStatusReader

logger = logging.getLogger(__name__)


class RunnerState(Enum):
    IDLE = "idle"
    CRAWLING = "crawling"
    INDEXING = "indexing"
    MAPPING = "mapping"
    POLLING = "polling"
    REDUCING = "reducing"
    DONE = "done"


class PipelineRunner:
    """
    Runs crawl -> index -> map -> (poll) -> reduce.

    Polling has no overall timeout: if the audit tasks never finish, the
    runner keeps polling until cancelled via ``cancel_event`` or an operator
    interrupt.
    """

    def __init__(
        self,
        config: PipelineConfig,
        gate: PreconditionGate,
        crawl: CrawlStage,
        index: IndexStage,
        map_stage: MapStage,
        reduce: ReduceStage,
        status_reader: TaskStatusReader,
        sleep: Optional[Callable[[float], Any]] = None,
        cancel_event: Optional[threading.Event] = None,
        show_progress: bool = True
    ):
        self.config = config
        self.gate = gate
        self.crawl = crawl
        self.index = index
        self.map_stage = map_stage
        self.reduce = reduce
        self.status_reader = status_reader
        self.cancel_event = cancel_event or threading.Event()
        # Default waits return early once the cancel event is set
        self.sleep = sleep or self.cancel_event.wait
        self.show_progress = show_progress
        self.state = RunnerState.IDLE

    def _transition(self, state: RunnerState) -> None:
        logger.info(f"Pipeline: {self.state.value} -> {state.value}")
        self.state = state

    def _settle(self) -> None:
        """Give the backend a moment before the next stage."""
        logger.debug(f"Settling for {self.config.settle_delay}s")
        self.sleep(self.config.settle_delay)

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise PollCancelledError()

    def wait_for_tasks(self) -> int:
        """
        Poll the status reader until no audit tasks are running.

        Every poll is a fresh query. Polls are grouped into bursts of
        ``poll_burst``, each shown as a progress bar.

        Returns:
            Number of status queries made

        Raises:
            PollCancelledError: If ``cancel_event`` is set while waiting
        """
        polls = 0
        burst = max(1, self.config.poll_burst)

        while True:
            with tqdm(
                total=burst,
                desc=f"Waiting for {AUDIT_TASK_KIND}",
                unit="poll",
                leave=False,
                disable=not self.show_progress
            ) as pbar:
                for _ in range(burst):
                    self._check_cancelled()

                    running = self.status_reader.running(AUDIT_TASK_KIND)
                    polls += 1
                    if not running:
                        logger.info(f"No {AUDIT_TASK_KIND} tasks running after {polls} poll(s)")
                        return polls

                    pbar.set_postfix(running=len(running))
                    pbar.update(1)
                    self.sleep(self.config.poll_interval)
                    self._check_cancelled()

            logger.info(f"{len(running)} {AUDIT_TASK_KIND} task(s) still running, polling again")

    def run(self, product_path: str) -> List[Dict[str, Any]]:
        """
        Execute the whole pipeline against one product directory.

        Args:
            product_path: Directory to crawl (also forwarded to the indexer)

        Returns:
            Per-stage results, in execution order

        Raises:
            ServicesNotReadyError: If the backend is not up
            StageFailedError: If crawl or index exits non-zero
            PollCancelledError: If polling is cancelled
        """
        self.gate.require_running()
        start_time = datetime.now()
        results = []

        self._transition(RunnerState.CRAWLING)
        results.append(self.crawl.invoke([product_path]))
        self._settle()

        self._transition(RunnerState.INDEXING)
        results.append(self.index.invoke([product_path]))
        self._settle()

        self._transition(RunnerState.MAPPING)
        results.append(self.map_stage.invoke())

        self._transition(RunnerState.POLLING)
        polls = self.wait_for_tasks()
        results.append({"stage": "poll", "status": "completed", "polls": polls})

        self._transition(RunnerState.REDUCING)
        results.append(self.reduce.invoke())

        self._transition(RunnerState.DONE)
        duration = (datetime.now() - start_time).total_seconds()
        logger.info(f"Pipeline completed in {duration:.1f} seconds")

        return results
