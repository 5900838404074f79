"""
Multi-worker search: top-level branches explored concurrently with a shared bound.
"""

from __future__ import annotations

import concurrent.futures
import logging
import math
import threading
import time

from .graph import Task, TaskGraph
from .schedule import Schedule
from .search import DFSScheduler, SearchConfig, SearchContext, free_tasks

logger = logging.getLogger(__name__)


class SharedBound:
    """Best makespan published by any worker. Never increases."""

    def __init__(self, value: float = math.inf):
        self._value = value
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        return self._value

    def tighten(self, candidate: float) -> bool:
        """Lower the bound to ``candidate`` if it improves on it. Returns True on change."""
        with self._lock:
            if candidate < self._value:
                self._value = candidate
                return True
            return False


def _search_branch(
    graph: TaskGraph,
    processor_count: int,
    config: SearchConfig,
    shared: SharedBound,
    task: Task,
) -> tuple[Schedule | None, int]:
    scheduler = DFSScheduler(graph, processor_count, config, shared=shared)
    best = scheduler.run_branch(task)
    return best, scheduler.context.branches


class ParallelScheduler:
    """Search each top-level branch on its own worker.

    The root decision places one entry task on the first processor; with
    symmetry pruning those placements are the complete set of root branches.
    After :meth:`run`, ``context`` holds the best schedule, the total branch
    count over all workers and the elapsed time.
    """

    def __init__(
        self,
        graph: TaskGraph,
        processor_count: int,
        workers: int,
        config: SearchConfig | None = None,
    ):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        if processor_count < 1:
            raise ValueError(f"processor_count must be at least 1, got {processor_count}")
        self.graph = graph
        self.processor_count = processor_count
        self.workers = workers
        self.config = config or SearchConfig()
        self.context = SearchContext(symmetric=self.config.symmetry_pruning)

    def run(self) -> Schedule:
        """Return the best schedule found by any worker. Ties go to the earlier branch."""
        if not self.config.symmetry_pruning:
            # Root branches on other processors are only redundant under symmetry pruning.
            logger.info("Symmetry pruning disabled, falling back to sequential search")
            scheduler = DFSScheduler(self.graph, self.processor_count, self.config)
            best = scheduler.run()
            self.context = scheduler.context
            return best

        started = time.perf_counter()
        shared = SharedBound()
        self.context = SearchContext(symmetric=True, shared=shared)
        roots = free_tasks(self.graph, Schedule(self.processor_count))
        logger.info(
            "Searching %d tasks on %d processors with %d workers over %d branches",
            len(self.graph),
            self.processor_count,
            self.workers,
            len(roots),
        )

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [
                executor.submit(
                    _search_branch, self.graph, self.processor_count, self.config, shared, task
                )
                for task in roots
            ]
            results = [future.result() for future in futures]

        for candidate, explored in results:
            self.context.branches += explored
            if candidate is not None and (
                self.context.best is None or candidate.makespan() < self.context.best.makespan()
            ):
                self.context.best = candidate
        best = self.context.best
        self.context.bound = best.makespan()
        self.context.solve_time_seconds = time.perf_counter() - started

        logger.info(
            "Optimal makespan %d found in %.3fs after %d branches",
            best.makespan(),
            self.context.solve_time_seconds,
            self.context.branches,
        )
        return best


def run_parallel(
    graph: TaskGraph,
    processor_count: int,
    workers: int,
    config: SearchConfig | None = None,
) -> Schedule:
    """Search with ``workers`` threads and return an optimal schedule."""
    return ParallelScheduler(graph, processor_count, workers, config).run()
