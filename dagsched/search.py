"""
Branch-and-bound depth-first search for a minimum-makespan schedule.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import SearchLimitError
from .graph import Task, TaskGraph
from .processor import Processor
from .schedule import Schedule

if TYPE_CHECKING:
    from .parallel import SharedBound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchConfig:
    symmetry_pruning: bool = True
    use_lower_bounds: bool = False
    max_branches: int | None = None


@dataclass
class SearchContext:
    """Mutable state threaded through the recursion.

    ``bound`` only ever decreases; each value it takes is appended to
    ``incumbents``. ``symmetric`` is copied from
    :attr:`SearchConfig.symmetry_pruning` and stays fixed for the run; it only
    affects the root decision, where every processor is still empty. When ``shared`` is set, the effective bound is the lower
    of the local one and the bound published by other workers.
    """

    bound: float = math.inf
    best: Schedule | None = None
    symmetric: bool = True
    branches: int = 0
    incumbents: list[int] = field(default_factory=list)
    shared: SharedBound | None = None
    solve_time_seconds: float = 0.0

    def current_bound(self) -> float:
        if self.shared is not None:
            return min(self.bound, self.shared.value)
        return self.bound

    def offer(self, schedule: Schedule) -> None:
        """Record ``schedule`` as the new incumbent. The caller has checked it beats the bound."""
        makespan = schedule.makespan()
        self.best = schedule.snapshot()
        self.bound = makespan
        self.incumbents.append(makespan)
        if self.shared is not None:
            self.shared.tighten(makespan)
        logger.debug("New incumbent with makespan %d after %d branches", makespan, self.branches)


def free_tasks(graph: TaskGraph, schedule: Schedule) -> list[Task]:
    """Unscheduled tasks whose parents are all scheduled, in declaration order."""
    return [
        task
        for task in graph.tasks
        if not schedule.contains(task)
        and all(schedule.contains(parent) for parent in task.parents)
    ]


class DFSScheduler:
    """Exhaustive depth-first search with bound and processor-symmetry pruning."""

    def __init__(
        self,
        graph: TaskGraph,
        processor_count: int,
        config: SearchConfig | None = None,
        shared: SharedBound | None = None,
    ):
        if processor_count < 1:
            raise ValueError(f"processor_count must be at least 1, got {processor_count}")
        self.graph = graph
        self.processor_count = processor_count
        self.config = config or SearchConfig()
        self.shared = shared
        self.schedule = Schedule(processor_count)
        self.context = self._new_context()

    def _new_context(self) -> SearchContext:
        return SearchContext(symmetric=self.config.symmetry_pruning, shared=self.shared)

    def run(self) -> Schedule | None:
        """Search the whole tree and return the best complete schedule."""
        started = time.perf_counter()
        self.schedule = Schedule(self.processor_count)
        self.context = self._new_context()
        logger.info(
            "Searching %d tasks on %d processors", len(self.graph), self.processor_count
        )

        self._explore(0)

        self.context.solve_time_seconds = time.perf_counter() - started
        best = self.context.best
        if best is None:
            # Only reachable when a shared bound from other workers pruned everything.
            logger.info("No schedule improved on the shared bound")
            return None
        logger.info(
            "Optimal makespan %d found in %.3fs after %d branches",
            best.makespan(),
            self.context.solve_time_seconds,
            self.context.branches,
        )
        return best

    def run_branch(self, task: Task) -> Schedule | None:
        """Search only the subtree that starts with ``task`` on the first processor.

        Used by the parallel driver to split the root decision. Returns the best
        schedule of the subtree, or None if every completion was pruned.
        """
        if task.parents:
            raise ValueError(f"Task {task.name} cannot start a branch, it has parents")
        started = time.perf_counter()
        self.schedule = Schedule(self.processor_count)
        self.context = self._new_context()

        self._try(task, self.schedule.processors[0], 0)

        self.context.solve_time_seconds = time.perf_counter() - started
        return self.context.best

    def _explore(self, depth: int) -> None:
        frontier = free_tasks(self.graph, self.schedule)
        if not frontier:
            return

        for task in frontier:
            for processor in self.schedule.processors:
                # Every processor is empty at the root, so they are all equivalent.
                if self.context.symmetric and depth == 0 and processor.id != 1:
                    break
                self._try(task, processor, depth)

    def _try(self, task: Task, processor: Processor, depth: int) -> None:
        self.context.branches += 1
        limit = self.config.max_branches
        if limit is not None and self.context.branches > limit:
            raise SearchLimitError(limit)

        start = self.schedule.earliest_start(task, processor)
        self.schedule.schedule(task, processor, start)

        if not self._prunable():
            if depth + 1 == len(self.graph):
                self.context.offer(self.schedule)
            else:
                self._explore(depth + 1)

        self.schedule.undo()

    def _prunable(self) -> bool:
        bound = self.context.current_bound()
        estimate = self.schedule.makespan()
        if self.config.use_lower_bounds:
            estimate = max(estimate, self.schedule.lower_bound_f1())
        return estimate >= bound


def run(
    graph: TaskGraph,
    processor_count: int,
    config: SearchConfig | None = None,
) -> Schedule:
    """Return an optimal complete schedule of ``graph`` on ``processor_count`` processors."""
    return DFSScheduler(graph, processor_count, config).run()
