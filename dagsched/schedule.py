"""
Partial or complete assignment of tasks to processors.
"""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import NotFoundError, PlacementError, StateError
from .graph import Task, TaskGraph
from .processor import Processor


@dataclass(frozen=True)
class Placement:
    """One entry of the undo log: where and when a task was placed."""

    task: Task
    processor_id: int
    start: int
    finish: int


class Schedule:
    """Mutable schedule over a fixed number of identical processors.

    Placements are kept on a stack so that the search can backtrack with
    :meth:`undo` independently of how the processors store their timelines.
    Precedence closure is the caller's responsibility.
    """

    def __init__(self, processor_count: int):
        if processor_count < 1:
            raise ValueError(f"processor_count must be at least 1, got {processor_count}")
        self._processors = tuple(Processor(i) for i in range(1, processor_count + 1))
        self._task_to_processor: dict[Task, Processor] = {}
        self._stack: list[Placement] = []
        self._allocated_work = 0
        self._ever_placed = False

    @property
    def processors(self) -> tuple[Processor, ...]:
        return self._processors

    @property
    def processor_count(self) -> int:
        return len(self._processors)

    @property
    def allocated_work(self) -> int:
        """Sum of the weights of all scheduled tasks."""
        return self._allocated_work

    def processor(self, processor_id: int) -> Processor:
        if not 1 <= processor_id <= len(self._processors):
            raise NotFoundError("Processor", str(processor_id))
        return self._processors[processor_id - 1]

    def _resolve(self, processor: Processor | int) -> Processor:
        if isinstance(processor, Processor):
            resolved = self.processor(processor.id)
            if resolved is not processor:
                raise PlacementError(f"Processor {processor.id} does not belong to this schedule")
            return resolved
        return self.processor(processor)

    def schedule(self, task: Task, processor: Processor | int, start_time: int) -> None:
        """Place ``task`` on ``processor`` (a processor of this schedule or its 1-based id)."""
        if task in self._task_to_processor:
            raise PlacementError(f"Task {task.name} is already scheduled")
        target = self._resolve(processor)
        target.schedule(task, start_time)
        self._task_to_processor[task] = target
        self._allocated_work += task.weight
        self._stack.append(Placement(task, target.id, start_time, start_time + task.weight))
        self._ever_placed = True

    def remove(self, task: Task) -> None:
        processor = self._task_to_processor.get(task)
        if processor is None:
            raise NotFoundError("Task", f"{task.name} in schedule")
        processor.remove(task)
        del self._task_to_processor[task]
        self._allocated_work -= task.weight
        if self._stack and self._stack[-1].task is task:
            self._stack.pop()
        else:
            self._stack = [p for p in self._stack if p.task is not task]

    def undo(self) -> Placement:
        """Remove the most recent placement and return it."""
        if not self._stack:
            raise StateError("Nothing to undo on an empty schedule")
        placement = self._stack[-1]
        self.remove(placement.task)
        return placement

    def data_ready_time(self, task: Task, processor: Processor | int) -> int:
        """Time at which every parent's output is available on ``processor``.

        Parents on the same processor contribute their finish time; parents
        elsewhere add the communication cost of the connecting edge.
        """
        target = self._resolve(processor)
        ready = 0
        for parent in task.parents:
            parent_processor = self._task_to_processor.get(parent)
            if parent_processor is None:
                raise NotFoundError("Parent task", f"{parent.name} of {task.name}")
            arrival = parent_processor.finish_time_of(parent)
            if parent_processor is not target:
                arrival += parent.comm_cost(task)
            if arrival > ready:
                ready = arrival
        return ready

    def earliest_start(self, task: Task, processor: Processor | int) -> int:
        target = self._resolve(processor)
        return target.earliest_start(task, self.data_ready_time(task, target))

    def makespan(self) -> int:
        """Latest processor finish time.

        A schedule emptied again by :meth:`undo` or :meth:`remove` has makespan 0;
        only a schedule that never held a task raises :class:`StateError`.
        """
        if not self._ever_placed:
            raise StateError("Makespan is undefined before any task is scheduled")
        return max(processor.finish_time() for processor in self._processors)

    def idle_time(self) -> int:
        return self.makespan() * len(self._processors) - self._allocated_work

    def lower_bound_f1(self) -> int:
        """Max over scheduled tasks of start time plus bottom level."""
        return max(
            (processor.start_time_of(task) + task.bottom_level
             for task, processor in self._task_to_processor.items()),
            default=0,
        )

    def lower_bound_f2(self, graph: TaskGraph) -> float:
        """Total load plus accrued idle time, averaged over the processors."""
        return (graph.computational_load() + self.idle_time()) / len(self._processors)

    def snapshot(self) -> Schedule:
        """Independent copy that later mutation of this schedule cannot affect."""
        clone = Schedule.__new__(Schedule)
        clone._processors = tuple(processor.copy() for processor in self._processors)
        clone._task_to_processor = {
            task: clone._processors[processor.id - 1]
            for task, processor in self._task_to_processor.items()
        }
        clone._stack = list(self._stack)
        clone._allocated_work = self._allocated_work
        clone._ever_placed = self._ever_placed
        return clone

    def processor_of(self, task: Task) -> Processor:
        try:
            return self._task_to_processor[task]
        except KeyError:
            raise NotFoundError("Task", f"{task.name} in schedule") from None

    def start_time_of(self, task: Task) -> int:
        return self.processor_of(task).start_time_of(task)

    def finish_time_of(self, task: Task) -> int:
        return self.processor_of(task).finish_time_of(task)

    def contains(self, task: Task) -> bool:
        return task in self._task_to_processor

    def tasks(self) -> list[Task]:
        """Scheduled tasks in placement order."""
        return [placement.task for placement in self._stack]

    def placements(self) -> list[Placement]:
        """Placements ordered by processor, then start time."""
        return sorted(self._stack, key=lambda p: (p.processor_id, p.start))

    def is_complete(self, graph: TaskGraph) -> bool:
        return len(self._task_to_processor) == len(graph) and all(
            task in self._task_to_processor for task in graph
        )

    def __len__(self) -> int:
        return len(self._task_to_processor)

    def __repr__(self) -> str:
        makespan = self.makespan() if self._task_to_processor else None
        return f"Schedule(processors={len(self._processors)}, tasks={len(self)}, makespan={makespan})"
