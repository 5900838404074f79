"""
Processor timeline: tasks appended in increasing time order on one execution unit.
"""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import NotFoundError, PlacementError
from .graph import Task


@dataclass(frozen=True)
class Slot:
    task: Task
    start: int
    finish: int


class Processor:
    """Ordered, non-overlapping timeline of tasks.

    Tasks can only be appended after the current finish time and removed in
    last-in-first-out order, which keeps the timeline sorted without any
    bookkeeping beyond a list.
    """

    EMPTY_FINISH_TIME = 0

    def __init__(self, id: int):
        self.id = id
        self._slots: list[Slot] = []
        self._index: dict[Task, Slot] = {}

    def earliest_start(self, task: Task, ready_time: int) -> int:
        """Earliest start of ``task`` here once its input data is available at ``ready_time``."""
        return max(ready_time, self.finish_time())

    def schedule(self, task: Task, start_time: int) -> None:
        if task in self._index:
            raise PlacementError(f"Task {task.name} is already on processor {self.id}")
        if start_time < 0:
            raise PlacementError(f"Task {task.name} cannot start at negative time {start_time}")
        if start_time < self.finish_time():
            raise PlacementError(
                f"Task {task.name} at {start_time} overlaps processor {self.id}, "
                f"busy until {self.finish_time()}"
            )
        slot = Slot(task, start_time, start_time + task.weight)
        self._slots.append(slot)
        self._index[task] = slot

    def remove(self, task: Task) -> None:
        if task not in self._index:
            raise NotFoundError("Task", f"{task.name} on processor {self.id}")
        if self._slots[-1].task is not task:
            raise PlacementError(
                f"Task {task.name} is not the last task on processor {self.id}"
            )
        self._slots.pop()
        del self._index[task]

    def finish_time(self) -> int:
        if not self._slots:
            return self.EMPTY_FINISH_TIME
        return self._slots[-1].finish

    def start_time_of(self, task: Task) -> int:
        return self._slot(task).start

    def finish_time_of(self, task: Task) -> int:
        return self._slot(task).finish

    def _slot(self, task: Task) -> Slot:
        try:
            return self._index[task]
        except KeyError:
            raise NotFoundError("Task", f"{task.name} on processor {self.id}") from None

    def is_empty(self) -> bool:
        return not self._slots

    def contains(self, task: Task) -> bool:
        return task in self._index

    def tasks(self) -> list[Task]:
        return [slot.task for slot in self._slots]

    def entries(self) -> list[Slot]:
        """Timeline entries in start-time order."""
        return list(self._slots)

    def busy_time(self) -> int:
        return sum(slot.task.weight for slot in self._slots)

    def copy(self) -> Processor:
        clone = Processor(self.id)
        clone._slots = list(self._slots)
        clone._index = dict(self._index)
        return clone

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"Processor({self.id}, tasks={[slot.task.name for slot in self._slots]})"
