"""
Task graph model: weighted tasks joined by precedence edges with communication costs.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING

import networkx as nx

from .exceptions import GraphError, NotFoundError

if TYPE_CHECKING:
    from .models import GraphSpec


class Task:
    """A node of the task graph.

    Tasks are created by :meth:`TaskGraph.build` and are read-only afterwards.
    Equality and hashing are by identity, so tasks from different graphs never
    compare equal even when their names match.
    """

    __slots__ = ("_name", "_weight", "_index", "_parents", "_children", "_costs", "_bottom_level")

    def __init__(self, name: str, weight: int, index: int):
        self._name = name
        self._weight = weight
        self._index = index
        self._parents: tuple[Task, ...] = ()
        self._children: tuple[Task, ...] = ()
        self._costs: dict[Task, int] = {}
        self._bottom_level = weight

    @property
    def name(self) -> str:
        return self._name

    @property
    def weight(self) -> int:
        return self._weight

    @property
    def index(self) -> int:
        """Position of the task in declaration order."""
        return self._index

    @property
    def parents(self) -> tuple[Task, ...]:
        return self._parents

    @property
    def children(self) -> tuple[Task, ...]:
        return self._children

    @property
    def bottom_level(self) -> int:
        """Longest weighted path from this task to any sink, own weight included."""
        return self._bottom_level

    def comm_cost(self, child: Task) -> int:
        """Communication cost of the edge from this task to ``child``."""
        try:
            return self._costs[child]
        except KeyError:
            raise NotFoundError("Edge", f"{self._name} -> {child.name}") from None

    def is_source(self) -> bool:
        return not self._parents

    def is_sink(self) -> bool:
        return not self._children

    def __repr__(self) -> str:
        return f"Task({self._name!r}, weight={self._weight})"


class TaskGraph:
    """Immutable DAG of tasks with cached bottom levels and total load."""

    def __init__(self, tasks: tuple[Task, ...], order: tuple[Task, ...]):
        self._tasks = tasks
        self._by_name = {task.name: task for task in tasks}
        self._order = order
        self._load = sum(task.weight for task in tasks)

    @classmethod
    def build(
        cls,
        tasks: Mapping[str, int] | Iterable[tuple[str, int]],
        edges: Iterable[tuple[str, str, int]] = (),
    ) -> TaskGraph:
        """Build a graph from ``(name, weight)`` pairs and ``(source, target, cost)`` edges.

        Raises:
            GraphError: if the graph is empty, a name is duplicated, a weight or
                cost is out of range, an edge references an unknown task or is
                repeated, or the edges form a cycle.
        """
        items = tasks.items() if isinstance(tasks, Mapping) else tasks

        nodes: list[Task] = []
        by_name: dict[str, Task] = {}
        for name, weight in items:
            if name in by_name:
                raise GraphError(f"Duplicate task name: {name}")
            if isinstance(weight, bool) or not isinstance(weight, int) or weight <= 0:
                raise GraphError(f"Task {name} must have a positive integer weight, got {weight!r}")
            task = Task(name, weight, len(nodes))
            nodes.append(task)
            by_name[name] = task

        if not nodes:
            raise GraphError("Task graph must contain at least one task")

        dag = nx.DiGraph()
        dag.add_nodes_from(task.index for task in nodes)

        parents: dict[Task, list[Task]] = {task: [] for task in nodes}
        children: dict[Task, list[Task]] = {task: [] for task in nodes}
        for source, target, cost in edges:
            for endpoint in (source, target):
                if endpoint not in by_name:
                    raise GraphError(f"Edge {source} -> {target} references unknown task {endpoint}")
            if isinstance(cost, bool) or not isinstance(cost, int) or cost < 0:
                raise GraphError(
                    f"Edge {source} -> {target} must have a non-negative integer cost, got {cost!r}"
                )
            if source == target:
                raise GraphError(f"Self-loop on task {source}")
            parent, child = by_name[source], by_name[target]
            if dag.has_edge(parent.index, child.index):
                raise GraphError(f"Duplicate edge {source} -> {target}")
            dag.add_edge(parent.index, child.index)
            parents[child].append(parent)
            children[parent].append(child)
            parent._costs[child] = cost

        if not nx.is_directed_acyclic_graph(dag):
            cycle = nx.find_cycle(dag)
            path = " -> ".join(nodes[u].name for u, _ in cycle)
            raise GraphError(f"Task graph contains a cycle: {path} -> {nodes[cycle[0][0]].name}")

        for task in nodes:
            task._parents = tuple(parents[task])
            task._children = tuple(children[task])

        order = tuple(nodes[i] for i in nx.lexicographical_topological_sort(dag))

        # Bottom-up over the reversed topological order: every child is final first.
        for task in reversed(order):
            if task._children:
                task._bottom_level = task.weight + max(child._bottom_level for child in task._children)
            else:
                task._bottom_level = task.weight

        return cls(tuple(nodes), order)

    @classmethod
    def from_spec(cls, spec: GraphSpec) -> TaskGraph:
        """Build a graph from a validated :class:`~dagsched.models.GraphSpec`."""
        return cls.build(
            [(task.name, task.weight) for task in spec.tasks],
            [(edge.source, edge.target, edge.cost) for edge in spec.edges],
        )

    @property
    def tasks(self) -> tuple[Task, ...]:
        """Tasks in declaration order."""
        return self._tasks

    def task(self, name: str) -> Task:
        try:
            return self._by_name[name]
        except KeyError:
            raise NotFoundError("Task", name) from None

    def bottom_level(self, task: Task) -> int:
        return task.bottom_level

    def computational_load(self) -> int:
        return self._load

    def topological_order(self) -> tuple[Task, ...]:
        return self._order

    def critical_path_length(self) -> int:
        """Longest weighted path through the graph, ignoring communication costs."""
        return max(task.bottom_level for task in self._tasks)

    def edges(self) -> Iterator[tuple[Task, Task, int]]:
        for task in self._tasks:
            for child in task.children:
                yield task, child, task.comm_cost(child)

    def __contains__(self, task: object) -> bool:
        return isinstance(task, Task) and self._by_name.get(task.name) is task

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __repr__(self) -> str:
        return f"TaskGraph(tasks={len(self._tasks)}, load={self._load})"
