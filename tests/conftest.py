import math

import pytest

from dagsched.graph import TaskGraph


@pytest.fixture
def fork_graph():
    """A(4) fans out to B(2) and C(2), both edges cost 1."""
    return TaskGraph.build(
        [("A", 4), ("B", 2), ("C", 2)],
        [("A", "B", 1), ("A", "C", 1)],
    )


@pytest.fixture
def diamond_graph():
    return TaskGraph.build(
        [("A", 2), ("B", 3), ("C", 3), ("D", 2)],
        [("A", "B", 1), ("A", "C", 2), ("B", "D", 2), ("C", "D", 1)],
    )


@pytest.fixture
def single_task_graph():
    return TaskGraph.build([("only", 5)])


@pytest.fixture
def small_graphs():
    """Hand-made graphs small enough for exhaustive enumeration."""
    return [
        # Independent tasks
        TaskGraph.build([("a", 3), ("b", 3), ("c", 2), ("d", 2)]),
        # Chain with expensive communication
        TaskGraph.build(
            [("a", 2), ("b", 2), ("c", 2), ("d", 2)],
            [("a", "b", 5), ("b", "c", 5), ("c", "d", 5)],
        ),
        # Out-tree
        TaskGraph.build(
            [("r", 3), ("x", 2), ("y", 4), ("z", 1), ("w", 3)],
            [("r", "x", 2), ("r", "y", 1), ("x", "z", 3), ("x", "w", 1)],
        ),
        # In-tree
        TaskGraph.build(
            [("a", 2), ("b", 3), ("c", 1), ("d", 4), ("e", 2)],
            [("a", "d", 2), ("b", "d", 1), ("c", "e", 4), ("d", "e", 1)],
        ),
        # Two components with a cheap join
        TaskGraph.build(
            [("p", 5), ("q", 1), ("s", 2), ("t", 2), ("u", 3), ("v", 1)],
            [("p", "s", 0), ("q", "t", 3), ("s", "v", 2), ("t", "v", 1), ("q", "u", 2)],
        ),
    ]


def _enumerate_makespan(graph, processor_count):
    """Minimum makespan over every precedence-valid placement sequence, no pruning."""
    best = math.inf
    placed = {}
    free_at = [0] * processor_count

    def explore():
        nonlocal best
        if len(placed) == len(graph):
            best = min(best, max(free_at))
            return
        for task in graph.tasks:
            if task in placed or any(parent not in placed for parent in task.parents):
                continue
            for proc in range(processor_count):
                ready = 0
                for parent in task.parents:
                    parent_proc, parent_finish = placed[parent]
                    delay = 0 if parent_proc == proc else parent.comm_cost(task)
                    ready = max(ready, parent_finish + delay)
                start = max(ready, free_at[proc])
                previous = free_at[proc]
                placed[task] = (proc, start + task.weight)
                free_at[proc] = start + task.weight
                explore()
                free_at[proc] = previous
                del placed[task]

    explore()
    return best


@pytest.fixture
def brute_force():
    return _enumerate_makespan


def _assert_valid_schedule(graph, schedule):
    # Every task exactly once
    assert sorted(t.name for t in schedule.tasks()) == sorted(t.name for t in graph.tasks)
    assert schedule.is_complete(graph)

    # Precedence with communication delay
    for parent, child, cost in graph.edges():
        delay = 0 if schedule.processor_of(parent) is schedule.processor_of(child) else cost
        assert schedule.start_time_of(child) >= schedule.finish_time_of(parent) + delay

    # No overlap on any processor
    for processor in schedule.processors:
        entries = processor.entries()
        for earlier, later in zip(entries, entries[1:]):
            assert earlier.finish <= later.start
        for entry in entries:
            assert entry.finish == entry.start + entry.task.weight


@pytest.fixture
def assert_valid_schedule():
    return _assert_valid_schedule
