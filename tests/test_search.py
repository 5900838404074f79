"""
Tests for the branch-and-bound search.
"""

import pytest

from dagsched.exceptions import SearchLimitError
from dagsched.graph import TaskGraph
from dagsched.schedule import Schedule
from dagsched.search import DFSScheduler, SearchConfig, SearchContext, free_tasks, run


class TestExampleScenarios:
    """Known graphs with hand-checked optima."""

    def test_fork_on_two_processors(self, fork_graph, assert_valid_schedule):
        """Splitting the children beats serialising them despite the delay."""
        schedule = run(fork_graph, 2)

        assert schedule.makespan() == 7
        assert_valid_schedule(fork_graph, schedule)
        a, b, c = fork_graph.tasks
        assert (schedule.processor_of(a).id, schedule.start_time_of(a)) == (1, 0)
        assert (schedule.processor_of(b).id, schedule.start_time_of(b)) == (1, 4)
        assert (schedule.processor_of(c).id, schedule.start_time_of(c)) == (2, 5)

    def test_single_task(self, single_task_graph):
        schedule = run(single_task_graph, 1)
        assert schedule.makespan() == 5
        assert schedule.idle_time() == 0

    def test_single_task_many_processors(self, single_task_graph):
        schedule = run(single_task_graph, 4)
        assert schedule.makespan() == 5
        assert schedule.processor_of(single_task_graph.task("only")).id == 1

    def test_diamond_on_one_processor(self, diamond_graph, assert_valid_schedule):
        """One processor serialises everything; edge costs never apply."""
        schedule = run(diamond_graph, 1)
        assert schedule.makespan() == diamond_graph.computational_load()
        assert_valid_schedule(diamond_graph, schedule)

    def test_independent_tasks_spread_out(self):
        graph = TaskGraph.build([("a", 3), ("b", 3), ("c", 3)])
        assert run(graph, 3).makespan() == 3
        assert run(graph, 2).makespan() == 6

    def test_expensive_communication_keeps_chain_local(self):
        graph = TaskGraph.build(
            [("a", 2), ("b", 2), ("c", 2)],
            [("a", "b", 10), ("b", "c", 10)],
        )
        schedule = run(graph, 3)
        assert schedule.makespan() == 6
        assert {schedule.processor_of(t).id for t in graph} == {1}

    def test_invalid_processor_count(self, fork_graph):
        with pytest.raises(ValueError):
            run(fork_graph, 0)


class TestOptimality:
    """The search agrees with exhaustive enumeration."""

    @pytest.mark.parametrize("processor_count", [1, 2, 3])
    def test_matches_enumeration(
        self, small_graphs, brute_force, assert_valid_schedule, processor_count
    ):
        for graph in small_graphs:
            if len(graph) > 5 and processor_count > 2:
                continue
            schedule = run(graph, processor_count)
            assert schedule.makespan() == brute_force(graph, processor_count)
            assert_valid_schedule(graph, schedule)

    @pytest.mark.parametrize("processor_count", [2, 3])
    def test_lower_bound_pruning_keeps_optimum(self, small_graphs, processor_count):
        """Bottom-level pruning changes the work done, not the answer."""
        for graph in small_graphs:
            plain = DFSScheduler(graph, processor_count)
            bounded = DFSScheduler(graph, processor_count, SearchConfig(use_lower_bounds=True))
            assert bounded.run().makespan() == plain.run().makespan()
            assert bounded.context.branches <= plain.context.branches

    @pytest.mark.parametrize("processor_count", [2, 3])
    def test_symmetry_pruning_keeps_optimum(self, small_graphs, processor_count):
        """Interchangeable processors: which one is tried first never matters."""
        for graph in small_graphs:
            pruned = DFSScheduler(graph, processor_count)
            full = DFSScheduler(graph, processor_count, SearchConfig(symmetry_pruning=False))
            assert pruned.run().makespan() == full.run().makespan()
            assert pruned.context.branches < full.context.branches

    def test_makespan_never_below_critical_path(self, small_graphs):
        for graph in small_graphs:
            assert run(graph, 3).makespan() >= graph.critical_path_length()


class _IdleCheckingScheduler(DFSScheduler):
    """Checks the idle-time identity at every node of the search."""

    checks = 0

    def _prunable(self):
        scheduled = sum(task.weight for task in self.schedule.tasks())
        assert self.schedule.idle_time() == (
            self.schedule.makespan() * self.processor_count - scheduled
        )
        self.checks += 1
        return super()._prunable()


class _RootRecordingScheduler(DFSScheduler):
    """Records the processor of every root placement."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.root_processors = []

    def _try(self, task, processor, depth):
        if depth == 0:
            self.root_processors.append(processor.id)
        super()._try(task, processor, depth)


class TestSearchState:
    """Test cases for the search context and backtracking."""

    def test_bound_is_non_increasing(self, small_graphs):
        for graph in small_graphs:
            scheduler = DFSScheduler(graph, 2)
            best = scheduler.run()
            incumbents = scheduler.context.incumbents
            assert incumbents
            assert all(a > b for a, b in zip(incumbents, incumbents[1:]))
            assert incumbents[-1] == best.makespan() == scheduler.context.bound

    def test_fork_incumbent_history(self, fork_graph):
        scheduler = DFSScheduler(fork_graph, 2)
        scheduler.run()
        assert scheduler.context.incumbents == [8, 7]

    def test_live_schedule_is_empty_after_search(self, diamond_graph):
        """Every placement is undone on the way back up."""
        scheduler = DFSScheduler(diamond_graph, 2)
        best = scheduler.run()
        assert len(scheduler.schedule) == 0
        assert len(best) == 4

    def test_idle_time_identity_during_search(self, diamond_graph):
        scheduler = _IdleCheckingScheduler(diamond_graph, 2)
        scheduler.run()
        assert scheduler.checks == scheduler.context.branches

    def test_run_is_repeatable(self, small_graphs):
        """Same input, same enumeration order, same schedule."""
        graph = small_graphs[2]
        first = run(graph, 2)
        second = run(graph, 2)
        assert [(p.task.name, p.processor_id, p.start) for p in first.placements()] == [
            (p.task.name, p.processor_id, p.start) for p in second.placements()
        ]

    def test_branch_limit(self, small_graphs):
        with pytest.raises(SearchLimitError) as exc_info:
            run(small_graphs[0], 3, SearchConfig(max_branches=5))
        assert exc_info.value.limit == 5

    @pytest.mark.parametrize("symmetry_pruning", [True, False])
    def test_symmetric_follows_config(self, fork_graph, symmetry_pruning):
        scheduler = _RootRecordingScheduler(
            fork_graph, 3, SearchConfig(symmetry_pruning=symmetry_pruning)
        )
        scheduler.run()
        assert scheduler.context.symmetric is symmetry_pruning
        expected = [1] if symmetry_pruning else [1, 2, 3]
        assert scheduler.root_processors == expected

    def test_context_defaults(self):
        context = SearchContext()
        assert context.best is None
        assert context.current_bound() == float("inf")


class TestFreeTasks:
    """Test cases for the frontier computation."""

    def test_initial_frontier(self, diamond_graph):
        assert free_tasks(diamond_graph, Schedule(2)) == [diamond_graph.task("A")]

    def test_frontier_after_root(self, diamond_graph):
        schedule = Schedule(2)
        schedule.schedule(diamond_graph.task("A"), 1, 0)
        assert [t.name for t in free_tasks(diamond_graph, schedule)] == ["B", "C"]

    def test_join_needs_all_parents(self, diamond_graph):
        schedule = Schedule(1)
        for name, start in [("A", 0), ("B", 2)]:
            schedule.schedule(diamond_graph.task(name), 1, start)
        assert [t.name for t in free_tasks(diamond_graph, schedule)] == ["C"]
