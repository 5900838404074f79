"""Cross-checks of the branch-and-bound search against the CP-SAT model.

These tests verify both solvers in isolation against each other.
"""

import pytest

from dagsched.cpsat import CpSatConfig, solve_with_cpsat, verify_schedule
from dagsched.exceptions import VerificationError
from dagsched.graph import TaskGraph
from dagsched.schedule import Schedule
from dagsched.search import run


class TestCpSatModel:
    """Basic tests for the constraint model."""

    def test_fork(self, fork_graph):
        result = solve_with_cpsat(fork_graph, 2)
        assert result.success is True
        assert result.optimization_status == "OPTIMAL"
        assert result.makespan == 7

    def test_single_processor_serialises(self, diamond_graph):
        result = solve_with_cpsat(diamond_graph, 1)
        assert result.makespan == diamond_graph.computational_load()
        assert set(result.processors.values()) == {1}

    def test_solution_respects_precedence(self, diamond_graph):
        result = solve_with_cpsat(diamond_graph, 2)
        for parent, child, cost in diamond_graph.edges():
            delay = 0 if result.processors[parent.name] == result.processors[child.name] else cost
            assert result.starts[child.name] >= result.starts[parent.name] + parent.weight + delay

    def test_invalid_processor_count(self, fork_graph):
        with pytest.raises(ValueError):
            solve_with_cpsat(fork_graph, 0)


class TestAgreement:
    """The exhaustive search and the constraint model agree on the optimum."""

    @pytest.mark.parametrize("processor_count", [1, 2, 3])
    def test_small_graphs(self, small_graphs, processor_count):
        config = CpSatConfig(max_time_in_seconds=30.0)
        for graph in small_graphs:
            result = solve_with_cpsat(graph, processor_count, config)
            assert result.optimization_status == "OPTIMAL"
            assert run(graph, processor_count).makespan() == result.makespan

    def test_larger_out_tree(self):
        graph = TaskGraph.build(
            [("a", 5), ("b", 6), ("c", 5), ("d", 6), ("e", 4), ("f", 7), ("g", 7)],
            [
                ("a", "b", 15), ("a", "c", 11), ("a", "d", 11),
                ("b", "e", 19), ("b", "f", 4), ("b", "g", 21),
            ],
        )
        result = solve_with_cpsat(graph, 2, CpSatConfig(max_time_in_seconds=30.0))
        assert result.optimization_status == "OPTIMAL"
        assert run(graph, 2).makespan() == result.makespan


class TestVerifySchedule:
    """Cross-checking a finished schedule."""

    def test_optimal_schedule_passes(self, fork_graph):
        result = verify_schedule(fork_graph, run(fork_graph, 2))
        assert result.optimization_status == "OPTIMAL"
        assert result.makespan == 7

    def test_suboptimal_schedule_rejected(self, fork_graph):
        a, b, c = fork_graph.tasks
        schedule = Schedule(2)
        schedule.schedule(a, 1, 0)
        schedule.schedule(b, 1, 4)
        schedule.schedule(c, 1, 6)
        with pytest.raises(VerificationError) as exc_info:
            verify_schedule(fork_graph, schedule)
        assert exc_info.value.error_code == "VERIFICATION_ERROR"
        assert "8" in exc_info.value.message
