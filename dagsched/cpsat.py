"""Exact constraint model of the same scheduling problem, solved with OR-Tools CP-SAT.

The branch-and-bound search is the production solver. This model is an
independent formulation used to cross-check its optimality, as
``dagsched --verify`` does. Each task picks one processor through an
optional interval, intervals on a processor do not overlap, and a child
starts after its parent's finish plus the edge cost unless both run on the
same processor.
"""

from __future__ import annotations

import logging
import time as time_module
from dataclasses import dataclass, field
from typing import Any

from ortools.sat.python import cp_model

from .exceptions import VerificationError
from .graph import TaskGraph
from .schedule import Schedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CpSatConfig:
    max_time_in_seconds: float = 10.0
    log_search_progress: bool = False
    num_workers: int = 1


@dataclass
class CpSatResult:
    success: bool
    makespan: int | None = None
    optimization_status: str = "UNKNOWN"
    starts: dict[str, int] = field(default_factory=dict)
    processors: dict[str, int] = field(default_factory=dict)
    solve_time_seconds: float = 0.0


def solve_with_cpsat(
    graph: TaskGraph,
    processor_count: int,
    config: CpSatConfig | None = None,
) -> CpSatResult:
    start_time = time_module.time()
    if config is None:
        config = CpSatConfig()
    if processor_count < 1:
        raise ValueError(f"processor_count must be at least 1, got {processor_count}")

    tasks = graph.tasks
    processors = range(processor_count)
    horizon = graph.computational_load() + sum(cost for _, _, cost in graph.edges())

    model = cp_model.CpModel()

    starts: dict[int, Any] = {}
    ends: dict[int, Any] = {}
    for task in tasks:
        starts[task.index] = model.NewIntVar(0, horizon - task.weight, f"start_{task.index}")
        ends[task.index] = model.NewIntVar(task.weight, horizon, f"end_{task.index}")
        model.Add(ends[task.index] == starts[task.index] + task.weight)

    # Decision variables: x[i, p] = 1 if task i runs on processor p
    x: dict[tuple[int, int], Any] = {}
    intervals: dict[int, list[Any]] = {p: [] for p in processors}
    for task in tasks:
        i = task.index
        for p in processors:
            x[i, p] = model.NewBoolVar(f"task_{i}_proc_{p}")
            intervals[p].append(
                model.NewOptionalIntervalVar(
                    starts[i], task.weight, ends[i], x[i, p], f"interval_{i}_{p}"
                )
            )
        # Constraint 1: Each task runs on exactly one processor
        model.AddExactlyOne([x[i, p] for p in processors])

    # Constraint 2: A processor runs one task at a time
    for p in processors:
        model.AddNoOverlap(intervals[p])

    # Constraint 3: Precedence with communication delay across processors
    for parent, child, cost in graph.edges():
        u, v = parent.index, child.index
        if cost == 0:
            model.Add(starts[v] >= ends[u])
            continue
        co_located = []
        for p in processors:
            both = model.NewBoolVar(f"same_{u}_{v}_{p}")
            model.Add(both <= x[u, p])
            model.Add(both <= x[v, p])
            model.Add(both >= x[u, p] + x[v, p] - 1)
            co_located.append(both)
        model.Add(starts[v] >= ends[u] + cost - cost * sum(co_located))

    # Identical processors: pin the first task in topological order to processor 0
    model.Add(x[graph.topological_order()[0].index, 0] == 1)

    makespan = model.NewIntVar(0, horizon, "makespan")
    model.AddMaxEquality(makespan, [ends[task.index] for task in tasks])
    model.Minimize(makespan)

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = float(config.max_time_in_seconds)
    solver.parameters.log_search_progress = bool(config.log_search_progress)
    solver.parameters.num_workers = int(config.num_workers)

    status = solver.Solve(model)
    solve_time = time_module.time() - start_time

    status_map = {
        cp_model.OPTIMAL: "OPTIMAL",
        cp_model.FEASIBLE: "FEASIBLE",
        cp_model.INFEASIBLE: "INFEASIBLE",
        cp_model.UNKNOWN: "UNKNOWN",
        cp_model.MODEL_INVALID: "MODEL_INVALID",
    }
    status_str = status_map.get(status, "UNKNOWN")

    if status not in [cp_model.OPTIMAL, cp_model.FEASIBLE]:
        logger.warning("CP-SAT found no schedule: %s", status_str)
        return CpSatResult(
            success=False,
            optimization_status=status_str,
            solve_time_seconds=solve_time,
        )

    result = CpSatResult(
        success=True,
        makespan=int(solver.Value(makespan)),
        optimization_status=status_str,
        solve_time_seconds=solve_time,
    )
    for task in tasks:
        result.starts[task.name] = int(solver.Value(starts[task.index]))
        for p in processors:
            if solver.Value(x[task.index, p]) == 1:
                result.processors[task.name] = p + 1
                break

    logger.info(
        "CP-SAT %s makespan %d in %.3fs", status_str, result.makespan, solve_time
    )
    return result


def verify_schedule(
    graph: TaskGraph,
    schedule: Schedule,
    config: CpSatConfig | None = None,
) -> CpSatResult:
    """Cross-check ``schedule`` against the CP-SAT model.

    Raises:
        VerificationError: if CP-SAT proves a different optimum, or finds a
            schedule shorter than ``schedule`` within its time limit.

    A time-limited CP-SAT run that only reaches a longer or equal makespan
    is inconclusive and only logged.
    """
    expected = schedule.makespan()
    result = solve_with_cpsat(graph, schedule.processor_count, config)
    if result.optimization_status == "OPTIMAL" and result.makespan != expected:
        raise VerificationError(
            f"CP-SAT optimum {result.makespan} differs from search makespan {expected}"
        )
    if result.success and result.makespan < expected:
        raise VerificationError(
            f"CP-SAT found makespan {result.makespan}, shorter than search makespan {expected}"
        )
    if result.optimization_status != "OPTIMAL":
        logger.warning(
            "CP-SAT cross-check inconclusive (%s) for makespan %d",
            result.optimization_status,
            expected,
        )
    return result
