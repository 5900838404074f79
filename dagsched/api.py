"""
API wrapper functions for schedule optimization.
"""

import logging
import time
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .exceptions import GraphError, SearchLimitError
from .graph import TaskGraph
from .models import (
    GraphSpec,
    ScheduleRequest,
    ScheduleResponse,
    ScheduleResult,
    TaskPlacement,
)
from .parallel import ParallelScheduler
from .schedule import Schedule
from .search import DFSScheduler, SearchConfig

logger = logging.getLogger(__name__)


def optimize_schedule_api(request_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    API wrapper for schedule optimization.

    Args:
        request_data: Dictionary containing schedule request data

    Returns:
        Dictionary containing schedule response data. Invalid graphs and
        requests produce an unsuccessful result instead of raising.
    """
    request_id = str(uuid.uuid4())
    try:
        request = ScheduleRequest(**request_data)
        graph = TaskGraph.from_spec(request.graph)
        result = optimize_schedule(
            graph,
            request.processor_count,
            config=SearchConfig(
                use_lower_bounds=request.use_lower_bounds,
                max_branches=request.max_branches,
            ),
            parallelism=request.parallelism,
        )
    except (ValidationError, GraphError, SearchLimitError) as e:
        logger.warning("Schedule request %s rejected: %s", request_id, e)
        result = ScheduleResult(
            success=False,
            optimization_status=f"ERROR: {str(e)}",
        )

    response = ScheduleResponse(
        result=result,
        request_id=request_id,
        generated_at=datetime.now()
    )
    return response.model_dump()


def optimize_schedule(
    graph: TaskGraph,
    processor_count: int,
    config: Optional[SearchConfig] = None,
    parallelism: int = 1,
) -> ScheduleResult:
    """
    Find an optimal schedule and package it as a ScheduleResult.

    Args:
        graph: Task graph to schedule
        processor_count: Number of identical processors
        config: Search configuration
        parallelism: Number of search workers

    Returns:
        ScheduleResult with the optimal placements
    """
    config = config or SearchConfig()
    start_time = time.perf_counter()
    if parallelism > 1:
        scheduler = ParallelScheduler(graph, processor_count, parallelism, config)
    else:
        scheduler = DFSScheduler(graph, processor_count, config)
    schedule = scheduler.run()
    branches = scheduler.context.branches
    solve_time = time.perf_counter() - start_time

    return build_schedule_result(
        schedule,
        solve_time_seconds=solve_time,
        branches_explored=branches,
    )


def build_schedule_result(
    schedule: Schedule,
    solve_time_seconds: float = 0.0,
    branches_explored: int = 0,
) -> ScheduleResult:
    """
    Convert a complete Schedule into a ScheduleResult.

    Args:
        schedule: Complete schedule
        solve_time_seconds: Time taken by the search
        branches_explored: Placements tried by the search

    Returns:
        ScheduleResult instance
    """
    placements = [
        TaskPlacement(
            task=p.task.name,
            processor=p.processor_id,
            start=p.start,
            finish=p.finish,
            weight=p.task.weight,
        )
        for p in schedule.placements()
    ]
    return ScheduleResult(
        success=True,
        makespan=schedule.makespan(),
        processor_count=schedule.processor_count,
        placements=placements,
        idle_time=schedule.idle_time(),
        optimization_status="OPTIMAL",
        solve_time_seconds=solve_time_seconds,
        branches_explored=branches_explored,
    )


def create_graph_from_dict(graph_data: Dict[str, Any]) -> TaskGraph:
    """
    Create TaskGraph instance from dictionary data.

    Tasks may be given as a list of ``{"name", "weight"}`` objects or as a
    name-to-weight mapping. Edges may be objects or ``[source, target, cost]``
    lists, the cost defaulting to 0.

    Args:
        graph_data: Dictionary containing tasks and edges

    Returns:
        TaskGraph instance

    Raises:
        GraphError: If the graph is invalid
    """
    tasks = graph_data.get('tasks', [])
    if isinstance(tasks, dict):
        tasks = [{'name': name, 'weight': weight} for name, weight in tasks.items()]

    edges = []
    for edge in graph_data.get('edges', []):
        if isinstance(edge, (list, tuple)):
            source, target, *rest = edge
            edge = {'source': source, 'target': target, 'cost': rest[0] if rest else 0}
        edges.append(edge)

    try:
        spec = GraphSpec(tasks=tasks, edges=edges)
    except ValidationError as e:
        raise GraphError(f"Invalid graph: {e}") from e
    return TaskGraph.from_spec(spec)


def format_schedule_result(result: ScheduleResult) -> Dict[str, Any]:
    """
    Format ScheduleResult for API response.

    Args:
        result: ScheduleResult instance

    Returns:
        Formatted dictionary with placements grouped by processor
    """
    return {
        'success': result.success,
        'makespan': result.makespan,
        'processors': {
            str(processor): [
                {
                    'task': placement.task,
                    'start': placement.start,
                    'finish': placement.finish,
                }
                for placement in result.processor_timeline(processor)
            ]
            for processor in range(1, result.processor_count + 1)
        },
        'idle_time': result.idle_time,
        'optimization_status': result.optimization_status,
        'solve_time_seconds': result.solve_time_seconds,
        'branches_explored': result.branches_explored,
        'utilization_rate': result.utilization_rate,
    }


def validate_schedule_request(request_data: Dict[str, Any]) -> Optional[str]:
    """
    Validate schedule request data.

    Args:
        request_data: Dictionary containing request data

    Returns:
        Error message if validation fails, None if valid
    """
    required_fields = ['graph', 'processor_count']
    for field in required_fields:
        if field not in request_data:
            return f"Missing required field: {field}"

    processor_count = request_data['processor_count']
    if isinstance(processor_count, bool) or not isinstance(processor_count, int):
        return "Processor count must be an integer"
    if processor_count < 1:
        return "Processor count must be at least 1"

    graph = request_data['graph']
    if not isinstance(graph, dict):
        return "Graph must be a dictionary"

    tasks = graph.get('tasks')
    if not isinstance(tasks, list):
        return "Tasks must be a list"
    if len(tasks) == 0:
        return "At least one task is required"

    for i, task in enumerate(tasks):
        if not isinstance(task, dict):
            return f"Task {i} must be a dictionary"
        for field in ['name', 'weight']:
            if field not in task:
                return f"Task {i} missing required field: {field}"

    edges = graph.get('edges', [])
    if not isinstance(edges, list):
        return "Edges must be a list"
    for i, edge in enumerate(edges):
        if not isinstance(edge, dict):
            return f"Edge {i} must be a dictionary"
        for field in ['source', 'target']:
            if field not in edge:
                return f"Edge {i} missing required field: {field}"

    try:
        create_graph_from_dict(graph)
    except GraphError as e:
        return e.message

    return None
