"""
dagsched

Optimal scheduling of weighted task graphs onto identical processors by
branch-and-bound depth-first search.
"""

from .exceptions import (
    GraphError,
    NotFoundError,
    PlacementError,
    SchedulerError,
    SearchLimitError,
    VerificationError,
    StateError,
)
from .graph import Task, TaskGraph
from .parallel import ParallelScheduler, run_parallel
from .processor import Processor
from .schedule import Placement, Schedule
from .search import DFSScheduler, SearchConfig, SearchContext, run

__version__ = "0.1.0"
__all__ = [
    "run",
    "run_parallel",
    "ParallelScheduler",
    "DFSScheduler",
    "SearchConfig",
    "SearchContext",
    "Task",
    "TaskGraph",
    "Processor",
    "Schedule",
    "Placement",
    "SchedulerError",
    "GraphError",
    "PlacementError",
    "NotFoundError",
    "StateError",
    "SearchLimitError",
    "VerificationError",
]
