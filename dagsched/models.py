"""
Data models for graph ingestion and schedule results using Pydantic.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class TaskSpec(BaseModel):
    """Task as described by the input graph."""
    name: str = Field(..., min_length=1, description="Unique task identifier")
    weight: int = Field(..., gt=0, description="Execution cost of the task")


class EdgeSpec(BaseModel):
    """Precedence edge between two tasks."""
    source: str = Field(..., min_length=1, description="Parent task name")
    target: str = Field(..., min_length=1, description="Child task name")
    cost: int = Field(0, ge=0, description="Communication cost when endpoints run on different processors")


class GraphSpec(BaseModel):
    """Task graph to be scheduled."""
    tasks: List[TaskSpec] = Field(..., min_length=1, description="Tasks in declaration order")
    edges: List[EdgeSpec] = Field(default_factory=list, description="Dependency edges")

    @field_validator('tasks')
    @classmethod
    def unique_task_names(cls, v: List[TaskSpec]) -> List[TaskSpec]:
        seen = set()
        for task in v:
            if task.name in seen:
                raise ValueError(f'Duplicate task name: {task.name}')
            seen.add(task.name)
        return v

    @model_validator(mode='after')
    def edges_reference_known_tasks(self) -> 'GraphSpec':
        names = {task.name for task in self.tasks}
        for edge in self.edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in names:
                    raise ValueError(f'Edge {edge.source} -> {edge.target} references unknown task {endpoint}')
        return self

    @property
    def computational_load(self) -> int:
        return sum(task.weight for task in self.tasks)


class ScheduleRequest(BaseModel):
    """Request model for schedule optimization API."""
    graph: GraphSpec = Field(..., description="Task graph to schedule")
    processor_count: int = Field(..., ge=1, description="Number of identical processors")
    parallelism: int = Field(1, ge=1, description="Number of search workers")
    use_lower_bounds: bool = Field(False, description="Prune with the bottom-level lower bound")
    max_branches: Optional[int] = Field(None, gt=0, description="Abort after this many branches")


class TaskPlacement(BaseModel):
    """Placement of a single task in the final schedule."""
    task: str = Field(..., description="Task name")
    processor: int = Field(..., ge=1, description="1-based processor identifier")
    start: int = Field(..., ge=0, description="Start time")
    finish: int = Field(..., ge=0, description="Finish time")
    weight: int = Field(..., gt=0, description="Task weight")


class ScheduleResult(BaseModel):
    """Result of schedule optimization."""
    success: bool = Field(..., description="Whether optimization succeeded")
    makespan: Optional[int] = Field(None, description="Completion time of the last task")
    processor_count: int = Field(0, ge=0, description="Processors used for the search")
    placements: List[TaskPlacement] = Field(default_factory=list, description="Task placements")
    idle_time: Optional[int] = Field(None, description="Processor time not spent on tasks")
    optimization_status: str = Field("", description="Search status")
    solve_time_seconds: float = Field(0.0, description="Time taken to solve")
    branches_explored: int = Field(0, description="Number of placements tried by the search")

    @property
    def utilization_rate(self) -> float:
        """Fraction of processor time spent executing tasks."""
        if not self.makespan or not self.processor_count:
            return 0.0
        busy = sum(p.weight for p in self.placements)
        return busy / (self.makespan * self.processor_count)

    def processor_timeline(self, processor: int) -> List[TaskPlacement]:
        """Placements on one processor, in start order."""
        return sorted(
            (p for p in self.placements if p.processor == processor),
            key=lambda p: p.start,
        )


class ScheduleResponse(BaseModel):
    """Response model for schedule optimization API."""
    result: ScheduleResult = Field(..., description="Optimization result")
    request_id: Optional[str] = Field(None, description="Request identifier")
    generated_at: datetime = Field(default_factory=datetime.now, description="Response generation time")
