"""
DOT input and output for task graphs and finished schedules.

Input nodes and edges carry a ``Weight`` attribute (task weight and
communication cost). Output nodes additionally carry ``Start`` and
``Processor`` (1-based).
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Tuple, Union

import pydot

from .exceptions import GraphError
from .graph import TaskGraph
from .schedule import Schedule

logger = logging.getLogger(__name__)

_DEFAULT_STATEMENTS = {"node", "edge", "graph"}


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _int_attribute(attributes: Dict[str, str], key: str, owner: str, default: int = None) -> int:
    raw = attributes.get(key)
    if raw is None:
        if default is None:
            raise GraphError(f"{owner} is missing the {key} attribute")
        return default
    text = _unquote(str(raw))
    try:
        return int(text)
    except ValueError:
        raise GraphError(f"{owner} has a non-integer {key}: {text!r}") from None


def parse_dot(text: str) -> TaskGraph:
    """Parse a DOT digraph into a :class:`TaskGraph`.

    Raises:
        GraphError: if the text is not valid DOT, a node has no integer
            ``Weight``, or the resulting graph is invalid.
    """
    try:
        graphs = pydot.graph_from_dot_data(text)
    except Exception as e:
        raise GraphError(f"Invalid DOT input: {e}") from e
    if not graphs:
        raise GraphError("No graph found in DOT input")
    dot = graphs[0]

    tasks: List[Tuple[str, int]] = []
    for node in dot.get_nodes():
        name = _unquote(node.get_name())
        if name in _DEFAULT_STATEMENTS:
            continue
        weight = _int_attribute(node.get_attributes(), "Weight", f"Task {name}")
        tasks.append((name, weight))

    edges: List[Tuple[str, str, int]] = []
    for edge in dot.get_edges():
        source = _unquote(str(edge.get_source()))
        target = _unquote(str(edge.get_destination()))
        cost = _int_attribute(
            edge.get_attributes(), "Weight", f"Edge {source} -> {target}", default=0
        )
        edges.append((source, target, cost))

    graph = TaskGraph.build(tasks, edges)
    logger.debug("Parsed DOT graph with %d tasks and %d edges", len(tasks), len(edges))
    return graph


def read_dot(path: Union[str, Path]) -> TaskGraph:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise GraphError(f"{path} is not UTF-8 text: {e}") from e
    return parse_dot(text)


def graph_name_for(path: Union[str, Path]) -> str:
    """DOT-safe graph name derived from a file name, e.g. ``Nodes_7_output`` for ``Nodes_7-output.dot``."""
    stem = Path(path).stem
    name = re.sub(r"\W", "_", stem)
    if not name or name[0].isdigit():
        name = f"g_{name}"
    return name


def schedule_to_dot(graph: TaskGraph, schedule: Schedule, name: str = "output") -> str:
    """Render a complete schedule as DOT text."""
    dot = pydot.Dot(graph_name=name, graph_type="digraph")
    for task in graph.tasks:
        dot.add_node(
            pydot.Node(
                task.name,
                Weight=task.weight,
                Start=schedule.start_time_of(task),
                Processor=schedule.processor_of(task).id,
            )
        )
    for parent, child, cost in graph.edges():
        dot.add_edge(pydot.Edge(parent.name, child.name, Weight=cost))
    return dot.to_string()


def write_dot(path: Union[str, Path], graph: TaskGraph, schedule: Schedule, name: str = None) -> Path:
    path = Path(path)
    path.write_text(
        schedule_to_dot(graph, schedule, name or graph_name_for(path)), encoding="utf-8"
    )
    logger.info("Wrote schedule to %s", path)
    return path
