"""
Command-line entry point.

Usage:
    dagsched INPUT.dot P [-p N] [-o OUTPUT] [-v] [--lower-bounds] [--verify]

INPUT.dot is a task graph with integer weights in DOT format and P is the
number of processors to schedule it on.
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import get_settings
from .cpsat import CpSatConfig, verify_schedule
from .dot import read_dot, write_dot
from .exceptions import GraphError, SearchLimitError, VerificationError
from .parallel import run_parallel
from .search import DFSScheduler

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dagsched",
        description="Optimal task graph scheduling on identical processors",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dagsched graph.dot 2                  # Schedule on 2 processors, write graph-output.dot
  dagsched graph.dot 4 -p 4             # Search with 4 workers
  dagsched graph.dot 2 -o result.dot    # Choose the output file
  dagsched graph.dot 2 --verify         # Confirm the optimum with CP-SAT
        """,
    )
    parser.add_argument("input", metavar="INPUT", type=Path, help="Task graph in DOT format")
    parser.add_argument(
        "processors", metavar="P", type=_positive_int, help="Number of processors to schedule on"
    )
    parser.add_argument(
        "-p",
        "--parallel",
        metavar="N",
        type=_positive_int,
        default=None,
        help="Use N workers for the search (default: sequential)",
    )
    parser.add_argument(
        "-o",
        "--output",
        metavar="OUTPUT",
        type=Path,
        default=None,
        help="Output file (default: INPUT-output.dot)",
    )
    parser.add_argument(
        "--lower-bounds",
        action="store_true",
        default=None,
        help="Prune with the bottom-level lower bound",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Cross-check the makespan against the CP-SAT model",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )
    return parser


def default_output_path(input_path: Path) -> Path:
    return input_path.with_name(f"{input_path.stem}-output.dot")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    # Setup logging
    log_level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level)
    logging.basicConfig(
        level=log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    config = settings.search_config()
    if args.lower_bounds:
        config = dataclasses.replace(config, use_lower_bounds=True)
    workers = args.parallel or settings.parallelism
    output = args.output or default_output_path(args.input)

    try:
        graph = read_dot(args.input)
        if workers > 1:
            schedule = run_parallel(graph, args.processors, workers, config)
        else:
            schedule = DFSScheduler(graph, args.processors, config).run()
        if args.verify:
            check = verify_schedule(
                graph,
                schedule,
                CpSatConfig(max_time_in_seconds=settings.cpsat_max_time_in_seconds),
            )
        write_dot(output, graph, schedule)
    except OSError as e:
        logger.error("%s", e)
        return 1
    except (GraphError, SearchLimitError, VerificationError) as e:
        logger.error("%s", e.message)
        return 1

    print(f"Makespan: {schedule.makespan()}")
    for processor in schedule.processors:
        timeline = ", ".join(
            f"{slot.task.name}[{slot.start}-{slot.finish}]" for slot in processor.entries()
        )
        print(f"Processor {processor.id}: {timeline}")
    if args.verify:
        print(f"CP-SAT: {check.optimization_status} makespan {check.makespan}")
    print(f"Output written to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
