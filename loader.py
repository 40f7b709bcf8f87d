"""
Workload loader.

Input format (plain text)::

    1024            # memory size in KB
    1 212           # id size [arrival_time [duration]]
    2 417 0 10

Blank lines and lines starting with ``#`` are skipped. Malformed process
lines are skipped with a warning rather than failing the whole file.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from engine import Process
from simulation import LARGE_PROCESS_ID

logger = logging.getLogger(__name__)

MAX_PROCESSES = 20
DEFAULT_INPUT_FILE = "input.txt"


class WorkloadError(ValueError):
    pass


@dataclass
class Workload:
    memory_size: int
    processes: List[Process] = field(default_factory=list)


def _leading_ints(line: str, limit: int) -> List[int]:
    # Mirrors scanf: stop at the first token that is not an integer.
    values = []
    for token in line.split()[:limit]:
        try:
            values.append(int(token))
        except ValueError:
            break
    return values


def parse_workload(text: str, max_processes: int = MAX_PROCESSES) -> Workload:
    lines = text.splitlines()
    if not lines:
        raise WorkloadError("Workload is empty")

    size_fields = _leading_ints(lines[0], 1)
    if not size_fields or size_fields[0] <= 0:
        raise WorkloadError(f"Invalid memory size on line 1: {lines[0].strip()!r}")
    workload = Workload(memory_size=size_fields[0])

    seen = set()
    for line_number, line in enumerate(lines[1:], start=2):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if len(workload.processes) >= max_processes:
            logger.warning("Process limit (%d) reached, ignoring remaining lines", max_processes)
            break

        fields = _leading_ints(line, 4)
        if len(fields) < 2:
            logger.warning("Line %d has invalid format, skipping", line_number)
            continue

        pid, size = fields[0], fields[1]
        if size <= 0:
            logger.warning("Line %d has invalid process size (%d), skipping", line_number, size)
            continue

        if pid == LARGE_PROCESS_ID:
            logger.warning("Line %d uses reserved process ID %d, skipping", line_number, pid)
            continue
        if pid in seen:
            logger.warning("Line %d repeats process ID %d, skipping", line_number, pid)
            continue
        seen.add(pid)

        arrival_time = fields[2] if len(fields) > 2 else 0
        duration = fields[3] if len(fields) > 3 else 10
        workload.processes.append(
            Process(pid, size, arrival_time=arrival_time, duration=duration)
        )

    if not workload.processes:
        raise WorkloadError("No valid processes found in workload")
    return workload


def load_workload(path: str = DEFAULT_INPUT_FILE, max_processes: int = MAX_PROCESSES) -> Workload:
    logger.info("Reading workload from %s", path)
    try:
        with open(path) as f:
            text = f.read()
    except OSError as e:
        raise WorkloadError(f"Could not open input file '{path}': {e}") from e
    return parse_workload(text, max_processes)
