# report.py
#
# Plain-text rendering of simulation state for the command line.

from typing import Iterable, List, Mapping, Sequence

from engine import MemoryBlock, Process, ProcessState
from simulation import SimulationResult


def process_table(processes: Sequence[Process]) -> str:
    lines = [
        "-------------------------------------------------",
        "Processes Loaded:",
        f"{'ProcessID':<10} {'Size (KB)':<10}",
        "-------------------------------------------------",
    ]
    for p in processes:
        lines.append(f"{p.id:<10} {p.requested_size:<10}")
    return "\n".join(lines)


def memory_summary(total_size: int, free_size: int, blocks: Sequence[MemoryBlock],
                   processes: Iterable[Process]) -> str:
    used = total_size - free_size
    free_blocks = sum(1 for b in blocks if b.free)

    counts = {ProcessState.NEW: 0, ProcessState.RUNNING: 0, ProcessState.TERMINATED: 0}
    for p in processes:
        counts[p.state] += 1

    return "\n".join([
        f"Memory Summary: Used: {used} KB ({used / total_size * 100:.1f}%), "
        f"Free: {free_size} KB ({free_size / total_size * 100:.1f}%)",
        f"Blocks: Total: {len(blocks)}, Free: {free_blocks}",
        f"Processes: Running: {counts[ProcessState.RUNNING]}, "
        f"Terminated: {counts[ProcessState.TERMINATED]}, "
        f"Unallocated: {counts[ProcessState.NEW]}",
    ])


def detailed_state(result: SimulationResult) -> str:
    """Allocation table, memory totals and the full block list."""
    location = {b.owner: b.start for b in result.blocks if not b.free}

    lines = [
        "Memory Allocation Table:",
        f"{'ID':<4} {'State':<15} {'Size':<12} {'Location':<12}",
        "------------------------------------------",
    ]
    for p in result.processes:
        if p.state == ProcessState.NEW:
            continue
        where = location.get(p.id) if p.is_running else None
        lines.append(
            f"{p.id:<4} {p.state:<15} {p.requested_size:<12} "
            + (f"{where:<12}" if where is not None else "N/A")
        )

    lines += [
        "",
        "Memory Status:",
        f"Total Memory: {result.total_size} KB, "
        f"Used: {result.total_size - result.free_size} KB, Free: {result.free_size} KB",
        "",
        "Block List Details:",
        f"{'Start':<8} {'Size':<8} {'Status':<16} {'Process':<8}",
        "------------------------------------------",
    ]
    for b in result.blocks:
        owner = b.owner if b.owner is not None else -1
        lines.append(
            f"{b.start:<8} {b.size:<8} {'Free' if b.free else 'Allocated':<16} {owner:<8}"
        )
    return "\n".join(lines)


def final_results(result: SimulationResult) -> str:
    stats = result.stats
    return "\n".join([
        f"--- Final Results ({result.strategy}) ---",
        f"Success Rate: {stats.success_rate:.1f}% "
        f"({stats.successful_allocations}/{stats.allocation_attempts})",
        f"Peak Memory Usage: {stats.peak_utilization * 100:.1f}%",
        f"Average Memory Usage: {stats.avg_utilization * 100:.1f}%",
        f"Fragmentation: {stats.fragmentation_percentage:.1f}%",
        f"Internal Fragmentation: {stats.internal_fragmentation} KB",
        f"Final Block Count: {result.block_count}",
    ])


def comparison_table(results: Mapping[str, SimulationResult]) -> str:
    lines: List[str] = [
        "=== Summary of Allocation Methods ===",
        f"{'Strategy':<10} {'Success Rate':<15} {'Fragmentation':<15} {'Block Count':<15}",
        "----------------------------------------------------------",
    ]
    for strategy, result in results.items():
        stats = result.stats
        lines.append(
            f"{strategy:<10} {f'{stats.success_rate:.1f}%':<15} "
            f"{f'{stats.fragmentation_percentage:.1f}%':<15} "
            f"{stats.external_fragmentation:<15}"
        )
    return "\n".join(lines)
