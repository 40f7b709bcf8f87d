"""
Simulation driver: runs the four-phase allocation scenario for each
placement strategy and collects utilization and fragmentation statistics.

The driver owns no allocation logic. How many processes to load, which
ones to terminate and how big the stress allocation is all arrive as a
``PhasePlan``, so the same run can be driven from the CLI, the Streamlit
page or a test.
"""

import copy
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from engine import (
    AllocationStrategy,
    FragmentationMetrics,
    MemoryBlock,
    MemoryManager,
    Process,
    ProcessState,
    MAX_BLOCKS,
)

LARGE_PROCESS_ID = 9999
TERMINATE_ALL = "all"


@dataclass
class PhasePlan:
    """
    Decisions for one simulation run.

    Attributes:
        initial_count (int): Processes to allocate in phase 1 (clamped to 1..n)
        terminate_ids: Process IDs to terminate in phase 2, or TERMINATE_ALL
        additional_count (int): Extra NEW processes to allocate in phase 3
        stress_percent (float): Phase 4 request, as % of free memory (1-100)
    """
    initial_count: int
    terminate_ids: Union[Sequence[int], str] = field(default_factory=list)
    additional_count: int = 0
    stress_percent: float = 50.0

    def __post_init__(self):
        if not 1.0 <= self.stress_percent <= 100.0:
            raise ValueError("Stress percentage must be between 1 and 100")
        if isinstance(self.terminate_ids, str) and self.terminate_ids != TERMINATE_ALL:
            raise ValueError(f"terminate_ids must be a list of IDs or {TERMINATE_ALL!r}")


@dataclass
class Statistics:
    allocation_attempts: int = 0
    successful_allocations: int = 0
    failed_allocations: int = 0
    avg_utilization: float = 0.0
    peak_utilization: float = 0.0
    external_fragmentation: int = 0
    fragmentation_percentage: float = 0.0
    avg_fragment_size: float = 0.0
    internal_fragmentation: int = 0

    @property
    def success_rate(self) -> float:
        if self.allocation_attempts == 0:
            return 0.0
        return self.successful_allocations / self.allocation_attempts * 100.0

    def record(self, success: bool):
        self.allocation_attempts += 1
        if success:
            self.successful_allocations += 1
        else:
            self.failed_allocations += 1

    def apply_fragmentation(self, metrics: FragmentationMetrics):
        self.external_fragmentation = metrics.external_fragmentation
        self.fragmentation_percentage = metrics.fragmentation_percentage
        self.avg_fragment_size = metrics.avg_fragment_size
        self.internal_fragmentation = metrics.internal_fragmentation


@dataclass
class SimulationResult:
    strategy: str
    stats: Statistics
    processes: List[Process]
    blocks: List[MemoryBlock]
    total_size: int
    free_size: int
    utilization_samples: List[float] = field(default_factory=list)
    event_log: List[str] = field(default_factory=list)
    large_process: Optional[Process] = None

    @property
    def block_count(self) -> int:
        return len(self.blocks)


class Simulation:
    """
    One strategy's run over its own copy of the process list.

    The phases can be driven one at a time (the Streamlit app does this) or
    all at once through ``run``.
    """

    def __init__(self, total_size: int, strategy: str, processes: Sequence[Process],
                 max_blocks: int = MAX_BLOCKS):
        self.manager = MemoryManager(total_size, strategy, max_blocks)
        self.strategy = strategy
        self.processes: List[Process] = copy.deepcopy(list(processes))
        self.stats = Statistics()
        self.samples: List[float] = []
        # Phase notes share the manager's log so they interleave with allocations.
        self.log: List[str] = self.manager.event_log
        self.large_process: Optional[Process] = None

    def _attempt(self, process: Process) -> bool:
        ok = self.manager.allocate(process)
        self.stats.record(ok)
        return ok

    def _sample(self, track_peak: bool = True) -> float:
        current = self.manager.utilization()
        self.samples.append(current)
        if track_peak and current > self.stats.peak_utilization:
            self.stats.peak_utilization = current
        return current

    def running(self) -> List[Process]:
        return [p for p in self.processes if p.state == ProcessState.RUNNING]

    def unallocated(self) -> List[Process]:
        return [p for p in self.processes if p.state == ProcessState.NEW]

    # -----------------------------
    # Phases
    # -----------------------------
    def initial_allocation(self, count: int):
        self.log.append("--- Phase 1: Initial Process Allocation ---")
        count = max(1, min(count, len(self.processes)))
        for process in self.processes[:count]:
            self._attempt(process)
        self._sample()

    def terminate(self, ids: Union[Sequence[int], str]):
        self.log.append("--- Phase 2: Process Termination ---")
        running = self.running()
        if not running:
            self.log.append("No running processes to terminate.")
        elif ids == TERMINATE_ALL:
            self.log.append("Terminating all running processes")
            for process in running:
                self.manager.deallocate(process, self.processes)
        else:
            for pid in list(ids)[:len(running)]:
                target = next(
                    (p for p in self.processes if p.id == pid and p.is_running), None
                )
                if target is None:
                    self.log.append(f"P{pid} not found or not running")
                    continue
                self.manager.deallocate(target, self.processes)
                self.log.append(f"Terminated P{pid}")
        # Termination only lowers utilization, so the peak is left alone.
        self._sample(track_peak=False)

    def additional_allocation(self, count: int):
        self.log.append("--- Phase 3: Additional Process Allocation ---")
        pending = self.unallocated()
        if not pending:
            self.log.append("No more processes to allocate.")
        for process in pending[:max(0, count)]:
            self._attempt(process)
        self._sample()

    def stress_allocation(self, percent: float) -> bool:
        self.log.append("--- Phase 4: Large Process Allocation ---")
        if not 1.0 <= percent <= 100.0:
            raise ValueError("Stress percentage must be between 1 and 100")

        size = int(self.manager.free_size * percent / 100.0)
        large = Process(LARGE_PROCESS_ID, size)
        ok = self._attempt(large)
        self.log.append(
            f"Large allocation P{LARGE_PROCESS_ID} ({size}KB, {percent:.2f}% of free memory): "
            + ("SUCCESS" if ok else "FAILED (not enough contiguous space)")
        )
        if ok:
            self.processes.append(large)
        self.large_process = large
        self._sample()
        return ok

    def run(self, plan: PhasePlan) -> SimulationResult:
        self.initial_allocation(plan.initial_count)
        self.terminate(plan.terminate_ids)
        self.additional_allocation(plan.additional_count)
        self.stress_allocation(plan.stress_percent)
        return self.result()

    def result(self) -> SimulationResult:
        if self.samples:
            self.stats.avg_utilization = sum(self.samples) / len(self.samples)
        self.stats.apply_fragmentation(self.manager.get_fragmentation_metrics())
        return SimulationResult(
            strategy=self.strategy,
            stats=self.stats,
            processes=self.processes,
            blocks=self.manager.get_state(),
            total_size=self.manager.total_size,
            free_size=self.manager.free_size,
            utilization_samples=list(self.samples),
            event_log=list(self.log),
            large_process=self.large_process,
        )


def run_simulation(total_size: int, strategy: str, processes: Sequence[Process],
                   plan: PhasePlan, max_blocks: int = MAX_BLOCKS) -> SimulationResult:
    return Simulation(total_size, strategy, processes, max_blocks).run(plan)


def run_comparison(total_size: int, processes: Sequence[Process], plan: PhasePlan,
                   strategies: Sequence[str] = AllocationStrategy.ALL,
                   max_blocks: int = MAX_BLOCKS) -> Dict[str, SimulationResult]:
    """Run every strategy in isolation on the same workload and plan."""
    results: Dict[str, SimulationResult] = OrderedDict()
    for strategy in strategies:
        results[strategy] = run_simulation(total_size, strategy, processes, plan, max_blocks)
    return results
