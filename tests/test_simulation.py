"""
Tests for the four-phase simulation driver and the strategy comparison.
"""

import pytest

from engine import AllocationStrategy, Process, ProcessState
from simulation import (
    LARGE_PROCESS_ID,
    TERMINATE_ALL,
    PhasePlan,
    Simulation,
    run_comparison,
    run_simulation,
)


@pytest.fixture
def processes():
    sizes = [200, 100, 300, 100, 250, 50]
    return [Process(i + 1, size) for i, size in enumerate(sizes)]


@pytest.fixture
def plan():
    # P1..P5 fill 950KB, P1 and P3 leave holes of 200 and 300, P6 (50KB)
    # goes into a hole, then a 300KB stress request (60% of the 500KB free).
    return PhasePlan(initial_count=5, terminate_ids=[1, 3], additional_count=1,
                     stress_percent=60)


class TestPhasePlan:

    @pytest.mark.parametrize("percent", [0, 0.5, 100.5])
    def test_stress_percent_range(self, percent):
        with pytest.raises(ValueError):
            PhasePlan(initial_count=1, stress_percent=percent)

    def test_terminate_ids_keyword(self):
        with pytest.raises(ValueError):
            PhasePlan(initial_count=1, terminate_ids="some")
        assert PhasePlan(initial_count=1, terminate_ids=TERMINATE_ALL).terminate_ids == TERMINATE_ALL


class TestComparison:

    def test_each_strategy_fills_holes_differently(self, processes, plan):
        results = run_comparison(1000, processes, plan)
        assert list(results) == list(AllocationStrategy.ALL)

        def p6_start(result):
            return next(b.start for b in result.blocks if b.owner == 6)

        assert p6_start(results[AllocationStrategy.FIRST_FIT]) == 0
        assert p6_start(results[AllocationStrategy.BEST_FIT]) == 950
        assert p6_start(results[AllocationStrategy.WORST_FIT]) == 300

    def test_stress_allocation_outcome(self, processes, plan):
        results = run_comparison(1000, processes, plan)
        ff = results[AllocationStrategy.FIRST_FIT]
        bf = results[AllocationStrategy.BEST_FIT]
        wf = results[AllocationStrategy.WORST_FIT]

        assert ff.large_process.requested_size == 300
        assert ff.large_process.state == ProcessState.RUNNING
        assert bf.large_process.state == ProcessState.RUNNING
        # worst fit split the 300KB hole for P6, so no 300KB block remains
        assert wf.large_process.state == ProcessState.NEW
        assert LARGE_PROCESS_ID not in [p.id for p in wf.processes]
        assert LARGE_PROCESS_ID in [p.id for p in ff.processes]

        assert (ff.stats.successful_allocations, ff.stats.allocation_attempts) == (7, 7)
        assert (wf.stats.successful_allocations, wf.stats.failed_allocations) == (6, 1)
        assert wf.stats.success_rate == pytest.approx(600 / 7)

    def test_fragmentation_statistics(self, processes, plan):
        results = run_comparison(1000, processes, plan)
        ff = results[AllocationStrategy.FIRST_FIT].stats
        bf = results[AllocationStrategy.BEST_FIT].stats
        wf = results[AllocationStrategy.WORST_FIT].stats

        assert (ff.external_fragmentation, ff.fragmentation_percentage) == (2, pytest.approx(25.0))
        assert (bf.external_fragmentation, bf.fragmentation_percentage) == (1, 0.0)
        assert (wf.external_fragmentation, wf.fragmentation_percentage) == (3, pytest.approx(50.0))

    def test_utilization_samples(self, processes, plan):
        result = run_comparison(1000, processes, plan)[AllocationStrategy.FIRST_FIT]
        assert result.utilization_samples == pytest.approx([0.95, 0.45, 0.5, 0.8])
        assert result.stats.peak_utilization == pytest.approx(0.95)
        assert result.stats.avg_utilization == pytest.approx(0.675)

    def test_runs_are_isolated(self, processes, plan):
        results = run_comparison(1000, processes, plan)
        for p in processes:
            assert p.state == ProcessState.NEW
            assert p.block_id is None
        ff = results[AllocationStrategy.FIRST_FIT].processes
        bf = results[AllocationStrategy.BEST_FIT].processes
        assert all(a is not b for a, b in zip(ff, bf))

    def test_final_state_is_consistent(self, processes, plan):
        for result in run_comparison(1000, processes, plan).values():
            assert result.free_size == sum(b.size for b in result.blocks if b.free)
            assert sum(b.size for b in result.blocks) == 1000
            running = {p.id for p in result.processes if p.state == ProcessState.RUNNING}
            owners = {b.owner for b in result.blocks if not b.free}
            assert running == owners


class TestPhases:

    def test_initial_count_is_clamped(self, processes):
        sim = Simulation(1000, AllocationStrategy.FIRST_FIT, processes)
        sim.initial_allocation(0)
        assert [p.id for p in sim.running()] == [1]

        sim = Simulation(5000, AllocationStrategy.FIRST_FIT, processes)
        sim.initial_allocation(100)
        assert len(sim.running()) == len(processes)

    def test_terminate_all(self, processes):
        sim = Simulation(1000, AllocationStrategy.BEST_FIT, processes)
        sim.initial_allocation(4)
        sim.terminate(TERMINATE_ALL)
        assert sim.running() == []
        assert sim.manager.free_size == 1000
        assert sim.manager.block_count == 1

    def test_terminate_unknown_id_is_logged(self, processes):
        sim = Simulation(1000, AllocationStrategy.FIRST_FIT, processes)
        sim.initial_allocation(2)
        sim.terminate([6, 2])
        assert "P6 not found or not running" in sim.log
        assert "Terminated P2" in sim.log
        assert [p.id for p in sim.running()] == [1]

    def test_terminate_with_nothing_running(self):
        sim = Simulation(100, AllocationStrategy.FIRST_FIT, [Process(1, 500)])
        sim.initial_allocation(1)
        sim.terminate([1])
        assert "No running processes to terminate." in sim.log
        assert sim.stats.failed_allocations == 1

    def test_additional_allocation_takes_new_processes_in_order(self, processes):
        sim = Simulation(1000, AllocationStrategy.FIRST_FIT, processes)
        sim.initial_allocation(2)
        sim.additional_allocation(2)
        assert [p.id for p in sim.running()] == [1, 2, 3, 4]
        sim.additional_allocation(-3)
        assert sim.stats.allocation_attempts == 4

    def test_peak_ignores_termination_phase(self, processes):
        sim = Simulation(1000, AllocationStrategy.FIRST_FIT, processes)
        sim.initial_allocation(1)
        sim.terminate([1])
        assert sim.stats.peak_utilization == pytest.approx(0.2)
        assert sim.samples == pytest.approx([0.2, 0.0])

    def test_stress_with_no_free_memory_fails(self):
        sim = Simulation(100, AllocationStrategy.WORST_FIT, [Process(1, 100)])
        sim.initial_allocation(1)
        assert not sim.stress_allocation(50)
        assert sim.large_process.requested_size == 0

    def test_stress_rejects_bad_percent(self, processes):
        sim = Simulation(1000, AllocationStrategy.FIRST_FIT, processes)
        with pytest.raises(ValueError):
            sim.stress_allocation(0)

    def test_event_log_interleaves_phases(self, processes, plan):
        result = run_simulation(1000, AllocationStrategy.FIRST_FIT, processes, plan)
        phase2 = result.event_log.index("--- Phase 2: Process Termination ---")
        phase3 = result.event_log.index("--- Phase 3: Additional Process Allocation ---")
        assert any(ev.startswith("Freed: P1") for ev in result.event_log[phase2:phase3])
