"""
Tests for the workload file loader.
"""

import logging

import pytest

from engine import AllocationStrategy, ProcessState
from loader import MAX_PROCESSES, WorkloadError, load_workload, parse_workload
from simulation import LARGE_PROCESS_ID, PhasePlan, run_simulation


SAMPLE = """1024
# id size arrival duration
1 212 0 5
2 417

3 112 4
"""


class TestParseWorkload:

    def test_parses_memory_size_and_processes(self):
        workload = parse_workload(SAMPLE)
        assert workload.memory_size == 1024
        assert [(p.id, p.requested_size) for p in workload.processes] == [
            (1, 212), (2, 417), (3, 112),
        ]
        assert all(p.state == ProcessState.NEW and p.block_id is None
                   for p in workload.processes)

    def test_optional_fields_default(self):
        p1, p2, p3 = parse_workload(SAMPLE).processes
        assert (p1.arrival_time, p1.duration) == (0, 5)
        assert (p2.arrival_time, p2.duration) == (0, 10)
        assert (p3.arrival_time, p3.duration) == (4, 10)

    def test_invalid_lines_are_skipped_with_warning(self, caplog):
        text = "500\n1 100\nbogus line\n2\n3 0\n4 -20\n5 50\n"
        with caplog.at_level(logging.WARNING):
            workload = parse_workload(text)
        assert [p.id for p in workload.processes] == [1, 5]
        messages = [r.getMessage() for r in caplog.records]
        assert "Line 3 has invalid format, skipping" in messages
        assert "Line 4 has invalid format, skipping" in messages
        assert "Line 5 has invalid process size (0), skipping" in messages
        assert "Line 6 has invalid process size (-20), skipping" in messages

    def test_repeated_id_is_skipped(self, caplog):
        with caplog.at_level(logging.WARNING):
            workload = parse_workload("1000\n1 100\n1 200\n2 50\n")
        assert [(p.id, p.requested_size) for p in workload.processes] == [(1, 100), (2, 50)]
        assert "Line 3 repeats process ID 1, skipping" in [r.getMessage() for r in caplog.records]

    def test_reserved_large_process_id_is_skipped(self, caplog):
        text = f"1000\n{LARGE_PROCESS_ID} 100\n1 200\n"
        with caplog.at_level(logging.WARNING):
            workload = parse_workload(text)
        assert [p.id for p in workload.processes] == [1]
        assert f"Line 2 uses reserved process ID {LARGE_PROCESS_ID}, skipping" in [
            r.getMessage() for r in caplog.records
        ]

    def test_duplicate_ids_do_not_confuse_termination(self):
        workload = parse_workload("1000\n1 100\n1 200\n")
        plan = PhasePlan(initial_count=2, terminate_ids=[1], stress_percent=10)
        result = run_simulation(1000, AllocationStrategy.FIRST_FIT, workload.processes, plan)
        assert [(p.id, p.state) for p in result.processes] == [
            (1, ProcessState.TERMINATED), (LARGE_PROCESS_ID, ProcessState.RUNNING),
        ]

    def test_trailing_comment_on_process_line(self):
        workload = parse_workload("100\n1 40 # small one\n")
        assert workload.processes[0].requested_size == 40

    def test_process_limit(self):
        lines = ["4096"] + [f"{i} 10" for i in range(1, 31)]
        workload = parse_workload("\n".join(lines))
        assert len(workload.processes) == MAX_PROCESSES
        assert workload.processes[-1].id == MAX_PROCESSES

    def test_no_limit_warning_for_trailing_blank_or_comment_lines(self, caplog):
        lines = ["4096"] + [f"{i} 10" for i in range(1, MAX_PROCESSES + 1)]
        lines += ["", "   # indented comment", "# done"]
        with caplog.at_level(logging.WARNING):
            workload = parse_workload("\n".join(lines))
        assert len(workload.processes) == MAX_PROCESSES
        assert caplog.records == []

    def test_indented_comment_is_skipped_quietly(self, caplog):
        with caplog.at_level(logging.WARNING):
            workload = parse_workload("100\n   # note\n1 40\n")
        assert [p.id for p in workload.processes] == [1]
        assert caplog.records == []

    @pytest.mark.parametrize("text", ["", "abc\n1 10\n", "0\n1 10\n", "-5\n1 10\n"])
    def test_bad_memory_size(self, text):
        with pytest.raises(WorkloadError):
            parse_workload(text)

    def test_no_valid_processes(self):
        with pytest.raises(WorkloadError, match="No valid processes"):
            parse_workload("1024\n# nothing here\n1 0\n")


class TestLoadWorkload:

    def test_reads_file(self, tmp_path):
        path = tmp_path / "input.txt"
        path.write_text(SAMPLE)
        workload = load_workload(str(path))
        assert workload.memory_size == 1024
        assert len(workload.processes) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(WorkloadError, match="Could not open input file"):
            load_workload(str(tmp_path / "missing.txt"))

    def test_workload_error_is_value_error(self):
        assert issubclass(WorkloadError, ValueError)
