"""
Command-line comparison of First Fit, Best Fit and Worst Fit.

    python cli.py input.txt --initial 6 --terminate 2 4 --additional 3 --stress 60
"""

import argparse
import logging
import sys

from loader import DEFAULT_INPUT_FILE, WorkloadError, load_workload
from report import comparison_table, detailed_state, final_results, memory_summary, process_table
from simulation import TERMINATE_ALL, PhasePlan, run_comparison


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Contiguous memory allocation simulation (First/Best/Worst Fit)"
    )
    parser.add_argument("input_file", nargs="?", default=DEFAULT_INPUT_FILE,
                        help="workload file (first line: memory size in KB)")
    parser.add_argument("--initial", type=int, default=None,
                        help="processes to allocate in phase 1 (default: all)")
    parser.add_argument("--terminate", type=int, nargs="*", default=[], metavar="PID",
                        help="process IDs to terminate in phase 2")
    parser.add_argument("--terminate-all", action="store_true",
                        help="terminate every running process in phase 2")
    parser.add_argument("--additional", type=int, default=0,
                        help="extra processes to allocate in phase 3")
    parser.add_argument("--stress", type=float, default=50.0,
                        help="phase 4 request size as %% of free memory (1-100)")
    parser.add_argument("--detailed", action="store_true",
                        help="print the final block list for each strategy")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        workload = load_workload(args.input_file)
    except WorkloadError as e:
        print(f"Failed to read processes from input file: {e}", file=sys.stderr)
        return 1

    try:
        plan = PhasePlan(
            initial_count=args.initial if args.initial is not None else len(workload.processes),
            terminate_ids=TERMINATE_ALL if args.terminate_all else args.terminate,
            additional_count=args.additional,
            stress_percent=args.stress,
        )
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    print("\n===== STATIC MEMORY ALLOCATION SIMULATION =====\n")
    print(f"Input file: {args.input_file}")
    print(f"Memory size: {workload.memory_size} KB")
    print(f"Number of processes: {len(workload.processes)}\n")
    print(process_table(workload.processes))

    results = run_comparison(workload.memory_size, workload.processes, plan)

    for strategy, result in results.items():
        print(f"\n=== {strategy} Strategy Simulation ===")
        for event in result.event_log:
            print(event)
        print()
        print(memory_summary(result.total_size, result.free_size, result.blocks, result.processes))
        if args.detailed:
            print()
            print(detailed_state(result))
        print()
        print(final_results(result))

    print()
    print(comparison_table(results))
    return 0


if __name__ == "__main__":
    sys.exit(main())
