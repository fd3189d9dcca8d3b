# *************************************************************************
# Copyright (c) 2025 Zewei Zhang
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Factor the products encoded in multiplier CNFs.

Example:
    python -m py_factsat.run_factsat ./dataset/mult_2x2_6.cnf ./dataset/folder_of_cnfs/

Every problem is handled on its own: when ``<stem>.sol`` sits next to the
problem it is read instead of searching, otherwise the DPLL search runs and
its verdict is written there. A broken problem is reported and skipped.
"""
import argparse
import sys
import time
from pathlib import Path
from typing import Dict, Optional

import psutil
from tqdm import tqdm

from py_factsat.dpll import DPLLSolver, SearchResult, Status
from py_factsat.factorisation import Factorisation, FactSatError, solution_to_string
from py_factsat.heuristics import DEFAULT_HEURISTIC, HEURISTICS
from utils.utils import collect_problem_files, init_logger, save_dicts_to_json


def solution_path(problem_path: Path) -> Path:
    return problem_path.with_suffix('.sol')


class SearchProgressBar:
    """Progress callback showing the share of assigned variables as a tqdm bar."""

    def __init__(self, desc: str):
        self.bar = tqdm(total=100, desc=desc, unit='%', leave=False)

    def __call__(self, fraction: float):
        self.bar.n = int(fraction * 100)
        self.bar.refresh()

    def close(self):
        self.bar.close()


def print_stats(result: SearchResult):
    cpu_time = result.cpu_time

    process = psutil.Process()
    mem_used = process.memory_info().rss / (1024 * 1024)  # in MB

    context = result.context
    decisions_per_sec = context.decisions / cpu_time if cpu_time > 0 else 0
    propagations_per_sec = context.propagations / cpu_time if cpu_time > 0 else 0

    print("decisions             : {:<14} ({:.0f} /sec)".format(context.decisions, decisions_per_sec))
    print("propagations          : {:<14} ({:.0f} /sec)".format(context.propagations, propagations_per_sec))
    print("pure literals         : {}".format(context.pure_literals))
    print("conflicts             : {}".format(context.conflicts))
    print("max depth             : {}".format(context.max_depth))
    print("Memory used           : {:.2f} MB".format(mem_used))
    print("CPU time              : {:.3f} s".format(cpu_time))


def build_solver(args: argparse.Namespace) -> DPLLSolver:
    solver = DPLLSolver(heuristic=args.heuristic, pure_literal=args.pure_literal)
    solver.decision_budget = args.max_decisions
    solver.time_budget = args.timeout
    return solver


def write_solution(path: Path, assignment: Optional[Dict[int, bool]]) -> None:
    with open(path, 'w') as rf:
        rf.write(solution_to_string(assignment))


def process_problem(problem: Path, args: argparse.Namespace) -> Dict:
    """
    Solve (or load) one problem and print its report.

    Returns:
        Record for the JSON summary.
    """
    instance = Factorisation.from_file(problem)
    record = {'problem': str(problem)}
    sol_path = solution_path(problem)

    if args.cache and sol_path.exists():
        assignment = instance.read_solution_file(sol_path)
        status = Status.SAT if assignment is not None else Status.UNSAT
        record['source'] = 'cache'
    else:
        solver = build_solver(args)
        progress_bar = None
        if args.progress:
            progress_bar = SearchProgressBar(problem.name)
            solver.progress = progress_bar
        try:
            result = solver.solve(instance.root_formula)
        finally:
            if progress_bar is not None:
                progress_bar.close()

        status = result.status
        assignment = result.assignment()
        if assignment is not None:
            assignment = instance.complete_assignment(assignment)
        if args.save and status != Status.ABORTED:
            write_solution(sol_path, assignment)
        record['source'] = 'search'
        record.update(result.stats())
        if args.verbosity >= 1:
            print_stats(result)

    record['status'] = Status.name(status)
    print(f"{problem}: {Status.name(status)}")
    if status == Status.SAT:
        first, second, product = instance.factors(assignment)
        record.update(first=first, second=second, product=product)
        print(f"{first} x {second} = {product}")
    return record


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Factor integers by solving multiplier CNFs with a DPLL search."
    )
    parser.add_argument("problems", nargs='+',
                        help="CNF problem files, or folders of .cnf files.")
    parser.add_argument("--heuristic", choices=sorted(HEURISTICS), default=DEFAULT_HEURISTIC,
                        help="Branching variable strategy.")
    parser.add_argument("--pure-literal", action="store_true",
                        help="Also eliminate pure literals at every node.")
    parser.add_argument("--timeout", type=float, default=-1,
                        help="Seconds per problem before the search gives up (-1: none).")
    parser.add_argument("--max-decisions", type=int, default=-1,
                        help="Decisions per problem before the search gives up (-1: none).")
    parser.add_argument("--no-cache", dest="cache", action="store_false",
                        help="Ignore existing .sol files and search again.")
    parser.add_argument("--no-save", dest="save", action="store_false",
                        help="Do not write .sol files.")
    parser.add_argument("--json", default=None,
                        help="Write per-problem results to this JSON file.")
    parser.add_argument("--progress", action="store_true",
                        help="Show a progress bar while searching.")
    parser.add_argument("-v", "--verbosity", type=int, default=1,
                        help="0: verdicts only, 1: search statistics.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    init_logger()

    start_time = time.process_time()
    records = []
    failed = 0
    for problem in collect_problem_files(args.problems):
        try:
            records.append(process_problem(problem, args))
        except (FactSatError, OSError) as e:
            failed += 1
            print(f"[ERROR] {problem}: {e}")
            records.append({'problem': str(problem), 'status': 'ERROR', 'error': str(e)})

    if args.json:
        save_dicts_to_json(records, args.json)
    if args.verbosity >= 1:
        print("Total CPU time        : {:.3f} s".format(time.process_time() - start_time))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
