# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
End-to-end tests: generated multiplier CNFs through the search and the driver.
"""
import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from generate_dataset.gen_multiplier_cnf import build_multiplier_cnf, write_multiplier_cnf
from py_factsat.dpll import DPLLSolver, Status
from py_factsat.factorisation import Factorisation
from py_factsat.heuristics import HEURISTICS
from py_factsat.run_factsat import main, solution_path
from utils.utils import cnf_to_string

BRANCHING_PROBLEM = """c Variables for output [msb,...,lsb]: [3]
c Variables for first input [msb,...,lsb]: [1]
c Variables for second input [msb,...,lsb]: [2]
1 2 0
-1 2 0
1 -2 0
-1 -2 3 0
"""


def solve_product(product, first_bits, second_bits, heuristic=None, nontrivial=False):
    cnf = build_multiplier_cnf(product, first_bits, second_bits, nontrivial)
    instance = Factorisation.from_problem_string(cnf_to_string(cnf))
    result = DPLLSolver(heuristic=heuristic).solve(instance.root_formula)
    return instance, result


class TestMultiplierSearch(unittest.TestCase):
    def test_two_by_two_product_six(self):
        for name in HEURISTICS:
            with self.subTest(heuristic=name):
                instance, result = solve_product(6, 2, 2, heuristic=name)
                self.assertEqual(result.status, Status.SAT)
                assignment = instance.complete_assignment(result.assignment())
                self.assertTrue(instance.verify(assignment))
                first, second, product = instance.factors(assignment)
                self.assertEqual(product, 6)
                self.assertEqual(first * second, 6)
                self.assertIn((first, second), [(2, 3), (3, 2)])

    def test_every_two_by_two_product(self):
        reachable = {a * b for a in range(4) for b in range(4)}
        for target in range(16):
            with self.subTest(product=target):
                instance, result = solve_product(target, 2, 2)
                self.assertEqual(result.satisfiable, target in reachable)
                if result.satisfiable:
                    assignment = instance.complete_assignment(result.assignment())
                    first, second, product = instance.factors(assignment)
                    self.assertEqual((first * second, product), (target, target))

    def test_one_bit_input_widths(self):
        for first_bits, second_bits in ((1, 1), (1, 3), (3, 1), (2, 1)):
            reachable = {a * b for a in range(1 << first_bits) for b in range(1 << second_bits)}
            for target in range(1 << (first_bits + second_bits)):
                with self.subTest(first_bits=first_bits, second_bits=second_bits, product=target):
                    instance, result = solve_product(target, first_bits, second_bits)
                    self.assertEqual(result.satisfiable, target in reachable)
                    if result.satisfiable:
                        assignment = instance.complete_assignment(result.assignment())
                        self.assertTrue(instance.verify(assignment))
                        first, second, product = instance.factors(assignment)
                        self.assertEqual((first * second, product), (target, target))

    def test_nontrivial_composite(self):
        instance, result = solve_product(15, 3, 3, nontrivial=True)
        self.assertEqual(result.status, Status.SAT)
        first, second, _ = instance.factors(instance.complete_assignment(result.assignment()))
        self.assertIn((first, second), [(3, 5), (5, 3)])

    def test_nontrivial_prime_is_unsat(self):
        _, result = solve_product(13, 3, 3, nontrivial=True)
        self.assertEqual(result.status, Status.UNSAT)

    def test_generator_rejects_oversized_product(self):
        with self.assertRaises(ValueError):
            build_multiplier_cnf(16, 2, 2)

    def test_annotations_written(self):
        text = cnf_to_string(build_multiplier_cnf(6, 2, 2))
        self.assertIn("c Variables for first input [msb,...,lsb]: [2, 1]", text)
        self.assertIn("c Variables for second input [msb,...,lsb]: [4, 3]", text)


class TestDriver(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    @staticmethod
    def run_main(*argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main([str(a) for a in argv])
        return code, out.getvalue()

    def write_problem(self, name, text):
        path = self.tmp / name
        path.write_text(text)
        return path

    def test_solves_and_persists(self):
        problem = write_multiplier_cnf(self.tmp, 6, 2, 2)
        code, out = self.run_main(problem, "-v", "0")
        self.assertEqual(code, 0)
        self.assertIn("SATISFIABLE", out)
        self.assertTrue(out.strip().endswith("= 6"))

        sol = solution_path(problem)
        self.assertTrue(sol.exists())
        instance = Factorisation.from_file(problem)
        assignment = instance.read_solution_file(sol)
        first, second, product = instance.factors(assignment)
        self.assertEqual((first * second, product), (6, 6))

    def test_cached_solution_is_reused(self):
        problem = write_multiplier_cnf(self.tmp, 6, 2, 2)
        self.run_main(problem, "-v", "0")
        report = self.tmp / "report.json"
        code, _ = self.run_main(problem, "-v", "0", "--json", report)
        self.assertEqual(code, 0)
        with open(report) as f:
            records = json.load(f)
        self.assertEqual(records[0]['source'], 'cache')
        self.assertEqual(records[0]['product'], 6)

    def test_cached_unsat_record(self):
        problem = self.write_problem("p.cnf", BRANCHING_PROBLEM)
        solution_path(problem).write_text("UNSAT\n")
        code, out = self.run_main(problem, "-v", "0")
        self.assertEqual(code, 0)
        self.assertIn("UNSATISFIABLE", out)

    def test_no_cache_searches_again(self):
        problem = self.write_problem("p.cnf", BRANCHING_PROBLEM)
        solution_path(problem).write_text("UNSAT\n")
        code, out = self.run_main(problem, "-v", "0", "--no-cache")
        self.assertEqual(code, 0)
        self.assertIn(": SATISFIABLE", out)
        self.assertTrue(solution_path(problem).read_text().startswith("SAT\n"))

    def test_no_save(self):
        problem = self.write_problem("p.cnf", BRANCHING_PROBLEM)
        self.run_main(problem, "-v", "0", "--no-save")
        self.assertFalse(solution_path(problem).exists())

    def test_aborted_is_not_persisted(self):
        problem = self.write_problem("p.cnf", BRANCHING_PROBLEM)
        code, out = self.run_main(problem, "-v", "0", "--max-decisions", "0")
        self.assertEqual(code, 0)
        self.assertIn("INDETERMINATE", out)
        self.assertFalse(solution_path(problem).exists())

    def test_bad_file_does_not_stop_batch(self):
        broken = self.write_problem("a_broken.cnf", "1 2 0\n")
        good = write_multiplier_cnf(self.tmp, 6, 2, 2)
        code, out = self.run_main(self.tmp, "-v", "0")
        self.assertEqual(code, 1)
        self.assertIn(f"[ERROR] {broken}", out)
        self.assertIn(f"{good}: SATISFIABLE", out)
        self.assertFalse(solution_path(broken).exists())

    def test_inconsistent_cached_solution_is_an_error(self):
        problem = write_multiplier_cnf(self.tmp, 6, 2, 2)
        solution_path(problem).write_text("SAT\n1 0\n")
        code, out = self.run_main(problem, "-v", "0")
        self.assertEqual(code, 1)
        self.assertIn("[ERROR]", out)
        self.assertIn("no value in the assignment", out)

    def test_unexpected_errors_are_not_swallowed(self):
        problem = self.write_problem("p.cnf", BRANCHING_PROBLEM)
        with mock.patch('py_factsat.run_factsat.process_problem', side_effect=KeyError('bug')):
            with self.assertRaises(KeyError):
                self.run_main(problem, "-v", "0")

    def test_statistics_block(self):
        problem = self.write_problem("p.cnf", BRANCHING_PROBLEM)
        code, out = self.run_main(problem, "--heuristic", "activity", "--pure-literal")
        self.assertEqual(code, 0)
        self.assertIn("decisions", out)
        self.assertIn("CPU time", out)


if __name__ == '__main__':
    unittest.main()
