# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for problem parsing, solution files and bit extraction.
"""
import os
import tempfile
import unittest

from py_factsat.factorisation import (CnfFormatError, Factorisation, FactSatError,
                                      MissingAssignmentError, SolutionFormatError,
                                      int_from_bits, parse_clause_line, parse_problem_string,
                                      parse_solution_string, solution_to_string)
from py_factsat.formula import Clause, Literal

PROBLEM = """c Circuit for a hand-written test
c Variables for output [msb,...,lsb]: [5, 6, 7]
c Variables for first input [msb,...,lsb]: [1, 2]
c Variables for second input [msb,...,lsb]: [3, 4]
p cnf 7 4
1 -2 0
3 4 0
-5 6 7 0

7 0
"""


class TestClauseParsing(unittest.TestCase):
    def test_clause_line(self):
        self.assertEqual(parse_clause_line("1 -2 0"), Clause([Literal(1, True), Literal(2, False)]))

    def test_clause_line_whitespace(self):
        self.assertEqual(parse_clause_line("  4\t-9   0 "), Clause.from_ints([4, -9]))

    def test_malformed_clause_lines(self):
        for line in ("1 -2", "1 x 0", "1 0 2 0", "0 1", "1.5 0"):
            with self.subTest(line=line):
                with self.assertRaises(CnfFormatError):
                    parse_clause_line(line)


class TestProblemParsing(unittest.TestCase):
    def test_annotations_and_clauses(self):
        clauses, annotations = parse_problem_string(PROBLEM)
        self.assertEqual(annotations, {
            'output': [5, 6, 7],
            'first input': [1, 2],
            'second input': [3, 4],
        })
        self.assertEqual(clauses, [Clause.from_ints([1, -2]), Clause.from_ints([3, 4]),
                                   Clause.from_ints([-5, 6, 7]), Clause.from_ints([7])])

    def test_missing_annotation(self):
        text = PROBLEM.replace("c Variables for second input [msb,...,lsb]: [3, 4]\n", "")
        with self.assertRaises(CnfFormatError) as cm:
            parse_problem_string(text, source="broken.cnf")
        self.assertIn("second input", str(cm.exception))
        self.assertIn("broken.cnf", str(cm.exception))

    def test_malformed_line_reports_position(self):
        text = PROBLEM + "1 2 three 0\n"
        with self.assertRaises(CnfFormatError) as cm:
            parse_problem_string(text, source="bad.cnf")
        self.assertEqual(cm.exception.source, "bad.cnf")
        self.assertEqual(cm.exception.line_no, len(PROBLEM.splitlines()) + 1)
        self.assertIsInstance(cm.exception, ValueError)
        self.assertIsInstance(cm.exception, FactSatError)

    def test_malformed_annotation_list(self):
        text = PROBLEM.replace("[1, 2]", "[1, , 2]")
        with self.assertRaises(CnfFormatError):
            parse_problem_string(text)

    def test_cancelled_clause_is_dropped(self):
        with self.assertLogs('py_factsat.factorisation', level='WARNING'):
            clauses, _ = parse_problem_string(PROBLEM + "2 -2 0\n")
        self.assertEqual(len(clauses), 4)

    def test_partially_cancelled_clause_keeps_rest(self):
        with self.assertLogs('py_factsat.factorisation', level='WARNING'):
            clauses, _ = parse_problem_string(PROBLEM + "1 -1 3 0\n")
        self.assertEqual(clauses[-1], Clause.from_ints([3]))


class TestFactorisation(unittest.TestCase):
    def setUp(self):
        self.instance = Factorisation.from_problem_string(PROBLEM, source="test.cnf")

    def test_bit_lists(self):
        self.assertEqual(self.instance.output_bits, [5, 6, 7])
        self.assertEqual(self.instance.input1_bits, [1, 2])
        self.assertEqual(self.instance.input2_bits, [3, 4])
        self.assertEqual(len(self.instance.root_formula), 4)

    def test_complete_assignment(self):
        completed = self.instance.complete_assignment({7: True, 1: True})
        self.assertEqual(completed, {1: True, 2: False, 3: False, 4: False, 5: False, 6: False, 7: True})

    def test_verify(self):
        good = {1: True, 2: False, 3: True, 4: False, 5: False, 6: False, 7: True}
        self.assertTrue(self.instance.verify(good))
        self.assertFalse(self.instance.verify({**good, 7: False}))

    def test_factors(self):
        assignment = {1: True, 2: False, 3: True, 4: True, 5: True, 6: True, 7: False}
        self.assertEqual(self.instance.factors(assignment), (2, 3, 6))

    def test_factors_from_stored_solution(self):
        self.instance.read_solution_string("SAT\n1 2 -3 4 5 -6 -7 0\n")
        self.assertEqual(self.instance.factors(), (3, 1, 4))

    def test_factors_without_solution(self):
        with self.assertRaises(ValueError):
            self.instance.factors()

    def test_from_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "problem.cnf")
            with open(path, "w") as f:
                f.write(PROBLEM)
            instance = Factorisation.from_file(path)
            self.assertEqual(instance.source, path)
            self.assertEqual(instance.output_bits, [5, 6, 7])


class TestBitExtraction(unittest.TestCase):
    def test_msb_first(self):
        self.assertEqual(int_from_bits({5: True, 6: False, 7: True}, [5, 6, 7]), 5)

    def test_empty_list_is_zero(self):
        self.assertEqual(int_from_bits({}, []), 0)

    def test_arbitrary_precision(self):
        bits = list(range(1, 101))
        self.assertEqual(int_from_bits({v: True for v in bits}, bits), 2 ** 100 - 1)

    def test_missing_variable_is_a_fault(self):
        with self.assertRaises(MissingAssignmentError) as cm:
            int_from_bits({5: True, 7: True}, [5, 6, 7])
        self.assertEqual(cm.exception.variable, 6)
        self.assertIsInstance(cm.exception, KeyError)
        self.assertIn("6", str(cm.exception))


class TestSolutionText(unittest.TestCase):
    def test_parse_sat(self):
        self.assertEqual(parse_solution_string("SAT\n1 -2 3 0\n"), {1: True, 2: False, 3: True})

    def test_multi_digit_and_terminator(self):
        self.assertEqual(parse_solution_string("SAT\n10 -20 100 0\n"), {10: True, 20: False, 100: True})

    def test_no_solution_recorded(self):
        for text in ("UNSAT\n", "", "INDET\n", " SAT 1 0"):
            with self.subTest(text=text):
                self.assertIsNone(parse_solution_string(text))

    def test_conflicting_values(self):
        with self.assertRaises(SolutionFormatError):
            parse_solution_string("SAT\n1 -1 0\n", source="x.sol")

    def test_write(self):
        self.assertEqual(solution_to_string({2: False, 1: True}), "SAT\n1 -2 0\n")
        self.assertEqual(solution_to_string(None), "UNSAT\n")

    def test_written_solution_reads_back(self):
        assignment = {3: True, 1: False, 12: True, 7: False}
        self.assertEqual(parse_solution_string(solution_to_string(assignment)), assignment)


if __name__ == '__main__':
    unittest.main()
