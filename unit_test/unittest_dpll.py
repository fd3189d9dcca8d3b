# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the DPLL search and the branching heuristics.

Verdicts on random formulas are checked against pysat's MiniSat 2.2.
"""
import random
import unittest

from pysat.solvers import Minisat22

from py_factsat.dpll import DPLLSolver, SearchContext, Status
from py_factsat.formula import Formula, Literal
from py_factsat.heuristics import (ActivityHeuristic, BranchHeuristic, FirstLiteralHeuristic,
                                   HEURISTICS, WeightedOccurrenceHeuristic, get_heuristic)


def random_cnf(rng: random.Random, num_vars: int, num_clauses: int, clause_size: int = 3):
    clauses = []
    for _ in range(num_clauses):
        variables = rng.sample(range(1, num_vars + 1), clause_size)
        clauses.append([v if rng.random() < 0.5 else -v for v in variables])
    return clauses


def satisfies(clauses, assignment) -> bool:
    return all(any(assignment.get(abs(l), False) == (l > 0) for l in clause) for clause in clauses)


class TestHeuristics(unittest.TestCase):
    def setUp(self):
        self.context = SearchContext()

    def test_weighted_prefers_balanced_short_clause_variable(self):
        f = Formula.from_clauses([[1, 2], [-1, 2], [3, 4, 5]])
        # var 1: n=1, p=1 -> 2 * 65536 + 1; var 2: p=2 -> 2 * 65536
        self.assertEqual(WeightedOccurrenceHeuristic().pick(f, self.context), 1)

    def test_weighted_only_counts_shortest_clauses(self):
        f = Formula.from_clauses([[3, 4, 5], [3, -4, 5], [-3, 4, -5], [1, 2]])
        self.assertEqual(WeightedOccurrenceHeuristic().pick(f, self.context), 1)

    def test_weighted_tie_goes_to_first_variable(self):
        f = Formula.from_clauses([[7, 2], [5, 9, 1]])
        self.assertEqual(WeightedOccurrenceHeuristic().pick(f, self.context), 7)

    def test_first_literal(self):
        f = Formula.from_clauses([[-5, 2], [1, 3]])
        self.assertEqual(FirstLiteralHeuristic().pick(f, self.context), 5)

    def test_activity_seeds_then_bumps(self):
        heuristic = ActivityHeuristic()
        f = Formula.from_clauses([[1, 2], [2, 3], [-2, 4]])

        self.assertEqual(heuristic.pick(f, self.context), 2)
        self.assertEqual(self.context.activity, {2: 0})

        self.assertEqual(heuristic.pick(f, self.context), 2)
        self.assertEqual(self.context.activity, {2: 1})

    def test_activity_falls_back_when_scored_variables_are_gone(self):
        heuristic = ActivityHeuristic()
        self.context.activity[2] = 1
        f = Formula.from_clauses([[1, 3], [3, 4]])
        self.assertEqual(heuristic.pick(f, self.context), 3)
        self.assertEqual(self.context.activity, {2: 1, 3: 0})

    def test_activity_picks_highest_score(self):
        heuristic = ActivityHeuristic()
        self.context.activity.update({3: 0, 1: 5})
        f = Formula.from_clauses([[1, 3], [1, 4], [3, 5]])
        self.assertEqual(heuristic.pick(f, self.context), 1)
        self.assertEqual(self.context.activity[1], 6)

    def test_pick_signature(self):
        for cls in (BranchHeuristic,) + tuple(HEURISTICS.values()):
            with self.subTest(heuristic=cls.__name__):
                annotations = cls.pick.__annotations__
                self.assertEqual(annotations['formula'], 'Formula')
                self.assertEqual(annotations['context'], 'SearchContext')
                self.assertIs(annotations['return'], int)

    def test_get_heuristic(self):
        self.assertIsInstance(get_heuristic(), WeightedOccurrenceHeuristic)
        self.assertIsInstance(get_heuristic('activity'), ActivityHeuristic)
        instance = FirstLiteralHeuristic()
        self.assertIs(get_heuristic(instance), instance)
        with self.assertRaises(ValueError):
            get_heuristic('vsids')


class TestPropagation(unittest.TestCase):
    def setUp(self):
        self.solver = DPLLSolver()

    def test_unit_propagation_satisfies(self):
        root = Formula.from_clauses([[1, 2], [-1], [2, -2]])
        f = self.solver.unit_propagate(root)
        self.assertTrue(f.satisfied)
        self.assertEqual(f.assignment_map(), {1: False, 2: True})
        self.assertEqual(self.solver.context.propagations, 2)

    def test_unit_propagation_stops_at_contradiction(self):
        root = Formula.from_clauses([[1], [-1]])
        f = self.solver.unit_propagate(root)
        self.assertTrue(f.contradiction)
        self.assertEqual(f.assignment_map(), {1: True})

    def test_pure_literal_elimination(self):
        root = Formula.from_clauses([[1, 2], [1, 3], [-2, -3]])
        f = self.solver.eliminate_pure_literals(root)
        self.assertTrue(f.satisfied)
        self.assertEqual(f.assignment_map(), {1: True, 2: False, 3: False})
        self.assertEqual(self.solver.context.pure_literals, 3)

    def test_pure_literal_noop_without_pure_literals(self):
        root = Formula.from_clauses([[1, 2], [-1, -2]])
        self.assertIs(self.solver.eliminate_pure_literals(root), root)


class TestSearch(unittest.TestCase):
    def test_satisfiable_by_propagation(self):
        result = DPLLSolver().solve(Formula.from_clauses([[1, 2], [-1], [2, -2]]))
        self.assertEqual(result.status, Status.SAT)
        self.assertTrue(result.satisfiable)
        self.assertEqual(result.assignment(), {1: False, 2: True})
        self.assertEqual(result.context.decisions, 0)

    def test_contradiction_is_unsat(self):
        result = DPLLSolver().solve(Formula.from_clauses([[1], [-1]]))
        self.assertEqual(result.status, Status.UNSAT)
        self.assertIsNone(result.formula)
        self.assertIsNone(result.assignment())

    def test_unsat_after_branching(self):
        clauses = [[a, b, c] for a in (1, -1) for b in (2, -2) for c in (3, -3)]
        for name in HEURISTICS:
            with self.subTest(heuristic=name):
                result = DPLLSolver(heuristic=name).solve(Formula.from_clauses(clauses))
                self.assertEqual(result.status, Status.UNSAT)
                self.assertGreater(result.context.decisions, 0)
                self.assertGreater(result.context.conflicts, 0)

    def test_false_branch_first(self):
        result = DPLLSolver(heuristic='first').solve(Formula.from_clauses([[1, 2]]))
        self.assertEqual(result.assignment(), {1: False, 2: True})
        self.assertEqual(result.context.decisions, 1)

    def test_true_branch_after_false_fails(self):
        result = DPLLSolver(heuristic='first').solve(Formula.from_clauses([[1, 2], [1, -2]]))
        self.assertEqual(result.status, Status.SAT)
        self.assertEqual(result.assignment(), {1: True})
        self.assertEqual(result.context.conflicts, 1)

    def test_pure_literal_option_avoids_branching(self):
        clauses = [[1, 2], [1, 3], [-2, -3]]
        result = DPLLSolver(pure_literal=True).solve(Formula.from_clauses(clauses))
        self.assertEqual(result.status, Status.SAT)
        self.assertEqual(result.context.decisions, 0)
        self.assertTrue(satisfies(clauses, result.assignment()))

    def test_deterministic(self):
        clauses = random_cnf(random.Random(7), 12, 50)
        for name in HEURISTICS:
            with self.subTest(heuristic=name):
                first = DPLLSolver(heuristic=name).solve(Formula.from_clauses(clauses))
                second = DPLLSolver(heuristic=name).solve(Formula.from_clauses(clauses))
                self.assertEqual(first.status, second.status)
                self.assertEqual(first.context.stats(), second.context.stats())
                if first.formula is not None:
                    self.assertEqual(first.formula.assignments(), second.formula.assignments())

    def test_agrees_with_minisat(self):
        rng = random.Random(2024)
        for index in range(40):
            num_vars = rng.randint(4, 10)
            clauses = random_cnf(rng, num_vars, rng.randint(num_vars, 5 * num_vars))
            with Minisat22(bootstrap_with=clauses) as minisat:
                expected = minisat.solve()
            for name in HEURISTICS:
                for pure_literal in (False, True):
                    with self.subTest(index=index, heuristic=name, pure_literal=pure_literal):
                        result = DPLLSolver(name, pure_literal).solve(Formula.from_clauses(clauses))
                        self.assertEqual(result.satisfiable, expected)
                        if expected:
                            self.assertTrue(satisfies(clauses, result.assignment()),
                                            f"Model does not satisfy formula {index}")

    def test_long_propagation_chain(self):
        n = 1500
        clauses = [[1]] + [[-i, i + 1] for i in range(1, n)]
        result = DPLLSolver().solve(Formula.from_clauses(clauses))
        self.assertEqual(result.status, Status.SAT)
        self.assertEqual(result.assignment(), {i: True for i in range(1, n + 1)})

    def test_deep_branching(self):
        pairs = 1200
        clauses = [[2 * i - 1, 2 * i] for i in range(1, pairs + 1)]
        result = DPLLSolver(heuristic='first').solve(Formula.from_clauses(clauses))
        self.assertEqual(result.status, Status.SAT)
        self.assertEqual(result.context.decisions, pairs)
        self.assertEqual(result.context.max_depth, 2 * (pairs - 1))

    def test_progress_callback(self):
        fractions = []
        solver = DPLLSolver(heuristic='first')
        solver.progress = fractions.append
        result = solver.solve(Formula.from_clauses(random_cnf(random.Random(3), 10, 30)))
        self.assertEqual(len(fractions), result.context.decisions)
        self.assertTrue(all(0.0 <= x <= 1.0 for x in fractions))


class TestBudgets(unittest.TestCase):
    def setUp(self):
        self.root = Formula.from_clauses([[1, 2], [-1, 2], [1, -2], [-1, -2, 3]])

    def test_decision_budget_aborts(self):
        solver = DPLLSolver()
        solver.decision_budget = 0
        result = solver.solve(self.root)
        self.assertEqual(result.status, Status.ABORTED)
        self.assertIsNone(result.assignment())

    def test_decision_budget_allows_propagation_only(self):
        solver = DPLLSolver()
        solver.decision_budget = 0
        result = solver.solve(Formula.from_clauses([[1], [-1, 2]]))
        self.assertEqual(result.status, Status.SAT)

    def test_interrupt_aborts(self):
        solver = DPLLSolver()
        solver.interrupt()
        self.assertEqual(solver.solve(self.root).status, Status.ABORTED)
        solver.clear_interrupt()
        self.assertEqual(solver.solve(self.root).status, Status.SAT)

    def test_time_budget_aborts(self):
        solver = DPLLSolver()
        solver.time_budget = 0
        self.assertEqual(solver.solve(self.root).status, Status.ABORTED)

    def test_status_names(self):
        self.assertEqual(Status.name(Status.SAT), "SATISFIABLE")
        self.assertEqual(Status.name(Status.UNSAT), "UNSATISFIABLE")
        self.assertEqual(Status.name(Status.ABORTED), "INDETERMINATE")


class TestSearchContext(unittest.TestCase):
    def test_fresh_context_per_run(self):
        solver = DPLLSolver(heuristic='activity')
        root = Formula.from_clauses(random_cnf(random.Random(11), 10, 40))
        first = solver.solve(root)
        second = solver.solve(root)
        self.assertIsNot(first.context, second.context)
        self.assertEqual(first.context.activity, second.context.activity)

    def test_shared_context_accumulates(self):
        solver = DPLLSolver(heuristic='activity')
        # one decision on variable 1, then the false branch propagates to a model
        root = Formula.from_clauses([[1, 2], [-1, 3], [2, -3]])
        context = SearchContext()
        solver.solve(root, context)
        self.assertEqual(context.activity, {1: 0})
        self.assertEqual(context.decisions, 1)

        result = solver.solve(root, context)
        self.assertIs(result.context, context)
        self.assertEqual(result.status, Status.SAT)
        self.assertEqual(context.activity, {1: 1})
        self.assertEqual(context.decisions, 2)

    def test_decision_budget_is_per_solve_call(self):
        solver = DPLLSolver(heuristic='first')
        solver.decision_budget = 1
        root = Formula.from_clauses([[1, 2], [-1, 3], [2, -3]])
        context = SearchContext()
        for run in range(4):
            with self.subTest(run=run):
                self.assertEqual(solver.solve(root, context).status, Status.SAT)
        self.assertEqual(context.decisions, 4)


if __name__ == '__main__':
    unittest.main()
