# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for literals, clauses and the persistent formula tree.
"""
import unittest

from py_factsat.formula import Clause, Formula, Literal


class TestLiteral(unittest.TestCase):
    def test_from_token(self):
        self.assertEqual(Literal.from_token("-7"), Literal(7, False))
        self.assertEqual(Literal.from_token("7"), Literal(7, True))

    def test_negation_flips_polarity_only(self):
        lit = Literal(3, True)
        self.assertEqual(~lit, Literal(3, False))
        self.assertEqual(~~lit, lit)
        self.assertNotEqual(~lit, lit)

    def test_hashable_value_type(self):
        table = {Literal(1, True): 'a', Literal(1, False): 'b'}
        self.assertEqual(table[Literal(1, True)], 'a')
        self.assertEqual(table[Literal(1, False)], 'b')
        self.assertEqual(len({Literal(2, False), Literal(2, False)}), 1)

    def test_zero_is_not_a_literal(self):
        with self.assertRaises(ValueError):
            Literal.from_int(0)
        with self.assertRaises(ValueError):
            Literal(0, True)

    def test_round_trip_to_int(self):
        for value in (5, -5, 123):
            with self.subTest(value=value):
                self.assertEqual(Literal.from_int(value).to_int(), value)
                self.assertEqual(str(Literal.from_int(value)), str(value))


class TestClause(unittest.TestCase):
    def test_duplicate_insert_is_noop(self):
        clause = Clause.from_ints([1, 1, -2])
        self.assertEqual(len(clause), 2)
        self.assertEqual(clause, Clause.from_ints([1, -2]))

    def test_opposite_insert_cancels_both(self):
        # Complementary literals remove each other instead of making a tautology.
        clause = Clause.from_ints([1, -1, 2])
        self.assertEqual(clause, Clause.from_ints([2]))
        self.assertFalse(clause.contains_variable(1))

        clause = Clause.from_ints([3, -3])
        self.assertTrue(clause.is_empty())

    def test_insert_after_cancel_adds_again(self):
        clause = Clause.from_ints([4, -4])
        clause.insert(Literal(4, False))
        self.assertEqual(clause, Clause.from_ints([-4]))

    def test_contains_variable_ignores_polarity(self):
        clause = Clause.from_ints([1, -2])
        self.assertTrue(clause.contains_variable(1))
        self.assertTrue(clause.contains_variable(2))
        self.assertFalse(clause.contains_variable(3))
        self.assertFalse(clause.polarity_of(2))
        self.assertIsNone(clause.polarity_of(3))

    def test_equality_ignores_order(self):
        a = Clause.from_ints([1, -2, 3])
        b = Clause.from_ints([3, 1, -2])
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertNotEqual(a, Clause.from_ints([1, 2, 3]))

    def test_without_returns_a_copy(self):
        clause = Clause.from_ints([1, -2])
        reduced = clause.without(1)
        self.assertEqual(reduced, Clause.from_ints([-2]))
        self.assertEqual(clause, Clause.from_ints([1, -2]))

    def test_first_follows_insertion_order(self):
        self.assertEqual(Clause.from_ints([-5, 2]).first(), Literal(5, False))


class TestFormula(unittest.TestCase):
    def test_child_removes_satisfied_and_shrinks(self):
        root = Formula.from_clauses([[1, 2], [-1], [2, -2]])
        self.assertEqual(list(root), [Clause.from_ints([1, 2]), Clause.from_ints([-1])])

        child = root.child(Literal(1, False))
        self.assertEqual(list(child), [Clause.from_ints([2])])
        self.assertFalse(child.satisfied)

        grandchild = child.child(Literal(2, True))
        self.assertTrue(grandchild.satisfied)
        self.assertFalse(grandchild.contradiction)
        self.assertEqual(grandchild.assignment_map(), {1: False, 2: True})

    def test_child_exposes_contradiction(self):
        root = Formula.from_clauses([[1], [-1]])
        child = root.child(Literal(1, True))
        self.assertTrue(child.contradiction)
        self.assertFalse(child.satisfied)

    def test_parent_is_never_modified(self):
        root = Formula.from_clauses([[1, 2], [-1, 3]])
        before = list(root)
        root.child(Literal(1, True))
        root.child(Literal(1, False))
        self.assertEqual(list(root), before)

    def test_untouched_clauses_are_shared(self):
        root = Formula.from_clauses([[1, 2], [3, 4]])
        child = root.child(Literal(1, False))
        self.assertIs(list(child)[1], list(root)[1])

    def test_satisfied_and_contradiction_exclusive(self):
        formulas = [
            Formula.from_clauses([]),
            Formula.from_clauses([[]]),
            Formula.from_clauses([[1, -2], [2]]),
            Formula.from_clauses([[1], [-1]]).child(Literal(1, True)),
        ]
        for f in formulas:
            with self.subTest(formula=str(f)):
                self.assertFalse(f.satisfied and f.contradiction)
        self.assertTrue(formulas[0].satisfied)
        self.assertTrue(formulas[1].contradiction)

    def test_duplicate_root_clauses_collapse(self):
        root = Formula.from_clauses([[1, 2], [2, 1], [3]])
        self.assertEqual(len(root), 2)

    def test_unit_clause_is_first_unit(self):
        root = Formula.from_clauses([[1, 2], [-3], [4]])
        self.assertEqual(root.unit_clause(), Clause.from_ints([-3]))
        self.assertIsNone(Formula.from_clauses([[1, 2]]).unit_clause())

    def test_assignments_in_path_order(self):
        root = Formula.from_clauses([[1, 2, 3], [-1, -2, -3]])
        node = root.child(Literal(2, True)).child(Literal(3, False))
        self.assertEqual(node.assignments(), [Literal(2, True), Literal(3, False)])
        self.assertEqual(node.depth, 2)
        self.assertIs(node.root(), root)
        self.assertEqual(root.assignments(), [])

    def test_assignment_map_rejects_repeated_variable(self):
        root = Formula.from_clauses([[1, 2]])
        node = root.child(Literal(3, True)).child(Literal(3, False))
        with self.assertRaises(ValueError):
            node.assignment_map()

    def test_variables_in_first_appearance_order(self):
        root = Formula.from_clauses([[3, -1], [1, 2], [-2, 4]])
        self.assertEqual(root.variables(), [3, 1, 2, 4])

    def test_str(self):
        self.assertEqual(str(Formula.from_clauses([[1, -2], [3]])), "{{1, -2}, {3}}")


if __name__ == '__main__':
    unittest.main()
