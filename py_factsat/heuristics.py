# *************************************************************************
# Copyright (c) 2025 Zewei Zhang
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Branching-variable strategies for the DPLL search.

Every strategy answers one question: which variable still occurring in the
current formula should be split on next. Ties always go to the variable that
appears first (clause order, then literal order), so a search is fully
determined by its input and its strategy.
"""
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from py_factsat.dpll import SearchContext
    from py_factsat.formula import Formula


class BranchHeuristic:
    """Interface for branching strategies."""
    name = None

    def pick(self, formula: 'Formula', context: 'SearchContext') -> int:
        """
        Choose the next branching variable.

        Args:
            formula: Non-empty Formula without an empty clause.
            context: SearchContext of the running search.

        Returns:
            A variable id occurring in ``formula``.
        """
        raise NotImplementedError


class WeightedOccurrenceHeuristic(BranchHeuristic):
    """
    Favour variables frequent in the shortest clauses, with balanced polarity.

    For each variable, n and p count its negative and positive occurrences in
    the clauses of minimum length; the score is ``(1 << 16) * (n + p) + n * p``.
    """
    name = 'weighted'

    def pick(self, formula: 'Formula', context: 'SearchContext') -> int:
        shortest = min(len(clause) for clause in formula)

        # variable -> [n, p]
        counts = {variable: [0, 0] for variable in formula.variables()}
        for clause in formula:
            if len(clause) != shortest:
                continue
            for literal in clause:
                counts[literal.variable][1 if literal.positive else 0] += 1

        best, best_score = None, -1
        for variable, (n, p) in counts.items():
            score = (1 << 16) * (n + p) + n * p
            if score > best_score:
                best, best_score = variable, score
        return best


class ActivityHeuristic(BranchHeuristic):
    """
    History-sensitive choice driven by the run's activity table.

    The highest-scored variable still in the formula wins and gets bumped.
    When none of them has a score yet, the variable in the most clauses is
    taken and entered into the table at zero.
    """
    name = 'activity'

    def pick(self, formula: 'Formula', context: 'SearchContext') -> int:
        activity = context.activity

        occurrences = {}
        for clause in formula:
            for variable in clause.variables():
                occurrences[variable] = occurrences.get(variable, 0) + 1

        scored = [v for v in occurrences if v in activity]
        if scored:
            variable = max(scored, key=activity.__getitem__)
            activity[variable] += 1
            return variable

        variable = max(occurrences, key=occurrences.__getitem__)
        activity[variable] = 0
        return variable


class FirstLiteralHeuristic(BranchHeuristic):
    """Variable of the first literal of the first clause."""
    name = 'first'

    def pick(self, formula: 'Formula', context: 'SearchContext') -> int:
        return next(iter(formula)).first().variable


HEURISTICS = {
    cls.name: cls
    for cls in (WeightedOccurrenceHeuristic, ActivityHeuristic, FirstLiteralHeuristic)
}

DEFAULT_HEURISTIC = WeightedOccurrenceHeuristic.name


def get_heuristic(heuristic: Union[str, BranchHeuristic, None] = None) -> BranchHeuristic:
    """Resolve a strategy name (or pass an instance through)."""
    if heuristic is None:
        heuristic = DEFAULT_HEURISTIC
    if isinstance(heuristic, BranchHeuristic):
        return heuristic
    if isinstance(heuristic, str):
        try:
            return HEURISTICS[heuristic]()
        except KeyError:
            raise ValueError(f"Unknown heuristic '{heuristic}', "
                             f"expected one of {sorted(HEURISTICS)}.") from None
    raise TypeError(f"Expected a heuristic name or BranchHeuristic, got {type(heuristic).__name__}.")
