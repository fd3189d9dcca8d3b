# *************************************************************************
# Copyright (c) 2025 Zewei Zhang
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Chronological DPLL search over persistent Formula nodes.

Each step takes a node, runs unit propagation (and optionally pure-literal
elimination), stops on a contradiction or an empty formula, and otherwise
splits on a variable chosen by the configured heuristic: the ``false``
branch is explored first, the ``true`` branch only once it has failed.

The search keeps its own stack of pending branches instead of recursing, so
instances with thousands of decisions or implied literals stay within the
interpreter's recursion limit. There is no learning and no backjumping.
"""
import logging
import time
from typing import Callable, Dict, Optional

from py_factsat.formula import Formula, Literal
from py_factsat.heuristics import get_heuristic

logger = logging.getLogger(__name__)


# Result codes follow the MiniSat exit codes.
class Status:
    SAT = 10
    UNSAT = 20
    ABORTED = 0

    NAMES = {SAT: "SATISFIABLE", UNSAT: "UNSATISFIABLE", ABORTED: "INDETERMINATE"}

    @staticmethod
    def name(status: int) -> str:
        return Status.NAMES[status]


class SearchContext:
    """
    State owned by one top-level search run.

    Holds the activity table used by the activity heuristic and the run's
    counters. A new context is created for every ``solve`` unless the caller
    passes one in to share it on purpose.
    """

    def __init__(self):
        self.activity: Dict[int, int] = {}
        self.decisions = 0
        self.propagations = 0
        self.pure_literals = 0
        self.conflicts = 0
        self.max_depth = 0

    def stats(self) -> Dict[str, int]:
        return {
            'decisions': self.decisions,
            'propagations': self.propagations,
            'pure_literals': self.pure_literals,
            'conflicts': self.conflicts,
            'max_depth': self.max_depth,
        }


class SearchResult:
    def __init__(self, status: int, formula: Optional[Formula], context: SearchContext,
                 cpu_time: float):
        self.status = status
        self.formula = formula
        self.context = context
        self.cpu_time = cpu_time

    @property
    def satisfiable(self) -> bool:
        return self.status == Status.SAT

    def assignment(self) -> Optional[Dict[int, bool]]:
        """Decisions on the path to the satisfying node, or None."""
        if self.formula is None:
            return None
        return self.formula.assignment_map()

    def stats(self) -> Dict:
        stats = self.context.stats()
        stats['cpu_time'] = self.cpu_time
        return stats


class DPLLSolver:
    """
    DPLL engine.

    Options are plain attributes, set before calling ``solve``:
        heuristic:        BranchHeuristic instance (see heuristics.py).
        pure_literal:     also run pure-literal elimination at every node.
        decision_budget:  maximum number of decisions per solve call, -1 for
                          none. A shared context does not carry the count over.
        time_budget:      wall-clock seconds, -1 for none.
        progress:         callable receiving the fraction of assigned
                          variables at every branch point.
    ``asynch_interrupt`` may be set from another thread to stop a running
    search; it is polled before every branch step.
    """

    def __init__(self, heuristic=None, pure_literal: bool = False):
        self.heuristic = get_heuristic(heuristic)
        self.pure_literal = pure_literal

        self.decision_budget = -1
        self.time_budget = -1.0
        self.asynch_interrupt = False
        self.progress: Optional[Callable[[float], None]] = None

        self.context = SearchContext()
        self._deadline = None
        self._decisions_at_start = 0

    def interrupt(self):
        self.asynch_interrupt = True

    def clear_interrupt(self):
        self.asynch_interrupt = False

    def unit_propagate(self, formula: Formula) -> Formula:
        """Fix unit clauses until none is left or a contradiction appears."""
        unit = formula.unit_clause()
        while unit is not None and not formula.contradiction:
            formula = formula.child(unit.first())
            self.context.propagations += 1
            unit = formula.unit_clause()
        return formula

    def eliminate_pure_literals(self, formula: Formula) -> Formula:
        """Fix every literal whose negation no longer occurs, until none is left."""
        while not formula.contradiction:
            polarities = {}
            for clause in formula:
                for literal in clause:
                    polarities.setdefault(literal.variable, set()).add(literal.positive)

            pure = [Literal(variable, seen.pop()) for variable, seen in polarities.items()
                    if len(seen) == 1]
            if not pure:
                break

            for literal in pure:
                formula = formula.child(literal)
            self.context.pure_literals += len(pure)
        return formula

    def simplify(self, formula: Formula) -> Formula:
        formula = self.unit_propagate(formula)
        if self.pure_literal and not formula.contradiction:
            formula = self.eliminate_pure_literals(formula)
        return formula

    def progress_estimate(self, formula: Formula) -> float:
        assigned = formula.depth
        total = assigned + len(formula.variables())
        return assigned / total if total else 1.0

    def within_budget(self) -> bool:
        if self.asynch_interrupt:
            return False
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return False
        return True

    def within_decision_budget(self) -> bool:
        decisions = self.context.decisions - self._decisions_at_start
        return self.decision_budget < 0 or decisions < self.decision_budget

    def solve(self, root: Formula, context: Optional[SearchContext] = None) -> SearchResult:
        """
        Search for a satisfying node below ``root``.

        Returns:
            SearchResult with status SAT (and the terminal node), UNSAT, or
            ABORTED when a budget ran out or the search was interrupted.
        """
        self.context = context if context is not None else SearchContext()
        self._decisions_at_start = self.context.decisions
        self._deadline = time.monotonic() + self.time_budget if self.time_budget >= 0 else None

        logger.info("DPLL search with %d clauses, heuristic=%s, pure_literal=%s",
                    len(root), self.heuristic.name, self.pure_literal)
        start_time = time.process_time()
        status, formula = self._search(root)
        cpu_time = time.process_time() - start_time
        logger.info("DPLL search finished: %s after %d decisions",
                    Status.name(status), self.context.decisions)
        return SearchResult(status, formula, self.context, cpu_time)

    def _search(self, root: Formula):
        context = self.context
        # Each frame is (parent, literal); the child is built when the frame is popped.
        stack = [(root, None)]
        while stack:
            if not self.within_budget():
                return Status.ABORTED, None

            parent, literal = stack.pop()
            formula = parent if literal is None else parent.child(literal)
            formula = self.simplify(formula)

            if formula.contradiction:
                context.conflicts += 1
                continue
            if formula.satisfied:
                return Status.SAT, formula

            if not self.within_decision_budget():
                return Status.ABORTED, None

            variable = self.heuristic.pick(formula, context)
            context.decisions += 1
            context.max_depth = max(context.max_depth, formula.depth)
            logger.debug("Branch on %d at depth %d", variable, formula.depth)
            if self.progress is not None:
                self.progress(self.progress_estimate(formula))

            stack.append((formula, Literal(variable, True)))
            stack.append((formula, Literal(variable, False)))
        return Status.UNSAT, None
