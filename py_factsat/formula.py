# *************************************************************************
# Copyright (c) 2025 Zewei Zhang
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Persistent CNF model.

A Formula is a node in a tree of assignment decisions: the root holds the
parsed clauses, and every other node is reached from its parent by fixing a
single literal. Nodes never change once built, so children share every
clause the assignment leaves untouched.
"""
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Union


class Literal:
    """A signed reference to a Boolean variable."""
    __slots__ = ('variable', 'positive')

    def __init__(self, variable: int, positive: bool = True):
        if variable <= 0:
            raise ValueError(f"Variable ids must be positive, got {variable}.")
        self.variable = variable
        self.positive = positive

    @staticmethod
    def from_int(value: int) -> 'Literal':
        if value == 0:
            raise ValueError("0 terminates a clause and is not a literal.")
        return Literal(abs(value), value > 0)

    @staticmethod
    def from_token(token: str) -> 'Literal':
        """Parse a DIMACS token: "-7" -> (7, False), "7" -> (7, True)."""
        return Literal.from_int(int(token))

    def to_int(self) -> int:
        return self.variable if self.positive else -self.variable

    def __invert__(self) -> 'Literal':
        return Literal(self.variable, not self.positive)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Literal):
            return NotImplemented
        return self.variable == other.variable and self.positive == other.positive

    def __ne__(self, other) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self) -> int:
        return self.variable if self.positive else ~self.variable

    def __str__(self) -> str:
        return str(self.to_int())

    def __repr__(self) -> str:
        return f"Literal({self.variable}, {self.positive})"


class Clause:
    """
    Disjunction of literals over distinct variables.

    Literals are stored as ``variable -> polarity`` in insertion order.
    Inserting a literal whose variable is already present with the opposite
    polarity removes the existing one, so both vanish.
    """
    __slots__ = ('_lits',)

    def __init__(self, literals: Iterable[Literal] = ()):
        self._lits: Dict[int, bool] = {}
        for literal in literals:
            self.insert(literal)

    @staticmethod
    def from_ints(values: Iterable[int]) -> 'Clause':
        return Clause(Literal.from_int(v) for v in values)

    def insert(self, literal: Literal) -> None:
        old = self._lits.get(literal.variable)
        if old is None:
            self._lits[literal.variable] = literal.positive
        elif old != literal.positive:
            del self._lits[literal.variable]

    def contains_variable(self, variable: int) -> bool:
        return variable in self._lits

    def polarity_of(self, variable: int) -> Optional[bool]:
        return self._lits.get(variable)

    def without(self, variable: int) -> 'Clause':
        """Return a copy of this clause with ``variable`` removed."""
        clause = Clause()
        clause._lits = {v: p for v, p in self._lits.items() if v != variable}
        return clause

    def first(self) -> Literal:
        variable, positive = next(iter(self._lits.items()))
        return Literal(variable, positive)

    def variables(self) -> Iterable[int]:
        return self._lits.keys()

    def is_unit(self) -> bool:
        return len(self._lits) == 1

    def is_empty(self) -> bool:
        return not self._lits

    def __len__(self) -> int:
        return len(self._lits)

    def __iter__(self) -> Iterator[Literal]:
        for variable, positive in self._lits.items():
            yield Literal(variable, positive)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Clause):
            return NotImplemented
        return self._lits == other._lits

    def __ne__(self, other) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self) -> int:
        return hash(frozenset(self._lits.items()))

    def __str__(self) -> str:
        return "{" + ", ".join(str(lit) for lit in self) + "}"

    def __repr__(self) -> str:
        return f"Clause({self})"


class Formula:
    """
    One node of the assignment tree.

    ``parent`` is None and ``literal`` is None for the root. ``depth`` counts
    the literals fixed on the path from the root.
    """
    __slots__ = ('_clauses', 'parent', 'literal', 'depth', '_unit', '_contradiction')

    def __init__(self, clauses: Sequence[Clause], parent: Optional['Formula'] = None,
                 literal: Optional[Literal] = None):
        self._clauses = tuple(clauses)
        self.parent = parent
        self.literal = literal
        self.depth = 0 if parent is None else parent.depth + 1

        self._unit = None
        self._contradiction = False
        for clause in self._clauses:
            size = len(clause)
            if size == 0:
                self._contradiction = True
                break
            if size == 1 and self._unit is None:
                self._unit = clause

    @classmethod
    def from_clauses(cls, clauses: Iterable[Union[Clause, Iterable[int]]]) -> 'Formula':
        """
        Build a root formula from clauses or lists of signed ints.

        Equal clauses collapse to the first occurrence. An int list whose
        literals all cancel out (``[2, -2]``) is dropped; an explicitly empty
        list stays as a contradiction.
        """
        built = []
        for clause in clauses:
            if not isinstance(clause, Clause):
                values = list(clause)
                clause = Clause.from_ints(values)
                if values and clause.is_empty():
                    continue
            built.append(clause)
        return cls(list(dict.fromkeys(built)))

    @property
    def satisfied(self) -> bool:
        return not self._clauses

    @property
    def contradiction(self) -> bool:
        return self._contradiction

    def unit_clause(self) -> Optional[Clause]:
        """First clause of exactly one literal, if any."""
        return self._unit

    def child(self, literal: Literal) -> 'Formula':
        """
        Return the node reached by making ``literal`` true.

        Clauses containing the literal are dropped, clauses containing its
        negation lose that literal, everything else is shared as-is. Building
        stops at the first emptied clause.
        """
        variable = literal.variable
        clauses = []
        for clause in self._clauses:
            polarity = clause.polarity_of(variable)
            if polarity is None:
                clauses.append(clause)
            elif polarity != literal.positive:
                reduced = clause.without(variable)
                clauses.append(reduced)
                if reduced.is_empty():
                    break
        return Formula(clauses, self, literal)

    def variables(self) -> List[int]:
        """Variables still occurring, in order of first appearance."""
        seen = {}
        for clause in self._clauses:
            for variable in clause.variables():
                seen.setdefault(variable, None)
        return list(seen)

    def root(self) -> 'Formula':
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def assignments(self) -> List[Literal]:
        """Literals fixed on the path from the root to this node, root first."""
        path = []
        node = self
        while node.parent is not None:
            path.append(node.literal)
            node = node.parent
        path.reverse()
        return path

    def assignment_map(self) -> Dict[int, bool]:
        mapping = {}
        for literal in self.assignments():
            if literal.variable in mapping:
                raise ValueError(f"Variable {literal.variable} is assigned twice on one path.")
            mapping[literal.variable] = literal.positive
        return mapping

    def __len__(self) -> int:
        return len(self._clauses)

    def __iter__(self) -> Iterator[Clause]:
        return iter(self._clauses)

    def __str__(self) -> str:
        return "{" + ", ".join(str(c) for c in self._clauses) + "}"

    def __repr__(self) -> str:
        return f"Formula(depth={self.depth}, clauses={len(self._clauses)})"
