# *************************************************************************
# Copyright (c) 2025 Zewei Zhang
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Factorisation problems: multiplier-circuit CNFs and their solutions.

A problem file is DIMACS-like text. Besides the clause lines it must carry
three comment annotations naming the bit-position variables of the circuit,
most significant bit first:

    c Variables for output [msb,...,lsb]: [14, 13, 12, 11]
    c Variables for first input [msb,...,lsb]: [2, 1]
    c Variables for second input [msb,...,lsb]: [4, 3]

A solution file is either ``SAT`` followed by the model as signed integers
(``SAT\\n1 -2 3 0``), or anything else for "no solution recorded".
"""
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from py_factsat.formula import Clause, Formula, Literal

logger = logging.getLogger(__name__)

ANNOTATION_FORMAT = r"^c\s+[a-zA-Z ]+{0}[^:]*:\s*\[(?P<locations>[0-9, ]+)\]\s*$"
ANNOTATION_TAGS = ('output', 'first input', 'second input')
SOLUTION_LITERAL_RE = re.compile(r"-?[1-9][0-9]*")


class FactSatError(Exception):
    """Base class for errors about a single problem or solution input."""


class CnfFormatError(FactSatError, ValueError):
    def __init__(self, message: str, source: Optional[str] = None,
                 line_no: Optional[int] = None, line: Optional[str] = None):
        self.source = source
        self.line_no = line_no
        self.line = line
        location = source or '<string>'
        if line_no is not None:
            location = f"{location}:{line_no}"
        text = f"{location}: {message}"
        if line is not None:
            text = f"{text} ({line!r})"
        super().__init__(text)


class SolutionFormatError(FactSatError, ValueError):
    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        super().__init__(f"{source or '<string>'}: {message}")


class MissingAssignmentError(FactSatError, KeyError):
    """A bit-position variable has no value in the assignment."""

    def __init__(self, variable: int):
        self.variable = variable
        super().__init__(f"variable {variable} has no value in the assignment")

    def __str__(self) -> str:
        return self.args[0]


def int_from_bits(assignment: Dict[int, bool], variables: Iterable[int]) -> int:
    """
    Read an unsigned integer out of an assignment.

    Args:
        assignment: Variable -> truth value.
        variables: Bit-position variables, most significant first.

    Returns:
        The integer whose binary digits are the variables' values.
    """
    num = 0
    for variable in variables:
        try:
            bit = assignment[variable]
        except KeyError:
            raise MissingAssignmentError(variable) from None
        num = (num << 1) | (1 if bit else 0)
    return num


def parse_clause_line(line: str, source: Optional[str] = None,
                      line_no: Optional[int] = None) -> Clause:
    """
    Parse one clause line such as ``"1 -2 0"``.

    Literals go through ``Clause.insert``, so a repeated literal is kept once
    and a complementary pair cancels out.
    """
    tokens = line.split()
    if not tokens or tokens[-1] != '0':
        raise CnfFormatError("clause line must end with 0", source, line_no, line)

    clause = Clause()
    for token in tokens[:-1]:
        try:
            literal = Literal.from_token(token)
        except ValueError:
            raise CnfFormatError(f"invalid literal '{token}'", source, line_no, line) from None
        clause.insert(literal)
    return clause


def _parse_locations(text: str, tag: str, source: Optional[str]) -> List[int]:
    try:
        locations = [int(x.strip()) for x in text.split(',')]
    except ValueError:
        raise CnfFormatError(f"malformed variable list for {tag}: [{text}]", source) from None
    if any(v <= 0 for v in locations):
        raise CnfFormatError(f"variable ids for {tag} must be positive", source)
    return locations


def parse_problem_string(text: str, source: Optional[str] = None) -> Tuple[List[Clause], Dict[str, List[int]]]:
    """
    Split problem text into clauses and bit annotations.

    Args:
        text: Whole problem file content.
        source: Name used in error messages.

    Returns:
        (clauses, {tag: variables}) with one entry per tag in ANNOTATION_TAGS.
    """
    annotation_regexes = {tag: re.compile(ANNOTATION_FORMAT.format(tag)) for tag in ANNOTATION_TAGS}
    annotations: Dict[str, List[int]] = {}
    clauses: List[Clause] = []

    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith('p'):
            continue

        if line.startswith('c'):
            for tag, regex in annotation_regexes.items():
                if tag in annotations:
                    continue
                match = regex.match(line)
                if match:
                    annotations[tag] = _parse_locations(match.group('locations'), tag, source)
            continue

        clause = parse_clause_line(line, source, line_no)
        if clause.is_empty():
            logger.warning("%s:%d: clause cancelled to nothing and was dropped: %s",
                           source or '<string>', line_no, line)
            continue
        if len(clause) < len({abs(int(t)) for t in line.split()[:-1]}):
            logger.warning("%s:%d: complementary literals cancelled in clause: %s",
                           source or '<string>', line_no, line)
        clauses.append(clause)

    for tag in ANNOTATION_TAGS:
        if tag not in annotations:
            raise CnfFormatError(f"missing '{tag}' annotation", source)
    return clauses, annotations


def parse_solution_string(text: str, source: Optional[str] = None) -> Optional[Dict[int, bool]]:
    """
    Parse a solution file.

    Returns:
        Variable -> value for a ``SAT`` solution, otherwise None.
    """
    if not text.startswith("SAT"):
        return None

    solution: Dict[int, bool] = {}
    for match in SOLUTION_LITERAL_RE.finditer(text):
        assign = int(match.group())
        variable, value = abs(assign), assign > 0
        if solution.get(variable, value) != value:
            raise SolutionFormatError(f"variable {variable} is assigned both ways", source)
        solution[variable] = value
    return solution


def solution_to_string(assignment: Optional[Dict[int, bool]]) -> str:
    """Inverse of ``parse_solution_string``; None writes an UNSAT record."""
    if assignment is None:
        return "UNSAT\n"
    model = [str(v if assignment[v] else -v) for v in sorted(assignment)]
    model.append("0")
    return "SAT\n" + " ".join(model) + "\n"


class Factorisation:
    """
    A multiplier-circuit instance: the root formula plus its bit layout.

    Attributes:
        root_formula: Formula built from the problem's clauses.
        output_bits, input1_bits, input2_bits: Bit-position variables, MSB first.
        solution: Last assignment read with ``read_solution_string``, or None.
    """

    def __init__(self, root_formula: Formula, output_bits: List[int],
                 input1_bits: List[int], input2_bits: List[int], source: Optional[str] = None):
        self.root_formula = root_formula
        self.output_bits = output_bits
        self.input1_bits = input1_bits
        self.input2_bits = input2_bits
        self.source = source
        self.solution: Optional[Dict[int, bool]] = None

    @classmethod
    def from_problem_string(cls, text: str, source: Optional[str] = None) -> 'Factorisation':
        clauses, annotations = parse_problem_string(text, source)
        logger.info("Parsed %s: %d clauses", source or '<string>', len(clauses))
        return cls(Formula.from_clauses(clauses),
                   annotations['output'],
                   annotations['first input'],
                   annotations['second input'],
                   source)

    @classmethod
    def from_file(cls, path) -> 'Factorisation':
        path = Path(path)
        return cls.from_problem_string(path.read_text(encoding='utf-8'), str(path))

    def read_solution_string(self, text: str, source: Optional[str] = None) -> Optional[Dict[int, bool]]:
        self.solution = parse_solution_string(text, source)
        return self.solution

    def read_solution_file(self, path) -> Optional[Dict[int, bool]]:
        path = Path(path)
        return self.read_solution_string(path.read_text(encoding='utf-8'), str(path))

    def variables(self) -> List[int]:
        return self.root_formula.variables()

    def complete_assignment(self, assignment: Dict[int, bool]) -> Dict[int, bool]:
        """
        Give every root variable a value.

        Variables missing from a search path only occur in clauses that were
        already satisfied, so they are set to False.
        """
        completed = dict(assignment)
        for variable in self.variables():
            completed.setdefault(variable, False)
        return completed

    def verify(self, assignment: Dict[int, bool]) -> bool:
        """Check that every root clause has a true literal."""
        for clause in self.root_formula:
            if not any(assignment.get(lit.variable) == lit.positive for lit in clause):
                return False
        return True

    def factors(self, assignment: Optional[Dict[int, bool]] = None) -> Tuple[int, int, int]:
        """Return (first input, second input, output) read from the assignment."""
        if assignment is None:
            assignment = self.solution
        if assignment is None:
            raise ValueError("No assignment to read the factors from.")
        return (int_from_bits(assignment, self.input1_bits),
                int_from_bits(assignment, self.input2_bits),
                int_from_bits(assignment, self.output_bits))
