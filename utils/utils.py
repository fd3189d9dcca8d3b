"""
This file includes some general help functions.
"""
import io
import json
import logging
import os

from pathlib import Path
from typing import Iterable, List
from pysat.formula import CNF


def init_logger(level: str = "WARNING") -> None:
    """Configure root logging; the LOGLEVEL environment variable wins over ``level``."""
    logging.basicConfig(format='%(levelname)s: %(message)s', level=os.environ.get("LOGLEVEL", level))


def get_cnf_files(folder_path: str) -> List[str]:
    """Returns a sorted list of .cnf files in the specified folder."""
    return sorted(
        os.path.join(folder_path, f)
        for f in os.listdir(folder_path)
        if f.endswith('.cnf')
    )


def collect_problem_files(paths: Iterable[str]) -> List[Path]:
    """
    Expand command-line arguments into problem files.

    Args:
        paths: Files, or folders whose .cnf files are taken.

    Returns:
        list: Problem paths in argument order, folders expanded in sorted order.
    """
    files = []
    for p in paths:
        if os.path.isdir(p):
            files.extend(Path(f) for f in get_cnf_files(p))
        else:
            files.append(Path(p))
    return files


def save_dicts_to_json(results: list, output_filename: str) -> None:
    """
    Saves the results to a JSON file.

    Args:
        results (list): The results to save.
        output_filename (str): The filename for the output JSON file.
    """
    with open(output_filename, 'w') as json_file:
        json.dump(results, json_file, indent=4)


def write_temp_cnf_file(cnf_formula: CNF, filename: str = './temp_problem.cnf') -> None:
    cnf_formula.to_file(filename)


def cnf_to_string(cnf_formula: CNF) -> str:
    """DIMACS text of a CNF object, its comments first."""
    buffer = io.StringIO()
    cnf_formula.to_fp(buffer)
    return buffer.getvalue()
