"""
Generate multiplier-circuit CNFs whose models are factorisations of a product.

The circuit multiplies an n-bit and an m-bit unsigned input (AND partial
products summed column by column with half and full adders), and unit clauses
pin its n+m output bits to the target product. The comment header names the
bit-position variables the solver reads the factors from.

Example:
    # 6 and 15 as 2x2 and 3x3 bit products
    python ./generate_dataset/gen_multiplier_cnf.py --first-bits 2 --second-bits 2 \
        --products 6 --out-dir ./dataset/mult/

    # 20 random targets for a 4x4 multiplier, factor 1 excluded
    python ./generate_dataset/gen_multiplier_cnf.py --first-bits 4 --second-bits 4 \
        --count 20 --nontrivial --out-dir ./dataset/mult/
"""
import argparse
from pathlib import Path
from typing import List, Tuple

import numpy as np
from tqdm import tqdm
from pysat.formula import CNF

from utils.utils import write_temp_cnf_file


class _Circuit:
    """Tseitin encoding helper: every gate output gets a fresh variable."""

    def __init__(self):
        self.cnf = CNF()
        self.nv = 0

    def new_var(self) -> int:
        self.nv += 1
        return self.nv

    def add(self, clause: List[int]) -> None:
        self.cnf.append(clause)

    def and_gate(self, x: int, y: int) -> int:
        c = self.new_var()
        self.add([-c, x])
        self.add([-c, y])
        self.add([c, -x, -y])
        return c

    def xor_gate(self, x: int, y: int) -> int:
        s = self.new_var()
        self.add([-s, x, y])
        self.add([-s, -x, -y])
        self.add([s, -x, y])
        self.add([s, x, -y])
        return s

    def half_adder(self, x: int, y: int) -> Tuple[int, int]:
        return self.xor_gate(x, y), self.and_gate(x, y)

    def full_adder(self, x: int, y: int, z: int) -> Tuple[int, int]:
        s = self.new_var()
        # s is true exactly when an odd number of inputs is true
        self.add([-s, x, y, z])
        self.add([-s, -x, -y, z])
        self.add([-s, -x, y, -z])
        self.add([-s, x, -y, -z])
        self.add([s, -x, y, z])
        self.add([s, x, -y, z])
        self.add([s, x, y, -z])
        self.add([s, -x, -y, -z])

        c = self.new_var()
        # c is the majority of the inputs
        self.add([-c, x, y])
        self.add([-c, x, z])
        self.add([-c, y, z])
        self.add([c, -x, -y])
        self.add([c, -x, -z])
        self.add([c, -y, -z])
        return s, c


def _format_bits(variables: List[int]) -> str:
    return "[" + ", ".join(str(v) for v in variables) + "]"


def build_multiplier_cnf(product: int, first_bits: int, second_bits: int,
                         nontrivial: bool = False) -> CNF:
    """
    Build the CNF of ``a * b == product`` for an n-bit a and an m-bit b.

    Args:
        product: Target product, must fit in first_bits + second_bits bits.
        first_bits: Width n of the first input.
        second_bits: Width m of the second input.
        nontrivial: Forbid 0 and 1 as either factor.

    Returns:
        pysat CNF whose comments carry the output / first input / second
        input annotations (most significant bit first).
    """
    width = first_bits + second_bits
    if first_bits < 1 or second_bits < 1:
        raise ValueError("Both inputs need at least one bit.")
    if product < 0 or product >= (1 << width):
        raise ValueError(f"Product {product} does not fit in {width} output bits.")
    if nontrivial and (first_bits < 2 or second_bits < 2):
        raise ValueError("Excluding the factor 1 needs at least two bits per input.")

    circuit = _Circuit()
    a = [circuit.new_var() for _ in range(first_bits)]   # a[0] is the lsb
    b = [circuit.new_var() for _ in range(second_bits)]

    columns: List[List[int]] = [[] for _ in range(width)]
    for i in range(first_bits):
        for j in range(second_bits):
            columns[i + j].append(circuit.and_gate(a[i], b[j]))

    column_bits = []
    k = 0
    while k < len(columns):
        column = columns[k]
        while len(column) > 1:
            if len(column) >= 3:
                s, carry = circuit.full_adder(column.pop(0), column.pop(0), column.pop(0))
            else:
                s, carry = circuit.half_adder(column.pop(0), column.pop(0))
            column.append(s)
            if k + 1 == len(columns):
                columns.append([])
            columns[k + 1].append(carry)
        column_bits.append(column[0] if column else None)
        k += 1

    output = []
    for k in range(width):
        bit = column_bits[k]
        if bit is None:
            # no partial product or carry reaches this column: constant 0
            bit = circuit.new_var()
            circuit.add([-bit])
        output.append(bit)
        circuit.add([bit] if (product >> k) & 1 else [-bit])

    # carries past the output width are always zero
    for bit in column_bits[width:]:
        if bit is not None:
            circuit.add([-bit])

    if nontrivial:
        circuit.add(a[1:])
        circuit.add(b[1:])

    cnf = circuit.cnf
    cnf.comments = [
        f"c Circuit for product = {product} [binary: {product:0{width}b}]",
        f"c Variables for output [msb,...,lsb]: {_format_bits(output[::-1])}",
        f"c Variables for first input [msb,...,lsb]: {_format_bits(a[::-1])}",
        f"c Variables for second input [msb,...,lsb]: {_format_bits(b[::-1])}",
    ]
    return cnf


def write_multiplier_cnf(out_dir: Path, product: int, first_bits: int, second_bits: int,
                         nontrivial: bool = False) -> Path:
    """Write one instance as ``mult_<n>x<m>_<product>.cnf`` and return its path."""
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"mult_{first_bits}x{second_bits}_{product}.cnf"
    cnf = build_multiplier_cnf(product, first_bits, second_bits, nontrivial)
    write_temp_cnf_file(cnf, filename=str(path))
    return path


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Generate multiplier-circuit factorisation CNFs")

    ap.add_argument("--first-bits", type=int, required=True)
    ap.add_argument("--second-bits", type=int, required=True)

    g = ap.add_mutually_exclusive_group(required=True)
    g.add_argument("--products", type=int, nargs='+',
                   help="Explicit target products")
    g.add_argument("--count", type=int,
                   help="Number of random target products")

    ap.add_argument("--nontrivial", action="store_true",
                    help="Exclude 0 and 1 as factors")
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--out-dir", type=Path, required=True)
    return ap.parse_args()


def main() -> None:
    args = parse_args()

    if args.products is not None:
        products = args.products
    else:
        rng = np.random.default_rng(args.seed)
        high = 1 << (args.first_bits + args.second_bits)
        products = [int(p) for p in rng.integers(2, high, size=args.count)]

    for product in tqdm(products, desc=f"[{args.first_bits}x{args.second_bits}]"):
        write_multiplier_cnf(args.out_dir, product, args.first_bits, args.second_bits,
                             args.nontrivial)


if __name__ == "__main__":
    main()
