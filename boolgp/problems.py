import re
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class Problem:
    """A Boolean function given as a truth table: one input row and one target per fitness case."""
    name: str
    inputs: np.ndarray
    targets: np.ndarray

    def __post_init__(self):
        inputs = np.array(self.inputs, dtype=np.bool_)
        targets = np.array(self.targets, dtype=np.bool_)
        if inputs.ndim != 2:
            raise ValueError(f"inputs must be a 2D array, got shape {inputs.shape}")
        if targets.ndim != 1:
            raise ValueError(f"targets must be a 1D array, got shape {targets.shape}")
        if inputs.shape[0] != targets.shape[0]:
            raise ValueError(f"{inputs.shape[0]} input rows but {targets.shape[0]} targets")
        inputs.setflags(write=False)
        targets.setflags(write=False)
        object.__setattr__(self, "inputs", inputs)
        object.__setattr__(self, "targets", targets)

    @property
    def variable_number(self) -> int:
        return self.inputs.shape[1]

    @property
    def fitness_cases(self) -> int:
        return self.inputs.shape[0]


def truth_table_inputs(bits: int) -> np.ndarray:
    """All 2**bits input rows in binary counting order, first variable as the most significant bit."""
    if bits < 1:
        raise ValueError(f"Need at least one input bit, got {bits}")
    rows = np.arange(2 ** bits)[:, None]
    shifts = np.arange(bits - 1, -1, -1)[None, :]
    return ((rows >> shifts) & 1).astype(np.bool_)


def two_to_one_multiplexer() -> Problem:
    """The worked 3 variable multiplexer: x2 selects x0 (true) or x1 (false)."""
    inputs = [
        [True, False, False],
        [False, False, False],
        [True, True, False],
        [False, True, False],
        [True, True, True],
        [True, False, True],
        [False, True, True],
        [False, False, True],
    ]
    targets = [False, False, True, True, True, True, False, False]
    return Problem("mux2", inputs, targets)


def multiplexer(address_bits: int) -> Problem:
    """2**address_bits data inputs followed by the address inputs, which pick the data bit to output."""
    if address_bits == 1:
        return two_to_one_multiplexer()
    data_bits = 2 ** address_bits
    inputs = truth_table_inputs(data_bits + address_bits)
    address = np.zeros(inputs.shape[0], dtype=np.int64)
    for column in inputs[:, data_bits:].T:
        address = (address << 1) | column
    targets = inputs[np.arange(inputs.shape[0]), address]
    return Problem(f"mux{data_bits}", inputs, targets)


def even_parity(bits: int) -> Problem:
    inputs = truth_table_inputs(bits)
    targets = inputs.sum(axis=1) % 2 == 0
    return Problem(f"parity{bits}", inputs, targets)


def majority(bits: int) -> Problem:
    inputs = truth_table_inputs(bits)
    ones = inputs.sum(axis=1)
    targets = ones > bits - ones
    return Problem(f"majority{bits}", inputs, targets)


def comparator(bits: int) -> Problem:
    """True where the first half of the inputs equals the second half; odd sizes are rounded up."""
    if bits % 2 == 1:
        bits += 1
    inputs = truth_table_inputs(bits)
    half = bits // 2
    targets = np.all(inputs[:, :half] == inputs[:, half:], axis=1)
    return Problem(f"comparator{bits}", inputs, targets)


def get_problem(problem: str) -> Problem:
    """Returns the problem for names like `mux4`, `parity6`, `majority7` or `comparator8`."""
    match = re.fullmatch(r"([a-z]+)(\d+)", problem.strip().lower())
    if match is None:
        raise ValueError(f"Unknown problem: '{problem}'")
    kind, size = match.group(1), int(match.group(2))

    if kind == "mux":
        address_bits = size.bit_length() - 1
        if size < 2 or 2 ** address_bits != size:
            raise ValueError(f"Multiplexer size must be a power of two, got {size}")
        return multiplexer(address_bits)
    elif kind == "parity":
        return even_parity(size)
    elif kind == "majority":
        return majority(size)
    elif kind == "comparator":
        return comparator(size)
    raise ValueError(f"Unknown problem: '{problem}'")
