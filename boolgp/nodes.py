import numpy as np

GATES = [
    # (name, sympy format string) for gate g, whose output for inputs (a, b) is bit 2*a + b of g
    ("FALSE", "false"),
    ("NOR", "~({0} | {1})"),
    ("NOT_A_AND_B", "(~{0} & {1})"),
    ("NOT_A", "(~{0})"),
    ("A_AND_NOT_B", "({0} & ~{1})"),
    ("NOT_B", "(~{1})"),
    ("XOR", "({0} ^ {1})"),
    ("NAND", "~({0} & {1})"),
    ("AND", "({0} & {1})"),
    ("XNOR", "~({0} ^ {1})"),
    ("B", "{1}"),
    ("A_IMPLIES_B", "(~{0} | {1})"),
    ("A", "{0}"),
    ("B_IMPLIES_A", "({0} | ~{1})"),
    ("OR", "({0} | {1})"),
    ("TRUE", "true"),
]

GATE_INDEX = {name: g for g, (name, _) in enumerate(GATES)}


class NodeSet:
    """Terminal and operator alphabet.

    Codes below `num_terminals` refer to input variables, codes from `num_terminals` on refer
    to one of the 16 two-input gates. Truth tables and Hamming neighbours are built once here.
    """

    num_operators = len(GATES)

    def __init__(self, num_terminals: int):
        if num_terminals < 2:
            raise ValueError(f"At least two terminals are required, got {num_terminals}")
        self.num_terminals = num_terminals

        patterns = np.arange(4)
        gates = np.arange(self.num_operators)[:, None]
        self.truth_tables = ((gates >> patterns[None, :]) & 1).astype(np.bool_)
        self.truth_tables.setflags(write=False)

        self.neighbours = np.array([
            sorted(g ^ (1 << bit) for bit in range(4)) for g in range(self.num_operators)
        ], dtype=np.int32)

    @property
    def num_nodes(self) -> int:
        return self.num_terminals + self.num_operators

    def is_operator(self, code: int) -> bool:
        return code >= self.num_terminals

    def operator(self, name: str) -> int:
        """Node code of the gate called `name`."""
        return self.num_terminals + GATE_INDEX[name]

    def random_terminal(self, rng) -> int:
        return int(rng.integers(self.num_terminals))

    def random_operator(self, rng) -> int:
        return self.num_terminals + int(rng.integers(self.num_operators))

    def evaluate_operator(self, code: int, left: bool, right: bool) -> bool:
        return bool(self.truth_tables[code - self.num_terminals, 2 * bool(left) + bool(right)])

    def nearby_operator(self, code: int, rng) -> int:
        """A uniformly chosen gate whose truth table differs from `code`'s in exactly one row."""
        if not self.is_operator(code):
            raise ValueError(f"{code} is not an operator code")
        close = self.neighbours[code - self.num_terminals]
        return self.num_terminals + int(close[rng.integers(len(close))])

    def other_operator(self, code: int, rng) -> int:
        if not self.is_operator(code):
            raise ValueError(f"{code} is not an operator code")
        gate = int(rng.integers(self.num_operators - 1))
        if gate >= code - self.num_terminals:
            gate += 1
        return self.num_terminals + gate

    def other_terminal(self, code: int, rng) -> int:
        if self.is_operator(code):
            raise ValueError(f"{code} is not a terminal code")
        terminal = int(rng.integers(self.num_terminals - 1))
        if terminal >= code:
            terminal += 1
        return terminal
