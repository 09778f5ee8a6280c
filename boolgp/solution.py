import numpy as np

from boolgp.evaluation import subtree_end, is_well_formed, evaluate_cases, to_sympy
from boolgp.initialisation import random_program
from boolgp import variation


class ProgramTree:
    """A Boolean program stored as a flat preorder array of node codes.

    Only `program[:used_length]` is meaningful; the array capacity is the maximum tree length.
    Ordering compares the cached failure count only, so two different trees with the same
    fitness compare as equal. `==` and hashing stay identity based.
    """

    def __init__(self, node_set, program: np.ndarray, used_length: int):
        self.node_set = node_set
        self.program = program
        self.used_length = used_length
        self.tests_passed = None
        self.sum_of_tests_failed = -1

    @classmethod
    def random(cls, node_set, max_length: int, max_depth: int, rng) -> "ProgramTree":
        """Grows a random tree, retrying with fresh randomness whenever growth overflows `max_length`."""
        program, used_length = random_program(node_set, max_length, max_depth, rng)
        return cls(node_set, program, used_length)

    @classmethod
    def from_nodes(cls, node_set, nodes, max_length: int | None = None) -> "ProgramTree":
        nodes = np.asarray(nodes, dtype=np.int32)
        if max_length is None:
            max_length = len(nodes)
        if len(nodes) > max_length:
            raise ValueError(f"{len(nodes)} nodes do not fit into a maximum length of {max_length}")
        program = np.zeros(max_length, dtype=np.int32)
        program[:len(nodes)] = nodes
        tree = cls(node_set, program, len(nodes))
        if not tree.is_well_formed():
            raise ValueError(f"Nodes {nodes.tolist()} do not encode a single well formed tree")
        return tree

    @property
    def max_length(self) -> int:
        return self.program.shape[0]

    @property
    def nodes(self) -> np.ndarray:
        return self.program[:self.used_length].copy()

    def size(self) -> int:
        return self.used_length

    def __len__(self):
        return self.used_length

    def copy(self) -> "ProgramTree":
        """Clone of the program only, the evaluation cache is not carried over."""
        return ProgramTree(self.node_set, self.program.copy(), self.used_length)

    def clean(self):
        """Drops the program array early; the tree must not be used afterwards."""
        self.program = None

    def subtree_end(self, start: int) -> int:
        return subtree_end(self.program[:self.used_length], start, self.node_set.num_terminals)

    def is_well_formed(self) -> bool:
        """Structural check for tests and debugging, not used while evolving."""
        return bool(is_well_formed(self.program, self.used_length, self.node_set.num_terminals, self.node_set.num_nodes))

    def evaluate(self, input_vector) -> bool:
        """Output of the program for a single input assignment."""
        inputs = np.asarray(input_vector, dtype=np.bool_).reshape(1, -1)
        return bool(self.evaluate_all(inputs)[0])

    def evaluate_all(self, inputs: np.ndarray) -> np.ndarray:
        """Outputs of the program for every row of `inputs`."""
        return evaluate_cases(self.program, self.used_length, self.node_set.num_terminals, self.node_set.truth_tables, inputs)

    def mutate(self, probability: float, rng, local: bool = False) -> int:
        return variation.mutate(self.program, self.used_length, self.node_set, probability, rng, local=local)

    def crossover(self, partner: "ProgramTree", rng) -> tuple[int, int, int, int]:
        """Replaces a random subtree of this tree with a random subtree of `partner`, returns the cut points."""
        self.used_length, cuts = variation.crossover(
            self.program,
            self.used_length,
            partner.program,
            partner.used_length,
            self.node_set.num_terminals,
            rng
        )
        return cuts

    def set_tests_passed(self, tests_passed: np.ndarray):
        self.tests_passed = np.asarray(tests_passed, dtype=np.bool_)
        self.sum_of_tests_failed = int(self.tests_passed.size - np.count_nonzero(self.tests_passed))

    def to_expression(self, simplify: bool = False) -> str:
        return to_sympy(self.program, self.used_length, self.node_set.num_terminals, simplify=simplify)

    def compare(self, other: "ProgramTree") -> int:
        if self.sum_of_tests_failed < other.sum_of_tests_failed:
            return -1
        if self.sum_of_tests_failed == other.sum_of_tests_failed:
            return 0
        return 1

    def __lt__(self, other):
        return self.sum_of_tests_failed < other.sum_of_tests_failed

    def __le__(self, other):
        return self.sum_of_tests_failed <= other.sum_of_tests_failed

    def __gt__(self, other):
        return self.sum_of_tests_failed > other.sum_of_tests_failed

    def __ge__(self, other):
        return self.sum_of_tests_failed >= other.sum_of_tests_failed

    def __repr__(self):
        return f"ProgramTree(size={self.used_length}, failed={self.sum_of_tests_failed})"
