import numpy as np
import pytest

from boolgp.nodes import NodeSet
from boolgp.problems import Problem, two_to_one_multiplexer
from boolgp.solution import ProgramTree

# node codes for three terminals
AND = 3 + 8
OR = 3 + 14
FALSE = 3 + 0
NOT_A_AND_B = 3 + 2

# (x2 & x0) | (~x2 & x1), solves the 2-to-1 multiplexer
MUX_SOLVER = [OR, AND, 2, 0, NOT_A_AND_B, 2, 1]


@pytest.fixture
def rng():
    return np.random.Generator(np.random.Philox(seed=1234))


@pytest.fixture
def mux2():
    return two_to_one_multiplexer()


@pytest.fixture
def node_set():
    return NodeSet(3)


@pytest.fixture
def make_tree(node_set):
    """Factory for trees over three terminals with room to grow."""
    def make(nodes, max_length=64):
        return ProgramTree.from_nodes(node_set, nodes, max_length=max_length)
    return make


@pytest.fixture
def sharing_problem():
    """Three cases, all targets true: case 0 is passed by every single-variable tree."""
    inputs = [
        [True, True, True],
        [True, False, False],
        [False, True, True],
    ]
    return Problem("sharing", inputs, [True, True, True])
