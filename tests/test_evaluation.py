import numpy as np
import pytest
import sympy as sym

from boolgp.evaluation import evaluate_individual, is_well_formed, subtree_end, to_sympy
from boolgp.solution import ProgramTree
from conftest import AND, MUX_SOLVER


class TestStructure:

    def test_subtree_end_runs_off(self):
        """A truncated program has no subtree end."""
        program = np.array([AND, 0], dtype=np.int32)
        assert subtree_end(program, 0, 3) == -1

    def test_well_formed(self):
        """Only a single complete tree is well formed."""
        program = np.zeros(10, dtype=np.int32)
        program[:3] = [AND, 0, 1]
        assert is_well_formed(program, 3, 3, 19)
        assert not is_well_formed(program, 2, 3, 19)
        assert not is_well_formed(program, 0, 3, 19)
        assert not is_well_formed(program, 11, 3, 19)

    def test_out_of_range_codes(self):
        """Unknown node codes are not well formed."""
        program = np.array([AND, 0, 19], dtype=np.int32)
        assert not is_well_formed(program, 3, 3, 19)
        program = np.array([AND, -1, 0], dtype=np.int32)
        assert not is_well_formed(program, 3, 3, 19)


class TestFitness:

    def test_single_terminal(self, make_tree, mux2):
        """A lone terminal fails where its variable differs from the target."""
        tree = make_tree([1])
        assert evaluate_individual(mux2, tree) == 2
        assert tree.sum_of_tests_failed == 2
        assert tree.tests_passed.tolist() == [True, True, True, True, True, False, False, True]

    def test_solver(self, make_tree, mux2):
        """The multiplexer solver passes every case."""
        tree = make_tree(MUX_SOLVER)
        assert evaluate_individual(mux2, tree) == 0
        assert tree.tests_passed.all()

    def test_reevaluation_overwrites_cache(self, make_tree, mux2):
        """Evaluating again replaces the cached outcomes."""
        tree = make_tree([0])
        assert evaluate_individual(mux2, tree) == 2
        tree.program[0] = 1
        assert evaluate_individual(mux2, tree) == 2
        assert not tree.tests_passed[5]


class TestSympy:

    @pytest.mark.parametrize("gate", range(16))
    def test_gate_expression_matches_truth_table(self, node_set, gate):
        """Each gate's expression agrees with its truth table."""
        code = node_set.num_terminals + gate
        tree = ProgramTree.from_nodes(node_set, [code, 0, 1])
        expression = sym.sympify(tree.to_expression(), convert_xor=False)
        x0, x1 = sym.symbols("x0 x1")
        for a in (False, True):
            for b in (False, True):
                value = bool(expression.subs({x0: a, x1: b}))
                assert value == node_set.evaluate_operator(code, a, b)
                assert value == tree.evaluate([a, b, False])

    def test_random_expression_matches_kernel(self, node_set, mux2, rng):
        """Expressions of random trees agree with the kernel."""
        symbols = sym.symbols("x0 x1 x2")
        for _ in range(20):
            tree = ProgramTree.random(node_set, 60, 4, rng)
            expression = sym.sympify(tree.to_expression(), convert_xor=False)
            outputs = tree.evaluate_all(mux2.inputs)
            for row, output in zip(mux2.inputs, outputs):
                value = expression.subs({s: bool(v) for s, v in zip(symbols, row)})
                assert bool(value) == output

    def test_to_sympy_on_raw_arrays(self):
        """Expressions can be built from plain node arrays."""
        program = np.array([AND, 2, 0, 0, 0], dtype=np.int32)
        assert to_sympy(program, 3, 3) == "(x2 & x0)"
