import numpy as np
import numba as nb
import sympy as sym

from boolgp.nodes import GATES


@nb.jit(nopython=True, nogil=True, cache=True)
def subtree_end(program, start, num_terminals):
    """Returns the index just past the subtree rooted at `start`, or -1 if the array ends first."""
    # every operator opens two more slots, every terminal fills one
    open_slots = 1
    j = start
    while open_slots > 0:
        if j >= program.shape[0]:
            return -1
        if program[j] >= num_terminals:
            open_slots += 1
        else:
            open_slots -= 1
        j += 1
    return j


@nb.jit(nopython=True, nogil=True, cache=True)
def is_well_formed(program, used_length, num_terminals, num_nodes):
    if used_length < 1 or used_length > program.shape[0]:
        return False
    for j in range(used_length):
        if program[j] < 0 or program[j] >= num_nodes:
            return False
    return subtree_end(program[:used_length], 0, num_terminals) == used_length


@nb.jit(nopython=True, nogil=True, cache=True)
def evaluate_cases(program, used_length, num_terminals, truth_tables, inputs):
    """Computes the program output for every row of `inputs`.

    The preorder array is walked from right to left with a value stack, so an operator finds
    its left operand on top of the stack and its right operand just below it.
    """
    outputs = np.empty(inputs.shape[0], dtype=np.bool_)
    stack = np.empty(used_length, dtype=np.bool_)
    for i in range(inputs.shape[0]):
        top = 0
        for j in range(used_length - 1, -1, -1):
            node = program[j]
            if node < num_terminals:
                stack[top] = inputs[i, node]
                top += 1
            else:
                top -= 1
                pattern = (2 if stack[top] else 0) + (1 if stack[top - 1] else 0)
                stack[top - 1] = truth_tables[node - num_terminals, pattern]
        outputs[i] = stack[0]
    return outputs


def evaluate_individual(problem, individual) -> int:
    """Runs `individual` on every fitness case of `problem`, caches the results and returns the failure count."""
    outputs = individual.evaluate_all(problem.inputs)
    individual.set_tests_passed(outputs == problem.targets)
    return individual.sum_of_tests_failed


def to_sympy(program: np.ndarray, used_length: int, num_terminals: int, simplify: bool = False) -> str:
    """Returns a `sympy` compatible Boolean expression for the encoded program.

    Parameters:
    ----------
    program: np.ndarray
        The flat preorder encoding
    used_length: int
        Number of meaningful nodes at the start of `program`
    num_terminals: int
        Codes below this value are input variables `x0, x1, ...`
    simplify: bool
        If `True`, `sympy.simplify_logic` is used to simplify the expression
    """
    # same right to left stack walk as the kernel, but with strings
    stack = []
    for j in range(used_length - 1, -1, -1):
        node = int(program[j])
        if node < num_terminals:
            stack.append(f"x{node}")
        else:
            left = stack.pop()
            right = stack.pop()
            stack.append(GATES[node - num_terminals][1].format(left, right))
    assert len(stack) == 1, "Program is not a single well formed tree"

    if not simplify:
        return stack[0]

    e = sym.sympify(stack[0], convert_xor=False)
    return str(sym.simplify_logic(e))
