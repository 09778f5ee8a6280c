import numpy as np


class TreeTooLongError(ValueError):
    """Raised when random growth would need more nodes than the program array holds."""


def grow(program: np.ndarray, node_set, max_depth: int, rng) -> int:
    """Grow initialisation written straight into the preorder array, returns the number of nodes used.

    The root is always an operator (unless the depth or length limits leave room for a single
    terminal only), below `max_depth` each node is a terminal or an operator with equal chance,
    and at `max_depth` only terminals are placed.
    """
    max_length = program.shape[0]

    def grow_prefix(position, depth):
        if position >= max_length:
            raise TreeTooLongError(f"Growing beyond {max_length} nodes")
        if depth >= max_depth:
            operator = False
        elif position == 0:
            operator = max_length >= 3
        else:
            operator = rng.random() < 0.5  # 50% chance of getting a terminal

        if not operator:
            program[position] = node_set.random_terminal(rng)
            return position + 1
        program[position] = node_set.random_operator(rng)
        after_left = grow_prefix(position + 1, depth + 1)
        return grow_prefix(after_left, depth + 1)

    return grow_prefix(0, 0)


def random_program(node_set, max_length: int, max_depth: int, rng) -> tuple[np.ndarray, int]:
    """Grows fresh random programs until one fits into `max_length` nodes."""
    program = np.zeros(max_length, dtype=np.int32)
    while True:
        try:
            return program, grow(program, node_set, max_depth, rng)
        except TreeTooLongError:
            continue
