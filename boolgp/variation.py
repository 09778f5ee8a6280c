import numpy as np
import numba as nb

from boolgp.evaluation import subtree_end


@nb.jit(nopython=True, nogil=True, cache=True)
def splice(program, used_length, start, end, segment):
    """Replaces `program[start:end]` with `segment` in place and returns the new used length."""
    diff = segment.shape[0] - (end - start)
    if diff < 0:
        for i in range(segment.shape[0]):
            program[start + i] = segment[i]
        # shift the trailing nodes down, front to back
        for i in range(end, used_length):
            program[i + diff] = program[i]
    elif diff > 0:
        # shift the trailing nodes up, back to front, before the segment overwrites them
        for i in range(used_length - 1, end - 1, -1):
            program[i + diff] = program[i]
        for i in range(segment.shape[0]):
            program[start + i] = segment[i]
    else:
        for i in range(segment.shape[0]):
            program[start + i] = segment[i]
    return used_length + diff


def mutate(program: np.ndarray, used_length: int, node_set, probability: float, rng, local: bool = False) -> int:
    """Point mutation of each node with `probability`, always changing at least one node.

    Returns the number of mutated nodes.
    """
    chosen = np.flatnonzero(rng.random(used_length) < probability)
    if chosen.size == 0:
        chosen = np.array([rng.integers(used_length)])

    for j in chosen:
        code = int(program[j])
        if not node_set.is_operator(code):
            program[j] = node_set.other_terminal(code, rng)
        elif local:
            program[j] = node_set.nearby_operator(code, rng)
        else:
            program[j] = node_set.other_operator(code, rng)
    return int(chosen.size)


def crossover(program: np.ndarray, used_length: int, donor: np.ndarray, donor_length: int, num_terminals: int, rng):
    """Subtree crossover: a random subtree of `program` is replaced by a random subtree of `donor`.

    Cut points are resampled until the child fits into the capacity of `program`.
    Returns the new used length and the cut points `(start, end, donor_start, donor_end)`.
    """
    max_length = program.shape[0]
    while True:
        start = int(rng.integers(used_length))
        end = subtree_end(program[:used_length], start, num_terminals)
        donor_start = int(rng.integers(donor_length))
        donor_end = subtree_end(donor[:donor_length], donor_start, num_terminals)
        assert end > start and donor_end > donor_start, "Crossover on a malformed program"

        # child length is original length + length of added tree - length of removed tree
        child_length = used_length + (donor_end - donor_start) - (end - start)
        if child_length <= max_length:
            break

    # copied, so crossing a program with itself cannot read shifted nodes
    segment = donor[donor_start:donor_end].copy()
    new_length = splice(program, used_length, start, end, segment)
    assert new_length == child_length, f"Splice produced {new_length} nodes, expected {child_length}"
    return new_length, (start, end, donor_start, donor_end)
