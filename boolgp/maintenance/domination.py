from itertools import permutations

import numpy as np

from boolgp.evaluation import evaluate_individual
from boolgp.maintenance.base import (
    Maintenance,
    aggregate_tournament,
    aggregate_negative_tournament,
    protected_candidates,
    replace_population,
)


def weakly_dominates(a, b, parsimonious: bool = False) -> bool:
    """True if `a` passes every case `b` passes.

    With parsimony, identical outcome vectors additionally need `a` to be no larger than `b`.
    """
    if np.any(b.tests_passed & ~a.tests_passed):
        return False
    if parsimonious and np.array_equal(a.tests_passed, b.tests_passed):
        return a.size() <= b.size()
    return True


class DominationMaintenance(Maintenance):
    """Keeps an estimate of the Pareto front over the per-case outcomes.

    Every tracked key is either in `nondominated` or in `dominated`. Negative tournaments only
    draw dominated individuals until the front alone fills the population, after which they fall
    back to the aggregate tournament over everyone.
    """

    def __init__(self, problem, parameters, rng):
        super().__init__(problem, parameters, rng)
        self.nondominated = {}
        self.dominated = {}

    def evaluate_fitness(self, population, key):
        individual = population[key]
        failed = evaluate_individual(self.problem, individual)
        self.fittest.update(key, individual)
        self._update_front(key, individual)
        return failed

    def _update_front(self, key, individual):
        assert key not in self.nondominated and key not in self.dominated, f"Key {key} is already tracked"
        if any(weakly_dominates(member, individual, self.parsimonious) for member in self.nondominated.values()):
            self.dominated[key] = individual
            return

        evicted = [k for k, member in self.nondominated.items() if weakly_dominates(individual, member, self.parsimonious)]
        for k in evicted:
            self.dominated[k] = self.nondominated.pop(k)
        self.nondominated[key] = individual

    def negative_tournament_key(self, population):
        if len(self.nondominated) >= self.parameters.population_size:
            candidates = protected_candidates(population.keys(), {self.fittest.key})
        else:
            candidates = protected_candidates(self.dominated.keys(), {self.fittest.key})
            if len(candidates) == 0:
                candidates = protected_candidates(population.keys(), {self.fittest.key})

        victim = aggregate_negative_tournament(
            population, candidates, self.rng, self.parameters.tournament_size, self.parsimonious
        )
        self.nondominated.pop(victim, None)
        self.dominated.pop(victim, None)
        self.fittest.release(victim, population)
        return victim

    def generate_next_search_population(self, population, children):
        combined = self._union(population, children)
        n = len(population)

        if len(self.nondominated) <= n:
            survivors = dict(self.nondominated)
            pool = list(self.dominated)
            fillers = {}
            while len(survivors) < n:
                key = aggregate_tournament(combined, pool, self.rng, self.parameters.tournament_size, self.parsimonious)
                pool.remove(key)
                survivors[key] = fillers[key] = combined[key]
            self.dominated = fillers
        else:
            self.dominated = {}
            while len(self.nondominated) > n:
                candidates = protected_candidates(self.nondominated.keys(), {self.fittest.key})
                victim = aggregate_negative_tournament(
                    combined, candidates, self.rng, self.parameters.tournament_size, self.parsimonious
                )
                del self.nondominated[victim]
            survivors = dict(self.nondominated)

        mapping = replace_population(population, survivors)
        self.nondominated = {mapping[k]: individual for k, individual in self.nondominated.items()}
        self.dominated = {mapping[k]: individual for k, individual in self.dominated.items()}
        self.fittest.rescan(population)
        assert self.is_consistent(population), "Maintained sets do not match the population after truncation"

    def is_consistent(self, population: dict) -> bool:
        """Checks the partition of `population` and the mutual non-domination of the front."""
        front = set(self.nondominated)
        rest = set(self.dominated)
        if front & rest or front | rest != set(population):
            return False
        for key in front | rest:
            tracked = self.nondominated.get(key, self.dominated.get(key))
            if tracked is not population[key]:
                return False
        for a, b in permutations(self.nondominated.values(), 2):
            if weakly_dominates(a, b, self.parsimonious):
                return False
        return True

    def tracked_set_size(self):
        return len(self.nondominated)
