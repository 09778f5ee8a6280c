import numpy as np

from boolgp.evaluation import evaluate_individual
from boolgp.maintenance.base import (
    Maintenance,
    aggregate_tournament,
    aggregate_negative_tournament,
    protected_candidates,
    replace_population,
)
from boolgp.maintenance.sharing import SolvedCounts


class LexicaseMaintenance(Maintenance):
    """Lexicase selection for breeding, replacement and generational survival.

    Fitness cases are applied in a fresh random order as a chain of filters. A filter that would
    leave no candidate is skipped. Remaining ties go to a small aggregate tournament.
    """

    def __init__(self, problem, parameters, rng):
        super().__init__(problem, parameters, rng)
        self.counts = SolvedCounts(problem.fitness_cases)

    def evaluate_fitness(self, population, key):
        individual = population[key]
        failed = evaluate_individual(self.problem, individual)
        self.counts.add(individual)
        self.fittest.update(key, individual)
        return failed

    def lexicase(self, population: dict, candidates: list, passing: bool = True) -> int:
        """Filters `candidates` down by passing (or, for replacement, failing) the shuffled cases."""
        pool = np.asarray(candidates)
        outcomes = np.array([population[key].tests_passed for key in candidates], dtype=np.bool_)
        if not passing:
            outcomes = ~outcomes

        remaining = np.ones(len(pool), dtype=np.bool_)
        # a case every tracked individual passes cannot separate the candidates
        informative = self.counts.unsolved_cases()
        for case in self.rng.permutation(self.problem.fitness_cases):
            if np.count_nonzero(remaining) == 1:
                break
            if not informative[case]:
                continue
            reduced = remaining & outcomes[:, case]
            if reduced.any():
                remaining = reduced

        keys = [int(key) for key in pool[remaining]]
        if passing:
            return aggregate_tournament(population, keys, self.rng, self.parameters.tournament_size, self.parsimonious)
        return aggregate_negative_tournament(population, keys, self.rng, self.parameters.tournament_size, self.parsimonious)

    def tournament_key(self, population, exclude=None):
        candidates = [key for key in population if key != exclude]
        return self.lexicase(population, candidates, passing=True)

    def negative_tournament_key(self, population):
        candidates = protected_candidates(population.keys(), {self.fittest.key})
        victim = self.lexicase(population, candidates, passing=False)
        self.counts.remove(population[victim])
        self.fittest.release(victim, population)
        return victim

    def generate_next_search_population(self, population, children):
        combined = self._union(population, children)
        n = len(population)
        survivors = {}
        while len(survivors) < n:
            candidates = [key for key in combined if key not in survivors]
            key = self.lexicase(combined, candidates, passing=True)
            survivors[key] = combined[key]

        replace_population(population, survivors)
        self.counts.rebuild(population.values())
        self.fittest.rescan(population)
        assert len(population) == n
