import numpy as np

from boolgp.evaluation import evaluate_individual
from boolgp.maintenance.base import Maintenance, draw_keys, protected_candidates, replace_population


class SolvedCounts:
    """Number of tracked individuals passing each fitness case."""

    def __init__(self, fitness_cases: int):
        self.totals = np.zeros(fitness_cases, dtype=np.int64)
        self.size = 0

    def add(self, individual):
        self.totals += individual.tests_passed
        self.size += 1

    def remove(self, individual):
        self.totals -= individual.tests_passed
        self.size -= 1
        assert (self.totals >= 0).all(), "Removed an individual that was not counted"

    def rebuild(self, individuals):
        self.totals[:] = 0
        self.size = 0
        for individual in individuals:
            self.add(individual)

    def shared_fitness(self, individual) -> float:
        """Sum of `1 / totals[c]` over the cases `individual` passes, higher is better."""
        return float(np.sum(1.0 / self.totals[individual.tests_passed]))

    def unsolved_cases(self) -> np.ndarray:
        """Mask of the cases that at least one tracked individual fails."""
        return self.totals < self.size


class FitnessSharingMaintenance(Maintenance):
    """Replaces individuals with a low shared fitness, rewarding the solvers of rare cases.

    Breeding selection uses the plain aggregate tournament.
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

    def shared_fitness(self, individual) -> float:
        return self.counts.shared_fitness(individual)

    def _shared_negative_tournament(self, population, keys):
        drawn = draw_keys(self.rng, keys, self.parameters.tournament_size)
        worst = drawn[0]
        worst_value = self.shared_fitness(population[worst])
        for key in drawn[1:]:
            value = self.shared_fitness(population[key])
            if value < worst_value:
                worst, worst_value = key, value
            elif self.parsimonious and value == worst_value and population[key].size() > population[worst].size():
                worst = key
        return worst

    def negative_tournament_key(self, population):
        candidates = protected_candidates(population.keys(), {self.fittest.key})
        victim = self._shared_negative_tournament(population, candidates)
        # totals stay current before the replacement is evaluated
        self.counts.remove(population[victim])
        self.fittest.release(victim, population)
        return victim

    def generate_next_search_population(self, population, children):
        survivors = self._union(population, children)
        n = len(population)
        while len(survivors) > n:
            candidates = protected_candidates(survivors.keys(), {self.fittest.key})
            victim = self._shared_negative_tournament(survivors, candidates)
            self.counts.remove(survivors.pop(victim))

        replace_population(population, survivors)
        self.counts.rebuild(population.values())
        self.fittest.rescan(population)
        assert len(population) == n
