from abc import ABC, abstractmethod

import numpy as np


def ranking_key(individual, parsimonious: bool) -> tuple:
    """Sort key of an evaluated individual, smaller is better."""
    if parsimonious:
        return (individual.sum_of_tests_failed, individual.size())
    return (individual.sum_of_tests_failed,)


def draw_keys(rng, keys: list, size: int) -> list:
    """Up to `size` distinct keys drawn uniformly, in draw order."""
    size = min(size, len(keys))
    return [keys[i] for i in rng.choice(len(keys), size, replace=False)]


def aggregate_tournament(population: dict, keys: list, rng, tournament_size: int, parsimonious: bool) -> int:
    """Best of `tournament_size` distinct draws from `keys`; the earlier draw wins full ties."""
    drawn = draw_keys(rng, keys, tournament_size)
    best = drawn[0]
    for key in drawn[1:]:
        if ranking_key(population[key], parsimonious) < ranking_key(population[best], parsimonious):
            best = key
    return best


def aggregate_negative_tournament(population: dict, keys: list, rng, tournament_size: int, parsimonious: bool) -> int:
    """Worst of `tournament_size` distinct draws from `keys`; the larger tree loses ties when parsimonious."""
    drawn = draw_keys(rng, keys, tournament_size)
    worst = drawn[0]
    for key in drawn[1:]:
        if ranking_key(population[key], parsimonious) > ranking_key(population[worst], parsimonious):
            worst = key
    return worst


def protected_candidates(keys, protected) -> list:
    """`keys` without the protected ones, unless nothing would be left."""
    candidates = [key for key in keys if key not in protected]
    if len(candidates) == 0:
        return list(keys)
    return candidates


def replace_population(population: dict, survivors: dict) -> dict:
    """Rewrites `population` in place with the survivors under keys `0..n-1`.

    Returns the mapping from the survivors' old keys to their new keys.
    """
    mapping = {}
    population.clear()
    for new_key, (old_key, individual) in enumerate(survivors.items()):
        population[new_key] = individual
        mapping[old_key] = new_key
    return mapping


class FittestTracker:
    """Remembers the key of the first seen individual with the lowest failure count."""

    def __init__(self):
        self.key = None
        self.fitness = np.inf

    def update(self, key: int, individual):
        if individual.sum_of_tests_failed < self.fitness:
            self.fitness = individual.sum_of_tests_failed
            self.key = key

    def rescan(self, population: dict, exclude=()):
        self.key = None
        self.fitness = np.inf
        for key, individual in population.items():
            if key not in exclude:
                self.update(key, individual)

    def release(self, key: int, population: dict):
        """Called when `key` leaves the population."""
        if key == self.key:
            self.rescan(population, exclude=(key,))


class Maintenance(ABC):
    """Selection and replacement policy over a population given as a dict of key -> ProgramTree.

    Strategies identify individuals by their population key. A negative tournament commits the
    removal of its victim from the strategy's indexes; the caller is expected to overwrite that
    key and evaluate the newcomer through `evaluate_fitness`.
    """

    def __init__(self, problem, parameters, rng):
        self.problem = problem
        self.parameters = parameters
        self.rng = rng
        self.parsimonious = parameters.parsimonious
        self.fittest = FittestTracker()

    def tournament_key(self, population: dict, exclude=None) -> int:
        keys = [key for key in population if key != exclude]
        return aggregate_tournament(population, keys, self.rng, self.parameters.tournament_size, self.parsimonious)

    def tournament(self, population: dict):
        return population[self.tournament_key(population)]

    @abstractmethod
    def negative_tournament_key(self, population: dict) -> int:
        pass

    def negative_tournament(self, population: dict):
        return population[self.negative_tournament_key(population)]

    @abstractmethod
    def evaluate_fitness(self, population: dict, key: int) -> int:
        """Evaluates `population[key]` on every fitness case, updates the indexes and returns its failure count."""
        pass

    @abstractmethod
    def generate_next_search_population(self, population: dict, children: dict):
        """Keeps `len(population)` survivors of the union and rewrites `population` with keys `0..n-1`."""
        pass

    def tracked_set_size(self) -> int | None:
        return None

    def _union(self, population: dict, children: dict) -> dict:
        assert population.keys().isdisjoint(children.keys()), "Population and children share keys"
        return {**population, **children}
