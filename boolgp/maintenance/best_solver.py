import numpy as np

from boolgp.evaluation import evaluate_individual
from boolgp.maintenance.base import (
    Maintenance,
    aggregate_tournament,
    aggregate_negative_tournament,
    protected_candidates,
    replace_population,
)


class BestSolverMaintenance(Maintenance):
    """Protects, for every fitness case, the best individual that passes it.

    `case_best[c]` holds the key of the best solver of case `c` (or -1) and `marked` maps each such
    key to the set of cases it holds. Evicting a marked individual hands its cases over to the
    best remaining solver.
    """

    def __init__(self, problem, parameters, rng):
        super().__init__(problem, parameters, rng)
        self.case_best = np.full(problem.fitness_cases, -1, dtype=np.int64)
        self.marked = {}
        self.members = {}

    def _improves(self, individual, holder) -> bool:
        if individual.sum_of_tests_failed < holder.sum_of_tests_failed:
            return True
        return self.parsimonious \
            and individual.sum_of_tests_failed == holder.sum_of_tests_failed \
            and individual.size() < holder.size()

    def _mark(self, key, case):
        self.case_best[case] = key
        self.marked.setdefault(key, set()).add(case)

    def _unmark(self, key, case):
        cases = self.marked[key]
        cases.discard(case)
        if len(cases) == 0:
            del self.marked[key]

    def _record(self, key, individual):
        self.members[key] = individual
        for case in np.flatnonzero(individual.tests_passed).tolist():
            holder = int(self.case_best[case])
            if holder == -1 or self._improves(individual, self.members[holder]):
                if holder != -1:
                    self._unmark(holder, case)
                self._mark(key, case)

    def evaluate_fitness(self, population, key):
        individual = population[key]
        failed = evaluate_individual(self.problem, individual)
        self.fittest.update(key, individual)
        self._record(key, individual)
        return failed

    def _evict(self, key):
        del self.members[key]
        for case in sorted(self.marked.pop(key, ())):
            self.case_best[case] = -1
            replacement = None
            for other, individual in self.members.items():
                if individual.tests_passed[case] and (replacement is None or self._improves(individual, self.members[replacement])):
                    replacement = other
            if replacement is not None:
                self._mark(replacement, case)

    def negative_tournament_key(self, population):
        unmarked = [key for key in population if key not in self.marked]
        candidates = [key for key in unmarked if key != self.fittest.key]
        if len(candidates) == 0 and len(self.marked) <= self.parameters.population_size:
            # an unmarked fittest holds no case of its own, a marked holder beats it on every case it passes
            candidates = unmarked
        if len(candidates) == 0:
            # every member holds a case, so a marked one has to go
            candidates = protected_candidates(population.keys(), {self.fittest.key})

        victim = aggregate_negative_tournament(
            population, candidates, self.rng, self.parameters.tournament_size, self.parsimonious
        )
        self._evict(victim)
        self.fittest.release(victim, population)
        return victim

    def generate_next_search_population(self, population, children):
        combined = self._union(population, children)
        n = len(population)

        survivors = {key: combined[key] for key in self.marked}
        while len(survivors) > n:
            candidates = protected_candidates(survivors.keys(), {self.fittest.key})
            victim = aggregate_negative_tournament(
                combined, candidates, self.rng, self.parameters.tournament_size, self.parsimonious
            )
            del survivors[victim]

        pool = [key for key in combined if key not in survivors]
        while len(survivors) < n:
            key = aggregate_tournament(combined, pool, self.rng, self.parameters.tournament_size, self.parsimonious)
            pool.remove(key)
            survivors[key] = combined[key]

        replace_population(population, survivors)
        self.rebuild(population)
        assert len(population) == n

    def rebuild(self, population: dict):
        """Recomputes every index from the cached outcomes of `population`."""
        self.case_best[:] = -1
        self.marked = {}
        self.members = {}
        for key, individual in population.items():
            self._record(key, individual)
        self.fittest.rescan(population)

    def is_consistent(self, population: dict) -> bool:
        """Every case passed by someone has a best solver with the lowest failure count among its passers."""
        for case in range(self.problem.fitness_cases):
            passers = [key for key, individual in population.items() if individual.tests_passed[case]]
            holder = int(self.case_best[case])
            if len(passers) == 0:
                if holder != -1:
                    return False
                continue
            if holder not in population or not population[holder].tests_passed[case]:
                return False
            if population[holder].sum_of_tests_failed != min(population[key].sum_of_tests_failed for key in passers):
                return False
            if case not in self.marked.get(holder, ()):
                return False
        return all(len(cases) > 0 for cases in self.marked.values())

    def tracked_set_size(self):
        return len(self.marked)
