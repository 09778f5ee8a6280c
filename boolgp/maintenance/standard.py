from boolgp.evaluation import evaluate_individual
from boolgp.maintenance.base import (
    Maintenance,
    aggregate_negative_tournament,
    protected_candidates,
    replace_population,
)


class StandardMaintenance(Maintenance):
    """Aggregate fitness (failed cases, lower is better) with an optional size tie-break.

    The fittest individual is never the victim of a negative tournament while there is an alternative.
    """

    def evaluate_fitness(self, population, key):
        individual = population[key]
        failed = evaluate_individual(self.problem, individual)
        self.fittest.update(key, individual)
        return failed

    def negative_tournament_key(self, population):
        candidates = protected_candidates(population.keys(), {self.fittest.key})
        victim = aggregate_negative_tournament(
            population, candidates, self.rng, self.parameters.tournament_size, self.parsimonious
        )
        self.fittest.release(victim, population)
        return victim

    def generate_next_search_population(self, population, children):
        survivors = self._union(population, children)
        n = len(population)
        while len(survivors) > n:
            candidates = protected_candidates(survivors.keys(), {self.fittest.key})
            victim = aggregate_negative_tournament(
                survivors, candidates, self.rng, self.parameters.tournament_size, self.parsimonious
            )
            del survivors[victim]

        replace_population(population, survivors)
        self.fittest.rescan(population)
        assert len(population) == n
