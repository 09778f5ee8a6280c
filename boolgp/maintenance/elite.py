from boolgp.evaluation import evaluate_individual
from boolgp.maintenance.base import Maintenance, replace_population


class EliteMaintenance(Maintenance):
    """Truncation on a lazily sorted list of keys, the single worst individual is always replaced."""

    def __init__(self, problem, parameters, rng):
        super().__init__(problem, parameters, rng)
        self.members = {}
        self.ordered = []
        self.needs_sorting = True

    def _failed(self, key) -> int:
        return self.members[key].sum_of_tests_failed

    def _sort_if_required(self):
        if self.needs_sorting:
            self.ordered.sort(key=self._failed)
            self.needs_sorting = False

    def evaluate_fitness(self, population, key):
        individual = population[key]
        failed = evaluate_individual(self.problem, individual)
        self.fittest.update(key, individual)
        self.members[key] = individual
        self.ordered.append(key)
        self.needs_sorting = True
        return failed

    def negative_tournament_key(self, population):
        self._sort_if_required()
        position = len(self.ordered) - 1
        if self.parsimonious:
            # largest tree among those sharing the worst fitness
            worst = self._failed(self.ordered[-1])
            band_start = position
            while band_start > 0 and self._failed(self.ordered[band_start - 1]) == worst:
                band_start -= 1
            position = max(range(band_start, len(self.ordered)), key=lambda i: self.members[self.ordered[i]].size())

        victim = self.ordered.pop(position)
        del self.members[victim]
        self.fittest.release(victim, population)
        return victim

    def generate_next_search_population(self, population, children):
        combined = self._union(population, children)
        n = len(population)
        self._sort_if_required()

        if self.parsimonious and len(self.ordered) > n:
            # re-sort only the band of equal fitness straddling the cut by size
            cut = self._failed(self.ordered[n - 1])
            low = n - 1
            while low > 0 and self._failed(self.ordered[low - 1]) == cut:
                low -= 1
            high = n
            while high < len(self.ordered) and self._failed(self.ordered[high]) == cut:
                high += 1
            self.ordered[low:high] = sorted(self.ordered[low:high], key=lambda k: self.members[k].size())

        kept = self.ordered[:n]
        assert len(set(kept)) == n, "Truncation kept the same individual twice"
        survivors = {key: combined[key] for key in kept}
        replace_population(population, survivors)

        self.members = dict(population)
        self.ordered = list(population)
        self.needs_sorting = False
        self.fittest.rescan(population)
