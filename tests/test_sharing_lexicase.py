import numpy as np

from boolgp.maintenance import FitnessSharingMaintenance, LexicaseMaintenance, SolvedCounts
from boolgp.parameters import Parameters
from boolgp.solution import ProgramTree
from conftest import AND, MUX_SOLVER


def evaluated(strategy, population):
    for key in population:
        strategy.evaluate_fitness(population, key)
    return population


def passes_of(population):
    return np.sum([tree.tests_passed for tree in population.values()], axis=0)


class TestSolvedCounts:

    def test_add_remove_rebuild(self, make_tree, mux2):
        """Counts follow additions, removals and rebuilds."""
        trees = [make_tree([0]), make_tree([1])]
        for tree in trees:
            tree.set_tests_passed(tree.evaluate_all(mux2.inputs) == mux2.targets)
        counts = SolvedCounts(mux2.fitness_cases)
        counts.add(trees[0])
        counts.add(trees[1])
        assert counts.totals.tolist() == [1, 2, 2, 1, 2, 1, 1, 2]
        counts.remove(trees[0])
        assert counts.totals.tolist() == trees[1].tests_passed.astype(int).tolist()
        counts.rebuild(trees)
        assert counts.totals.tolist() == [1, 2, 2, 1, 2, 1, 1, 2]
        assert counts.size == 2

    def test_unsolved_cases(self, make_tree, mux2):
        """Only cases some tracked individual fails are reported."""
        trees = [make_tree([0]), make_tree([1])]
        for tree in trees:
            tree.set_tests_passed(tree.evaluate_all(mux2.inputs) == mux2.targets)
        counts = SolvedCounts(mux2.fitness_cases)
        counts.rebuild(trees)
        assert np.flatnonzero(counts.unsolved_cases()).tolist() == [0, 3, 5, 6]
        counts.remove(trees[1])
        assert np.flatnonzero(counts.unsolved_cases()).tolist() == [0, 3]


class TestFitnessSharing:

    def test_rare_case_solver_has_higher_shared_fitness(self, make_tree, sharing_problem, rng):
        """Solving a rare case is worth more than a common one."""
        strategy = FitnessSharingMaintenance(sharing_problem, Parameters(population_size=3, tournament_size=3), rng)
        population = evaluated(strategy, {
            0: make_tree([AND, 1, 1]),
            1: make_tree([AND, 2, 2]),
            2: make_tree([AND, 0, 0]),
        })
        assert strategy.counts.totals.tolist() == [3, 1, 2]
        unique_solver, competitor = population[2], population[0]
        assert unique_solver.sum_of_tests_failed == competitor.sum_of_tests_failed == 1
        assert strategy.shared_fitness(unique_solver) > strategy.shared_fitness(competitor)
        assert np.isclose(strategy.shared_fitness(unique_solver), 1 / 3 + 1)

    def test_negative_tournament_updates_counts(self, make_tree, sharing_problem, rng):
        """The victim's passes are removed from the counts at once."""
        strategy = FitnessSharingMaintenance(sharing_problem, Parameters(population_size=3, tournament_size=3), rng)
        population = evaluated(strategy, {
            0: make_tree([AND, 1, 1]),
            1: make_tree([AND, 2, 2]),
            2: make_tree([AND, 0, 0]),
        })
        # key 0 is the protected fittest, key 1 shares all its cases and is worse than key 2
        assert strategy.negative_tournament_key(population) == 1
        assert strategy.counts.totals.tolist() == [2, 1, 1]

    def test_steady_state_counts_stay_current(self, node_set, mux2, rng):
        """Counts match the population after every replacement."""
        strategy = FitnessSharingMaintenance(mux2, Parameters(population_size=6), rng)
        population = evaluated(strategy, {k: ProgramTree.random(node_set, 50, 4, rng) for k in range(6)})
        for _ in range(30):
            victim = strategy.negative_tournament_key(population)
            population[victim] = ProgramTree.random(node_set, 50, 4, rng)
            strategy.evaluate_fitness(population, victim)
            assert np.array_equal(strategy.counts.totals, passes_of(population))

    def test_generational_rebuilds_counts(self, node_set, mux2, rng):
        """Counts are rebuilt over the survivors."""
        strategy = FitnessSharingMaintenance(mux2, Parameters(population_size=5), rng)
        population = evaluated(strategy, {k: ProgramTree.random(node_set, 50, 4, rng) for k in range(5)})
        children = evaluated(strategy, {k: ProgramTree.random(node_set, 50, 4, rng) for k in range(5, 10)})
        strategy.generate_next_search_population(population, children)
        assert sorted(population) == list(range(5))
        assert np.array_equal(strategy.counts.totals, passes_of(population))


class TestLexicase:

    def test_selects_the_all_rounder(self, make_tree, mux2, rng):
        """A member passing every case always wins."""
        strategy = LexicaseMaintenance(mux2, Parameters(population_size=3), rng)
        population = evaluated(strategy, {0: make_tree([0]), 1: make_tree([1]), 2: make_tree(MUX_SOLVER)})
        assert all(strategy.tournament_key(population) == 2 for _ in range(20))

    def test_replacement_targets_failures(self, make_tree, mux2, rng):
        """Replacement picks a member that fails cases."""
        strategy = LexicaseMaintenance(mux2, Parameters(population_size=3), rng)
        population = evaluated(strategy, {0: make_tree(MUX_SOLVER), 1: make_tree([0]), 2: make_tree([1])})
        victim = strategy.negative_tournament_key(population)
        assert victim in (1, 2)
        remaining = {k: v for k, v in population.items() if k != victim}
        assert np.array_equal(strategy.counts.totals, passes_of(remaining))

    def test_filter_keeps_nonempty_pool(self, make_tree, mux2, rng):
        """A filter that would empty the pool is skipped."""
        strategy = LexicaseMaintenance(mux2, Parameters(population_size=2), rng)
        population = evaluated(strategy, {0: make_tree([0]), 1: make_tree([1])})
        # x0 alone fails cases 0 and 3, x1 alone fails 5 and 6, so each order leaves one candidate
        picks = {strategy.lexicase(population, [0, 1], passing=True) for _ in range(50)}
        assert picks == {0, 1}

    def test_steady_state_counts_track_the_population(self, node_set, mux2, rng):
        """Solved counts follow every replacement, so shared cases can be skipped."""
        strategy = LexicaseMaintenance(mux2, Parameters(population_size=6), rng)
        population = evaluated(strategy, {k: ProgramTree.random(node_set, 50, 4, rng) for k in range(6)})
        for _ in range(30):
            victim = strategy.negative_tournament_key(population)
            population[victim] = ProgramTree.random(node_set, 50, 4, rng)
            strategy.evaluate_fitness(population, victim)
            assert strategy.counts.size == 6
            assert np.array_equal(strategy.counts.totals, passes_of(population))

    def test_generational(self, node_set, mux2, rng):
        """Survivors are distinct members of the union and the counts are rebuilt over them."""
        strategy = LexicaseMaintenance(mux2, Parameters(population_size=5), rng)
        population = evaluated(strategy, {k: ProgramTree.random(node_set, 50, 4, rng) for k in range(5)})
        children = evaluated(strategy, {k: ProgramTree.random(node_set, 50, 4, rng) for k in range(5, 10)})
        union = list(population.values()) + list(children.values())
        strategy.generate_next_search_population(population, children)
        assert sorted(population) == list(range(5))
        assert len({id(tree) for tree in population.values()}) == 5
        assert all(any(tree is other for other in union) for tree in population.values())
        assert np.array_equal(strategy.counts.totals, passes_of(population))
