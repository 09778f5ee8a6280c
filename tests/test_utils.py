import pandas as pd
import pytest

from boolgp.utils import CSVLogger, best_individual, debug_assert_well_formed, population_statistics
from conftest import AND, MUX_SOLVER

STATS = dict(best_fitness=1, average_fitness=2.5, best_size=3, average_size=4.0)


@pytest.fixture
def population(make_tree, mux2):
    population = {0: make_tree([0]), 1: make_tree([AND, 0, 0]), 2: make_tree(MUX_SOLVER)}
    for tree in population.values():
        tree.set_tests_passed(tree.evaluate_all(mux2.inputs) == mux2.targets)
    return population


class TestStatistics:

    def test_population_statistics(self, population):
        """Statistics report best and average fitness and size."""
        stats = population_statistics(population)
        assert stats == dict(best_fitness=0, average_fitness=4 / 3, best_size=7, average_size=11 / 3)

    def test_best_individual(self, population):
        """The best member has the fewest failures, then the smallest tree."""
        assert best_individual(population) is population[2]
        del population[2]
        assert best_individual(population) is population[0]

    def test_well_formed(self, population):
        """Oversized or broken members fail the structural check."""
        debug_assert_well_formed(population, 64)
        with pytest.raises(AssertionError):
            debug_assert_well_formed(population, 5)
        population[0].used_length = 2
        with pytest.raises(AssertionError):
            debug_assert_well_formed(population, 64)


class TestCSVLogger:

    def test_history_without_file(self):
        """Rows are kept in memory without a log file."""
        logger = CSVLogger(None, dict(problem="mux2"))
        logger.log(0, 10, 0.1, 0.1, STATS, None, "x0")
        logger.log(1, 20, 0.2, 0.1, STATS, 3, "x1")
        history = pd.DataFrame(logger.history)
        assert history["evaluations"].tolist() == [10, 20]
        assert history["problem"].tolist() == ["mux2", "mux2"]
        assert history["tracked_set_size"].iloc[1] == 3

    def test_header_written_once(self, tmp_path):
        """Appending runs share one header."""
        log_file = str(tmp_path / "nested" / "log.csv")
        for run in range(2):
            logger = CSVLogger(log_file, dict(run=run, method="standard"))
            logger.log(0, 10, 0.1, 0.1, STATS, None, "(x0 & x1)")
            logger.close()
        log = pd.read_csv(log_file)
        assert list(log.columns) == CSVLogger.columns + ["run", "method"]
        assert log["run"].tolist() == [0, 1]
        assert log["expression"].tolist() == ["(x0 & x1)", "(x0 & x1)"]
        assert log["tracked_set_size"].isna().all()
