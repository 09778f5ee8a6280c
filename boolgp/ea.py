import time
from typing import Literal

import numpy as np
import pandas as pd

from boolgp.evaluation import evaluate_individual
from boolgp.maintenance import create_maintenance
from boolgp.nodes import NodeSet
from boolgp.parameters import Parameters
from boolgp.problems import Problem, get_problem
from boolgp.solution import ProgramTree
from boolgp.utils import CSVLogger, population_statistics, best_individual, debug_assert_well_formed


class SearchProgress:
    """Counts evaluations and remembers the best individual seen so far and when a solver first appeared."""

    def __init__(self):
        self.evaluations = 0
        self.best_fitness = np.inf
        self.best_size = np.inf
        self.best = None
        self.evaluations_to_solve = -1

    def record(self, individual):
        self.evaluations += 1
        failed = individual.sum_of_tests_failed
        if failed < self.best_fitness or (failed == self.best_fitness and individual.size() < self.best_size):
            self.best_fitness = failed
            self.best_size = individual.size()
            # copied, the original may be cleaned once it is replaced
            self.best = individual.copy()
        if self.best_fitness == 0 and self.evaluations_to_solve == -1:
            self.evaluations_to_solve = self.evaluations

    @property
    def solved(self) -> bool:
        return self.evaluations_to_solve != -1


def _seeded(log_meta: dict | None, seed: int | None) -> tuple[dict, np.random.Generator]:
    log_meta = dict(log_meta) if log_meta is not None else {}
    log_meta["seed"] = seed if seed is not None else time.time_ns() % (2 ** 31 - 1)
    rng = np.random.Generator(np.random.Philox(seed=log_meta["seed"]))
    return log_meta, rng


def evolve(
    problem: Problem | str,
    maintenance: str = "standard",
    mode: Literal["steady_state", "generational"] = "steady_state",
    seed: int | None = None,
    log_file: str | None = None,
    log_meta: dict | None = None,
    log_frequency: int = 1,
    quiet: bool = False,
    return_value: Literal["summary", "history", "population"] = "summary",
    debug: bool = False,
    **kwargs
):
    """Boolean GP with a pluggable maintenance strategy.

    Runs until an individual passes every fitness case or `generations` generations (the initial
    population counts as the first) have been evaluated. Remaining keyword arguments are passed on
    to `Parameters`.
    """
    if isinstance(problem, str):
        problem = get_problem(problem)
    if mode not in ("steady_state", "generational"):
        raise ValueError(f"Unknown mode: '{mode}'")
    if return_value not in ("summary", "history", "population"):
        raise ValueError(f"Unknown return value: '{return_value}'")
    parameters = Parameters(**kwargs)

    log_meta, rng = _seeded(log_meta, seed)
    if log_file is None and not quiet:
        print(f"Using seed {log_meta['seed']}")

    node_set = NodeSet(problem.variable_number)
    strategy = create_maintenance(maintenance, problem, parameters, rng)
    logger = CSVLogger(log_file, log_meta)
    progress = SearchProgress()
    n = parameters.population_size

    def log(generation):
        logger.log(
            generation,
            progress.evaluations,
            time_seconds,
            time_seconds_raw,
            population_statistics(population),
            strategy.tracked_set_size(),
            best_individual(population).to_expression()
        )

    t_start = time.time()
    population = {}
    for key in range(n):
        population[key] = ProgramTree.random(node_set, parameters.max_length, parameters.max_depth, rng)
        strategy.evaluate_fitness(population, key)
        progress.record(population[key])

    time_seconds = time.time() - t_start
    time_seconds_raw = time_seconds
    generation = 0
    logged = generation
    log(generation)

    t_last_print = 0
    while not progress.solved and generation + 1 < parameters.generations:
        generation_start = time.time()
        if mode == "steady_state":
            _steady_state_generation(population, strategy, parameters, progress, rng)
        else:
            _generational_generation(population, strategy, parameters, progress, rng)
        generation_end = time.time()

        if debug:
            debug_assert_well_formed(population, parameters.max_length)
            if hasattr(strategy, "is_consistent"):
                assert strategy.is_consistent(population), f"{maintenance} indexes are inconsistent after generation {generation + 1}"

        generation += 1
        time_seconds = generation_end - t_start
        time_seconds_raw += generation_end - generation_start

        if generation % log_frequency == 0:
            log(generation)
            logged = generation

        if not quiet and generation % 10 == 0 and generation_end - t_last_print > 1.5:
            t_last_print = time.time()
            stats = population_statistics(population)
            print(f"Generation: {generation: 8d} | Evaluations: {progress.evaluations: 10d} | Time [s]: {time_seconds: 7.2f} | Best fitness: [{stats['best_fitness']: 5d},{stats['best_size']: 5d}] | Av. size: {stats['average_size']: 9.1f}")

    if logged != generation:
        log(generation)
    logger.close()

    if not progress.solved:
        # unsolved runs count the whole budget plus one
        progress.evaluations_to_solve = parameters.generations * n + 1

    if not quiet:
        print(f"Achieved {progress.evaluations / max(time_seconds, 1e-9):.2f}evaluations/second")
        state = "Solved" if progress.best_fitness == 0 else "Not solved"
        print(f"{state} after {progress.evaluations} evaluations: {progress.best.to_expression()} @ (Failed: {progress.best_fitness}, Size: {progress.best_size})")

    if return_value == "history":
        return pd.DataFrame(logger.history)
    elif return_value == "population":
        return pd.DataFrame([dict(
            key=key,
            failed=individual.sum_of_tests_failed,
            size=individual.size(),
            expression=individual.to_expression()
        ) for key, individual in population.items()])

    return pd.DataFrame([dict(
        problem=problem.name,
        maintenance=maintenance,
        mode=mode,
        minimisation=parameters.minimisation.value,
        population_size=n,
        seed=log_meta["seed"],
        solved=progress.best_fitness == 0,
        generations=generation + 1,
        evaluations=progress.evaluations,
        evaluations_to_solve=progress.evaluations_to_solve,
        best_fitness=int(progress.best_fitness),
        best_size=int(progress.best_size),
        expression=progress.best.to_expression(),
        time_seconds=time_seconds,
    )])


def _steady_state_generation(population, strategy, parameters, progress, rng):
    """`population_size` single replacements: breed one child, pick a victim, put the child in its place."""
    n = len(population)
    for _ in range(n):
        parent_key = strategy.tournament_key(population)
        child = population[parent_key].copy()
        # a second, different parent needs at least two members
        if n > 1 and rng.random() < parameters.crossover_probability:
            partner_key = strategy.tournament_key(population, exclude=parent_key)
            child.crossover(population[partner_key], rng)
        else:
            child.mutate(parameters.mutation_probability, rng, local=parameters.local_mutation)

        victim = strategy.negative_tournament_key(population)
        population[victim].clean()
        population[victim] = child
        strategy.evaluate_fitness(population, victim)
        progress.record(child)


def _generational_generation(population, strategy, parameters, progress, rng):
    """Breeds a full batch of children from shuffled parent pairs, then lets the strategy truncate."""
    n = len(population)
    order = rng.permutation(n)
    children = {}
    for j in range(n):
        child = population[int(order[j])].copy()
        if rng.random() < parameters.crossover_probability:
            child.crossover(population[int(order[n - j - 1])], rng)
        else:
            child.mutate(parameters.mutation_probability, rng, local=parameters.local_mutation)
        children[n + j] = child
        strategy.evaluate_fitness(children, n + j)
        progress.record(child)

    strategy.generate_next_search_population(population, children)


def random_search(
    problem: Problem | str,
    seed: int | None = None,
    log_file: str | None = None,
    log_meta: dict | None = None,
    quiet: bool = False,
    return_value: Literal["summary", "history"] = "summary",
    **kwargs
):
    """Baseline drawing `population_size * generations` random trees, stopping at the first solver."""
    if isinstance(problem, str):
        problem = get_problem(problem)
    if return_value not in ("summary", "history"):
        raise ValueError(f"Unknown return value: '{return_value}'")
    parameters = Parameters(**kwargs)

    log_meta, rng = _seeded(log_meta, seed)
    node_set = NodeSet(problem.variable_number)
    logger = CSVLogger(log_file, log_meta)
    progress = SearchProgress()
    n = parameters.population_size
    budget = n * parameters.generations

    def log():
        # averages are not meaningful without a population
        stats = dict(
            best_fitness=int(progress.best_fitness),
            average_fitness=-1.0,
            best_size=int(progress.best_size),
            average_size=-1.0
        )
        logger.log(progress.evaluations // n, progress.evaluations, time_seconds, time_seconds, stats, None, progress.best.to_expression())

    t_start = time.time()
    time_seconds = 0
    while progress.evaluations < budget:
        individual = ProgramTree.random(node_set, parameters.max_length, parameters.max_depth, rng)
        evaluate_individual(problem, individual)
        progress.record(individual)
        time_seconds = time.time() - t_start
        if progress.solved:
            break
        if progress.evaluations % n == 0:
            log()
    log()
    logger.close()

    if not progress.solved:
        progress.evaluations_to_solve = budget + 1

    if not quiet:
        print(f"evals: {progress.evaluations}, Size of best: {progress.best_size}, Best fitness: {progress.best_fitness}")

    if return_value == "history":
        return pd.DataFrame(logger.history)

    return pd.DataFrame([dict(
        problem=problem.name,
        maintenance="random",
        mode="random",
        population_size=n,
        seed=log_meta["seed"],
        solved=progress.solved,
        evaluations=progress.evaluations,
        evaluations_to_solve=progress.evaluations_to_solve,
        best_fitness=int(progress.best_fitness),
        best_size=int(progress.best_size),
        expression=progress.best.to_expression(),
        time_seconds=time_seconds,
    )])
