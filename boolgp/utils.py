import os

import numpy as np


def population_statistics(population: dict) -> dict:
    """Best and average failure counts and tree sizes of an evaluated population."""
    failed = np.array([individual.sum_of_tests_failed for individual in population.values()])
    sizes = np.array([individual.size() for individual in population.values()])
    best_fitness = failed.min()
    return dict(
        best_fitness=int(best_fitness),
        average_fitness=float(failed.mean()),
        # smallest tree at the best fitness level
        best_size=int(sizes[failed == best_fitness].min()),
        average_size=float(sizes.mean()),
    )


def best_individual(population: dict):
    """Lowest failure count first, then the smallest tree."""
    return min(population.values(), key=lambda individual: (individual.sum_of_tests_failed, individual.size()))


def debug_assert_well_formed(population: dict, max_length: int):
    """Asserts that every member encodes a single tree within the length bound."""
    for key, individual in population.items():
        assert individual.used_length <= max_length, f"Member {key} has {individual.used_length} nodes, more than {max_length}"
        assert individual.is_well_formed(), f"Member {key} is not a well formed tree: {individual.nodes.tolist()}"


class CSVLogger:
    """Collects one row per logged generation and, if `log_file` is given, appends it to a CSV file.

    The rows are also kept in `history`, so `pd.DataFrame(logger.history)` works without a file.
    """

    columns = [
        "generation",
        "evaluations",
        "time_seconds",
        "time_seconds_raw",
        "best_fitness",
        "average_fitness",
        "best_size",
        "average_size",
        "tracked_set_size",
        "expression",
    ]

    def __init__(self, log_file: str | None, log_meta: dict | None):
        self.log_file = log_file
        self.log_meta = log_meta if log_meta is not None else {}
        self.history = []
        self.file = None

        if self.log_file is not None:
            pdir = os.path.dirname(log_file)
            if len(pdir) > 0:
                os.makedirs(pdir, exist_ok=True)

            write_header = not os.path.exists(self.log_file) or os.path.getsize(self.log_file) == 0
            self.file = open(self.log_file, "+a", encoding="utf-8")
            self.meta = [f'"{v}"' if isinstance(v, str) else v for v in self.log_meta.values()]
            if write_header:
                self.file.write(",".join(self.columns + [str(k) for k in self.log_meta]) + "\n")

    def log(self, generation, evaluations, time_seconds, time_seconds_raw, stats, tracked_set_size, expression):
        row = dict(
            generation=generation,
            evaluations=evaluations,
            time_seconds=time_seconds,
            time_seconds_raw=time_seconds_raw,
            **stats,
            tracked_set_size=tracked_set_size,
            expression=expression,
        )
        self.history.append({**row, **self.log_meta})

        if self.file is not None:
            self.file.write(",".join(map(str, [
                generation,
                evaluations,
                f"{time_seconds:.3f}",
                f"{time_seconds_raw:.3f}",
                stats["best_fitness"],
                stats["average_fitness"],
                stats["best_size"],
                stats["average_size"],
                "" if tracked_set_size is None else tracked_set_size,
                f'"{expression}"'
            ] + self.meta)) + "\n")

    def close(self):
        if self.file is not None:
            self.file.close()
            self.file = None

    def __del__(self):
        self.close()
