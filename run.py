import os
import shutil
from concurrent.futures import ProcessPoolExecutor, as_completed

import numpy as np
import pandas as pd
from tqdm import tqdm

from boolgp.ea import evolve, random_search

# Note that if your experiments include a quantitative comparison, the setup should include
#  - multiple runs (>10)
#  - a budget permissive enough such that most runs of the methods tested solve the problem
#  - the same seeds for every method, so that the runs are paired

def run_once(problem, **kwargs):
    try:
        if kwargs.get("maintenance") == "random":
            kwargs.pop("maintenance")
            kwargs.pop("mode", None)
            kwargs.pop("log_frequency", None)
            return random_search(problem, **kwargs)
        return evolve(problem, **kwargs)
    except KeyboardInterrupt as e:
        raise e
    except Exception as e:
        print("Run failed:", e)
        raise e


def run_experiment(
    problems: list[str],
    methods: list[dict],
    repeats: int = 30,
    seed: int | None = 42,
    results_path: str = "results",
    clear_results_path: bool = False,
    max_workers: int = None
):
    if clear_results_path and os.path.exists(results_path):
        shutil.rmtree(results_path)
    os.makedirs(results_path, exist_ok=True)

    rng = np.random.Generator(np.random.Philox(seed=seed))
    with ProcessPoolExecutor(max_workers=max_workers) as pool:
        futures = []
        for pi, problem in enumerate(problems):
            for repeat in range(repeats):
                run_seed = int(rng.integers(2 ** 31 - 1))

                for mi, method in enumerate(methods):
                    log_file = f"{results_path}/p{pi}/m{mi}/r{repeat}.csv"
                    method = {k: v for k, v in method.items() if k != "name"}

                    if not (os.path.exists(log_file) and os.path.isfile(log_file)):
                        futures.append(pool.submit(
                            run_once,
                            problem,
                            **method,
                            seed=run_seed,
                            log_file=log_file,
                            log_meta=dict(
                                problem=problem,
                                method=methods[mi].get("name", f"M{mi}"),
                                repeat=repeat
                            )
                        ))

        summaries = []
        progress = tqdm(total=len(futures))
        for f in as_completed(futures):
            e = f.exception()
            if e is not None:
                pool.shutdown(wait=False, cancel_futures=True)
                raise e
            summaries.append(f.result())
            progress.update()

    if len(summaries) > 0:
        summary_file = f"{results_path}/summary.csv"
        pd.concat(summaries).to_csv(summary_file, mode="a", header=not os.path.exists(summary_file), index=False)


if __name__ == "__main__":
    budget = dict(
        population_size=10,
        generations=1000,
        log_frequency=100,
        quiet=True,
    )

    def run():
        try:
            run_experiment(
                problems=[
                    "mux2",
                    "mux4",
                    "parity4",
                    "majority5",
                    "comparator6",
                ],
                methods=[
                    dict(name="Random search", maintenance="random", **budget),
                    dict(name="Aggregate", maintenance="standard", **budget),
                    dict(name="Aggregate (parsimonious)", maintenance="standard", minimisation="parsimonious", **budget),
                    dict(name="Fitness sharing", maintenance="sharing", **budget),
                    dict(name="Lexicase", maintenance="lexicase", mode="generational", **budget),
                    dict(name="Domination", maintenance="domination", **budget),
                    dict(name="Domination (parsimonious)", maintenance="domination", minimisation="parsimonious", **budget),
                    dict(name="Best solver", maintenance="best_solver", **budget),
                    dict(name="Elite", maintenance="elite", mode="generational", **budget),
                    dict(name="Elite (local mutation)", maintenance="elite", mode="generational", local_mutation=True, **budget),
                ],
                repeats=30,
                seed=42,
                results_path="results",
                clear_results_path=False,
            )
        except KeyboardInterrupt:
            print("Interrupted")

    run()
