from enum import Enum
from dataclasses import dataclass


class MinimisationType(Enum):
    """How individuals are ranked: failures only, or failures then tree size."""
    STANDARD = "standard"
    PARSIMONIOUS = "parsimonious"


@dataclass(frozen=True)
class Parameters:
    """Meta parameters of a run (defaults follow the GECCO 2015 set up, apart from the generation budget)."""
    max_length: int = 10000
    population_size: int = 10
    generations: int = 1000
    tournament_size: int = 2
    mutation_probability: float = 0.05
    crossover_probability: float = 0.9
    max_depth: int = 10
    minimisation: MinimisationType = MinimisationType.STANDARD
    local_mutation: bool = False

    def __post_init__(self):
        if isinstance(self.minimisation, str):
            # frozen, so bypass __setattr__
            object.__setattr__(self, "minimisation", MinimisationType(self.minimisation.lower()))
        if self.max_length < 1:
            raise ValueError(f"max_length must be positive, got {self.max_length}")
        if self.population_size < 1:
            raise ValueError(f"population_size must be at least 1, got {self.population_size}")
        if self.generations < 1:
            raise ValueError(f"generations must be at least 1, got {self.generations}")
        if self.tournament_size < 1:
            raise ValueError(f"tournament_size must be at least 1, got {self.tournament_size}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must not be negative, got {self.max_depth}")
        if not 0.0 <= self.mutation_probability <= 1.0:
            raise ValueError(f"mutation_probability must be in [0, 1], got {self.mutation_probability}")
        if not 0.0 <= self.crossover_probability <= 1.0:
            raise ValueError(f"crossover_probability must be in [0, 1], got {self.crossover_probability}")

    @property
    def parsimonious(self) -> bool:
        return self.minimisation is MinimisationType.PARSIMONIOUS
