from boolgp.maintenance.base import Maintenance, FittestTracker
from boolgp.maintenance.standard import StandardMaintenance
from boolgp.maintenance.sharing import FitnessSharingMaintenance, SolvedCounts
from boolgp.maintenance.lexicase import LexicaseMaintenance
from boolgp.maintenance.domination import DominationMaintenance, weakly_dominates
from boolgp.maintenance.best_solver import BestSolverMaintenance
from boolgp.maintenance.elite import EliteMaintenance

MAINTENANCE = {
    "standard": StandardMaintenance,
    "sharing": FitnessSharingMaintenance,
    "lexicase": LexicaseMaintenance,
    "domination": DominationMaintenance,
    "best_solver": BestSolverMaintenance,
    "elite": EliteMaintenance,
}


def create_maintenance(name: str, problem, parameters, rng) -> Maintenance:
    """Creates the maintenance strategy registered under `name`."""
    if name not in MAINTENANCE:
        raise ValueError(f"Unknown maintenance: '{name}'. Available: {list(MAINTENANCE)}")
    return MAINTENANCE[name](problem, parameters, rng)
