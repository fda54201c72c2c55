"""Search strategies; importing this package registers every built-in strategy."""

from .base import SearchStrategy, StrategyOutcome, StrategyRegistry, StrategyState, strategy_for
from .cmaes import CMAESStrategy
from .design import DesignStrategy
from .gensa import SimulatedAnnealingStrategy
from .grid_search import GridSearchStrategy
from .irace import IteratedRacingStrategy
from .mbo import ModelBasedStrategy
from .random_search import RandomSearchStrategy

__all__ = [
    "CMAESStrategy",
    "DesignStrategy",
    "GridSearchStrategy",
    "IteratedRacingStrategy",
    "ModelBasedStrategy",
    "RandomSearchStrategy",
    "SearchStrategy",
    "SimulatedAnnealingStrategy",
    "StrategyOutcome",
    "StrategyRegistry",
    "StrategyState",
    "strategy_for",
]
