"""
Angle and distance strategies for branch placement.

Strategies are plain functions. Angle strategies take the configured angle
offset and return one angle per branch; distance strategies take the
parent node. Factories such as even_angles and jitter_distance bind the
extra parameters a strategy needs.
"""

import numpy as np
from typing import Callable, Dict, List, Optional, Sequence
import logging

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

AngleStrategy = Callable[[float], Sequence[float]]
DistanceStrategy = Callable[["PointNode"], float]


def even_angles(branching_factor: int = 3) -> AngleStrategy:
    """
    Create a strategy that spreads branches evenly around the circle.

    angles[i] = angle_offset + i * 2*pi / branching_factor. FractalConfig
    binds this to its own branching factor when no angle strategy is given.

    Args:
        branching_factor: Number of angles to produce

    Returns:
        Angle strategy function
    """
    def strategy(angle_offset: float) -> List[float]:
        step = 2 * np.pi / branching_factor
        return [angle_offset + i * step for i in range(branching_factor)]

    strategy.__name__ = "even_angles"
    strategy.strategy_name = 'even'
    strategy.branching_factor = branching_factor
    return strategy


def fixed_angles(angles: Sequence[float]) -> AngleStrategy:
    """
    Create a strategy that always returns the same offsets.

    The configured angle offset is added to every entry, so
    fixed_angles([0, 2*pi/3, 4*pi/3]) matches even_angles(3).

    Args:
        angles: Offsets in radians, one per branch

    Returns:
        Angle strategy function
    """
    base = [float(a) for a in angles]

    def strategy(angle_offset: float) -> List[float]:
        return [angle_offset + a for a in base]

    strategy.__name__ = "fixed_angles"
    return strategy


def scaled_distance(node) -> float:
    """Place children one and a half parent scales away."""
    return node.scale * 1.5


def wide_distance(node) -> float:
    """Place children three and a half parent scales away."""
    return node.scale * 3.5


def jitter_distance(seed: int = 0) -> DistanceStrategy:
    """
    Create a distance strategy with a random component.

    The distance is scale * U[0, 3) + 1. The random draw is derived from
    (seed, node.index) so the same node always gets the same distance.

    Args:
        seed: Seed for the per-node random draws

    Returns:
        Distance strategy function
    """
    def strategy(node) -> float:
        rng = np.random.default_rng([seed, node.index])
        return node.scale * rng.random() * 3 + 1

    strategy.__name__ = "jitter_distance"
    strategy.strategy_name = 'jitter'
    return strategy


class StrategyRegistry:
    """Registry for named angle and distance strategies."""

    _angle_strategies: Dict[str, AngleStrategy] = {
        'even': even_angles(),
    }

    _distance_strategies: Dict[str, DistanceStrategy] = {
        'scaled': scaled_distance,
        'wide': wide_distance,
        'jitter': jitter_distance(),
    }

    @classmethod
    def register_angle(cls, name: str, strategy: AngleStrategy) -> None:
        """Register an angle strategy under a name."""
        if not callable(strategy):
            raise ConfigurationError("Angle strategy must be callable")
        cls._angle_strategies[name.lower()] = strategy
        logger.info(f"Registered angle strategy: {name}")

    @classmethod
    def register_distance(cls, name: str, strategy: DistanceStrategy) -> None:
        """Register a distance strategy under a name."""
        if not callable(strategy):
            raise ConfigurationError("Distance strategy must be callable")
        cls._distance_strategies[name.lower()] = strategy
        logger.info(f"Registered distance strategy: {name}")

    @classmethod
    def get_angle(cls, name: str, branching_factor: Optional[int] = None) -> AngleStrategy:
        """
        Get an angle strategy by name.

        Args:
            name: Registered strategy name
            branching_factor: Angle count for the even strategy (ignored by the others)

        Returns:
            Angle strategy function
        """
        if name.lower() == 'even' and branching_factor is not None:
            return even_angles(branching_factor)
        strategy = cls._angle_strategies.get(name.lower())
        if strategy is None:
            available = ', '.join(cls._angle_strategies.keys())
            raise ConfigurationError(f"Unknown angle strategy '{name}'. Available: {available}")
        return strategy

    @classmethod
    def get_distance(cls, name: str, seed: Optional[int] = None) -> DistanceStrategy:
        """
        Get a distance strategy by name.

        Args:
            name: Registered strategy name
            seed: Seed for the jitter strategy (ignored by the others)

        Returns:
            Distance strategy function
        """
        if name.lower() == 'jitter' and seed is not None:
            return jitter_distance(seed)
        strategy = cls._distance_strategies.get(name.lower())
        if strategy is None:
            available = ', '.join(cls._distance_strategies.keys())
            raise ConfigurationError(f"Unknown distance strategy '{name}'. Available: {available}")
        return strategy

    @classmethod
    def name_of(cls, strategy: Callable) -> Optional[str]:
        """Find the registered name of a strategy, if any."""
        if getattr(strategy, 'strategy_name', None):
            return strategy.strategy_name
        for registry in (cls._angle_strategies, cls._distance_strategies):
            for name, candidate in registry.items():
                if candidate is strategy:
                    return name
        return None

    @classmethod
    def list_strategies(cls) -> Dict[str, List[str]]:
        """Get the registered strategy names by kind."""
        return {
            'angle': list(cls._angle_strategies.keys()),
            'distance': list(cls._distance_strategies.keys()),
        }
