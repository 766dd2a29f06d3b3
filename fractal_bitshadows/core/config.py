"""
Build configuration for fractal trees.

FractalConfig is an immutable, validated parameter set. Every option has a
default, and values left unset (or passed as None through from_dict) fall
back to that default.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple
import logging

from ..exceptions import ConfigurationError
from .math_functions import is_finite
from .strategies import (AngleStrategy, DistanceStrategy, StrategyRegistry,
                         even_angles, scaled_distance)

logger = logging.getLogger(__name__)

# Option names accepted by from_dict besides the field names themselves.
OPTION_ALIASES = {
    'maxScale': 'max_scale',
    'scaleRatio': 'scale_ratio',
    'branchingFactor': 'branching_factor',
    'maxShapes': 'branching_factor',
    'max_shapes': 'branching_factor',
    'maxOpacity': 'max_opacity',
    'initOffsetAngle': 'init_offset_angle',
    'initOpacity': 'init_opacity',
    'angleOffset': 'angle_offset',
    'getDist': 'distance_strategy',
    'distanceStrategy': 'distance_strategy',
    'getAngles': 'angle_strategy',
    'angleStrategy': 'angle_strategy',
    'maxNodes': 'max_nodes',
    'maxRecursionDepth': 'max_recursion_depth',
}

_FLOAT_FIELDS = (
    'max_scale', 'scale_ratio', 'max_opacity', 'init_offset_angle',
    'init_opacity', 'angle_offset', 'hue', 'saturation', 'lightness', 'blur',
)


@dataclass(frozen=True)
class FractalConfig:
    """Parameters for one tree build."""

    # Shape
    max_scale: float = 40.0
    scale_ratio: float = 0.6
    depth: int = 9
    branching_factor: int = 3

    # Appearance
    max_opacity: float = 0.5
    init_offset_angle: float = 0.0
    init_opacity: float = 0.0
    hue: float = 200.0
    saturation: float = 0.5
    lightness: float = 0.5
    blur: float = 0.0

    # Placement
    angle_offset: float = 0.0
    origin: Tuple[float, float] = (0.0, 0.0)
    distance_strategy: DistanceStrategy = field(default=scaled_distance, compare=False)
    # None binds even_angles to branching_factor
    angle_strategy: Optional[AngleStrategy] = field(default=None, compare=False)

    # Safety caps
    max_nodes: int = 1_000_000
    max_recursion_depth: int = 1000

    def __post_init__(self):
        if self.angle_strategy is None:
            object.__setattr__(self, 'angle_strategy', even_angles(self.branching_factor))
        self.validate()

    def validate(self) -> None:
        """Validate parameter values."""
        for name in _FLOAT_FIELDS:
            if not is_finite(getattr(self, name)):
                raise ConfigurationError(f"{name} must be a finite number")

        for name in ('depth', 'branching_factor', 'max_nodes', 'max_recursion_depth'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer")

        if self.branching_factor < 1:
            raise ConfigurationError("branching_factor must be >= 1")
        if self.depth < 0:
            raise ConfigurationError("depth must be >= 0")
        if self.max_scale <= 0:
            raise ConfigurationError("max_scale must be positive")
        if not 0 < self.scale_ratio <= 1:
            raise ConfigurationError("scale_ratio must be in (0, 1]")
        if not 0 <= self.max_opacity <= 1:
            raise ConfigurationError("max_opacity must be in [0, 1]")
        if self.blur < 0:
            raise ConfigurationError("blur must be >= 0")
        if self.max_nodes < 1:
            raise ConfigurationError("max_nodes must be >= 1")
        if self.max_recursion_depth < 0:
            raise ConfigurationError("max_recursion_depth must be >= 0")

        if not isinstance(self.origin, (tuple, list)) or len(self.origin) != 2 or \
                not all(is_finite(v) for v in self.origin):
            raise ConfigurationError("origin must be a pair of finite numbers")

        if not callable(self.distance_strategy):
            raise ConfigurationError("distance_strategy must be callable")
        if not callable(self.angle_strategy):
            raise ConfigurationError("angle_strategy must be callable")

    def replace(self, **changes) -> 'FractalConfig':
        """
        Return a validated copy with some fields changed.

        An even angle strategy bound to the current branching factor is
        rebound when the branching factor changes.
        """
        if 'angle_strategy' not in changes and self._follows_branching_factor():
            changes['angle_strategy'] = None
        return dataclasses.replace(self, **changes)

    def _follows_branching_factor(self) -> bool:
        return (getattr(self.angle_strategy, 'strategy_name', None) == 'even' and
                getattr(self.angle_strategy, 'branching_factor', None) == self.branching_factor)

    def to_dict(self) -> Dict[str, Any]:
        """Convert parameters to a plain dictionary."""
        data = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if f.name in ('distance_strategy', 'angle_strategy'):
                value = StrategyRegistry.name_of(value) or getattr(value, '__name__', 'custom')
            elif f.name == 'origin':
                value = list(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], seed: Optional[int] = None) -> 'FractalConfig':
        """
        Create a configuration from an options mapping.

        Args:
            data: Options keyed by field name or by their camelCase aliases.
                None values are treated as unset. Strategy values may be
                callables or registered strategy names.
            seed: Seed for seeded strategies resolved by name

        Returns:
            Validated configuration
        """
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs: Dict[str, Any] = {}
        unknown = []

        for key, value in data.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                unknown.append(key)
                continue
            if value is None:
                continue
            kwargs[name] = value

        if unknown:
            raise ConfigurationError(f"Unknown configuration options: {', '.join(sorted(unknown))}")

        if isinstance(kwargs.get('distance_strategy'), str):
            kwargs['distance_strategy'] = StrategyRegistry.get_distance(kwargs['distance_strategy'], seed)
        if isinstance(kwargs.get('angle_strategy'), str):
            kwargs['angle_strategy'] = StrategyRegistry.get_angle(
                kwargs['angle_strategy'], kwargs.get('branching_factor', cls.branching_factor))
        if 'origin' in kwargs:
            kwargs['origin'] = tuple(kwargs['origin'])

        return cls(**kwargs)
