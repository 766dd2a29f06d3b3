"""
Geometric helper functions for fractal tree generation.

This module provides the small numeric building blocks used by the tree
builder: range mapping, branch direction vectors and node-count estimation.
"""

import numbers

import numpy as np
from typing import Optional, Tuple
import logging

logger = logging.getLogger(__name__)


def linear_map(value: float, in_min: float, in_max: float,
               out_min: float, out_max: float) -> float:
    """
    Map a value from one range onto another.

    Args:
        value: Value to map
        in_min, in_max: Source range
        out_min, out_max: Target range (may be inverted)

    Returns:
        Linearly interpolated value in the target range
    """
    if in_max == in_min:
        raise ValueError("Input range must not be empty")
    return out_min + (value - in_min) * (out_max - out_min) / (in_max - in_min)


def direction_vector(angle: float, length: float) -> Tuple[float, float]:
    """
    Rotate the unit vector (1, 0) by angle and scale it by length.

    Args:
        angle: Rotation in radians
        length: Vector magnitude

    Returns:
        (dx, dy) tuple
    """
    rotation = np.array([[np.cos(angle), -np.sin(angle)],
                         [np.sin(angle), np.cos(angle)]])
    dx, dy = rotation @ np.array([1.0, 0.0]) * length
    return float(dx), float(dy)


def expected_node_count(depth: int, branching_factor: int,
                        limit: Optional[int] = None) -> int:
    """
    Count the nodes of a full tree: 1 + b + b^2 + ... + b^depth.

    Args:
        depth: Levels below the root
        branching_factor: Children per node
        limit: Stop counting as soon as the total exceeds this value

    Returns:
        Total node count (or the first partial sum above limit)
    """
    total = 1
    level_size = 1
    for _ in range(depth):
        level_size *= branching_factor
        total += level_size
        if limit is not None and total > limit:
            break
    return total


def scale_at_level(max_scale: float, scale_ratio: float, level: int) -> float:
    """Scale of any node at the given depth level."""
    return max_scale * scale_ratio ** level


def is_finite(value) -> bool:
    """Check that value is a real, finite number. Strings and bools are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return bool(np.isfinite(float(value)))
