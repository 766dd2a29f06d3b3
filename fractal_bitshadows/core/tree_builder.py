"""
Fractal tree construction.

The builder starts from a root node and expands every node into
branching_factor children until the configured depth is used up. Expansion
runs on an explicit work stack, so the depth of the tree never touches the
interpreter's call stack, and nodes come out in depth-first pre-order with
children in ascending branch order. The color source is called once per
node in exactly that order.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Protocol, runtime_checkable
import logging

from ..exceptions import (ColorSourceError, FractalError, GeometryError,
                          ResourceLimitError)
from .config import FractalConfig
from .math_functions import direction_vector, expected_node_count, is_finite, linear_map
from .point_node import FractalTree, PointNode

logger = logging.getLogger(__name__)


@runtime_checkable
class ColorSource(Protocol):
    """Provider of the next color value, called once per node."""

    def next(self) -> Any:
        ...


def color_getter(color_source) -> Callable[[], Any]:
    """
    Wrap a color source in a zero-argument callable.

    Accepts objects with a next() method as well as plain iterators.
    FractalErrors raised by the source pass through unchanged; anything
    else, including iterator exhaustion, becomes a ColorSourceError.

    Args:
        color_source: ColorSource or iterator

    Returns:
        Callable returning the next color
    """
    if isinstance(color_source, ColorSource):
        fetch = color_source.next
    elif isinstance(color_source, Iterator):
        fetch = color_source.__next__
    else:
        raise ColorSourceError(
            f"Color source must define next() or be an iterator, got {type(color_source).__name__}")

    def get_color() -> Any:
        try:
            return fetch()
        except FractalError:
            raise
        except StopIteration:
            raise ColorSourceError("Color source is exhausted") from None
        except Exception as e:
            raise ColorSourceError(f"Color source failed: {e}") from e

    return get_color


@dataclass
class _Expansion:
    """Pending expansion of one node: values shared by all of its children."""
    node: PointNode
    remaining: int
    distance: float
    angles: List[float]
    child_scale: float
    child_opacity: float
    next_branch: int = 0


class TreeBuilder:
    """Builds fractal trees from a configuration and a color source."""

    def check_limits(self, config: FractalConfig) -> int:
        """
        Verify that a build stays within the configured safety caps.

        Args:
            config: Build configuration

        Returns:
            Number of nodes the build will create
        """
        if config.depth > config.max_recursion_depth:
            raise ResourceLimitError(
                f"depth {config.depth} exceeds the recursion cap of {config.max_recursion_depth}")

        count = expected_node_count(config.depth, config.branching_factor, limit=config.max_nodes)
        if count > config.max_nodes:
            raise ResourceLimitError(
                f"depth {config.depth} with branching factor {config.branching_factor} "
                f"exceeds the cap of {config.max_nodes} nodes")
        return count

    def build(self, config: FractalConfig, color_source) -> FractalTree:
        """
        Build the complete tree.

        Construction is all-or-nothing: any strategy or color source
        failure propagates and no partial tree is returned.

        Args:
            config: Build configuration
            color_source: ColorSource or iterator of colors

        Returns:
            Finished tree
        """
        start_time = time.time()
        nodes = list(self.iter_nodes(config, color_source))
        tree = FractalTree(nodes)

        logger.info(f"Built fractal tree: {len(tree)} nodes, depth {config.depth}, "
                    f"branching factor {config.branching_factor} "
                    f"({time.time() - start_time:.3f}s)")
        return tree

    def iter_nodes(self, config: FractalConfig, color_source) -> Iterator[PointNode]:
        """
        Produce the tree's nodes lazily in pre-order.

        Limits are checked immediately. Each call starts again from the
        root; abandoning the iterator cancels the remaining work.

        Args:
            config: Build configuration
            color_source: ColorSource or iterator of colors

        Returns:
            Iterator over the nodes
        """
        expected = self.check_limits(config)
        logger.debug(f"Generating {expected} nodes")
        return self._generate(config, color_getter(color_source))

    def _generate(self, config: FractalConfig, next_color: Callable[[], Any]) -> Iterator[PointNode]:
        root = PointNode(
            index=0,
            parent_index=None,
            location=(float(config.origin[0]), float(config.origin[1])),
            scale=float(config.max_scale),
            offset_angle=float(config.init_offset_angle),
            opacity=float(config.init_opacity),
            color=next_color(),
            hue=config.hue,
            saturation=config.saturation,
            lightness=config.lightness,
            blur=config.blur,
            depth_level=0,
        )
        yield root

        if config.depth == 0:
            return

        count = 1
        stack = [self._expand(config, root, config.depth - 1)]

        while stack:
            frame = stack[-1]
            if frame.next_branch == config.branching_factor:
                stack.pop()
                continue

            branch = frame.next_branch
            frame.next_branch += 1
            parent = frame.node

            offset_angle = parent.offset_angle + frame.angles[branch]
            dx, dy = direction_vector(offset_angle, frame.distance)

            child = PointNode(
                index=count,
                parent_index=parent.index,
                location=(parent.location[0] + dx, parent.location[1] + dy),
                scale=frame.child_scale,
                offset_angle=offset_angle,
                opacity=frame.child_opacity,
                color=next_color(),
                hue=parent.hue,
                saturation=parent.saturation,
                lightness=parent.lightness,
                blur=parent.blur,
                depth_level=parent.depth_level + 1,
            )
            count += 1
            yield child

            if frame.remaining > 0:
                stack.append(self._expand(config, child, frame.remaining - 1))

    def _expand(self, config: FractalConfig, node: PointNode, remaining: int) -> _Expansion:
        """Compute the values shared by all children of node."""
        child_scale = node.scale * config.scale_ratio
        return _Expansion(
            node=node,
            remaining=remaining,
            distance=self._distance(config, node),
            angles=self._angles(config),
            child_scale=child_scale,
            child_opacity=linear_map(child_scale, 0, config.max_scale, config.max_opacity, 0),
        )

    def _distance(self, config: FractalConfig, node: PointNode) -> float:
        try:
            distance = config.distance_strategy(node)
        except FractalError:
            raise
        except Exception as e:
            raise GeometryError(f"Distance strategy failed at node {node.index}: {e}") from e

        if not is_finite(distance) or float(distance) < 0:
            raise GeometryError(f"Distance strategy returned {distance!r} at node {node.index}")
        return float(distance)

    def _angles(self, config: FractalConfig) -> List[float]:
        try:
            angles = list(config.angle_strategy(config.angle_offset))
        except FractalError:
            raise
        except Exception as e:
            raise GeometryError(f"Angle strategy failed: {e}") from e

        if len(angles) != config.branching_factor:
            raise GeometryError(
                f"Angle strategy returned {len(angles)} angles, expected {config.branching_factor}")
        if not all(is_finite(a) for a in angles):
            raise GeometryError(f"Angle strategy returned non-numeric or non-finite angles: {angles}")
        return [float(a) for a in angles]


def build_tree(config: FractalConfig, color_source) -> FractalTree:
    """Build a tree with a default TreeBuilder."""
    return TreeBuilder().build(config, color_source)
