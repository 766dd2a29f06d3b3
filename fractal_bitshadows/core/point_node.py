"""
Tree nodes and the arena that owns them.

A PointNode is an immutable shape descriptor. Nodes live in a FractalTree
arena in pre-order; each node stores its own arena index and its parent's
index, and the arena keeps the child index lists.
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointNode:
    """A positioned, scaled, colored shape in the fractal tree."""

    index: int
    parent_index: Optional[int]
    location: Tuple[float, float]
    scale: float
    offset_angle: float
    opacity: float
    color: Any
    hue: float
    saturation: float
    lightness: float
    blur: float
    depth_level: int

    @property
    def x(self) -> float:
        return self.location[0]

    @property
    def y(self) -> float:
        return self.location[1]

    @property
    def is_root(self) -> bool:
        return self.parent_index is None

    def to_dict(self) -> Dict[str, Any]:
        """Render descriptor for this node."""
        return {
            'location': list(self.location),
            'scale': self.scale,
            'offset_angle': self.offset_angle,
            'opacity': self.opacity,
            'color': self.color,
            'hue': self.hue,
            'saturation': self.saturation,
            'lightness': self.lightness,
            'blur': self.blur,
            'depth_level': self.depth_level,
        }


NodeRef = Union[PointNode, int]


class FractalTree:
    """Read-only arena of nodes in depth-first pre-order."""

    def __init__(self, nodes: Sequence[PointNode]):
        """
        Initialize the arena.

        Args:
            nodes: Nodes in pre-order; nodes[i].index must equal i
        """
        if not nodes:
            raise ValueError("A tree needs at least a root node")

        self._nodes: Tuple[PointNode, ...] = tuple(nodes)
        children: List[List[int]] = [[] for _ in self._nodes]
        for node in self._nodes[1:]:
            children[node.parent_index].append(node.index)
        self._children = tuple(tuple(c) for c in children)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[PointNode]:
        return iter(self._nodes)

    def __getitem__(self, index: int) -> PointNode:
        return self._nodes[index]

    @property
    def root(self) -> PointNode:
        return self._nodes[0]

    @property
    def nodes(self) -> Tuple[PointNode, ...]:
        return self._nodes

    def _index(self, node: NodeRef) -> int:
        return node.index if isinstance(node, PointNode) else int(node)

    def children(self, node: NodeRef) -> Tuple[PointNode, ...]:
        """Children of a node in ascending branch order."""
        return tuple(self._nodes[i] for i in self._children[self._index(node)])

    def parent(self, node: NodeRef) -> Optional[PointNode]:
        parent_index = self._nodes[self._index(node)].parent_index
        return None if parent_index is None else self._nodes[parent_index]

    def lineage(self, node: NodeRef) -> List[PointNode]:
        """The node followed by each of its ancestors up to the root."""
        current = self._nodes[self._index(node)]
        chain = [current]
        while current.parent_index is not None:
            current = self._nodes[current.parent_index]
            chain.append(current)
        return chain

    def level(self, depth_level: int) -> List[PointNode]:
        """All nodes at a depth level, in pre-order."""
        return [node for node in self._nodes if node.depth_level == depth_level]

    def leaves(self) -> List[PointNode]:
        return [node for node in self._nodes if not self._children[node.index]]

    def bounds(self) -> Tuple[float, float, float, float]:
        """Extent of node centers as (xmin, xmax, ymin, ymax)."""
        arrays = self.to_arrays()
        return (float(arrays['x'].min()), float(arrays['x'].max()),
                float(arrays['y'].min()), float(arrays['y'].max()))

    def to_records(self) -> List[Dict[str, Any]]:
        """Flattened render descriptors in pre-order."""
        return [node.to_dict() for node in self._nodes]

    def to_arrays(self) -> Dict[str, np.ndarray]:
        """
        Numeric node fields as column arrays.

        Colors are omitted since they are opaque values. The root's
        parent_index is stored as -1.

        Returns:
            Dictionary of 1-D arrays, one entry per node
        """
        nodes = self._nodes
        return {
            'x': np.array([n.location[0] for n in nodes], dtype=np.float64),
            'y': np.array([n.location[1] for n in nodes], dtype=np.float64),
            'scale': np.array([n.scale for n in nodes], dtype=np.float64),
            'offset_angle': np.array([n.offset_angle for n in nodes], dtype=np.float64),
            'opacity': np.array([n.opacity for n in nodes], dtype=np.float64),
            'depth_level': np.array([n.depth_level for n in nodes], dtype=np.int64),
            'parent_index': np.array([-1 if n.parent_index is None else n.parent_index
                                      for n in nodes], dtype=np.int64),
        }
