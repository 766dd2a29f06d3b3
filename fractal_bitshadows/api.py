"""
High-level interface for building and rendering fractal trees.

TreeBuilder only returns data. FractalSpace wires a configuration, a color
source factory and a render sink together and offers the rebuild
operations an interactive front end needs (changing depth or resolution
and drawing again).
"""

from typing import Any, Callable, Optional, Protocol
import logging
import time

from .core.config import FractalConfig
from .core.point_node import FractalTree
from .core.tree_builder import ColorSource, TreeBuilder
from .rendering.coloring import default_palette
from .rendering.image_output import RenderMetadata, RenderSettings

logger = logging.getLogger(__name__)


class RenderSink(Protocol):
    """Consumer of finished trees."""

    def draw(self, tree: FractalTree, settings: RenderSettings) -> Any:
        ...


def generate(config: Optional[FractalConfig] = None,
             color_source: Optional[ColorSource] = None) -> FractalTree:
    """
    Build a tree in one call.

    Args:
        config: Build configuration (uses defaults if None)
        color_source: Color source (a fresh default palette if None)

    Returns:
        Finished tree
    """
    config = config or FractalConfig()
    if color_source is None:
        color_source = default_palette()
    return TreeBuilder().build(config, color_source)


class FractalSpace:
    """A configurable fractal scene that rebuilds on demand."""

    def __init__(self, config: Optional[FractalConfig] = None,
                 color_source_factory: Optional[Callable[[], ColorSource]] = None,
                 sink: Optional[RenderSink] = None,
                 settings: Optional[RenderSettings] = None,
                 max_depth: int = 10,
                 builder: Optional[TreeBuilder] = None):
        """
        Initialize the scene.

        Args:
            config: Build configuration (uses defaults if None)
            color_source_factory: Returns a fresh color source per build
            sink: Render host that receives every rebuilt tree
            settings: Render settings handed to the sink
            max_depth: Depth can be raised up to max_depth - 1
            builder: Tree builder to use
        """
        self.config = config or FractalConfig()
        self.color_source_factory = color_source_factory or default_palette
        self.sink = sink
        self.settings = settings or RenderSettings()
        self.max_depth = max_depth
        self.builder = builder or TreeBuilder()

        self.tree: Optional[FractalTree] = None
        self.last_output: Any = None
        self.last_metadata: Optional[RenderMetadata] = None

    def build(self) -> FractalTree:
        """Build a tree from the current configuration and a fresh color source."""
        start_time = time.time()
        tree = self.builder.build(self.config, self.color_source_factory())
        self.tree = tree
        self.last_metadata = RenderMetadata(
            node_count=len(tree),
            config=self.config.to_dict(),
            build_time_seconds=time.time() - start_time,
            render_settings=self.settings.to_dict(),
        )
        return tree

    def render(self) -> Any:
        """
        Rebuild and hand the tree to the sink.

        The sink is only called with a finished tree; if the build fails
        the error propagates and the sink is not invoked.

        Returns:
            Whatever the sink returns (the tree itself without a sink)
        """
        tree = self.build()
        if self.sink is None:
            self.last_output = tree
        else:
            self.last_output = self.sink.draw(tree, self.settings)
        return self.last_output

    def _render_or_restore(self, restore: Callable[[], None]) -> Any:
        """Render; if the build or the sink fails, undo the change and re-raise."""
        try:
            return self.render()
        except Exception:
            restore()
            raise

    def update_config(self, **changes) -> Any:
        """Change configuration fields and rebuild."""
        new_config = self.config.replace(**changes)
        old_config = self.config
        self.config = new_config

        def restore():
            self.config = old_config

        return self._render_or_restore(restore)

    def increase_depth(self) -> bool:
        """Add a level if the depth stays below max_depth. Returns whether it changed."""
        if self.config.depth + 1 < self.max_depth:
            self.update_config(depth=self.config.depth + 1)
            return True
        return False

    def decrease_depth(self) -> bool:
        """Remove a level while keeping at least one. Returns whether it changed."""
        if self.config.depth - 1 > 0:
            self.update_config(depth=self.config.depth - 1)
            return True
        return False

    def increase_resolution(self) -> bool:
        self._set_resolution(self.settings.resolution + 1)
        return True

    def decrease_resolution(self) -> bool:
        """Lower the resolution while keeping it positive. Returns whether it changed."""
        if self.settings.resolution - 1 > 0:
            self._set_resolution(self.settings.resolution - 1)
            return True
        return False

    def _set_resolution(self, resolution: int) -> None:
        old_resolution = self.settings.resolution
        self.settings.resolution = resolution
        logger.debug(f"Resolution: {resolution}")

        def restore():
            self.settings.resolution = old_resolution

        self._render_or_restore(restore)
