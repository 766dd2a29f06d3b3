"""
Self-similar fractal trees of positioned, scaled and colored shapes.

Starting from a root point, every node branches into a fixed number of
children placed by configurable angle and distance rules, each level
smaller than the last. The result is a finished tree of shape descriptors
(location, scale, rotation, opacity, color) ready for any renderer.

Example usage:
    >>> from fractal_bitshadows import FractalConfig, TreeBuilder, default_palette
    >>> config = FractalConfig(depth=4, branching_factor=3)
    >>> tree = TreeBuilder().build(config, default_palette(seed=1))
    >>> len(tree)
    121
"""

__version__ = "0.1.0"
__author__ = "Fractal BitShadows Team"

from fractal_bitshadows.exceptions import (FractalError, ConfigurationError, GeometryError,
                                           ColorSourceError, ResourceLimitError)
from fractal_bitshadows.core.config import FractalConfig
from fractal_bitshadows.core.strategies import (StrategyRegistry, even_angles, fixed_angles,
                                                scaled_distance, wide_distance, jitter_distance)
from fractal_bitshadows.core.point_node import PointNode, FractalTree
from fractal_bitshadows.core.tree_builder import TreeBuilder, ColorSource, build_tree
from fractal_bitshadows.rendering.coloring import (ColorRGB, Palette, GradientColorPalette,
                                                   CyclingColorSource, PaletteSweep,
                                                   default_palette, create_color_source)
from fractal_bitshadows.rendering.image_output import ImageSink, RenderSettings, RenderMetadata, export_nodes
from fractal_bitshadows.io.config import ConfigManager

# Main API classes
from fractal_bitshadows.api import FractalSpace, RenderSink, generate

__all__ = [
    "FractalConfig",
    "TreeBuilder",
    "build_tree",
    "generate",
    "FractalSpace",
    "RenderSink",
    "PointNode",
    "FractalTree",
    "ColorSource",
    "StrategyRegistry",
    "even_angles",
    "fixed_angles",
    "scaled_distance",
    "wide_distance",
    "jitter_distance",
    "ColorRGB",
    "Palette",
    "GradientColorPalette",
    "CyclingColorSource",
    "PaletteSweep",
    "default_palette",
    "create_color_source",
    "ImageSink",
    "RenderSettings",
    "RenderMetadata",
    "export_nodes",
    "ConfigManager",
    "FractalError",
    "ConfigurationError",
    "GeometryError",
    "ColorSourceError",
    "ResourceLimitError",
]
