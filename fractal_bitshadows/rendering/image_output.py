"""
Raster rendering and export of fractal trees.

This module is a render host for finished trees: ImageSink draws every node
as a translucent disc with Pillow and saves PNG/JPEG files with embedded
metadata, and export_nodes writes the flattened node descriptors as JSON or
NumPy archives.
"""

import colorsys
import numpy as np
from typing import Any, Dict, Optional, Tuple
from pathlib import Path
from dataclasses import dataclass, asdict, field
import json
import logging
from datetime import datetime

from PIL import Image, ImageColor, ImageDraw, ImageFilter, PngImagePlugin

from .. import __version__
from ..core.point_node import FractalTree, PointNode
from .coloring import ColorRGB, as_color

logger = logging.getLogger(__name__)


@dataclass
class RenderSettings:
    """Canvas settings for the raster render host."""

    width: int = 960
    height: int = 540
    resolution: int = 2  # pixels per world unit
    background_color: Tuple[int, int, int] = (0, 0, 0)
    color_mode: str = 'rgba'  # 'rgba' uses node colors, 'hsla' uses hue/saturation/lightness

    def __post_init__(self):
        self.background_color = tuple(self.background_color)
        self.validate()

    def validate(self):
        """Validate settings."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Width and height must be positive")

        if self.resolution <= 0:
            raise ValueError("resolution must be positive")

        if len(self.background_color) != 3 or not all(0 <= c <= 255 for c in self.background_color):
            raise ValueError("background_color must be an (r, g, b) tuple with values 0-255")

        if self.color_mode not in ('rgba', 'hsla'):
            raise ValueError("color_mode must be 'rgba' or 'hsla'")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['background_color'] = list(self.background_color)
        return data


@dataclass
class RenderMetadata:
    """Metadata for fractal renders."""

    node_count: int
    config: Dict[str, Any]
    build_time_seconds: float = 0.0
    render_settings: Dict[str, Any] = field(default_factory=dict)
    palette: str = "default"
    timestamp: str = ""
    software_version: str = __version__

    def __post_init__(self):
        """Set default timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderMetadata':
        """Create metadata from dictionary."""
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        """Create metadata from JSON string."""
        return cls.from_dict(json.loads(json_str))


def color_to_rgb(color: Any) -> Tuple[int, int, int]:
    """
    Convert an opaque node color to an 8-bit RGB tuple.

    Supports ColorRGB, (r, g, b) tuples read the same way as as_color()
    (integers 0-255, otherwise 0-1 floats), Pillow color strings and None
    (white).
    """
    if color is None:
        return (255, 255, 255)
    if isinstance(color, ColorRGB):
        return color.to_uint8_tuple()
    if isinstance(color, str):
        return ImageColor.getrgb(color)[:3]
    if isinstance(color, (tuple, list, np.ndarray)) and len(color) >= 3:
        return as_color(tuple(color[:3])).to_uint8_tuple()
    raise ValueError(f"Unsupported color value: {color!r}")


def serialize_color(color: Any) -> Any:
    """JSON-friendly form of an opaque node color."""
    if isinstance(color, ColorRGB):
        return color.to_hex()
    if isinstance(color, np.ndarray):
        return color.tolist()
    if isinstance(color, (tuple, list)):
        return list(color)
    if color is None or isinstance(color, (str, int, float)):
        return color
    return str(color)


class ImageSink:
    """Render host that rasterizes trees with Pillow."""

    def __init__(self, settings: Optional[RenderSettings] = None):
        """
        Initialize the sink.

        Args:
            settings: Canvas settings (uses defaults if None)
        """
        self.settings = settings or RenderSettings()
        self.last_image: Optional[Image.Image] = None

        self.supported_formats = {
            '.png': self._save_png,
            '.jpg': self._save_jpeg,
            '.jpeg': self._save_jpeg,
        }

    def node_fill(self, node: PointNode, settings: RenderSettings) -> Tuple[int, int, int, int]:
        """RGBA fill for one node."""
        if settings.color_mode == 'hsla':
            r, g, b = colorsys.hls_to_rgb((node.hue % 360) / 360.0,
                                          float(np.clip(node.lightness, 0, 1)),
                                          float(np.clip(node.saturation, 0, 1)))
            rgb = (int(round(r * 255)), int(round(g * 255)), int(round(b * 255)))
        else:
            rgb = color_to_rgb(node.color)

        alpha = int(round(float(np.clip(node.opacity, 0, 1)) * 255))
        return rgb + (alpha,)

    def draw(self, tree: FractalTree, settings: Optional[RenderSettings] = None) -> Image.Image:
        """
        Rasterize a tree.

        Node locations are world units measured from the canvas center;
        one world unit spans `resolution` pixels.

        Args:
            tree: Finished tree
            settings: Overrides the sink's settings for this call

        Returns:
            RGB image
        """
        settings = settings or self.settings
        settings.validate()

        image = Image.new('RGB', (settings.width, settings.height), settings.background_color)
        canvas = ImageDraw.Draw(image, 'RGBA')

        cx = settings.width / 2
        cy = settings.height / 2
        drawn = 0

        for node in tree:
            fill = self.node_fill(node, settings)
            if fill[3] == 0:
                continue

            px = cx + node.location[0] * settings.resolution
            py = cy + node.location[1] * settings.resolution
            radius = max(0.5, node.scale * settings.resolution / 2)
            canvas.ellipse([px - radius, py - radius, px + radius, py + radius], fill=fill)
            drawn += 1

        if tree.root.blur > 0:
            image = image.filter(ImageFilter.GaussianBlur(tree.root.blur))

        logger.debug(f"Drew {drawn} of {len(tree)} nodes at resolution {settings.resolution}")
        self.last_image = image
        return image

    def save(self, image: Image.Image, filepath: Path,
             metadata: Optional[RenderMetadata] = None, quality: int = 95) -> None:
        """
        Save a rendered image.

        Args:
            image: Image returned by draw()
            filepath: Output file path (.png, .jpg or .jpeg)
            metadata: Render metadata to embed (PNG only)
            quality: JPEG quality (1-100)
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        if suffix not in self.supported_formats:
            supported = ', '.join(self.supported_formats.keys())
            raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

        filepath.parent.mkdir(parents=True, exist_ok=True)
        self.supported_formats[suffix](image, filepath, metadata, quality)

        logger.info(f"Saved image: {filepath} ({image.size[0]}x{image.size[1]})")

    def _save_png(self, image: Image.Image, filepath: Path,
                  metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as PNG with metadata."""
        pnginfo = PngImagePlugin.PngInfo()

        if metadata:
            pnginfo.add_text("Title", "Fractal tree")
            pnginfo.add_text("Software", f"fractal-bitshadows v{metadata.software_version}")
            pnginfo.add_text("Creation Time", metadata.timestamp)
            pnginfo.add_text("FractalMetadata", metadata.to_json())

        image.save(filepath, "PNG", pnginfo=pnginfo, compress_level=6)

    def _save_jpeg(self, image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as JPEG."""
        if metadata:
            logger.debug("JPEG output does not carry render metadata")
        image.save(filepath, "JPEG", quality=quality, optimize=True)

    @staticmethod
    def extract_metadata(filepath: Path) -> Optional[RenderMetadata]:
        """Read render metadata back from a PNG written by save()."""
        with Image.open(filepath) as image:
            text = getattr(image, 'text', {}) or {}
            if 'FractalMetadata' not in text:
                return None
            return RenderMetadata.from_json(text['FractalMetadata'])


def export_nodes(tree: FractalTree, filepath: Path,
                 metadata: Optional[RenderMetadata] = None) -> Path:
    """
    Write flattened node descriptors to disk.

    Args:
        tree: Finished tree
        filepath: Output path; .json writes records, .npz writes column arrays
        metadata: Optional metadata stored alongside the nodes

    Returns:
        Path that was written
    """
    filepath = Path(filepath)
    suffix = filepath.suffix.lower()
    filepath.parent.mkdir(parents=True, exist_ok=True)

    if suffix == '.json':
        records = tree.to_records()
        for record in records:
            record['color'] = serialize_color(record['color'])
        payload = {
            'metadata': metadata.to_dict() if metadata else None,
            'nodes': records,
        }
        with open(filepath, 'w') as f:
            json.dump(payload, f)

    elif suffix == '.npz':
        arrays = tree.to_arrays()
        arrays['color'] = np.array([json.dumps(serialize_color(n.color)) for n in tree])
        np.savez(filepath, **arrays)
        if metadata:
            with open(filepath.with_suffix('.json'), 'w') as f:
                f.write(metadata.to_json())

    else:
        raise ValueError(f"Unsupported export format '{suffix}'. Supported: .json, .npz")

    logger.info(f"Exported {len(tree)} nodes: {filepath}")
    return filepath


def load_node_arrays(filepath: Path) -> Tuple[Dict[str, np.ndarray], Optional[RenderMetadata]]:
    """
    Load node arrays written by export_nodes.

    Args:
        filepath: Input file path (.npz)

    Returns:
        Tuple of (arrays, metadata)
    """
    filepath = Path(filepath)
    with np.load(filepath) as data:
        arrays = {key: data[key] for key in data.files}

    metadata = None
    metadata_path = filepath.with_suffix('.json')
    if metadata_path.exists():
        try:
            with open(metadata_path, 'r') as f:
                metadata = RenderMetadata.from_json(f.read())
        except (ValueError, TypeError) as e:
            logger.warning(f"Could not load metadata from {metadata_path}: {e}")

    return arrays, metadata
