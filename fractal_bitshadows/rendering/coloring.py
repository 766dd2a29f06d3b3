"""
Color palettes and color sources for fractal trees.

The tree builder only needs something with a next() method. This module
provides RGB colors, interpolating palettes and several color sources:
random draws from stepped gradients, deterministic cycles and a gradient
cursor that sweeps along a palette.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple, Union
from dataclasses import dataclass
import logging
from pathlib import Path

import matplotlib

from ..core.tree_builder import ColorSource
from ..exceptions import ColorSourceError

logger = logging.getLogger(__name__)

__all__ = [
    'ColorRGB', 'as_color', 'Palette', 'ColorSource', 'GradientColorPalette',
    'CyclingColorSource', 'PaletteSweep', 'default_palette',
    'create_color_source', 'list_palettes',
]

ColorLike = Union['ColorRGB', Sequence[float]]


@dataclass(frozen=True)
class ColorRGB:
    """RGB color representation."""
    r: float
    g: float
    b: float

    def __post_init__(self):
        """Validate RGB values."""
        for component in [self.r, self.g, self.b]:
            if not 0 <= component <= 1:
                raise ValueError("RGB components must be between 0 and 1")

    @classmethod
    def from_uint8(cls, r: int, g: int, b: int) -> 'ColorRGB':
        """Create a color from 8-bit components."""
        return cls(r / 255.0, g / 255.0, b / 255.0)

    def to_tuple(self) -> Tuple[float, float, float]:
        """Convert to RGB tuple."""
        return (self.r, self.g, self.b)

    def to_uint8_tuple(self) -> Tuple[int, int, int]:
        """Convert to 8-bit RGB tuple."""
        return (int(round(self.r * 255)), int(round(self.g * 255)), int(round(self.b * 255)))

    def to_hex(self) -> str:
        return '#{:02x}{:02x}{:02x}'.format(*self.to_uint8_tuple())

    def lerp(self, other: 'ColorRGB', t: float) -> 'ColorRGB':
        """Linear interpolation towards another color."""
        def mix(a: float, b: float) -> float:
            return min(1.0, max(0.0, a + t * (b - a)))

        return ColorRGB(mix(self.r, other.r), mix(self.g, other.g), mix(self.b, other.b))


def as_color(color: ColorLike) -> ColorRGB:
    """
    Convert a color triple to ColorRGB.

    Triples of integers are 8-bit components (0-255); any other numeric
    triple is read as 0-1 floats. (0, 1, 0) is therefore nearly black,
    while (0.0, 1.0, 0.0) is green.
    """
    if isinstance(color, ColorRGB):
        return color
    if isinstance(color, (tuple, list, np.ndarray)) and len(color) == 3:
        if all(isinstance(c, (int, np.integer)) and not isinstance(c, bool) for c in color):
            return ColorRGB.from_uint8(*(int(c) for c in color))
        return ColorRGB(*(float(c) for c in color))
    raise ValueError(f"Invalid color format: {color!r}")


class Palette:
    """Color palette management and interpolation."""

    def __init__(self, colors: List[ColorLike], name: str = "Custom"):
        """
        Initialize color palette.

        Args:
            colors: List of colors in the palette
            name: Human-readable name for the palette
        """
        self.name = name
        self.colors = [as_color(color) for color in colors]

        if len(self.colors) < 2:
            raise ValueError("Palette must contain at least 2 colors")

    def interpolate(self, t: float) -> ColorRGB:
        """
        Interpolate color at position t (0-1).

        Args:
            t: Position in palette, clipped to [0, 1]

        Returns:
            Interpolated color
        """
        t = float(np.clip(t, 0.0, 1.0))

        segment_size = 1.0 / (len(self.colors) - 1)
        segment_idx = int(t / segment_size)

        if segment_idx >= len(self.colors) - 1:
            return self.colors[-1]

        local_t = (t - segment_idx * segment_size) / segment_size
        return self.colors[segment_idx].lerp(self.colors[segment_idx + 1], local_t)

    @classmethod
    def from_matplotlib(cls, cmap_name: str, n_samples: int = 32) -> 'Palette':
        """Create palette from a matplotlib colormap."""
        try:
            cmap = matplotlib.colormaps[cmap_name]
        except KeyError:
            raise ValueError(f"Unknown matplotlib colormap '{cmap_name}'") from None

        colors = []
        for t in np.linspace(0, 1, n_samples):
            rgba = cmap(t)
            colors.append(ColorRGB(float(rgba[0]), float(rgba[1]), float(rgba[2])))

        return cls(colors, name=f"From_{cmap_name}")

    def save_to_file(self, filepath: Path) -> None:
        """Save palette to file in GPL format."""
        with open(filepath, 'w') as f:
            f.write("GIMP Palette\n")
            f.write(f"Name: {self.name}\n")
            f.write("#\n")

            for i, color in enumerate(self.colors):
                r, g, b = color.to_uint8_tuple()
                f.write(f"{r:3d} {g:3d} {b:3d} Color_{i}\n")

    @classmethod
    def load_from_file(cls, filepath: Path) -> 'Palette':
        """Load palette from GPL file."""
        colors = []
        name = "Loaded_Palette"

        with open(filepath, 'r') as f:
            for line in f:
                line = line.strip()
                if line.startswith("Name:"):
                    name = line.split(":", 1)[1].strip()
                elif line and not line.startswith("#") and not line.startswith("GIMP"):
                    parts = line.split()
                    if len(parts) >= 3:
                        try:
                            r, g, b = int(parts[0]), int(parts[1]), int(parts[2])
                        except ValueError:
                            continue
                        colors.append(ColorRGB.from_uint8(r, g, b))

        if not colors:
            raise ValueError(f"No valid colors found in {filepath}")

        return cls(colors, name)


class GradientColorPalette:
    """
    Random color draws from a set of stepped gradients.

    Each add_color() call appends a gradient between two colors with a
    random number of steps in [min, max]. next() picks one of all stored
    colors at random. The random generator is seeded, and reset() rewinds
    it, so a reset palette replays the same colors.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._gradient_args: List[Tuple[int, int, ColorRGB, ColorRGB]] = []
        self.reset()

    def add_color(self, min: int, max: int, start_color: ColorLike,
                  end_color: ColorLike) -> 'GradientColorPalette':
        """
        Add a gradient to the palette.

        Args:
            min: Minimum number of gradient steps
            max: Maximum number of gradient steps
            start_color: First color of the gradient
            end_color: Last color of the gradient

        Returns:
            The palette, for chaining
        """
        if min < 1 or max < min:
            raise ValueError("Gradient steps need 1 <= min <= max")

        gradient = (int(min), int(max), as_color(start_color), as_color(end_color))
        self._gradient_args.append(gradient)
        self._colors.extend(self._make_gradient(*gradient))
        return self

    def _make_gradient(self, min_steps: int, max_steps: int,
                       start: ColorRGB, end: ColorRGB) -> List[ColorRGB]:
        steps = int(self._rng.integers(min_steps, max_steps + 1))
        if steps == 1:
            return [start]
        return [start.lerp(end, i / (steps - 1)) for i in range(steps)]

    def next(self) -> ColorRGB:
        """Return a random color from the palette."""
        if not self._colors:
            raise ColorSourceError("Palette has no colors; call add_color() first")
        return self._colors[int(self._rng.integers(0, len(self._colors)))]

    def reset(self) -> None:
        """Rewind the random generator and regenerate the gradients."""
        self._rng = np.random.default_rng(self.seed)
        self._colors: List[ColorRGB] = []
        for gradient in self._gradient_args:
            self._colors.extend(self._make_gradient(*gradient))

    def __len__(self) -> int:
        return len(self._colors)


class CyclingColorSource:
    """Deterministic color source that cycles through a fixed list."""

    def __init__(self, colors: Sequence, limit: Optional[int] = None):
        """
        Initialize the cycle.

        Args:
            colors: Colors to hand out, in order
            limit: Total number of colors available before the source
                reports exhaustion (unlimited if None)
        """
        if not colors:
            raise ValueError("CyclingColorSource needs at least one color")
        self.colors = list(colors)
        self.limit = limit
        self.reset()

    def next(self):
        if self.limit is not None and self._count >= self.limit:
            raise ColorSourceError(f"Color source exhausted after {self.limit} colors")
        color = self.colors[self._count % len(self.colors)]
        self._count += 1
        return color

    def reset(self) -> None:
        self._count = 0


class PaletteSweep:
    """Gradient cursor that walks along a palette and wraps around."""

    def __init__(self, palette: Palette, steps: int = 64):
        if steps < 1:
            raise ValueError("steps must be >= 1")
        self.palette = palette
        self.steps = steps
        self.reset()

    def next(self) -> ColorRGB:
        t = (self._position % self.steps) / max(1, self.steps - 1)
        self._position += 1
        return self.palette.interpolate(t)

    def reset(self) -> None:
        self._position = 0


def default_palette(seed: Optional[int] = None) -> GradientColorPalette:
    """The five-gradient palette used when no palette is configured."""
    palette = GradientColorPalette(seed)
    palette.add_color(
        min=12, max=24, start_color=(196, 213, 86), end_color=(166, 183, 56)
    ).add_color(
        min=12, max=24, start_color=(56, 139, 126), end_color=(26, 109, 96)
    ).add_color(
        min=12, max=24, start_color=(104, 233, 212), end_color=(74, 203, 182)
    ).add_color(
        min=12, max=24, start_color=(233, 158, 104), end_color=(203, 128, 74)
    ).add_color(
        min=12, max=24, start_color=(191, 75, 49), end_color=(171, 55, 19)
    )
    return palette


def _create_builtin_palettes() -> Dict[str, Palette]:
    """Create built-in color palettes."""
    return {
        'hot': Palette([
            ColorRGB(0, 0, 0),
            ColorRGB(1, 0, 0),
            ColorRGB(1, 1, 0),
            ColorRGB(1, 1, 1),
        ], name="Hot"),
        'cool': Palette([
            ColorRGB(0, 0, 0),
            ColorRGB(0, 0, 1),
            ColorRGB(0, 1, 1),
            ColorRGB(1, 1, 1),
        ], name="Cool"),
        'gray': Palette([
            ColorRGB(0, 0, 0),
            ColorRGB(1, 1, 1),
        ], name="Grayscale"),
        'fire': Palette([
            ColorRGB(0, 0, 0),
            ColorRGB(0.5, 0, 0),
            ColorRGB(1, 0, 0),
            ColorRGB(1, 0.5, 0),
            ColorRGB(1, 1, 0),
            ColorRGB(1, 1, 1),
        ], name="Fire"),
        'ocean': Palette([
            ColorRGB(0, 0, 0.2),
            ColorRGB(0, 0, 0.8),
            ColorRGB(0, 0.5, 1),
            ColorRGB(0, 1, 1),
            ColorRGB(0.5, 1, 1),
            ColorRGB(1, 1, 1),
        ], name="Ocean"),
    }


BUILTIN_PALETTES = _create_builtin_palettes()


def list_palettes() -> List[str]:
    """Names accepted by create_color_source (besides matplotlib colormaps)."""
    return ['default'] + list(BUILTIN_PALETTES.keys())


def create_color_source(name: str = 'default', seed: Optional[int] = None,
                        steps: int = 64) -> ColorSource:
    """
    Create a fresh color source by name.

    Args:
        name: 'default', a built-in palette name or a matplotlib colormap
        seed: Seed for the random default palette
        steps: Sweep length for palette-based sources

    Returns:
        New color source positioned at its start
    """
    key = name.lower()
    if key == 'default':
        return default_palette(seed)
    if key in BUILTIN_PALETTES:
        return PaletteSweep(BUILTIN_PALETTES[key], steps)

    try:
        palette = Palette.from_matplotlib(name)
    except ValueError:
        available = ', '.join(list_palettes())
        raise ValueError(f"Unknown palette '{name}'. Available: {available} "
                         f"or any matplotlib colormap") from None
    logger.debug(f"Using matplotlib colormap palette: {name}")
    return PaletteSweep(palette, steps)
