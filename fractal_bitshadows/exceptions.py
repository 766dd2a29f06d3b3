"""
Exception hierarchy for fractal tree generation.

Every error raised while configuring or building a tree derives from
FractalError so callers can handle a failed build at a single call site.
"""


class FractalError(Exception):
    """Base class for all fractal generation errors."""


class ConfigurationError(FractalError, ValueError):
    """Raised when configuration values are invalid."""


class GeometryError(FractalError):
    """Raised when a strategy produces a non-finite or out-of-contract value."""


class ColorSourceError(FractalError):
    """Raised when a color source fails or runs out of colors."""


class ResourceLimitError(FractalError):
    """Raised when a build would exceed the configured node or depth caps."""
