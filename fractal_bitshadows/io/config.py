"""
Configuration file management.

Configuration files are YAML or JSON documents with up to four sections:
``fractal`` (FractalConfig options), ``render`` (RenderSettings),
``palette`` (color source name and seed) and ``presets`` (named partial
overrides of the other sections). Values in a file are merged over the
built-in defaults.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

import yaml

from ..core.config import FractalConfig
from ..exceptions import ConfigurationError
from ..rendering.coloring import ColorSource, create_color_source
from ..rendering.image_output import RenderSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'fractal': {
        'max_scale': 40,
        'scale_ratio': 0.6,
        'depth': 9,
        'branching_factor': 3,
        'max_opacity': 0.5,
        'init_offset_angle': 0,
        'init_opacity': 0,
        'angle_offset': 0,
        'hue': 200,
        'saturation': 0.5,
        'lightness': 0.5,
        'blur': 0,
        'distance_strategy': 'scaled',
        'angle_strategy': 'even',
        'max_nodes': 1_000_000,
        'max_recursion_depth': 1000,
    },
    'render': {
        'width': 960,
        'height': 540,
        'resolution': 2,
        'background_color': [0, 0, 0],
        'color_mode': 'rgba',
    },
    'palette': {
        'name': 'default',
        'seed': None,
        'steps': 64,
    },
    'presets': {
        'classic': {
            '_description': 'Three-way branching with the default palette',
        },
        'wide': {
            '_description': 'Branches spaced three and a half scales apart',
            'fractal': {'distance_strategy': 'wide', 'depth': 7},
            'render': {'resolution': 1},
        },
        'jitter': {
            '_description': 'Randomized branch lengths, reproducible by seed',
            'fractal': {'distance_strategy': 'jitter'},
            'palette': {'seed': 7},
        },
        'dense': {
            '_description': 'Five branches per node over fewer levels',
            'fractal': {'branching_factor': 5, 'depth': 6, 'scale_ratio': 0.45},
            'palette': {'name': 'ocean'},
        },
    },
}

SECTIONS = ('fractal', 'render', 'palette')


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


class ConfigManager:
    """Loads, validates and converts configuration files."""

    def load_config(self, path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
        """
        Load a configuration file merged over the defaults.

        Args:
            path: YAML or JSON file (defaults only if None)

        Returns:
            Configuration dictionary
        """
        if path is None:
            return copy.deepcopy(DEFAULT_CONFIG)

        path = Path(path)
        with open(path, 'r') as f:
            if path.suffix.lower() == '.json':
                data = json.load(f)
            elif path.suffix.lower() in ('.yaml', '.yml'):
                data = yaml.safe_load(f) or {}
            else:
                raise ConfigurationError(f"Unsupported config format '{path.suffix}'. Use .yaml, .yml or .json")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {path}")

        logger.info(f"Loaded configuration: {path}")
        return _deep_merge(DEFAULT_CONFIG, data)

    def resolve(self, config_dict: Dict[str, Any], preset: Optional[str] = None) -> Dict[str, Any]:
        """Apply a preset's overrides to the base sections."""
        resolved = {section: dict(config_dict.get(section) or {}) for section in SECTIONS}
        if preset is None:
            return resolved

        presets = config_dict.get('presets') or {}
        if preset not in presets:
            available = ', '.join(presets.keys())
            raise ConfigurationError(f"Unknown preset '{preset}'. Available: {available}")

        overrides = {k: v for k, v in presets[preset].items() if not k.startswith('_')}
        logger.debug(f"Applying preset: {preset}")
        return _deep_merge(resolved, overrides)

    def create_fractal_config(self, config_dict: Dict[str, Any],
                              preset: Optional[str] = None,
                              seed: Optional[int] = None) -> FractalConfig:
        """
        Build a FractalConfig from the fractal section.

        Seeded strategies use seed when given, else the palette section's seed.
        """
        resolved = self.resolve(config_dict, preset)
        if seed is None:
            seed = resolved['palette'].get('seed')
        return FractalConfig.from_dict(resolved['fractal'], seed=seed)

    def create_render_settings(self, config_dict: Dict[str, Any],
                               preset: Optional[str] = None) -> RenderSettings:
        """Build RenderSettings from the render section."""
        resolved = self.resolve(config_dict, preset)
        known = set(RenderSettings.__dataclass_fields__)
        unknown = set(resolved['render']) - known
        if unknown:
            raise ConfigurationError(f"Unknown render options: {', '.join(sorted(unknown))}")
        return RenderSettings(**resolved['render'])

    def create_color_source(self, config_dict: Dict[str, Any],
                            preset: Optional[str] = None) -> ColorSource:
        """Build a fresh color source from the palette section."""
        palette = self.resolve(config_dict, preset)['palette']
        return create_color_source(palette.get('name', 'default'),
                                   seed=palette.get('seed'),
                                   steps=palette.get('steps', 64))

    def validate_config(self, config_dict: Dict[str, Any]) -> List[str]:
        """
        Check a configuration dictionary.

        Args:
            config_dict: Loaded configuration

        Returns:
            List of error messages (empty when valid)
        """
        errors = []
        presets = [None] + self.list_presets(config_dict)

        for preset in presets:
            label = f"preset '{preset}'" if preset else "base configuration"
            for section, factory in (('fractal', self.create_fractal_config),
                                     ('render', self.create_render_settings),
                                     ('palette', self.create_color_source)):
                try:
                    factory(config_dict, preset)
                except (ConfigurationError, ValueError, TypeError) as e:
                    errors.append(f"{label}, {section}: {e}")

        return errors

    def list_presets(self, config_dict: Dict[str, Any]) -> List[str]:
        return list((config_dict.get('presets') or {}).keys())

    def export_config_template(self, path: Union[str, Path], with_examples: bool = False) -> None:
        """
        Write a configuration template.

        Args:
            path: Output file (.json writes JSON, anything else YAML)
            with_examples: Include the built-in presets as examples
        """
        path = Path(path)
        template = {section: copy.deepcopy(DEFAULT_CONFIG[section]) for section in SECTIONS}
        if with_examples:
            template['presets'] = copy.deepcopy(DEFAULT_CONFIG['presets'])

        with open(path, 'w') as f:
            if path.suffix.lower() == '.json':
                json.dump(template, f, indent=2)
            else:
                f.write("# fractal-bitshadows configuration\n")
                f.write("# fractal: tree shape, render: canvas, palette: color source\n")
                yaml.safe_dump(template, f, sort_keys=False)

        logger.info(f"Wrote configuration template: {path}")


def load_config_from_args(config_file: Optional[str] = None,
                          preset: Optional[str] = None,
                          seed: Optional[int] = None
                          ) -> Tuple[FractalConfig, RenderSettings, Dict[str, Any]]:
    """
    Load everything a command needs from a config file and preset.

    A seed given here replaces the file's palette seed and also seeds the
    seeded strategies.

    Returns:
        Tuple of (fractal config, render settings, palette section)
    """
    manager = ConfigManager()
    config_dict = manager.load_config(config_file)
    palette = manager.resolve(config_dict, preset)['palette']
    if seed is not None:
        palette['seed'] = seed
    return (manager.create_fractal_config(config_dict, preset, seed),
            manager.create_render_settings(config_dict, preset),
            palette)
