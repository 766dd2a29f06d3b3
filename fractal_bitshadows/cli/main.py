"""
Command-line interface for fractal tree generation.

This module provides a CLI for building fractal trees, rendering them to
images, exporting node data and managing configuration files.
"""

import click
import sys
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import time

from .. import __version__
from ..core.math_functions import expected_node_count
from ..core.strategies import StrategyRegistry
from ..core.tree_builder import TreeBuilder
from ..io.config import ConfigManager, load_config_from_args
from ..rendering.coloring import create_color_source, list_palettes
from ..rendering.image_output import ImageSink, RenderMetadata, export_nodes

logger = logging.getLogger(__name__)


def _fail(ctx, error: Exception) -> None:
    """Report a command failure and exit."""
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get('verbose'):
        import traceback
        traceback.print_exc()
    sys.exit(1)


def _load(ctx, overrides: Dict[str, Any], render_overrides: Optional[Dict[str, Any]] = None,
          palette: Optional[str] = None, seed: Optional[int] = None):
    """Load config file and preset, then apply command-line overrides."""
    fractal_config, render_settings, palette_section = load_config_from_args(
        ctx.obj.get('config_file'),
        ctx.obj.get('preset'),
        seed
    )

    if palette is not None:
        palette_section['name'] = palette

    changes = {k: v for k, v in overrides.items() if v is not None}
    if isinstance(changes.get('distance_strategy'), str):
        changes['distance_strategy'] = StrategyRegistry.get_distance(
            changes['distance_strategy'], palette_section.get('seed'))
    if changes:
        fractal_config = fractal_config.replace(**changes)

    for key, value in (render_overrides or {}).items():
        if value is not None:
            setattr(render_settings, key, value)
    render_settings.validate()

    return fractal_config, render_settings, palette_section


def _color_source(palette_section: Dict[str, Any]):
    return create_color_source(palette_section.get('name', 'default'),
                               seed=palette_section.get('seed'),
                               steps=palette_section.get('steps', 64))


def tree_options(func):
    """Options shared by commands that build a tree."""
    options = [
        click.option('--depth', '-d', type=int, help='Recursion levels below the root'),
        click.option('--branching-factor', '-b', type=int, help='Children per node'),
        click.option('--max-scale', type=float, help='Root shape scale'),
        click.option('--scale-ratio', type=float, help='Per-level shrink factor'),
        click.option('--max-opacity', type=float, help='Opacity of the smallest shapes'),
        click.option('--angle-offset', type=float, help='Rotation bias in radians'),
        click.option('--distance', 'distance_strategy',
                     type=click.Choice(StrategyRegistry.list_strategies()['distance']),
                     help='Distance strategy'),
        click.option('--palette', help='Color palette name or matplotlib colormap'),
        click.option('--seed', type=int, help='Seed for random palettes and strategies'),
        click.option('--max-nodes', type=int, help='Node count safety cap'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _fractal_overrides(kwargs: Dict[str, Any]) -> Dict[str, Any]:
    keys = ('depth', 'branching_factor', 'max_scale', 'scale_ratio', 'max_opacity',
            'angle_offset', 'distance_strategy', 'max_nodes')
    return {key: kwargs.get(key) for key in keys}


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--config', type=click.Path(exists=True), help='Configuration file path')
@click.option('--preset', help='Configuration preset to use')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, config, preset, verbose, quiet):
    """
    Fractal BitShadows - self-similar fractal tree generator.

    Build trees of positioned, scaled and colored shapes and render them
    to images or export them as data.
    """
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"Fractal BitShadows v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config
    ctx.obj['preset'] = preset
    ctx.obj['verbose'] = verbose


@main.command()
@click.argument('output', type=click.Path())
@tree_options
@click.option('--resolution', '-r', type=int, help='Pixels per world unit')
@click.option('--width', '-w', type=int, help='Image width')
@click.option('--height', '-h', type=int, help='Image height')
@click.option('--color-mode', type=click.Choice(['rgba', 'hsla']), help='Node color source')
@click.pass_context
def render(ctx, output, **kwargs):
    """
    Render a fractal tree to an image.

    OUTPUT: Output image file path (.png, .jpg)
    """
    try:
        render_overrides = {key: kwargs.get(key) for key in ('resolution', 'width', 'height', 'color_mode')}
        config, settings, palette_section = _load(ctx, _fractal_overrides(kwargs), render_overrides,
                                                  kwargs.get('palette'), kwargs.get('seed'))

        click.echo(f"Building tree: depth {config.depth}, branching factor {config.branching_factor}...")
        start_time = time.time()
        tree = TreeBuilder().build(config, _color_source(palette_section))
        build_time = time.time() - start_time

        sink = ImageSink(settings)
        image = sink.draw(tree)
        metadata = RenderMetadata(
            node_count=len(tree),
            config=config.to_dict(),
            build_time_seconds=build_time,
            render_settings=settings.to_dict(),
            palette=str(palette_section.get('name', 'default')),
        )
        sink.save(image, Path(output), metadata)

        click.echo(f"Render complete: {len(tree)} nodes in {time.time() - start_time:.2f}s")
        click.echo(f"Saved: {output}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.argument('output', type=click.Path())
@tree_options
@click.pass_context
def export(ctx, output, **kwargs):
    """
    Export the tree's node descriptors.

    OUTPUT: Output file path (.json or .npz)
    """
    try:
        config, settings, palette_section = _load(ctx, _fractal_overrides(kwargs), None,
                                                  kwargs.get('palette'), kwargs.get('seed'))

        start_time = time.time()
        tree = TreeBuilder().build(config, _color_source(palette_section))
        metadata = RenderMetadata(
            node_count=len(tree),
            config=config.to_dict(),
            build_time_seconds=time.time() - start_time,
            palette=str(palette_section.get('name', 'default')),
        )
        path = export_nodes(tree, Path(output), metadata)
        click.echo(f"Exported {len(tree)} nodes: {path}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@tree_options
@click.option('--build', 'do_build', is_flag=True, help='Build the tree and report its extent')
@click.pass_context
def info(ctx, do_build, **kwargs):
    """Show the expected size of a tree and, optionally, build statistics."""
    try:
        config, settings, palette_section = _load(ctx, _fractal_overrides(kwargs), None,
                                                  kwargs.get('palette'), kwargs.get('seed'))

        count = expected_node_count(config.depth, config.branching_factor, limit=config.max_nodes)
        click.echo(f"Depth: {config.depth}")
        click.echo(f"Branching factor: {config.branching_factor}")
        if count > config.max_nodes:
            click.echo(f"Nodes: more than {config.max_nodes:,} (exceeds cap)")
        else:
            click.echo(f"Nodes: {count:,}")
        click.echo(f"Leaf scale: {config.max_scale * config.scale_ratio ** config.depth:.4g}")

        if do_build:
            tree = TreeBuilder().build(config, _color_source(palette_section))
            xmin, xmax, ymin, ymax = tree.bounds()
            click.echo(f"Bounds: x [{xmin:.2f}, {xmax:.2f}], y [{ymin:.2f}, {ymax:.2f}]")
            click.echo(f"Leaves: {len(tree.leaves()):,}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--output', '-o', type=click.Path(), default='fractal_config.yaml',
              help='Output file path')
@click.option('--with-examples', is_flag=True, help='Include example presets')
@click.pass_context
def init_config(ctx, output, with_examples):
    """Create a configuration template file."""
    try:
        output_path = Path(output)
        if not output_path.suffix:
            output_path = output_path.with_suffix('.yaml')

        ConfigManager().export_config_template(output_path, with_examples)
        click.echo(f"Configuration template created: {output_path}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.argument('config_file', type=click.Path(exists=True))
@click.pass_context
def validate_config(ctx, config_file):
    """Validate a configuration file."""
    try:
        manager = ConfigManager()
        errors = manager.validate_config(manager.load_config(config_file))

        if not errors:
            click.echo(f"Configuration file is valid: {config_file}")
        else:
            click.echo(f"Configuration file has errors: {config_file}")
            for error in errors:
                click.echo(f"  Error: {error}")
            sys.exit(1)

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.pass_context
def list_presets(ctx):
    """List available configuration presets."""
    try:
        manager = ConfigManager()
        config_dict = manager.load_config(ctx.obj.get('config_file'))
        presets = manager.list_presets(config_dict)

        if not presets:
            click.echo("No presets available.")
            return

        click.echo("Available presets:")
        for preset in presets:
            click.echo(f"  {preset}")
            if ctx.obj.get('verbose'):
                description = config_dict['presets'][preset].get('_description')
                if description:
                    click.echo(f"    {description}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.pass_context
def list_strategies(ctx):
    """List registered angle and distance strategies."""
    strategies = StrategyRegistry.list_strategies()
    click.echo("Angle strategies:")
    for name in strategies['angle']:
        click.echo(f"  {name}")
    click.echo("\nDistance strategies:")
    for name in strategies['distance']:
        click.echo(f"  {name}")


@main.command(name='list-palettes')
@click.pass_context
def list_palettes_command(ctx):
    """List built-in color palettes."""
    click.echo("Available color palettes:")
    for name in list_palettes():
        click.echo(f"  {name}")
    click.echo("\nAny matplotlib colormap name is accepted as well.")


if __name__ == '__main__':
    main()
