"""
Command-line interface for Newton fractal rendering.
"""

import json
import logging
import sys
import time
from pathlib import Path

import click

from .. import __version__
from ..api import NewtonRenderer
from ..core.functions import FunctionRegistry
from ..io.config import ConfigManager, load_config_from_args
from ..rendering.coloring import ColoringEngine

logger = logging.getLogger(__name__)


def _parse_complex(value: str) -> complex:
    parts = [float(x.strip()) for x in value.split(',')]
    if len(parts) != 2:
        raise ValueError("expected 'real,imag'")
    return complex(parts[0], parts[1])


def _fail(ctx, e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    if ctx.obj.get('verbose'):
        import traceback
        traceback.print_exc()
    sys.exit(1)


def _load_render_config(ctx, **overrides):
    render_config, _ = load_config_from_args(ctx.obj.get('config_file'), ctx.obj.get('preset'))

    for key, value in overrides.items():
        if value is not None:
            setattr(render_config, key, value)

    render_config.validate()
    return render_config


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--config', type=click.Path(exists=True), help='Configuration file path')
@click.option('--preset', help='Configuration preset to use')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, config, preset, verbose, quiet):
    """
    newton-scope - Newton fractal renderer.

    Renders escape-time images of Newton's method using boundary tracing,
    which evaluates only the pixels along basin boundaries.
    """
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.WARNING,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"newton-scope v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config
    ctx.obj['preset'] = preset
    ctx.obj['verbose'] = verbose


@main.command()
@click.argument('output', type=click.Path())
@click.option('--formula', '-f', help='Root function name (see list-formulas)')
@click.option('--size', '-s', type=int, help='Canvas size in pixels')
@click.option('--max-iter', type=int, help='Maximum iterations')
@click.option('--center', type=str, help='Plane center "real,imag"')
@click.option('--zoom', type=int, help='Zoom level (8 levels per doubling)')
@click.option('--coeff', type=str, help='Relaxation coefficient "real,imag"')
@click.option('--palette', help='Color palette name')
@click.option('--processes', type=int, help='Number of worker processes')
@click.option('--tile-size', type=int, help='Tile size for parallel rendering')
@click.option('--no-parallel', is_flag=True, help='Render tiles in the main process')
@click.option('--raw', is_flag=True, help='Also save raw iteration counts (.npy)')
@click.pass_context
def render(ctx, output, formula, size, max_iter, center, zoom, coeff, palette,
           processes, tile_size, no_parallel, raw):
    """
    Render the canvas to an image file.

    OUTPUT: Output image file path (.png, .jpg, .tif)
    """
    try:
        render_config = _load_render_config(
            ctx,
            formula=formula,
            size=size,
            max_iterations=max_iter,
            zoom_level=zoom,
            palette=palette,
            num_processes=processes,
            tile_size=tile_size,
        )
        if center:
            c = _parse_complex(center)
            render_config.center = (c.real, c.imag)
        if coeff:
            c = _parse_complex(coeff)
            render_config.coeff = (c.real, c.imag)
        if no_parallel:
            render_config.use_multiprocessing = False
        if raw:
            render_config.save_raw_data = True

        renderer = NewtonRenderer(render_config)

        def progress_callback(completed, total):
            if ctx.obj.get('verbose'):
                click.echo(f"Progress: {completed}/{total} tiles")

        click.echo(f"Rendering {renderer.function.get_description()}...")
        start_time = time.time()
        renderer.render(Path(output), progress_callback)
        click.echo(f"Render complete: {time.time() - start_time:.2f}s")
        click.echo(f"Saved: {output}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.argument('x', type=int)
@click.argument('y', type=int)
@click.argument('width', type=int)
@click.argument('height', type=int)
@click.option('--formula', '-f', help='Root function name')
@click.option('--size', '-s', type=int, help='Canvas size in pixels')
@click.option('--max-iter', type=int, help='Maximum iterations')
@click.pass_context
def tile(ctx, x, y, width, height, formula, size, max_iter):
    """
    Print the raw iteration counts of one tile as JSON.

    X, Y: Tile origin on the canvas; WIDTH, HEIGHT: Tile size
    """
    try:
        render_config = _load_render_config(
            ctx, formula=formula, size=size, max_iterations=max_iter)
        render_config.use_multiprocessing = False

        renderer = NewtonRenderer(render_config)
        values = renderer.render_tile(x, y, width, height)
        click.echo(json.dumps(values.tolist()))

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--formula', '-f', help='Root function name')
@click.option('--size', '-s', type=int, help='Canvas size in pixels')
@click.option('--max-iter', type=int, help='Maximum iterations')
@click.option('--repeats', type=int, default=1, help='Number of timed runs')
@click.pass_context
def benchmark(ctx, formula, size, max_iter, repeats):
    """
    Compare boundary tracing against evaluating every pixel.
    """
    try:
        render_config = _load_render_config(
            ctx, formula=formula, size=size, max_iterations=max_iter)
        render_config.use_multiprocessing = False

        results = NewtonRenderer(render_config).benchmark(repeats)

        click.echo("Newton fractal benchmark")
        click.echo(f"Function: {results['function']}")
        click.echo(f"Canvas: {results['resolution']}, max iterations: {results['max_iterations']}")
        click.echo(f"  Boundary tracing: {results['traced_time']:.3f}s "
                   f"({results['evaluated_fraction'] * 100:.1f}% of pixels evaluated)")
        click.echo(f"  Direct:           {results['direct_time']:.3f}s")
        click.echo(f"  Speedup: {results['speedup']:.2f}x")
        click.echo(f"  Pixels differing from direct evaluation: {results['mismatched_pixels']}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--output', '-o', type=click.Path(), default='newton_config.yaml',
              help='Output file path (.yaml or .json)')
@click.pass_context
def init_config(ctx, output):
    """
    Create a configuration template file.
    """
    try:
        output_path = Path(output)
        if not output_path.suffix:
            output_path = output_path.with_suffix('.yaml')

        ConfigManager().export_config_template(output_path)
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
        config = manager.load_config(ctx.obj.get('config_file'))

        click.echo("Available presets:")
        for name in manager.list_presets(config):
            click.echo(f"  {name}")
            if ctx.obj.get('verbose'):
                for key, value in config['presets'][name].items():
                    click.echo(f"    {key.lstrip('_')}: {value}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.pass_context
def list_formulas(ctx):
    """List the built-in root functions."""
    try:
        click.echo("Available formulas:")
        for name, description in FunctionRegistry.list_functions().items():
            click.echo(f"  {name}: {description}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.pass_context
def list_palettes(ctx):
    """List available color palettes."""
    try:
        click.echo("Available color palettes:")
        for palette in ColoringEngine().list_palettes():
            click.echo(f"  {palette}")

    except Exception as e:
        _fail(ctx, e)


if __name__ == '__main__':
    main()
