"""cli commands to resolve, classify, bundle and list npm resources"""

import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from modbundle.backend.classifier import NativeFormatClassifier
from modbundle.cli.utils.args import build_engine, engine_options
from modbundle.cli.utils.logging import logger
from modbundle.exceptions import PackageNotFoundError
from modbundle.model.entries import CacheEntry

from .debug import debug_enabled


@click.command("resolve")
@click.argument("specifier")
@engine_options
@click.pass_context
def resolve(
    ctx,
    specifier: str,
    cwd: Optional[Path],
    dep_paths: Tuple[Path, ...],
    config_path: Optional[Path],
):
    """Print the file a module specifier resolves to."""
    engine, options = build_engine(cwd, dep_paths, config_path, debug_enabled(ctx))
    result = engine.resolver.resolve(specifier, options)
    path = result.value_or(None)
    if path is None:
        logger.error(f"Module {specifier} not found")
        sys.exit(1)
    click.echo(str(path))


@click.command("classify")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def classify(path: Path):
    """Tell whether a JS file already is a UI5 loader module.

    Example:

      modbundle classify node_modules/some-lib/dist/lib.js
    """
    native = NativeFormatClassifier().is_native(path)
    click.echo("native" if native else "transform")


def _write_output(out_dir: Path, name: str, code: str) -> Path:
    target = out_dir / name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(code, encoding="utf-8")
    return target


@click.command("bundle")
@click.argument("specifier")
@engine_options
@click.option(
    "--out",
    "out_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Write the entry and its chunks into this directory instead of printing.",
)
@click.pass_context
def bundle(
    ctx,
    specifier: str,
    cwd: Optional[Path],
    dep_paths: Tuple[Path, ...],
    config_path: Optional[Path],
    out_dir: Optional[Path],
):
    """Get a resource the way the middleware serves it.

    JS modules are bundled into UI5 AMD-like modules, UI5 modules and other
    assets are returned unchanged.
    """
    engine, options = build_engine(cwd, dep_paths, config_path, debug_enabled(ctx))
    entry: Optional[CacheEntry] = engine.get_resource(specifier, options)
    if entry is None:
        logger.error(f"Resource {specifier} not found")
        sys.exit(1)

    if out_dir is None:
        click.echo(entry.code)
        return

    file_name = Path(entry.path).name if entry.is_passthrough else f"{specifier}.js"
    written = [_write_output(out_dir, file_name, entry.code)]
    for name, chunk in entry.chunks.items():
        # code chunks are named "<specifier>-<hash>", raw assets keep their file name
        chunk_file = f"{name}.js" if name.startswith(f"{specifier}-") else name
        written.append(_write_output(out_dir, chunk_file, chunk.code))
    for target in written:
        logger.info(f"Wrote {target}")


@click.command("list")
@click.argument("package")
@engine_options
@click.option(
    "--ignore",
    "-i",
    multiple=True,
    help="Glob of package files to leave out (repeatable), e.g. '**/*.map'.",
)
@click.pass_context
def list_resources(
    ctx,
    package: str,
    cwd: Optional[Path],
    dep_paths: Tuple[Path, ...],
    config_path: Optional[Path],
    ignore: Tuple[str, ...],
):
    """List the resources of an npm package."""
    engine, options = build_engine(cwd, dep_paths, config_path, debug_enabled(ctx))
    try:
        resources = engine.list_resources(
            package, options, ignore=list(ignore) if ignore else None
        )
    except PackageNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)

    for resource in resources:
        click.echo(resource)
