import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

import click
from pydantic import ValidationError

from modbundle.engine import ModuleEngine
from modbundle.model.options import ResolveOptions
from modbundle.model.settings import BundleSettings

from .logging import logger


def engine_options(f):
    """Add the options shared by all engine commands (--cwd, --dep-path, --config)."""
    f = click.option(
        "--config",
        "config_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        help="Project settings (YAML).",
        envvar="MODBUNDLE_CONFIG",
    )(f)
    f = click.option(
        "--dep-path",
        "dep_paths",
        multiple=True,
        type=click.Path(file_okay=False, path_type=Path),
        help="Additional root to look up packages from (repeatable).",
    )(f)
    f = click.option(
        "--cwd",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=None,
        help="Project directory (defaults to the current directory).",
    )(f)
    return f


def load_settings(config_path: Optional[Path], debug: bool = False) -> BundleSettings:
    """Load the project settings, exiting with an error message if invalid."""
    if config_path is None:
        settings = BundleSettings()
    else:
        try:
            settings = BundleSettings.from_yaml(config_path)
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Failed to load settings from {config_path}: {e}")
            sys.exit(1)
    if debug:
        settings = settings.model_copy(update={"debug": True})
    return settings


def build_engine(
    cwd: Optional[Path],
    dep_paths: Sequence[Path],
    config_path: Optional[Path],
    debug: bool = False,
) -> Tuple[ModuleEngine, ResolveOptions]:
    engine = ModuleEngine(settings=load_settings(config_path, debug))
    return engine, engine.options(cwd=cwd, dep_paths=dep_paths)
