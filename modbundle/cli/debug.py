import click

from .utils.logging import configure_logging


def add_debug_option(cmd: click.Command) -> click.Command:
    """Decorator to add the debug option to commands and groups"""
    if not any(param.name == "debug" for param in cmd.params):
        cmd.params.insert(
            0,
            click.Option(
                ["--debug/--no-debug"],
                is_eager=True,
                expose_value=False,
                callback=lambda ctx, param, value: _set_debug(ctx, value),
                help="Report resolution and bundling details",
            ),
        )
    return cmd


def debug_enabled(ctx: click.Context) -> bool:
    """Whether debug mode was switched on anywhere in the command line."""
    root_ctx = ctx.find_root()
    return bool((root_ctx.obj or {}).get("DEBUG", False))


def _set_debug(ctx, value: bool):
    root_ctx = ctx.find_root()
    root_ctx.ensure_object(dict)
    root_ctx.obj.setdefault("DEBUG", False)

    # a subcommand may switch debug on, only the root may switch it off
    if value or len(ctx.command_path.split()) == 1:
        root_ctx.obj["DEBUG"] = value

    configure_logging(root_ctx.obj["DEBUG"])
    return root_ctx.obj["DEBUG"]
