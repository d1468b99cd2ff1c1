"""modbundle CLI"""

import click

from modbundle import __version__
from modbundle.cli.resources import bundle, classify, list_resources, resolve

from .debug import add_debug_option


@click.group()
@click.version_option(__version__, prog_name="modbundle")
@click.pass_context
def cli(ctx):
    """
    Resolve, bundle and list npm modules for the UI5 loader.
    """
    ctx.ensure_object(dict)


cli.add_command(add_debug_option(resolve))
cli.add_command(add_debug_option(bundle))
cli.add_command(add_debug_option(list_resources))
cli.add_command(classify)

add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
