"""CLI entrypoint."""

import click

from .commands.inspect import inspect
from .commands.unpack import unpack


@click.group()
@click.version_option(version="1.0.0", prog_name="debundle")
def cli():
    """Debundle CLI - Recover the original files from a webpack bundle."""
    pass


cli.add_command(unpack)
cli.add_command(inspect)


if __name__ == "__main__":
    cli()
