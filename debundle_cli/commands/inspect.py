"""Inspect command."""

from pathlib import Path

import click

from debundle_cli.log import configure_logging
from debundle_engine import Bundle
from debundle_engine.errors import DebundleError


@click.command()
@click.argument("bundle_path", type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path))
@click.option("--verbose", is_flag=True, help="Show per-module detail")
def inspect(bundle_path: Path, verbose: bool):
    """Show the chunks, modules and paths recovered from a bundle without writing files."""
    configure_logging(verbose)
    click.echo(f"🔍 Inspecting bundle: {bundle_path}")

    try:
        bundle = Bundle(bundle_path)
        modules = bundle.modules
    except DebundleError as e:
        click.echo(f"❌ {e}", err=True)
        raise click.Abort()

    click.echo(f"  Entry module: {bundle.entrypoint_module_id}")
    click.echo(f"  Public path: {bundle.bootstrap.public_path or ''}")
    click.echo(f"  Chunks: {len(bundle.chunks)}")
    for chunk in bundle.chunks:
        click.echo(f"    - {chunk.file_name} (ids: {', '.join(map(str, chunk.ids))}, modules: {len(chunk.modules)})")

    click.echo(f"  Modules: {len(modules)}")
    for module_id, module in modules.items():
        dependencies = ", ".join(map(str, module.dependency_ids)) or "-"
        click.echo(f"    {module_id} => {module.path} [{dependencies}]")

    if bundle.resolver is not None and bundle.resolver.ambiguous:
        click.echo(f"  ⚠️  {len(bundle.resolver.ambiguous)} modules are reachable through several paths", err=True)
