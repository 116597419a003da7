"""Unpack command."""

from pathlib import Path
from typing import Optional, Tuple

import click

from debundle_cli.commands.options import parse_pairs
from debundle_cli.log import configure_logging
from debundle_engine import Bundle, write_bundle
from debundle_engine.errors import DebundleError


@click.command()
@click.argument("bundle_path", type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path))
@click.option("--dist", type=click.Path(file_okay=False, path_type=Path), help="Output directory for module files")
@click.option("--chunk-suffix", help="Suffix appended to chunk ids to build chunk file names")
@click.option("--public-path-prefix", help="Origin used to download chunks that are not next to the bundle")
@click.option("--entry", help="Entry module id (auto-detected from the bundle if not provided)")
@click.option("--known-path", "known_paths", multiple=True, metavar="ID=PATH", help="Pin a module to a path")
@click.option("--package", "packages", multiple=True, metavar="ID=NAME", help="Adopt a module as a package root")
@click.option("--workers", type=click.IntRange(min=1), default=1, show_default=True, help="Threads used to write files")
@click.option("--verbose", is_flag=True, help="Show per-module detail")
def unpack(
    bundle_path: Path,
    dist: Optional[Path],
    chunk_suffix: Optional[str],
    public_path_prefix: Optional[str],
    entry: Optional[str],
    known_paths: Tuple[str, ...],
    packages: Tuple[str, ...],
    workers: int,
    verbose: bool,
):
    """Split a bundle back into one file per module."""
    configure_logging(verbose)
    click.echo(f"📦 Unpacking bundle: {bundle_path}")

    options = {}
    if chunk_suffix is not None:
        options["chunk_file_name_suffix"] = chunk_suffix
    if public_path_prefix is not None:
        options["public_path_prefix"] = public_path_prefix
    if entry is not None:
        options["entrypoint_module_id"] = entry
    if known_paths:
        options["known_paths"] = parse_pairs(known_paths, "--known-path")
    if packages:
        options["packages"] = parse_pairs(packages, "--package")

    try:
        bundle = Bundle(bundle_path, options)
        bundle.parse()

        click.echo("  ✅ Bundle parsed!")
        click.echo(f"     Chunks: {len(bundle.chunks)}")
        click.echo(f"     Modules: {len(bundle.modules)}")
        click.echo(f"     Entry module: {bundle.entrypoint_module_id}")

        report = write_bundle(bundle, dist_path=dist.resolve() if dist else None, workers=workers)
    except DebundleError as e:
        click.echo(f"❌ {e}", err=True)
        raise click.Abort()

    for module_id, missing in report.unresolved.items():
        click.echo(f"  ⚠️  Module {module_id} requires missing modules: {', '.join(map(str, missing))}", err=True)

    click.echo(f"  ✅ Wrote {len(report.files)} files to {report.dist_path}")
