"""
CLI entry point for qrcpack.

Provides a command-line interface for packing resource files into an
embeddable Python module.
"""

from __future__ import annotations

import time
import traceback
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .codegen import render_module, write_module
from .config import DEFAULT_OUTPUT_FILE, Config
from .config_loader import load_config, merge_cli_with_config
from .packer import pack, parse_resources
from .resolver import ManifestResolver
from .utils import format_bytes, is_binary_data, sha256_hex

# Initialize CLI app
app = typer.Typer(
    name="qrcpack",
    help="Pack resource files into an embeddable Python module.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"qrcpack version {__version__}")
        raise typer.Exit()


def report_error(exc: Exception, verbose: bool = False) -> None:
    """Print a diagnostic for a failed run to standard error."""
    err_console.print(f"[red]Error: {escape(str(exc))}[/red]")
    if verbose:
        err_console.print(escape(traceback.format_exc()))


def build_config(
    paths: Optional[List[str]],
    output: Optional[Path],
    exclude: Optional[List[str]],
    follow_symlinks: Optional[bool],
    env_var: Optional[str],
    config_file: Optional[Path],
) -> Config:
    """Load the project config file and merge CLI values over it."""
    project_config = load_config(Path.cwd(), config_file)
    return merge_cli_with_config(
        project_config,
        paths=paths,
        output=output,
        exclude_glob=exclude,
        follow_symlinks=follow_symlinks,
        env_var=env_var,
    )


PATHS_ARGUMENT = typer.Argument(
    None,
    help="Files, directories or .qrc manifests to pack.",
    show_default=False,
)
EXCLUDE_OPTION = typer.Option(
    None,
    "--exclude", "-e",
    help="Gitignore-style pattern to skip in directory walks (repeatable, comma-separated).",
)
FOLLOW_SYMLINKS_OPTION = typer.Option(
    None,
    "--follow-symlinks/--no-follow-symlinks",
    help="Descend into symlinked directories.",
    show_default=False,
)
ENV_VAR_OPTION = typer.Option(
    None,
    "--env-var",
    help="Environment variable that enables repack mode in the generated module.",
)
CONFIG_OPTION = typer.Option(
    None,
    "--config", "-c",
    help="Config file (default: qrcpack.toml or .qrcpack.yml in the working directory).",
)
VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    help="Print tracebacks on failure.",
)


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version", "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """
    Pack resource files into an embeddable Python module.
    """


@app.command()
def generate(
    paths: Optional[List[str]] = PATHS_ARGUMENT,
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Generated module path (default: qrc.py).",
    ),
    exclude: Optional[List[str]] = EXCLUDE_OPTION,
    follow_symlinks: Optional[bool] = FOLLOW_SYMLINKS_OPTION,
    env_var: Optional[str] = ENV_VAR_OPTION,
    config_file: Optional[Path] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """
    Pack resources and write the generated module.

    paths can be:

        * a .qrc manifest (the preferred way to declare resources)

        * a file, imported directly

        * a directory, all files within it are imported

    Examples:

        # Pack a manifest, a single file and two directories
        qrcpack generate qml.qrc main.qml code images

        # Use the filesystem instead of the embedded bundle at startup
        QRC_REPACK=1 python app.py
    """
    start_time = time.time()

    try:
        config = build_config(paths, output, exclude, follow_symlinks, env_var, config_file)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Resolving resources...", total=None)
            resolver = ManifestResolver(config.resolve_options)
            bindings = resolver.resolve(config.paths)

            progress.add_task("Packing resources...", total=None)
            data = pack(bindings)

            progress.add_task("Writing module...", total=None)
            source = render_module(
                data,
                config.paths,
                options=config.resolve_options,
                env_var=config.env_var,
                output=config.output if config.output != Path(DEFAULT_OUTPUT_FILE) else None,
            )
            written = write_module(config.output, source)

    except Exception as e:
        report_error(e, verbose)
        raise typer.Exit(1)

    elapsed = time.time() - start_time

    console.print(f"[bold green]✓ Packed {len(bindings)} resources[/bold green]")
    console.print(f"  Bundle size: {format_bytes(len(data))}")
    if resolver.stats.labels_overridden:
        console.print(f"  Labels overridden: {resolver.stats.labels_overridden}")
    console.print(f"  Processing time: {elapsed:.2f}s")
    console.print(f"  Output: {escape(str(written))}")


@app.command()
def info(
    paths: Optional[List[str]] = PATHS_ARGUMENT,
    exclude: Optional[List[str]] = EXCLUDE_OPTION,
    follow_symlinks: Optional[bool] = FOLLOW_SYMLINKS_OPTION,
    config_file: Optional[Path] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """
    Show the resources that would be packed, without writing anything.

    Uses the same resolution logic as 'generate' for consistent results.
    """
    try:
        config = build_config(paths, None, exclude, follow_symlinks, None, config_file)
        resolver = ManifestResolver(config.resolve_options)
        bindings = resolver.resolve(config.paths)
        data = pack(bindings)
        resources = parse_resources(data)
    except Exception as e:
        report_error(e, verbose)
        raise typer.Exit(1)

    table = Table(show_header=True, header_style="cyan")
    table.add_column("Label")
    table.add_column("Source")
    table.add_column("Size", justify="right")
    table.add_column("Kind")
    for binding in bindings:
        content = resources[binding.label]
        kind = "binary" if is_binary_data(content) else "text"
        table.add_row(
            escape(binding.label),
            escape(binding.source_path),
            format_bytes(len(content)),
            kind,
        )
    console.print(table)

    stats = resolver.stats
    console.print("\n[cyan]Statistics:[/cyan]")
    console.print(f"  Files visited: {stats.files_visited}")
    console.print(f"  Manifests parsed: {stats.manifests_parsed}")
    console.print(f"  Resources: {stats.bindings_emitted}")
    console.print(f"  Skipped (qmldir): {stats.files_skipped_reserved}")
    console.print(f"  Skipped (file type): {stats.files_skipped_type}")
    console.print(f"  Skipped (exclude globs): {stats.files_skipped_glob}")
    console.print(f"  Skipped (symlinked dirs): {stats.symlinks_skipped}")
    console.print(f"  Labels overridden: {stats.labels_overridden}")
    console.print(f"  Bundle size: {format_bytes(len(data))}")
    console.print(f"  Bundle SHA-256: {sha256_hex(data)}")



def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
