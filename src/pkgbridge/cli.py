"""Command line interface: finalize a pkgbridge.toml build file."""

import json
import logging
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from pkgbridge.build_context import BUILD_FILE_NAME, BuildContext
from pkgbridge.pkgbridge_config import BuildMode
from pkgbridge.pkgbridge_exceptions import PkgBridgeException

app = typer.Typer(no_args_is_help=True, help="Bridge foreign package manifests into build targets.")

_console = Console()
_err_console = Console(stderr=True)


def _load(build_file: str, mode: Optional[BuildMode], jobs: Optional[int]) -> BuildContext:
    overrides = {"mode": mode.value if mode else None, "max_workers": jobs}
    return BuildContext.from_build_file(build_file, overrides=overrides)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log resolver activity.")) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@app.command()
def finalize(
    build_file: str = typer.Argument(BUILD_FILE_NAME, help="Path of the build file."),
    mode: Optional[BuildMode] = typer.Option(None, "--mode", "-m", help="Override the build mode."),
    target: Optional[List[str]] = typer.Option(None, "--target", "-t", help="Only finalize these targets."),
    jobs: Optional[int] = typer.Option(None, "--jobs", "-j", min=1, help="Parallel resolutions."),
) -> None:
    """Resolve every attached requirement and print the target descriptors as JSON."""

    try:
        context = _load(build_file, mode, jobs)
        descriptors = context.finalize(target or None)
    except PkgBridgeException as exc:
        _err_console.print(f"[red]error:[/red] {exc.message}", markup=True, highlight=False)
        raise typer.Exit(code=1)

    payload = {name: descriptor.to_dict() for name, descriptor in descriptors.items()}
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def show(
    build_file: str = typer.Argument(BUILD_FILE_NAME, help="Path of the build file."),
) -> None:
    """List declared requirements and targets without resolving anything."""

    try:
        context = _load(build_file, None, None)
    except PkgBridgeException as exc:
        _err_console.print(f"[red]error:[/red] {exc.message}", markup=True, highlight=False)
        raise typer.Exit(code=1)

    requirements = Table(title="Requirements")
    requirements.add_column("Name", style="bright_green", no_wrap=True)
    requirements.add_column("Manifest", style="white")
    requirements.add_column("Options", style="dim")
    for requirement in context.declarator.requirements():
        options = requirement.options.model_dump(exclude_defaults=True)
        requirements.add_row(requirement.name, requirement.manifest_path, json.dumps(options))

    targets = Table(title="Targets")
    targets.add_column("Name", style="bright_green", no_wrap=True)
    targets.add_column("Kind", style="white", no_wrap=True)
    targets.add_column("Sources", style="white")
    targets.add_column("Packages", style="dim")
    for build_target in context.binder.targets():
        targets.add_row(
            build_target.name,
            build_target.kind.value,
            ", ".join(build_target.sources),
            ", ".join(build_target.requirements),
        )

    _console.print(requirements)
    _console.print(targets)


def run() -> None:
    app()
