"""CLI entrypoint for workspace-constraints."""

import logging
import sys
from pathlib import Path

import click

from . import __version__


def _configure_logging(verbose: bool) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.version_option(__version__, prog_name="workspace-constraints")
@click.option(
    "--cwd",
    "-C",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Project root holding the root package.json (defaults to the current directory)",
)
@click.option(
    "--engine",
    type=str,
    default=None,
    metavar="NAME",
    help="Logic engine backend (defaults to logicEngine from .constraintsrc.yml, then 'swi')",
)
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, cwd: Path | None, engine: str | None, verbose: bool) -> None:
    """workspace-constraints - Enforce dependency and manifest policies.

    Rules are written in Prolog (constraints.pro at the project root by
    default) and evaluated against facts generated from every workspace.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["cwd"] = (cwd or Path.cwd()).resolve()
    ctx.obj["engine"] = engine


def _exit(fn, *args, **kwargs) -> None:
    try:
        exit_code = fn(*args, **kwargs)
    except (KeyError, ValueError) as e:
        raise click.ClickException(str(e.args[0]) if e.args else str(e)) from e
    sys.exit(exit_code)


@cli.command()
@click.option(
    "--full",
    is_flag=True,
    help="Print the assembled program (generated facts, rules and declarations)",
)
@click.pass_context
def source(ctx: click.Context, full: bool) -> None:
    """Print the constraints rule source.

    Examples:

        workspace-constraints source

        workspace-constraints source --full
    """
    from .commands.constraints_cmd import run_source

    _exit(run_source, ctx.obj["cwd"], full=full)


@cli.command()
@click.argument("query")
@click.option("--json", "output_json", is_flag=True, help="Output one JSON object per answer")
@click.pass_context
def query(ctx: click.Context, query: str, output_json: bool) -> None:
    """Run a query against the project's facts and rules.

    Examples:

        workspace-constraints query "workspace_ident(Cwd, Ident)"

        workspace-constraints query "workspace_has_dependency(_, 'lodash', Range, _)" --json
    """
    from .commands.constraints_cmd import run_query

    _exit(run_query, ctx.obj["cwd"], query, engine_name=ctx.obj["engine"], output_json=output_json)


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def enforced(ctx: click.Context, output_json: bool) -> None:
    """List the dependencies and fields the rules enforce."""
    from .commands.constraints_cmd import run_enforced

    _exit(run_enforced, ctx.obj["cwd"], engine_name=ctx.obj["engine"], output_json=output_json)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
