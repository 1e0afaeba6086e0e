"""pidtree command line interface."""

from importlib import metadata

import typer

from pidtree.collector import report_processes, snapshot_tree
from pidtree.errors import ProcessTreeError
from pidtree.logging import configure_logging, get_logger
from pidtree.source import ProcessQuerySource

app = typer.Typer(
    name="pidtree",
    help="Snapshot the host's processes and report them as a tree.",
    no_args_is_help=True,
)


def _version() -> str:
    try:
        return metadata.version("pidtree")
    except metadata.PackageNotFoundError:
        return "unknown"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pidtree version {_version()}")
        raise typer.Exit()


def _fail(exc: ProcessTreeError) -> None:
    typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1) from exc


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Also log vanished processes and other debug output.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """Snapshot the host's processes and report them as a tree."""
    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")


@app.command()
def report(
    workers: int = typer.Option(16, "--workers", "-w", help="Concurrent process queries."),
) -> None:
    """Log one event per process, depth-first from the roots.

    Vanished processes (including placeholder parents such as PID 0 on Linux)
    are logged at debug level: pass -v to see them.
    """
    try:
        tree = report_processes(ProcessQuerySource(max_workers=workers), get_logger("pidtree"))
    except ProcessTreeError as exc:
        _fail(exc)
    else:
        typer.echo(f"Reported {len(tree)} processes under {len(tree.roots)} roots", err=True)


@app.command()
def tui(
    workers: int = typer.Option(16, "--workers", "-w", help="Concurrent process queries."),
) -> None:
    """Browse the process tree in a terminal UI."""
    from pidtree.app import ProcessTreeApp

    try:
        tree = snapshot_tree(ProcessQuerySource(max_workers=workers))
    except ProcessTreeError as exc:
        _fail(exc)
    else:
        ProcessTreeApp(tree).run()


if __name__ == "__main__":
    app()
