"""CLI entrypoint for mediagen."""

import logging
from pathlib import Path

import rich_click as click

from mediagen import __version__
from mediagen.controllers import (
    SUPPORTED_BACKENDS,
    JobAddCommand,
    JobShowCommand,
    QueueCliController,
    QueueRunCommand,
)
from mediagen.errors import ConfigError, MediagenError

click.rich_click.USE_MARKDOWN = True
QUEUE_CONTROLLER = QueueCliController()


@click.group()
@click.version_option(version=__version__, prog_name="mediagen")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug).")
def mediagen(verbose: int) -> None:
    """Media generation queue CLI."""

    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@mediagen.group()
def jobs() -> None:
    """Job record commands."""


@jobs.command("add")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.argument("job_id")
@click.option(
    "--unit",
    "units",
    multiple=True,
    required=True,
    help="Unit description, for example one scene visual. Can be repeated.",
)
def jobs_add(db_path: Path | None, job_id: str, units: tuple[str, ...]) -> None:
    """Store the ordered unit list for a job."""

    _emit_lines(
        QUEUE_CONTROLLER.add_job(JobAddCommand(db_path=db_path, job_id=job_id, units=units)),
    )


@jobs.command("show")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.argument("job_id")
def jobs_show(db_path: Path | None, job_id: str) -> None:
    """Show stored units and persisted generation results for a job."""

    try:
        lines = QUEUE_CONTROLLER.show_job(JobShowCommand(db_path=db_path, job_id=job_id))
    except MediagenError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@mediagen.group()
def queue() -> None:
    """Generation queue commands."""


@queue.command("run")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.argument("job_ids", nargs=-1, required=True)
@click.option(
    "--backend",
    type=click.Choice(SUPPORTED_BACKENDS),
    default="echo",
    show_default=True,
    help="Provider backend used for enrichment and generation.",
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Stop waiting for the queue to drain after this many seconds.",
)
@click.option(
    "--echo-polls",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Polls before an echo generation job reports completion.",
)
def queue_run(
    db_path: Path | None,
    job_ids: tuple[str, ...],
    backend: str,
    timeout_seconds: float | None,
    echo_polls: int,
) -> None:
    """Submit jobs, process them and print the final queue snapshot."""

    try:
        result = QUEUE_CONTROLLER.run_queue(
            QueueRunCommand(
                db_path=db_path,
                job_ids=job_ids,
                backend=backend,
                timeout_seconds=timeout_seconds,
                echo_polls=echo_polls,
            ),
        )
    except ConfigError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.drained:
        raise click.ClickException("Queue did not drain before timeout.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    mediagen()
