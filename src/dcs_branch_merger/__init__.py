import asyncio
import json
import logging
from pathlib import Path

import click

from .config import Settings, load_environment_variables
from .core import run
from .dcs.api import check_pr_filename_updateable
from .error_handling import EffectFailed
from .logging_config import configure_logging
from .workflows import MergeDirection, check_merge, merge

logger = logging.getLogger(__name__)


REPOSITORY_OPTIONS = [
    click.option("--server", envvar="DCS_SERVER", help="DCS server, e.g. qa.door43.org"),
    click.option("--owner", required=True, help="Repository owner"),
    click.option("--repo", required=True, help="Repository name"),
    click.option("--user-branch", help="User branch to merge with the default branch"),
    click.option("--default-branch", help="Skip looking up the repository default branch"),
    click.option("--description", help="Pull request body and merge message"),
]


def repository_options(func):
    """Options that identify the repository and branches to work on."""
    for option in reversed(REPOSITORY_OPTIONS):
        func = option(func)
    return func


def _environment(ctx: click.Context, **fields):
    settings: Settings = ctx.obj
    if fields.get("server"):
        settings = settings.model_copy(update={"server": fields["server"]})
    if not settings.server:
        raise click.UsageError("No DCS server configured. Use --server or set DCS_SERVER.")
    logger.info(f"Using {settings.server} for {fields.get('owner')}/{fields.get('repo')}")
    return settings.environment(**fields)


def _direction_option(func):
    return click.option(
        "--direction",
        type=click.Choice([direction.value for direction in MergeDirection]),
        default=MergeDirection.DEFAULT_INTO_USER.value,
        show_default=True,
    )(func)


@click.group()
@click.option("-v", "--verbose", count=True)
@click.option("--json-logs", is_flag=True, help="Emit log records as JSON lines")
@click.option(
    "--env-dir",
    type=click.Path(path_type=Path, file_okay=False),
    help="Directory holding an extra .env file",
)
@click.pass_context
def main(ctx: click.Context, verbose: int, json_logs: bool, env_dir: Path | None) -> None:
    """DCS Branch Merger - keep user branches in step with the default branch"""
    logging_level = "WARNING"
    if verbose == 1:
        logging_level = "INFO"
    elif verbose >= 2:
        logging_level = "DEBUG"
    configure_logging(logging_level, structured=json_logs)

    load_environment_variables(env_dir)
    ctx.obj = Settings.from_env()


def _report(ctx: click.Context, status) -> None:
    click.echo(status.model_dump_json(indent=2))
    if status.error:
        ctx.exit(1)


@main.command()
@repository_options
@_direction_option
@click.pass_context
def check(ctx: click.Context, direction: str, **fields) -> None:
    """Report whether a merge is needed, opening a pull request if so."""
    env = _environment(ctx, **fields)
    status = asyncio.run(run(check_merge(MergeDirection(direction)), env))
    _report(ctx, status)


@main.command(name="merge")
@repository_options
@_direction_option
@click.pass_context
def merge_command(ctx: click.Context, direction: str, **fields) -> None:
    """Merge one branch into the other when it is needed and conflict free."""
    env = _environment(ctx, **fields)
    status = asyncio.run(run(merge(MergeDirection(direction)), env))
    _report(ctx, status)


@main.command(name="check-file")
@repository_options
@click.option("--pr-id", type=int, required=True, help="Pull request number")
@click.option("--filename", required=True, help="File to check")
@click.pass_context
def check_file(ctx: click.Context, **fields) -> None:
    """Check that a file was not changed on the base branch since the PR's merge base."""
    env = _environment(ctx, **fields)
    try:
        updateable = asyncio.run(run(check_pr_filename_updateable, env))
    except EffectFailed:
        raise click.ClickException(
            f"Unable to check {fields['filename']} against pull request #{fields['pr_id']}"
        )
    click.echo(json.dumps({"filename": fields["filename"], "updateable": updateable}))


if __name__ == "__main__":
    main()
