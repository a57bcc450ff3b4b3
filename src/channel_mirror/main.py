"""CLI entrypoint for channel-mirror."""

import logging
import os
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from channel_mirror import __version__
from channel_mirror.config import LOG_LEVELS
from channel_mirror.controllers import (
    ListCommand,
    MirrorCliController,
    ShowCommand,
    StoreCommand,
    SyncCommand,
)
from channel_mirror.mirror.errors import (
    IdentityMismatchError,
    InvalidPageError,
    RecordNotFoundError,
)
from channel_mirror.sources.base import SourceError

click.rich_click.USE_MARKDOWN = True
MIRROR_CONTROLLER = MirrorCliController()
logger = logging.getLogger(__name__)

_DB_PATH_OPTION = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)
_CHANNEL_OPTION = click.option(
    "--channel",
    default=None,
    help="Channel username. Defaults to CHANNEL_MIRROR_CHANNEL.",
)


@click.group()
@click.version_option(version=__version__, prog_name="channel-mirror")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=lambda: os.getenv("CHANNEL_MIRROR_LOG_LEVEL", "INFO").upper(),
    show_default="CHANNEL_MIRROR_LOG_LEVEL or INFO",
    help="Logging verbosity.",
)
def channel_mirror(log_level: str) -> None:
    """Channel mirror CLI."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@channel_mirror.command("sync")
@_DB_PATH_OPTION
@_CHANNEL_OPTION
@click.option(
    "--watch/--no-watch",
    default=False,
    show_default=True,
    help="Keep running and apply live new/edit/delete events after the backfill.",
)
def sync(db_path: Path | None, channel: str | None, watch: bool) -> None:
    """Log in to Telegram, refresh the profile, and backfill missing messages."""

    _emit_lines(
        _invoke(lambda: MIRROR_CONTROLLER.sync(SyncCommand(db_path, channel, watch))),
    )


@channel_mirror.command("list")
@_DB_PATH_OPTION
@_CHANNEL_OPTION
@click.option(
    "--page",
    type=int,
    default=1,
    show_default=True,
    help="1-indexed page number, newest messages first.",
)
@click.option(
    "--page-size",
    type=click.IntRange(min=1, max=500),
    default=None,
    help="Messages per page. Defaults to CHANNEL_MIRROR_PAGE_SIZE.",
)
def list_messages(
    db_path: Path | None,
    channel: str | None,
    page: int,
    page_size: int | None,
) -> None:
    """Print one page of mirrored messages as JSON."""

    _emit_lines(
        _invoke(
            lambda: MIRROR_CONTROLLER.list_page(ListCommand(db_path, channel, page, page_size)),
        ),
    )


@channel_mirror.command("show")
@_DB_PATH_OPTION
@_CHANNEL_OPTION
@click.argument("message_id", type=click.IntRange(min=1))
def show(db_path: Path | None, channel: str | None, message_id: int) -> None:
    """Print one mirrored message as JSON."""

    _emit_lines(
        _invoke(lambda: MIRROR_CONTROLLER.show(ShowCommand(db_path, channel, message_id))),
    )


@channel_mirror.command("profile")
@_DB_PATH_OPTION
@_CHANNEL_OPTION
def profile(db_path: Path | None, channel: str | None) -> None:
    """Print the cached channel profile as JSON."""

    _emit_lines(_invoke(lambda: MIRROR_CONTROLLER.profile(StoreCommand(db_path, channel))))


@channel_mirror.command("status")
@_DB_PATH_OPTION
@_CHANNEL_OPTION
def status(db_path: Path | None, channel: str | None) -> None:
    """Show store identity and message counters."""

    _emit_lines(_invoke(lambda: MIRROR_CONTROLLER.status(StoreCommand(db_path, channel))))


def _invoke(action: Callable[[], list[str]]) -> list[str]:
    try:
        return action()
    except (InvalidPageError, RecordNotFoundError, ValueError) as error:
        raise click.UsageError(str(error)) from error
    except (IdentityMismatchError, SourceError) as error:
        logger.error("Startup failed: %s", error)
        raise click.ClickException(str(error)) from error
    except Exception as error:
        logger.exception("Command failed")
        raise click.ClickException("Internal error; see logs for details.") from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    channel_mirror()
