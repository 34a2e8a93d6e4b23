import click


@click.group()
def main() -> None:
    """Chatpull - typed live events and history from a Messenger session."""


def _run(command) -> None:
    """Run an async command with logging configured from settings."""
    import asyncio

    from chatpull.messenger.log import setup_logging
    from chatpull.messenger.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)
    asyncio.run(command(settings))


async def _open_session(settings):
    from chatpull.messenger.session import Session
    from chatpull.messenger.transport import HttpxRequestPort

    port = HttpxRequestPort.from_settings(settings)
    return port, Session.from_settings(port, settings)


@main.command()
@click.option("--limit", default=0, type=int, help="Stop after this many events (default: run forever).")
def events(limit: int) -> None:
    """Stream live events to stdout as JSON lines."""

    async def run(settings) -> None:
        port, session = await _open_session(settings)
        async with port, session, session.event_stream() as stream:
            seen = 0
            async for event in stream:
                click.echo(event.model_dump_json())
                seen += 1
                if limit and seen >= limit:
                    break
            if stream.error is not None:
                raise click.ClickException(str(stream.error))

    _run(run)


@main.command()
@click.argument("thread_id")
@click.option("--page-size", default=None, type=int, help="Actions per request (default: CHATPULL_PAGE_SIZE).")
def history(thread_id: str, page_size: int | None) -> None:
    """Print a thread's action log, oldest first."""
    from chatpull.messenger.errors import MessengerError
    from chatpull.messenger.models import MessageAction

    async def run(settings) -> None:
        port, session = await _open_session(settings)
        async with port, session:
            try:
                actions = await session.action_log(thread_id, page_size).collect(oldest_first=True)
            except MessengerError as e:
                raise click.ClickException(str(e)) from e
        for action in actions:
            when = action.timestamp.isoformat() if action.timestamp else "-"
            if isinstance(action, MessageAction):
                extra = f" [{len(action.attachments)} attachment(s)]" if action.attachments else ""
                click.echo(f"{when} {action.author_id}: {action.body}{extra}")
            else:
                click.echo(f"{when} {action.author_id} <{action.action_type}>")

    _run(run)


@main.command()
@click.option("--offset", default=0, type=int, help="Index of the first thread.")
@click.option("--limit", default=20, type=int, help="Maximum number of threads.")
def threads(offset: int, limit: int) -> None:
    """List the user's chat threads."""
    from chatpull.messenger.errors import MessengerError

    async def run(settings) -> None:
        port, session = await _open_session(settings)
        async with port, session:
            try:
                result = await session.threads(offset, limit)
            except MessengerError as e:
                raise click.ClickException(str(e)) from e
        names = {p.fbid: p.name for p in result.participants}
        for thread in result.threads:
            title = thread.name or names.get(thread.other_user_fbid or "", "") or thread.thread_fbid
            kind = "group" if thread.is_group else "direct"
            click.echo(f"{thread.thread_fbid}\t{kind}\t{thread.unread_count}\t{title}")

    _run(run)


@main.command("profile-picture")
@click.argument("fbid")
def profile_picture(fbid: str) -> None:
    """Print the URL of a user's profile picture."""
    from chatpull.messenger.errors import MessengerError

    async def run(settings) -> None:
        port, session = await _open_session(settings)
        async with port, session:
            try:
                click.echo(await session.profile_picture(fbid))
            except MessengerError as e:
                raise click.ClickException(str(e)) from e

    _run(run)


if __name__ == "__main__":
    main()
