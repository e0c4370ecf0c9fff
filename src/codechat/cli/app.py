"""Main CLI application using Typer."""
import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..chat import (
    ChatError,
    ImageRef,
    SessionDirectory,
    SessionNotFound,
    SessionSyncController,
)
from ..llm import ModelGateway
from ..parsing import ResponseProcessor
from ..persistence import ChatRepository
from ..realtime import RealtimeBus
from ..ui.formatting import render_code_block, render_message
from .providers import get_bus, get_gateway, get_repository, get_user_id

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="codechat",
    help="Conversational coding assistant with syntax-highlighted code answers",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()

LOG_LEVELS = ("debug", "info", "warning", "error")


@app.callback()
def configure(
    log_level: str = typer.Option(
        "warning",
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, or error"
    ),
):
    """Configure logging for every command."""
    level = log_level.lower()
    if level not in LOG_LEVELS:
        console.print(f"[red]Error: Unknown log level: {log_level}[/red]")
        raise typer.Exit(code=1)
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    for noisy in ("httpx", "httpcore", "openai", "aiosqlite"):
        logging.getLogger(noisy).setLevel(max(logging.WARNING, logging.getLogger().level))


@asynccontextmanager
async def _storage() -> AsyncIterator[tuple[ChatRepository, RealtimeBus, SessionDirectory]]:
    """Connected repository, its bus, and the user's session directory."""
    bus = get_bus()
    repository = get_repository(bus, console)
    try:
        async with repository:
            yield repository, bus, SessionDirectory(repository, get_user_id(), bus=bus)
    finally:
        await bus.close()


@app.command()
def new(
    title: str = typer.Option(
        "New Chat",
        "--title",
        "-t",
        help="Title for the new chat"
    )
):
    """Start a new chat session and print its id."""
    async def _new():
        async with _storage() as (_, _, directory):
            session = await directory.start_chat(title)
        console.print(f"[green]Created chat[/green] {session.id}")

    _run(_new())


@app.command()
def sessions():
    """List chat sessions, most recent first."""
    async def _sessions():
        async with _storage() as (_, _, directory):
            items = await directory.list_sessions()

        if not items:
            console.print("[dim]No chats yet. Start one with: codechat new[/dim]")
            return

        table = Table(title="Chats", show_header=True)
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="green")
        table.add_column("Updated", style="dim")
        for session in items:
            table.add_row(
                session.id,
                session.title,
                f"{session.updated_at.astimezone():%Y-%m-%d %H:%M}",
            )
        console.print(table)

    _run(_sessions())


@app.command()
def show(
    session_id: str = typer.Argument(..., help="Chat session id")
):
    """Print every message of a chat session."""
    async def _show():
        async with _storage() as (repository, _, directory):
            session = await directory.get(session_id)
            messages = await repository.list_messages(session_id)

        console.print(Panel(f"[bold]{session.title}[/bold]\n[dim]{session.id}[/dim]", border_style="blue"))
        if not messages:
            console.print("[dim]No messages yet.[/dim]")
        for message in messages:
            console.print(render_message(message))
            console.print()

    _run(_show())


@app.command()
def ask(
    message: str = typer.Argument(..., help="Message to send"),
    session_id: str | None = typer.Option(
        None,
        "--session",
        "-s",
        help="Chat session id (default: start a new chat)"
    ),
    image_url: str | None = typer.Option(
        None,
        "--image-url",
        help="URL of an image to attach"
    ),
    image_name: str = typer.Option(
        "image",
        "--image-name",
        help="Display name of the attached image"
    ),
):
    """Send one message and print the assistant's reply."""
    async def _ask():
        gateway = get_gateway(console)
        try:
            async with _storage() as (repository, bus, directory):
                target = session_id or (await directory.start_chat()).id
                async with SessionSyncController(target, repository, gateway, bus=bus) as view:
                    image_ref = ImageRef(url=image_url, name=image_name) if image_url else None
                    with console.status("[dim]Waiting for the assistant...[/dim]"):
                        result = await view.send(message, image_ref=image_ref)

                    if result is None:
                        console.print("[yellow]Nothing to send.[/yellow]")
                        return
                    if result.assistant_message is not None:
                        console.print(render_message(result.assistant_message))
                    if not result.ok:
                        raise result.error
                    console.print(f"\n[dim]Chat {target}[/dim]")
        finally:
            await gateway.close()

    _run(_ask())


@app.command()
def chat(
    session_id: str | None = typer.Option(
        None,
        "--session",
        "-s",
        help="Chat session id (default: start a new chat)"
    )
):
    """Interactive chat in the terminal."""
    async def _chat():
        gateway = get_gateway(console)
        try:
            async with _storage() as (repository, bus, directory):
                target = session_id or (await directory.start_chat()).id
                async with SessionSyncController(target, repository, gateway, bus=bus) as view:
                    console.print("[bold cyan]codechat[/bold cyan]")
                    console.print("[dim]Type 'exit', 'quit', or 'q' to leave[/dim]\n")
                    for existing in view.snapshot():
                        console.print(render_message(existing))

                    await _chat_loop(view)
        finally:
            await gateway.close()

    _run(_chat())


async def _chat_loop(view: SessionSyncController) -> None:
    while True:
        try:
            user_input = await asyncio.to_thread(console.input, "[bold yellow]You:[/bold yellow] ")
        except (KeyboardInterrupt, EOFError):
            console.print("\n[dim]Goodbye![/dim]")
            return

        if not user_input.strip():
            continue
        if user_input.strip().lower() in ("exit", "quit", "q"):
            console.print("[dim]Goodbye![/dim]")
            return

        with console.status("[dim]Waiting for the assistant...[/dim]"):
            result = await view.send(user_input)
        if result is None:
            continue
        if result.assistant_message is not None:
            console.print(render_message(result.assistant_message))
        if not result.ok:
            console.print(f"[red]Error: {result.error}[/red]")
        console.print()


@app.command()
def rename(
    session_id: str = typer.Argument(..., help="Chat session id"),
    title: str = typer.Argument(..., help="New title"),
):
    """Rename a chat session."""
    async def _rename():
        async with _storage() as (_, _, directory):
            session = await directory.rename(session_id, title)
        console.print(f"[green]Renamed[/green] {session.id} to [bold]{session.title}[/bold]")

    _run(_rename())


@app.command()
def delete(
    session_id: str = typer.Argument(..., help="Chat session id"),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation"
    ),
):
    """Delete a chat session and all its messages."""
    async def _delete():
        async with _storage() as (_, _, directory):
            session = await directory.get(session_id)
            if not yes:
                confirm = typer.confirm(f"Delete '{session.title}' and all its messages?")
                if not confirm:
                    console.print("[dim]Aborted.[/dim]")
                    return
            await directory.delete(session_id)
        console.print(f"[green]Deleted chat[/green] {session_id}")

    _run(_delete())


@app.command()
def examples():
    """Ask the assistant for clean-code examples in several languages."""
    async def _examples():
        gateway = get_gateway(console)
        try:
            with console.status("[dim]Generating examples...[/dim]"):
                raw_text = await gateway.generate_examples()
        finally:
            await gateway.close()

        processed = ResponseProcessor().process(raw_text)
        if processed.explanation:
            console.print(processed.explanation)
        for index, block in enumerate(processed.code_blocks, 1):
            console.print(render_code_block(block, index))

    _run(_examples())


@app.command(name="tui")
def tui_command(
    session_id: str | None = typer.Option(
        None,
        "--session",
        "-s",
        help="Chat session id (default: start a new chat)"
    ),
):
    """Launch interactive TUI chat interface."""
    async def _tui():
        from ..ui import run_textual_tui

        gateway: ModelGateway = get_gateway(console)
        try:
            async with _storage() as (repository, bus, directory):
                await run_textual_tui(
                    directory=directory,
                    repository=repository,
                    gateway=gateway,
                    bus=bus,
                    session_id=session_id,
                    model_name=gateway.provider.model,
                )
        finally:
            await gateway.close()
            console.print("\n[dim]Goodbye![/dim]")

    try:
        _run(_tui())
    except KeyboardInterrupt:
        pass


def _run(coro) -> None:
    """Run a command coroutine, reporting chat errors and exiting with code 1."""
    try:
        asyncio.run(coro)
    except SessionNotFound as e:
        console.print(f"[red]Error: Chat {e.session_id} not found[/red]")
        raise typer.Exit(code=1) from e
    except ChatError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
