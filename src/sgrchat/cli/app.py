"""Main CLI application using Typer."""
import asyncio
import signal
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from ..config import ChatSettings
from ..errors import ChatError, ErrorKind
from ..log import configure_logging
from ..session import ChatMode, SessionStore
from ..storage import ChatRepository
from .providers import get_llm, get_repository, get_session_store, get_settings, require_llm

# Load environment variables
load_dotenv()

app = typer.Typer(
    name="sgrchat",
    help="Streaming chat assistant with persistent, searchable history",
    no_args_is_help=True,
    add_completion=True,
)

console = Console()

EXIT_WORDS = ("exit", "quit", "q")


def _load_settings() -> ChatSettings:
    settings = get_settings()
    configure_logging(settings.log_level)
    return settings


def _record_path(repository: ChatRepository, key: str) -> str:
    """Accept a creation key or a file name inside the history folder."""
    if key.isdigit():
        return repository.path_for_key(int(key))
    return f"{repository.folder}/{key}"


def _print_error(error: ChatError) -> None:
    if error.status_code is not None:
        console.print(f"[red]Error ({error.kind.value}, HTTP {error.status_code}): {error}[/red]")
    else:
        console.print(f"[red]Error ({error.kind.value}): {error}[/red]")


async def _stream_reply(store: SessionStore, text: str) -> None:
    """Print a streamed reply; Ctrl-C stops the reply, not the program."""
    stream = await store.send_message(text)
    console.print("[bold green]Assistant:[/bold green] ", end="")

    async def _consume():
        async with stream:
            async for chunk in stream:
                console.print(chunk, end="", markup=False, highlight=False)

    task = asyncio.create_task(_consume())
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, task.cancel)
    try:
        await task
    except asyncio.CancelledError:
        if asyncio.current_task().cancelling():
            raise
        console.print("\n[dim](reply cancelled)[/dim]", end="")
    finally:
        loop.remove_signal_handler(signal.SIGINT)
    console.print("\n")


def _handle_command(store: SessionStore, line: str) -> bool:
    """Run a slash command. Returns False if ``line`` is not one."""
    command, _, argument = line.partition(" ")
    argument = argument.strip()

    if command == "/new":
        session = store.require_session()
        store.start(session.mode, session.model)
        console.print("[dim]Started a new conversation[/dim]")
    elif command == "/title":
        store.set_title(argument)
        console.print(f"[dim]Title set to {argument}[/dim]")
    elif command == "/attach":
        path = Path(argument).expanduser()
        store.add_file_context(str(path), path.read_text(encoding="utf-8"), path.name)
        console.print(f"[dim]Attached {path}[/dim]")
    elif command == "/detach":
        store.remove_file_context(str(Path(argument).expanduser()))
    elif command == "/undo":
        messages = store.require_session().messages
        user_indexes = [i for i, message in enumerate(messages) if message.role == "user"]
        if not user_indexes:
            console.print("[yellow]Nothing to undo[/yellow]")
        else:
            removed = store.truncate_at(user_indexes[-1])
            console.print(f"[dim]Removed {len(removed)} messages (/restore brings them back)[/dim]")
    elif command == "/restore":
        if not store.restore():
            console.print("[yellow]Nothing to restore[/yellow]")
    else:
        return False
    return True


@app.command()
def chat(
    mode: ChatMode | None = typer.Option(
        None,
        "--mode",
        "-m",
        help="Assistant mode: agent, ask or plan"
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        help="Model to chat with (default: SGRCHAT_DEFAULT_MODEL)"
    ),
    resume: bool = typer.Option(
        False,
        "--resume",
        "-r",
        help="Continue the most recently used conversation"
    )
):
    """Interactive chat session; every conversation is saved to history."""
    async def _chat():
        settings = _load_settings()
        llm = require_llm(settings, console)
        store = get_session_store(settings, llm)
        chat_mode = mode or settings.default_mode

        try:
            last = await store.repository.last_chat() if resume else None
            if last is not None:
                session = await store.open(last.path, chat_mode, model)
                console.print(f"[dim]Resumed: {last.title} ({len(session.messages)} messages)[/dim]")
            else:
                store.start(chat_mode, model)

            console.print("[bold cyan]sgrchat[/bold cyan]")
            console.print("[dim]Type 'exit', 'quit', or 'q' to leave; /new /title /attach /detach /undo /restore[/dim]\n")

            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")
                except EOFError:
                    break

                text = user_input.strip()
                if not text:
                    continue
                if text.lower() in EXIT_WORDS:
                    break

                try:
                    if text.startswith("/") and _handle_command(store, text):
                        continue
                    await _stream_reply(store, text)
                except ChatError as e:
                    _print_error(e)
                except (OSError, IndexError) as e:
                    console.print(f"[red]Error: {e}[/red]")

            if store.session is not None and store.session.has_user_message():
                await store.flush()
            console.print("[dim]Goodbye![/dim]")
        finally:
            await llm.close()

    try:
        asyncio.run(_chat())
    except KeyboardInterrupt:
        console.print("\n[dim]Goodbye![/dim]")


@app.command()
def history(
    query: str = typer.Option(
        "",
        "--query",
        "-q",
        help="Rank conversations by title relevance"
    ),
    limit: int = typer.Option(
        20,
        "--limit",
        "-l",
        help="Maximum number of conversations"
    )
):
    """List saved conversations, most recent first."""
    async def _history():
        settings = _load_settings()
        repository = get_repository(settings)

        chats = await repository.search(query) if query.strip() else await repository.list_chats()
        for path in repository.skipped_paths:
            console.print(f"[yellow]Skipped unreadable record: {path}[/yellow]")

        if not chats:
            console.print("[yellow]No conversations found[/yellow]")
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Key", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Last used", style="green")
        table.add_column("Messages", justify="right")

        for listing in chats[:limit]:
            table.add_row(
                Path(listing.path).name,
                listing.title,
                listing.metadata.last_accessed_at.astimezone().strftime("%Y-%m-%d %H:%M"),
                str(listing.message_count),
            )
        console.print(table)

    asyncio.run(_history())


@app.command()
def show(
    key: str = typer.Argument(..., help="Creation key or file name of the conversation")
):
    """Print a saved conversation."""
    async def _show():
        settings = _load_settings()
        repository = get_repository(settings)

        try:
            loaded = await repository.load(_record_path(repository, key))
        except ChatError as e:
            _print_error(e)
            raise typer.Exit(code=1)

        console.print(f"[bold cyan]{loaded.metadata.title}[/bold cyan]")
        console.print(f"[dim]Created {loaded.metadata.created_at.astimezone():%Y-%m-%d %H:%M}[/dim]\n")
        for message in loaded.messages:
            style = "yellow" if message.role == "user" else "green"
            console.print(Panel(Markdown(message.content), title=message.role, border_style=style))

    asyncio.run(_show())


@app.command()
def delete(
    key: str = typer.Argument(..., help="Creation key or file name of the conversation"),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation"
    )
):
    """Delete a saved conversation."""
    async def _delete():
        settings = _load_settings()
        repository = get_repository(settings)
        path = _record_path(repository, key)

        if not await repository.storage.exists(path):
            console.print(f"[yellow]No conversation at {path}[/yellow]")
            return
        if not yes and not typer.confirm(f"Delete {path}?"):
            console.print("[dim]Aborted.[/dim]")
            return

        await repository.delete(path)
        console.print(f"[green]Deleted {path}[/green]")

    asyncio.run(_delete())


@app.command()
def models():
    """List models offered by the configured endpoint."""
    async def _models():
        settings = _load_settings()
        llm = get_llm(settings, console)
        if llm is None:
            raise ChatError("LLM client not initialized. Please check your settings.", ErrorKind.NOT_CONFIGURED)

        try:
            names = await llm.list_models()
        finally:
            await llm.close()

        for name in sorted(names):
            marker = " [green](default)[/green]" if name == settings.default_model else ""
            console.print(f"{name}{marker}")

    try:
        asyncio.run(_models())
    except ChatError as e:
        _print_error(e)
        raise typer.Exit(code=1)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
