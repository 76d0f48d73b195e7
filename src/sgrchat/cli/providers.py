"""Factory functions for the CLI.

Centralizes creation of storage, messaging client and session store from
settings. Hides configuration details from command implementations.
"""

import typer
from rich.console import Console

from ..config import ChatSettings
from ..llm import LLMProvider, create_llm_provider
from ..session import SessionStore
from ..storage import ChatRepository, create_document_storage

_console = Console()


def get_settings() -> ChatSettings:
    """Load settings from the environment."""
    return ChatSettings.from_env()


def get_repository(settings: ChatSettings) -> ChatRepository:
    """Create the chat repository on local storage."""
    storage = create_document_storage("local", root=settings.storage_root)
    return ChatRepository(storage, folder=settings.history_folder)


def get_llm(settings: ChatSettings, console: Console | None = None) -> LLMProvider | None:
    """Create the messaging client, or None if it is not configured."""
    con = console or _console
    errors = settings.validation_errors()
    if errors:
        for error in errors:
            con.print(f"[yellow]Warning: {error}, LLM features disabled[/yellow]")
        return None
    return create_llm_provider(
        "openai",
        api_key=settings.api_key,
        base_url=settings.base_url or None,
        proxy=settings.proxy,
        model=settings.default_model,
    )


def require_llm(settings: ChatSettings, console: Console | None = None) -> LLMProvider:
    """Get the messaging client, exiting if it is not configured."""
    con = console or _console
    llm = get_llm(settings, con)
    if llm is None:
        con.print("[red]Error: LLM provider not configured (set SGRCHAT_BASE_URL and SGRCHAT_API_KEY)[/red]")
        raise typer.Exit(code=1)
    return llm


def get_session_store(settings: ChatSettings, llm: LLMProvider | None) -> SessionStore:
    """Create a session store wired to local storage and ``llm``."""
    return SessionStore(
        get_repository(settings),
        provider=llm,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        flush_interval=settings.flush_interval,
    )
