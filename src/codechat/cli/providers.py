"""Provider factory functions for CLI.

Centralizes creation of the model gateway, real-time bus and chat repository
from environment variables. Hides configuration details from command
implementations.
"""

import os

import typer
from rich.console import Console

from ..config import DEFAULT_BACKEND, DEFAULT_DB_PATH, DEFAULT_USER_ID
from ..llm import LLMProvider, ModelGateway, create_llm_provider
from ..persistence import ChatRepository, create_repository
from ..realtime import RealtimeBus, create_realtime_bus

# Default console for output
_console = Console()

_API_KEY_VARS = {
    "together": "TOGETHER_API_KEY",
    "openai": "OPENAI_API_KEY",
}


def get_llm(console: Console | None = None) -> LLMProvider:
    """Create LLM provider from environment variables.

    Args:
        console: Optional Rich console for output

    Returns:
        LLM provider instance

    Raises:
        typer.Exit: If the provider is unknown or its API key is not set

    Environment variables:
        LLM_PROVIDER: Provider type (together, openai; default: together)
        TOGETHER_API_KEY: Together API key (for together provider)
        OPENAI_API_KEY: OpenAI API key (for openai provider)
        CODECHAT_MODEL: Model override for either provider
    """
    con = console or _console
    llm_provider = os.getenv("LLM_PROVIDER", "together").lower()

    key_var = _API_KEY_VARS.get(llm_provider)
    if key_var is None:
        con.print(f"[red]Error: Unknown LLM provider: {llm_provider}[/red]")
        raise typer.Exit(code=1)

    api_key = os.getenv(key_var)
    if not api_key:
        con.print(f"[red]Error: {key_var} not set in environment[/red]")
        raise typer.Exit(code=1)

    config = {"api_key": api_key}
    model = os.getenv("CODECHAT_MODEL")
    if model:
        config["model"] = model
    return create_llm_provider(llm_provider, **config)


def get_gateway(console: Console | None = None) -> ModelGateway:
    """Create the model gateway around the configured LLM provider."""
    return ModelGateway(get_llm(console))


def get_bus() -> RealtimeBus:
    """Create the in-process real-time bus shared by the repository and views."""
    return create_realtime_bus("memory")


def get_repository(bus: RealtimeBus | None = None, console: Console | None = None) -> ChatRepository:
    """Create chat repository from environment variables.

    Environment variables:
        CODECHAT_BACKEND: Persistence backend (sqlite, memory; default: sqlite)
        CODECHAT_DB_PATH: SQLite database path (default: ./codechat.db)
    """
    con = console or _console
    backend = os.getenv("CODECHAT_BACKEND", DEFAULT_BACKEND).lower()
    config = {"bus": bus}
    if backend == "sqlite":
        config["path"] = os.getenv("CODECHAT_DB_PATH", DEFAULT_DB_PATH)
    try:
        return create_repository(backend, **config)
    except ValueError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e


def get_user_id() -> str:
    """User that owns the sessions created from this CLI (CODECHAT_USER_ID)."""
    return os.getenv("CODECHAT_USER_ID", DEFAULT_USER_ID)
