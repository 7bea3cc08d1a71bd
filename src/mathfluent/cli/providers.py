"""Provider factory functions for CLI.

Centralizes creation of the LLM, document store and session storage from
environment variables. Hides configuration details from command
implementations.
"""

import os
from pathlib import Path

import typer
from rich.console import Console

from ..auth import FileSessionStorage, SessionStorage
from ..llm import LLMProvider, create_llm_provider
from ..store import SUPPORTED_BACKENDS, DocumentStore, create_document_store

# Default console for output
_console = Console()

DEFAULT_SESSION_FILE = "~/.mathfluent/session.json"


def get_llm(console: Console | None = None) -> LLMProvider | None:
    """Create LLM provider from environment variables.

    Args:
        console: Optional Rich console for output

    Returns:
        LLM provider instance, or None if not configured

    Environment variables:
        LLM_PROVIDER: Provider type (gemini, openai, anthropic; default: gemini)
        GEMINI_API_KEY: Gemini API key (for gemini provider)
        GEMINI_MODEL: Gemini model (default: gemini-2.5-flash)
        OPENAI_API_KEY: OpenAI API key (for openai provider)
        OPENAI_CHAT_MODEL: OpenAI model (default: gpt-4o-mini)
        ANTHROPIC_API_KEY: Anthropic API key (for anthropic provider)
        ANTHROPIC_MODEL: Anthropic model (default: claude-sonnet-4-20250514)
    """
    con = console or _console
    llm_provider = os.getenv("LLM_PROVIDER", "gemini").lower()

    if llm_provider == "gemini":
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            con.print("[yellow]Warning: GEMINI_API_KEY not set, AI features disabled[/yellow]")
            return None
        model = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        return create_llm_provider("gemini", api_key=api_key, model=model)

    elif llm_provider == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            con.print("[yellow]Warning: OPENAI_API_KEY not set, AI features disabled[/yellow]")
            return None
        model = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
        return create_llm_provider("openai", api_key=api_key, model=model)

    elif llm_provider in ("anthropic", "claude"):
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            con.print("[yellow]Warning: ANTHROPIC_API_KEY not set, AI features disabled[/yellow]")
            return None
        model = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
        return create_llm_provider("anthropic", api_key=api_key, model=model)

    else:
        con.print(f"[red]Error: Unknown LLM provider: {llm_provider}[/red]")
        return None


def require_llm(console: Console | None = None) -> LLMProvider:
    """Get LLM provider, exiting if not configured.

    Raises:
        typer.Exit: If LLM provider is not configured
    """
    con = console or _console
    llm = get_llm(con)
    if not llm:
        con.print("[red]Error: LLM provider not configured[/red]")
        raise typer.Exit(code=1)
    return llm


def get_store(console: Console | None = None) -> DocumentStore:
    """Create the document store from environment variables.

    Returns:
        Unconnected document store

    Environment variables:
        MATHFLUENT_STORE: Backend (memory, sqlite, postgres; default: sqlite)
        MATHFLUENT_SQLITE_PATH: SQLite file (default: ./mathfluent.db)
        POSTGRES_HOST: Database host (default: localhost)
        POSTGRES_PORT: Database port (default: 5432)
        POSTGRES_DB: Database name (default: mathfluent)
        POSTGRES_USER: Database user (default: mathfluent)
        POSTGRES_PASSWORD: Database password (default: mathfluent_dev)
    """
    con = console or _console
    backend = os.getenv("MATHFLUENT_STORE", "sqlite").lower()

    if backend == "sqlite":
        return create_document_store(
            "sqlite", path=os.getenv("MATHFLUENT_SQLITE_PATH", "./mathfluent.db")
        )

    if backend == "postgres":
        return create_document_store(
            "postgres",
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "mathfluent"),
            user=os.getenv("POSTGRES_USER", "mathfluent"),
            password=os.getenv("POSTGRES_PASSWORD", "mathfluent_dev")
        )

    if backend == "memory":
        return create_document_store("memory")

    con.print(
        f"[red]Error: Unknown store backend: {backend} "
        f"(expected one of {', '.join(SUPPORTED_BACKENDS)})[/red]"
    )
    raise typer.Exit(code=1)


def get_session_storage() -> SessionStorage:
    """Session storage from ``MATHFLUENT_SESSION_FILE`` (default: ~/.mathfluent/session.json)."""
    return FileSessionStorage(Path(os.getenv("MATHFLUENT_SESSION_FILE", DEFAULT_SESSION_FILE)))
