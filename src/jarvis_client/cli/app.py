"""
Main CLI application entry point.

This module contains the Typer application and command handlers for the
Jarvis client. Each command opens a JarvisSession, runs one or more
service calls and renders the result with Rich.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import typer
from pydantic import ValidationError as SettingsValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from jarvis_client import VERSION
from jarvis_client.config.env_loader import EnvFileLoader, load_env_with_hierarchy
from jarvis_client.config.settings import JarvisSettings, get_settings
from jarvis_client.core.errors import JarvisError, create_user_friendly_message
from jarvis_client.core.session import JarvisSession
from jarvis_client.services import AuthService, BotService, ChatService, PromptService, UserService

# Create the main Typer application
app = typer.Typer(
    name="jarvis",
    help="Jarvis - command-line client for the Jarvis chat API",
    add_completion=False,
    rich_markup_mode="rich",
)

# Rich console for output
console = Console()

logger = logging.getLogger(__name__)


def create_session(settings: JarvisSettings) -> JarvisSession:
    """Session used by every command; replaced in tests."""
    return JarvisSession(settings)


def configure_logging(settings: JarvisSettings) -> None:
    """Route library logging through Rich at the configured level."""
    logging.basicConfig(
        level=settings.effective_log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=settings.debug)],
        force=True,
    )
    # httpx logs every request at INFO, including URLs.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(f"[bold blue]Jarvis Client[/bold blue] version [green]{VERSION}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """
    Jarvis - command-line client for the Jarvis chat API.

    Sign in once; the access token is refreshed automatically when it
    expires.
    """
    load_env_with_hierarchy()
    try:
        settings = get_settings(debug=True) if debug else get_settings()
    except SettingsValidationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)
    configure_logging(settings)
    ctx.obj = settings


def _run(ctx: typer.Context, handler: Callable[[JarvisSession], Awaitable[Any]]) -> Any:
    """Run an async command body inside a session and report errors."""
    settings: JarvisSettings = ctx.obj or get_settings()

    async def _with_session() -> Any:
        async with create_session(settings) as session:
            return await handler(session)

    try:
        return asyncio.run(_with_session())
    except JarvisError as e:
        logger.debug(f"Command failed: {e.to_dict()}")
        console.print(f"[red]Error:[/red] {create_user_friendly_message(e)}")
        raise typer.Exit(1)


# Authentication

@app.command("login")
def login_command(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True, help="Account password"),
) -> None:
    """Sign in with email and password."""

    async def _login(session: JarvisSession) -> None:
        result = await AuthService(session).sign_in(email, password)
        console.print(f"[green]✓[/green] Signed in as [cyan]{email}[/cyan] (user {result.user_id or 'unknown'})")

    _run(ctx, _login)


@app.command("signup")
def signup_command(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True, help="Account password"
    ),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Display name"),
) -> None:
    """Create an account and sign in."""

    async def _signup(session: JarvisSession) -> None:
        await AuthService(session).sign_up(email, password, name=name)
        console.print(f"[green]✓[/green] Account created for [cyan]{email}[/cyan]")
        console.print("[dim]Check your inbox to verify your email address.[/dim]")

    _run(ctx, _signup)


@app.command("logout")
def logout_command(ctx: typer.Context) -> None:
    """Sign out and remove stored credentials."""

    async def _logout(session: JarvisSession) -> None:
        await AuthService(session).sign_out()
        console.print("[green]✓[/green] Signed out")

    _run(ctx, _logout)


@app.command("whoami")
def whoami_command(ctx: typer.Context) -> None:
    """Show the signed-in user's profile and token usage."""

    async def _whoami(session: JarvisSession) -> None:
        users = UserService(session)
        profile = await users.get_current_user()
        usage = await users.get_usage()

        table = Table(title="Current User", show_header=False)
        table.add_column("Field", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")
        table.add_row("ID", profile.id)
        table.add_row("Email", profile.email)
        table.add_row("Name", profile.name or "-")
        table.add_row("Email verified", "yes" if profile.email_verified else "no")
        tokens = "unlimited" if usage.unlimited else f"{usage.available_tokens} / {usage.total_tokens}"
        table.add_row("Tokens", tokens)
        console.print(table)

    _run(ctx, _whoami)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Check connectivity to the Jarvis APIs."""

    async def _status(session: JarvisSession) -> None:
        chat = ChatService(session)
        info = await chat.get_diagnostic_info()

        table = Table(title="Connection Status", show_header=True, header_style="bold magenta")
        table.add_column("Check", style="cyan", no_wrap=True)
        table.add_column("Result")
        for name, ok in info["api_connections"].items():
            table.add_row(name, "[green]✓ ok[/green]" if ok else "[red]✗ failed[/red]")
        table.add_row("stored credentials", "[green]yes[/green]" if info["is_authenticated"] else "[yellow]no[/yellow]")
        table.add_row("model", info["selected_model"])
        console.print(table)

    _run(ctx, _status)


# Conversations

@app.command("conversations")
def conversations_command(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum number of conversations"),
) -> None:
    """List your conversations."""

    async def _conversations(session: JarvisSession) -> None:
        sessions = await ChatService(session).list_conversations(limit=limit, use_cache=False)
        if not sessions:
            console.print("[dim]No conversations yet.[/dim]")
            return

        table = Table(title="Conversations", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="green")
        table.add_column("Created", style="dim")
        for item in sessions:
            created = item.created_at.strftime("%Y-%m-%d %H:%M") if item.created_at else "-"
            table.add_row(item.id, item.title, created)
        console.print(table)

    _run(ctx, _conversations)


@app.command("messages")
def messages_command(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation ID"),
    limit: int = typer.Option(100, "--limit", "-l", help="Maximum number of history items"),
) -> None:
    """Show the message history of a conversation."""

    async def _messages(session: JarvisSession) -> None:
        messages = await ChatService(session).get_messages(conversation_id, limit=limit)
        if not messages:
            console.print("[dim]No messages.[/dim]")
            return
        for message in messages:
            speaker = "[yellow]You:[/yellow]" if message.is_user else "[blue]AI:[/blue]"
            console.print(f"{speaker} {message.text}")

    _run(ctx, _messages)


@app.command("send")
def send_command(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="Message to send"),
    conversation_id: Optional[str] = typer.Option(
        None, "--conversation", "-c", help="Conversation ID (a new one is created if omitted)"
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Assistant model to use"),
) -> None:
    """Send a message and print the assistant's reply."""

    async def _send(session: JarvisSession) -> None:
        chat = ChatService(session)
        if model:
            chat.set_selected_model(model)
        target = conversation_id
        if not target:
            target = (await chat.create_conversation()).id
            console.print(f"[dim]Started conversation {target}[/dim]")

        console.print(f"[yellow]You:[/yellow] {message}")
        with console.status("[dim]Thinking...[/dim]"):
            result = await chat.send_message(target, message)
        console.print(f"[blue]AI:[/blue] {result.message}")
        if result.remaining_usage is not None:
            console.print(f"[dim](remaining tokens: {result.remaining_usage})[/dim]")

    _run(ctx, _send)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete a conversation."""
    if not yes:
        typer.confirm(f"Delete conversation {conversation_id}?", abort=True)

    async def _delete(session: JarvisSession) -> None:
        await ChatService(session).delete_conversation(conversation_id)
        console.print(f"[green]✓[/green] Deleted conversation {conversation_id}")

    _run(ctx, _delete)


# Prompts and bots

@app.command("prompts")
def prompts_command(
    ctx: typer.Context,
    query: Optional[str] = typer.Argument(None, help="Search keyword"),
    category: Optional[str] = typer.Option(None, "--category", help="Filter by category"),
    favorites: bool = typer.Option(False, "--favorites", "-f", help="Only favorite prompts"),
    mine: bool = typer.Option(False, "--mine", help="Only your own prompts"),
    limit: int = typer.Option(20, "--limit", "-l", help="Page size"),
    offset: int = typer.Option(0, "--offset", help="Pagination offset"),
) -> None:
    """Search the prompt library."""

    async def _prompts(session: JarvisSession) -> None:
        page = await PromptService(session).list_prompts(
            query=query,
            offset=offset,
            limit=limit,
            category=category,
            is_favorite=True if favorites else None,
            only_mine=mine,
        )
        table = Table(
            title=f"Prompts (page {page.current_page} of {page.total_pages})",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="green")
        table.add_column("Category", style="yellow")
        table.add_column("★", justify="center")
        for prompt in page.items:
            table.add_row(prompt.id or "-", prompt.title, prompt.category, "★" if prompt.is_favorite else "")
        console.print(table)
        if page.has_next:
            console.print(f"[dim]More results: --offset {page.next_offset}[/dim]")

    _run(ctx, _prompts)


@app.command("bots")
def bots_command(
    ctx: typer.Context,
    query: Optional[str] = typer.Argument(None, help="Search keyword"),
) -> None:
    """List your AI bots."""

    async def _bots(session: JarvisSession) -> None:
        bots = await BotService(session).list_bots(query)
        if not bots:
            console.print("[dim]No bots found.[/dim]")
            return
        table = Table(title="AI Bots", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="green")
        table.add_column("Description")
        for bot in bots:
            table.add_row(bot.id, bot.name, bot.description)
        console.print(table)

    _run(ctx, _bots)


@app.command("ask")
def ask_command(
    ctx: typer.Context,
    bot_id: str = typer.Argument(..., help="Bot ID"),
    message: str = typer.Argument(..., help="Question for the bot"),
) -> None:
    """Ask an AI bot a question."""

    async def _ask(session: JarvisSession) -> None:
        with console.status("[dim]Thinking...[/dim]"):
            answer = await BotService(session).ask_bot(bot_id, message)
        console.print(f"[blue]Bot:[/blue] {answer}")

    _run(ctx, _ask)


# Configuration

@app.command("config")
def config_command(
    ctx: typer.Context,
    init: bool = typer.Option(False, "--init", help="Create an example .jarvis/.env in the current directory"),
    models: bool = typer.Option(False, "--models", help="List available assistant models"),
) -> None:
    """Show the effective configuration."""
    settings: JarvisSettings = ctx.obj or get_settings()
    env_loader = EnvFileLoader()

    if init:
        try:
            path = env_loader.create_example_env_file()
        except OSError as e:
            console.print(f"[red]Error creating .env file:[/red] {e}")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Created example .env file: {path}")
        return

    if models:
        table = Table(title="Assistant Models", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="green")
        for model_id, name in ChatService.available_models().items():
            marker = " (default)" if model_id == settings.model else ""
            table.add_row(model_id, f"{name}{marker}")
        console.print(table)
        return

    table = Table(title="Current Configuration", show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    for key, value in settings.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)

    env_loader.load_env_file()
    env_panel = Panel(
        f"Environment File: {env_loader.get_loaded_file() or 'None found'}\n"
        f"Variables Loaded: {len(env_loader.get_loaded_vars())}",
        title="Environment Configuration",
        border_style="blue",
    )
    console.print(env_panel)


if __name__ == "__main__":
    app()
