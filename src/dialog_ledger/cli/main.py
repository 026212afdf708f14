"""
CLI interface for Dialog Ledger.

This module provides the main CLI application using Typer, with support for:
- Asking a question in a new or existing conversation
- Streaming the generated answer and attaching a related video
- Listing conversation summaries and printing a conversation history
"""

import asyncio
import functools
import logging

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from dialog_ledger.config.settings import get_settings
from dialog_ledger.core.exceptions import DialogLedgerError
from dialog_ledger.core.identity import StaticIdentityProvider
from dialog_ledger.core.models import Conversation, ConversationSummary, TurnRole
from dialog_ledger.orchestration import (
    ContentOptions,
    ConversationOrchestrator,
    SubmissionView,
)
from dialog_ledger.utils.service_factory import create_services

# Initialize CLI components
app = typer.Typer(
    name="dialog-ledger",
    help="Hold conversations with generated answers and related videos",
    no_args_is_help=True,
)
console = Console()


class CLIError(Exception):
    """User-friendly CLI error."""

    def __init__(self, message: str, exit_code: int = 1):
        self.message = message
        self.exit_code = exit_code
        super().__init__(message)


def run_async(coro):
    """Run async coroutine in sync context."""
    return asyncio.run(coro)


def handle_cli_error(func):
    """Decorator to handle CLI errors gracefully."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CLIError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(e.exit_code) from None
        except DialogLedgerError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(1) from None
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(130) from None

    return wrapper


def configure_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else get_settings().log_level
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def resolve_owner(user: str | None) -> str:
    owner_id = user or get_settings().default_owner_id
    if not owner_id:
        raise CLIError(
            "No user given. Pass --user or set DEFAULT_OWNER_ID in the environment."
        )
    return owner_id


class StreamRenderer:
    """Prints streamed answer text as it grows."""

    def __init__(self):
        self._printed = 0

    def __call__(self, view: SubmissionView) -> None:
        if len(view.partial_answer) > self._printed:
            console.print(view.partial_answer[self._printed:], end="", markup=False)
            self._printed = len(view.partial_answer)
        elif not view.partial_answer:
            self._printed = 0


async def execute_ask(
    text: str,
    owner_id: str,
    conversation_id: str | None,
    options: ContentOptions,
    image: str | None = None,
) -> Conversation | None:
    """Run one orchestrated submission."""
    services = create_services()
    try:
        orchestrator = ConversationOrchestrator(
            services.registrar,
            StaticIdentityProvider(owner_id),
            text_source=services.text_client,
            video_source=services.video_client,
            conversation_id=conversation_id,
            options=options,
            on_change=StreamRenderer(),
        )
        return await orchestrator.submit(text, image=image)
    finally:
        await services.close()


async def execute_new(text: str, owner_id: str) -> Conversation:
    services = create_services(with_clients=False)
    try:
        return await services.registrar.start_conversation(owner_id, text)
    finally:
        await services.close()


async def execute_list(owner_id: str) -> list[ConversationSummary]:
    services = create_services(with_clients=False)
    try:
        return await services.registrar.list_conversations(owner_id)
    finally:
        await services.close()


async def execute_show(owner_id: str, conversation_id: str) -> Conversation:
    services = create_services(with_clients=False)
    try:
        return await services.registrar.get_conversation(owner_id, conversation_id)
    finally:
        await services.close()


@app.command("ask")
@handle_cli_error
def ask_command(
    text: str = typer.Argument(..., help="Question to ask"),
    conversation: str | None = typer.Option(
        None, "--conversation", "-c", help="Conversation to continue (default: new)"
    ),
    text_enabled: bool | None = typer.Option(
        None, "--text/--no-text", help="Stream a generated answer"
    ),
    video_enabled: bool | None = typer.Option(
        None, "--video/--no-video", help="Attach a related video"
    ),
    image: str | None = typer.Option(
        None, "--image", help="Path or identifier of an uploaded image"
    ),
    user: str | None = typer.Option(None, "--user", "-u", help="Owner id"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Ask a question and store the exchange."""
    configure_logging(debug)
    owner_id = resolve_owner(user)

    defaults = get_settings().orchestrator
    options = ContentOptions(
        text=defaults.text_enabled if text_enabled is None else text_enabled,
        video=defaults.video_enabled if video_enabled is None else video_enabled,
    )
    if not options.text and not options.video:
        raise CLIError("At least one of --text or --video must be enabled")

    console.print(f"[bold]You:[/bold] {text}")
    result = run_async(execute_ask(text, owner_id, conversation, options, image))
    console.print()

    if result is None:
        raise CLIError("Nothing to send")

    display_conversation(result, last=2)


@app.command("new")
@handle_cli_error
def new_command(
    text: str = typer.Argument(..., help="First message of the conversation"),
    user: str | None = typer.Option(None, "--user", "-u", help="Owner id"),
):
    """Start a conversation without asking for an answer."""
    configure_logging()
    conversation = run_async(execute_new(text, resolve_owner(user)))
    console.print(f"[green]Created conversation[/green] {conversation.id}")


@app.command("list")
@handle_cli_error
def list_command(
    user: str | None = typer.Option(None, "--user", "-u", help="Owner id"),
):
    """List your conversations."""
    configure_logging()
    summaries = run_async(execute_list(resolve_owner(user)))

    if not summaries:
        console.print("[dim]No conversations yet[/dim]")
        return

    table = Table(title="Conversations")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    for summary in summaries:
        table.add_row(summary.id, summary.title)
    console.print(table)


@app.command("show")
@handle_cli_error
def show_command(
    conversation_id: str = typer.Argument(..., help="Conversation id"),
    user: str | None = typer.Option(None, "--user", "-u", help="Owner id"),
):
    """Print a conversation history."""
    configure_logging()
    conversation = run_async(execute_show(resolve_owner(user), conversation_id))
    display_conversation(conversation)


def display_conversation(conversation: Conversation, last: int | None = None):
    """Display turns of a conversation with rich formatting."""
    turns = conversation.history[-last:] if last else conversation.history

    console.print(f"[dim]Conversation {conversation.id}[/dim]")
    for turn in turns:
        is_user = turn.role == TurnRole.USER
        body = "\n\n".join(turn.text_parts)
        if turn.image:
            body = f"[dim]image: {turn.image}[/dim]\n{body}"
        if turn.video:
            body = f"{body}\n\n[bold]{turn.video.title}[/bold]\n{turn.video.url}".strip()

        console.print(
            Panel(
                body or "[dim](empty)[/dim]",
                title="You" if is_user else "Model",
                title_align="left",
                border_style="blue" if is_user else "green",
            )
        )
