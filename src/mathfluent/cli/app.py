"""Main CLI application using Typer."""
import asyncio
from typing import Optional

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..auth import AuthSession, User, UserDirectory
from ..chat import (
    ChatNavigator,
    ChatRoomForm,
    ChatService,
    Conversation,
    ConversationView,
    Message,
    MessageStatus,
    RoomType,
)
from ..config import MATH_TOPICS, SKILL_LEVELS
from ..errors import AuthError, ChatServiceError, StoreError
from ..log import configure_logging
from ..notifications import Notification, NotificationVariant
from ..solver import MathTutor, SolveRequest, SolverSession
from ..store import DocumentStore
from ..teachers import ALL_SUBJECTS, find_teachers
from .providers import get_llm, get_session_storage, get_store, require_llm

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="mathfluent",
    help="AI math tutoring with step-by-step solutions and community chat",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()

QUIT_COMMANDS = ("/quit", "/exit")
FIRST_SNAPSHOT_TIMEOUT = 10.0


class ConsoleNotifier:
    """Prints notifications as they happen."""

    def __init__(self, console: Console):
        self._console = console

    def notify(self, notification: Notification) -> None:
        style = "red" if notification.variant == NotificationVariant.DESTRUCTIVE else "cyan"
        text = f"[{style}]{escape(notification.title)}[/{style}]"
        if notification.description:
            text += f" [dim]{escape(notification.description)}[/dim]"
        self._console.print(text)


def _auth_session() -> AuthSession:
    session = AuthSession(get_session_storage(), ConsoleNotifier(console))
    session.load()
    return session


def _require_user(session: AuthSession) -> User:
    if session.user is None:
        console.print("[red]Error: Not logged in. Run 'mathfluent login' first.[/red]")
        raise typer.Exit(code=1)
    return session.user


def _print_message(message: Message, me: User | None) -> None:
    when = message.timestamp.astimezone().strftime("%H:%M")
    name = "You" if me is not None and message.sender.id == me.id else message.sender.name
    suffix = " [red](failed)[/red]" if message.status == MessageStatus.FAILED else ""
    console.print(f"[dim]{when}[/dim] [bold]{escape(name)}[/bold]: {escape(message.text)}{suffix}")


class _TranscriptPrinter:
    """Prints each stored message once as snapshots arrive."""

    def __init__(self, session: AuthSession):
        self._session = session
        self._seen: set[str] = set()
        self.first_snapshot = asyncio.Event()

    def __call__(self, messages: list[Message]) -> None:
        self.first_snapshot.set()
        for message in messages:
            if message.is_local and message.status != MessageStatus.FAILED:
                continue
            if message.id in self._seen:
                continue
            self._seen.add(message.id)
            _print_message(message, self._session.user)


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level (debug, info, warning, error); default from MATHFLUENT_LOG_LEVEL"
    )
):
    """MathFluent command line."""
    try:
        configure_logging(log_level)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=2)


@app.command()
def solve(
    problem: str = typer.Argument(..., help="Math problem, as text or LaTeX"),
    topic: Optional[str] = typer.Option(
        None,
        "--topic",
        "-t",
        help=f"Math topic, e.g. {', '.join(MATH_TOPICS[:3])}"
    ),
    level: Optional[str] = typer.Option(
        None,
        "--level",
        help=f"Skill level, e.g. {', '.join(SKILL_LEVELS[:3])}"
    ),
    explain: Optional[list[int]] = typer.Option(
        None,
        "--explain",
        "-e",
        help="Step number to explain in more detail (repeatable)"
    )
):
    """Solve a math problem step by step."""
    async def _solve():
        llm = require_llm(console)
        try:
            request = SolveRequest(problem=problem, topic=topic, skill_level=level)
        except ValidationError:
            console.print("[red]Error: Problem cannot be empty.[/red]")
            raise typer.Exit(code=1)

        session = SolverSession(MathTutor(llm), ConsoleNotifier(console))
        try:
            with console.status("[dim]Solving...[/dim]"):
                await session.submit(request)

            if session.error:
                console.print(f"[red]Error: {escape(session.error)}[/red]")
                raise typer.Exit(code=1)

            if session.is_direct_answer:
                console.print(Panel(escape(session.steps[0].text), title="Answer", border_style="green"))
            else:
                for number, step in enumerate(session.steps, 1):
                    console.print(Panel(escape(step.text), title=f"Step {number}", border_style="cyan"))

            for number in explain or []:
                with console.status(f"[dim]Explaining step {number}...[/dim]"):
                    result = await session.explain_step(number - 1)
                if result.ok:
                    console.print(Panel(
                        escape(result.explanation),
                        title=f"Explanation of step {number}",
                        border_style="magenta"
                    ))
        finally:
            await llm.close()

    asyncio.run(_solve())


@app.command()
def login(
    email: str = typer.Argument(..., help="Email address"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True)
):
    """Sign in (any email and password are accepted)."""
    async def _login():
        session = _auth_session()
        try:
            user = await session.login(email, password)
        except AuthError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        await _register(user)

    asyncio.run(_login())


@app.command()
def signup(
    name: str = typer.Argument(..., help="Display name"),
    email: str = typer.Argument(..., help="Email address"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True
    )
):
    """Create an account and sign in."""
    async def _signup():
        session = _auth_session()
        try:
            user = await session.signup(name, email, password)
        except AuthError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        await _register(user)

    asyncio.run(_signup())


async def _register(user: User) -> None:
    """Make the user resolvable as a direct-message peer."""
    store = get_store(console)
    try:
        await store.connect()
        await UserDirectory(store).save_user(user)
    except Exception as e:
        console.print(f"[yellow]Warning: Could not save profile to the store ({e})[/yellow]")
    finally:
        await store.disconnect()


@app.command()
def logout():
    """Sign out."""
    _auth_session().logout()


@app.command()
def whoami():
    """Show the signed-in user."""
    user = _require_user(_auth_session())

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("ID", user.id)
    table.add_row("Name", escape(user.display_name))
    table.add_row("Email", escape(user.email))
    table.add_row("Role", user.role)
    table.add_row("Avatar", user.avatar_url)
    console.print(table)


@app.command()
def profile(
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New display name"),
    avatar: Optional[str] = typer.Option(None, "--avatar", help="Avatar URL"),
    role: Optional[str] = typer.Option(None, "--role", help="student or teacher")
):
    """Update the signed-in user's profile."""
    if role is not None and role not in ("student", "teacher"):
        console.print("[red]Error: Role must be 'student' or 'teacher'[/red]")
        raise typer.Exit(code=1)

    session = _auth_session()
    _require_user(session)
    user = session.update_profile(name=name, avatar=avatar, role=role)
    asyncio.run(_register(user))


@app.command()
def rooms():
    """List chat rooms, newest first."""
    async def _rooms():
        store = get_store(console)
        try:
            await store.connect()
            all_rooms = await ChatService(store).list_rooms()
        except (ChatServiceError, StoreError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()

        if not all_rooms:
            console.print("[dim]No chat rooms yet. Create one with: mathfluent create-room <name>[/dim]")
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="bold")
        table.add_column("Type")
        table.add_column("AI")
        table.add_column("Description")
        for room in all_rooms:
            table.add_row(
                room.id,
                escape(room.room_name),
                room.room_type.value,
                "yes" if room.enable_ai_assistant else "no",
                escape(room.description or "")
            )
        console.print(table)

    asyncio.run(_rooms())


@app.command(name="create-room")
def create_room(
    name: str = typer.Argument(..., help="Room name (3-50 characters)"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Up to 200 characters"),
    private: bool = typer.Option(False, "--private", help="Create a private room"),
    ai: bool = typer.Option(False, "--ai", help="Enable the AI assistant in this room")
):
    """Create a chat room."""
    session = _auth_session()
    user = _require_user(session)

    try:
        form = ChatRoomForm(
            room_name=name,
            description=description,
            room_type=RoomType.PRIVATE if private else RoomType.PUBLIC,
            enable_ai_assistant=ai
        )
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            console.print(f"[red]Error: {field}: {error['msg']}[/red]")
        raise typer.Exit(code=1)

    async def _create():
        store = get_store(console)
        try:
            await store.connect()
            room_id = await ChatService(store).create_room(form, user.id)
        except (ChatServiceError, StoreError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()

        console.print(f"[green]Chat room \"{escape(form.room_name)}\" created.[/green] ID: {room_id}")

    asyncio.run(_create())


async def _converse(view: ConversationView, message: Optional[str]) -> None:
    """Send one message, or read lines until EOF or /quit."""
    if message is not None:
        outcome = await view.send(message)
        if outcome.error:
            raise typer.Exit(code=1)
        return

    console.print("[dim]Type a message and press Enter. /quit to leave.[/dim]")
    while True:
        try:
            line = await asyncio.to_thread(console.input, "")
        except EOFError:
            break
        if line.strip() in QUIT_COMMANDS:
            break
        if line.strip():
            await view.send(line)


@app.command()
def chat(
    room_id: str = typer.Argument(..., help="Room ID (see 'mathfluent rooms')"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Send one message and exit")
):
    """Join a chat room."""
    async def _chat():
        session = _auth_session()
        _require_user(session)
        store = get_store(console)
        try:
            await store.connect()
            service = ChatService(store)
            room = await service.get_room(room_id)
            if room is None:
                console.print(f"[red]Error: No chat room with ID {room_id}[/red]")
                raise typer.Exit(code=1)

            console.print(Panel(
                escape(room.description or ""),
                title=escape(room.room_name),
                border_style="cyan"
            ))
            printer = _TranscriptPrinter(session)
            async with ChatNavigator(service, session, ConsoleNotifier(console), printer) as nav:
                view = await nav.select(Conversation.room(room_id))
                await _wait_for_first_snapshot(printer)
                await _converse(view, message)
        except (ChatServiceError, StoreError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()

    asyncio.run(_chat())


@app.command()
def dm(
    peer_id: str = typer.Argument(..., help="User or teacher ID (see 'mathfluent teachers')"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Send one message and exit")
):
    """Open a direct message thread with another user or a teacher."""
    async def _dm():
        session = _auth_session()
        user = _require_user(session)
        if peer_id == user.id:
            console.print("[red]Error: Cannot message yourself[/red]")
            raise typer.Exit(code=1)

        store = get_store(console)
        try:
            await store.connect()
            peer = await UserDirectory(store).get_user(peer_id)
            if peer is None:
                console.print(f"[red]Error: No user or teacher with ID {peer_id}[/red]")
                raise typer.Exit(code=1)

            console.print(f"[bold]Chat with {escape(peer.display_name)}[/bold] [dim]({peer.role})[/dim]")
            service = ChatService(store)
            printer = _TranscriptPrinter(session)
            async with ChatNavigator(service, session, ConsoleNotifier(console), printer) as nav:
                view = await nav.open_direct(peer.id)
                await _wait_for_first_snapshot(printer)
                await _converse(view, message)
        except (ChatServiceError, StoreError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()

    asyncio.run(_dm())


async def _wait_for_first_snapshot(printer: _TranscriptPrinter) -> None:
    """Hold the prompt until the history has been printed."""
    try:
        await asyncio.wait_for(printer.first_snapshot.wait(), FIRST_SNAPSHOT_TIMEOUT)
    except asyncio.TimeoutError:
        console.print("[yellow]Warning: Message history is taking long to load[/yellow]")


@app.command()
def teachers(
    query: str = typer.Argument("", help="Search by name, bio or subject"),
    subject: str = typer.Option(ALL_SUBJECTS, "--subject", "-s", help="Filter by subject")
):
    """Find a math tutor."""
    found = find_teachers(query, subject)
    if not found:
        console.print("[dim]No teachers found matching your criteria.[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Subjects")
    table.add_column("Experience")
    table.add_column("Rating", justify="right")
    for teacher in found:
        table.add_row(
            teacher.id,
            teacher.name,
            ", ".join(teacher.subjects),
            teacher.experience,
            f"{teacher.rating:.1f}"
        )
    console.print(table)


@app.command()
def health():
    """Check store connection and AI provider configuration."""
    async def _health():
        all_healthy = True

        store: DocumentStore = get_store(console)
        try:
            await store.connect()
            if await store.health_check():
                console.print(f"[green]+[/green] Document store ({store.backend_type}): OK")
            else:
                console.print(f"[red]x[/red] Document store ({store.backend_type}): UNHEALTHY")
                all_healthy = False
        except Exception as e:
            console.print(f"[red]x[/red] Document store ({store.backend_type}): FAILED ({e})")
            all_healthy = False
        finally:
            await store.disconnect()

        llm = get_llm(console)
        if llm:
            console.print(f"[green]+[/green] AI provider: {llm.model}")
            await llm.close()
        else:
            console.print("[yellow]![/yellow] AI provider: NOT CONFIGURED")

        if not all_healthy:
            raise typer.Exit(code=1)

    asyncio.run(_health())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
