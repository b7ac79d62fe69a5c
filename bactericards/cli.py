"""
BacteriCards: Terminal front-end.

A Rich terminal interface for the bacteriology flashcard scheduler.

Commands:
- bactericards study       - Start a study session
- bactericards stats       - Show progress statistics
- bactericards reset       - Clear all card history
- bactericards proportion  - Change the share of the deck in play
- bactericards preview     - Show the upcoming cards
"""
from __future__ import annotations

import random
import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .config import Settings, get_settings
from .deck import CardDeck, CardView
from .errors import SchedulerConfigError
from .mastery import DeckStats
from .session import StudySession
from .state_store import Difficulty, SQLiteStore

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="bactericards",
    help="BacteriCards: spaced repetition for bacteriology",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STYLES = {
    "info": "bold cyan",
    "warning": "bold yellow",
    "dim": "dim",
    "difficulty": {
        "easy": "green",
        "medium": "yellow",
        "hard": "red",
        "unseen": "blue",
    },
}

ANSWER_CHOICES = {
    "e": Difficulty.EASY,
    "m": Difficulty.MEDIUM,
    "h": Difficulty.HARD,
}


def style_difficulty(label: str) -> str:
    color = STYLES["difficulty"].get(label, "white")
    return f"[{color}]{label}[/{color}]"


# =============================================================================
# Session Helpers
# =============================================================================

def load_settings() -> Settings:
    """Settings from the environment; exits with code 1 if they do not validate."""
    try:
        return get_settings()
    except ValidationError as e:
        for error in e.errors():
            field = "_".join(str(part) for part in error["loc"]).upper()
            console.print(f"[red]Invalid BACTERICARDS_{field}: {error['msg']}[/red]")
        raise typer.Exit(1)


def open_session(deck_path: Optional[Path], db_path: Optional[Path]) -> StudySession:
    """
    Build a StudySession from settings, with CLI overrides.

    Exits with code 1 on configuration errors.
    """
    settings = load_settings()

    try:
        deck = CardDeck.load(deck_path or settings.deck_path)
        store = SQLiteStore(db_path or settings.state_db_path)
        return StudySession(
            deck,
            store,
            rng=random.Random(settings.seed),
            default_proportion=settings.default_deck_proportion,
        )
    except SchedulerConfigError as e:
        console.print(f"\n[red]{e}[/red]")
        raise typer.Exit(1)


# =============================================================================
# Display Helpers
# =============================================================================

def _details_text(view: CardView) -> str:
    return "\n".join(f"[bold]{label}:[/bold] {text}" for label, text in view.details.items())


def display_card_front(view: CardView, stats: DeckStats) -> None:
    """Display the prompt side of a card."""
    mode = "Details -> Name" if view.is_reversed else "Name -> Details"
    header = f"Card #{view.index + 1}  |  {mode}  |  Streak {stats.current_streak}"

    content = _details_text(view) if view.is_reversed else f"[bold]{view.question}[/bold]"

    console.print(Panel(
        content,
        title=header,
        title_align="left",
        border_style="cyan",
        padding=(1, 2),
    ))


def display_card_back(view: CardView) -> None:
    """Display the answer side of a card."""
    content = f"[bold]{view.answer}[/bold]" if view.is_reversed else _details_text(view)

    console.print(Panel(
        content,
        border_style="magenta",
        padding=(1, 2),
    ))


def display_stats(stats: DeckStats) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Cards in play", f"{stats.total} ({stats.deck_proportion}% of deck)")
    for label in ("easy", "medium", "hard", "unseen"):
        count = getattr(stats, label)
        share = count / stats.total * 100 if stats.total else 0.0
        table.add_row(style_difficulty(label), f"{count}/{stats.total} ({share:.1f}%)")
    table.add_row("Mastered", str(stats.mastered_cards))
    table.add_row("Progress", f"{stats.progress_percentage}%")
    table.add_row("Session streak", str(stats.current_streak))
    table.add_row("Average streak", str(stats.average_streak))

    console.print(table)

    if stats.is_fully_mastered:
        console.print("\n[bold green]Every card in play is mastered![/bold green]")


# =============================================================================
# Commands
# =============================================================================

@app.command()
def study(
    deck_path: Optional[Path] = typer.Option(
        None, "--deck", "-d", help="JSON file with the card records"
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite file for saved progress"),
) -> None:
    """
    Start an interactive study session.

    Shows one card at a time, reveals the answer on Enter, then asks how
    hard it was. Progress is saved after every answer.
    """
    console.print("\n[bold cyan]BacteriCards[/bold cyan]", style="bold")
    console.print("=" * 40)

    session = open_session(deck_path, db_path)
    answered = 0

    try:
        while True:
            view = session.get_current_card()
            console.print()
            display_card_front(view, session.get_stats())

            Prompt.ask("\n[dim]Press Enter to reveal[/dim]", default="", show_default=False)
            session.reveal_answer()
            display_card_back(view)

            choice = Prompt.ask(
                "[green]e[/green]asy / [yellow]m[/yellow]edium / [red]h[/red]ard / q to quit",
                choices=["e", "m", "h", "q"],
            )
            if choice == "q":
                break

            session.submit_difficulty(ANSWER_CHOICES[choice])
            answered += 1

            if session.get_stats().is_fully_mastered:
                console.print("\n[bold green]Deck mastered![/bold green]")
                break

    except KeyboardInterrupt:
        console.print("\n\n[yellow]Session interrupted.[/yellow]")

    console.print(f"\n[bold]Session complete: {answered} answers[/bold]\n")
    display_stats(session.get_stats())


@app.command()
def stats(
    deck_path: Optional[Path] = typer.Option(
        None, "--deck", "-d", help="JSON file with the card records"
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite file for saved progress"),
) -> None:
    """Show progress statistics for the cards in play."""
    session = open_session(deck_path, db_path)

    console.print("\n[bold cyan]Progress[/bold cyan]")
    console.print("=" * 40)
    display_stats(session.get_stats())


@app.command()
def reset(
    deck_path: Optional[Path] = typer.Option(
        None, "--deck", "-d", help="JSON file with the card records"
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite file for saved progress"),
    confirm: bool = typer.Option(
        False,
        "--yes", "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Clear all card history for a fresh start."""
    if not confirm and not Confirm.ask("Reset ALL progress? This cannot be undone!", default=False):
        raise typer.Exit(0)

    session = open_session(deck_path, db_path)
    session.reset_progress()

    console.print("[green]All progress has been reset.[/green]")


@app.command()
def proportion(
    value: int = typer.Argument(..., help="Share of the deck to study: 25, 50, 75 or 100"),
    deck_path: Optional[Path] = typer.Option(
        None, "--deck", "-d", help="JSON file with the card records"
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite file for saved progress"),
) -> None:
    """Change the share of the deck in play. Resets progress."""
    session = open_session(deck_path, db_path)

    try:
        session.change_deck_proportion(value)
    except SchedulerConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]Now studying {len(session.included)} of {len(session.deck)} cards "
        f"({value}%).[/green]"
    )


@app.command()
def preview(
    deck_path: Optional[Path] = typer.Option(
        None, "--deck", "-d", help="JSON file with the card records"
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite file for saved progress"),
    limit: int = typer.Option(10, "--limit", "-l", help="Number of cards to preview"),
) -> None:
    """Preview the next cards in selection order."""
    session = open_session(deck_path, db_path)

    console.print("\n[bold]Upcoming Cards[/bold]\n")

    table = Table()
    table.add_column("#")
    table.add_column("Card")
    table.add_column("Status")
    table.add_column("Priority", justify="right")

    for ranked in session.preview(limit=limit):
        status = session.statuses[ranked.index]
        label = status.difficulty.value if status.difficulty else "unseen"
        score = "-" if ranked.is_new else f"{ranked.score:.2f}"
        table.add_row(str(ranked.index + 1), ranked.name, style_difficulty(label), score)

    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================

@app.callback()
def configure() -> None:
    """BacteriCards: spaced repetition for bacteriology"""
    settings = load_settings()

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level.upper(),
        format="<level>{message}</level>",
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
