"""
wortdrill: terminal vocabulary drill.

A Rich terminal interface over the weighted selection and session core.

Commands:
- wortdrill study      - Start or resume a study session
- wortdrill stats      - Show learning statistics
- wortdrill configure  - Change session defaults
- wortdrill add        - Add a custom word
- wortdrill bookmark   - Toggle a bookmark
- wortdrill level      - Show or switch the language level
- wortdrill words      - List words with filters and sorting
- wortdrill reset      - Clear progress
- wortdrill migrate    - Recalculate cached scores
- wortdrill preload    - Warm the pronunciation cache
"""
from __future__ import annotations

import asyncio
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from loguru import logger

from config import get_settings
from wortdrill.audio import preload_candidates
from wortdrill.errors import DuplicateWordError, EmptyWordError, NoWordsAvailableError
from wortdrill.learning import (
    CardStatus,
    CompletedSession,
    LanguageLevel,
    SessionConfig,
    SessionProgress,
    SessionType,
    SortBy,
    Word,
    WordFilters,
    WordSource,
    WordStatus,
    filter_words,
    summarize,
    word_statistics,
    word_status,
)
from wortdrill.workspace import Workspace, open_workspace


# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="wortdrill",
    help="wortdrill: adaptive German vocabulary drill",
    no_args_is_help=True,
)
console = Console()


STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "info": "bold cyan",
    "warning": "bold yellow",
    "status": {
        CardStatus.CORRECT: "[green]✓[/green]",
        CardStatus.INCORRECT: "[red]✗[/red]",
        CardStatus.PRACTICE_AGAIN: "[yellow]↻[/yellow]",
        CardStatus.UNVISITED: "[dim]·[/dim]",
    },
    "word_status": {
        WordStatus.NEW: "[dim]new[/dim]",
        WordStatus.LEARNING: "[yellow]learning[/yellow]",
        WordStatus.MASTERED: "[green]mastered[/green]",
    },
}


def score_bar(score: int) -> str:
    """Three-slot progress marker for a word score."""
    return "[green]" + "●" * score + "[/green]" + "[dim]" + "○" * (3 - score) + "[/dim]"


# =============================================================================
# Display Helpers
# =============================================================================

def display_card_front(word: Word, session: SessionProgress, status: CardStatus) -> None:
    """Display the German side of a card."""
    header = (
        f"Card {session.current_index + 1}/{session.total_cards}  |  "
        f"{score_bar(word.score)}  |  {STYLES['status'][status]}"
    )
    if word.bookmarked:
        header += "  |  [yellow]★[/yellow]"

    console.print(Panel(
        f"[bold]{word.text}[/bold]",
        title=header,
        title_align="left",
        border_style="cyan",
        padding=(1, 2),
    ))


def display_card_back(word: Word) -> None:
    """Display the translation."""
    console.print(Panel(word.translation or "[dim](no translation)[/dim]", border_style="blue", padding=(1, 2)))


def display_summary(record: CompletedSession) -> None:
    console.print()
    console.print(Panel(
        f"[bold]Session Complete![/bold]\n\n"
        f"Cards: {record.total_cards}\n"
        f"Correct: {record.correct_count}  Incorrect: {record.incorrect_count}  "
        f"Again: {record.practice_again_count}\n"
        f"Success rate: {record.success_rate}%",
        title="Summary",
        border_style="green",
    ))


async def run_session(ws: Workspace, session: SessionProgress) -> CompletedSession | None:
    """
    Drive a session interactively.

    Returns:
        The archived record, or None when the learner paused
    """
    machine = ws.machine

    while not session.is_complete:
        word = machine.current_word(session, ws.book.words())
        status = machine.card_status(session, session.current_index)
        display_card_front(word, session, status)

        action = Prompt.ask(
            "[dim]Enter to reveal, b=back, f=forward, p=pause, e=end[/dim]",
            default="",
            show_default=False,
        ).strip().lower()

        if action == "b":
            if not await machine.navigate_backward(session):
                console.print("[yellow]Already at the first card[/yellow]")
            continue
        if action == "f":
            if not await machine.navigate_forward(session):
                console.print("[yellow]Already at the last card[/yellow]")
            continue
        if action == "p":
            console.print("[cyan]Session paused. Run 'wortdrill study' to continue.[/cyan]")
            return None
        if action == "e":
            return await machine.end_early(session)

        display_card_back(word)
        answer = Prompt.ask(
            "Did you know it? [green]y[/green]es / [red]n[/red]o / [yellow]a[/yellow]gain",
            choices=["y", "n", "a"],
            default="y",
        )
        await machine.record_outcome(
            session,
            is_correct=answer == "y",
            is_practice_again=answer == "a",
        )
        ws.book.refresh()

    return session.summary


def _run(coro):
    return asyncio.run(coro)


# =============================================================================
# Commands
# =============================================================================

@app.command()
def study(
    cards: Optional[int] = typer.Option(
        None,
        "--cards", "-c",
        min=1,
        help="Cards in a new session (saved default if omitted)",
    ),
    session_type: Optional[SessionType] = typer.Option(
        None,
        "--type", "-t",
        help="Session type for a new session",
    ),
    fresh: bool = typer.Option(
        False,
        "--new", "-n",
        help="Discard an unfinished session and start a new one",
    ),
) -> None:
    """
    Start an interactive study session.

    Resumes the unfinished session if there is one. Words you miss are
    drawn more often; words answered correctly three times in a row rest.
    """
    _run(_study(cards, session_type, fresh))


async def _study(cards: Optional[int], session_type: Optional[SessionType], fresh: bool) -> None:
    ws = await open_workspace(get_settings())
    try:
        session = None if fresh else await ws.machine.resume()
        if session is not None:
            console.print(
                f"[cyan]Resuming session at card "
                f"{session.current_index + 1}/{session.total_cards}[/cyan]"
            )
        else:
            base = ws.machine.config
            config = SessionConfig(
                cards_per_session=cards or base.cards_per_session,
                session_type=session_type or base.session_type,
            )
            try:
                session = await ws.machine.start_session(ws.book.words(), config)
            except NoWordsAvailableError as e:
                console.print(f"\n[red]{e}[/red]")
                raise typer.Exit(1)

        console.print(f"\n[bold cyan]wortdrill[/bold cyan] - {session.config.session_type.value} session")
        console.print("=" * 40)

        record = await run_session(ws, session)
        if record is not None:
            display_summary(record)
    finally:
        ws.close()


@app.command()
def stats() -> None:
    """Show learning statistics and progress."""
    _run(_stats())


async def _stats() -> None:
    ws = await open_workspace(get_settings())
    try:
        summary = summarize(ws.book.words())
        history = await ws.machine.history()
        cache_stats = ws.cache.stats()
    finally:
        ws.close()

    console.print("\n[bold cyan]Learning Statistics[/bold cyan]")
    console.print("=" * 40)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Total words", str(summary.total_words))
    table.add_row("Studied", str(summary.studied_words))
    table.add_row("Learned", str(summary.learned_words))
    table.add_row("Need practice", str(summary.practice_words))
    table.add_row("Bookmarked", str(summary.bookmarked_words))
    table.add_row("Overall progress", f"{summary.overall_progress}%")
    table.add_row("Sessions completed", str(len(history)))
    table.add_row(
        "Cached pronunciations",
        f"{cache_stats.count}/{cache_stats.max_entries} ({cache_stats.total_kb} KB)",
    )

    console.print(table)

    if history:
        console.print("\n[bold]Recent Sessions[/bold]")
        session_table = Table()
        session_table.add_column("Date")
        session_table.add_column("Type")
        session_table.add_column("Cards")
        session_table.add_column("Success")

        for s in reversed(history[-5:]):
            session_table.add_row(
                s.started_at.strftime("%Y-%m-%d %H:%M"),
                s.session_type,
                str(s.total_cards),
                f"{s.success_rate}%",
            )

        console.print(session_table)


@app.command()
def configure(
    cards: Optional[int] = typer.Option(None, "--cards", "-c", min=1, help="Cards per session"),
    session_type: Optional[SessionType] = typer.Option(None, "--type", "-t", help="Session type"),
) -> None:
    """Change and save session defaults."""
    _run(_configure(cards, session_type))


async def _configure(cards: Optional[int], session_type: Optional[SessionType]) -> None:
    ws = await open_workspace(get_settings())
    try:
        changes = {}
        if cards is not None:
            changes["cards_per_session"] = cards
        if session_type is not None:
            changes["session_type"] = session_type.value
        config = await ws.machine.update_config(**changes)
    finally:
        ws.close()

    console.print(
        f"[green]Sessions: {config.cards_per_session} cards, "
        f"{config.session_type.value}[/green]"
    )


@app.command()
def add(
    word: str = typer.Argument(..., help="German word, e.g. 'der Hund'"),
    translation: str = typer.Argument(..., help="Translation"),
) -> None:
    """Add a custom word to your dictionary."""
    _run(_add(word, translation))


async def _add(word: str, translation: str) -> None:
    ws = await open_workspace(get_settings())
    try:
        added = await ws.book.add_custom_word(word, translation)
    except (EmptyWordError, DuplicateWordError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        ws.close()

    console.print(f"[green]Added '{added.text}' ({added.translation})[/green]")


@app.command()
def bookmark(
    word: str = typer.Argument(..., help="Word to bookmark or unbookmark"),
) -> None:
    """Toggle a bookmark on a word."""
    _run(_bookmark(word))


async def _bookmark(word: str) -> None:
    ws = await open_workspace(get_settings())
    try:
        found = ws.book.find(word)
        if found is None:
            console.print(f"[red]No word matching '{word}'[/red]")
            raise typer.Exit(1)
        state = await ws.book.toggle_bookmark(found.text)
    finally:
        ws.close()

    verb = "Bookmarked" if state else "Removed bookmark from"
    console.print(f"[green]{verb} '{found.text}'[/green]")


@app.command()
def level(
    new_level: Optional[LanguageLevel] = typer.Argument(None, help="Level to switch to"),
) -> None:
    """Show or switch the language level."""
    _run(_level(new_level))


async def _level(new_level: Optional[LanguageLevel]) -> None:
    ws = await open_workspace(get_settings())
    try:
        if new_level is not None:
            await ws.levels.set_current_level(new_level)
        current = ws.levels.current
        available = ws.levels.available_levels()
    finally:
        ws.close()

    if new_level is not None:
        console.print(f"[green]Switched to level {current.value}[/green]")
    else:
        others = ", ".join(lvl.value for lvl in available if lvl is not current)
        console.print(f"Current level: [bold]{current.value}[/bold] (also available: {others})")


@app.command()
def words(
    status: Optional[WordStatus] = typer.Option(None, "--status", help="Only words with this status"),
    source: Optional[WordSource] = typer.Option(None, "--source", help="Only dictionary or custom words"),
    search: str = typer.Option("", "--search", "-s", help="Match word or translation"),
    sort_by: SortBy = typer.Option(SortBy.ALPHABETICAL, "--sort", help="Sort order"),
    descending: bool = typer.Option(False, "--desc", help="Reverse the sort"),
    level_override: Optional[LanguageLevel] = typer.Option(
        None,
        "--level", "-l",
        help="Language level (saved level if omitted)",
    ),
) -> None:
    """List words with their progress."""
    filters = WordFilters(
        status=status,
        source=source,
        search_term=search,
        sort_by=sort_by,
        descending=descending,
    )
    _run(_words(filters, level_override))


async def _words(filters: WordFilters, level_override: Optional[LanguageLevel]) -> None:
    ws = await open_workspace(get_settings(), level=level_override)
    try:
        all_words = ws.book.words()
        current = ws.level
    finally:
        ws.close()

    shown = filter_words(all_words, filters)
    stats = word_statistics(all_words)

    table = Table(title=f"Words ({current.value})")
    table.add_column("Word", style="bold")
    table.add_column("Translation")
    table.add_column("Status")
    table.add_column("Score")
    table.add_column("Source", style="dim")

    for w in shown:
        table.add_row(
            w.text + (" [yellow]★[/yellow]" if w.bookmarked else ""),
            w.translation,
            STYLES["word_status"][word_status(w)],
            score_bar(w.score),
            "custom" if w.is_custom else "dictionary",
        )

    console.print(table)
    console.print(
        f"[dim]{len(shown)} of {stats.total_words} shown  |  "
        f"new {stats.new_words}, learning {stats.learning_words}, "
        f"mastered {stats.mastered_words}  |  accuracy {stats.overall_accuracy}%[/dim]"
    )


@app.command()
def reset(
    word: Optional[str] = typer.Option(
        None,
        "--word", "-w",
        help="Reset only this word",
    ),
    confirm: bool = typer.Option(
        False,
        "--yes", "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Clear progress for a fresh start."""
    if word:
        msg = f"Reset progress for '{word}'?"
    else:
        msg = "Reset ALL progress and session history? This cannot be undone!"

    if not confirm and not Confirm.ask(msg, default=False):
        raise typer.Exit(0)

    _run(_reset(word))


async def _reset(word: Optional[str]) -> None:
    ws = await open_workspace(get_settings())
    try:
        if word:
            await ws.ledger.reset(word)
            console.print(f"[green]Reset progress for '{word}'[/green]")
        else:
            await ws.ledger.reset_all()
            await ws.machine.reset_all_sessions()
            console.print("[green]All progress has been reset.[/green]")
    finally:
        ws.close()


@app.command()
def migrate() -> None:
    """Recalculate cached scores from stored answer history."""
    _run(_migrate())


async def _migrate() -> None:
    ws = await open_workspace(get_settings())
    try:
        updated = await ws.ledger.recalculate_all(ws.book.seed_words())
    finally:
        ws.close()

    console.print(f"[green]Score calculation complete. Updated {updated} words.[/green]")


@app.command()
def preload(
    common: int = typer.Option(20, "--common", help="Leading vocabulary words to include"),
    practice: int = typer.Option(15, "--practice", help="Low-scoring words to include"),
) -> None:
    """Warm the pronunciation cache for common, bookmarked and practice words."""
    _run(_preload(common, practice))


async def _preload(common: int, practice: int) -> None:
    settings = get_settings()
    if not settings.has_remote_tts_configured():
        console.print("[yellow]Set OPENAI_API_KEY to enable remote pronunciation.[/yellow]")
        raise typer.Exit(1)

    ws = await open_workspace(settings)
    client = ws.speech_client()
    try:
        chain = ws.audio_chain(remote=client)
        targets = preload_candidates(ws.book.words(), common_count=common, practice_count=practice)
        report = await chain.preload(targets)
    finally:
        await client.close()
        ws.close()

    console.print(
        f"[green]Loaded {len(report.loaded)}[/green], "
        f"[red]failed {len(report.failed)}[/red], "
        f"[dim]already cached {len(report.skipped)}[/dim]"
    )


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level,
        format="<level>{message}</level>",
    )

    app()


if __name__ == "__main__":
    main()
