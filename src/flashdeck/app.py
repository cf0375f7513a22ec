"""Interactive CLI application."""
import logging
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table

from flashdeck.cloze import render_cloze_back, render_cloze_front
from flashdeck.db import init_db, DEFAULT_DB_PATH
from flashdeck.decks import (
    InvalidClozeText, add_card, add_cloze_card, create_deck, get_active_decks,
    get_cards_for_deck, get_deck, get_deleted_decks, restore_deck, update_card, update_deck,
)
from flashdeck.importer import ImportFormatError, export_deck, export_deck_to_csv, import_deck
from flashdeck.models import FSRSConfig, StudyMode
from flashdeck.preferences import (
    get_daily_goal, get_default_study_mode, get_fsrs_config, get_user_id,
    set_daily_goal, set_default_study_mode, set_fsrs_config,
)
from flashdeck.ratings import (
    FSRS_RATING_LABELS, QUALITY_LABELS, fsrs_rating_to_sm2_quality,
)
from flashdeck.records import reset_study_records
from flashdeck.seed import seed_all, is_seeded
from flashdeck.session import NoCardsToStudy, StudySession, finish_session, start_session
from flashdeck.stats import (
    TIME_RANGES, get_date_range, get_deck_study_stats, get_recent_study_sessions,
    get_study_trend_data, get_success_color, get_success_label, get_success_rate_trend_data,
    get_user_study_stats,
)
from flashdeck.study_cards import study_card_label

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """User asked to leave the current session."""


def setup_logging() -> None:
    level = os.environ.get("FLASHDECK_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    answer = Prompt.ask(prompt, choices=choices + list(EXIT_WORDS), show_choices=False)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return int(answer)


def show_welcome():
    console.print(Panel(
        "[bold]flashdeck[/bold]\n[dim]Spaced-repetition flashcards[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("study", "Study a deck"),
        ("decks", "List decks"),
        ("new", "Create a deck"),
        ("add", "Add cards to a deck"),
        ("edit", "Edit a deck or card, restore a deck"),
        ("import", "Import a deck (json, csv, yaml)"),
        ("export", "Export a deck"),
        ("stats", "Study statistics"),
        ("settings", "Study mode and scheduler options"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def card_faces(study_card) -> tuple[str, str]:
    if study_card.kind == "cloze":
        return (
            render_cloze_front(study_card.cloze_data, study_card.cloze_field_id),
            render_cloze_back(study_card.cloze_data, study_card.cloze_field_id),
        )
    return study_card.front, study_card.back


def ask_quality(mode: StudyMode) -> int:
    """Ask for a rating on the scale the mode uses, returned as SM-2 quality."""
    if mode is StudyMode.FSRS:
        scale = "  ".join(f"{r}={label}" for r, label in FSRS_RATING_LABELS.items())
        rating = session_int_prompt(f"Rate yourself ({scale})", choices=["1", "2", "3", "4"])
        return fsrs_rating_to_sm2_quality(rating)
    scale = ", ".join(f"{q}={label.lower()}" for q, label in QUALITY_LABELS.items())
    return session_int_prompt(
        f"Rate yourself ({scale})", choices=["0", "1", "2", "3", "4", "5"],
    )


def run_study_session(db_path: str, session: StudySession) -> None:
    total = len(session.cards)
    console.print(
        f"\n[bold]Study Session[/bold] — {total} cards "
        f"[dim]({session.mode.value}, type q to stop)[/dim]\n"
    )
    try:
        while session.current is not None:
            card = session.current
            front, back = card_faces(card)
            label = study_card_label(card)
            title = f"Card {session.index + 1}/{total}" + (f" · {label}" if label else "")
            console.print(Panel(Markdown(front), title=title, border_style="cyan"))
            session_prompt("[dim]Press Enter to reveal answer[/dim]", default="", show_default=False)
            console.print(Panel(Markdown(back), border_style="green"))
            quality = ask_quality(session.mode)
            session.rate(db_path, quality)
            console.print()
    finally:
        finish_session(db_path, session)
    console.print(f"[green]Session complete! {session.cards_studied} cards reviewed.[/green]")


def choose_deck(db_path: str) -> int | None:
    decks = get_active_decks(db_path)
    if not decks:
        console.print("[yellow]No decks yet. Use 'new' or 'import' first.[/yellow]")
        return None
    for d in decks:
        console.print(f"  [cyan]{d.id}[/cyan]) {d.name}")
    return IntPrompt.ask("Select deck", choices=[str(d.id) for d in decks])


def cmd_study(db_path: str):
    deck_id = choose_deck(db_path)
    if deck_id is None:
        return
    default_mode = get_default_study_mode(db_path)
    mode = Prompt.ask(
        "Study mode", choices=[m.value for m in StudyMode], default=default_mode.value,
    )
    try:
        session = start_session(db_path, get_user_id(db_path), deck_id, StudyMode(mode))
    except NoCardsToStudy as e:
        console.print(f"[yellow]{e}[/yellow]")
        return
    try:
        run_study_session(db_path, session)
    except SessionExitRequested:
        console.print(f"[dim]Session stopped after {session.cards_studied} cards.[/dim]")


def cmd_decks(db_path: str):
    decks = get_active_decks(db_path)
    if not decks:
        console.print("[yellow]No decks yet.[/yellow]")
        return
    user_id = get_user_id(db_path)
    table = Table(title="Decks")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Cards", justify="right")
    table.add_column("Studied", justify="right")
    table.add_column("Success", justify="right")
    for d in decks:
        stats = get_deck_study_stats(db_path, user_id, d.id)
        table.add_row(
            str(d.id), d.name, str(stats["total_cards"]),
            str(stats["studied_cards"]), f"{stats['success_rate']}%",
        )
    console.print(table)


def cmd_new(db_path: str):
    name = Prompt.ask("Deck name").strip()
    if not name:
        console.print("[red]Deck name is required.[/red]")
        return
    description = Prompt.ask("Description", default="")
    deck_id = create_deck(db_path, name, description)
    console.print(f"[green]Created deck {name} (id {deck_id})[/green]")


def cmd_add(db_path: str):
    deck_id = choose_deck(db_path)
    if deck_id is None:
        return
    console.print("[dim]Cloze cards use {{c1::answer}} or {{c1::answer::hint}}. Type q to stop.[/dim]")
    added = 0
    try:
        while True:
            kind = session_prompt("Card type", choices=["basic", "cloze", "q"], default="basic")
            if kind == "cloze":
                text = session_prompt("Cloze text")
                try:
                    add_cloze_card(db_path, deck_id, text)
                except InvalidClozeText as e:
                    for error in e.errors:
                        console.print(f"[red]{error}[/red]")
                    continue
            else:
                front = session_prompt("Front")
                back = session_prompt("Back")
                add_card(db_path, deck_id, front, back)
            added += 1
    except SessionExitRequested:
        pass
    console.print(f"[green]Added {added} cards.[/green]")


def cmd_edit(db_path: str):
    target = Prompt.ask("Edit", choices=["deck", "card", "restore"], default="card")
    if target == "restore":
        deleted = get_deleted_decks(db_path)
        if not deleted:
            console.print("[yellow]No deleted decks.[/yellow]")
            return
        for d in deleted:
            console.print(f"  [cyan]{d.id}[/cyan]) {d.name}")
        deck_id = IntPrompt.ask("Restore deck", choices=[str(d.id) for d in deleted])
        restore_deck(db_path, deck_id)
        console.print("[green]Deck restored.[/green]")
        return

    deck_id = choose_deck(db_path)
    if deck_id is None:
        return
    if target == "deck":
        deck = get_deck(db_path, deck_id)
        name = Prompt.ask("Deck name", default=deck.name)
        description = Prompt.ask("Description", default=deck.description)
        try:
            update_deck(db_path, deck_id, name=name, description=description)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            return
        console.print("[green]Deck updated.[/green]")
        return

    cards = get_cards_for_deck(db_path, deck_id)
    if not cards:
        console.print("[yellow]This deck has no cards yet.[/yellow]")
        return
    for c in cards:
        console.print(f"  [cyan]{c.id}[/cyan]) {c.front[:60]}")
    card_id = IntPrompt.ask("Select card", choices=[str(c.id) for c in cards])
    card = next(c for c in cards if c.id == card_id)
    front = Prompt.ask("Cloze text" if card.card_type == "cloze" else "Front", default=card.front)
    back = Prompt.ask("Back", default=card.back)
    try:
        update_card(db_path, card_id, front=front, back=back)
    except InvalidClozeText as e:
        for error in e.errors:
            console.print(f"[red]{error}[/red]")
        return
    console.print("[green]Card updated.[/green]")


def cmd_import(db_path: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    try:
        result = import_deck(db_path, file_path)
    except ImportFormatError as e:
        console.print(f"[red]{e}[/red]")
        return
    msg = f"[green]Imported {result['imported']} cards into {result['name']} (id {result['deck_id']})[/green]"
    if result["skipped"]:
        msg += f" [yellow]{result['skipped']} skipped[/yellow]"
    console.print(msg)


def cmd_export(db_path: str):
    deck_id = choose_deck(db_path)
    if deck_id is None:
        return
    fmt = Prompt.ask("Format", choices=["json", "csv"], default="json")
    deck = get_deck(db_path, deck_id)
    cards = get_cards_for_deck(db_path, deck_id)
    content = export_deck(deck, cards) if fmt == "json" else export_deck_to_csv(deck, cards)
    out = Path(Prompt.ask("Output file", default=f"{deck.name}.{fmt}"))
    out.write_text(content, encoding="utf-8")
    console.print(f"[green]Exported {len(cards)} cards to {out}[/green]")


def show_daily_activity(db_path: str, user_id: str):
    time_range = Prompt.ask("Time range", choices=list(TIME_RANGES), default="week")
    start, end = get_date_range(time_range)
    trend = get_study_trend_data(db_path, user_id, start, end)
    if not trend:
        console.print(f"[dim]No study sessions in this range ({time_range}).[/dim]")
        return
    success = {d["date"]: d["success_rate"] for d in get_success_rate_trend_data(db_path, user_id, start, end)}
    table = Table(title=f"Daily Activity ({time_range})")
    table.add_column("Date")
    table.add_column("Sessions", justify="right")
    table.add_column("Cards", justify="right")
    table.add_column("Success", justify="right")
    for day in trend:
        rate = success.get(day["date"])
        table.add_row(
            day["date"], str(day["sessions"]), str(day["cards"]),
            f"{rate}%" if rate is not None else "-",
        )
    console.print(table)


def cmd_stats(db_path: str):
    user_id = get_user_id(db_path)
    stats = get_user_study_stats(db_path, user_id)
    rate = stats["success_rate"]
    color = get_success_color(rate)
    console.print(Panel(
        f"[bold {color}]{rate}%[/bold {color}] success — [{color}]{get_success_label(rate)}[/{color}]",
        title="Overall",
    ))
    console.print(f"\n  Cards: [bold]{stats['total_cards']}[/bold]  |  "
                  f"Studied: [bold]{stats['studied_cards']}[/bold]  |  "
                  f"Reviews: [bold]{stats['total_reviews']}[/bold]  |  "
                  f"Correct: [bold]{stats['correct_reviews']}[/bold]  |  "
                  f"Daily goal: [bold]{get_daily_goal(db_path)}[/bold]")

    show_daily_activity(db_path, user_id)

    sessions = get_recent_study_sessions(db_path, user_id)
    if sessions:
        table = Table(title="Recent Sessions")
        table.add_column("Started")
        table.add_column("Deck")
        table.add_column("Mode")
        table.add_column("Cards", justify="right")
        for s in sessions:
            table.add_row(
                (s["started_at"] or "")[:16], s["deck_name"] or "-",
                s["study_mode"], str(s["cards_studied"]),
            )
        console.print(table)


def cmd_settings(db_path: str):
    mode = Prompt.ask(
        "Default study mode", choices=[m.value for m in StudyMode],
        default=get_default_study_mode(db_path).value,
    )
    set_default_study_mode(db_path, StudyMode(mode))
    set_daily_goal(db_path, IntPrompt.ask("Daily goal (cards)", default=get_daily_goal(db_path)))

    current = get_fsrs_config(db_path)
    retention = float(Prompt.ask("FSRS target retention", default=str(current.request_retention)))
    max_interval = IntPrompt.ask("FSRS maximum interval (days)", default=current.maximum_interval)
    fuzz = Prompt.ask(
        "FSRS interval fuzz", choices=["on", "off"], default="on" if current.enable_fuzz else "off",
    )
    set_fsrs_config(db_path, FSRSConfig(retention, max_interval, fuzz == "on"))

    if Prompt.ask("Reset all study progress?", choices=["y", "n"], default="n") == "y":
        reset_study_records(db_path, get_user_id(db_path))
        console.print("[yellow]Study progress reset.[/yellow]")
    console.print("[green]Settings saved.[/green]")


COMMANDS = {
    "study": cmd_study,
    "decks": cmd_decks,
    "new": cmd_new,
    "add": cmd_add,
    "edit": cmd_edit,
    "import": cmd_import,
    "export": cmd_export,
    "stats": cmd_stats,
    "settings": cmd_settings,
}


def main():
    setup_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready! A sample deck was added.[/green]\n")

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="study").strip().lower()
        try:
            if choice in COMMANDS:
                COMMANDS[choice](db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Happy studying![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.debug("Command %s failed", choice, exc_info=True)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
