import typer
from rich.console import Console
from rich.table import Table
from rich.markup import escape
from typing import Optional
from datetime import datetime, timezone
from pathlib import Path
import json

from memory_curve.config import settings
from memory_curve.logging_config import configure_logging
from memory_curve.database import SessionLocal, init_db
from memory_curve.crud import (
    create_sentence, get_sentence, delete_sentence,
    get_learning_record, save_learning_record, review_sentence,
    get_review_items, get_due_sentences, get_review_logs
)
from memory_curve.schemas import SentenceCreate, LearningType, FamiliarityLevel
from memory_curve.sm2 import MemoryCurveScheduler
from memory_curve.clock import FixedClock
from memory_curve.backup import build_bundle, read_bundle
from memory_curve.errors import InvalidArgumentError, ItemNotFoundError

app = typer.Typer(help="Memory Curve CLI - spaced repetition review for sentences and words")
console = Console()

LEARNING_TYPES = ", ".join(t.value for t in LearningType)
RESPONSES = ", ".join(r.value for r in FamiliarityLevel)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    """Configure logging before any command runs"""
    configure_logging("DEBUG" if verbose else None)


def _make_scheduler(as_of: Optional[str]) -> MemoryCurveScheduler:
    """Scheduler on the real clock, or frozen at the start of `as_of` (YYYY-MM-DD)"""
    if not as_of:
        return MemoryCurveScheduler()
    try:
        instant = datetime.strptime(as_of, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        console.print(f"[red]✗[/red] Invalid date '{as_of}'. Use YYYY-MM-DD")
        raise typer.Exit(code=1)
    return MemoryCurveScheduler(clock=FixedClock(instant))


def _fail(message: str):
    console.print(f"[red]✗[/red] {escape(message)}")
    raise typer.Exit(code=1)


@app.command()
def init():
    """Initialize database tables"""
    init_db()
    console.print("[green]✓[/green] Database initialized successfully!")


@app.command()
def reset_db():
    """Delete all data and reinitialize database (WARNING: irreversible!)"""
    confirm = typer.confirm("⚠️  This will DELETE ALL DATA. Are you sure?")
    if not confirm:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    from memory_curve.database import engine, Base
    import memory_curve.models  # noqa: F401
    console.print("[yellow]Dropping all tables...[/yellow]")
    Base.metadata.drop_all(bind=engine)
    console.print("[yellow]Recreating tables...[/yellow]")
    Base.metadata.create_all(bind=engine)
    console.print("[green]✓[/green] Database reset complete! All data deleted.")


@app.command()
def add_sentence(
    content: str = typer.Option(..., prompt="Sentence"),
    translation: Optional[str] = typer.Option(None, help="Translation shown on the back of the card"),
    source: Optional[str] = typer.Option(None, help="Book title or import label")
):
    """Add a sentence to review"""
    db = SessionLocal()
    try:
        sentence = create_sentence(db, SentenceCreate(content=content, translation=translation, source=source))
        console.print(f"[green]✓[/green] Sentence added! ID: {sentence.id}")
    finally:
        db.close()


@app.command("list")
def list_command(
    source: Optional[str] = typer.Option(None, help="Only sentences from this source"),
    learning_type: str = typer.Option(LearningType.SENTENCE_TRANSLATION.value, help=f"One of: {LEARNING_TYPES}")
):
    """List sentences with their review state"""
    db = SessionLocal()
    try:
        items = get_review_items(db, learning_type, source)
        if not items:
            console.print("[yellow]No sentences yet. Add one with `add-sentence`.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Sentence", style="green")
        table.add_column("Familiarity", style="yellow")
        table.add_column("Reviews", justify="right")
        table.add_column("Next Review", style="blue")

        for item in items:
            record = item.learning_record
            table.add_row(
                item.item_id,
                item.content[:60],
                record.familiarity_level.value if record else "new",
                str(record.review_count) if record else "0",
                record.next_review_at.strftime("%Y-%m-%d %H:%M") if record and record.next_review_at else "-"
            )
        console.print(table)
    except InvalidArgumentError as e:
        _fail(str(e))
    finally:
        db.close()


@app.command()
def remove_sentence(sentence_id: int):
    """Delete a sentence and its review history"""
    db = SessionLocal()
    try:
        delete_sentence(db, sentence_id)
        console.print(f"[green]✓[/green] Sentence {sentence_id} deleted")
    except ItemNotFoundError as e:
        _fail(str(e))
    finally:
        db.close()


@app.command()
def review(
    sentence_id: int = typer.Option(..., prompt="Sentence ID"),
    response: str = typer.Option(..., prompt=f"How well did you know it? ({RESPONSES})"),
    learning_type: str = typer.Option(LearningType.SENTENCE_TRANSLATION.value, help=f"One of: {LEARNING_TYPES}"),
    as_of: Optional[str] = typer.Option(None, help="Review date (YYYY-MM-DD), default: now")
):
    """Record a review response for a sentence"""
    scheduler = _make_scheduler(as_of)
    db = SessionLocal()
    try:
        sentence = get_sentence(db, sentence_id)
        record = review_sentence(db, scheduler, sentence_id, response, learning_type)

        console.print("[green]✓[/green] Review recorded!")
        console.print(f"  Sentence: {sentence.content[:60]}")
        console.print(f"  Response: {record.familiarity_level.value}")
        console.print(f"  Next review: {record.next_review_at:%Y-%m-%d} (in {record.interval_days} days)")
        console.print(f"  Ease factor: {record.ease_factor:.2f}")
    except (InvalidArgumentError, ItemNotFoundError) as e:
        _fail(str(e))
    finally:
        db.close()


@app.command()
def due(
    learning_type: str = typer.Option(LearningType.SENTENCE_TRANSLATION.value, help=f"One of: {LEARNING_TYPES}"),
    source: Optional[str] = typer.Option(None, help="Only sentences from this source"),
    limit: int = typer.Option(settings.due_list_limit, help="Maximum rows to show"),
    as_of: Optional[str] = typer.Option(None, help="Reference date (YYYY-MM-DD), default: now")
):
    """Show sentences due for review"""
    scheduler = _make_scheduler(as_of)
    db = SessionLocal()
    try:
        due_items = get_due_sentences(db, scheduler, learning_type, source)
        if not due_items:
            console.print("[green]Nothing due for review. Well done![/green]")
            return

        console.print(f"\n[yellow]Sentences Due for Review: {len(due_items)}[/yellow]")
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Sentence", style="green")
        table.add_column("Due Date", style="yellow")
        table.add_column("Days Overdue", style="red")

        for item in due_items[:limit]:
            record = item.learning_record
            if record is None or record.next_review_at is None:
                due_date, overdue = "new", "-"
            else:
                days = scheduler.days_overdue(record)
                due_date = record.next_review_at.strftime("%Y-%m-%d")
                overdue = str(days) if days > 0 else "Today"
            table.add_row(item.item_id, item.content[:50], due_date, overdue)

        console.print(table)
        if len(due_items) > limit:
            console.print(f"[dim]... and {len(due_items) - limit} more sentences[/dim]")
    except InvalidArgumentError as e:
        _fail(str(e))
    finally:
        db.close()


@app.command()
def stats(
    learning_type: str = typer.Option(LearningType.SENTENCE_TRANSLATION.value, help=f"One of: {LEARNING_TYPES}"),
    source: Optional[str] = typer.Option(None, help="Only sentences from this source"),
    target: float = typer.Option(settings.target_mastery_rate, help="Target mastery rate (0-1)"),
    as_of: Optional[str] = typer.Option(None, help="Reference date (YYYY-MM-DD), default: now")
):
    """View learning statistics, projected progress and advice"""
    scheduler = _make_scheduler(as_of)
    db = SessionLocal()
    try:
        items = get_review_items(db, learning_type, source)
        learning_stats = scheduler.calculate_learning_stats(items)
        prediction = scheduler.predict_learning_progress(learning_stats, target)

        console.print("\n[bold]Learning Progress[/bold]\n")
        console.print("[cyan]Statistics:[/cyan]")
        console.print(f"  Total sentences: {learning_stats.total}")
        console.print(f"  Mastered: {learning_stats.mastered}")
        console.print(f"  Familiar: {learning_stats.familiar}")
        console.print(f"  Unfamiliar: {learning_stats.unfamiliar}")
        console.print(f"  Not yet reviewed: {learning_stats.unlearned}")
        console.print(f"  Due for review: {learning_stats.next_review_count}")
        console.print(f"  Average ease factor: {learning_stats.average_ease_factor:.2f}")
        console.print(f"  Average interval: {learning_stats.average_interval:.1f} days")

        console.print(f"\n[cyan]Projection (target {target:.0%} mastered):[/cyan]")
        console.print(f"  Days to target: {prediction.days_to_target}")
        console.print(f"  Estimated reviews: {prediction.estimated_reviews}")
        console.print(f"  Confidence: {prediction.confidence}")

        console.print("\n[cyan]Advice:[/cyan]")
        for line in scheduler.generate_learning_advice(learning_stats):
            console.print(f"  - {line}")
    except InvalidArgumentError as e:
        _fail(str(e))
    finally:
        db.close()


@app.command()
def history(sentence_id: int, limit: int = typer.Option(10, help="Number of reviews to show")):
    """Show recent reviews of a sentence"""
    db = SessionLocal()
    try:
        sentence = get_sentence(db, sentence_id)
        logs = get_review_logs(db, sentence_id, limit)
        console.print(f"\n[bold]{sentence.content}[/bold]")
        if sentence.translation:
            console.print(f"[dim]{sentence.translation}[/dim]")

        if not logs:
            console.print("[yellow]Not reviewed yet.[/yellow]")
            return

        for log in logs:
            console.print(
                f"  {log.reviewed_at:%Y-%m-%d %H:%M} - {log.response} "
                f"(interval {log.interval_days}d, ease {log.ease_factor:.2f})"
            )
    except ItemNotFoundError as e:
        _fail(str(e))
    finally:
        db.close()


@app.command()
def export(
    output: Path = typer.Option(..., prompt="Backup file path (.json)"),
    learning_type: str = typer.Option(LearningType.SENTENCE_TRANSLATION.value, help=f"One of: {LEARNING_TYPES}")
):
    """Export learning records to a JSON backup"""
    db = SessionLocal()
    try:
        items = get_review_items(db, learning_type)
        bundle = build_bundle(items, datetime.now(timezone.utc))
        output.write_text(json.dumps(bundle, ensure_ascii=False, indent=2), encoding="utf-8")
        console.print(f"[green]✓[/green] Exported {len(bundle['items'])} entries to {output}")
    except InvalidArgumentError as e:
        _fail(str(e))
    finally:
        db.close()


@app.command("import")
def import_command(input_file: Path = typer.Option(..., "--input", prompt="Backup file path (.json)")):
    """Restore learning records from a JSON backup"""
    db = SessionLocal()
    try:
        try:
            payload = json.loads(input_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            _fail(f"Cannot read {input_file}: {e}")

        restored, skipped = 0, 0
        for item_id, record in read_bundle(payload):
            if record is None:
                skipped += 1
                continue
            try:
                save_learning_record(db, record)
                restored += 1
            except ItemNotFoundError as e:
                console.print(f"[yellow]Skipping - {escape(str(e))}[/yellow]")
                skipped += 1

        console.print(f"[green]✓[/green] Restored {restored} learning records ({skipped} skipped)")
    except InvalidArgumentError as e:
        _fail(str(e))
    finally:
        db.close()


@app.command()
def show(
    sentence_id: int,
    learning_type: str = typer.Option(LearningType.SENTENCE_TRANSLATION.value, help=f"One of: {LEARNING_TYPES}")
):
    """Show the stored learning record of a sentence"""
    db = SessionLocal()
    try:
        sentence = get_sentence(db, sentence_id)
        record = get_learning_record(db, sentence_id, learning_type)
        console.print(f"\n[bold]{sentence.content}[/bold]")
        if record is None:
            console.print("[yellow]Not reviewed yet.[/yellow]")
            return
        console.print(f"  Familiarity: {record.familiarity_level.value}")
        console.print(f"  Reviews: {record.review_count}")
        console.print(f"  Ease factor: {record.ease_factor:.2f}")
        console.print(f"  Interval: {record.interval_days} days")
        if record.next_review_at:
            console.print(f"  Next review: {record.next_review_at:%Y-%m-%d %H:%M}")
    except (InvalidArgumentError, ItemNotFoundError) as e:
        _fail(str(e))
    finally:
        db.close()


if __name__ == "__main__":
    app()
