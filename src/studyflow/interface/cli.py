"""StudyFlow CLI: today's cards, reminder plans, answers and promotions."""

import json
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from studyflow.application.config import AppConfig, resolve_config
from studyflow.domain.errors import StudyFlowError
from studyflow.domain.models import Card, DailySelection, NotificationPlan

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="studyflow: spaced-repetition scheduling for your flashcards.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

config_app = typer.Typer(help="Manage studyflow configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    deck: Annotated[
        Path | None, typer.Option("--deck", help="Deck file. Defaults to 'deck_path' in config.")
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Random seed for reproducible plans.")] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for studyflow."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"deck_path": deck, "seed": seed}
    if verbose > 0:
        logging.getLogger("studyflow").setLevel(logging.DEBUG)


def _config(ctx: typer.Context, **overrides) -> AppConfig:
    base = dict((ctx.obj or {}).get("overrides", {}))
    base.update(overrides)
    try:
        config = resolve_config(base)
    except StudyFlowError as e:
        _fail(e)
    _log_to_file(config.log_dir)
    return config


def _log_to_file(log_dir: Path) -> None:
    """Mirror studyflow logs into a rotating file under ``log_dir``."""
    log_file = os.path.abspath(log_dir / "studyflow.log")
    pkg_logger = logging.getLogger("studyflow")
    for handler in list(pkg_logger.handlers):
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            if handler.baseFilename == log_file:
                return
            pkg_logger.removeHandler(handler)
            handler.close()

    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=1024 * 1024, backupCount=3, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    pkg_logger.addHandler(handler)


def _planner(config: AppConfig):
    from studyflow.application.factory import get_planner

    return get_planner(config)


def _fail(error: Exception) -> NoReturn:
    typer.secho(f"Error: {error}", fg="red", err=True)
    raise typer.Exit(1)


def _card_summary(card: Card) -> dict:
    return {
        "id": card.id,
        "question": card.question,
        "tier": card.tier.value,
        "next_due_at": card.next_due_at.isoformat(),
        "correct_streak": card.correct_streak,
        "total_attempts": card.total_attempts,
        "accuracy": round(card.accuracy, 3),
    }


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    question: Annotated[str, typer.Argument(help="Question text.")],
    answer: Annotated[str, typer.Argument(help="Answer text.")],
    class_id: Annotated[
        str | None, typer.Option(help="Class / collection the card belongs to.")
    ] = None,
):
    """[bold green]Add[/bold green] a new Learning card, due immediately."""
    from studyflow.application.card_service import add_card
    from studyflow.application.factory import get_card_store
    from studyflow.infrastructure.clock import SystemClock

    config = _config(ctx)
    card = add_card(get_card_store(config), question, answer, SystemClock().now(), class_id)
    typer.echo(card.id)


@app.command()
def today(
    ctx: typer.Context,
    budget: Annotated[int | None, typer.Option(help="Override the daily card budget.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show the cards selected for today."""
    config = _config(ctx, daily_card_budget=budget)
    try:
        selection = _planner(config).compute_daily_selection()
    except StudyFlowError as e:
        _fail(e)

    if json_output:
        typer.echo(json.dumps(_selection_json(selection), indent=2))
        return

    for error in selection.errors:
        typer.secho(f"Config: {error}", fg="yellow")
    typer.echo(
        f"Today: {len(selection)} cards  "
        f"(overdue {len(selection.overdue)}, due {len(selection.due_today)}, "
        f"learning {len(selection.learning)})"
    )
    for label, cards in (
        ("Overdue", selection.overdue),
        ("Due today", selection.due_today),
        ("Learning", selection.learning),
    ):
        if not cards:
            continue
        typer.secho(f"\n{label}", bold=True)
        for card in cards:
            typer.echo(f"  {card.id}  [{card.tier.value}]  {card.question}")
    if selection.archival_candidates:
        typer.secho(
            f"\n{len(selection.archival_candidates)} cards are more than 3 days overdue.",
            fg="yellow",
        )


@app.command()
def plan(
    ctx: typer.Context,
    notified: Annotated[
        list[str] | None,
        typer.Option("--notified", help="Card ID already sent today. Repeatable."),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Plan today's reminders from today's selection."""
    config = _config(ctx)
    try:
        planner = _planner(config)
        selection = planner.compute_daily_selection()
        result = planner.compute_notification_plan(
            selection, already_notified=set(notified) if notified else None
        )
    except StudyFlowError as e:
        _fail(e)

    if json_output:
        typer.echo(json.dumps(_plan_json(result), indent=2))
    else:
        for error in result.errors:
            typer.secho(f"Config: {error}", fg="red")
        if result.skipped_reason:
            typer.secho(f"No reminders: {result.skipped_reason}", fg="yellow")
        for batch in result.batches:
            typer.echo(f"{batch.scheduled_at:%H:%M}  {', '.join(batch.card_ids)}")
        if not result.batches and result.ok and not result.skipped_reason:
            typer.echo("No reminders left today.")

    if not result.ok:
        raise typer.Exit(1)


@app.command()
def answer(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
    correct: Annotated[
        bool, typer.Option("--correct/--incorrect", help="Whether the answer was right.")
    ],
    response_ms: Annotated[
        float | None, typer.Option(help="Response time in milliseconds.")
    ] = None,
):
    """Record an answer and reschedule the card."""
    config = _config(ctx)
    try:
        card, evaluation = _planner(config).submit_answer(card_id, correct, response_ms)
    except StudyFlowError as e:
        _fail(e)

    typer.echo(f"{card.id}: {card.tier.value}, next due {card.next_due_at:%Y-%m-%d %H:%M}")
    if evaluation.eligible and evaluation.next_tier is not None:
        typer.secho(
            f"Ready for promotion to {evaluation.next_tier.value}. "
            f"Run 'studyflow promote {card.id}'.",
            fg="green",
        )


@app.command()
def promote(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
    decline: Annotated[
        bool, typer.Option("--decline", help="Decline the offer; ask again in 3 days.")
    ] = False,
):
    """Promote a card to its next tier (or decline the offer)."""
    config = _config(ctx)
    try:
        planner = _planner(config)
        card = planner.decline(card_id) if decline else planner.promote(card_id)
    except StudyFlowError as e:
        _fail(e)
    typer.echo(f"{card.id}: {card.tier.value}, next due {card.next_due_at:%Y-%m-%d %H:%M}")


@app.command()
def deactivate(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
):
    """Exclude a card from study and reminders."""
    from studyflow.application.card_service import deactivate_card
    from studyflow.application.factory import get_card_store

    try:
        card = deactivate_card(get_card_store(_config(ctx)), card_id)
    except StudyFlowError as e:
        _fail(e)
    typer.echo(f"{card.id}: {card.tier.value}")


@app.command()
def reactivate(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
):
    """Bring an inactive card back as a Learning card."""
    from studyflow.application.card_service import reactivate_card
    from studyflow.application.factory import get_card_store
    from studyflow.infrastructure.clock import SystemClock

    try:
        card = reactivate_card(get_card_store(_config(ctx)), card_id, SystemClock().now())
    except StudyFlowError as e:
        _fail(e)
    typer.echo(f"{card.id}: {card.tier.value}")


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8787,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the local HTTP API."""
    import uvicorn

    uvicorn.run("studyflow.server:app", host=host, port=port, reload=reload)


@app.command()
def logs(ctx: typer.Context):
    """Open the log directory."""
    import subprocess

    config = _config(ctx)
    if sys.platform == "darwin":
        subprocess.run(["open", str(config.log_dir)])
    elif sys.platform == "win32":
        os.startfile(str(config.log_dir))
    else:
        subprocess.run(["xdg-open", str(config.log_dir)])


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


def _selection_json(selection: DailySelection) -> dict:
    return {
        "overdue": [_card_summary(c) for c in selection.overdue],
        "due_today": [_card_summary(c) for c in selection.due_today],
        "learning": [_card_summary(c) for c in selection.learning],
        "archival_candidates": [c.id for c in selection.archival_candidates],
        "errors": [str(e) for e in selection.errors],
    }


def _plan_json(result: NotificationPlan) -> dict:
    return {
        "batches": [
            {"scheduled_at": b.scheduled_at.isoformat(), "card_ids": list(b.card_ids)}
            for b in result.batches
        ],
        "errors": [str(e) for e in result.errors],
        "skipped_reason": result.skipped_reason,
    }

