"""CLI entry point for mathdrill."""

import time

import click

from mathdrill.engine.levels import MAX_LEVEL, SKILL_LABELS, SKILLS, Mode


def _open_session():
    from mathdrill.config.settings import Settings
    from mathdrill.engine.session import DrillSession
    from mathdrill.state.progress import ProgressStore

    settings = Settings.load()
    store = ProgressStore(db_path=settings.data_dir / "progress.db")
    return DrillSession(settings=settings, store=store)


def _run(session, question) -> None:
    """Ask questions until the session finishes."""
    from mathdrill.engine.session import AnswerError

    limit_ms = session.settings.time_limit_ms
    while question is not None:
        click.echo(
            f"[{session.index}/{session.total}] "
            f"{SKILL_LABELS[question.skill]} · level {question.level}"
        )
        started = time.monotonic()
        while True:
            raw = click.prompt(f"  {question.text} =", default="", show_default=False)
            elapsed = (time.monotonic() - started) * 1000
            if elapsed > limit_ms:
                feedback = session.time_out(elapsed)
                break
            try:
                feedback = session.submit(raw, elapsed)
                break
            except AnswerError as e:
                click.echo(f"  {e}")

        click.secho(f"  {feedback.message}", fg="green" if feedback.correct else "red")
        level = session.stats[feedback.skill].level
        if feedback.leveled_up:
            click.echo(f"  Level up! {SKILL_LABELS[feedback.skill]} is now level {level}.")
        elif feedback.leveled_down:
            click.echo(f"  {SKILL_LABELS[feedback.skill]} eased to level {level}.")
        question = session.advance()

    tally = session.tally
    click.echo(f"\nDone: {tally.correct} correct, {tally.wrong} wrong ({tally.accuracy_percent}%).")


@click.group()
def main() -> None:
    """mathdrill: adaptive arithmetic practice."""


@main.command()
@click.argument("mode", required=False, type=click.Choice([m.value for m in Mode]))
def drill(mode: str | None) -> None:
    """Run a drill session (add, sub, mul, div, or mix)."""
    session = _open_session()
    _run(session, session.start(Mode(mode) if mode else None))


@main.command()
@click.option("--practice", is_flag=True, help="Drill the most-missed problems")
def mistakes(practice: bool) -> None:
    """List missed problems, or practice them."""
    from mathdrill.engine.mistakes import order_for_practice
    from mathdrill.engine.session import SessionError

    session = _open_session()
    if practice:
        try:
            first = session.start_mistakes()
        except SessionError as e:
            raise click.ClickException(str(e)) from e
        _run(session, first)
        return

    items = order_for_practice(session.mistakes)
    if not items:
        click.echo("No mistakes recorded.")
        return
    for item in items:
        click.echo(
            f"  {item.text} = {item.answer}  "
            f"({SKILL_LABELS[item.skill]}, missed {item.misses}x, "
            f"last {item.last_missed_at:%Y-%m-%d %H:%M})"
        )


@main.command()
def stats() -> None:
    """Show per-skill levels, accuracy and speed."""
    from mathdrill.engine.session import format_ms
    from mathdrill.engine.stats import get_accuracy, get_average_ms, get_target_ms, summarize

    session = _open_session()
    for skill in SKILLS:
        entry = session.stats[skill]
        click.echo(
            f"  {SKILL_LABELS[skill]:<15} level {entry.level:>2}/{MAX_LEVEL}  "
            f"accuracy {get_accuracy(entry):>4.0%}  "
            f"avg {format_ms(get_average_ms(entry))}  "
            f"target {format_ms(get_target_ms(entry.level))}"
        )
    summary = summarize(session.stats)
    weakest = SKILL_LABELS[summary.weakest] if summary.weakest else "No data yet"
    click.echo(f"  Overall accuracy {summary.accuracy:.0%} over {summary.attempts} answers; weakest: {weakest}")


@main.command()
@click.option("--questions", type=int, help="Questions per session (5-50)")
@click.option("--time-limit", type=int, help="Seconds per question (5-60)")
@click.option("--negative-level", type=int, help=f"Level that unlocks negative subtraction (0-{MAX_LEVEL}, 0 = off)")
def settings(questions: int | None, time_limit: int | None, negative_level: int | None) -> None:
    """Show or change drill settings."""
    from mathdrill.config.settings import Settings

    current = Settings.load()
    updates = {
        "question_count": questions,
        "time_limit_seconds": time_limit,
        "negative_level": negative_level,
    }
    updates = {k: v for k, v in updates.items() if v is not None}
    if updates:
        current = Settings(**{**current.model_dump(), **updates})
        current.save()

    click.echo(f"  Questions per session: {current.question_count}")
    click.echo(f"  Seconds per question:  {current.time_limit_seconds}")
    negatives = "Off" if current.negative_level == 0 else f"Lvl {current.negative_level}+"
    click.echo(f"  Negative answers:      {negatives}")


@main.command()
@click.confirmation_option(prompt="Reset all skill levels and history?")
def reset() -> None:
    """Start over with every skill at level 1."""
    session = _open_session()
    session.reset_stats()
    click.echo("Stats reset.")


@main.command()
def serve() -> None:
    """Run the JSON-lines server on stdin/stdout."""
    import asyncio

    from mathdrill.server.__main__ import main as server_main

    asyncio.run(server_main())
