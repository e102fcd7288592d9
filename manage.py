#!/usr/bin/env python3
"""
Prediction Pool Management CLI

Command-line administration for the pool tracker: match results, podium,
recalculation, ranking and integrity checks.
"""

import logging

import click
from flask.cli import FlaskGroup, with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pool_tracker import create_app, db
from pool_tracker.errors import PoolError
from pool_tracker.models import DeclaredPodium, Match, Prediction
from pool_tracker.services import (
    IntegrityAuditor,
    RankingBuilder,
    RecalculationCoordinator,
    ScoringEngine,
)
from pool_tracker.services.snapshot_service import compare_history, take_snapshot

logger = logging.getLogger(__name__)


@click.group(cls=FlaskGroup, create_app=create_app)
def cli():
    """Prediction Pool Management CLI"""
    pass


def _echo_summary(summary):
    click.echo(
        f"   Examined: {summary.examined}  Changed: {summary.changed}  "
        f"Errors: {len(summary.errors)}"
    )
    for error in summary.errors:
        click.echo(f"   ⚠️  User {error['user_id']}: {error['error']}")


@cli.command("init-db")
@with_appcontext
def init_db():
    """Create all database tables"""
    db.create_all()
    click.echo("✅ Database tables created")


# Match Management Commands
@cli.group()
def match():
    """Match management commands"""
    pass


@match.command("add")
@click.argument("match_id", type=int)
@click.argument("home_team")
@click.argument("away_team")
@click.option("--group", "group_label", required=True, help="Group or stage label")
@click.option(
    "--date",
    "scheduled_at",
    type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%d"]),
    help="Kick-off (YYYY-MM-DD HH:MM)",
)
@click.option("--stadium", help="Stadium name")
@with_appcontext
def add_match(match_id, home_team, away_team, group_label, scheduled_at, stadium):
    """Create a new match"""
    try:
        if db.session.get(Match, match_id):
            click.echo(f"❌ Match {match_id} already exists!")
            return

        db.session.add(
            Match(
                id=match_id,
                home_team=home_team.strip(),
                away_team=away_team.strip(),
                group_label=group_label.strip(),
                scheduled_at=scheduled_at,
                stadium=stadium.strip() if stadium else None,
            )
        )
        db.session.commit()
        click.echo(f"✅ Created match {match_id}: {home_team} vs {away_team} ({group_label})")

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Could not create match {match_id}: {e.orig}")
        logger.error(f"Match creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating match: {str(e)}")
        logger.error(f"Match creation failed - SQL error: {e}")


@match.command("list")
@with_appcontext
def list_matches():
    """List all matches"""
    matches = Match.query.order_by(Match.id).all()

    if not matches:
        click.echo("No matches found.")
        return

    click.echo("Matches:")
    for m in matches:
        score = f"{m.home_score}-{m.away_score}" if m.is_finished else "-"
        click.echo(f"  {m.id}: {m.name} [{m.group_label}] {m.status} {score}")


@match.command("edit")
@click.argument("match_id", type=int)
@click.option("--home", "home_team", help="Home team")
@click.option("--away", "away_team", help="Away team")
@click.option("--group", "group_label", help="Group or stage label")
@click.option(
    "--date",
    "scheduled_at",
    type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%d"]),
    help="Kick-off (YYYY-MM-DD HH:MM)",
)
@click.option("--stadium", help="Stadium name")
@click.option(
    "--status",
    type=click.Choice([s for s in Match.STATUSES if s != Match.FINISHED]),
    help="New status (use 'match finish' to record a score)",
)
@with_appcontext
def edit_match(match_id, home_team, away_team, group_label, scheduled_at, stadium, status):
    """Edit match details without touching scores or points"""
    try:
        m = Match.get_required(match_id)
        m.edit(
            home_team=home_team,
            away_team=away_team,
            group_label=group_label,
            scheduled_at=scheduled_at,
            stadium=stadium,
            status=status,
        )
        db.session.commit()
        click.echo(f"✅ Updated match {match_id}: {m.name} [{m.group_label}] {m.status}")
    except PoolError as e:
        db.session.rollback()
        click.echo(f"❌ {e.message}")


@match.command("start")
@click.argument("match_id", type=int)
@with_appcontext
def start_match(match_id):
    """Mark a match as in progress"""
    try:
        Match.get_required(match_id).start()
        db.session.commit()
        click.echo(f"✅ Match {match_id} in progress")
    except PoolError as e:
        db.session.rollback()
        click.echo(f"❌ {e.message}")


@match.command("cancel")
@click.argument("match_id", type=int)
@with_appcontext
def cancel_match(match_id):
    """Cancel a match that has not finished"""
    try:
        Match.get_required(match_id).cancel()
        db.session.commit()
        click.echo(f"✅ Match {match_id} cancelled")
    except PoolError as e:
        db.session.rollback()
        click.echo(f"❌ {e.message}")


@match.command("finish")
@click.argument("match_id", type=int)
@click.argument("home_score", type=int)
@click.argument("away_score", type=int)
@with_appcontext
def finish_match(match_id, home_score, away_score):
    """Record a final score (or correct one) and rescore all predictions"""
    try:
        summary = ScoringEngine().finalize_match(match_id, home_score, away_score)
    except PoolError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(f"✅ Match {match_id} finished {home_score}-{away_score} ({summary.outcome})")
    _echo_summary(summary)


@match.command("reopen")
@click.argument("match_id", type=int)
@with_appcontext
def reopen_match(match_id):
    """Reopen a finished match and clear its points"""
    try:
        summary = ScoringEngine().reopen_match(match_id)
    except PoolError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(f"✅ Match {match_id} reopened")
    _echo_summary(summary)


@match.command("delete")
@click.argument("match_id", type=int)
@click.confirmation_option(prompt="Delete this match and every pick on it?")
@with_appcontext
def delete_match(match_id):
    """Delete a match and the picks referencing it"""
    try:
        summary = ScoringEngine().delete_match(match_id)
    except PoolError as e:
        click.echo(f"❌ {e.message}")
        return

    if summary.errors:
        click.echo(f"❌ Match {match_id} not deleted")
    else:
        click.echo(f"✅ Match {match_id} deleted")
    _echo_summary(summary)


# Points Commands
@cli.group()
def points():
    """Scoring commands"""
    pass


@points.command("recalc")
@click.option(
    "--apply-podium", is_flag=True, help="Also rescore the declared podium"
)
@with_appcontext
def recalc(apply_podium):
    """Recalculate every prediction from finished matches"""
    podium = None
    if apply_podium:
        podium = DeclaredPodium.load()
        if podium is None:
            click.echo("❌ No podium declared")
            return

    try:
        summary = RecalculationCoordinator().recalculate_all(podium=podium)
    except PoolError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(f"✅ Recalculated {summary.examined} predictions ({summary.picks_changed} picks changed)")
    _echo_summary(summary)


@points.command("podium")
@click.argument("first")
@click.argument("second")
@click.argument("third")
@with_appcontext
def declare_podium(first, second, third):
    """Declare the final podium and score it"""
    try:
        summary = ScoringEngine().process_podium(first, second, third)
    except PoolError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(f"🏆 Podium: {first} / {second} / {third}")
    click.echo(
        f"   Champion hits: {summary.first_hits}  Runner-up hits: {summary.second_hits}  "
        f"Third hits: {summary.third_hits}"
    )
    click.echo(f"   Podium points distributed: {summary.total_podium_points}")
    _echo_summary(summary)


@points.command("clear-podium")
@click.confirmation_option(prompt="Clear the declared podium and all podium points?")
@with_appcontext
def clear_podium():
    """Forget the declared podium"""
    reset = ScoringEngine().clear_podium()
    click.echo(f"✅ Podium cleared, {reset} predictions reset")


@points.command("bonus")
@click.argument("user_id", type=int)
@click.argument("amount", type=int)
@with_appcontext
def bonus(user_id, amount):
    """Set a user's bonus points"""
    try:
        prediction = ScoringEngine().set_bonus_points(user_id, amount)
    except PoolError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(f"✅ User {user_id} bonus {amount}, total {prediction.total_points}")


# Ranking Commands
@cli.group()
def ranking():
    """Ranking commands"""
    pass


@ranking.command("rebuild")
@with_appcontext
def rebuild():
    """Rebuild ranking positions"""
    count = RankingBuilder().rebuild()
    click.echo(f"✅ Ranked {count} predictions")


@ranking.command("show")
@click.option("--limit", default=20, show_default=True, help="Rows to show")
@with_appcontext
def show(limit):
    """Show the ranking"""
    predictions = (
        Prediction.query.filter(Prediction.has_submitted.is_(True))
        .order_by(Prediction._ranking_position)
        .limit(limit)
        .all()
    )

    if not predictions:
        click.echo("No submitted predictions.")
        return

    for p in predictions:
        click.echo(
            f"  #{p.ranking_position}: user {p.user_id} - {p.total_points} pts "
            f"(group {p.group_points}, podium {p.podium_points}, bonus {p.bonus_points})"
        )


@cli.command()
@with_appcontext
def audit():
    """Check stored totals against their components"""
    report = IntegrityAuditor().audit()

    click.echo(f"🔍 Examined {report.examined} predictions")
    for error in report.errors:
        click.echo(
            f"   ❌ User {error['user_id']}: expected {error['expected']}, stored {error['actual']}"
        )
    for warning in report.warnings:
        click.echo(f"   ⚠️  User {warning['user_id']}: {warning['message']}")

    if report.is_healthy:
        click.echo("✅ All totals consistent")


# Snapshot Commands
@cli.group()
def snapshot():
    """Points history commands"""
    pass


@snapshot.command("take")
@click.argument("label")
@click.option("--group", "group_label", help="Require every match of this group to be finished")
@with_appcontext
def take(label, group_label):
    """Save every user's points and position under LABEL"""
    try:
        count = take_snapshot(label, group_label=group_label)
    except PoolError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(f"✅ Snapshot '{label}' saved for {count} predictions")


@snapshot.command("compare")
@click.argument("user_id", type=int)
@click.argument("other_user_id", type=int)
@with_appcontext
def compare(user_id, other_user_id):
    """Show two users' points history side by side"""
    history = compare_history(user_id, other_user_id)

    for key, uid in (("user", user_id), ("other", other_user_id)):
        click.echo(f"📈 User {uid}:")
        if not history[key]:
            click.echo("   No snapshots.")
        for row in history[key]:
            click.echo(f"   {row['label']}: {row['total_points']} pts (#{row['position']})")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏆 Prediction Pool Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    total = Match.query.count()
    finished = Match.query.filter_by(status=Match.FINISHED).count()
    click.echo(f"⚽ Matches: {finished}/{total} finished")

    submitted = Prediction.query.filter(Prediction.has_submitted.is_(True)).count()
    click.echo(f"📝 Submitted predictions: {submitted}")

    declared = DeclaredPodium.get_current()
    if declared:
        click.echo(f"🏆 Podium: {declared.first} / {declared.second} / {declared.third}")
    else:
        click.echo("⚠️  Podium: not declared")


if __name__ == "__main__":
    cli()
