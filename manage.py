#!/usr/bin/env python3
"""
Pick'em Management CLI

This script provides command-line management functionality for the Pick'em application.
"""

import json

import click
from flask import current_app
from flask.cli import with_appcontext
from flask_migrate import upgrade

from pickem import create_app, db
from pickem.errors import PickemError, SeasonNotFound
from pickem.services import get_services
from pickem.utils.scoring import is_final_status
from pickem.utils.serializers import serialize

app = create_app()


@click.group()
def cli():
    """Pick'em Management CLI"""
    pass


# Season Management Commands
@cli.group()
def season():
    """Season management commands"""
    pass


@season.command()
@click.argument("label")
@click.option("--activate", is_flag=True, help="Make this the current season")
@with_appcontext
def create(label, activate):
    """Create a new season"""
    schedule = get_services().schedule
    try:
        new_season = schedule.create_season(label)
        if activate:
            new_season = schedule.set_current_season(new_season["id"])
    except PickemError as e:
        click.echo(f"❌ Error creating season: {e.message}")
        return

    click.echo(f"✅ Created season {new_season['season']} ({new_season['id']})")
    if new_season.get("is_current"):
        click.echo("🎯 Season set as current")


@season.command()
@click.argument("label")
@with_appcontext
def activate(label):
    """Make an existing season the current one"""
    schedule = get_services().schedule
    try:
        target = schedule.get_season_by_label(label)
    except SeasonNotFound as e:
        click.echo(f"❌ {e.message}")
        return

    schedule.set_current_season(target["id"])
    click.echo(f"✅ Season {label} is now current")


@season.command(name="list")
@with_appcontext
def list_seasons():
    """List all seasons"""
    seasons = get_services().schedule.list_seasons()
    if not seasons:
        click.echo("No seasons found")
        return

    for row in seasons:
        marker = "🎯" if row["is_current"] else "  "
        click.echo(f"{marker} {row['season']}  {row['id']}")


# Team and Schedule Commands
@cli.group()
def team():
    """Team management commands"""
    pass


@team.command(name="create")
@click.argument("code")
@click.argument("name")
@click.option("--city", help="Team city")
@click.option("--conference", help="Conference")
@click.option("--division", help="Division")
@with_appcontext
def create_team(code, name, city, conference, division):
    """Create a team"""
    data = {"team_code": code, "team_name": name}
    if city:
        data["team_city"] = city
    if conference:
        data["conference"] = conference
    if division:
        data["division"] = division

    try:
        new_team = get_services().schedule.create_team(data)
    except PickemError as e:
        click.echo(f"❌ Error creating team: {e.message}")
        return
    click.echo(f"✅ Created team {new_team['team_code']} ({new_team['id']})")


@team.command(name="list")
@with_appcontext
def list_teams():
    """List all teams"""
    for row in get_services().schedule.list_teams():
        click.echo(f"{row['team_code']:<5} {row['team_name']:<30} {row['id']}")


@cli.group()
def game():
    """Scheduled game commands"""
    pass


@game.command(name="create")
@click.argument("season_label")
@click.argument("week", type=int)
@click.argument("away_code")
@click.argument("home_code")
@click.argument("start_time")
@click.option("--external-id", help="Identifier used by the score feed")
@with_appcontext
def create_game(season_label, week, away_code, home_code, start_time, external_id):
    """Schedule AWAY_CODE at HOME_CODE; START_TIME is ISO 8601"""
    services = get_services()
    try:
        target = services.schedule.get_season_by_label(season_label)
    except SeasonNotFound as e:
        click.echo(f"❌ {e.message}")
        return

    repositories = services.repositories
    away = repositories.teams.get_by_code(away_code)
    home = repositories.teams.get_by_code(home_code)
    if away is None or home is None:
        click.echo(f"❌ Unknown team code: {away_code if away is None else home_code}")
        return

    try:
        new_game = services.schedule.create_game(
            season_id=target["id"],
            week=week,
            home_team_id=home["id"],
            away_team_id=away["id"],
            start_time=start_time,
            external_id=external_id,
        )
    except PickemError as e:
        click.echo(f"❌ Error creating game: {e.message}")
        return
    click.echo(
        f"✅ Week {week}: {away['team_code']} @ {home['team_code']} ({new_game['id']})"
    )


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command()
@click.option("--email", prompt=True, help="Admin email")
@click.option("--first-name", default="Admin", help="First name")
@click.option("--last-name", default="User", help="Last name")
@click.password_option(help="Admin password")
@with_appcontext
def create_admin(email, first_name, last_name, password):
    """Create an admin user"""
    try:
        admin = get_services().users.create_admin(
            email, password, first_name=first_name, last_name=last_name
        )
    except PickemError as e:
        click.echo(f"❌ Error creating admin: {e.message}")
        return
    click.echo(f"✅ Admin user created: {admin['email']}")


# Scoring Commands
@cli.group()
def scoring():
    """Scoring commands"""
    pass


def _resolve_season(label):
    """Season by label, or the current one; None when neither exists"""
    schedule = get_services().schedule
    if label:
        try:
            return schedule.get_season_by_label(label)
        except SeasonNotFound:
            return None
    return schedule.get_current_season()


@scoring.command(name="run")
@click.option("--season", "season_label", help="Season label (default: current season)")
@click.option("--week", type=int, help="Only score this week")
@click.option("--pool-id", help="Only score picks of this pool")
@with_appcontext
def run_scoring(season_label, week, pool_id):
    """Evaluate picks against final games"""
    target = _resolve_season(season_label)
    if target is None:
        click.echo("❌ Season not found")
        return

    summary = get_services().scoring.score_week(target["id"], week, pool_id=pool_id)
    click.echo(
        f"✅ Season {target['season']}: {summary.updated_picks} picks updated, "
        f"{summary.completed_games} completed games"
    )


@cli.group()
def standings():
    """Weekly standings cache commands"""
    pass


@standings.command(name="refresh")
@click.argument("week", type=int)
@click.option("--season", "season_label", help="Season label (default: current season)")
@click.option("--pool-id", help="Only refresh this pool")
@with_appcontext
def refresh_standings(week, season_label, pool_id):
    """Rebuild the weekly standings cache for one week"""
    target = _resolve_season(season_label)
    if target is None:
        click.echo("❌ Season not found")
        return

    written = get_services().scoring.refresh_weekly_standings(
        target["id"], week, pool_id=pool_id
    )
    click.echo(f"✅ Wrote {written} standings rows for week {week}")


# Scheduler Commands
@cli.group()
def scheduler():
    """Background score sync commands"""
    pass


@scheduler.command()
@click.option("--force", is_flag=True, help="Run even outside the game window")
@with_appcontext
def tick(force):
    """Run one score sync and scoring pass now"""
    result = get_services().scheduler.run_tick(force=force)
    click.echo(json.dumps(serialize(result), indent=2))


@scheduler.command(name="status")
@with_appcontext
def scheduler_status():
    """Show scheduler state and counters"""
    click.echo(json.dumps(serialize(get_services().scheduler.get_status()), indent=2))


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command(name="init")
@with_appcontext
def init_db():
    """Initialize database tables"""
    if current_app.config["STORAGE_BACKEND"] != "sql":
        click.echo("⚠️  Key-value storage needs no initialization")
        return
    db.create_all()
    click.echo("✅ Database tables created successfully!")


@db_cmd.command(name="upgrade")
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    services = get_services()
    click.echo("🏈 Pick'em Application Status")
    click.echo("=" * 40)
    click.echo(f"💾 Storage: {current_app.config['STORAGE_BACKEND']}")

    current_season = services.schedule.get_current_season()
    if current_season:
        week = services.schedule.current_week(current_season["id"])
        click.echo(f"✅ Current Season: {current_season['season']} (Week {week})")
    else:
        click.echo("⚠️  Current Season: None active")

    repositories = services.repositories
    click.echo(f"👥 Users: {repositories.users.count()}")
    click.echo(f"🏆 Pools: {repositories.pools.count()}")
    if current_season:
        games = services.schedule.list_games(current_season["id"])
        finished = sum(1 for g in games if is_final_status(g["status"]))
        click.echo(f"🏈 Games: {finished}/{len(games)} completed")


if __name__ == "__main__":
    with app.app_context():
        cli()
