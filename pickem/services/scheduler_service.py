"""
Pick'em score sync scheduler

One APScheduler interval job pulls results for the current week during the
game window, scores the previous and current week and refreshes the weekly
standings cache.
"""

import atexit
import logging
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pickem.utils.cache_utils import invalidate_model_cache
from pickem.utils.timezone_utils import convert_to_timezone, get_timezone, get_utc_time

logger = logging.getLogger(__name__)

JOB_ID = "sync_and_score"


class SchedulerService:
    """Owns the background scheduler and the tick that runs on it"""

    def __init__(self, app, schedule, scoring, score_provider):
        self.app = app
        self.schedule = schedule
        self.scoring = scoring
        self.score_provider = score_provider
        self.scheduler = None
        self.is_running = False
        self._tick_lock = threading.Lock()
        self.stats = {
            "last_tick": None,
            "total_ticks": 0,
            "skipped_ticks": 0,
            "failed_ticks": 0,
            "last_error": None,
        }

        config = app.config
        self.interval_seconds = config.get("SCHEDULER_INTERVAL_SECONDS", 300)
        self.timezone = get_timezone(config.get("SCHEDULER_TIMEZONE", "America/New_York"))
        self.game_days = set(config.get("SCHEDULER_GAME_DAYS", [0, 3, 5, 6]))
        start_hour, end_hour = config.get("SCHEDULER_ACTIVE_HOURS", [13, 23])
        self.active_hours = (int(start_hour), int(end_hour))
        self.season_months = set(config.get("SCHEDULER_SEASON_MONTHS", [9, 10, 11, 12, 1, 2]))

        atexit.register(self.shutdown)

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")
        self.scheduler.add_job(
            func=self._scheduled_tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Sync Scores and Update Picks",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )
        self.scheduler.start()
        self.is_running = True
        logger.info(f"Scheduler started, ticking every {self.interval_seconds}s")

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        self.scheduler.shutdown(wait=False)
        self.scheduler = None
        self.is_running = False
        logger.info("Scheduler stopped")

    def shutdown(self):
        """Graceful shutdown"""
        try:
            self.stop()
        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def is_game_window(self, now=None):
        """Game day, inside active hours and inside the season, in the scheduler timezone"""
        local = convert_to_timezone(now or get_utc_time(), self.timezone)
        if local.month not in self.season_months:
            return False
        if local.weekday() not in self.game_days:
            return False
        start_hour, end_hour = self.active_hours
        return start_hour <= local.hour <= end_hour

    def _scheduled_tick(self):
        self.run_tick()

    def run_tick(self, now=None, force=False):
        """
        One sync-and-score pass.

        Skipped outside the game window (unless ``force``) and while a
        previous tick is still running. Errors are logged and counted,
        never raised.

        Returns:
            dict: what the tick did
        """
        now = now or get_utc_time()
        if not force and not self.is_game_window(now):
            logger.debug("Outside game window, skipping tick")
            return {"status": "outside_window"}

        if not self._tick_lock.acquire(blocking=False):
            self.stats["skipped_ticks"] += 1
            logger.warning("Previous tick still running, skipping")
            return {"status": "skipped"}

        try:
            with self.app.app_context():
                result = self._tick(now)
            self.stats["last_error"] = None
            return result
        except Exception as e:
            self.stats["failed_ticks"] += 1
            self.stats["last_error"] = str(e)
            logger.error(f"Scheduler tick failed: {e}", exc_info=True)
            return {"status": "failed", "error": str(e)}
        finally:
            self.stats["total_ticks"] += 1
            self.stats["last_tick"] = now.isoformat()
            self._tick_lock.release()

    def _tick(self, now):
        season = self.schedule.get_current_season()
        if season is None:
            logger.info("No current season, nothing to sync")
            return {"status": "no_season"}

        week = self.schedule.current_week(season["id"], now=now)
        updates = self.score_provider.fetch_scores(season, week)
        games_updated = self.schedule.apply_score_updates(updates)
        if games_updated:
            invalidate_model_cache("Game")

        weeks = [w for w in (week - 1, week) if w >= 1]
        scoring = self.scoring.score_weeks(season["id"], weeks)
        standings = sum(
            self.scoring.refresh_weekly_standings(season["id"], w) for w in weeks
        )

        picks_updated = sum(summary.updated_picks for summary in scoring["results"])
        logger.info(
            f"Tick for season {season['season']} week {week}: {games_updated} games, "
            f"{picks_updated} picks, {standings} standings rows"
        )
        return {
            "status": "ok",
            "season_id": season["id"],
            "week": week,
            "games_updated": games_updated,
            "picks_updated": picks_updated,
            "standings_written": standings,
            "errors": scoring["errors"],
        }

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        return {
            "is_running": self.is_running,
            "in_game_window": self.is_game_window(),
            "jobs": jobs,
            "stats": dict(self.stats),
        }
