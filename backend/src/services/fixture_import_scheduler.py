"""
Periodic fixture import.

Runs the fixture import for every team with a feed id on a fixed
interval. Teams are processed one after another; each import runs in a
worker thread with its own session so the blocking feed call never stalls
the event loop.

Overlap guard: a cycle that starts while the previous one still runs is
skipped entirely. The guard is an in-process asyncio.Lock, so it does not
coordinate several server instances.
"""

import asyncio
import contextlib
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from backend.src.config.settings import AppSettings
from backend.src.models import Team
from backend.src.services.fixture_feed_client import FixtureFeedClient
from backend.src.services.fixture_import_service import FixtureImportService, FixtureImportSummary
from backend.src.services.team_service import TeamService
from backend.src.utils.logging_config import get_logger


logger = get_logger("scheduler")


@dataclass
class ImportCycleSummary:
    """
    Totals of one import cycle.

    Attributes:
        teams: Teams with a feed id
        imported: Events created across all teams
        updated: Events updated across all teams
        skipped_teams: Teams without members or whose import failed
    """
    teams: int = 0
    imported: int = 0
    updated: int = 0
    skipped_teams: int = 0


class FixtureImportScheduler:
    """
    Background job importing fixtures for all configured teams.

    Usage:
        >>> scheduler = FixtureImportScheduler(SessionLocal, get_settings())
        >>> scheduler.start()          # inside a running event loop
        >>> summary = await scheduler.run_cycle()
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        settings: AppSettings,
        feed_client_factory: Optional[Callable[[], FixtureFeedClient]] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            session_factory: Creates a new database session per unit of work
            settings: Interval and enablement settings
            feed_client_factory: Creates the feed client for a team import
                (defaults to a client built from settings)
        """
        self._session_factory = session_factory
        self._settings = settings
        self._feed_client_factory = feed_client_factory or (
            lambda: FixtureFeedClient.from_settings(settings)
        )
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        """Whether the periodic loop is active."""
        return self._task is not None and not self._task.done()

    @property
    def cycle_in_progress(self) -> bool:
        return self._lock.locked()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> bool:
        """
        Start the periodic loop on the running event loop.

        Returns:
            True if the loop was started, False when disabled, without a
            feed token, or already running
        """
        if not self._settings.auto_import_enabled:
            logger.info("Automatic fixture import is disabled")
            return False
        if not self._settings.feed_configured:
            logger.warning("Automatic fixture import not started: no feed token configured")
            return False
        if self.is_running:
            return False

        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Automatic fixture import started",
            extra={
                "interval_minutes": self._settings.auto_import_interval_minutes,
                "run_on_startup": self._settings.auto_import_run_on_startup,
            },
        )
        return True

    async def stop(self) -> None:
        """Cancel the periodic loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Automatic fixture import stopped")

    async def _loop(self) -> None:
        interval = self._settings.auto_import_interval_minutes * 60
        if self._settings.auto_import_run_on_startup:
            await self._run_logged()
        while True:
            await asyncio.sleep(interval)
            await self._run_logged()

    async def _run_logged(self) -> None:
        try:
            await self.run_cycle()
        except Exception as e:
            logger.error(f"Fixture import cycle failed: {e}", exc_info=True)

    # -------------------------------------------------------------------------
    # Cycle
    # -------------------------------------------------------------------------

    async def run_cycle(self) -> Optional[ImportCycleSummary]:
        """
        Import fixtures for every team with a feed id.

        Returns:
            ImportCycleSummary, or None when a previous cycle is still
            running and this one was skipped
        """
        if self._lock.locked():
            logger.info("Skipping fixture import cycle: previous cycle still running")
            return None

        async with self._lock:
            targets = await asyncio.to_thread(self._load_targets)
            summary = ImportCycleSummary(teams=len(targets))

            for team_id, actor_user_id in targets:
                if actor_user_id is None:
                    logger.warning(
                        f"Skipping fixture import for team {team_id}: team has no members",
                        extra={"team_id": team_id},
                    )
                    summary.skipped_teams += 1
                    continue
                try:
                    result = await asyncio.to_thread(self._import_team, team_id, actor_user_id)
                except Exception as e:
                    logger.error(
                        f"Fixture import failed for team {team_id}: {e}",
                        extra={"team_id": team_id},
                    )
                    summary.skipped_teams += 1
                    continue
                summary.imported += len(result.created)
                summary.updated += len(result.updated)

        logger.info(
            "Fixture import cycle finished",
            extra={
                "teams": summary.teams,
                "imported": summary.imported,
                "updated": summary.updated,
                "skipped_teams": summary.skipped_teams,
            },
        )
        return summary

    def _load_targets(self) -> List[Tuple[int, Optional[int]]]:
        db = self._session_factory()
        try:
            teams = (
                db.query(Team)
                .filter(Team.external_team_id.isnot(None), Team.external_team_id != "")
                .order_by(Team.id)
                .all()
            )
            service = TeamService(db)
            return [(team.id, service.acting_user_for_import(team)) for team in teams]
        finally:
            db.close()

    def _import_team(self, team_id: int, actor_user_id: int) -> FixtureImportSummary:
        db = self._session_factory()
        try:
            with self._feed_client_factory() as client:
                return FixtureImportService(db, client).import_for_team(team_id, actor_user_id)
        finally:
            db.close()
