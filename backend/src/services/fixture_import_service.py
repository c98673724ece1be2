"""
Fixture import service.

Reconciles the fixture feed of one team against its stored match events.

Per import:
1. Fetch the team payload once (a feed failure aborts before any write)
2. Merge every game collection of the payload and collapse duplicates
3. Normalize each record; unparseable kickoffs are skipped (invalid_date)
4. Keep fixtures of the current season (1 July - 30 June)
5. Resolve home/away side and opponent via the team-name matcher
6. Derive the stable fixture key (upstream id, else a synthetic digest)
7. Look up the event by key, else adopt a legacy match with the same
   kickoff and no key yet
8. Update the found event (skipped as unchanged when nothing differs) or
   create a new 120 minute match event and invite every member

The whole batch is committed once; any unexpected error rolls it back.
"""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from backend.src.models import Event, EventCategory, Team
from backend.src.services.exceptions import (
    ExternalServiceError,
    FixtureRejected,
    ValidationError,
)
from backend.src.services.fixture_feed_client import FixtureFeedClient
from backend.src.services.fixture_normalizer import (
    FixtureField,
    NormalizedFixture,
    normalize_fixture,
    pick_candidates,
    pick_first,
    raw_identity,
)
from backend.src.services.invite_service import InviteService
from backend.src.services.rsvp_defaults import RsvpDefaults
from backend.src.services.team_name_matcher import normalize_team_name, resolve_fixture_side
from backend.src.services.team_service import TeamService
from backend.src.utils.logging_config import get_logger
from backend.src.utils.time_utils import END_OF_DAY, club_zone, local_now, minutes_between


logger = get_logger("services")


# ============================================================================
# Constants
# ============================================================================

MATCH_DURATION = timedelta(minutes=120)
SEASON_START_MONTH = 7
SYNTHETIC_KEY_PREFIX = "syn:"

GAME_COLLECTION_KEYS = ("nextGames", "prevGames", "games", "allGames", "matches", "fixtures")

SKIP_OUT_OF_SEASON = "out_of_season"
SKIP_UNCHANGED = "unchanged"
SKIP_DUPLICATE = "duplicate"

LEAGUE_NAME_KEYS = (
    "leagueName", "league_name", "league", "leagueTitle", "league_title",
    "competition", "competitionName", "competition_name", "division",
    "group", "staffel", "klasse", "liga", "title", "name",
)
FRIENDLY_MARKERS = ("freundschaft", "friendly", "testspiel")

RANKING_CANDIDATES: Dict[str, Tuple[str, ...]] = {
    "place": ("place", "rank", "position", "platz"),
    "team": ("team", "teamName", "team_name", "name", "mannschaft", "team.name"),
    "crest": ("img", "logo", "crest", "teamLogo", "team_logo", "team.logo"),
    "games": ("games", "matches", "played", "spiele"),
    "won": ("won", "wins", "w", "siege"),
    "draw": ("draw", "draws", "d", "unentschieden"),
    "lost": ("lost", "losses", "l", "niederlagen"),
    "goal": ("goal", "goals", "goalRatio", "tore"),
    "goal_difference": ("goal_difference", "goalDifference", "diff", "tordifferenz"),
    "points": ("points", "pts", "punkte"),
}


# ============================================================================
# Result types
# ============================================================================


@dataclass
class ImportedFixture:
    """An event created or updated by an import."""
    event_id: int
    title: str
    start_time: datetime


@dataclass
class SkippedFixture:
    """A fixture record that did not change any event."""
    reason: str
    fixture: str


@dataclass
class FixtureImportSummary:
    """
    Outcome of one team import.

    Attributes:
        team_id: Imported team
        created: New match events
        updated: Existing events that changed
        skipped: Records rejected or left unchanged, with reason
    """
    team_id: int
    created: List[ImportedFixture] = field(default_factory=list)
    updated: List[ImportedFixture] = field(default_factory=list)
    skipped: List[SkippedFixture] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team_id": self.team_id,
            "imported": len(self.created),
            "updated": len(self.updated),
            "skipped": len(self.skipped),
            "created_items": [vars(item) for item in self.created],
            "updated_items": [vars(item) for item in self.updated],
            "skipped_details": [vars(item) for item in self.skipped],
        }


@dataclass
class LeagueTable:
    """Normalized league table of the team's group."""
    rows: List[Dict[str, Optional[str]]]
    league_name: Optional[str]


# ============================================================================
# Helpers
# ============================================================================


def season_window(today: date) -> Tuple[datetime, datetime]:
    """
    Inclusive bounds of the season containing today.

    A season runs from 1 July to 30 June; it starts in the current year
    from July on, otherwise in the previous year.
    """
    start_year = today.year if today.month >= SEASON_START_MONTH else today.year - 1
    start = datetime(start_year, SEASON_START_MONTH, 1)
    end = datetime.combine(date(start_year + 1, 6, 30), END_OF_DAY)
    return start, end


def collect_game_records(payload: Any) -> List[Mapping[str, Any]]:
    """
    Merge every array-shaped game collection of a feed payload.

    Looks at a top-level array and at the known collection keys both on
    the payload and on its data envelope. Same records appearing in
    several collections are collapsed by their raw identity.
    """
    sources: List[Any] = []
    if isinstance(payload, list):
        sources.append(payload)
    containers = [payload]
    if isinstance(payload, Mapping):
        data = payload.get("data")
        if isinstance(data, list):
            sources.append(data)
        containers.append(data)
    for container in containers:
        if not isinstance(container, Mapping):
            continue
        for key in GAME_COLLECTION_KEYS:
            value = container.get(key)
            if isinstance(value, list):
                sources.append(value)

    records: List[Mapping[str, Any]] = []
    seen = set()
    for source in sources:
        for record in source:
            if not isinstance(record, Mapping):
                continue
            identity = raw_identity(record)
            if identity in seen:
                continue
            seen.add(identity)
            records.append(record)
    return records


def fixture_key(
    fixture: NormalizedFixture,
    team_external_id: Optional[str],
) -> str:
    """
    Stable key of a fixture.

    The upstream id when present, otherwise a SHA-1 digest over the
    canonical JSON of team external id, ISO kickoff and both normalized
    team names.
    """
    if fixture.external_id:
        return fixture.external_id
    material = json.dumps(
        [
            team_external_id or "",
            fixture.kickoff.isoformat(),
            normalize_team_name(fixture.home_team),
            normalize_team_name(fixture.away_team),
        ],
        separators=(",", ":"),
        ensure_ascii=True,
    )
    return SYNTHETIC_KEY_PREFIX + hashlib.sha1(material.encode("utf-8")).hexdigest()


def is_friendly_competition(value: Optional[str]) -> bool:
    if not value:
        return False
    lowered = value.lower()
    return any(marker in lowered for marker in FRIENDLY_MARKERS)


def probe_league_name(payload: Mapping[str, Any]) -> Optional[str]:
    """League name from the payload, its meta and data envelopes, or data[0]."""
    containers: List[Any] = [payload, payload.get("meta"), payload.get("data")]
    data = payload.get("data")
    if isinstance(data, list) and data:
        containers.append(data[0])
    for container in containers:
        if isinstance(container, Mapping):
            name = pick_candidates(container, LEAGUE_NAME_KEYS)
            if name:
                return name
    return None


def normalize_ranking_row(row: Mapping[str, Any]) -> Dict[str, Optional[str]]:
    return {
        name: pick_candidates(row, candidates)
        for name, candidates in RANKING_CANDIDATES.items()
    }


# ============================================================================
# FixtureImportService Class
# ============================================================================


class FixtureImportService:
    """
    Service importing feed fixtures as match events.

    Usage:
        >>> with FixtureFeedClient.from_settings() as client:
        ...     service = FixtureImportService(db_session, feed_client=client)
        ...     summary = service.import_for_team(team_id=1, actor_user_id=4)
        >>> summary.to_dict()["imported"]
    """

    def __init__(
        self,
        db: Session,
        feed_client: FixtureFeedClient,
        tz: Optional[ZoneInfo] = None,
    ):
        """
        Initialize fixture import service.

        Args:
            db: SQLAlchemy database session
            feed_client: Client for the fixture feed (owned by the caller)
            tz: Club timezone (defaults to the configured zone)
        """
        self.db = db
        self.feed = feed_client
        self.tz = tz or club_zone()
        self.teams = TeamService(db)
        self.invites = InviteService(db)

    def _require_external_id(self, team: Team) -> str:
        if not team.external_team_id:
            raise ValidationError(
                "No fixture feed team id is configured for this team",
                field="external_team_id"
            )
        return team.external_team_id

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    def import_for_team(
        self,
        team_id: int,
        actor_user_id: Optional[int],
        today: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> FixtureImportSummary:
        """
        Import the current season's fixtures of a team.

        Args:
            team_id: Team to import
            actor_user_id: Recorded as creator of new events
            today: Reference day for the season window (defaults to today)
            limit: Process at most this many in-season fixtures, earliest
                kickoff first

        Returns:
            FixtureImportSummary

        Raises:
            NotFoundError: If team not found
            ValidationError: If the team has no feed id
            ExternalServiceError: If the feed fails or answers with a failed or
                unrecognised envelope (nothing is written)
        """
        team = self.teams.get(team_id)
        external_id = self._require_external_id(team)
        payload = self.feed.fetch_team_info(external_id)
        if not isinstance(payload, (list, Mapping)) or (
            isinstance(payload, Mapping) and payload.get("success") is False
        ):
            raise ExternalServiceError("Invalid team response from fixture feed")

        summary = FixtureImportSummary(team_id=team.id)
        season_start, season_end = season_window(today or local_now(self.tz).date())

        fixtures: List[NormalizedFixture] = []
        for record in collect_game_records(payload):
            try:
                fixture = normalize_fixture(record, self.tz)
            except FixtureRejected as e:
                logger.warning(
                    f"Skipping fixture without valid date: {e.label}",
                    extra={"team_id": team.id, "reason": e.reason},
                )
                summary.skipped.append(SkippedFixture(e.reason, e.label or "unknown"))
                continue
            if not season_start <= fixture.kickoff <= season_end:
                summary.skipped.append(SkippedFixture(SKIP_OUT_OF_SEASON, fixture.title))
                continue
            fixtures.append(fixture)

        fixtures.sort(key=lambda f: f.kickoff)
        if limit is not None:
            fixtures = fixtures[:limit]

        defaults = RsvpDefaults.from_team(team)
        default_venue = TeamService.default_home_venue(team)
        default_status = TeamService.default_response(team)
        member_ids = self.invites.team_member_ids(team.id)
        handled_keys = set()

        try:
            for fixture in fixtures:
                key = fixture_key(fixture, external_id)
                if key in handled_keys:
                    summary.skipped.append(SkippedFixture(SKIP_DUPLICATE, fixture.title))
                    continue
                handled_keys.add(key)

                side = resolve_fixture_side(
                    team.name, fixture.home_team, fixture.away_team,
                    fixture.home_crest, fixture.away_crest,
                )
                timing = defaults.resolve_for_occurrence(EventCategory.MATCH, fixture.kickoff)
                values = {
                    "title": fixture.title,
                    "description": fixture.competition,
                    "start_time": fixture.kickoff,
                    "end_time": fixture.kickoff + MATCH_DURATION,
                    "duration_minutes": minutes_between(fixture.kickoff, fixture.kickoff + MATCH_DURATION),
                    "rsvp_deadline": timing.rsvp_deadline,
                    "arrival_minutes": timing.arrival_minutes,
                    "is_home_match": side.is_home,
                    "opponent_crest_url": side.opponent_crest_url,
                    "external_fixture_key": key,
                }

                event = self._find_event(team.id, key, fixture.kickoff)
                if event is not None:
                    values.update(self._location_for_update(event, fixture, side.is_home, default_venue))
                    if self._apply_changes(event, values):
                        summary.updated.append(ImportedFixture(event.id, event.title, event.start_time))
                    else:
                        summary.skipped.append(SkippedFixture(SKIP_UNCHANGED, fixture.title))
                    continue

                values.update(self._location_for_create(fixture, side.is_home, default_venue))
                event = Event(
                    team_id=team.id,
                    category=EventCategory.MATCH.value,
                    created_by_user_id=actor_user_id,
                    visibility_all=True,
                    invite_all=True,
                    **values,
                )
                self.db.add(event)
                self.db.flush()
                self.invites.sync_invites(event, member_ids, default_status)
                summary.created.append(ImportedFixture(event.id, event.title, event.start_time))

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Imported fixtures for team {team.id}",
            extra={
                "team_id": team.id,
                "created_count": len(summary.created),
                "updated": len(summary.updated),
                "skipped": len(summary.skipped),
            },
        )
        return summary

    def _find_event(self, team_id: int, key: str, kickoff: datetime) -> Optional[Event]:
        event = (
            self.db.query(Event)
            .filter(Event.team_id == team_id, Event.external_fixture_key == key)
            .first()
        )
        if event is not None:
            return event
        # Legacy match tracked manually before keys existed
        return (
            self.db.query(Event)
            .filter(
                Event.team_id == team_id,
                Event.category == EventCategory.MATCH.value,
                Event.external_fixture_key.is_(None),
                Event.start_time == kickoff,
            )
            .order_by(Event.id)
            .first()
        )

    @staticmethod
    def _venue_address(venue) -> Dict[str, Optional[str]]:
        return {
            "location_venue": venue.name,
            "location_street": venue.street,
            "location_zip_city": venue.zip_city,
        }

    @staticmethod
    def _fixture_address(fixture: NormalizedFixture) -> Dict[str, Optional[str]]:
        return {
            "location_venue": fixture.venue,
            "location_street": fixture.street,
            "location_zip_city": fixture.zip_city,
        }

    def _location_for_create(self, fixture, is_home, default_venue) -> Dict[str, Optional[str]]:
        if not fixture.has_location and is_home and default_venue is not None:
            return self._venue_address(default_venue)
        return self._fixture_address(fixture)

    def _location_for_update(self, event, fixture, is_home, default_venue) -> Dict[str, Optional[str]]:
        if fixture.has_location:
            return self._fixture_address(fixture)
        if event.is_home_match and default_venue is not None:
            return {
                "location_venue": event.location_venue,
                "location_street": event.location_street,
                "location_zip_city": event.location_zip_city,
            }
        return self._location_for_create(fixture, is_home, default_venue)

    @staticmethod
    def _apply_changes(event: Event, values: Dict[str, Any]) -> bool:
        changed = [name for name, value in values.items() if getattr(event, name) != value]
        for name in changed:
            setattr(event, name, values[name])
        if changed:
            event.updated_at = datetime.utcnow()
        return bool(changed)

    # -------------------------------------------------------------------------
    # League table
    # -------------------------------------------------------------------------

    def get_league_table(self, team_id: int) -> LeagueTable:
        """
        Fetch the league table of a team's group.

        When the table payload has no league name, the short competition
        name of the team's next (else previous) games is used unless it
        denotes a friendly.

        Raises:
            NotFoundError: If team not found
            ValidationError: If the team has no feed id
            ExternalServiceError: If the feed fails or the payload is not a
                success envelope with a data array
        """
        team = self.teams.get(team_id)
        external_id = self._require_external_id(team)

        payload = self.feed.fetch_team_table(external_id)
        if not payload.get("success") or not isinstance(payload.get("data"), list):
            raise ExternalServiceError("Invalid league table response from fixture feed")

        rows = [
            normalize_ranking_row(row)
            for row in payload["data"]
            if isinstance(row, Mapping)
        ]
        league_name = probe_league_name(payload)

        if not league_name:
            try:
                info = self.feed.fetch_team_info(external_id)
            except ExternalServiceError as e:
                logger.warning(
                    f"Could not load games for league name of team {team.id}: {e.message}",
                    extra={"team_id": team.id},
                )
                info = None
            short = self._short_competition(info)
            if short and not is_friendly_competition(short):
                league_name = short

        return LeagueTable(rows=rows, league_name=league_name)

    @staticmethod
    def _short_competition(info: Any) -> Optional[str]:
        if not isinstance(info, Mapping):
            return None
        data = info.get("data")
        container = data if isinstance(data, Mapping) else info
        for key in ("nextGames", "prevGames"):
            games = container.get(key)
            if not isinstance(games, list):
                continue
            first = next((g for g in games if isinstance(g, Mapping)), None)
            if first is not None:
                short = pick_first(first, FixtureField.COMPETITION_SHORT)
                if short:
                    return short
        return None
