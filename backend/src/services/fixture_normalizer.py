"""
Fixture field normalization.

Fixture feed records have no fixed schema: the same value may live under
several key names, and location/team data may be flat strings or nested
objects. Each semantic field is mapped to an ordered tuple of candidate
keys (dotted paths descend into nested objects); the first non-empty value
wins.

Kickoff resolution order:
1. Numeric timestamp (milliseconds when above 1e12, otherwise seconds)
2. Combined date-time string
3. Separate date and time strings (time defaults to 19:00)
4. Date string alone (19:00)

Dates may be ISO-like (2024-08-01, 2024-08-01T15:30) or German
(01.08.2024, 01-08-2024, 01/08/24; two-digit years are 20xx).
"""

import enum
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from backend.src.services.exceptions import FixtureRejected
from backend.src.utils.time_utils import from_epoch, to_local_naive


DEFAULT_KICKOFF_TIME = (19, 0)
MILLISECOND_THRESHOLD = 1e12
REJECT_INVALID_DATE = "invalid_date"


class FixtureField(str, enum.Enum):
    """Semantic fields extracted from a fixture record."""
    EXTERNAL_ID = "external_id"
    TIMESTAMP = "timestamp"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"
    HOME_TEAM = "home_team"
    AWAY_TEAM = "away_team"
    TITLE = "title"
    COMPETITION = "competition"
    COMPETITION_SHORT = "competition_short"
    VENUE = "venue"
    STREET = "street"
    STREET_NUMBER = "street_number"
    ZIP_CITY = "zip_city"
    ZIP = "zip"
    CITY = "city"
    HOME_CREST = "home_crest"
    AWAY_CREST = "away_crest"


FIXTURE_FIELD_CANDIDATES: Dict[FixtureField, Tuple[str, ...]] = {
    FixtureField.EXTERNAL_ID: (
        "id", "match_id", "matchId", "game_id", "gameId", "fixture_id", "event_id",
    ),
    FixtureField.TIMESTAMP: (
        "timestamp", "kickoff_timestamp", "match_timestamp",
    ),
    FixtureField.DATETIME: (
        "datetime", "date_time", "kickoff_datetime", "matchDateTime",
        "start_time", "spielbeginn",
    ),
    FixtureField.DATE: (
        "date", "match_date", "game_date", "matchDate", "datum",
    ),
    FixtureField.TIME: (
        "time", "match_time", "kickoff", "kickoff_time", "uhrzeit",
    ),
    FixtureField.HOME_TEAM: (
        "homeTeam", "home_team", "home", "hometeam", "heim", "team_home",
        "homeTeam.name", "home_team.name", "home.name",
    ),
    FixtureField.AWAY_TEAM: (
        "awayTeam", "away_team", "away", "awayteam", "gast", "team_away",
        "awayTeam.name", "away_team.name", "away.name",
    ),
    FixtureField.TITLE: (
        "title", "match_title",
    ),
    FixtureField.COMPETITION: (
        "competition", "competition_short", "league", "staffel",
    ),
    FixtureField.COMPETITION_SHORT: (
        "competition_short", "competitionShort", "competition_short_name",
        "competitionShortName", "competition_abbreviation", "competitionAbbreviation",
        "league_short", "leagueShort", "league_code", "leagueCode",
        "competition", "league",
    ),
    FixtureField.VENUE: (
        "location", "venue", "stadium", "place", "sportfield",
        "location.name", "location.venue", "venue.name", "sportfield.name",
    ),
    FixtureField.STREET: (
        "street", "strasse", "address", "adresse", "location_street",
        "location.street", "location.strasse", "location.address", "venue.street",
    ),
    FixtureField.STREET_NUMBER: (
        "street_number", "house_number", "hausnummer",
        "location.street_number", "location.house_number", "location.hausnummer",
        "venue.street_number",
    ),
    FixtureField.ZIP_CITY: (
        "zip_city", "ort", "location_zip_city", "postleitzahl_stadt",
        "location.zip_city", "venue.zip_city",
    ),
    FixtureField.ZIP: (
        "zip", "postal_code", "plz", "postleitzahl",
        "location.zip", "location.postal_code", "location.plz", "venue.zip",
    ),
    FixtureField.CITY: (
        "city", "stadt", "location.city", "location.ort", "location.stadt", "venue.city",
    ),
    FixtureField.HOME_CREST: (
        "homeLogo", "home_logo", "homeCrest", "home_crest", "home_team_logo",
        "homeTeam.logo", "homeTeam.crest", "home_team.logo", "home.logo",
    ),
    FixtureField.AWAY_CREST: (
        "awayLogo", "away_logo", "awayCrest", "away_crest", "away_team_logo",
        "awayTeam.logo", "awayTeam.crest", "away_team.logo", "away.logo",
    ),
}

_GERMAN_DATE_RE = re.compile(
    r"^(\d{1,2})[.\-/](\d{1,2})[.\-/](\d{2,4})(?:[ ,T]+(\d{1,2}):(\d{2}))?$"
)
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_NON_TIME_RE = re.compile(r"[^0-9:]")


def resolve_path(record: Mapping[str, Any], path: str) -> Any:
    """Follow a dotted key path through nested mappings; None when absent."""
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def pick_candidates(record: Mapping[str, Any], paths: Tuple[str, ...]) -> Optional[str]:
    """Return the first non-empty scalar value found under any of the paths."""
    for path in paths:
        text = _as_text(resolve_path(record, path))
        if text is not None:
            return text
    return None


def pick_first(record: Mapping[str, Any], field: FixtureField) -> Optional[str]:
    return pick_candidates(record, FIXTURE_FIELD_CANDIDATES[field])


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _normalize_time(time_text: Optional[str]) -> Tuple[int, int]:
    """Parse 'HH:MM'-ish text, clamping out-of-range parts; default 19:00."""
    if not time_text:
        return DEFAULT_KICKOFF_TIME
    parts = _NON_TIME_RE.sub("", time_text).split(":")
    try:
        hour = int(parts[0]) if parts[0] else 0
    except ValueError:
        hour = 0
    try:
        minute = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        minute = 0
    return _clamp(hour, 0, 23), _clamp(minute, 0, 59)


def parse_date_text(
    date_text: str,
    time_text: Optional[str] = None,
    tz: Optional[ZoneInfo] = None,
) -> Optional[datetime]:
    """
    Parse a date (optionally with embedded time) into naive club-local time.

    Returns None when the text is not a recognizable, valid date.
    """
    text = (date_text or "").strip()
    if not text:
        return None

    hour, minute = _normalize_time(time_text)

    german = _GERMAN_DATE_RE.match(text)
    if german:
        day, month, year_raw = german.group(1), german.group(2), german.group(3)
        if len(year_raw) == 3:
            return None
        year = int(year_raw) + 2000 if len(year_raw) == 2 else int(year_raw)
        if german.group(4) is not None:
            hour, minute = _normalize_time(f"{german.group(4)}:{german.group(5)}")
        try:
            return datetime(year, int(month), int(day), hour, minute)
        except ValueError:
            return None

    iso_date = _ISO_DATE_RE.match(text)
    if iso_date:
        try:
            return datetime(int(iso_date.group(1)), int(iso_date.group(2)), int(iso_date.group(3)), hour, minute)
        except ValueError:
            return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_local_naive(parsed, tz)


def _parse_timestamp(value: Optional[str], tz: Optional[ZoneInfo]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        numeric = float(value)
    except ValueError:
        return None
    if not math.isfinite(numeric):
        return None
    seconds = numeric / 1000 if numeric > MILLISECOND_THRESHOLD else numeric
    try:
        return from_epoch(seconds, tz)
    except (OverflowError, OSError, ValueError):
        return None


def parse_kickoff(record: Mapping[str, Any], tz: Optional[ZoneInfo] = None) -> Optional[datetime]:
    """Resolve the kickoff of a fixture record, or None when unparseable."""
    kickoff = _parse_timestamp(pick_first(record, FixtureField.TIMESTAMP), tz)
    if kickoff:
        return kickoff

    combined = pick_first(record, FixtureField.DATETIME)
    if combined:
        kickoff = parse_date_text(combined, tz=tz)
        if kickoff:
            return kickoff

    date_text = pick_first(record, FixtureField.DATE)
    if not date_text:
        return None
    return parse_date_text(date_text, pick_first(record, FixtureField.TIME), tz=tz)


def _join_street(street: Optional[str], number: Optional[str]) -> Optional[str]:
    if not street or not number:
        return street
    if re.search(rf"(^|\s){re.escape(number)}$", street):
        return street
    return f"{street} {number}"


def _build_title(title: Optional[str], home: Optional[str], away: Optional[str]) -> str:
    if title:
        return title
    if home and away:
        return f"{home} - {away}"
    if away:
        return f"Spiel gegen {away}"
    if home:
        return f"Spiel: {home}"
    return "Spiel"


def fixture_label(record: Mapping[str, Any]) -> str:
    """Short identifier of a record for skip reports."""
    return (
        pick_first(record, FixtureField.EXTERNAL_ID)
        or pick_first(record, FixtureField.TITLE)
        or "unknown"
    )


def raw_identity(record: Mapping[str, Any]) -> Tuple[str, ...]:
    """
    Composite key used to collapse the same record appearing in several
    collections of one payload (id, date, both teams, title).
    """
    return (
        pick_first(record, FixtureField.EXTERNAL_ID) or "",
        pick_first(record, FixtureField.TIMESTAMP)
        or pick_first(record, FixtureField.DATETIME)
        or pick_first(record, FixtureField.DATE)
        or "",
        pick_first(record, FixtureField.HOME_TEAM) or "",
        pick_first(record, FixtureField.AWAY_TEAM) or "",
        pick_first(record, FixtureField.TITLE) or "",
    )


@dataclass(frozen=True)
class NormalizedFixture:
    """
    Typed view of one fixture record.

    Attributes:
        external_id: Upstream id (None when the feed has none)
        kickoff: Naive club-local kickoff
        home_team / away_team: Raw team names
        title: Given title or one derived from the team names
        competition: Competition name used as description
        venue / street / zip_city: Address parts (street includes number)
        home_crest / away_crest: Crest URLs
    """
    external_id: Optional[str]
    kickoff: datetime
    home_team: Optional[str]
    away_team: Optional[str]
    title: str
    competition: Optional[str]
    venue: Optional[str]
    street: Optional[str]
    zip_city: Optional[str]
    home_crest: Optional[str]
    away_crest: Optional[str]

    @property
    def has_location(self) -> bool:
        return bool(self.venue or self.street or self.zip_city)


def normalize_fixture(record: Mapping[str, Any], tz: Optional[ZoneInfo] = None) -> NormalizedFixture:
    """
    Extract a NormalizedFixture from one raw record.

    Raises:
        FixtureRejected: With reason "invalid_date" when no kickoff parses
    """
    kickoff = parse_kickoff(record, tz)
    if kickoff is None:
        raise FixtureRejected(REJECT_INVALID_DATE, fixture_label(record))

    home = pick_first(record, FixtureField.HOME_TEAM)
    away = pick_first(record, FixtureField.AWAY_TEAM)

    zip_city = pick_first(record, FixtureField.ZIP_CITY)
    if not zip_city:
        parts = [
            pick_first(record, FixtureField.ZIP),
            pick_first(record, FixtureField.CITY),
        ]
        zip_city = " ".join(p for p in parts if p) or None

    return NormalizedFixture(
        external_id=pick_first(record, FixtureField.EXTERNAL_ID),
        kickoff=kickoff,
        home_team=home,
        away_team=away,
        title=_build_title(pick_first(record, FixtureField.TITLE), home, away),
        competition=pick_first(record, FixtureField.COMPETITION),
        venue=pick_first(record, FixtureField.VENUE),
        street=_join_street(
            pick_first(record, FixtureField.STREET),
            pick_first(record, FixtureField.STREET_NUMBER),
        ),
        zip_city=zip_city,
        home_crest=pick_first(record, FixtureField.HOME_CREST),
        away_crest=pick_first(record, FixtureField.AWAY_CREST),
    )
