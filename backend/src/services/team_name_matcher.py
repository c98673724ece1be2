"""
Fuzzy team name matching.

Fixture feeds spell club names inconsistently ("FC Bayern München",
"fc bayern muenchen", "FC Bayern München II"). Names are normalized to
lowercase ASCII alphanumerics before comparison, and two names match when
they are equal or one contains the other and the shorter one has at least
MIN_CONTAINMENT_LENGTH characters.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Optional


MIN_CONTAINMENT_LENGTH = 6

_GERMAN_FOLDS = str.maketrans({
    "ä": "ae",
    "ö": "oe",
    "ü": "ue",
    "ß": "ss",
})
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_team_name(name: Optional[str]) -> str:
    """
    Normalize a team name for comparison.

    Lowercases, folds German umlauts and sharp s, strips remaining
    combining marks and removes every non-alphanumeric character.

    Example:
        >>> normalize_team_name("FC Bayern München")
        'fcbayernmuenchen'
    """
    if not name:
        return ""
    value = name.lower().translate(_GERMAN_FOLDS)
    value = strip_diacritics(value)
    return _NON_ALNUM_RE.sub("", value)


def team_names_match(left: Optional[str], right: Optional[str]) -> bool:
    """Check whether two raw team names refer to the same team."""
    a = normalize_team_name(left)
    b = normalize_team_name(right)
    if not a or not b:
        return False
    if a == b:
        return True
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    return len(shorter) >= MIN_CONTAINMENT_LENGTH and shorter in longer


@dataclass(frozen=True)
class FixtureSide:
    """
    Which side of a fixture the tracked team plays on.

    Attributes:
        is_home: True for home, False for away, None when both or neither
            side matched the team name
        opponent_name: Display name of the other side (may be None)
        opponent_crest_url: Crest of the other side (may be None)
    """
    is_home: Optional[bool]
    opponent_name: Optional[str]
    opponent_crest_url: Optional[str]


def resolve_fixture_side(
    team_name: str,
    home_team: Optional[str],
    away_team: Optional[str],
    home_crest: Optional[str] = None,
    away_crest: Optional[str] = None,
) -> FixtureSide:
    """
    Decide home/away for the tracked team and pick the opponent.

    When the side is ambiguous the away team is reported as opponent, or
    the home team when no away team is known.
    """
    home_matches = team_names_match(team_name, home_team)
    away_matches = team_names_match(team_name, away_team)

    if home_matches and not away_matches:
        return FixtureSide(True, away_team, away_crest)
    if away_matches and not home_matches:
        return FixtureSide(False, home_team, home_crest)

    if home_team:
        return FixtureSide(None, away_team or home_team, away_crest or home_crest)
    return FixtureSide(None, away_team, away_crest)
