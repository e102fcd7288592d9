"""
Scoring rules for the prediction pool.

Everything in this module is pure: rules and the declared podium are passed
in as values, nothing is read from the database or the Flask config here.
Persistence and orchestration live in pool_tracker.services.
"""

import re
from dataclasses import dataclass
from enum import Enum

from pool_tracker.errors import ValidationError


class Outcome(str, Enum):
    HOME = "HOME"
    AWAY = "AWAY"
    DRAW = "DRAW"


def resolve_outcome(score_home, score_away):
    """Categorical result of a finished match.

    Callers must only pass scores of finished matches.
    """
    if score_home > score_away:
        return Outcome.HOME
    if score_home < score_away:
        return Outcome.AWAY
    return Outcome.DRAW


# Aliases seen in submitted payloads, keyed by upper-cased value
_PICK_ALIASES = {
    "HOME": Outcome.HOME,
    "A": Outcome.HOME,
    "TEAMA": Outcome.HOME,
    "1": Outcome.HOME,
    "AWAY": Outcome.AWAY,
    "B": Outcome.AWAY,
    "TEAMB": Outcome.AWAY,
    "2": Outcome.AWAY,
    "DRAW": Outcome.DRAW,
    "X": Outcome.DRAW,
    "TIE": Outcome.DRAW,
    "EMPATE": Outcome.DRAW,
}

_SCORELINE = re.compile(r"^\s*(\d{1,2})\s*[-x:]\s*(\d{1,2})\s*$", re.IGNORECASE)


def normalize_pick(value):
    """Turn a raw pick into an Outcome.

    Accepts an Outcome, one of the known aliases, or a literal scoreline
    such as ``"2-1"`` which is reduced to its outcome. Raises
    ValidationError for anything else.
    """
    if isinstance(value, Outcome):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid pick value: {value!r}")

    key = value.strip().upper()
    if key in _PICK_ALIASES:
        return _PICK_ALIASES[key]

    match = _SCORELINE.match(value)
    if match:
        return resolve_outcome(int(match.group(1)), int(match.group(2)))

    raise ValidationError(f"Invalid pick value: {value!r}")


@dataclass(frozen=True)
class ScoringRules:
    """Point values applied by the engine, loaded once per operation"""

    match_pick_points: int = 1
    podium_first: int = 7
    podium_second: int = 4
    podium_third: int = 2

    @classmethod
    def from_config(cls, config):
        return cls(
            match_pick_points=int(config.get("MATCH_PICK_POINTS", 1)),
            podium_first=int(config.get("PODIUM_POINTS_FIRST", 7)),
            podium_second=int(config.get("PODIUM_POINTS_SECOND", 4)),
            podium_third=int(config.get("PODIUM_POINTS_THIRD", 2)),
        )

    @property
    def podium_weights(self):
        return {
            "first": self.podium_first,
            "second": self.podium_second,
            "third": self.podium_third,
        }


def team_key(name):
    """Comparison key for team names"""
    if name is None:
        return ""
    return " ".join(name.split()).casefold()


@dataclass(frozen=True)
class Podium:
    """Actual tournament top three"""

    first: str
    second: str
    third: str

    @classmethod
    def from_names(cls, first, second, third):
        names = []
        for slot, name in (("first", first), ("second", second), ("third", third)):
            if name is None or not str(name).strip():
                raise ValidationError(f"Podium {slot} place is required", slot=slot)
            names.append(" ".join(str(name).split()))

        if len({team_key(n) for n in names}) != 3:
            raise ValidationError("Podium teams must be distinct", podium=names)

        return cls(*names)

    def as_tuple(self):
        return (self.first, self.second, self.third)


@dataclass(frozen=True)
class PodiumScore:
    points: int
    first_hit: bool
    second_hit: bool
    third_hit: bool


def stored_outcome(value):
    """Outcome of a stored pick. Only HOME, AWAY and DRAW are accepted here;
    aliases and scorelines are resolved by normalize_pick at submission.
    """
    try:
        return Outcome(value)
    except ValueError:
        raise ValidationError(f"Stored pick is not an outcome: {value!r}")


def score_match_pick(pick, actual, rules):
    """Points for a single stored match pick against the actual outcome.

    Raises ValidationError when ``pick`` is not HOME, AWAY or DRAW.
    """
    return rules.match_pick_points if stored_outcome(pick) == actual else 0


def score_podium(predicted, declared, rules):
    """Score a predicted (first, second, third) against the declared podium.

    Each slot is checked independently, so partial credit is possible.
    Empty predicted slots never score.
    """
    first, second, third = (tuple(predicted) + (None, None, None))[:3]

    first_hit = bool(first) and team_key(first) == team_key(declared.first)
    second_hit = bool(second) and team_key(second) == team_key(declared.second)
    third_hit = bool(third) and team_key(third) == team_key(declared.third)

    points = 0
    if first_hit:
        points += rules.podium_first
    if second_hit:
        points += rules.podium_second
    if third_hit:
        points += rules.podium_third

    return PodiumScore(points, first_hit, second_hit, third_hit)
