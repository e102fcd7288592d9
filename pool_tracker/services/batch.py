"""
Result types and per-record isolation shared by the batch scoring services.
"""

from dataclasses import asdict, dataclass, field
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from pool_tracker import db
from pool_tracker.errors import PartialFailure


def apply_isolated(mutate, log, user_id):
    """Run ``mutate`` inside a SAVEPOINT and flush it.

    A version conflict or database error rolls back only this record.
    Returns the error message, or None on success.
    """
    try:
        with db.session.begin_nested():
            mutate()
    except StaleDataError as e:
        log.error(f"Concurrent update on prediction of user {user_id}: {e}")
        return "concurrent update, record left unchanged"
    except SQLAlchemyError as e:
        log.error(f"Database error updating prediction of user {user_id}: {e}")
        return f"database error: {e.__class__.__name__}"
    return None


class BatchResult:
    """Mixin for summaries that enumerate failed items"""

    @property
    def succeeded(self):
        return self.examined - len(self.errors)

    @property
    def has_errors(self):
        return bool(self.errors)

    def add_error(self, user_id, message):
        self.errors.append({"user_id": user_id, "error": message})

    def raise_for_errors(self):
        if self.errors:
            raise PartialFailure(self)

    def to_dict(self):
        data = asdict(self)
        data["succeeded"] = self.succeeded
        return data


@dataclass
class UserScoreDetail:
    user_id: int
    points: Optional[int]
    previous_points: Optional[int]
    changed: bool
    error: Optional[str] = None


@dataclass
class ScoringSummary(BatchResult):
    """Result of scoring (or un-scoring) one match across all predictions"""

    match_id: int
    outcome: Optional[str] = None
    examined: int = 0
    changed: int = 0
    points_awarded: int = 0
    ranking_rebuilt: bool = False
    details: List[UserScoreDetail] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)

    def record(self, user_id, points, previous_points):
        changed = points != previous_points
        self.details.append(UserScoreDetail(user_id, points, previous_points, changed))
        if changed:
            self.changed += 1
            self.points_awarded += points - (previous_points or 0)

    def record_failure(self, user_id, previous_points, message):
        self.details.append(
            UserScoreDetail(user_id, None, previous_points, False, error=message)
        )
        self.add_error(user_id, message)


@dataclass
class RecalcSummary(BatchResult):
    """Result of a full recalculation"""

    examined: int = 0
    changed: int = 0
    picks_changed: int = 0
    podium_applied: bool = False
    first_hits: int = 0
    second_hits: int = 0
    third_hits: int = 0
    podium_points_total: int = 0
    ranked: int = 0
    errors: List[dict] = field(default_factory=list)

    @property
    def total(self):
        return self.examined


@dataclass
class PodiumSummary(BatchResult):
    """Result of declaring the final podium"""

    podium: dict
    examined: int = 0
    changed: int = 0
    first_hits: int = 0
    second_hits: int = 0
    third_hits: int = 0
    total_podium_points: int = 0
    errors: List[dict] = field(default_factory=list)

    @classmethod
    def from_recalc(cls, podium, recalc):
        return cls(
            podium={"first": podium.first, "second": podium.second, "third": podium.third},
            examined=recalc.examined,
            changed=recalc.changed,
            first_hits=recalc.first_hits,
            second_hits=recalc.second_hits,
            third_hits=recalc.third_hits,
            total_podium_points=recalc.podium_points_total,
            errors=list(recalc.errors),
        )
