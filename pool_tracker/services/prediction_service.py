"""
Prediction submission: the only user-facing write path.

Picks are normalized to HOME / AWAY / DRAW here so the scoring engine only
ever sees canonical outcomes. A prediction can be submitted exactly once.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from pool_tracker import db
from pool_tracker.errors import InvalidStateError, NotFoundError, ValidationError
from pool_tracker.models import Match, MatchPick, Prediction
from pool_tracker.utils.cache_utils import invalidate_model_cache
from pool_tracker.utils.scoring import normalize_pick, team_key

logger = logging.getLogger(__name__)

PODIUM_SLOTS = ("first", "second", "third")


def _clean_podium(podium):
    """Return (first, second, third) with blanks as None"""
    if podium is None:
        return (None, None, None)
    if isinstance(podium, dict):
        values = [podium.get(slot) for slot in PODIUM_SLOTS]
    else:
        values = list(podium)
        if len(values) != 3:
            raise ValidationError("Podium pick needs exactly three slots")

    cleaned = []
    for value in values:
        name = " ".join(str(value).split()) if value is not None else ""
        cleaned.append(name or None)

    named = [team_key(name) for name in cleaned if name]
    if len(named) != len(set(named)):
        raise ValidationError("Podium pick teams must be distinct", podium=cleaned)

    return tuple(cleaned)


def _normalize_picks(picks):
    normalized = {}
    for raw_id, raw_pick in (picks or {}).items():
        try:
            match_id = int(raw_id)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid match id: {raw_id!r}")
        normalized[match_id] = normalize_pick(raw_pick)
    return normalized


def submit_prediction(user_id, picks, podium=None, submitted_at=None):
    """Create and submit a user's prediction.

    Args:
        user_id: Owner, as issued by the auth layer
        picks: Mapping of match id -> pick (outcome name, alias or scoreline)
        podium: {"first", "second", "third"} or a 3-item sequence; slots may be empty
        submitted_at: Submission time (defaults to now, UTC)

    Returns:
        The submitted Prediction
    """
    existing = Prediction.query.filter_by(user_id=user_id).first()
    if existing is not None and existing.has_submitted:
        raise InvalidStateError(
            "Predictions cannot be edited after submission", user_id=user_id
        )

    podium_pick = _clean_podium(podium)
    normalized = _normalize_picks(picks)

    if normalized:
        known = {
            row.id
            for row in db.session.query(Match.id).filter(Match.id.in_(normalized))
        }
        missing = sorted(set(normalized) - known)
        if missing:
            raise NotFoundError(f"Unknown matches: {missing}", match_ids=missing)

    now = submitted_at or datetime.now(timezone.utc)
    prediction = existing or Prediction(user_id=user_id)
    prediction.podium_first, prediction.podium_second, prediction.podium_third = podium_pick
    prediction.match_picks = [
        MatchPick(match_id=match_id, outcome=outcome.value, points=0)
        for match_id, outcome in sorted(normalized.items())
    ]
    prediction.has_submitted = True
    prediction.first_submission = prediction.first_submission or now
    prediction.last_update = now

    try:
        db.session.add(prediction)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.warning(f"Duplicate submission for user {user_id}: {e}")
        raise InvalidStateError(
            "Prediction already submitted", user_id=user_id
        ) from e

    invalidate_model_cache("Prediction")
    logger.info(f"Prediction submitted for user {user_id} with {len(normalized)} picks")
    return prediction


def get_prediction(user_id):
    prediction = Prediction.query.filter_by(user_id=user_id).first()
    if prediction is None:
        raise NotFoundError(f"No prediction for user {user_id}", user_id=user_id)
    return prediction


def prediction_status(user_id):
    """Submission state of a user's prediction"""
    prediction = Prediction.query.filter_by(user_id=user_id).first()
    return {
        "has_submitted": bool(prediction and prediction.has_submitted),
        "first_submission": (
            prediction.first_submission.isoformat()
            if prediction and prediction.first_submission
            else None
        ),
        "matches_count": len(prediction.match_picks) if prediction else 0,
        "has_podium": bool(prediction and prediction.has_complete_podium),
    }
