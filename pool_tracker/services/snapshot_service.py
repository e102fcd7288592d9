import logging

from pool_tracker import db
from pool_tracker.errors import InvalidStateError, NotFoundError, ValidationError
from pool_tracker.models import Match, PointsSnapshot, Prediction
from pool_tracker.services.ranking_service import RankingBuilder

logger = logging.getLogger(__name__)


def take_snapshot(label, group_label=None):
    """Freeze every submitted prediction's total and position under ``label``

    Args:
        label: Unique name for this snapshot (e.g. "Round 1")
        group_label: When given, every match of that group must be finished

    Returns:
        Number of snapshot rows written
    """
    label = (label or "").strip()
    if not label:
        raise ValidationError("Snapshot label is required")

    if PointsSnapshot.label_exists(label):
        raise InvalidStateError(f"Snapshot '{label}' already saved", label=label)

    if group_label:
        matches = Match.get_by_group(group_label)
        if not matches:
            raise NotFoundError(f"No matches in group {group_label}", group=group_label)
        pending = [m.id for m in matches if not m.is_finished]
        if pending:
            raise InvalidStateError(
                f"Group {group_label} has unfinished matches", match_ids=pending
            )

    predictions = Prediction.query.filter(Prediction.has_submitted.is_(True)).all()
    if any(p.ranking_position is None for p in predictions):
        RankingBuilder().rebuild()

    for prediction in predictions:
        db.session.add(
            PointsSnapshot(
                label=label,
                user_id=prediction.user_id,
                total_points=prediction.total_points,
                position=prediction.ranking_position,
            )
        )

    try:
        db.session.commit()
    except Exception as e:
        logger.error(f"Error saving snapshot {label}: {e}")
        db.session.rollback()
        raise

    logger.info(f"Saved snapshot '{label}' for {len(predictions)} predictions")
    return len(predictions)


def history_for_user(user_id):
    """Points and position timeline of one user"""
    snapshots = (
        PointsSnapshot.query.filter_by(user_id=user_id)
        .order_by(PointsSnapshot.snapshot_date, PointsSnapshot.id)
        .all()
    )
    return [snapshot.to_dict() for snapshot in snapshots]


def compare_history(user_id, other_user_id):
    """Timelines of two users side by side, each oldest first"""
    if other_user_id is None:
        raise ValidationError("other user id is required")
    return {
        "user": history_for_user(user_id),
        "other": history_for_user(other_user_id),
    }
