import logging
from datetime import datetime

from pool_tracker import db
from pool_tracker.models import Prediction
from pool_tracker.utils.cache_utils import cached_query, invalidate_model_cache

logger = logging.getLogger(__name__)


def ranking_key(prediction):
    """Sort key: most points, then earliest submission, then oldest record"""
    submitted = prediction.first_submission or datetime.max
    if submitted.tzinfo is not None:
        submitted = submitted.replace(tzinfo=None)
    return (-(prediction.total_points or 0), submitted, prediction.id)


class RankingBuilder:
    """Assigns strict 1..N ranking positions to submitted predictions"""

    def rebuild(self):
        """Recompute every ranking position in one transaction.

        Must run after scoring has committed so no ranking mixes totals from
        before and after a recalculation.

        Returns:
            Number of predictions ranked
        """
        predictions = Prediction.query.all()

        ranked = sorted(
            (p for p in predictions if p.has_submitted), key=ranking_key
        )
        for position, prediction in enumerate(ranked, start=1):
            prediction._ranking_position = position

        for prediction in predictions:
            if not prediction.has_submitted:
                prediction._ranking_position = None

        try:
            db.session.commit()
        except Exception as e:
            logger.error(f"Error rebuilding ranking: {e}")
            db.session.rollback()
            raise

        invalidate_model_cache("Prediction")
        logger.info(f"Ranking rebuilt for {len(ranked)} predictions")
        return len(ranked)


@cached_query("Prediction")
def get_leaderboard():
    """Submitted predictions in ranking order with their point breakdown"""
    predictions = (
        Prediction.query.filter(Prediction.has_submitted.is_(True))
        .order_by(Prediction._ranking_position.is_(None), Prediction._ranking_position)
        .all()
    )

    return [
        {
            "position": p.ranking_position,
            "user_id": p.user_id,
            "total_points": p.total_points,
            "group_points": p.group_points,
            "podium_points": p.podium_points,
            "bonus_points": p.bonus_points,
            "podium": list(p.podium_pick),
            "first_submission": (
                p.first_submission.isoformat() if p.first_submission else None
            ),
        }
        for p in predictions
    ]
