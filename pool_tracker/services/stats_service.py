"""
Aggregate statistics over submitted predictions.

Podium statistics use the same ScoringRules as the engine, so the weights
reported here are always the ones actually awarded.
"""

from collections import Counter

from flask import current_app
from sqlalchemy import func

from pool_tracker import db
from pool_tracker.models import Match, MatchPick, Prediction
from pool_tracker.services.prediction_service import PODIUM_SLOTS
from pool_tracker.utils.scoring import Outcome, ScoringRules


def podium_distribution(rules=None):
    """How often each team was predicted for each podium slot"""
    rules = rules or ScoringRules.from_config(current_app.config)

    predictions = Prediction.query.filter(Prediction.has_submitted.is_(True)).all()
    distribution = {}
    for index, slot in enumerate(PODIUM_SLOTS):
        counts = Counter(p.podium_pick[index] for p in predictions if p.podium_pick[index])
        distribution[slot] = [
            {"team": team, "count": count}
            for team, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        ]

    return {
        "weights": rules.podium_weights,
        "predictions": len(predictions),
        "distribution": distribution,
    }


def match_pick_distribution(match_id):
    """HOME / AWAY / DRAW counts for one match"""
    match = Match.get_required(match_id)

    rows = (
        db.session.query(MatchPick.outcome, func.count(MatchPick.id))
        .join(Prediction)
        .filter(MatchPick.match_id == match_id, Prediction.has_submitted.is_(True))
        .group_by(MatchPick.outcome)
        .all()
    )
    counts = {outcome.value: 0 for outcome in Outcome}
    counts.update({outcome: count for outcome, count in rows})

    return {
        "match": match.to_dict(),
        "counts": counts,
        "total": sum(counts.values()),
    }


def picks_per_match():
    """Number of submitted picks for every match, zero included"""
    rows = (
        db.session.query(MatchPick.match_id, func.count(MatchPick.id))
        .join(Prediction)
        .filter(Prediction.has_submitted.is_(True))
        .group_by(MatchPick.match_id)
        .all()
    )
    counts = dict(rows)
    return {match.id: counts.get(match.id, 0) for match in Match.query.order_by(Match.id)}
