from datetime import datetime
from functools import wraps

from flask import jsonify, request

from pool_tracker import db
from pool_tracker.errors import ValidationError
from pool_tracker.models import DeclaredPodium, Match, ScoringRun
from pool_tracker.routes.api import bp
from pool_tracker.services import (
    IntegrityAuditor,
    RankingBuilder,
    RecalculationCoordinator,
    ScoringEngine,
)
from pool_tracker.services.prediction_service import (
    get_prediction,
    prediction_status,
    submit_prediction,
)
from pool_tracker.services.ranking_service import get_leaderboard
from pool_tracker.services.snapshot_service import compare_history, history_for_user
from pool_tracker.services.stats_service import (
    match_pick_distribution,
    picks_per_match,
    podium_distribution,
)


def no_store(f):
    """Admin responses must never be cached by intermediaries"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        if isinstance(response, tuple):
            response[0].headers["Cache-Control"] = "no-store"
        elif hasattr(response, "headers"):
            response.headers["Cache-Control"] = "no-store"
        return response

    return decorated_function


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object expected")
    return data


def _batch_response(summary, message):
    status = 200
    if summary.errors:
        status = 207
        message = f"{message} ({summary.succeeded} of {summary.examined} succeeded)"
    return jsonify({"success": not summary.errors, "message": message, "data": summary.to_dict()}), status


# Read endpoints


@bp.route("/ranking")
def ranking():
    """Current ranking"""
    data = get_leaderboard()
    return jsonify({"success": True, "data": data, "count": len(data)})


@bp.route("/podium")
def podium():
    """Declared podium, if any"""
    declared = DeclaredPodium.get_current()
    return jsonify({"success": True, "data": declared.to_dict() if declared else None})


@bp.route("/stats/podium")
def stats_podium():
    return jsonify({"success": True, "data": podium_distribution()})


@bp.route("/matches/<int:match_id>/distribution")
def match_distribution(match_id):
    return jsonify({"success": True, "data": match_pick_distribution(match_id)})


# Prediction endpoints (user_id is issued by the caller's auth layer)


@bp.route("/predictions", methods=["POST"])
def create_prediction():
    """Submit a prediction; it cannot be changed afterwards"""
    data = _json_body()
    user_id = data.get("user_id")
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise ValidationError("user_id must be an integer")

    picks = data.get("picks") or {}
    if not isinstance(picks, dict):
        raise ValidationError("picks must be an object of match id -> pick")

    prediction = submit_prediction(user_id, picks, podium=data.get("podium"))
    return (
        jsonify({"success": True, "message": "Prediction submitted", "data": prediction.to_dict(include_picks=True)}),
        201,
    )


@bp.route("/predictions/<int:user_id>")
def prediction_detail(user_id):
    prediction = get_prediction(user_id)
    return jsonify({"success": True, "data": prediction.to_dict(include_picks=True)})


@bp.route("/predictions/<int:user_id>/status")
def prediction_submission_status(user_id):
    return jsonify({"success": True, "data": prediction_status(user_id)})


@bp.route("/predictions/<int:user_id>/history")
def prediction_history(user_id):
    return jsonify({"success": True, "data": history_for_user(user_id)})


@bp.route("/predictions/<int:user_id>/history/compare")
def prediction_history_compare(user_id):
    """Two users' timelines; the other user comes from ?other=<user_id>"""
    other = request.args.get("other", type=int)
    return jsonify({"success": True, "data": compare_history(user_id, other)})


# Admin endpoints (mounted behind the caller's authentication)


@bp.route("/admin/matches/<int:match_id>/finish", methods=["POST"])
@no_store
def finish_match(match_id):
    """Record a final score (or a correction) and rescore the match"""
    data = _json_body()
    home_score, away_score = data.get("home_score"), data.get("away_score")
    if home_score is None or away_score is None:
        raise ValidationError("home_score and away_score are required")

    summary = ScoringEngine().finalize_match(match_id, home_score, away_score)
    return _batch_response(summary, f"Match {match_id} finished and scored")


@bp.route("/admin/matches/<int:match_id>", methods=["PUT"])
@no_store
def edit_match(match_id):
    """Edit teams, date, group, stadium or status; points are not recalculated"""
    data = _json_body()
    scheduled_at = data.get("scheduled_at")
    if scheduled_at is not None:
        try:
            scheduled_at = datetime.fromisoformat(str(scheduled_at).strip())
        except ValueError:
            raise ValidationError("scheduled_at must be an ISO date")

    for key in ("home_team", "away_team", "group", "stadium", "status"):
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ValidationError(f"{key} must be a string")

    match = Match.get_required(match_id)
    match.edit(
        home_team=data.get("home_team"),
        away_team=data.get("away_team"),
        group_label=data.get("group"),
        scheduled_at=scheduled_at,
        stadium=data.get("stadium"),
        status=data.get("status"),
    )
    db.session.commit()
    return jsonify({"success": True, "message": f"Match {match_id} updated", "data": match.to_dict()})


@bp.route("/admin/matches/<int:match_id>/reopen", methods=["POST"])
@no_store
def reopen_match(match_id):
    summary = ScoringEngine().reopen_match(match_id)
    return _batch_response(summary, f"Match {match_id} reopened and its points cleared")


@bp.route("/admin/matches/<int:match_id>", methods=["DELETE"])
@no_store
def delete_match(match_id):
    summary = ScoringEngine().delete_match(match_id)
    return _batch_response(summary, f"Match {match_id} deleted")


@bp.route("/admin/podium", methods=["POST"])
@no_store
def declare_podium():
    data = _json_body()
    summary = ScoringEngine().process_podium(
        data.get("first"), data.get("second"), data.get("third")
    )
    return _batch_response(summary, "Podium processed")


@bp.route("/admin/podium", methods=["DELETE"])
@no_store
def clear_podium():
    reset = ScoringEngine().clear_podium()
    return jsonify({"success": True, "message": "Podium cleared", "reset_count": reset})


@bp.route("/admin/recalculate", methods=["POST"])
@no_store
def recalculate():
    """Full recalculation; pass "apply_podium": true to rescore the declared podium too"""
    data = _json_body()
    podium = DeclaredPodium.load() if data.get("apply_podium") else None
    summary = RecalculationCoordinator().recalculate_all(podium=podium)
    return _batch_response(summary, f"Points recalculated for {summary.examined} predictions")


@bp.route("/admin/ranking/rebuild", methods=["POST"])
@no_store
def rebuild_ranking():
    count = RankingBuilder().rebuild()
    return jsonify({"success": True, "ranked": count})


@bp.route("/admin/integrity")
@no_store
def integrity():
    report = IntegrityAuditor().audit()
    return jsonify({"success": True, "data": report.to_dict()})


@bp.route("/admin/runs")
@no_store
def scoring_runs():
    limit = min(request.args.get("limit", 20, type=int), 200)
    return jsonify({"success": True, "data": [run.to_dict() for run in ScoringRun.recent(limit)]})


@bp.route("/admin/matches")
@no_store
def list_matches():
    matches = Match.query.order_by(Match.id).all()
    counts = picks_per_match()
    data = [dict(match.to_dict(), picks=counts.get(match.id, 0)) for match in matches]
    return jsonify({"success": True, "data": data})
