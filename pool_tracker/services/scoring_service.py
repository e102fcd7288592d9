"""
Scoring Engine for the prediction pool

Scores one match across every prediction that picked it, applies the
declared podium, and handles match corrections (re-finish, reopen, delete).
The pure rules live in pool_tracker.utils.scoring.
"""

from flask import current_app

from pool_tracker import db
from pool_tracker.errors import InvalidStateError, NotFoundError, ValidationError
from pool_tracker.models import DeclaredPodium, Match, MatchPick, Prediction, ScoringRun
from pool_tracker.services.batch import PodiumSummary, ScoringSummary, apply_isolated
from pool_tracker.services.ranking_service import RankingBuilder
from pool_tracker.services.recalculation_service import RecalculationCoordinator
from pool_tracker.utils.cache_utils import invalidate_model_cache
from pool_tracker.utils.logging_config import ContextualLogger
from pool_tracker.utils.scoring import Podium, ScoringRules, score_match_pick


class ScoringEngine:
    def __init__(self):
        self.log = ContextualLogger(__name__)

    # ------------------------------------------------------------------
    # Match scoring
    # ------------------------------------------------------------------

    def process_match(self, match_id):
        """Score every submitted pick for a finished match.

        Idempotent: the per-match point is overwritten, never added to, so a
        second run over unchanged data reports zero changes.
        """
        match = Match.get_required(match_id)
        if not match.is_finished:
            raise InvalidStateError(
                f"Match {match_id} is not finished (status {match.status})",
                match_id=match_id,
            )

        rules = ScoringRules.from_config(current_app.config)
        actual = match.outcome
        log = self.log.bind(match_id=match_id, outcome=actual.value)

        summary = ScoringSummary(match_id=match_id, outcome=actual.value)
        for pick in self._submitted_picks(match_id):
            try:
                points = score_match_pick(pick.outcome, actual, rules)
            except ValidationError as e:
                log.error(
                    f"Corrupt pick for user {pick.prediction.user_id}: {e.message}"
                )
                summary.examined += 1
                summary.record_failure(pick.prediction.user_id, pick.points, e.message)
                continue

            self._set_pick_points(pick, points, summary, log)

        return self._finish_run("process_match", summary, log)

    def finalize_match(self, match_id, home_score, away_score):
        """Record a final score (or correct one) and rescore the match"""
        match = Match.get_required(match_id)
        was_finished = match.is_finished
        try:
            match.finish(home_score, away_score)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        self.log.info(
            f"Match {match_id} {'corrected' if was_finished else 'finished'} "
            f"{home_score}-{away_score}"
        )
        return self.process_match(match_id)

    def reopen_match(self, match_id):
        """Return a match to scheduled and zero its pick points"""
        match = Match.get_required(match_id)
        log = self.log.bind(match_id=match_id)

        match.reopen()
        summary = ScoringSummary(match_id=match_id)
        for pick in self._submitted_picks(match_id):
            self._set_pick_points(pick, 0, summary, log)

        return self._finish_run("reopen_match", summary, log)

    def delete_match(self, match_id):
        """Delete a match and drop every pick that references it"""
        match = Match.get_required(match_id)
        log = self.log.bind(match_id=match_id)

        summary = ScoringSummary(match_id=match_id)
        for pick in MatchPick.query.filter_by(match_id=match_id).all():
            prediction = pick.prediction
            previous = pick.points
            summary.examined += 1

            def apply(prediction=prediction, pick=pick):
                prediction.match_picks.remove(pick)
                prediction.recompute_totals()

            error = apply_isolated(apply, log, prediction.user_id)
            if error:
                summary.record_failure(prediction.user_id, previous, error)
            else:
                summary.record(prediction.user_id, 0, previous)

        if summary.errors:
            db.session.rollback()
            log.error(f"Match {match_id} kept: {len(summary.errors)} picks could not be removed")
            return summary

        db.session.delete(match)
        return self._finish_run("delete_match", summary, log)

    # ------------------------------------------------------------------
    # Podium and bonus
    # ------------------------------------------------------------------

    def process_podium(self, first, second, third):
        """Declare the final podium and bring every prediction in sync.

        Stores the podium, then runs a full recalculation against all
        finished matches and this podium.
        """
        podium = Podium.from_names(first, second, third)

        DeclaredPodium.declare(podium)
        db.session.commit()
        self.log.info(
            f"Podium declared: {podium.first} / {podium.second} / {podium.third}"
        )

        recalc = RecalculationCoordinator().recalculate_all(podium=podium)
        summary = PodiumSummary.from_recalc(podium, recalc)

        ScoringRun.log_run(
            "process_podium",
            examined=summary.examined,
            changed=summary.changed,
            error_count=len(summary.errors),
            run_metadata={
                "podium": summary.podium,
                "first_hits": summary.first_hits,
                "second_hits": summary.second_hits,
                "third_hits": summary.third_hits,
                "total_podium_points": summary.total_podium_points,
            },
        )
        db.session.commit()
        return summary

    def clear_podium(self):
        """Forget the declared podium and zero all podium points

        Returns:
            Number of predictions whose podium points were reset
        """
        DeclaredPodium.clear()

        changed = 0
        errors = 0
        predictions = Prediction.query.filter(Prediction.podium_points != 0).all()
        for prediction in predictions:

            def apply(prediction=prediction):
                prediction.podium_points = 0
                prediction.recompute_totals()

            if apply_isolated(apply, self.log, prediction.user_id):
                errors += 1
            else:
                changed += 1

        ScoringRun.log_run(
            "clear_podium", examined=len(predictions), changed=changed, error_count=errors
        )
        db.session.commit()
        invalidate_model_cache("Prediction")
        RankingBuilder().rebuild()

        self.log.info(f"Podium cleared, {changed} predictions reset")
        return changed

    def set_bonus_points(self, user_id, points):
        """Set externally decided bonus points for one user"""
        if isinstance(points, bool) or not isinstance(points, int):
            raise ValidationError("Bonus points must be an integer", user_id=user_id)

        prediction = Prediction.query.filter_by(user_id=user_id).first()
        if prediction is None:
            raise NotFoundError(f"No prediction for user {user_id}", user_id=user_id)

        try:
            prediction.bonus_points = points
            prediction.recompute_totals()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        invalidate_model_cache("Prediction")
        RankingBuilder().rebuild()
        return prediction

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _submitted_picks(match_id):
        return (
            MatchPick.query.join(Prediction)
            .filter(MatchPick.match_id == match_id, Prediction.has_submitted.is_(True))
            .order_by(Prediction.user_id)
            .all()
        )

    @staticmethod
    def _set_pick_points(pick, points, summary, log):
        prediction = pick.prediction
        user_id = prediction.user_id
        previous = pick.points
        summary.examined += 1

        def apply():
            pick.points = points
            prediction.recompute_totals()
            prediction.mark_calculated()

        error = apply_isolated(apply, log, user_id)
        if error:
            summary.record_failure(user_id, previous, error)
        else:
            summary.record(user_id, points, previous)

    @staticmethod
    def _finish_run(run_type, summary, log):
        ScoringRun.log_run(
            run_type,
            match_id=summary.match_id,
            examined=summary.examined,
            changed=summary.changed,
            error_count=len(summary.errors),
            run_metadata={"points_awarded": summary.points_awarded},
        )
        db.session.commit()
        invalidate_model_cache("Prediction")

        if summary.changed:
            RankingBuilder().rebuild()
            summary.ranking_rebuilt = True

        log.info(
            f"{run_type}: {summary.changed}/{summary.examined} predictions changed, "
            f"{len(summary.errors)} errors"
        )
        return summary
