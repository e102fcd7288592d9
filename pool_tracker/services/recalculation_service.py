"""
Full recalculation of every derived point field.

This is the single source of truth after any correction: each match pick is
rescored from scratch against the finished-match set, so re-running with the
same inputs never changes anything. Podium points are only touched when a
podium is passed in explicitly.
"""

from flask import current_app

from pool_tracker import db
from pool_tracker.errors import InvalidStateError, ValidationError
from pool_tracker.models import DeclaredPodium, Match, Prediction, ScoringRun
from pool_tracker.services.batch import RecalcSummary, apply_isolated
from pool_tracker.services.ranking_service import RankingBuilder
from pool_tracker.utils.cache_utils import invalidate_model_cache
from pool_tracker.utils.logging_config import ContextualLogger
from pool_tracker.utils.scoring import (
    Podium,
    ScoringRules,
    resolve_outcome,
    score_match_pick,
    score_podium,
)


def _chunks(items, size):
    for start in range(0, len(items), size):
        yield items[start : start + size]


class RecalculationCoordinator:
    def __init__(self):
        self.log = ContextualLogger(__name__, {"run": "recalculate_all"})

    def recalculate_all(self, finished_matches=None, podium=None, rebuild_ranking=True):
        """Rebuild every submitted prediction's points.

        Args:
            finished_matches: Match rows or ``{"id", "status", "home_score",
                "away_score"}`` mappings. Defaults to every finished match.
            podium: Podium value, DeclaredPodium row or (first, second, third).
                When omitted, stored podium points are left as they are.
            rebuild_ranking: Refresh ranking positions once all chunks commit.

        Returns:
            RecalcSummary
        """
        outcomes = self._outcomes(finished_matches)
        podium = self._podium(podium)
        rules = ScoringRules.from_config(current_app.config)
        chunk_size = max(1, int(current_app.config.get("RECALC_CHUNK_SIZE", 200)))

        summary = RecalcSummary(podium_applied=podium is not None)
        self.log.info(
            f"Recalculating against {len(outcomes)} finished matches "
            f"(podium {'applied' if podium else 'kept'})"
        )

        prediction_ids = [
            row.id
            for row in db.session.query(Prediction.id)
            .filter(Prediction.has_submitted.is_(True))
            .order_by(Prediction.id)
        ]

        for chunk in _chunks(prediction_ids, chunk_size):
            predictions = (
                Prediction.query.filter(Prediction.id.in_(chunk))
                .order_by(Prediction.id)
                .all()
            )
            for prediction in predictions:
                self._recalculate_one(prediction, outcomes, podium, rules, summary)

            db.session.commit()

        ScoringRun.log_run(
            "recalculate_all",
            examined=summary.examined,
            changed=summary.changed,
            error_count=len(summary.errors),
            run_metadata={
                "picks_changed": summary.picks_changed,
                "podium_applied": summary.podium_applied,
                "finished_matches": sorted(outcomes),
            },
        )
        db.session.commit()
        invalidate_model_cache("Prediction")

        if rebuild_ranking:
            summary.ranked = RankingBuilder().rebuild()

        self.log.info(
            f"Recalculation done: {summary.changed}/{summary.examined} predictions "
            f"changed, {summary.picks_changed} picks changed, "
            f"{len(summary.errors)} errors"
        )
        return summary

    def _recalculate_one(self, prediction, outcomes, podium, rules, summary):
        user_id = prediction.user_id
        summary.examined += 1

        # Compute everything first so a corrupt record never half-applies
        try:
            new_points = {}
            for pick in prediction.match_picks:
                actual = outcomes.get(pick.match_id)
                new_points[pick.id] = (
                    score_match_pick(pick.outcome, actual, rules) if actual else 0
                )
            podium_score = (
                score_podium(prediction.podium_pick, podium, rules) if podium else None
            )
        except ValidationError as e:
            self.log.error(f"Skipping prediction of user {user_id}: {e.message}")
            summary.add_error(user_id, e.message)
            return

        before = prediction.point_state()
        picks_changed = sum(
            1 for pick in prediction.match_picks if pick.points != new_points[pick.id]
        )

        def apply():
            for pick in prediction.match_picks:
                pick.points = new_points[pick.id]
            if podium_score is not None:
                prediction.podium_points = podium_score.points
            prediction.recompute_totals()
            prediction.mark_calculated()

        error = apply_isolated(apply, self.log, user_id)
        if error:
            summary.add_error(user_id, error)
            return

        if prediction.point_state() != before:
            summary.changed += 1
        summary.picks_changed += picks_changed

        if podium_score is not None:
            summary.first_hits += int(podium_score.first_hit)
            summary.second_hits += int(podium_score.second_hit)
            summary.third_hits += int(podium_score.third_hit)
            summary.podium_points_total += podium_score.points

    @staticmethod
    def _outcomes(finished_matches):
        """Map match id -> Outcome for the finished-match set"""
        if finished_matches is None:
            finished_matches = Match.get_finished()

        outcomes = {}
        for match in finished_matches:
            if isinstance(match, Match):
                if not match.is_finished:
                    raise InvalidStateError(
                        f"Match {match.id} is not finished", match_id=match.id
                    )
                outcomes[match.id] = match.outcome
                continue

            match_id = match.get("id", match.get("match_id"))
            status = match.get("status", Match.FINISHED)
            home, away = match.get("home_score"), match.get("away_score")
            if status != Match.FINISHED:
                raise InvalidStateError(
                    f"Match {match_id} is not finished", match_id=match_id
                )
            if match_id is None or home is None or away is None:
                raise ValidationError("Finished match needs id and both scores")
            outcomes[int(match_id)] = resolve_outcome(int(home), int(away))

        return outcomes

    @staticmethod
    def _podium(podium):
        if podium is None or isinstance(podium, Podium):
            return podium
        if isinstance(podium, DeclaredPodium):
            return podium.as_podium()
        if isinstance(podium, dict):
            return Podium.from_names(
                podium.get("first"), podium.get("second"), podium.get("third")
            )
        return Podium.from_names(*podium)
