"""Tests for the full recalculation coordinator."""
import pytest

from pool_tracker import db
from pool_tracker.errors import InvalidStateError, ValidationError
from pool_tracker.models import Match, MatchPick, Prediction, ScoringRun
from pool_tracker.services import RecalculationCoordinator
from pool_tracker.utils.scoring import Podium


def _prediction(user_id):
    return Prediction.query.filter_by(user_id=user_id).one()


@pytest.fixture
def tournament(make_match, make_prediction):
    """Two finished matches, one pending, three predictions."""
    make_match(1, "Brazil", "Italy", score=(2, 0))
    make_match(2, "France", "Spain", score=(1, 1))
    make_match(3, "Germany", "Japan")
    make_prediction(1, {1: "HOME", 2: "DRAW", 3: "AWAY"}, podium=("Brazil", "France", "Italy"))
    make_prediction(2, {1: "AWAY", 2: "DRAW", 3: "HOME"}, podium=("France", "Brazil", "Italy"))
    make_prediction(3, {1: "1-0", 2: "0-2"}, podium=("Brazil", None, None))


class TestRecalculateAll:
    def test_scores_finished_matches_only(self, tournament):
        summary = RecalculationCoordinator().recalculate_all()

        assert summary.examined == 3
        assert summary.errors == []
        assert _prediction(1).group_points == 2
        assert _prediction(2).group_points == 1
        assert _prediction(3).group_points == 1
        assert _prediction(1).get_pick(3).points == 0

    def test_second_run_changes_nothing(self, tournament):
        coordinator = RecalculationCoordinator()
        coordinator.recalculate_all(podium=Podium("Brazil", "France", "Italy"))

        summary = coordinator.recalculate_all(podium=Podium("Brazil", "France", "Italy"))

        assert summary.changed == 0
        assert summary.picks_changed == 0
        assert _prediction(1).total_points == 15

    def test_total_is_sum_of_components(self, tournament):
        prediction = _prediction(2)
        prediction.bonus_points = 3
        db.session.commit()

        RecalculationCoordinator().recalculate_all(podium=("Brazil", "France", "Italy"))

        for prediction in Prediction.query.all():
            assert prediction.total_points == (
                prediction.group_points + prediction.podium_points + prediction.bonus_points
            )
        assert _prediction(2).total_points == 1 + 2 + 3

    def test_podium_points_kept_without_podium(self, tournament):
        coordinator = RecalculationCoordinator()
        coordinator.recalculate_all(podium={"first": "Brazil", "second": "France", "third": "Italy"})

        summary = coordinator.recalculate_all()

        assert not summary.podium_applied
        assert _prediction(1).podium_points == 13
        assert _prediction(3).podium_points == 7

    def test_podium_hits_are_counted(self, tournament):
        summary = RecalculationCoordinator().recalculate_all(
            podium=Podium("Brazil", "France", "Italy")
        )

        assert summary.podium_applied
        assert summary.first_hits == 2
        assert summary.second_hits == 1
        assert summary.third_hits == 2
        assert summary.podium_points_total == 13 + 2 + 7

    def test_explicit_match_set(self, tournament):
        summary = RecalculationCoordinator().recalculate_all(
            finished_matches=[{"id": 1, "home_score": 0, "away_score": 3}]
        )

        assert summary.errors == []
        assert _prediction(2).group_points == 1
        assert _prediction(1).group_points == 0

    def test_unfinished_match_in_set_rejected(self, tournament):
        pending = db.session.get(Match, 3)

        with pytest.raises(InvalidStateError):
            RecalculationCoordinator().recalculate_all(finished_matches=[pending])

    def test_invalid_podium_rejected(self, tournament):
        with pytest.raises(ValidationError):
            RecalculationCoordinator().recalculate_all(podium=("Brazil", "Brazil", "Italy"))

    def test_small_chunks_cover_everything(self, app, tournament):
        app.config["RECALC_CHUNK_SIZE"] = 1

        summary = RecalculationCoordinator().recalculate_all()

        assert summary.examined == 3
        assert all(p.is_calculated for p in Prediction.query.all())

    def test_corrupt_record_is_skipped(self, tournament, make_prediction):
        prediction = make_prediction(4, {2: "DRAW"})
        db.session.add(MatchPick(prediction_id=prediction.id, match_id=1, outcome="??"))
        db.session.commit()

        summary = RecalculationCoordinator().recalculate_all()

        assert [e["user_id"] for e in summary.errors] == [4]
        assert summary.succeeded == 3
        assert _prediction(1).group_points == 2
        assert _prediction(4).group_points == 0
        assert _prediction(4).get_pick(2).points == 0

    def test_stored_alias_is_reported_not_scored(self, tournament, make_prediction):
        prediction = make_prediction(4, {2: "DRAW"})
        db.session.add(MatchPick(prediction_id=prediction.id, match_id=1, outcome="1"))
        db.session.commit()

        summary = RecalculationCoordinator().recalculate_all()

        assert [e["user_id"] for e in summary.errors] == [4]
        assert "not an outcome" in summary.errors[0]["error"]
        assert _prediction(4).get_pick(1).points == 0
        assert _prediction(4).total_points == 0

    def test_ranking_rebuilt_and_run_logged(self, tournament):
        summary = RecalculationCoordinator().recalculate_all()

        assert summary.ranked == 3
        assert _prediction(1).ranking_position == 1
        run = ScoringRun.query.filter_by(run_type="recalculate_all").one()
        assert run.run_metadata["finished_matches"] == [1, 2]
