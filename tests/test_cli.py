"""Tests for the management CLI."""
import pytest
from click.testing import CliRunner
from flask.cli import ScriptInfo

from manage import cli
from pool_tracker import db
from pool_tracker.models import DeclaredPodium, Match, Prediction


@pytest.fixture
def invoke(app):
    runner = CliRunner()

    def _invoke(*args, **kwargs):
        return runner.invoke(cli, list(args), obj=ScriptInfo(create_app=lambda: app), **kwargs)

    return _invoke


class TestMatchCommands:
    def test_add_and_list(self, invoke):
        result = invoke("match", "add", "7", "Brazil", "Italy", "--group", "A", "--date", "2026-06-14 16:00")

        assert result.exit_code == 0, result.output
        assert "Created match 7" in result.output
        assert db.session.get(Match, 7).scheduled_at.hour == 16

        listing = invoke("match", "list")
        assert "7: Brazil vs Italy [A] scheduled" in listing.output

    def test_add_duplicate(self, invoke, make_match):
        make_match(7)

        result = invoke("match", "add", "7", "Brazil", "Italy", "--group", "A")

        assert "already exists" in result.output

    def test_finish_scores_predictions(self, invoke, make_match, make_prediction):
        make_match(7)
        make_prediction(1, {7: "HOME"})

        result = invoke("match", "finish", "7", "3", "1")

        assert result.exit_code == 0, result.output
        assert "Match 7 finished 3-1 (HOME)" in result.output
        assert Prediction.query.filter_by(user_id=1).one().total_points == 1

    def test_finish_unknown_match(self, invoke):
        result = invoke("match", "finish", "99", "1", "0")

        assert "Match 99 not found" in result.output

    def test_start_twice(self, invoke, make_match):
        make_match(7)

        invoke("match", "start", "7")
        result = invoke("match", "start", "7")

        assert "cannot start" in result.output

    def test_delete_needs_confirmation(self, invoke, make_match):
        make_match(7)

        invoke("match", "delete", "7", input="n\n")
        assert db.session.get(Match, 7) is not None

        result = invoke("match", "delete", "7", "--yes")
        assert "Match 7 deleted" in result.output

    def test_edit(self, invoke, make_match):
        make_match(7)

        result = invoke("match", "edit", "7", "--away", " Japan ", "--group", "C", "--status", "postponed")

        assert result.exit_code == 0, result.output
        assert "Updated match 7: Brazil vs Japan [C] postponed" in result.output
        assert db.session.get(Match, 7).away_team == "Japan"

    def test_edit_rejects_same_teams(self, invoke, make_match):
        make_match(7)

        result = invoke("match", "edit", "7", "--away", "Brazil")

        assert "must be different" in result.output
        assert db.session.get(Match, 7).away_team == "Italy"

    def test_edit_unknown_match(self, invoke):
        result = invoke("match", "edit", "99", "--stadium", "Azteca")

        assert "Match 99 not found" in result.output


class TestPointsCommands:
    def test_podium(self, invoke, make_prediction):
        make_prediction(1, podium=("Brazil", "France", "Italy"))

        result = invoke("points", "podium", "Brazil", "France", "Italy")

        assert result.exit_code == 0, result.output
        assert "Podium points distributed: 13" in result.output
        assert DeclaredPodium.load().first == "Brazil"

    def test_duplicate_podium(self, invoke):
        result = invoke("points", "podium", "Brazil", "Brazil", "Italy")

        assert "must be distinct" in result.output

    def test_recalc_without_declared_podium(self, invoke):
        result = invoke("points", "recalc", "--apply-podium")

        assert "No podium declared" in result.output

    def test_bonus(self, invoke, make_prediction):
        make_prediction(1)

        result = invoke("points", "bonus", "1", "4")

        assert "total 4" in result.output


class TestReportCommands:
    def test_audit_reports_mismatch(self, invoke, make_prediction):
        make_prediction(1, podium=("Brazil", "France", "Italy"))
        prediction = Prediction.query.filter_by(user_id=1).one()
        prediction.total_points = 50
        db.session.commit()

        result = invoke("audit")

        assert "expected 0, stored 50" in result.output
        assert "All totals consistent" not in result.output

    def test_ranking_show(self, invoke, make_prediction):
        make_prediction(1)
        invoke("ranking", "rebuild")

        result = invoke("ranking", "show")

        assert "#1: user 1 - 0 pts" in result.output

    def test_snapshot(self, invoke, make_prediction):
        make_prediction(1)

        result = invoke("snapshot", "take", "Round 1")

        assert "Snapshot 'Round 1' saved for 1 predictions" in result.output

    def test_snapshot_compare(self, invoke, make_prediction):
        make_prediction(1)
        make_prediction(2, minutes=1)
        invoke("snapshot", "take", "Round 1")

        result = invoke("snapshot", "compare", "1", "2")

        assert result.exit_code == 0, result.output
        assert "User 1:" in result.output
        assert "User 2:" in result.output
        assert "Round 1: 0 pts (#2)" in result.output

    def test_status(self, invoke, make_match):
        make_match(1, score=(1, 0))
        make_match(2, "France", "Spain")

        result = invoke("status")

        assert "Database: Connected" in result.output
        assert "Matches: 1/2 finished" in result.output
        assert "Podium: not declared" in result.output
