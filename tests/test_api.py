"""Tests for the JSON API blueprint."""
import pytest

from pool_tracker.models import Prediction


@pytest.fixture
def pool(make_match, make_prediction):
    make_match(1, "Brazil", "Italy")
    make_prediction(1, {1: "HOME"}, podium=("Brazil", "France", "Italy"))
    make_prediction(2, {1: "AWAY"}, podium=("France", "Brazil", "Italy"), minutes=1)


class TestReadEndpoints:
    def test_ranking(self, client, pool):
        client.post("/api/admin/matches/1/finish", json={"home_score": 1, "away_score": 0})

        response = client.get("/api/ranking")

        assert response.status_code == 200
        body = response.get_json()
        assert body["count"] == 2
        assert [row["user_id"] for row in body["data"]] == [1, 2]

    def test_podium_not_declared(self, client, app):
        response = client.get("/api/podium")

        assert response.status_code == 200
        assert response.get_json()["data"] is None

    def test_match_distribution(self, client, pool):
        response = client.get("/api/matches/1/distribution")

        assert response.get_json()["data"]["counts"] == {"HOME": 1, "AWAY": 1, "DRAW": 0}

    def test_unknown_route_is_json(self, client, app):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.get_json()["success"] is False


class TestAdminEndpoints:
    def test_finish_match(self, client, pool):
        response = client.post(
            "/api/admin/matches/1/finish", json={"home_score": 2, "away_score": 1}
        )

        assert response.status_code == 200
        assert response.headers["Cache-Control"] == "no-store"
        data = response.get_json()["data"]
        assert data["outcome"] == "HOME"
        assert data["changed"] == 1
        assert Prediction.query.filter_by(user_id=1).one().total_points == 1

    def test_finish_requires_scores(self, client, pool):
        response = client.post("/api/admin/matches/1/finish", json={"home_score": 2})

        assert response.status_code == 400
        assert response.get_json()["type"] == "ValidationError"

    def test_finish_rejects_non_integer_score(self, client, pool):
        response = client.post(
            "/api/admin/matches/1/finish", json={"home_score": "2", "away_score": 1}
        )

        assert response.status_code == 400

    def test_finish_unknown_match(self, client, app):
        response = client.post(
            "/api/admin/matches/99/finish", json={"home_score": 1, "away_score": 0}
        )

        assert response.status_code == 404
        assert response.get_json()["type"] == "NotFoundError"

    def test_declare_podium(self, client, pool):
        response = client.post(
            "/api/admin/podium", json={"first": "Brazil", "second": "France", "third": "Italy"}
        )

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["total_podium_points"] == 13 + 2
        assert client.get("/api/podium").get_json()["data"]["first"] == "Brazil"

    def test_declare_incomplete_podium(self, client, pool):
        response = client.post("/api/admin/podium", json={"first": "Brazil", "second": "France"})

        assert response.status_code == 400

    def test_clear_podium(self, client, pool):
        client.post(
            "/api/admin/podium", json={"first": "Brazil", "second": "France", "third": "Italy"}
        )

        response = client.delete("/api/admin/podium")

        assert response.get_json()["reset_count"] == 2
        assert client.get("/api/podium").get_json()["data"] is None

    def test_recalculate_with_declared_podium(self, client, pool):
        client.post(
            "/api/admin/podium", json={"first": "Brazil", "second": "France", "third": "Italy"}
        )

        response = client.post("/api/admin/recalculate", json={"apply_podium": True})

        data = response.get_json()["data"]
        assert data["podium_applied"] is True
        assert data["changed"] == 0

    def test_reopen_and_delete(self, client, pool):
        client.post("/api/admin/matches/1/finish", json={"home_score": 0, "away_score": 1})

        assert client.post("/api/admin/matches/1/reopen").status_code == 200
        assert client.delete("/api/admin/matches/1").status_code == 200
        assert client.get("/api/admin/matches").get_json()["data"] == []

    def test_edit_match(self, client, pool):
        response = client.put(
            "/api/admin/matches/1",
            json={"home_team": " Brasil ", "stadium": "Lusail", "scheduled_at": "2026-06-14T16:00"},
        )

        assert response.status_code == 200
        assert response.headers["Cache-Control"] == "no-store"
        data = response.get_json()["data"]
        assert data["home_team"] == "Brasil"
        assert data["stadium"] == "Lusail"
        assert data["scheduled_at"] == "2026-06-14T16:00:00"

    def test_edit_rejects_bad_date(self, client, pool):
        response = client.put("/api/admin/matches/1", json={"scheduled_at": "soon"})

        assert response.status_code == 400

    def test_edit_finished_match_status(self, client, pool):
        client.post("/api/admin/matches/1/finish", json={"home_score": 1, "away_score": 0})

        response = client.put("/api/admin/matches/1", json={"status": "cancelled"})

        assert response.status_code == 409
        assert Prediction.query.filter_by(user_id=1).one().total_points == 1

    def test_integrity_and_runs(self, client, pool):
        client.post("/api/admin/matches/1/finish", json={"home_score": 1, "away_score": 1})

        integrity = client.get("/api/admin/integrity").get_json()["data"]
        runs = client.get("/api/admin/runs").get_json()["data"]

        assert integrity["is_healthy"] is True
        assert runs[0]["run_type"] == "process_match"

    def test_rebuild_ranking(self, client, pool):
        response = client.post("/api/admin/ranking/rebuild")

        assert response.get_json()["ranked"] == 2


class TestPredictionEndpoints:
    def test_submit_and_read(self, client, make_match):
        make_match(1, "Brazil", "Italy")

        response = client.post(
            "/api/predictions",
            json={"user_id": 8, "picks": {"1": "2x0"}, "podium": ["Brazil", "France", "Italy"]},
        )

        assert response.status_code == 201
        assert response.get_json()["data"]["picks"] == [
            {"match_id": 1, "outcome": "HOME", "points": 0}
        ]
        detail = client.get("/api/predictions/8").get_json()["data"]
        assert detail["podium"]["first"] == "Brazil"
        assert client.get("/api/predictions/8/status").get_json()["data"]["has_submitted"]

    def test_resubmission_conflicts(self, client, pool):
        response = client.post("/api/predictions", json={"user_id": 1, "picks": {"1": "DRAW"}})

        assert response.status_code == 409
        assert response.get_json()["type"] == "InvalidStateError"

    def test_user_id_required(self, client, app):
        response = client.post("/api/predictions", json={"picks": {}})

        assert response.status_code == 400

    def test_missing_prediction(self, client, app):
        assert client.get("/api/predictions/3").status_code == 404

    def test_history(self, client, pool):
        from pool_tracker.services.snapshot_service import take_snapshot

        take_snapshot("Round 1")

        history = client.get("/api/predictions/2/history").get_json()["data"]
        assert [h["label"] for h in history] == ["Round 1"]

    def test_match_listing_counts_picks(self, client, pool):
        matches = client.get("/api/admin/matches").get_json()["data"]

        assert matches[0]["picks"] == 2

    def test_history_compare(self, client, pool):
        from pool_tracker.services.snapshot_service import take_snapshot

        take_snapshot("Round 1")

        response = client.get("/api/predictions/1/history/compare?other=2")

        data = response.get_json()["data"]
        assert [h["user_id"] for h in data["user"]] == [1]
        assert [h["user_id"] for h in data["other"]] == [2]

    def test_history_compare_needs_other(self, client, pool):
        response = client.get("/api/predictions/1/history/compare")

        assert response.status_code == 400
        assert response.get_json()["type"] == "ValidationError"
