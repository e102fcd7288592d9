"""Shared pytest fixtures for the pool tracker tests."""
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pool_tracker import create_app, db  # noqa: E402

BASE_TIME = datetime(2026, 6, 1, 12, 0, 0)


@pytest.fixture(scope="function")
def app():
    """Application bound to a fresh in-memory database."""
    app = create_app("testing")

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_match(app):
    """Factory for Match rows; pass ``score=(h, a)`` to create it finished."""
    from pool_tracker.models import Match

    def _make(match_id, home="Brazil", away="Italy", group="A", score=None):
        match = Match(id=match_id, home_team=home, away_team=away, group_label=group)
        if score is not None:
            match.finish(*score)
        db.session.add(match)
        db.session.commit()
        return match

    return _make


@pytest.fixture
def make_prediction(app):
    """Factory that submits a prediction through the service.

    ``minutes`` offsets the submission time from BASE_TIME so tests can
    control the ranking tie-break.
    """
    from pool_tracker.services.prediction_service import submit_prediction

    def _make(user_id, picks=None, podium=None, minutes=0):
        return submit_prediction(
            user_id,
            picks or {},
            podium=podium,
            submitted_at=BASE_TIME + timedelta(minutes=minutes),
        )

    return _make
