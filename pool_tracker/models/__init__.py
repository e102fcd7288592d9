from pool_tracker import db  # noqa: F401 - imported for model imports

from .match import Match
from .podium import DeclaredPodium
from .points_snapshot import PointsSnapshot
from .prediction import MatchPick, Prediction
from .scoring_run import ScoringRun

__all__ = [
    "Match",
    "Prediction",
    "MatchPick",
    "DeclaredPodium",
    "PointsSnapshot",
    "ScoringRun",
]
