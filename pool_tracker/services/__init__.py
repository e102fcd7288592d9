from .integrity_service import IntegrityAuditor
from .ranking_service import RankingBuilder
from .recalculation_service import RecalculationCoordinator
from .scoring_service import ScoringEngine

__all__ = [
    "ScoringEngine",
    "RecalculationCoordinator",
    "RankingBuilder",
    "IntegrityAuditor",
]
