import logging
from dataclasses import asdict, dataclass, field
from typing import List

from pool_tracker.models import Prediction

logger = logging.getLogger(__name__)


@dataclass
class IntegrityReport:
    examined: int = 0
    errors: List[dict] = field(default_factory=list)
    warnings: List[dict] = field(default_factory=list)

    @property
    def is_healthy(self):
        return not self.errors

    @property
    def summary(self):
        return {
            "examined": self.examined,
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "consistent": self.examined - len({e["user_id"] for e in self.errors}),
        }

    def to_dict(self):
        data = asdict(self)
        data["summary"] = self.summary
        data["is_healthy"] = self.is_healthy
        return data


class IntegrityAuditor:
    """Read-only consistency check of stored point totals"""

    def audit(self):
        report = IntegrityReport()

        predictions = (
            Prediction.query.filter(Prediction.has_submitted.is_(True))
            .order_by(Prediction.user_id)
            .all()
        )

        for prediction in predictions:
            report.examined += 1

            # Totals are integers, so exact equality is expected
            expected = prediction.expected_total
            actual = prediction.total_points or 0
            if expected != actual:
                report.errors.append(
                    {
                        "user_id": prediction.user_id,
                        "kind": "total_mismatch",
                        "expected": expected,
                        "actual": actual,
                    }
                )

            if not prediction.has_complete_podium:
                report.warnings.append(
                    {
                        "user_id": prediction.user_id,
                        "kind": "incomplete_podium",
                        "message": "Podium pick has empty slots",
                    }
                )

            pick_sum = sum(pick.points or 0 for pick in prediction.match_picks)
            if pick_sum != (prediction.group_points or 0):
                report.warnings.append(
                    {
                        "user_id": prediction.user_id,
                        "kind": "group_points_stale",
                        "message": (
                            f"Group points {prediction.group_points} differ from "
                            f"match pick sum {pick_sum}; run a recalculation"
                        ),
                    }
                )

        if report.errors:
            logger.warning(
                f"Integrity audit found {len(report.errors)} total mismatches "
                f"in {report.examined} predictions"
            )
        else:
            logger.info(f"Integrity audit passed for {report.examined} predictions")

        return report
