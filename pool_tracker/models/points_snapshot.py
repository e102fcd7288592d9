from datetime import datetime, timezone

from pool_tracker import db


class PointsSnapshot(db.Model):
    """Standings of one user frozen at a labelled point in the tournament

    Written by snapshot_service.take_snapshot once a round is complete and
    used to draw each user's points/position timeline.
    """

    __tablename__ = "points_snapshots"

    id = db.Column(db.Integer, primary_key=True)

    label = db.Column(db.String(50), nullable=False)
    user_id = db.Column(db.Integer, nullable=False)

    total_points = db.Column(db.Integer, nullable=False, default=0)
    position = db.Column(db.Integer)

    snapshot_date = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("label", "user_id", name="unique_snapshot_label_user"),
        db.Index("idx_snapshot_user", "user_id"),
    )

    def __repr__(self):
        return f"<PointsSnapshot {self.label} user={self.user_id} pos={self.position}>"

    @staticmethod
    def label_exists(label):
        return PointsSnapshot.query.filter_by(label=label).first() is not None

    def to_dict(self):
        return {
            "label": self.label,
            "user_id": self.user_id,
            "total_points": self.total_points,
            "position": self.position,
            "snapshot_date": (
                self.snapshot_date.isoformat() if self.snapshot_date else None
            ),
        }
