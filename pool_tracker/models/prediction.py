from datetime import datetime, timezone

from pool_tracker import db


class Prediction(db.Model):
    """A user's full submission: match picks plus podium pick.

    Point fields are derived and written only by the scoring services.
    ``ranking_position`` is read-only from outside; RankingBuilder assigns it.
    """

    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    # Owner, issued by the external auth layer
    user_id = db.Column(db.Integer, nullable=False, unique=True, index=True)

    # Submission state
    has_submitted = db.Column(db.Boolean, nullable=False, default=False)
    first_submission = db.Column(db.DateTime)
    last_update = db.Column(db.DateTime)

    # Podium pick
    podium_first = db.Column(db.String(50))
    podium_second = db.Column(db.String(50))
    podium_third = db.Column(db.String(50))

    # Derived points
    group_points = db.Column(db.Integer, nullable=False, default=0)
    podium_points = db.Column(db.Integer, nullable=False, default=0)
    bonus_points = db.Column(db.Integer, nullable=False, default=0)
    total_points = db.Column(db.Integer, nullable=False, default=0)
    _ranking_position = db.Column("ranking_position", db.Integer)
    is_calculated = db.Column(db.Boolean, nullable=False, default=False)
    last_calculated_at = db.Column(db.DateTime)

    # Optimistic lock for read-compute-write cycles
    version_id = db.Column(db.Integer, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    match_picks = db.relationship(
        "MatchPick",
        backref="prediction",
        cascade="all, delete-orphan",
        order_by="MatchPick.match_id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        db.Index("idx_prediction_ranking", "has_submitted", "total_points"),
    )

    def __repr__(self):
        return f"<Prediction user_id={self.user_id} total={self.total_points}>"

    @property
    def ranking_position(self):
        return self._ranking_position

    @property
    def podium_pick(self):
        return (self.podium_first, self.podium_second, self.podium_third)

    @property
    def has_complete_podium(self):
        return all(slot and slot.strip() for slot in self.podium_pick)

    @property
    def expected_total(self):
        return (
            (self.group_points or 0)
            + (self.podium_points or 0)
            + (self.bonus_points or 0)
        )

    def get_pick(self, match_id):
        for pick in self.match_picks:
            if pick.match_id == match_id:
                return pick
        return None

    def recompute_totals(self):
        """Re-derive group and total points from the stored components"""
        self.group_points = sum(pick.points or 0 for pick in self.match_picks)
        self.total_points = self.expected_total

    def mark_calculated(self):
        self.is_calculated = True
        self.last_calculated_at = datetime.now(timezone.utc)

    def point_state(self):
        """Snapshot of every derived value, used to detect real changes"""
        return (
            self.group_points,
            self.podium_points,
            self.bonus_points,
            self.total_points,
            tuple((pick.match_id, pick.points) for pick in self.match_picks),
        )

    def to_dict(self, include_picks=False):
        """Convert prediction to dictionary for API responses"""
        data = {
            "user_id": self.user_id,
            "has_submitted": self.has_submitted,
            "first_submission": (
                self.first_submission.isoformat() if self.first_submission else None
            ),
            "podium": {
                "first": self.podium_first,
                "second": self.podium_second,
                "third": self.podium_third,
            },
            "group_points": self.group_points,
            "podium_points": self.podium_points,
            "bonus_points": self.bonus_points,
            "total_points": self.total_points,
            "ranking_position": self.ranking_position,
            "is_calculated": self.is_calculated,
        }

        if include_picks:
            data["picks"] = [pick.to_dict() for pick in self.match_picks]

        return data


class MatchPick(db.Model):
    __tablename__ = "match_picks"

    id = db.Column(db.Integer, primary_key=True)
    prediction_id = db.Column(
        db.Integer, db.ForeignKey("predictions.id"), nullable=False
    )
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)

    # Always one of HOME / AWAY / DRAW once ingested
    outcome = db.Column(db.String(5), nullable=False)
    points = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint("prediction_id", "match_id", name="unique_prediction_match"),
        db.Index("idx_pick_match", "match_id"),
    )

    def __repr__(self):
        return f"<MatchPick match={self.match_id} outcome={self.outcome} points={self.points}>"

    def to_dict(self):
        return {
            "match_id": self.match_id,
            "outcome": self.outcome,
            "points": self.points,
        }
