from datetime import datetime, timezone

from pool_tracker import db
from pool_tracker.errors import InvalidStateError, NotFoundError, ValidationError
from pool_tracker.utils.scoring import resolve_outcome, team_key

MAX_SCORE = 99


def _required_text(value, field):
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required")
    return value


class Match(db.Model):
    __tablename__ = "matches"

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"
    STATUSES = (SCHEDULED, IN_PROGRESS, FINISHED, CANCELLED, POSTPONED)

    # Caller-assigned match number
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)

    # Teams
    home_team = db.Column(db.String(50), nullable=False)
    away_team = db.Column(db.String(50), nullable=False)

    # Scheduling
    scheduled_at = db.Column(db.DateTime)
    group_label = db.Column(db.String(30), nullable=False)
    stadium = db.Column(db.String(100))

    # Lifecycle
    status = db.Column(db.String(20), nullable=False, default=SCHEDULED)
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)
    finished_at = db.Column(db.DateTime)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    picks = db.relationship("MatchPick", backref="match", lazy="dynamic")

    # Indexes
    __table_args__ = (
        db.Index("idx_match_status", "status"),
        db.Index("idx_match_group", "group_label"),
        db.CheckConstraint("home_team != away_team", name="different_teams"),
    )

    def __repr__(self):
        return f"<Match {self.id} {self.home_team} vs {self.away_team} ({self.status})>"

    @property
    def name(self):
        return f"{self.home_team} vs {self.away_team}"

    @property
    def is_finished(self):
        return self.status == self.FINISHED

    @property
    def outcome(self):
        """Categorical result (None unless finished)"""
        if not self.is_finished:
            return None
        return resolve_outcome(self.home_score, self.away_score)

    def start(self):
        """scheduled -> in_progress"""
        if self.status != self.SCHEDULED:
            raise InvalidStateError(
                f"Match {self.id} cannot start from status {self.status}",
                match_id=self.id,
            )
        self.status = self.IN_PROGRESS

    def finish(self, home_score, away_score):
        """Record the final score.

        Allowed from any non-cancelled status, including finished: a second
        call is a score correction and callers must rescore the match.
        """
        if self.status == self.CANCELLED:
            raise InvalidStateError(
                f"Match {self.id} is cancelled", match_id=self.id
            )

        for side, score in (("home", home_score), ("away", away_score)):
            if isinstance(score, bool) or not isinstance(score, int):
                raise ValidationError(
                    f"{side} score must be an integer", match_id=self.id
                )
            if score < 0 or score > MAX_SCORE:
                raise ValidationError(
                    f"{side} score out of range 0..{MAX_SCORE}", match_id=self.id
                )

        self.home_score = home_score
        self.away_score = away_score
        self.status = self.FINISHED
        self.finished_at = datetime.now(timezone.utc)

    def reopen(self):
        """Return a match to scheduled and forget its score"""
        self.status = self.SCHEDULED
        self.home_score = None
        self.away_score = None
        self.finished_at = None

    def cancel(self):
        """Finished matches must be reopened first so their points are cleared"""
        if self.is_finished:
            raise InvalidStateError(
                f"Match {self.id} is finished, reopen it before cancelling",
                match_id=self.id,
            )
        self.status = self.CANCELLED
        self.home_score = None
        self.away_score = None
        self.finished_at = None

    def edit(
        self,
        home_team=None,
        away_team=None,
        group_label=None,
        scheduled_at=None,
        stadium=None,
        status=None,
    ):
        """Update match details; arguments left as None are kept.

        Scores never change here, so no points move. Finishing goes through
        ``finish`` and a finished match must be reopened before its status
        can change.
        """
        home = self.home_team if home_team is None else _required_text(home_team, "home team")
        away = self.away_team if away_team is None else _required_text(away_team, "away team")
        group = self.group_label if group_label is None else _required_text(group_label, "group")
        if team_key(home) == team_key(away):
            raise ValidationError(
                "Home and away teams must be different", match_id=self.id
            )

        if status is not None:
            status = status.strip().lower()
            if status not in self.STATUSES:
                raise ValidationError(f"Unknown match status {status}", match_id=self.id)
            if status == self.FINISHED and not self.is_finished:
                raise ValidationError(
                    "Record a final score to finish a match", match_id=self.id
                )
            if self.is_finished and status != self.FINISHED:
                raise InvalidStateError(
                    f"Match {self.id} is finished, reopen it first", match_id=self.id
                )

        self.home_team = home
        self.away_team = away
        self.group_label = group
        if scheduled_at is not None:
            self.scheduled_at = scheduled_at
        if stadium is not None:
            self.stadium = stadium.strip() or None
        if status == self.CANCELLED:
            self.cancel()
        elif status is not None:
            self.status = status

    @staticmethod
    def get_required(match_id):
        """Match by id, raising NotFoundError if missing"""
        match = db.session.get(Match, match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found", match_id=match_id)
        return match

    @staticmethod
    def get_finished():
        return Match.query.filter_by(status=Match.FINISHED).order_by(Match.id).all()

    @staticmethod
    def get_by_group(group_label):
        return Match.query.filter_by(group_label=group_label).order_by(Match.id).all()

    def to_dict(self):
        """Convert match to dictionary for API responses"""
        return {
            "id": self.id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "group": self.group_label,
            "stadium": self.stadium,
            "status": self.status,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "outcome": self.outcome.value if self.outcome else None,
        }
