from datetime import datetime, timezone

from pool_tracker import db


class ScoringRun(db.Model):
    """One scoring trigger: a processed match, a podium, a recalculation..."""

    __tablename__ = "scoring_runs"

    id = db.Column(db.Integer, primary_key=True)

    # 'process_match', 'process_podium', 'recalculate_all', 'reopen_match',
    # 'delete_match', 'clear_podium'
    run_type = db.Column(db.String(50), nullable=False)
    match_id = db.Column(db.Integer, nullable=True)

    examined = db.Column(db.Integer, default=0)
    changed = db.Column(db.Integer, default=0)
    error_count = db.Column(db.Integer, default=0)

    # Additional context data (JSON)
    run_metadata = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.Index("idx_scoring_run_type", "run_type"),
        db.Index("idx_scoring_run_created", "created_at"),
    )

    def __repr__(self):
        return f"<ScoringRun {self.run_type} examined={self.examined} changed={self.changed}>"

    @staticmethod
    def log_run(run_type, examined=0, changed=0, error_count=0, match_id=None, run_metadata=None):
        """Record a scoring run. The caller commits."""
        run = ScoringRun(
            run_type=run_type,
            match_id=match_id,
            examined=examined,
            changed=changed,
            error_count=error_count,
            run_metadata=run_metadata or {},
        )

        db.session.add(run)
        return run

    @staticmethod
    def recent(limit=20):
        return ScoringRun.query.order_by(ScoringRun.id.desc()).limit(limit).all()

    def to_dict(self):
        return {
            "id": self.id,
            "run_type": self.run_type,
            "match_id": self.match_id,
            "examined": self.examined,
            "changed": self.changed,
            "error_count": self.error_count,
            "run_metadata": self.run_metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
