from datetime import datetime, timezone

from pool_tracker import db
from pool_tracker.utils.scoring import Podium


class DeclaredPodium(db.Model):
    """Admin-declared actual top three. At most one row exists."""

    __tablename__ = "declared_podium"

    SINGLETON_ID = 1

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    first = db.Column(db.String(50), nullable=False)
    second = db.Column(db.String(50), nullable=False)
    third = db.Column(db.String(50), nullable=False)
    declared_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<DeclaredPodium {self.first} / {self.second} / {self.third}>"

    @staticmethod
    def get_current():
        return db.session.get(DeclaredPodium, DeclaredPodium.SINGLETON_ID)

    @staticmethod
    def load():
        """Current podium as a Podium value, or None if not declared"""
        row = DeclaredPodium.get_current()
        return row.as_podium() if row else None

    @staticmethod
    def declare(podium):
        """Store ``podium`` wholesale, replacing any earlier declaration"""
        row = DeclaredPodium.get_current()
        if row is None:
            row = DeclaredPodium(id=DeclaredPodium.SINGLETON_ID)
            db.session.add(row)

        row.first, row.second, row.third = podium.as_tuple()
        row.declared_at = datetime.now(timezone.utc)
        return row

    @staticmethod
    def clear():
        row = DeclaredPodium.get_current()
        if row is not None:
            db.session.delete(row)
        return row is not None

    def as_podium(self):
        return Podium(self.first, self.second, self.third)

    def to_dict(self):
        return {
            "first": self.first,
            "second": self.second,
            "third": self.third,
            "declared_at": self.declared_at.isoformat() if self.declared_at else None,
        }
