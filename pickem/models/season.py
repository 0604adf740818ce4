from pickem import db

from .base import RecordMixin, new_id, utc_now


class Season(RecordMixin, db.Model):
    __tablename__ = "seasons"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    season = db.Column(db.String(20), nullable=False)  # e.g., "2025"

    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (db.UniqueConstraint("season", name="unique_season_label"),)

    def __repr__(self):
        return f"<Season {self.season}>"
