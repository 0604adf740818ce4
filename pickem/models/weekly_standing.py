from pickem import db

from .base import RecordMixin, new_id, utc_now


class WeeklyStanding(RecordMixin, db.Model):
    """Per-week standings cache, recomputed by the scoring service"""

    __tablename__ = "weekly_standings"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    pool_id = db.Column(db.String(36), db.ForeignKey("pools.id"), nullable=False)
    season_id = db.Column(db.String(36), db.ForeignKey("seasons.id"), nullable=False)
    week = db.Column(db.Integer, nullable=False)

    correct_picks = db.Column(db.Integer, default=0, nullable=False)
    total_picks = db.Column(db.Integer, default=0, nullable=False)
    pick_percentage = db.Column(db.Float, default=0.0, nullable=False)
    rank = db.Column(db.Integer)
    tiebreaker = db.Column(db.Integer)

    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "pool_id", "season_id", "week", name="unique_weekly_standing"
        ),
        db.Index("idx_weekly_standing_pool_week", "pool_id", "season_id", "week"),
    )

    def __repr__(self):
        return f"<WeeklyStanding user_id={self.user_id} week={self.week} rank={self.rank}>"
