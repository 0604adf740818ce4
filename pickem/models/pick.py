from pickem import db

from .base import RecordMixin, new_id, utc_now


class Pick(RecordMixin, db.Model):
    __tablename__ = "picks"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    # Pick identification
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    pool_id = db.Column(db.String(36), db.ForeignKey("pools.id"), nullable=False)
    season_id = db.Column(db.String(36), db.ForeignKey("seasons.id"), nullable=False)
    week = db.Column(db.Integer, nullable=False)
    scheduled_game_id = db.Column(
        db.String(36), db.ForeignKey("scheduled_games.id"), nullable=False
    )

    # Pick details
    team_id = db.Column(db.String(36), db.ForeignKey("teams.id"), nullable=False)
    tiebreaker = db.Column(db.Integer)

    # Result: None until the game is final with a winner
    is_correct = db.Column(db.Boolean)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "pool_id", "scheduled_game_id", name="unique_user_pool_game_pick"
        ),
        db.Index("idx_pick_pool_season_week", "pool_id", "season_id", "week"),
        db.Index("idx_pick_user_pool", "user_id", "pool_id"),
        db.Index("idx_pick_game", "scheduled_game_id"),
    )

    def __repr__(self):
        return f"<Pick user_id={self.user_id} game_id={self.scheduled_game_id} team={self.team_id}>"
