from pickem import db

from .base import RecordMixin, new_id, utc_now


class ScheduledGame(RecordMixin, db.Model):
    __tablename__ = "scheduled_games"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    season_id = db.Column(db.String(36), db.ForeignKey("seasons.id"), nullable=False)
    week = db.Column(db.Integer, nullable=False)

    # Teams
    home_team_id = db.Column(db.String(36), db.ForeignKey("teams.id"), nullable=False)
    away_team_id = db.Column(db.String(36), db.ForeignKey("teams.id"), nullable=False)

    # Kickoff; picks lock at this instant
    start_time = db.Column(db.DateTime(timezone=True), nullable=False)

    # Results from the score feed
    status = db.Column(db.String(30), default="STATUS_SCHEDULED")
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)
    scores_updated_at = db.Column(db.DateTime(timezone=True))
    external_id = db.Column(db.String(50), unique=True)

    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        db.Index("idx_scheduled_game_season_week", "season_id", "week"),
        db.Index("idx_scheduled_game_start", "start_time"),
    )

    def __repr__(self):
        return f"<ScheduledGame week={self.week} {self.away_team_id} @ {self.home_team_id}>"
