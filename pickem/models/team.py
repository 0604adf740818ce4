from pickem import db

from .base import RecordMixin, new_id, utc_now


class Team(RecordMixin, db.Model):
    __tablename__ = "teams"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    team_code = db.Column(db.String(10), unique=True, nullable=False, index=True)
    team_name = db.Column(db.String(100), nullable=False)
    team_city = db.Column(db.String(100))

    # League structure
    conference = db.Column(db.String(10))  # AFC, NFC
    division = db.Column(db.String(20))  # North, South, East, West

    # Branding
    primary_color = db.Column(db.String(7))
    secondary_color = db.Column(db.String(7))
    logo = db.Column(db.String(255))

    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    def __repr__(self):
        return f"<Team {self.team_code}>"
