from pickem import db

from .base import RecordMixin, new_id, utc_now


class User(RecordMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255))

    # Profile
    first_name = db.Column(db.String(50))
    last_name = db.Column(db.String(50))
    favorite_team_id = db.Column(db.String(36), db.ForeignKey("teams.id"))

    # Account state
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    email_verified = db.Column(db.Boolean, default=False, nullable=False)
    email_verification_token = db.Column(db.String(100))
    password_reset_token = db.Column(db.String(100))
    password_reset_expires = db.Column(db.DateTime(timezone=True))
    last_login = db.Column(db.DateTime(timezone=True))

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f"<User {self.email}>"
