from pickem import db

from .base import RecordMixin, new_id, utc_now


class Invitation(RecordMixin, db.Model):
    __tablename__ = "pool_invitations"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    # Invite details
    pool_id = db.Column(db.String(36), db.ForeignKey("pools.id"), nullable=False)
    email = db.Column(db.String(120), nullable=False, index=True)
    inviter_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)

    # Invite token and expiry
    token = db.Column(db.String(64), unique=True, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default="pending")
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (db.Index("idx_invitation_pool_email", "pool_id", "email"),)

    def __repr__(self):
        return f"<Invitation {self.email} to pool {self.pool_id}>"
