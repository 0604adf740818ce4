from pickem import db

from .base import RecordMixin, new_id, utc_now


class Participant(RecordMixin, db.Model):
    __tablename__ = "pool_participants"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    pool_id = db.Column(db.String(36), db.ForeignKey("pools.id"), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="player")  # owner, player

    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        db.UniqueConstraint("pool_id", "user_id", name="unique_pool_participant"),
        db.Index("idx_participant_user", "user_id"),
    )

    def __repr__(self):
        return f"<Participant user_id={self.user_id} pool_id={self.pool_id}>"
