from pickem import db

from .base import RecordMixin, new_id, utc_now


class Pool(RecordMixin, db.Model):
    __tablename__ = "pools"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    mode = db.Column(db.String(20), nullable=False, default="weekly")  # weekly, survivor
    owner_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    season_id = db.Column(db.String(36), db.ForeignKey("seasons.id"), nullable=False)

    # Shareable URL component
    slug = db.Column(db.String(50), unique=True, nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        db.Index("idx_pool_owner", "owner_id"),
        db.Index("idx_pool_season", "season_id"),
    )

    def __repr__(self):
        return f"<Pool {self.name} ({self.mode})>"
