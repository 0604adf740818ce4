from pickem import db


class SystemSetting(db.Model):
    """Key/value settings row; holds the current season pointer"""

    __tablename__ = "system_settings"

    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.String(255))

    def __repr__(self):
        return f"<SystemSetting {self.key}={self.value}>"
