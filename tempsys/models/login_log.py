# tempsys/models/login_log.py

from datetime import datetime
from tempsys import db


class LoginLog(db.Model):
    __tablename__ = "login_logs"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True, index=True)
    username = db.Column(db.String(80), nullable=True)
    ip = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(40), nullable=False)
    user_agent = db.Column(db.String(255), nullable=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "username": self.username,
            "ip": self.ip,
            "status": self.status,
            "user_agent": self.user_agent,
            "timestamp": self.timestamp.strftime("%Y-%m-%d %H:%M:%S") if self.timestamp else "",
        }

    def __repr__(self):
        return f"<LoginLog {self.username} {self.status} {self.timestamp}>"
