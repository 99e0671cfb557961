# tempsys/models/company.py

from datetime import datetime
from tempsys import db


class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    users = db.relationship("User", back_populates="company")

    def __repr__(self):
        return f"<Company {self.name}>"
