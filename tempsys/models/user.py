# tempsys/models/user.py

from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from tempsys import db

ROLE_EMPLOYEE = "employee"
ROLE_COMPANY_ADMIN = "companyAdmin"
ROLE_ADMIN = "admin"


class User(db.Model, UserMixin):
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("company_id", "username", name="uq_users_company_username"),
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    username = db.Column(db.String(80), nullable=False, index=True)

    password_hash = db.Column(db.String(255), nullable=False)

    # Metadata
    role = db.Column(db.String(20), default=ROLE_EMPLOYEE)  # "employee" / "companyAdmin" / "admin"
    email = db.Column(db.String(255), nullable=True, index=True)

    # Two-factor (authenticator app)
    twofa_secret = db.Column(db.String(64), nullable=True)
    twofa_enabled = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    company = db.relationship("Company", back_populates="users")

    # Flask-Login identifier -> use DB primary key
    def get_id(self):
        return str(self.id)

    # Password helpers
    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not password:
            return False
        return check_password_hash(self.password_hash, password)

    # Role helpers
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def enable_2fa(self, secret: str):
        self.twofa_secret = secret
        self.twofa_enabled = True

    def disable_2fa(self):
        self.twofa_secret = None
        self.twofa_enabled = False

    def to_dict(self):
        return {
            "userId": self.id,
            "companyId": self.company_id,
            "company": self.company.name if self.company else None,
            "username": self.username,
            "role": self.role,
            "email": self.email,
            "twofaEnabled": bool(self.twofa_enabled),
        }

    def __repr__(self):
        return f"<User {self.username}>"
