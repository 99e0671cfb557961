# tempsys/auth.py
from flask import Blueprint, request, jsonify, session, current_app
from flask_login import (
    LoginManager, login_user,
    logout_user, login_required, current_user
)
import logging
import time

from sqlalchemy.exc import SQLAlchemyError

from tempsys import db, limiter
from tempsys.models.company import Company
from tempsys.models.user import User
from tempsys.models.login_log import LoginLog

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
login_manager = LoginManager()

PENDING_2FA_KEY = "pending_2fa"


# ------------------------------------------------------
# FLASK-LOGIN USER LOADER
# Flask-Login stores user.id (integer), not username.
# ------------------------------------------------------
@login_manager.user_loader
def load_user(user_id):
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"ok": False, "message": "Authentication required"}), 401


# ------------------------------------------------------
# Login event logger
# ------------------------------------------------------
def log_login_event(username: str, status: str, company_id=None):
    try:
        ip_raw = request.headers.get("X-Forwarded-For", request.remote_addr) or ""
        ip = ip_raw.split(",")[0].strip()
        ua = (request.headers.get("User-Agent") or "")[:255]
        entry = LoginLog(username=username, ip=ip, status=status, user_agent=ua, company_id=company_id)
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not write login log (%s, %s)", username, status)


# ------------------------------------------------------
# Pending login step (password ok, TOTP outstanding)
# ------------------------------------------------------
def begin_pending_login(user):
    session[PENDING_2FA_KEY] = {"user_id": user.id, "started_at": time.time()}


def pending_login_user():
    """Return (user, expired) for the login step stored in the session."""
    pending = session.get(PENDING_2FA_KEY)
    if not pending:
        return None, False
    ttl = current_app.config["TOTP_LOGIN_STEP_TTL"]
    if time.time() - pending.get("started_at", 0) > ttl:
        session.pop(PENDING_2FA_KEY, None)
        return None, True
    return db.session.get(User, pending.get("user_id")), False


def finish_login(user, status="success"):
    session.pop(PENDING_2FA_KEY, None)
    login_user(user)
    log_login_event(user.username, status, user.company_id)
    return jsonify({"ok": True, "next": None, "user": user.to_dict()})


# ------------------------------------------------------
# LOGIN
# ------------------------------------------------------
@auth_bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    payload = request.get_json(silent=True) or {}
    company_name = (payload.get("company") or "").strip()
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""

    if not company_name or not username or not password:
        return jsonify({"ok": False, "message": "company, username and password are required"}), 400

    company = Company.query.filter_by(name=company_name).first()
    user = None
    if company:
        user = User.query.filter_by(company_id=company.id, username=username).first()

    if not user:
        log_login_event(username, "failed_no_user", company.id if company else None)
        return jsonify({"ok": False, "message": "Invalid credentials"}), 401

    if not user.check_password(password):
        log_login_event(username, "failed_bad_password", company.id)
        return jsonify({"ok": False, "message": "Invalid credentials"}), 401

    # 2FA step if enabled
    if user.twofa_enabled and user.twofa_secret:
        begin_pending_login(user)
        log_login_event(username, "pending_2fa", company.id)
        return jsonify({"ok": True, "next": "totp"})

    return finish_login(user)


# ------------------------------------------------------
# LOGOUT
# ------------------------------------------------------
@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    log_login_event(current_user.username, "logout", current_user.company_id)
    logout_user()
    session.pop(PENDING_2FA_KEY, None)
    return jsonify({"ok": True, "message": "Logged out."})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({"ok": True, "user": current_user.to_dict()})
