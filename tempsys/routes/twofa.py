# tempsys/routes/twofa.py

from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user

from tempsys import db, limiter
from tempsys.auth import finish_login, log_login_event, pending_login_user
from tempsys.totp import generate_secret, provisioning_uri, verify

import base64
import io
import logging
import re

logger = logging.getLogger(__name__)

twofa_bp = Blueprint("twofa", __name__, url_prefix="/api/auth/2fa")


def _enrollments():
    return current_app.extensions["totp_enrollment"]


def _submitted_code():
    payload = request.get_json(silent=True) or {}
    return re.sub(r"[^0-9]", "", str(payload.get("code") or ""))


def _check(code, secret):
    return verify(code, secret, current_app.config["TOTP_SKEW_WINDOWS"])


def qr_data_url(uri):
    """PNG QR code for ``uri`` as a data URL, or None if it cannot be rendered."""
    try:
        import qrcode
        img = qrcode.make(uri)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
    except Exception:
        logger.warning("QR rendering failed, returning otpauth URL only", exc_info=True)
        return None
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


# -------------------------------
# 2FA: STATUS
# -------------------------------
@twofa_bp.route("/status")
@login_required
def status():
    return jsonify({"ok": True, "enabled": bool(current_user.twofa_enabled)})


# -------------------------------
# 2FA: START SETUP
# -------------------------------
@twofa_bp.route("/setup/start", methods=["POST"])
@login_required
def setup_start():
    if current_user.twofa_enabled:
        return jsonify({"ok": False, "message": "2FA already enabled"}), 409

    secret = generate_secret(20)
    otpauth_url = provisioning_uri(secret, current_user.username, current_app.config["TOTP_ISSUER"])
    _enrollments().start(current_user.id, secret, otpauth_url)
    logger.info("2FA setup started for user %s", current_user.id)

    return jsonify({
        "ok": True,
        "secret": secret,
        "otpauth_url": otpauth_url,
        "qr_data_url": qr_data_url(otpauth_url),
    })


# -------------------------------
# 2FA: CONFIRM SETUP
# -------------------------------
@twofa_bp.route("/setup/verify", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
def setup_verify():
    code = _submitted_code()
    if not code:
        return jsonify({"ok": False, "message": "code required"}), 400

    pending = _enrollments().get(current_user.id)
    if not pending:
        return jsonify({"ok": False, "message": "No 2FA setup in progress. Start again."}), 400

    if not _check(code, pending.secret):
        return jsonify({"ok": False, "message": "Invalid or expired 2FA code"}), 401

    current_user.enable_2fa(pending.secret)
    db.session.commit()
    _enrollments().discard(current_user.id)
    log_login_event(current_user.username, "2fa_enabled", current_user.company_id)
    return jsonify({"ok": True, "message": "Two-factor authentication enabled."})


# -------------------------------
# 2FA: DISABLE
# -------------------------------
@twofa_bp.route("/disable", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
def disable():
    if not current_user.twofa_enabled or not current_user.twofa_secret:
        return jsonify({"ok": False, "message": "2FA not active"}), 400

    code = _submitted_code()
    if not code or not _check(code, current_user.twofa_secret):
        return jsonify({"ok": False, "message": "Invalid 2FA code"}), 401

    current_user.disable_2fa()
    db.session.commit()
    log_login_event(current_user.username, "2fa_disabled", current_user.company_id)
    return jsonify({"ok": True, "message": "Two-factor authentication disabled."})


# -------------------------------
# LOGIN STEP: TOTP
# -------------------------------
@twofa_bp.route("/verify", methods=["POST"])
@limiter.limit("10 per minute")
def login_verify():
    user, expired = pending_login_user()
    if expired:
        return jsonify({"ok": False, "message": "Login step expired. Sign in again."}), 401
    if not user:
        return jsonify({"ok": False, "message": "No login in progress"}), 400

    code = _submitted_code()
    if not code:
        return jsonify({"ok": False, "message": "code required"}), 400

    if not user.twofa_enabled or not user.twofa_secret:
        return jsonify({"ok": False, "message": "2FA not active"}), 400

    if not _check(code, user.twofa_secret):
        log_login_event(user.username, "failed_2fa", user.company_id)
        return jsonify({"ok": False, "message": "Invalid 2FA code"}), 401

    return finish_login(user)
