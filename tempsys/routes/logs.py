from flask import Blueprint, jsonify, request, send_file
import csv, io, json
from datetime import datetime
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from tempsys import db
from tempsys.models.login_log import LoginLog
from tempsys.models.user import ROLE_ADMIN, ROLE_COMPANY_ADMIN
from tempsys.security import role_required

bp_logs = Blueprint("logs", __name__)

CSV_COLUMNS = ["timestamp", "company_id", "username", "ip", "status", "user_agent"]


def _fetch_login_logs(limit=None):
    """Return login log rows visible to the current user, newest first."""
    query = LoginLog.query
    if not current_user.is_admin():
        query = query.filter(LoginLog.company_id == current_user.company_id)
    query = query.order_by(LoginLog.timestamp.desc(), LoginLog.id.desc())
    if limit:
        query = query.limit(limit)
    try:
        return query.all(), None
    except SQLAlchemyError as exc:
        db.session.rollback()
        return [], str(exc)


@bp_logs.route("/api/login-logs")
@role_required(ROLE_ADMIN, ROLE_COMPANY_ADMIN)
def api_login_logs():
    limit = request.args.get("limit", default=100, type=int)
    rows, err = _fetch_login_logs(limit=max(1, min(limit, 1000)))
    if err:
        return jsonify({"ok": False, "message": err, "logs": []}), 500
    return jsonify({"ok": True, "logs": [r.to_dict() for r in rows]})


@bp_logs.route("/api/login-logs/download/<fmt>")
@role_required(ROLE_ADMIN, ROLE_COMPANY_ADMIN)
def download_login_logs(fmt):
    if fmt not in ("csv", "json"):
        return jsonify({"ok": False, "message": "Invalid format"}), 400

    rows, err = _fetch_login_logs()
    if err:
        return jsonify({"ok": False, "message": err}), 500

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    if fmt == "csv":
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(CSV_COLUMNS)
        for r in rows:
            item = r.to_dict()
            writer.writerow([item[c] for c in CSV_COLUMNS])
        return send_file(
            io.BytesIO(output.getvalue().encode("utf-8")),
            mimetype="text/csv",
            as_attachment=True,
            download_name=f"login_logs_{stamp}.csv"
        )

    output = json.dumps([r.to_dict() for r in rows], indent=2)
    return send_file(
        io.BytesIO(output.encode("utf-8")),
        mimetype="application/json",
        as_attachment=True,
        download_name=f"login_logs_{stamp}.json"
    )
