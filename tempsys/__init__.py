# tempsys/__init__.py

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from flask_session import Session
from cachelib.file import FileSystemCache
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from dotenv import load_dotenv
import logging
import os

from tempsys.enrollment import EnrollmentStore

# ======================================================
# Load environment first
# ======================================================
load_dotenv()

db = SQLAlchemy()
csrf = CSRFProtect()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per hour"],
    storage_uri="memory://"
)

logger = logging.getLogger(__name__)


def _env_flag(name, default="true"):
    return os.getenv(name, default).lower() not in ("0", "false", "no", "off")


def create_app(test_config=None):
    app = Flask(__name__)

    # ==================================================
    # Security / Keys
    # ==================================================
    app.secret_key = os.getenv("SECRET_KEY", "REPLACE_WITH_A_SECURE_RANDOM_KEY")

    # ==================================================
    # Database
    # ==================================================
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL", "sqlite:///tempsys.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
        "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
        "pool_pre_ping": True,
        "pool_recycle": 1800,
    }

    # ==================================================
    # Session Persistence
    # ==================================================
    app.config["SESSION_TYPE"] = "cachelib"
    app.config["SESSION_PERMANENT"] = False
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_SECURE"] = _env_flag("SESSION_COOKIE_SECURE", "false")

    # ==================================================
    # Two-factor authentication
    # ==================================================
    app.config["TOTP_ISSUER"] = os.getenv("TOTP_ISSUER", "TempSys")
    app.config["TOTP_SKEW_WINDOWS"] = int(os.getenv("TOTP_SKEW_WINDOWS", "1"))
    app.config["TOTP_ENROLLMENT_TTL"] = int(os.getenv("TOTP_ENROLLMENT_TTL", "600"))
    app.config["TOTP_LOGIN_STEP_TTL"] = int(os.getenv("TOTP_LOGIN_STEP_TTL", "300"))

    # ==================================================
    # CSRF + Rate Limiting
    # ==================================================
    app.config["WTF_CSRF_ENABLED"] = True
    app.config["WTF_CSRF_CHECK_DEFAULT"] = False
    app.config["RATELIMIT_ENABLED"] = _env_flag("RATELIMIT_ENABLED")

    if test_config:
        app.config.update(test_config)
    if "SESSION_CACHELIB" not in app.config:
        app.config["SESSION_CACHELIB"] = FileSystemCache(
            cache_dir=os.getenv("SESSION_FILE_DIR", os.path.join(os.getcwd(), "flask_session")),
            threshold=500,
        )

    Session(app)
    csrf.init_app(app)
    limiter.init_app(app)
    db.init_app(app)

    app.extensions["totp_enrollment"] = EnrollmentStore(ttl=app.config["TOTP_ENROLLMENT_TTL"])

    @app.before_request
    def purge_stale_enrollments():
        app.extensions["totp_enrollment"].purge_expired()

    # ==================================================
    # Blueprints
    # ==================================================
    from tempsys.auth import auth_bp, login_manager
    from tempsys.routes.twofa import twofa_bp
    from tempsys.routes.logs import bp_logs

    login_manager.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(twofa_bp)
    app.register_blueprint(bp_logs)

    # ==================================================
    # Database Initialization (tables)
    # ==================================================
    with app.app_context():
        from tempsys.models import company, login_log, user  # noqa: F401
        db.create_all()

    # ==================================================
    # Security Headers
    # ==================================================
    @app.after_request
    def apply_security_headers(response):
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response

    # ==================================================
    # JSON errors (abort(403), 404, rate limits, ...)
    # ==================================================
    @app.errorhandler(HTTPException)
    def json_http_error(exc):
        return jsonify({"ok": False, "message": exc.description}), exc.code

    # ==================================================
    # Basic Routes
    # ==================================================
    @app.route("/status")
    def status():
        return {"ok": True, "service": "tempsys"}

    logger.info("TempSys app created (db=%s)", app.config["SQLALCHEMY_DATABASE_URI"].split("://")[0])
    return app
