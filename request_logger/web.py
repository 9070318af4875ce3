"""Flask admin surface — view the request log, its statistics, and clear it."""

import logging
import sqlite3
from functools import wraps

from flask import Flask, jsonify, render_template, request

from request_logger.config import Config, load_config
from request_logger.errors import AuthError, LogNotFoundError, LogStoreError
from request_logger.middleware import install
from request_logger.parser import parse_all
from request_logger.queries import QueryTracker
from request_logger.recorder import RequestRecorder
from request_logger.security import CLEAR_LOGS_ACTION, authorize_clear, check_admin_token, create_nonce
from request_logger.stats import aggregate
from request_logger.store import LogStore

logger = logging.getLogger(__name__)


def _load_records(store: LogStore):
    """Parsed records, or None when the log file does not exist yet."""
    try:
        return list(parse_all(store))
    except LogNotFoundError:
        return None


def create_app(config: Config | None = None, instrument: bool = True) -> Flask:
    """Flask application factory.

    With instrument=True every request to the app, admin pages included, is
    itself recorded in the log it serves.
    """
    app = Flask(__name__)

    if config is None:
        config = load_config()

    store = LogStore(config.log_path, file_mode=config.file_mode)
    trace_store = None
    if config.query_log_enabled:
        trace_store = LogStore(config.query_log_path, file_mode=config.file_mode)
    tracker = QueryTracker(trace_store=trace_store)
    recorder = RequestRecorder(store)
    if instrument:
        install(app, recorder, tracker)

    # Store components on app for access in tests
    app.config["components"] = {
        "config": config,
        "store": store,
        "tracker": tracker,
        "recorder": recorder,
    }

    def admin_required(view):
        """Refuse the admin pages unless ADMIN_TOKEN is set and presented."""

        @wraps(view)
        def wrapper(*args, **kwargs):
            if not config.admin_token:
                logger.warning("Refused %s: no admin token configured", request.path)
                return jsonify(success=False, data="Admin access is disabled"), 403
            if not check_admin_token(config.admin_token, request.headers.get("Authorization")):
                resp = jsonify(success=False, data="Insufficient permissions")
                resp.status_code = 401
                resp.headers["WWW-Authenticate"] = 'Basic realm="request-logs"'
                return resp
            return view(*args, **kwargs)

        return wrapper

    # --- Routes ---

    @app.route("/health")
    def health():
        return jsonify(status="ok", log_exists=store.exists(), log_size=store.size())

    @app.route("/request-logs/")
    @admin_required
    def view_logs():
        records = _load_records(store)
        if records is None:
            return render_template("logs.html", found=False)
        stats = aggregate(records, window_seconds=config.window_seconds)
        return render_template(
            "logs.html",
            found=True,
            stats=stats,
            records=records,
            nonce=create_nonce(config.secret_key, CLEAR_LOGS_ACTION),
        )

    @app.route("/request-logs/api/stats")
    @admin_required
    def api_stats():
        records = _load_records(store)
        if records is None:
            return jsonify(found=False, record_count=0, stats=None)
        stats = aggregate(records, window_seconds=config.window_seconds)
        return jsonify(found=True, record_count=len(records), stats=stats.to_dict())

    @app.route("/request-logs/api/logs")
    @admin_required
    def api_logs():
        records = _load_records(store) or []
        limit = request.args.get("limit", type=int)
        if limit is not None and limit > 0:
            records = records[-limit:]
        return jsonify(records=[r.to_dict() for r in records], count=len(records))

    @app.route("/request-logs/api/nonce")
    @admin_required
    def api_nonce():
        return jsonify(nonce=create_nonce(config.secret_key, CLEAR_LOGS_ACTION))

    @app.route("/request-logs/clear", methods=["POST"])
    @admin_required
    def clear_logs():
        nonce = request.form.get("nonce") or request.headers.get("X-CSRF-Token")
        try:
            authorize_clear(
                config.secret_key,
                config.admin_token,
                nonce,
                request.headers.get("Authorization"),
            )
        except AuthError as e:
            logger.warning("Rejected clear-logs request from %s: %s", request.remote_addr, e)
            return jsonify(success=False, data=str(e)), 403

        try:
            cleared = store.clear()
        except LogStoreError:
            logger.exception("Failed to clear %s", store.path)
            return jsonify(success=False, data="Failed to clear logs"), 500

        if not cleared:
            return jsonify(success=False, data="Log file not found"), 404
        return jsonify(success=True, data="Logs cleared successfully")

    @app.route("/demo", methods=["GET", "POST"])
    def demo():
        """Run a few sqlite queries so the recorded query count is visible."""
        conn = sqlite3.connect(":memory:")
        conn.set_trace_callback(tracker.track)
        try:
            conn.execute("CREATE TABLE hits (uri TEXT, body_size INTEGER)")
            conn.execute(
                "INSERT INTO hits VALUES (?, ?)",
                (request.full_path, request.content_length or 0),
            )
            (total,) = conn.execute("SELECT COUNT(*) FROM hits").fetchone()
        finally:
            conn.close()
        return jsonify(method=request.method, rows=total, queries=tracker.count())

    return app
