from datetime import datetime, timezone
from flask import Flask, jsonify
from .config import Config
from .db import init_db, SessionLocal
from .auth import bp as auth_bp
from .admin import bp as admin_bp, ensure_admin
from .messages import bp as msg_bp
from .tasks import bp as task_bp

__version__ = "0.1.0"

def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    init_db(app.config["SQLALCHEMY_DATABASE_URI"])
    db = SessionLocal()
    try:
        ensure_admin(db, app.config["ADMIN_PASSWORD"])
    finally:
        db.close()

    prefix = app.config["API_PREFIX"]
    for bp in (auth_bp, admin_bp, msg_bp, task_bp):
        app.register_blueprint(bp, url_prefix=prefix)

    @app.teardown_appcontext
    def remove_session(exc=None):
        SessionLocal.remove()

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.error("Internal server error: %s", e)
        return jsonify({"error": "internal server error"}), 500

    @app.route("/")
    def index():
        return jsonify({"service": "GeminiTalk", "status": "running", "version": __version__})

    @app.route(f"{prefix}/health")
    def health():
        return jsonify({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})

    return app
