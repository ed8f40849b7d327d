# watchlist/web.py
from functools import wraps
from flask import Blueprint, current_app, g, jsonify, request, session
from werkzeug.exceptions import HTTPException
from watchlist.service import WatchlistService, ValidationError, NotFoundError, ConflictError
from watchlist.models import PLATFORMS, Show
from watchlist.lifecycle import available_action
import logging

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__, url_prefix="/api")

class AuthError(Exception):
    """Raised when a request has no usable session."""
    pass

def register_routes(app, service: WatchlistService):
    """
    Register blueprint and ensure SERVICE is in app.config.
    Call this once during app creation (run.create_app does this).
    """
    if "SERVICE" not in app.config:
        app.config["SERVICE"] = service
    app.register_blueprint(bp)
    logger.debug("Registered blueprint 'api' and injected SERVICE")

def register_error_handlers(app):
    """Centralized handlers; every error leaves as JSON {"message": ...}."""
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        logger.warning("ValidationError: %s", e)
        return jsonify(message=str(e)), 400

    @app.errorhandler(AuthError)
    def handle_auth_error(e):
        logger.info("AuthError: %s", e)
        return jsonify(message=str(e)), 401

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        logger.info("NotFoundError: %s", e)
        return jsonify(message=str(e)), 404

    @app.errorhandler(ConflictError)
    def handle_conflict(e):
        logger.info("ConflictError: %s", e)
        return jsonify(message=str(e)), 409

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify(message=e.description), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(message="Internal server error"), 500

# helper to get service instance
def current_service() -> WatchlistService:
    return current_app.config["SERVICE"]

def login_required(fn):
    """Session gate: only lets the request through when the session holds a user id."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user_id = session.get("userId")
        if not user_id:
            raise AuthError("Not authenticated")
        g.user_id = user_id
        return fn(*args, **kwargs)
    return wrapper

def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data

def show_json(s: Show) -> dict:
    d = s.to_dict()
    d["nextAction"] = available_action(s.status)
    return d

# -----------------------
# Auth
# -----------------------
@bp.route("/auth/check-user", methods=["POST"])
def check_user():
    user = current_service().check_user(json_body().get("username"))
    return jsonify(exists=user is not None, user=user.to_dict() if user else None)

@bp.route("/auth/create-user", methods=["POST"])
def create_user():
    user = current_service().create_user(json_body().get("username"))
    session["userId"] = user.id
    return jsonify(user.to_dict())

@bp.route("/auth/login", methods=["POST"])
def login():
    user = current_service().login(json_body().get("username"))
    session["userId"] = user.id
    return jsonify(user.to_dict())

@bp.route("/auth/logout", methods=["POST"])
def logout():
    user_id = session.pop("userId", None)
    session.clear()
    logger.info("User id=%s logged out", user_id)
    return jsonify(message="Logged out successfully")

@bp.route("/auth/user")
@login_required
def current_user():
    try:
        user = current_service().get_user(g.user_id)
    except NotFoundError:
        # stale session pointing at a user the store no longer has
        session.clear()
        raise AuthError("User not found")
    return jsonify(user.to_dict())

# -----------------------
# Shows
# -----------------------
@bp.route("/shows")
@login_required
def list_shows():
    shows = current_service().list_shows(
        g.user_id,
        status=request.args.get("status") or None,
        completed_within=request.args.get("completed_within") or None,
    )
    return jsonify([show_json(s) for s in shows])

@bp.route("/shows", methods=["POST"])
@login_required
def add_show():
    data = json_body()
    show = current_service().add_show(g.user_id, data.get("title"), data.get("platform"), data.get("status"))
    return jsonify(show_json(show))

@bp.route("/shows/<int:show_id>", methods=["PATCH"])
@login_required
def update_show(show_id: int):
    show = current_service().update_show_status(show_id, g.user_id, json_body().get("status"))
    return jsonify(show_json(show))

@bp.route("/shows/<int:show_id>/actions/<action>", methods=["POST"])
@login_required
def show_action(show_id: int, action: str):
    show = current_service().apply_action(show_id, g.user_id, action)
    return jsonify(show_json(show))

@bp.route("/shows/<int:show_id>", methods=["DELETE"])
@login_required
def delete_show(show_id: int):
    current_service().delete_show(show_id, g.user_id)
    return jsonify(message="Show deleted successfully")

@bp.route("/platforms")
def platforms():
    return jsonify([{"id": k, "name": v} for k, v in PLATFORMS.items()])
