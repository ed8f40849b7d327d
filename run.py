import json
import os
import logging
from flask import Flask
from watchlist.repo import InMemoryRepo
from watchlist.images import build_default_resolver
from watchlist.service import WatchlistService
from watchlist.web import register_routes, register_error_handlers

DEFAULT_CFG = {
    "debug": True,
    "host": "127.0.0.1",
    "port": 5000,
    "logging_level": "INFO",
    "image_timeout": 5.0
}

def load_config(path="config.json"):
    if not os.path.exists(path):
        print("config.json not found, using defaults:", DEFAULT_CFG)
        return DEFAULT_CFG
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
    except (OSError, ValueError) as e:
        print("Failed to read config.json:", e, ", using defaults")
        return DEFAULT_CFG
    merged = DEFAULT_CFG.copy()
    merged.update(cfg)
    return merged

cfg = load_config()

def configure_logging(level_name: str):
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # quieter werkzeug when not debugging
    logging.getLogger("werkzeug").setLevel(logging.WARNING if not cfg.get("debug") else logging.INFO)

def create_app(repo=None, resolver=None):
    configure_logging(cfg.get("logging_level", "INFO"))
    logger = logging.getLogger(__name__)
    logger.info("Starting app with config: %s", cfg)

    app = Flask(__name__)
    app.secret_key = os.environ.get("SECRET_KEY", "dev-key")
    repo = repo if repo is not None else InMemoryRepo()
    resolver = resolver if resolver is not None else build_default_resolver(float(cfg.get("image_timeout", 5.0)))
    service = WatchlistService(repo, resolver)
    app.config["SERVICE"] = service

    register_routes(app, service)
    register_error_handlers(app)
    return app

if __name__ == "__main__":
    app = create_app()
    app.run(host=cfg.get("host", "127.0.0.1"), port=cfg.get("port", 5000), debug=cfg.get("debug", True))
