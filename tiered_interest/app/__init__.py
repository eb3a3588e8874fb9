"""Application factory and app-wide configuration."""

from typing import Optional

from flask import Flask
from flask_cors import CORS

from tiered_interest.app.api.routes import SESSION_EXTENSION, api_bp
from tiered_interest.config import Settings, get_settings
from tiered_interest.core.session import CalculatorSession
from tiered_interest.core.store import KeyValueStore, SqliteStore


def create_app(settings: Optional[Settings] = None, store: Optional[KeyValueStore] = None) -> Flask:
    """Build the Flask app instance with one calculator session backed by ``store``."""
    settings = settings or get_settings()
    app = Flask(__name__)

    CORS(
        app,
        resources={r"/api/*": {"origins": settings.cors_origin_list}},
        supports_credentials=True,
    )

    app.extensions[SESSION_EXTENSION] = CalculatorSession(
        store if store is not None else SqliteStore(settings.store_path),
        history_limit=settings.history_limit,
        default_rate=settings.default_rate,
        max_tiers=settings.max_tiers,
    )
    app.register_blueprint(api_bp, url_prefix="/api")
    return app
