"""
Название: «Фотогалерея»
Дата и номер версии: 2026-10-17 v1.0
Язык: Python (Flask)
Краткое описание: веб-приложение для загрузки, просмотра и упорядочивания фотографий
"""

import os
from collections.abc import Mapping
from datetime import datetime

from flask import Flask, jsonify, request

from config import Config
from extensions import db, login_manager, cors
import models  # noqa: F401 - регистрирует модели для ensure_schema()
from routes.auth import register_routes as register_auth_routes
from routes.api import register_routes as register_api_routes
from utils.blob_cache import BlobCache
from utils.cleanup import purge_orphan_blobs
from utils.photo_store import ensure_schema
from utils.rate_limit import InMemoryRateLimiter


def create_app(overrides: Mapping | None = None) -> Flask:
    """Фабрика приложения, собирающая все модули воедино."""
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # Инициализация расширений
    db.init_app(app)
    login_manager.init_app(app)

    if app.config["CORS_ENABLED"]:
        cors.init_app(
            app,
            resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
            supports_credentials=True,
        )

    if app.config["RATELIMIT_ENABLED"]:
        app.extensions["rate_limiter"] = InMemoryRateLimiter()

    # Гарантируем наличие служебных директорий
    os.makedirs(app.instance_path, exist_ok=True)
    app.extensions["blob_cache"] = BlobCache(
        app.config["IMAGE_STORAGE_FOLDER"],
        max_entries=app.config["BLOB_CACHE_ENTRIES"],
    )

    # Регистрация роутов по модулям
    register_auth_routes(app)
    register_api_routes(app)

    with app.app_context():
        ensure_schema()

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        """Выполняет операцию `handle_unauthorized` в рамках сценария модуля."""
        return jsonify({"success": False, "error": "Authentication required"}), 401

    @app.errorhandler(404)
    def handle_not_found(error):
        """Выполняет операцию `handle_not_found` в рамках сценария модуля."""
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        """Выполняет операцию `handle_method_not_allowed` в рамках сценария модуля."""
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def handle_too_large(error):
        """Выполняет операцию `handle_too_large` в рамках сценария модуля."""
        return jsonify({"success": False, "error": "Request body is too large"}), 413

    @app.after_request
    def apply_security_headers(response):
        """Выполняет операцию `apply_security_headers` в рамках сценария модуля."""
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if request.path.startswith("/api/") and "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store"
        return response

    @app.get("/health")
    def health():
        """Выполняет операцию `health` в рамках сценария модуля."""
        return {"status": "OK", "timestamp": datetime.utcnow().isoformat() + "Z"}, 200

    return app


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        # Очистка изображений без фотографий при запуске приложения
        purge_orphan_blobs()
    app.logger.info(
        "OpenAI API key: %s",
        "set" if app.config["OPENAI_API_KEY"] else "not set",
    )
    is_production = os.environ.get("FLASK_ENV", "").lower() == "production"
    app.run(host="0.0.0.0", port=app.config["PORT"], debug=not is_production)
