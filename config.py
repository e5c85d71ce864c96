"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: config.py – конфигурация приложения.

Назначение модуля:
- Определение базовых параметров приложения Flask (секретный ключ, строка подключения к БД).
- Настройка хранилища изображений (папка, размер кэша, лимит запроса).
- Параметры генерации историй для ленты воспоминаний (ключ OpenAI, модель).
"""

import os
import warnings


def _get_env_bool(name: str, default: bool = False) -> bool:
    """Преобразует переменную окружения в bool."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_int(name: str, default: int) -> int:
    """Преобразует переменную окружения в int."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str] | None = None) -> list[str]:
    """Преобразует переменную окружения вида 'a,b,c' в список."""
    value = os.environ.get(name)
    if value is None:
        return list(default or [])
    return [item.strip() for item in value.split(",") if item.strip()]


def _is_production() -> bool:
    """Определяет production-режим по FLASK_ENV."""
    return os.environ.get("FLASK_ENV", "").strip().lower() == "production"


class Config:
    """Базовая конфигурация приложения."""

    _PRODUCTION = _is_production()

    SECRET_KEY = os.environ.get("SESSION_SECRET") or os.environ.get("SECRET_KEY")
    if not SECRET_KEY:
        if _PRODUCTION:
            raise RuntimeError(
                "SESSION_SECRET environment variable is required in production. "
                "Set a strong random value before starting the app."
            )
        SECRET_KEY = "dev-insecure-secret-key"
        warnings.warn(
            "SESSION_SECRET is not set. Using insecure development fallback key.",
            RuntimeWarning,
            stacklevel=1,
        )

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:////app/instance/photo_gallery.db" if _PRODUCTION else "sqlite:///photo_gallery.db",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_SECURE = _get_env_bool("SESSION_COOKIE_SECURE", default=_PRODUCTION)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
    # Сессия живёт сутки
    PERMANENT_SESSION_LIFETIME = _get_env_int("SESSION_LIFETIME_SECONDS", 24 * 60 * 60)

    CORS_ENABLED = _get_env_bool("CORS_ENABLED", default=False)
    CORS_ORIGINS = _get_env_list(
        "CORS_ORIGINS",
        default=[
            "http://127.0.0.1:5000",
            "http://localhost:5000",
        ],
    )

    PORT = _get_env_int("PORT", 5000)

    # Изображения приходят base64 внутри JSON, поэтому лимит запроса с запасом
    MAX_CONTENT_LENGTH = _get_env_int("MAX_CONTENT_LENGTH", 50 * 1024 * 1024)
    IMAGE_STORAGE_FOLDER = os.environ.get("IMAGE_STORAGE_FOLDER", "storage/images")
    BLOB_CACHE_ENTRIES = _get_env_int("BLOB_CACHE_ENTRIES", 64)
    THUMBNAIL_SIZE = _get_env_int("THUMBNAIL_SIZE", 200)
    THUMBNAIL_MAX_CHARS = _get_env_int("THUMBNAIL_MAX_CHARS", 20_000)
    ALLOWED_IMAGE_FORMATS = {"png", "jpeg", "gif", "webp"}
    MAX_IMAGE_PIXELS = _get_env_int("MAX_IMAGE_PIXELS", 50_000_000)

    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "").strip()
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o").strip() or "gpt-4o"
    STORY_MAX_TOKENS = _get_env_int("STORY_MAX_TOKENS", 150)
    STORY_TIMEOUT_SECONDS = _get_env_int("STORY_TIMEOUT_SECONDS", 30)

    RATELIMIT_ENABLED = _get_env_bool("RATELIMIT_ENABLED", default=True)
