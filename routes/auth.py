"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: routes/auth.py – маршруты аутентификации и управления сессиями.

Назначение модуля:
- Регистрация новых пользователей с проверкой логина, email и пароля.
- Вход и выход из системы с использованием Flask-Login.
- Выдача данных текущего пользователя и загрузка пользователя для сессии.
"""

from flask import current_app, jsonify, request, session
from flask_login import current_user, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import login_manager
from utils import photo_store
from utils.rate_limit import is_rate_limited
from utils.validators import normalize_email, validate_password, validate_username


@login_manager.user_loader
def load_user(user_id):
    return photo_store.get_user(user_id)


def _api_error(message: str, status: int = 400):
    return jsonify({"success": False, "error": message}), status


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text_field(data: dict, key: str):
    """Строковое поле тела запроса; None, если передано значение другого типа."""
    value = data.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else None


def register_routes(app):
    @app.post("/api/register")
    def register():
        try:
            if is_rate_limited("register", limit=10, window_seconds=15 * 60):
                return _api_error("Too many registration attempts. Try again in a few minutes.", 429)

            data = _json_body()
            fields = [_text_field(data, key) for key in ("username", "email", "password", "fullName")]
            if any(value is None for value in fields):
                return _api_error("Username, email, and password are required", 400)

            username, raw_email, password, full_name = fields
            username = username.strip()
            full_name = full_name.strip()

            if not username or not raw_email.strip() or not password:
                return _api_error("Username, email, and password are required", 400)

            username_error = validate_username(username)
            if username_error:
                return _api_error(username_error, 400)

            email = normalize_email(raw_email)
            if not email:
                return _api_error("Please enter a valid email address", 400)

            password_error = validate_password(password, username=username)
            if password_error:
                return _api_error(password_error, 400)

            if photo_store.username_or_email_taken(username, email):
                return _api_error("Username or email already exists", 400)

            hashed_password = generate_password_hash(password, method="scrypt")
            user = photo_store.create_user(username, email, hashed_password, full_name)

            session.permanent = True
            login_user(user)
            current_app.logger.info("Зарегистрирован пользователь %s", username)
            return jsonify(photo_store.user_to_record(user))

        except Exception:
            current_app.logger.exception("Ошибка регистрации пользователя")
            return _api_error("Failed to register user", 500)

    @app.post("/api/login")
    def login():
        try:
            if is_rate_limited("login_ip", limit=20, window_seconds=10 * 60):
                return _api_error("Too many login attempts. Try again later.", 429)

            data = _json_body()
            username = _text_field(data, "username")
            password = _text_field(data, "password")
            if username is None or password is None:
                return _api_error("Username and password are required", 400)

            username = username.strip()
            if not username or not password:
                return _api_error("Username and password are required", 400)

            if is_rate_limited(
                "login_user",
                limit=10,
                window_seconds=10 * 60,
                identity=username.lower(),
            ):
                return _api_error("Too many login attempts for this user. Try again later.", 429)

            user = photo_store.find_user_by_login(username)
            if user is None or not check_password_hash(user.password_hash, password):
                return _api_error("Invalid username or password", 401)

            session.permanent = True
            # login_user отказывает неактивным учётным записям
            if not login_user(user):
                return _api_error("Account is disabled", 401)

            photo_store.touch_last_login(user)
            return jsonify(photo_store.user_to_record(user))

        except Exception:
            current_app.logger.exception("Ошибка входа пользователя")
            return _api_error("Failed to login", 500)

    @app.post("/api/logout")
    def logout():
        logout_user()
        session.clear()
        return jsonify({"success": True})

    @app.get("/api/user")
    def current_user_info():
        if not current_user.is_authenticated:
            return _api_error("Not authenticated", 401)
        return jsonify(photo_store.user_to_record(current_user))
