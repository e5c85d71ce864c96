"""
Модуль: `utils/validators.py`.
Назначение: Нормализация email и проверка учётных данных при регистрации.
"""

import re


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: str | None) -> str:
    """Выполняет операцию `normalize_email` в рамках сценария модуля."""
    if not value:
        return ""
    email = value.strip().lower()
    if not EMAIL_RE.match(email):
        return ""
    return email


def validate_username(username: str) -> str | None:
    if not username:
        return "Username is required."
    if len(username) < 3:
        return "Username must be at least 3 characters long."
    if len(username) > 80:
        return "Username must not exceed 80 characters."
    if any(ch.isspace() for ch in username):
        return "Username must not contain spaces."
    return None


def validate_password(password: str, username: str | None = None) -> str | None:
    if not (8 <= len(password) <= 128):
        return "Password must be between 8 and 128 characters long."
    if any(ch.isspace() for ch in password):
        return "Password must not contain spaces."
    if username and username.lower() == password.lower():
        return "Password must not match the username."
    return None
