"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: models/user.py – модель пользователя системы.

Назначение модуля:
- Описание ORM-модели User для работы с таблицей пользователей в базе данных.
- Хранение учётных записей (логин, email, хеш пароля, отображаемое имя) и связи с фотографиями.
"""

from datetime import datetime

from flask_login import UserMixin
from extensions import db


class User(UserMixin, db.Model):
    """Класс `User` описывает сущность текущего модуля."""
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(200), nullable=False)
    full_name = db.Column(db.String(120), nullable=False, default="")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)
    # Перекрывает UserMixin.is_active: Flask-Login не пускает неактивных
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    photos = db.relationship("Photo", backref="owner", lazy=True)
