"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: models/photo.py – модель фотографии.

Назначение модуля:
- Описание ORM-модели Photo: метаданные снимка и ключ изображения в хранилище.
- Удаление выполняется архивированием (флаг archived), запись физически остаётся.
"""

from datetime import datetime
from extensions import db

CATEGORIES = (
    "memories",
    "friends",
    "family",
    "travel",
    "food",
    "selfies",
    "nature",
    "pets",
    "celebration",
    "work",
    "hobby",
    "screenshots",
    "documents",
    "favorites",
    "shopping",
    "sports",
    "education",
    "fitness",
    "art",
    "music",
    "other",
)

KNOWN_TAGS = ("edited", "favorite", "shared", "processed")


class Photo(db.Model):
    """Класс `Photo` описывает сущность текущего модуля."""
    id = db.Column(db.Integer, primary_key=True)
    file_name = db.Column(db.String(255), nullable=False, default="Untitled Photo")
    original_name = db.Column(db.String(255), nullable=False, default="unknown")
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    # Одна из CATEGORIES или пользовательское значение
    category = db.Column(db.String(50), nullable=False, default="other")
    size = db.Column(db.Integer, nullable=False, default=0)
    mime_type = db.Column(db.String(50), nullable=False, default="image/jpeg")
    width = db.Column(db.Integer, nullable=False, default=0)
    height = db.Column(db.Integer, nullable=False, default=0)
    upload_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    image_key = db.Column(db.String(64), unique=True, nullable=False)
    thumbnail = db.Column(db.Text, nullable=False, default="")
    tags = db.Column(db.JSON, nullable=False, default=list)
    archived = db.Column(db.Boolean, nullable=False, default=False, index=True)
    archived_at = db.Column(db.DateTime, nullable=True)
