"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: models/image_blob.py – учёт файлов изображений в хранилище.

Назначение модуля:
- Описание ORM-модели ImageBlob: ключ изображения, MIME-тип и размер.
- Сами байты лежат на диске в IMAGE_STORAGE_FOLDER под именем ключа.
"""

from datetime import datetime
from extensions import db


class ImageBlob(db.Model):
    """Класс `ImageBlob` описывает сущность текущего модуля."""
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), unique=True, nullable=False, index=True)
    mime_type = db.Column(db.String(50), nullable=False)
    byte_size = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
