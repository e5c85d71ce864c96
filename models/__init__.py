"""
Модуль: `models/__init__.py`.
Назначение: Импорт моделей для корректной регистрации в SQLAlchemy metadata.
"""

from .user import User
from .photo import Photo, CATEGORIES, KNOWN_TAGS
from .image_blob import ImageBlob

__all__ = ["User", "Photo", "ImageBlob", "CATEGORIES", "KNOWN_TAGS"]
