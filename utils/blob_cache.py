"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: utils/blob_cache.py – хранилище полноразмерных изображений.

Назначение модуля:
- Запись байтов изображения на диск под сгенерированным ключом и учёт в таблице ImageBlob.
- Ограниченный кэш в памяти процесса поверх диска (LRU по числу записей).
- Удаление изображения при удалении фотографии, чтобы хранилище не разрасталось.

Экземпляр создаётся в фабрике приложения и лежит в `app.extensions["blob_cache"]`.
"""

import os
import re
from collections import OrderedDict
from threading import Lock

from extensions import db
from models.image_blob import ImageBlob

KEY_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class BlobCache:
    """Долговременное хранилище изображений с кэшем в памяти."""

    def __init__(self, folder: str, max_entries: int = 64):
        self.folder = folder
        self.max_entries = max(0, max_entries)
        self._memory: OrderedDict[str, tuple[str, bytes]] = OrderedDict()
        self._lock = Lock()
        os.makedirs(folder, exist_ok=True)

    def _path(self, key: str) -> str:
        # Ключ становится именем файла, поэтому никаких разделителей путей
        if not KEY_RE.match(key or ""):
            raise KeyError(key)
        return os.path.join(self.folder, key)

    def _remember(self, key: str, mime_type: str, data: bytes) -> None:
        if self.max_entries == 0:
            return
        with self._lock:
            self._memory[key] = (mime_type, data)
            self._memory.move_to_end(key)
            while len(self._memory) > self.max_entries:
                self._memory.popitem(last=False)

    def put(self, key: str, mime_type: str, data: bytes) -> None:
        path = self._path(key)
        with open(path, "wb") as fh:
            fh.write(data)

        record = ImageBlob.query.filter_by(key=key).first()
        if record is None:
            record = ImageBlob(key=key, mime_type=mime_type, byte_size=len(data))
            db.session.add(record)
        else:
            record.mime_type = mime_type
            record.byte_size = len(data)
        db.session.commit()

        self._remember(key, mime_type, data)

    def get(self, key: str) -> tuple[str, bytes] | None:
        with self._lock:
            cached = self._memory.get(key)
            if cached is not None:
                self._memory.move_to_end(key)
                return cached

        try:
            path = self._path(key)
        except KeyError:
            return None

        record = ImageBlob.query.filter_by(key=key).first()
        if record is None or not os.path.exists(path):
            return None

        with open(path, "rb") as fh:
            data = fh.read()

        self._remember(key, record.mime_type, data)
        return record.mime_type, data

    def evict(self, key: str) -> bool:
        """Удаляет изображение отовсюду. Возвращает True, если что-то было удалено."""
        removed = False
        with self._lock:
            if self._memory.pop(key, None) is not None:
                removed = True

        try:
            path = self._path(key)
        except KeyError:
            return removed

        if os.path.exists(path):
            os.remove(path)
            removed = True

        record = ImageBlob.query.filter_by(key=key).first()
        if record is not None:
            db.session.delete(record)
            db.session.commit()
            removed = True

        return removed

    def keys(self) -> list[str]:
        return [key for (key,) in db.session.query(ImageBlob.key).all()]

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    @property
    def memory_entries(self) -> int:
        with self._lock:
            return len(self._memory)
