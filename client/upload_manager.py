"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: client/upload_manager.py – очередь загрузки фотографий.

Назначение модуля:
- Проверка файлов (тип, размер), построение превью и сжатой копии для каждого файла.
- Загрузка с ограничением числа одновременных запросов (по умолчанию 3), FIFO-порядок.
- Уведомление подписчиков о ходе загрузки через сигналы blinker.
- Отмена отдельной загрузки или всей пачки без влияния на уже завершённые.
"""

import io
import logging
import os
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from blinker import NamedSignal
from PIL import Image, ImageOps, UnidentifiedImageError

from client.api_client import GalleryAPIError, to_data_url

logger = logging.getLogger(__name__)

MAX_CONCURRENT_UPLOADS = 3
MAX_FILE_SIZE = 10 * 1024 * 1024
PREVIEW_SIZE = 300
COMPRESS_MAX_DIMENSION = 1920
COMPRESS_QUALITY = 80

EXTENSION_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
PIL_FORMAT_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}

CANCELLED_MESSAGE = "Upload cancelled"


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadCancelled(Exception):
    """Загрузка прервана пользователем."""


@dataclass
class UploadItem:
    """Файл в очереди загрузки; живёт только в пределах одной пачки."""

    name: str
    data: bytes
    mime_type: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: UploadStatus = UploadStatus.PENDING
    progress: int = 0
    error: str | None = None
    preview: bytes | None = None
    compressed: bytes | None = None
    compressed_type: str | None = None
    width: int = 0
    height: int = 0
    photo_id: int | None = None
    abort: threading.Event = field(default_factory=threading.Event, repr=False, compare=False)

    @property
    def size(self) -> int:
        return len(self.data)

    def upload_bytes(self) -> tuple[bytes, str]:
        """Сжатая копия, если она есть, иначе исходный файл."""
        if self.compressed is not None:
            return self.compressed, self.compressed_type or self.mime_type
        return self.data, self.mime_type


@dataclass(frozen=True)
class UploadSummary:
    total: int
    completed: int
    failed: int


def validate_file(name: str, data: bytes, max_size: int = MAX_FILE_SIZE) -> tuple[str | None, list[str]]:
    """Возвращает (mime_type, errors). При пустом списке ошибок файл годен."""
    errors = []
    extension = os.path.splitext(name)[1].lower()
    if extension not in EXTENSION_TYPES:
        errors.append(f"{name}: unsupported file type")

    if not data:
        errors.append(f"{name}: file is empty")
    elif len(data) > max_size:
        errors.append(f"{name}: file is larger than {max_size // (1024 * 1024)} MB")

    mime_type = None
    if data and not errors:
        try:
            with Image.open(io.BytesIO(data)) as image:
                mime_type = PIL_FORMAT_TYPES.get(image.format or "")
        except (UnidentifiedImageError, OSError):
            mime_type = None
        if mime_type is None:
            errors.append(f"{name}: not a valid image")

    return mime_type, errors


def make_preview(data: bytes, size: int = PREVIEW_SIZE) -> tuple[bytes, int, int]:
    """JPEG-превью и исходные размеры изображения."""
    with Image.open(io.BytesIO(data)) as image:
        width, height = image.size
        preview = ImageOps.exif_transpose(image)
        preview.thumbnail((size, size))
        buffer = io.BytesIO()
        preview.convert("RGB").save(buffer, format="JPEG", quality=75)
    return buffer.getvalue(), width, height


def compress_image(
    data: bytes,
    mime_type: str,
    max_dimension: int = COMPRESS_MAX_DIMENSION,
    quality: int = COMPRESS_QUALITY,
) -> tuple[bytes, str] | None:
    """Уменьшает изображение для загрузки. При None отправляется оригинал."""
    # Анимацию GIF не трогаем
    if mime_type == "image/gif":
        return None

    with Image.open(io.BytesIO(data)) as image:
        image = ImageOps.exif_transpose(image)
        image.thumbnail((max_dimension, max_dimension))
        has_alpha = image.mode in ("RGBA", "LA") or (
            image.mode == "P" and "transparency" in image.info
        )
        buffer = io.BytesIO()
        if has_alpha:
            image.save(buffer, format="PNG", optimize=True)
            out_type = "image/png"
        else:
            image.convert("RGB").save(buffer, format="JPEG", quality=quality, optimize=True)
            out_type = "image/jpeg"

    compressed = buffer.getvalue()
    if len(compressed) >= len(data):
        return None
    return compressed, out_type


class UploadManager:
    """Очередь загрузки с ограничением одновременных запросов.

    uploader(item, report_progress) выполняет саму загрузку и возвращает id
    созданной фотографии. report_progress(percent) бросает UploadCancelled,
    если загрузку отменили.
    Если отмена пришла во время сетевого вызова, файл всё равно считается
    неудавшимся с ошибкой "Upload cancelled".

    Сигналы (отправитель: менеджер):
        started, preview_ready(item), progress(item), item_completed(item),
        all_complete(summary), cancelled(count), rejected(name, errors)
    """

    def __init__(self, uploader, max_concurrent: int = MAX_CONCURRENT_UPLOADS, max_file_size: int = MAX_FILE_SIZE):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.uploader = uploader
        self.max_concurrent = max_concurrent
        self.max_file_size = max_file_size

        self.queue: deque[UploadItem] = deque()
        self.items: list[UploadItem] = []
        self.active_uploads = 0
        self.total_files = 0
        self.completed_files = 0
        self.failed_files = 0
        self._batch_done = False
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()

        self.started = NamedSignal("upload-started")
        self.preview_ready = NamedSignal("upload-preview-ready")
        self.progress = NamedSignal("upload-progress")
        self.item_completed = NamedSignal("upload-item-completed")
        self.all_complete = NamedSignal("upload-all-complete")
        self.cancelled = NamedSignal("upload-cancelled")
        self.rejected = NamedSignal("upload-rejected")

    def _emit(self, signal: NamedSignal, **kwargs) -> None:
        # Ошибка подписчика не должна ломать учёт очереди
        try:
            signal.send(self, **kwargs)
        except Exception:
            logger.exception("Ошибка обработчика сигнала %s", signal.name)

    @staticmethod
    def _read_file(file) -> tuple[str, bytes]:
        if isinstance(file, tuple):
            name, data = file
            return name, bytes(data)
        path = os.fspath(file)
        with open(path, "rb") as fh:
            return os.path.basename(path), fh.read()

    def _prepare(self, item: UploadItem) -> None:
        try:
            item.preview, item.width, item.height = make_preview(item.data)
            compressed = compress_image(item.data, item.mime_type)
            if compressed is not None:
                item.compressed, item.compressed_type = compressed
        except (UnidentifiedImageError, OSError, ValueError):
            logger.exception("Не удалось построить превью для %s", item.name)
            item.error = "Failed to generate preview"

    def add_files(self, files) -> list[UploadItem]:
        """Добавляет файлы (пути или пары (имя, байты)) в очередь; возвращает принятые."""
        with self._lock:
            if self._batch_done:
                self._reset_locked()

        accepted = []
        for file in files:
            try:
                name, data = self._read_file(file)
            except OSError as exc:
                name = os.path.basename(os.fspath(file))
                errors = [f"{name}: could not read file ({exc.strerror or exc})"]
                logger.warning("Файл %s не прочитан: %s", name, exc)
                self._emit(self.rejected, name=name, errors=errors)
                continue

            mime_type, errors = validate_file(name, data, self.max_file_size)
            if errors:
                logger.warning("Файл %s отклонён: %s", name, "; ".join(errors))
                self._emit(self.rejected, name=name, errors=errors)
                continue

            item = UploadItem(name=name, data=data, mime_type=mime_type)
            self._prepare(item)
            accepted.append(item)
            self._emit(self.preview_ready, item=item)

        with self._lock:
            for item in accepted:
                self.queue.append(item)
                self.items.append(item)
            self.total_files += len(accepted)

        return accepted

    def start_upload(self) -> bool:
        with self._lock:
            has_work = bool(self.queue)
            if has_work:
                self._idle.clear()
        if not has_work:
            logger.warning("Нет файлов для загрузки")
            return False

        self._emit(self.started)
        self._process_queue()
        return True

    def _process_queue(self) -> None:
        to_start = []
        with self._lock:
            while self.queue and self.active_uploads < self.max_concurrent:
                item = self.queue.popleft()
                self.active_uploads += 1
                item.status = UploadStatus.UPLOADING
                to_start.append(item)

        for item in to_start:
            worker = threading.Thread(target=self._upload_file, args=(item,), daemon=True)
            worker.start()

    def _upload_file(self, item: UploadItem) -> None:
        def report_progress(percent: int) -> None:
            if item.abort.is_set():
                raise UploadCancelled()
            item.progress = max(0, min(100, int(percent)))
            self._emit(self.progress, item=item)

        success = False
        try:
            report_progress(0)
            photo_id = self.uploader(item, report_progress)
            # Отмена во время сетевого вызова: результат не засчитывается
            if item.abort.is_set():
                raise UploadCancelled()
            item.photo_id = photo_id
            success = True
        except UploadCancelled:
            item.error = CANCELLED_MESSAGE
        except Exception as exc:
            logger.warning("Загрузка %s не удалась: %s", item.name, exc)
            item.error = str(exc) or "Upload failed"

        self._handle_upload_complete(item, success)

    def _handle_upload_complete(self, item: UploadItem, success: bool) -> None:
        with self._lock:
            self.active_uploads -= 1
            if success:
                item.status = UploadStatus.COMPLETED
                item.progress = 100
                item.error = None
                self.completed_files += 1
            else:
                item.status = UploadStatus.FAILED
                self.failed_files += 1
            summary = self._summary_if_done_locked()

        self._emit(self.item_completed, item=item)
        self._process_queue()
        self._finish_batch(summary)

    def _summary_if_done_locked(self) -> UploadSummary | None:
        if self.queue or self.active_uploads:
            return None
        if self.completed_files + self.failed_files != self.total_files:
            return None
        self._batch_done = True
        return UploadSummary(self.total_files, self.completed_files, self.failed_files)

    def _finish_batch(self, summary: UploadSummary | None) -> None:
        if summary is None:
            return
        self._emit(self.all_complete, summary=summary)
        self._idle.set()

    def _fail_queued_locked(self, item: UploadItem) -> None:
        item.status = UploadStatus.FAILED
        item.error = CANCELLED_MESSAGE
        self.failed_files += 1

    def cancel_upload(self, item_id: str) -> bool:
        """Отменяет одну загрузку: из очереди удаляет, активной выставляет abort."""
        removed = None
        with self._lock:
            for item in self.queue:
                if item.id == item_id:
                    removed = item
                    break
            if removed is not None:
                self.queue.remove(removed)
                self._fail_queued_locked(removed)
                summary = self._summary_if_done_locked()
            else:
                summary = None
                for item in self.items:
                    if item.id == item_id and item.status == UploadStatus.UPLOADING:
                        item.abort.set()
                        return True
                return False

        self._emit(self.item_completed, item=removed)
        self._finish_batch(summary)
        return True

    def cancel_all(self) -> int:
        """Отменяет все незавершённые загрузки; возвращает их количество."""
        with self._lock:
            in_flight = [item for item in self.items if item.status == UploadStatus.UPLOADING]
            for item in in_flight:
                item.abort.set()
            drained = list(self.queue)
            self.queue.clear()
            for item in drained:
                self._fail_queued_locked(item)
            summary = self._summary_if_done_locked() if drained else None

        self._emit(self.cancelled, count=len(drained) + len(in_flight))
        for item in drained:
            self._emit(self.item_completed, item=item)
        self._finish_batch(summary)
        return len(drained) + len(in_flight)

    def retry_failed(self) -> int:
        """Возвращает неудавшиеся файлы в очередь и запускает загрузку."""
        with self._lock:
            failed = [item for item in self.items if item.status == UploadStatus.FAILED]
            for item in failed:
                item.status = UploadStatus.PENDING
                item.progress = 0
                item.error = None
                item.abort.clear()
                self.queue.append(item)
            self.failed_files -= len(failed)
            if failed:
                self._batch_done = False
                self._idle.clear()

        if failed:
            self._process_queue()
        return len(failed)

    def stats(self) -> dict:
        with self._lock:
            finished = self.completed_files + self.failed_files
            return {
                "total": self.total_files,
                "completed": self.completed_files,
                "failed": self.failed_files,
                "remaining": self.total_files - finished,
                "active": self.active_uploads,
                "progress": (finished / self.total_files) * 100 if self.total_files else 0,
            }

    def wait(self, timeout: float | None = None) -> bool:
        """Ждёт завершения текущей пачки. False, если истёк таймаут."""
        return self._idle.wait(timeout)

    def _reset_locked(self) -> None:
        self.queue.clear()
        self.items = []
        self.active_uploads = 0
        self.total_files = 0
        self.completed_files = 0
        self.failed_files = 0
        self._batch_done = False


def build_photo_uploader(client, category: str = "other", custom_category: str = ""):
    """Загрузчик для UploadManager, отправляющий файл через GalleryClient.add_photo."""
    final_category = (custom_category or "").strip() or category or "other"

    def upload(item: UploadItem, report_progress) -> int:
        report_progress(10)
        data, mime_type = item.upload_bytes()
        data_url = to_data_url(mime_type, data)

        report_progress(50)
        file_name = f"{int(time.time() * 1000)}_{item.name}"

        report_progress(70)
        payload = {
            "fileName": file_name,
            "originalName": item.name,
            "category": final_category,
            "size": item.size,
            "type": mime_type,
            "width": item.width,
            "height": item.height,
            "uploadDate": datetime.now(timezone.utc).isoformat(),
            "imageData": data_url,
            "tags": [],
        }

        report_progress(90)
        photo_id = client.add_photo(payload)
        if item.abort.is_set():
            # Запрос уже выполнен: созданную запись удаляем
            try:
                client.delete_photo(photo_id)
            except GalleryAPIError as exc:
                logger.warning("Не удалось удалить отменённую фотографию %s: %s", photo_id, exc)
            raise UploadCancelled()
        return photo_id

    return upload
