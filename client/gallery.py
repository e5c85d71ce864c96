"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: client/gallery.py – модель представления галереи.

Назначение модуля:
- Хранение списка фотографий пользователя и построение видимой выборки
  (поиск, категория, период, сортировка) без изменения исходного списка.
- Выделение фотографий, не зависящее от фильтров.
- Групповое удаление и экспорт с отчётом о частичном успехе.
"""

import logging
import os
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from client.api_client import GalleryAPIError
from client.photo import Photo, month_ago, to_local

logger = logging.getLogger(__name__)

SORT_KEYS = ("date-desc", "date-asc", "name-asc", "name-desc", "size-desc", "size-asc")
DATE_FILTERS = ("all", "today", "week", "month", "year")


@dataclass
class BulkResult:
    """Итог групповой операции: что получилось и что нет (id -> сообщение)."""

    succeeded: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)


def date_filter_start(kind: str, now: datetime) -> datetime | None:
    if kind == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if kind == "week":
        return now - timedelta(days=7)
    if kind == "month":
        return month_ago(now)
    if kind == "year":
        try:
            return now.replace(year=now.year - 1)
        except ValueError:
            # 29 февраля
            return now.replace(year=now.year - 1, day=28)
    return None


class PhotoGallery:
    """Галерея текущего пользователя.

    `photos` это исходный список, `visible_photos()` всегда строится из него заново.
    """

    def __init__(self, client=None):
        self.client = client
        self.photos: list[Photo] = []
        self.selected: set[int] = set()
        self.search_query = ""
        self.category = "all"
        self.date_filter = "all"
        self.date_range: tuple[datetime | None, datetime | None] = (None, None)
        self.sort = "date-desc"

    # --- данные -----------------------------------------------------------

    def load(self) -> list[Photo]:
        self.photos = self.client.list_photos()
        known = {photo.id for photo in self.photos}
        self.selected &= known
        return self.photos

    def get_photo(self, photo_id: int) -> Photo | None:
        for photo in self.photos:
            if photo.id == photo_id:
                return photo
        return None

    def add_photo(self, photo: Photo) -> None:
        self.photos.insert(0, photo)

    def rename_photo(self, photo_id: int, new_name: str) -> Photo:
        name = (new_name or "").strip()
        if not name:
            raise ValueError("Please enter a valid name")
        photo = self.get_photo(photo_id)
        if photo is None:
            raise KeyError(photo_id)

        self.client.update_photo(photo_id, file_name=name)
        photo.file_name = name
        photo.original_name = name
        return photo

    # --- фильтры ----------------------------------------------------------

    def set_search(self, query: str) -> None:
        self.search_query = (query or "").strip()

    def set_category(self, category: str | None) -> None:
        self.category = category or "all"

    def set_date_filter(self, kind: str) -> None:
        if kind not in DATE_FILTERS:
            raise ValueError(f"Unknown date filter: {kind}")
        self.date_filter = kind

    def set_date_range(self, start: datetime | None = None, end: datetime | None = None) -> None:
        if start is not None and end is not None and to_local(start) > to_local(end):
            raise ValueError("Date range start must not be after its end")
        self.date_range = (start, end)

    def set_sort(self, sort: str) -> None:
        if sort not in SORT_KEYS:
            raise ValueError(f"Unknown sort: {sort}")
        self.sort = sort

    def clear_filters(self) -> None:
        self.search_query = ""
        self.category = "all"
        self.date_filter = "all"
        self.date_range = (None, None)

    def _matches_search(self, photo: Photo) -> bool:
        query = self.search_query.lower()
        if not query:
            return True
        return (
            query in photo.original_name.lower()
            or query in photo.file_name.lower()
            or any(query in tag.lower() for tag in photo.tags)
            or query in (photo.category or "").lower()
        )

    def visible_photos(self, now: datetime | None = None) -> list[Photo]:
        """Видимая выборка с учётом всех фильтров и сортировки."""
        now = now or datetime.now()
        filtered = [photo for photo in self.photos if self._matches_search(photo)]

        if self.category and self.category != "all":
            filtered = [photo for photo in filtered if photo.category == self.category]

        since = date_filter_start(self.date_filter, now)
        if since is not None:
            filtered = [photo for photo in filtered if to_local(photo.upload_date) >= since]

        start, end = self.date_range
        if start is not None:
            filtered = [photo for photo in filtered if to_local(photo.upload_date) >= to_local(start)]
        if end is not None:
            filtered = [photo for photo in filtered if to_local(photo.upload_date) <= to_local(end)]

        # sorted() устойчива, поэтому при равных ключах сохраняется исходный порядок
        if self.sort == "date-desc":
            return sorted(filtered, key=lambda p: to_local(p.upload_date), reverse=True)
        if self.sort == "date-asc":
            return sorted(filtered, key=lambda p: to_local(p.upload_date))
        if self.sort == "name-asc":
            return sorted(filtered, key=lambda p: p.original_name.casefold())
        if self.sort == "name-desc":
            return sorted(filtered, key=lambda p: p.original_name.casefold(), reverse=True)
        if self.sort == "size-desc":
            return sorted(filtered, key=lambda p: p.size, reverse=True)
        return sorted(filtered, key=lambda p: p.size)

    # --- выделение --------------------------------------------------------

    def toggle_selection(self, photo_id: int) -> bool:
        """Переключает выделение; возвращает новое состояние."""
        if photo_id in self.selected:
            self.selected.discard(photo_id)
            return False
        self.selected.add(photo_id)
        return True

    def select_all_visible(self, now: datetime | None = None) -> int:
        """Выделяет все видимые фотографии; если они уже выделены, снимает выделение с них."""
        visible_ids = {photo.id for photo in self.visible_photos(now)}
        if visible_ids and visible_ids <= self.selected:
            self.selected -= visible_ids
        else:
            self.selected |= visible_ids
        return len(self.selected)

    def clear_selection(self) -> None:
        self.selected.clear()

    def selected_ids(self) -> list[int]:
        return [photo.id for photo in self.photos if photo.id in self.selected]

    def visible_selected_ids(self, now: datetime | None = None) -> list[int]:
        return [photo.id for photo in self.visible_photos(now) if photo.id in self.selected]

    # --- операции ---------------------------------------------------------

    def delete_photo(self, photo_id: int) -> None:
        self.client.delete_photo(photo_id)
        self.photos = [photo for photo in self.photos if photo.id != photo_id]
        self.selected.discard(photo_id)

    def bulk_delete(self) -> BulkResult:
        """Удаляет выделенные фотографии по одной; ошибка одной не останавливает остальные."""
        result = BulkResult()
        for photo_id in self.selected_ids():
            try:
                self.delete_photo(photo_id)
            except GalleryAPIError as exc:
                logger.warning("Не удалось удалить фотографию %s: %s", photo_id, exc.message)
                result.failed[photo_id] = exc.message
            else:
                result.succeeded.append(photo_id)
        return result

    def bulk_export(self, dest_dir: str) -> BulkResult:
        """Скачивает выделенные фотографии в каталог dest_dir."""
        os.makedirs(dest_dir, exist_ok=True)
        result = BulkResult()
        used_names: set[str] = set()

        for photo_id in self.selected_ids():
            try:
                filename, content = self.client.download_photo(photo_id)
            except GalleryAPIError as exc:
                logger.warning("Не удалось скачать фотографию %s: %s", photo_id, exc.message)
                result.failed[photo_id] = exc.message
                continue

            target = self._unique_name(os.path.basename(filename) or f"photo_{photo_id}", dest_dir, used_names)
            try:
                with open(os.path.join(dest_dir, target), "wb") as fh:
                    fh.write(content)
            except OSError as exc:
                logger.warning("Не удалось сохранить %s: %s", target, exc)
                result.failed[photo_id] = str(exc)
                continue
            result.succeeded.append(photo_id)

        return result

    @staticmethod
    def _unique_name(name: str, dest_dir: str, used: set[str]) -> str:
        stem, ext = os.path.splitext(name)
        candidate = name
        counter = 1
        while candidate in used or os.path.exists(os.path.join(dest_dir, candidate)):
            candidate = f"{stem} ({counter}){ext}"
            counter += 1
        used.add(candidate)
        return candidate

    # --- сводки -----------------------------------------------------------

    def category_summary(self) -> list[tuple[str, int]]:
        """Категории по убыванию числа фотографий."""
        return Counter(photo.category for photo in self.photos).most_common()

    def stats(self) -> dict:
        return {
            "total": len(self.photos),
            "total_size": sum(photo.size for photo in self.photos),
            "categories": len({photo.category for photo in self.photos}),
            "selected": len(self.selected),
        }
