"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: client/photo.py – клиентское представление фотографии.
"""

from dataclasses import dataclass, field
from datetime import datetime


def parse_timestamp(value) -> datetime:
    """ISO-строка API (с суффиксом Z) -> datetime с часовым поясом."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now().astimezone()


def _int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class Photo:
    """Фотография в том виде, в каком её отдаёт `GET /api/photos`."""

    id: int
    file_name: str = "Untitled"
    original_name: str = "unknown"
    category: str = "other"
    size: int = 0
    type: str = "image/jpeg"
    width: int = 0
    height: int = 0
    upload_date: datetime = field(default_factory=lambda: datetime.now().astimezone())
    image_key: str = ""
    thumbnail: str = ""
    tags: list[str] = field(default_factory=list)
    download_url: str = ""

    @classmethod
    def from_record(cls, record: dict) -> "Photo":
        image_key = record.get("imageKey") or ""
        tags = record.get("tags")
        return cls(
            id=record["id"],
            file_name=record.get("fileName") or "Untitled",
            original_name=record.get("originalName") or "unknown",
            category=record.get("category") or "other",
            size=_int(record.get("size")),
            type=record.get("type") or "image/jpeg",
            width=_int(record.get("width")),
            height=_int(record.get("height")),
            upload_date=parse_timestamp(record.get("uploadDate")),
            image_key=image_key,
            thumbnail=record.get("thumbnail") or "",
            tags=[tag for tag in tags if isinstance(tag, str)] if isinstance(tags, list) else [],
            download_url=record.get("downloadURL") or f"/api/images/{image_key}",
        )


def to_local(value: datetime) -> datetime:
    """Naive локальное время для сравнения дат."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def month_ago(now: datetime) -> datetime:
    """Та же дата месяцем раньше; день усекается до конца более короткого месяца."""
    year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
    day = now.day
    while True:
        try:
            return now.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1
