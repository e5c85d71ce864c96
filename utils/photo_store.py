"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: utils/photo_store.py – слой хранения пользователей и фотографий.

Назначение модуля:
- Создание, чтение, изменение и архивирование записей User и Photo.
- Преобразование записей в JSON-представление API с подстановкой значений по умолчанию.
- Подготовка схемы БД: создание недостающих таблиц, перенос устаревшей таблицы фотографий.
"""

from datetime import date, datetime, timezone

from flask import current_app
from sqlalchemy import inspect, or_, text

from extensions import db
from models.photo import CATEGORIES, Photo
from models.user import User

# Колонки, без которых существующая таблица считается устаревшей
REQUIRED_COLUMNS = {
    "photo": {"image_key", "user_id", "archived"},
}

DEFAULT_CATEGORY = "other"
MAX_CATEGORY_LENGTH = 50
MAX_TAG_LENGTH = 50


def _free_table_name(base: str, taken: set[str]) -> str:
    if base not in taken:
        return base
    counter = 1
    while f"{base}_{counter}" in taken:
        counter += 1
    return f"{base}_{counter}"


def ensure_schema() -> list[str]:
    """Создаёт недостающие таблицы и переименовывает несовместимые.

    Возвращает список новых имён перенесённых таблиц.
    """
    inspector = inspect(db.engine)
    existing = set(inspector.get_table_names())
    renamed = []

    for table, required in REQUIRED_COLUMNS.items():
        if table not in existing:
            continue

        columns = {column["name"] for column in inspector.get_columns(table)}
        missing = required - columns
        if not missing:
            continue

        new_name = _free_table_name(f"{table}_old_{date.today():%Y%m%d}", existing)
        current_app.logger.warning(
            "Таблица %s устарела (нет колонок %s), переименовываем в %s",
            table,
            ", ".join(sorted(missing)),
            new_name,
        )
        with db.engine.begin() as conn:
            # Имена индексов не меняются при переименовании таблицы и конфликтуют с новыми
            for index in inspector.get_indexes(table):
                name = index.get("name") or ""
                if name.startswith("ix_"):
                    conn.execute(text(f'DROP INDEX "{name}"'))
            conn.execute(text(f'ALTER TABLE "{table}" RENAME TO "{new_name}"'))
        existing.add(new_name)
        renamed.append(new_name)

    # Создаем отсутствующие таблицы (без изменения существующих колонок)
    db.create_all()
    return renamed


# --- Пользователи ---------------------------------------------------------


def user_to_record(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "fullName": user.full_name or user.username,
    }


def username_or_email_taken(username: str, email: str) -> bool:
    return (
        User.query.filter(or_(User.username == username, User.email == email)).first()
        is not None
    )


def create_user(username: str, email: str, password_hash: str, full_name: str | None = None) -> User:
    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        full_name=(full_name or "").strip() or username,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def find_user_by_login(username: str) -> User | None:
    return User.query.filter_by(username=username).first()


def get_user(user_id) -> User | None:
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


def touch_last_login(user: User) -> None:
    user.last_login = datetime.utcnow()
    db.session.commit()


# --- Фотографии -----------------------------------------------------------


def normalize_category(value) -> str:
    if not isinstance(value, str) or not value.strip():
        return DEFAULT_CATEGORY
    category = value.strip()
    if category.lower() in CATEGORIES:
        return category.lower()
    return category[:MAX_CATEGORY_LENGTH]


def normalize_tags(value) -> list[str]:
    """Приводит теги к списку уникальных непустых строк в исходном порядке."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError("Tags must be a list of strings")

    tags = []
    for raw_tag in value:
        if not isinstance(raw_tag, str):
            raise ValueError("Tags must be a list of strings")
        tag = raw_tag.strip()[:MAX_TAG_LENGTH]
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def parse_upload_date(value) -> datetime:
    """Возвращает naive-дату в UTC; при отсутствии или ошибке берёт текущее время."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return datetime.utcnow()
    else:
        return datetime.utcnow()

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _as_int(value, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return default


def _as_text(value, default: str, max_length: int = 255) -> str:
    if not isinstance(value, str) or not value.strip():
        return default
    return value.strip()[:max_length]


def photo_to_record(photo: Photo) -> dict:
    image_key = photo.image_key or ""
    upload_date = photo.upload_date or datetime.utcnow()
    try:
        tags = normalize_tags(photo.tags)
    except ValueError:
        tags = []

    return {
        "id": photo.id,
        "fileName": photo.file_name or "Untitled",
        "originalName": photo.original_name or "unknown",
        "category": photo.category or DEFAULT_CATEGORY,
        "size": photo.size or 0,
        "type": photo.mime_type or "image/jpeg",
        "width": photo.width or 0,
        "height": photo.height or 0,
        "uploadDate": upload_date.isoformat() + "Z",
        "imageKey": image_key,
        "thumbnail": photo.thumbnail or "",
        "tags": tags,
        "downloadURL": f"/api/images/{image_key}",
    }


def create_photo(user_id: int, payload: dict, image_key: str, thumbnail: str = "") -> Photo:
    file_name = _as_text(payload.get("fileName"), "Untitled Photo")
    photo = Photo(
        file_name=file_name,
        original_name=_as_text(payload.get("originalName"), file_name),
        user_id=user_id,
        category=normalize_category(payload.get("category")),
        size=_as_int(payload.get("size")),
        mime_type=_as_text(payload.get("type"), "image/jpeg", max_length=50),
        width=_as_int(payload.get("width")),
        height=_as_int(payload.get("height")),
        upload_date=parse_upload_date(payload.get("uploadDate")),
        image_key=image_key,
        thumbnail=thumbnail or "",
        tags=normalize_tags(payload.get("tags")),
    )
    db.session.add(photo)
    db.session.commit()
    return photo


def list_photos(user_id: int) -> list[Photo]:
    return (
        Photo.query.filter_by(user_id=user_id, archived=False)
        .order_by(Photo.upload_date.desc(), Photo.id.desc())
        .all()
    )


def get_photo(user_id: int, photo_id: int) -> Photo | None:
    """Фотография пользователя; архивные и чужие не возвращаются."""
    photo = db.session.get(Photo, photo_id)
    if photo is None or photo.archived or photo.user_id != user_id:
        return None
    return photo


def update_photo(photo: Photo, changes: dict) -> Photo:
    """Применяет изменения fileName/category/tags. Неверные типы дают ValueError."""
    if "fileName" in changes and changes["fileName"] is not None:
        if not isinstance(changes["fileName"], str) or not changes["fileName"].strip():
            raise ValueError("fileName must be a non-empty string")
        photo.file_name = changes["fileName"].strip()[:255]
        # Отображаемое имя следует за новым именем файла
        photo.original_name = photo.file_name

    if "category" in changes and changes["category"] is not None:
        if not isinstance(changes["category"], str) or not changes["category"].strip():
            raise ValueError("category must be a non-empty string")
        photo.category = normalize_category(changes["category"])

    if "tags" in changes and changes["tags"] is not None:
        photo.tags = normalize_tags(changes["tags"])

    db.session.commit()
    return photo


def archive_photo(photo: Photo) -> None:
    if photo.archived:
        return
    photo.archived = True
    photo.archived_at = datetime.utcnow()
    db.session.commit()
