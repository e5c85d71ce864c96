"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: utils/image_data.py – разбор и проверка присланных изображений.

Назначение модуля:
- Разбор data URL вида `data:<mime>;base64,<payload>` в MIME-тип и байты.
- Проверка, что байты действительно являются изображением допустимого формата.
- Построение уменьшенного превью для хранения рядом с метаданными фотографии.
"""

import base64
import binascii
import io
import re
import uuid
from datetime import datetime

from PIL import Image, UnidentifiedImageError

DATA_URL_RE = re.compile(r"^data:([A-Za-z-+/]+);base64,(.+)$", re.DOTALL)


class InvalidImageData(ValueError):
    """Присланные данные не являются корректным изображением."""


def parse_data_url(data_url: str) -> tuple[str, bytes]:
    """Возвращает (mime_type, bytes) из data URL или бросает InvalidImageData."""
    if not isinstance(data_url, str):
        raise InvalidImageData("Invalid image data format")

    match = DATA_URL_RE.match(data_url.strip())
    if not match:
        raise InvalidImageData("Invalid image data format")

    mime_type, payload = match.group(1), match.group(2)
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImageData("Image data is not valid base64")

    if not raw:
        raise InvalidImageData("Image data is empty")
    return mime_type.lower(), raw


def to_data_url(mime_type: str, raw: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(raw).decode('ascii')}"


def inspect_image(raw: bytes, allowed_formats, max_pixels: int) -> tuple[str, int, int]:
    """Проверяет изображение через Pillow и возвращает (format, width, height)."""
    try:
        with Image.open(io.BytesIO(raw)) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise InvalidImageData("Data is not a valid image")

    # verify() оставляет файл непригодным, открываем повторно
    try:
        with Image.open(io.BytesIO(raw)) as image:
            image_format = (image.format or "").lower()
            width, height = image.size
    except (UnidentifiedImageError, OSError):
        raise InvalidImageData("Data is not a valid image")

    if image_format not in allowed_formats:
        raise InvalidImageData("Unsupported image format")

    if width * height > max_pixels:
        raise InvalidImageData("Image resolution is too large")

    return image_format, width, height


def make_thumbnail_data_url(raw: bytes, max_size: int = 200, max_chars: int | None = None) -> str:
    """Строит JPEG-превью не больше max_size по длинной стороне.

    Если превью не укладывается в max_chars символов, возвращается пустая строка:
    превью необязательно, а полное изображение доступно по ключу.
    """
    with Image.open(io.BytesIO(raw)) as image:
        image.thumbnail((max_size, max_size))
        preview = image.convert("RGB")

    buffer = io.BytesIO()
    preview.save(buffer, format="JPEG", quality=70, optimize=True)
    data_url = to_data_url("image/jpeg", buffer.getvalue())

    if max_chars is not None and len(data_url) > max_chars:
        return ""
    return data_url


def generate_image_key() -> str:
    timestamp = datetime.utcnow().strftime("%Y%m%d%H%M%S%f")
    return f"photo_{timestamp}_{uuid.uuid4().hex[:12]}"
