"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: client/image_editor.py – неразрушающий редактор изображений.

Каждая отрисовка строится заново из исходного изображения: сначала геометрия
(поворот, отражения), затем фильтры. Изменения не накапливаются.
"""

import io

from PIL import Image, ImageEnhance, ImageFilter, ImageOps

PERCENT_RANGE = (0, 200)
MAX_BLUR = 20


def _check_percent(name: str, value) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValueError(f"{name} must be a number")
    low, high = PERCENT_RANGE
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}")
    return float(value)


class ImageEditor:
    """Редактор одного изображения.

    Яркость, контраст и насыщенность задаются в процентах (100 означает без изменений),
    размытие задаётся радиусом в пикселях от 0 до 20.
    """

    def __init__(self):
        self.original: Image.Image | None = None
        self.reset()

    def load(self, source) -> None:
        """Загружает изображение из байтов, пути к файлу или объекта PIL."""
        if isinstance(source, Image.Image):
            image = source.copy()
        elif isinstance(source, (bytes, bytearray)):
            image = Image.open(io.BytesIO(source))
            image.load()
        else:
            with Image.open(source) as opened:
                opened.load()
                image = opened.copy()

        # EXIF-ориентацию применяем один раз при загрузке
        image = ImageOps.exif_transpose(image)
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA" if "transparency" in image.info else "RGB")
        self.original = image
        self.reset()

    def set_adjustments(self, brightness=None, contrast=None, saturation=None, blur=None) -> None:
        """Задаёт значения фильтров; не переданные параметры не меняются."""
        if brightness is not None:
            self.brightness = _check_percent("brightness", brightness)
        if contrast is not None:
            self.contrast = _check_percent("contrast", contrast)
        if saturation is not None:
            self.saturation = _check_percent("saturation", saturation)
        if blur is not None:
            if not isinstance(blur, (int, float)) or isinstance(blur, bool) or not 0 <= blur <= MAX_BLUR:
                raise ValueError(f"blur must be between 0 and {MAX_BLUR}")
            self.blur = float(blur)

    def rotate(self, degrees: int) -> int:
        if degrees % 90 != 0:
            raise ValueError("Rotation must be a multiple of 90 degrees")
        self.rotation = (self.rotation + degrees) % 360
        return self.rotation

    def flip_horizontal(self) -> None:
        self.flipped_horizontal = not self.flipped_horizontal

    def flip_vertical(self) -> None:
        self.flipped_vertical = not self.flipped_vertical

    def reset(self) -> None:
        self.brightness = 100.0
        self.contrast = 100.0
        self.saturation = 100.0
        self.blur = 0.0
        self.rotation = 0
        self.flipped_horizontal = False
        self.flipped_vertical = False

    @property
    def is_modified(self) -> bool:
        return (
            self.rotation != 0
            or self.flipped_horizontal
            or self.flipped_vertical
            or (self.brightness, self.contrast, self.saturation, self.blur) != (100.0, 100.0, 100.0, 0.0)
        )

    def render(self) -> Image.Image:
        if self.original is None:
            raise RuntimeError("No image loaded")

        image = self.original.copy()
        if self.rotation:
            # PIL поворачивает против часовой стрелки
            image = image.rotate(-self.rotation, expand=True)
        if self.flipped_horizontal:
            image = ImageOps.mirror(image)
        if self.flipped_vertical:
            image = ImageOps.flip(image)

        if self.brightness != 100.0:
            image = ImageEnhance.Brightness(image).enhance(self.brightness / 100)
        if self.contrast != 100.0:
            image = ImageEnhance.Contrast(image).enhance(self.contrast / 100)
        if self.saturation != 100.0:
            image = ImageEnhance.Color(image).enhance(self.saturation / 100)
        if self.blur > 0:
            image = image.filter(ImageFilter.GaussianBlur(self.blur))
        return image

    def save(self, format: str = "JPEG", quality: int = 90) -> bytes:
        """Сериализует текущий результат; сохранение на сервер выполняет вызывающий код."""
        image = self.render()
        fmt = format.upper()
        if fmt in ("JPEG", "JPG"):
            fmt = "JPEG"
            if image.mode != "RGB":
                image = image.convert("RGB")

        buffer = io.BytesIO()
        if fmt in ("JPEG", "WEBP"):
            image.save(buffer, format=fmt, quality=quality)
        else:
            image.save(buffer, format=fmt)
        return buffer.getvalue()
