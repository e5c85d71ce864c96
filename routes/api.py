"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: routes/api.py – REST-подобные API-маршруты.

Назначение модуля:
- Получение, добавление, изменение и удаление (архивирование) фотографий пользователя.
- Выдача полноразмерных изображений по ключу и скачивание фотографии как вложения.
- Генерация короткой истории для воспоминания через OpenAI.
"""

import io

from flask import current_app, jsonify, request, send_file
from flask_login import current_user, login_required

from utils import photo_store
from utils.image_data import (
    InvalidImageData,
    generate_image_key,
    inspect_image,
    make_thumbnail_data_url,
    parse_data_url,
)
from utils.rate_limit import is_rate_limited
from utils.story_writer import StoryWriterError, write_story

IMAGE_CACHE_SECONDS = 31536000


def _api_error(message: str, status: int = 400):
    return jsonify({"success": False, "error": message}), status


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _blob_cache():
    return current_app.extensions["blob_cache"]


def register_routes(app):
    @app.get("/api/photos")
    @login_required
    def list_photos():
        try:
            photos = photo_store.list_photos(current_user.id)
            return jsonify([photo_store.photo_to_record(photo) for photo in photos])
        except Exception:
            current_app.logger.exception("Ошибка получения списка фотографий")
            return _api_error("Failed to fetch photos", 500)

    @app.post("/api/photos")
    @login_required
    def add_photo():
        """Сохраняет изображение в хранилище и создаёт запись фотографии."""
        try:
            if is_rate_limited(
                "photo_upload",
                limit=120,
                window_seconds=10 * 60,
                identity=f"user:{current_user.id}",
            ):
                return _api_error("Too many uploads. Try again later.", 429)

            data = _json_body()
            if not data.get("imageData"):
                return _api_error("imageData is required", 400)

            try:
                tags = photo_store.normalize_tags(data.get("tags"))
            except ValueError as exc:
                return _api_error(str(exc), 400)

            try:
                mime_type, raw = parse_data_url(data["imageData"])
                _, width, height = inspect_image(
                    raw,
                    app.config["ALLOWED_IMAGE_FORMATS"],
                    app.config["MAX_IMAGE_PIXELS"],
                )
                thumbnail = make_thumbnail_data_url(
                    raw,
                    max_size=app.config["THUMBNAIL_SIZE"],
                    max_chars=app.config["THUMBNAIL_MAX_CHARS"],
                )
            except InvalidImageData as exc:
                return _api_error(str(exc), 400)

            # Размеры из самого изображения надёжнее присланных клиентом
            payload = dict(data)
            payload["tags"] = tags
            payload.setdefault("type", mime_type)
            payload["width"] = payload.get("width") or width
            payload["height"] = payload.get("height") or height
            payload["size"] = payload.get("size") or len(raw)

            image_key = generate_image_key()
            blob_cache = _blob_cache()
            blob_cache.put(image_key, mime_type, raw)

            try:
                photo = photo_store.create_photo(current_user.id, payload, image_key, thumbnail)
            except Exception:
                # Запись не создана: изображение без фотографии не оставляем
                blob_cache.evict(image_key)
                raise

            return jsonify({"id": photo.id})

        except Exception:
            current_app.logger.exception("Ошибка добавления фотографии")
            return _api_error("Failed to add photo", 500)

    @app.put("/api/photos/<int:photo_id>")
    @login_required
    def update_photo(photo_id: int):
        try:
            photo = photo_store.get_photo(current_user.id, photo_id)
            if photo is None:
                return _api_error("Photo not found", 404)

            try:
                photo_store.update_photo(photo, _json_body())
            except ValueError as exc:
                return _api_error(str(exc), 400)

            return jsonify({"success": True})

        except Exception:
            current_app.logger.exception("Ошибка изменения фотографии")
            return _api_error("Failed to update photo", 500)

    @app.delete("/api/photos/<int:photo_id>")
    @login_required
    def delete_photo(photo_id: int):
        """Архивирует запись и удаляет изображение из хранилища."""
        try:
            photo = photo_store.get_photo(current_user.id, photo_id)
            if photo is None:
                return _api_error("Photo not found", 404)

            photo_store.archive_photo(photo)
            _blob_cache().evict(photo.image_key)
            return jsonify({"success": True})

        except Exception:
            current_app.logger.exception("Ошибка удаления фотографии")
            return _api_error("Failed to delete photo", 500)

    @app.get("/api/images/<image_key>")
    def serve_image(image_key: str):
        try:
            blob = _blob_cache().get(image_key)
            if blob is None:
                return _api_error("Image not found", 404)

            mime_type, raw = blob
            response = send_file(io.BytesIO(raw), mimetype=mime_type)
            response.headers["Cache-Control"] = f"public, max-age={IMAGE_CACHE_SECONDS}"
            return response

        except Exception:
            current_app.logger.exception("Ошибка выдачи изображения")
            return _api_error("Failed to serve image", 500)

    @app.get("/api/download/<int:photo_id>")
    @login_required
    def download_photo(photo_id: int):
        try:
            photo = photo_store.get_photo(current_user.id, photo_id)
            if photo is None or not photo.image_key:
                return _api_error("Photo not found", 404)

            blob = _blob_cache().get(photo.image_key)
            if blob is None:
                return _api_error("Image data not found", 404)

            mime_type, raw = blob
            return send_file(
                io.BytesIO(raw),
                mimetype=mime_type,
                as_attachment=True,
                download_name=photo.original_name or "photo.jpg",
            )

        except Exception:
            current_app.logger.exception("Ошибка скачивания фотографии")
            return _api_error("Failed to download photo", 500)

    @app.post("/api/generate-story")
    @login_required
    def generate_story():
        try:
            if is_rate_limited(
                "story",
                limit=30,
                window_seconds=10 * 60,
                identity=f"user:{current_user.id}",
            ):
                return _api_error("Too many story requests. Try again later.", 429)

            data = _json_body()
            prompt = data.get("prompt")
            if not isinstance(prompt, str) or not prompt.strip():
                return _api_error("prompt is required", 400)

            memory = data.get("memory") if isinstance(data.get("memory"), dict) else {}
            current_app.logger.info(
                "Генерация истории: категория=%s, фотографий=%s",
                memory.get("category"),
                memory.get("photoCount"),
            )

            try:
                story = write_story(prompt.strip())
            except StoryWriterError as exc:
                return _api_error(exc.message, exc.status)

            return jsonify({"story": story})

        except Exception:
            current_app.logger.exception("Ошибка генерации истории")
            return _api_error("Failed to generate story. Please try again.", 500)
