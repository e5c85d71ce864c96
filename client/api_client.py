"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: client/api_client.py – клиент REST API галереи.

Назначение модуля:
- Вызовы API сервера через httpx.Client; cookie-сессия Flask хранится в клиенте.
- Преобразование ошибочных ответов и сетевых сбоев в GalleryAPIError.
"""

import base64
import logging
import re

import httpx

from client.photo import Photo

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)


def to_data_url(mime_type: str, raw: bytes) -> str:
    """Кодирует байты изображения в data URL для поля imageData."""
    return f"data:{mime_type};base64,{base64.b64encode(raw).decode('ascii')}"


class GalleryAPIError(Exception):
    """Ошибочный ответ API или сбой соединения с сервером."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class GalleryClient:
    """Клиент API галереи.

    Args:
        base_url: Адрес сервера, например ``http://127.0.0.1:5000``
        timeout: Таймаут запроса в секундах
        transport: Транспорт httpx (в тестах ``httpx.WSGITransport``)
    """

    def __init__(self, base_url: str = "http://127.0.0.1:5000", timeout: float = 30.0, transport=None):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)
        logger.info("GalleryClient: сервер %s", self.base_url)

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s %s: ошибка соединения: %s", method, path, e)
            raise GalleryAPIError(0, str(e)) from e

        if response.is_success:
            return response

        message = response.reason_phrase or "Request failed"
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("error"):
                message = body["error"]
        except ValueError:
            pass
        raise GalleryAPIError(response.status_code, message)

    # --- session -----------------------------------------------------------

    def health(self) -> dict:
        return self._request("GET", "/health").json()

    def register(self, username: str, email: str, password: str, full_name: str | None = None) -> dict:
        payload = {"username": username, "email": email, "password": password}
        if full_name:
            payload["fullName"] = full_name
        return self._request("POST", "/api/register", json=payload).json()

    def login(self, username: str, password: str) -> dict:
        return self._request("POST", "/api/login", json={"username": username, "password": password}).json()

    def logout(self) -> None:
        self._request("POST", "/api/logout")
        self.client.cookies.clear()

    def current_user(self) -> dict:
        return self._request("GET", "/api/user").json()

    # --- photos ------------------------------------------------------------

    def list_photos(self) -> list[Photo]:
        records = self._request("GET", "/api/photos").json()
        return [Photo.from_record(record) for record in records]

    def add_photo(self, payload: dict) -> int:
        """Создаёт фотографию (imageData передаётся как data URL) и возвращает её id."""
        return self._request("POST", "/api/photos", json=payload).json()["id"]

    def update_photo(
        self,
        photo_id: int,
        file_name: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
    ) -> None:
        body = {"fileName": file_name, "category": category, "tags": tags}
        body = {key: value for key, value in body.items() if value is not None}
        self._request("PUT", f"/api/photos/{photo_id}", json=body)

    def delete_photo(self, photo_id: int) -> None:
        self._request("DELETE", f"/api/photos/{photo_id}")

    def fetch_image(self, image_key: str) -> bytes:
        return self._request("GET", f"/api/images/{image_key}").content

    def download_photo(self, photo_id: int) -> tuple[str, bytes]:
        """Скачивает оригинал; возвращает (имя файла, байты)."""
        response = self._request("GET", f"/api/download/{photo_id}")
        disposition = response.headers.get("Content-Disposition", "")
        match = _FILENAME_RE.search(disposition)
        filename = match.group(1) if match else f"photo_{photo_id}"
        return filename, response.content

    def generate_story(self, prompt: str, memory: dict | None = None) -> str:
        body = {"prompt": prompt, "memory": memory or {}}
        return self._request("POST", "/api/generate-story", json=body).json()["story"]
