"""
Модуль: `utils/rate_limit.py`.
Назначение: Ограничение частоты запросов к API (регистрация, вход, загрузки, истории).
"""

import time
from collections import defaultdict, deque
from threading import Lock

from flask import current_app, request


class InMemoryRateLimiter:
    """Простой in-memory rate limiter (sliding window)."""

    def __init__(self):
        self._events = defaultdict(deque)
        self._lock = Lock()

    def is_allowed(self, key: str, limit: int, window_seconds: int) -> bool:
        if limit <= 0 or window_seconds <= 0:
            return False

        now = time.monotonic()
        cutoff = now - window_seconds

        with self._lock:
            events = self._events[key]
            while events and events[0] <= cutoff:
                events.popleft()

            if len(events) >= limit:
                return False

            events.append(now)
            return True

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


def get_client_identifier() -> str:
    """Возвращает IP клиента с учетом X-Forwarded-For."""
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        first_ip = forwarded_for.split(",", 1)[0].strip()
        if first_ip:
            return first_ip
    return request.remote_addr or "unknown"


def is_rate_limited(bucket: str, limit: int, window_seconds: int, identity: str | None = None) -> bool:
    """True, если запрос в корзине `bucket` превысил лимит для данного клиента."""
    limiter = current_app.extensions.get("rate_limiter")
    if limiter is None:
        return False

    rate_identity = identity or get_client_identifier()
    rate_key = f"{bucket}:{rate_identity}"
    return not limiter.is_allowed(rate_key, limit, window_seconds)
