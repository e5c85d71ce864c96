"""
Программа: «Фотогалерея» – веб-приложение для хранения и просмотра фотографий.
Модуль: utils/story_writer.py – генерация коротких историй для воспоминаний.

Назначение модуля:
- Запрос к OpenAI Chat Completions с подготовленным клиентом промптом.
- Преобразование ошибок OpenAI в HTTP-статусы API (401, 429, 500).
"""

import openai
from flask import current_app
from openai import OpenAI

SYSTEM_PROMPT = (
    "You are a storyteller who creates warm, personal narratives from photo memories. "
    "Write in second person ('you') to make it personal and heartwarming. "
    "Keep stories to 2-3 sentences and focus on emotions and experiences "
    "rather than technical details."
)


class StoryWriterError(Exception):
    """Ошибка генерации истории с HTTP-статусом для ответа API."""

    def __init__(self, message: str, status: int = 500):
        super().__init__(message)
        self.message = message
        self.status = status


def _client() -> OpenAI:
    cfg = current_app.config
    api_key = cfg.get("OPENAI_API_KEY", "")
    if not api_key:
        raise StoryWriterError(
            "OpenAI API key not configured. Please add OPENAI_API_KEY to environment variables.",
            400,
        )
    return OpenAI(api_key=api_key, timeout=cfg.get("STORY_TIMEOUT_SECONDS", 30))


def map_openai_error(exc: Exception) -> StoryWriterError:
    if isinstance(exc, openai.AuthenticationError):
        return StoryWriterError("Invalid OpenAI API key. Please check your API key configuration.", 401)
    if isinstance(exc, openai.RateLimitError):
        return StoryWriterError("OpenAI API rate limit exceeded. Please try again later.", 429)
    return StoryWriterError("Failed to generate story. Please try again.", 500)


def write_story(prompt: str) -> str:
    """Возвращает историю из 2-3 предложений по промпту."""
    client = _client()
    cfg = current_app.config
    try:
        response = client.chat.completions.create(
            model=cfg.get("OPENAI_MODEL", "gpt-4o"),
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=cfg.get("STORY_MAX_TOKENS", 150),
            temperature=0.7,
        )
    except openai.OpenAIError as exc:
        current_app.logger.exception("Ошибка запроса к OpenAI")
        raise map_openai_error(exc) from exc

    content = (response.choices[0].message.content or "").strip() if response.choices else ""
    if not content:
        raise StoryWriterError("Failed to generate story. Please try again.", 500)
    return content
