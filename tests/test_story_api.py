from types import SimpleNamespace

import httpx
import openai
import pytest

from utils import story_writer
from utils.story_writer import StoryWriterError, map_openai_error

STORY_REQUEST = {
    "prompt": "Create a warm, personal story about a photo memory.",
    "memory": {"date": "2026-10-17", "category": "family", "photoCount": 2, "categories": ["family"]},
}


def _openai_response(status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))


def test_story_requires_login(client):
    assert client.post("/api/generate-story", json=STORY_REQUEST).status_code == 401


def test_story_requires_prompt(auth_client):
    response = auth_client.post("/api/generate-story", json={"memory": {}})
    assert response.status_code == 400
    assert response.get_json()["error"] == "prompt is required"


def test_missing_api_key(auth_client):
    response = auth_client.post("/api/generate-story", json=STORY_REQUEST)
    assert response.status_code == 400
    assert "OPENAI_API_KEY" in response.get_json()["error"]


def test_story_returned(auth_client, monkeypatch):
    prompts = []

    def fake_write_story(prompt):
        prompts.append(prompt)
        return "You spent the afternoon laughing with family."

    monkeypatch.setattr("routes.api.write_story", fake_write_story)

    response = auth_client.post("/api/generate-story", json=STORY_REQUEST)
    assert response.status_code == 200
    assert response.get_json() == {"story": "You spent the afternoon laughing with family."}
    assert prompts == [STORY_REQUEST["prompt"]]


@pytest.mark.parametrize("status", [401, 429, 500])
def test_upstream_status_passed_through(auth_client, monkeypatch, status):
    def failing_write_story(prompt):
        raise StoryWriterError("upstream failed", status)

    monkeypatch.setattr("routes.api.write_story", failing_write_story)

    response = auth_client.post("/api/generate-story", json=STORY_REQUEST)
    assert response.status_code == status
    assert response.get_json() == {"success": False, "error": "upstream failed"}


def test_map_openai_errors():
    auth = openai.AuthenticationError("bad key", response=_openai_response(401), body=None)
    limited = openai.RateLimitError("slow down", response=_openai_response(429), body=None)
    broken = openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com"))

    assert map_openai_error(auth).status == 401
    assert map_openai_error(limited).status == 429
    assert map_openai_error(broken).status == 500


class _FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _install_fake_client(monkeypatch, completions):
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    monkeypatch.setattr(story_writer, "_client", lambda: fake)


def test_write_story_uses_configured_model(app, monkeypatch):
    completions = _FakeCompletions(content="  A quiet morning by the sea.  ")
    _install_fake_client(monkeypatch, completions)

    with app.app_context():
        app.config["OPENAI_MODEL"] = "gpt-test"
        assert story_writer.write_story("prompt") == "A quiet morning by the sea."

    call = completions.calls[0]
    assert call["model"] == "gpt-test"
    assert call["max_tokens"] == 150
    assert call["messages"][0] == {"role": "system", "content": story_writer.SYSTEM_PROMPT}
    assert call["messages"][1] == {"role": "user", "content": "prompt"}


def test_write_story_maps_rate_limit(app, monkeypatch):
    error = openai.RateLimitError("slow down", response=_openai_response(429), body=None)
    _install_fake_client(monkeypatch, _FakeCompletions(error=error))

    with app.app_context():
        with pytest.raises(StoryWriterError) as excinfo:
            story_writer.write_story("prompt")
    assert excinfo.value.status == 429


def test_write_story_rejects_empty_answer(app, monkeypatch):
    _install_fake_client(monkeypatch, _FakeCompletions(content=""))

    with app.app_context():
        with pytest.raises(StoryWriterError) as excinfo:
            story_writer.write_story("prompt")
    assert excinfo.value.status == 500
