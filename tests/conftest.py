"""
Shared fixtures for the grading pipeline tests.
The grading backend is faked with httpx.MockTransport; no test touches the network.
"""
import json
import os

import httpx
import pytest

from aigrading.core.config import Settings
from aigrading.schemas.grading import GradingResult
from aigrading.services.grading_store import JsonGradingStore
from aigrading.services.token_service import token_service


@pytest.fixture(autouse=True)
def _offline_token_count(monkeypatch):
    """tiktoken downloads its encoding on first use; estimate from length instead."""
    monkeypatch.setattr(token_service, "count_tokens", lambda text: len(text) // 4)


@pytest.fixture
def scratch_dir(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def make_settings(tmp_path, scratch_dir):
    """Settings built without reading .env, with a test API key unless overridden."""
    def _make(**overrides):
        values = {
            "API_KEY": "test-key",
            "TEMP_DIR": str(scratch_dir),
            "STORE_PATH": str(tmp_path / "store.json"),
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


class FakeBackend:
    """Records every request and answers with whatever was configured last."""

    def __init__(self):
        self.requests = []
        self._reply = lambda request: httpx.Response(200, json={})

    def respond(self, status_code=200, json=None, text=None):
        def reply(request):
            if text is not None:
                return httpx.Response(status_code, text=text)
            return httpx.Response(status_code, json=json)
        self._reply = reply

    def respond_with(self, func):
        self._reply = func

    def fail_with(self, error_cls, message="connection refused"):
        def reply(request):
            raise error_cls(message, request=request)
        self._reply = reply

    def handle(self, request):
        self.requests.append(request)
        return self._reply(request)

    @property
    def transport(self):
        return httpx.MockTransport(self.handle)

    def last_json(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def fake_backend():
    return FakeBackend()


def chat_reply(content):
    """Body of a chat-completion answer whose message content is `content`."""
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class ScriptedClient:
    """Stand-in for a GradingClient: returns (or raises) the scripted outcomes in order."""

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.calls = []

    def suggest_grade(self, question_text, answer_text, max_grade, rubric=None, grader_info=None):
        self.calls.append({
            "question_text": question_text,
            "answer_text": answer_text,
            "max_grade": max_grade,
            "rubric": rubric,
            "grader_info": grader_info,
        })
        outcome = self.outcomes.pop(0) if self.outcomes else GradingResult(success=True, grade=1.0, feedback="ok")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def make_store(tmp_path):
    """Write a gradebook JSON file and open it with JsonGradingStore."""
    def _make(data):
        path = os.path.join(tmp_path, "store.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        return JsonGradingStore(path)
    return _make
