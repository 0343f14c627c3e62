"""Shared fixtures: an in-memory LLM provider and isolated config dirs."""

import json
from typing import List, Optional

import pytest

from percento.providers.base import Provider, ProviderResponse
from percento.validation.config import Config


class FakeProvider(Provider):
    """Provider that returns canned replies and records every prompt."""

    def __init__(self, replies: Optional[List[str]] = None, error: Optional[Exception] = None):
        super().__init__(model="fake-model", config=Config())
        self.replies = list(replies or [])
        self.error = error
        self.calls: List[dict] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    def complete(self, prompt, system=None, json_mode=False, **kwargs):
        self.calls.append({"prompt": prompt, "system": system, "json_mode": json_mode})
        if self.error is not None:
            raise self.error
        return ProviderResponse(content=self.replies.pop(0), model=self.model, provider="fake")

    def validate_connection(self) -> bool:
        return True


def analysis_json(type_="BASIC_OF", inputs=(15, 40), explanation="15% of 40", **extra) -> str:
    data = {"type": type_, "inputs": list(inputs), "explanation": explanation}
    data.update(extra)
    return json.dumps(data)


@pytest.fixture
def fake_provider():
    """A provider answering one valid BASIC_OF extraction."""
    return FakeProvider(replies=[analysis_json()])


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point global config at a temp dir and run from an empty project dir."""
    global_dir = tmp_path / "home" / ".percento"
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    monkeypatch.setattr(Config, "GLOBAL_CONFIG_DIR", global_dir)
    monkeypatch.chdir(project_dir)
    for var in ("GOOGLE_API_KEY", "GEMINI_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path
