"""Shared fixtures: a scripted completion client and clean settings."""

from typing import Dict, List, Union

import pytest

from docextract.config import get_settings
from docextract.services.gemini_client import TransportError


class ScriptedCompleter:
    """Stand-in for the model: returns (or raises) scripted replies in order."""

    def __init__(self, *replies: Union[str, Exception]):
        self.replies = list(replies)
        self.calls: List[Dict[str, object]] = []

    def complete(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str:
        self.calls.append({
            "prompt": prompt,
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        })
        if not self.replies:
            raise TransportError("No scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def completer_factory():
    return ScriptedCompleter


@pytest.fixture
def mock_env_vars(monkeypatch, tmp_path):
    """Valid settings pointing the database and downloads at tmp_path."""
    get_settings.cache_clear()
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-api-key")
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "db.json"))
    monkeypatch.setenv("DOWNLOADS_DIR", str(tmp_path / "downloads"))
    yield
    get_settings.cache_clear()
