"""FastAPI dependencies for the pipeline collaborators.

Routers receive the store, the completion client and the relevancy scorer
through ``Depends`` so tests can swap them with ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends

from docextract.config import Settings, get_settings
from docextract.db.json_database import JsonDocumentStore
from docextract.services.gemini_client import CompletionClient, GeminiCompletionClient
from docextract.services.relevancy_scorer import AnswerRelevancyScorer


@lru_cache
def _store_for(path: str) -> JsonDocumentStore:
    # One instance per path so every request shares the same write lock
    return JsonDocumentStore(path)


def get_store(settings: Settings = Depends(get_settings)) -> JsonDocumentStore:
    return _store_for(settings.database_path)


@lru_cache
def _default_completer() -> GeminiCompletionClient:
    return GeminiCompletionClient()


def get_completer() -> CompletionClient:
    return _default_completer()


def get_relevancy(
    settings: Settings = Depends(get_settings),
    completer: CompletionClient = Depends(get_completer),
) -> Optional[AnswerRelevancyScorer]:
    """Relevancy scorer, or None when confidence scoring is disabled."""
    if not settings.enable_confidence_scoring:
        return None
    return AnswerRelevancyScorer(completer)
