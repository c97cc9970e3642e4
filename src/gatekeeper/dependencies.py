"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import threading

from fastapi import Depends

from gatekeeper.catalog import CatalogService, WisdomService
from gatekeeper.config import Settings, get_settings
from gatekeeper.documents import JsonDocuments
from gatekeeper.events import EventLog
from gatekeeper.generator import ContentGenerator
from gatekeeper.storage import (
    GitHubDocumentStore,
    InMemoryDocumentStore,
    RemoteDocumentStore,
)

logger = logging.getLogger(__name__)

_document_store: RemoteDocumentStore | None = None
_document_store_lock = threading.Lock()


def get_document_store() -> RemoteDocumentStore:
    """
    Return a singleton store so the in-memory backend persists across requests.
    """
    global _document_store
    if _document_store is not None:
        return _document_store

    # Sync routes run in a threadpool; build the store once.
    with _document_store_lock:
        if _document_store is None:
            _document_store = _build_document_store(get_settings())
    return _document_store


def _build_document_store(settings: Settings) -> RemoteDocumentStore:
    if settings.use_in_memory_backends or not settings.github_token:
        logger.warning("No GitHub token configured, using in-memory documents")
        return InMemoryDocumentStore()
    return GitHubDocumentStore(
        token=settings.github_token,
        owner=settings.repo_owner,
        repo=settings.repo_name,
        branch=settings.branch,
        api_url=settings.github_api_url,
        user_agent=settings.user_agent,
        timeout=settings.request_timeout,
    )


def get_documents(
    store: RemoteDocumentStore = Depends(get_document_store),
    settings: Settings = Depends(get_settings),
) -> JsonDocuments:
    return JsonDocuments(store, conflict_retries=settings.conflict_retries)


def get_catalog_service(
    documents: JsonDocuments = Depends(get_documents),
    settings: Settings = Depends(get_settings),
) -> CatalogService:
    return CatalogService(documents, settings)


def get_wisdom_service(
    documents: JsonDocuments = Depends(get_documents),
    settings: Settings = Depends(get_settings),
) -> WisdomService:
    return WisdomService(documents, settings)


def get_event_log(
    documents: JsonDocuments = Depends(get_documents),
    settings: Settings = Depends(get_settings),
) -> EventLog:
    return EventLog(documents, settings)


def get_content_generator(
    settings: Settings = Depends(get_settings),
) -> ContentGenerator:
    return ContentGenerator(settings)
