"""
JSON array documents on top of a RemoteDocumentStore.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Callable, Optional

from gatekeeper.errors import ConflictError, DocumentFormatError, NotFoundError
from gatekeeper.storage import RemoteDocumentStore

logger = logging.getLogger(__name__)

Items = list[dict[str, Any]]


def encode_items(items: list) -> bytes:
    return (json.dumps(items, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def decode_items(path: str, data: bytes) -> list:
    try:
        value = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DocumentFormatError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(value, list):
        raise DocumentFormatError(f"{path} does not hold a JSON array")
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise DocumentFormatError(f"{path}[{i}] is not a JSON object")
    return value


class JsonDocuments:
    """Loads and saves JSON arrays, with a bounded optimistic-retry update."""

    def __init__(self, store: RemoteDocumentStore, conflict_retries: int = 1):
        self.store = store
        self.conflict_retries = conflict_retries

    def load(self, path: str) -> tuple[list, Optional[str]]:
        """Return ``(items, version)``; a missing document is an empty list."""
        try:
            document = self.store.read(path)
        except NotFoundError:
            logger.info("%s does not exist yet, treating as empty", path)
            return [], None
        return decode_items(path, document.data), document.version

    def replace(self, path: str, items: list, message: str) -> list:
        """Overwrite the document regardless of what is stored."""

        def attempt():
            self.store.write(path, encode_items(items), None, message)
            return items

        return self._with_retry(path, attempt)

    def update(
        self, path: str, mutate: Callable[[list], Optional[list]], message: str
    ) -> list:
        """
        Read-modify-write ``path``.

        ``mutate`` receives a private copy of the current items and returns the
        items to store, or None when nothing changed (no write happens). The
        whole sequence is repeated on a version conflict.
        """

        def attempt():
            items, version = self.load(path)
            updated = mutate(copy.deepcopy(items))
            if updated is None:
                return items
            # A document that was missing on read must still be missing now.
            self.store.write(
                path,
                encode_items(updated),
                version,
                message,
                create_only=version is None,
            )
            return updated

        return self._with_retry(path, attempt)

    def _with_retry(self, path: str, attempt: Callable[[], list]) -> list:
        tries = self.conflict_retries + 1
        for n in range(1, tries + 1):
            try:
                return attempt()
            except ConflictError:
                logger.warning("Write conflict on %s (attempt %d/%d)", path, n, tries)
                if n == tries:
                    raise
        raise ConflictError(path)
