"""
Append-only click log.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from gatekeeper.catalog import now_millis
from gatekeeper.config import Settings
from gatekeeper.documents import Items, JsonDocuments
from gatekeeper.errors import ValidationError

logger = logging.getLogger(__name__)

Timestamp = Union[int, float, str]


class EventLog:
    def __init__(self, documents: JsonDocuments, settings: Settings):
        self.documents = documents
        self.path = settings.clicks_path

    def list(self) -> Items:
        items, _ = self.documents.load(self.path)
        return items

    def append(
        self,
        product_id: Optional[str],
        timestamp: Optional[Timestamp] = None,
        type: Optional[str] = None,
    ) -> dict:
        """Record one occurrence. Identical clicks are all kept."""
        if not isinstance(product_id, str) or not product_id.strip():
            raise ValidationError("product_id is required")

        event = {
            "product_id": product_id,
            "type": type or "click",
            "timestamp": timestamp if timestamp not in (None, "") else now_millis(),
        }

        def mutate(items: Items) -> Items:
            items.append(event)
            return items

        self.documents.update(self.path, mutate, f"Track click on {product_id}")
        logger.info("Tracked %s on %s", event["type"], product_id)
        return event
