"""
Product and wisdom collections stored as JSON documents.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Optional

from gatekeeper.config import Settings
from gatekeeper.documents import Items, JsonDocuments
from gatekeeper.errors import ValidationError

logger = logging.getLogger(__name__)

OPTIONAL_MEDIA_FIELDS = ("image2", "image3", "video")


def now_millis() -> int:
    return int(time.time() * 1000)


def date_added_key(item: dict) -> float:
    """Sort key for ``dateAdded``; anything that is not a number counts as 0."""
    if not isinstance(item, dict):
        return 0
    value = item.get("dateAdded")
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0
    return 0


def sort_newest_first(items: Iterable[dict]) -> Items:
    return sorted(items, key=date_added_key, reverse=True)


def require_objects(candidates: Any, what: str) -> Items:
    if not isinstance(candidates, list):
        raise ValidationError(f"{what} must be a JSON array")
    for i, item in enumerate(candidates):
        if not isinstance(item, dict):
            raise ValidationError(f"{what}[{i}] must be an object")
    return candidates


def require_object(candidate: Any, what: str) -> dict:
    if not isinstance(candidate, dict):
        raise ValidationError(f"{what} must be a JSON object")
    return candidate


class CollectionService:
    """List, append and bulk-replace for one JSON array document."""

    label = "items"

    def __init__(self, documents: JsonDocuments, path: str):
        self.documents = documents
        self.path = path

    def normalize(self, item: dict, now: int) -> dict:
        normalized = dict(item)
        if normalized.get("dateAdded") in (None, ""):
            normalized["dateAdded"] = now
        return normalized

    def list(self) -> Items:
        items, _ = self.documents.load(self.path)
        return sort_newest_first(items)

    def append(self, item: Any) -> Items:
        _, items = self.append_entry(item)
        return items

    def append_entry(self, item: Any) -> tuple[dict, Items]:
        """Append without de-duplication; returns the stored entry and sequence."""
        entry = self.normalize(require_object(item, self.label[:-1]), now_millis())

        def mutate(items: Items) -> Items:
            items.append(entry)
            return sort_newest_first(items)

        items = self.documents.update(
            self.path, mutate, f"Add {self.label[:-1]} via Gatekeeper"
        )
        return entry, items

    def prepare_replacement(self, items: Items) -> Items:
        return sort_newest_first(items)

    def preview_replacement(self, candidates: Any) -> Items:
        """Validate, normalize and order ``candidates`` without writing."""
        now = now_millis()
        normalized = [
            self.normalize(item, now) for item in require_objects(candidates, self.label)
        ]
        return self.prepare_replacement(normalized)

    def replace_all(self, candidates: Any) -> Items:
        items = self.preview_replacement(candidates)
        logger.info("Replacing %s with %d %s", self.path, len(items), self.label)
        return self.documents.replace(
            self.path, items, f"Update {self.label} via Gatekeeper"
        )


class CatalogService(CollectionService):
    """The products document: defaults, ordering and id de-duplication."""

    label = "products"

    def __init__(self, documents: JsonDocuments, settings: Settings):
        super().__init__(documents, settings.products_path)
        self.default_provider = settings.default_provider

    def normalize(self, item: dict, now: int) -> dict:
        product = super().normalize(item, now)
        if not product.get("provider"):
            product["provider"] = self.default_provider
        for name in OPTIONAL_MEDIA_FIELDS:
            if product.get(name) is None:
                product[name] = ""
        return product

    def prepare_replacement(self, items: Items) -> Items:
        # Newest entry wins when the same id appears more than once.
        seen: set = set()
        unique = []
        for product in sort_newest_first(items):
            product_id = product.get("id")
            if product_id is not None and product_id in seen:
                logger.info("Dropping duplicate product id %s", product_id)
                continue
            if product_id is not None:
                seen.add(product_id)
            unique.append(product)
        return unique

    def merge_generated(self, products: Items) -> tuple[Items, int]:
        """
        Append generated products whose ids are not already in the catalog.

        Returns the stored sequence and how many entries were added. Applying
        the same batch twice leaves the catalog unchanged the second time.
        """
        now = now_millis()
        batch = [self.normalize(p, now) for p in require_objects(products, "products")]
        added = 0

        def mutate(items: Items) -> Optional[Items]:
            nonlocal added
            added = 0
            known = {item.get("id") for item in items if item.get("id") is not None}
            for product in batch:
                product_id = product.get("id")
                if not product_id:
                    logger.warning("Skipping generated product without id")
                    continue
                if product_id in known:
                    continue
                known.add(product_id)
                items.append(product)
                added += 1
            return items if added else None

        items = self.documents.update(
            self.path, mutate, "Auto-update products via Gatekeeper"
        )
        logger.info("Merged %d of %d generated products", added, len(batch))
        return items, added


class WisdomService(CollectionService):
    """Free-form curated notes; same semantics as products minus id uniqueness."""

    label = "notes"

    def __init__(self, documents: JsonDocuments, settings: Settings):
        super().__init__(documents, settings.wisdom_path)

    def append(self, item: Any) -> Items:
        note = dict(require_object(item, "note"))
        note["dateAdded"] = now_millis()
        return super().append(note)
