"""
Product proposals from Gemini, with sanitation and a fixed fallback set.

When the model output cannot be used, the generator returns seed products whose
ids start with ``fallback-``; genuinely generated entries always start with
``gen-``. Transport and auth failures are not masked by the fallback.
"""

from __future__ import annotations

import copy
import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from gatekeeper.config import Settings
from gatekeeper.models import gemini

logger = logging.getLogger(__name__)

CATEGORIES = ("Air", "Sleep", "Body", "Mind", "Home")
GENERATED_ID_PREFIX = "gen-"
FALLBACK_ID_PREFIX = "fallback-"

FALLBACK_PRODUCTS = [
    {
        "id": "fallback-001",
        "title": "HEPA Desktop Air Purifier",
        "category": "Air",
        "image": "",
        "description": "Compact three-stage filter that keeps a bedroom or office "
        "air fresh with a whisper-quiet night mode.",
        "buy_link": "",
    },
    {
        "id": "fallback-002",
        "title": "Weighted Sleep Mask",
        "category": "Sleep",
        "image": "",
        "description": "Contoured blackout mask with gentle weight to help you "
        "fall asleep faster and stay asleep.",
        "buy_link": "",
    },
]

_FENCE_RE = re.compile(r"```[\w-]*\s*(.*?)```", re.DOTALL)


@dataclass
class PromptSpec:
    count: int = 3
    theme: Optional[str] = None
    category: Optional[str] = None


@dataclass
class GenerationResult:
    products: list[dict] = field(default_factory=list)
    fallback: bool = False


def fallback_products() -> list[dict]:
    return copy.deepcopy(FALLBACK_PRODUCTS)


def strip_code_fences(text: str) -> str:
    match = _FENCE_RE.search(text)
    return match.group(1).strip() if match else text.strip()


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")[:48]


def repair_product(candidate: Any) -> Optional[dict]:
    """Return a cleaned product, or None when the entry is unusable."""
    if not isinstance(candidate, dict):
        return None
    title = candidate.get("title")
    if not isinstance(title, str) or not title.strip():
        return None

    product = {k: v for k, v in candidate.items() if v is not None}
    product["title"] = title.strip()
    raw_id = str(candidate.get("id") or "").strip() or _slug(title) or uuid.uuid4().hex[:12]
    if not raw_id.startswith(GENERATED_ID_PREFIX):
        raw_id = GENERATED_ID_PREFIX + raw_id
    product["id"] = raw_id
    for name in ("category", "image", "description", "buy_link"):
        product[name] = str(product.get(name) or "")
    return product


def parse_generated(text: str, limit: Optional[int] = None) -> list[dict]:
    try:
        value = json.loads(strip_code_fences(text))
    except json.JSONDecodeError:
        logger.warning("Generated text is not JSON: %.200s", text)
        return []
    if isinstance(value, dict) and isinstance(value.get("products"), list):
        value = value["products"]
    if not isinstance(value, list):
        return []

    products = [p for p in (repair_product(item) for item in value) if p]
    return products[:limit] if limit else products


def build_prompt(spec: PromptSpec) -> str:
    categories = spec.category or ", ".join(CATEGORIES)
    theme = f" The theme is: {spec.theme}." if spec.theme else ""
    return (
        "You curate a wellness and home products catalog."
        f"{theme} Propose {spec.count} new products. Respond with only a JSON "
        "array; each element is an object with the string keys "
        '"id" (short kebab-case slug), "title", "category" '
        f"(one of: {categories}), \"description\" (one or two sentences), "
        '"image" (an https image URL or empty string) and "buy_link" '
        "(an https product URL or empty string)."
    )


class ContentGenerator:
    def __init__(
        self,
        settings: Settings,
        predict: Callable[..., str] = gemini.call_predict,
    ):
        self.api_key = settings.gemini_api_key
        self.model = settings.gemini_model
        self.default_count = settings.generated_count
        self._predict = predict

    def generate(self, spec: Optional[PromptSpec] = None) -> GenerationResult:
        spec = spec or PromptSpec(count=self.default_count)
        if not self.api_key:
            logger.warning("No Gemini API key configured, using fallback products")
            return GenerationResult(products=fallback_products(), fallback=True)

        try:
            text = self._predict(
                build_prompt(spec), api_key=self.api_key, model=self.model
            )
        except gemini.GeminiInvalidResponseException:
            text = ""

        products = parse_generated(text, limit=spec.count) if text else []
        if not products:
            logger.warning("Gemini output unusable, using fallback products")
            return GenerationResult(products=fallback_products(), fallback=True)
        return GenerationResult(products=products)
