"""
HTTP routes for the gatekeeper API.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends

from gatekeeper.analytics import aggregate
from gatekeeper.catalog import CatalogService, WisdomService
from gatekeeper.config import Settings, get_settings
from gatekeeper.dependencies import (
    get_catalog_service,
    get_content_generator,
    get_event_log,
    get_wisdom_service,
)
from gatekeeper.events import EventLog
from gatekeeper.generator import ContentGenerator, PromptSpec
from gatekeeper.schemas import (
    AnalyticsResponse,
    AppendProductResponse,
    AutoUpdateRequest,
    AutoUpdateResponse,
    ReplaceResponse,
    StatusResponse,
    TrackRequest,
    TrackResponse,
    WisdomListResponse,
)
from gatekeeper.security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=StatusResponse)
@router.get("/status", response_model=StatusResponse)
def health():
    return StatusResponse()


@router.get("/products")
def list_products(catalog: CatalogService = Depends(get_catalog_service)):
    return {"json": catalog.list()}


@router.post(
    "/products",
    response_model=AppendProductResponse,
    dependencies=[Depends(require_admin)],
)
def add_product(
    payload: Any = Body(None),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    Always appends; use /update-products to edit or remove entries.
    """
    product, products = catalog.append_entry(payload)
    return AppendProductResponse(product=product, count=len(products))


@router.post(
    "/update-products",
    response_model=ReplaceResponse,
    dependencies=[Depends(require_admin)],
)
def update_products(
    payload: Any = Body(None),
    catalog: CatalogService = Depends(get_catalog_service),
):
    products = catalog.replace_all(payload)
    return ReplaceResponse(count=len(products))


@router.post(
    "/auto-update",
    response_model=AutoUpdateResponse,
    dependencies=[Depends(require_admin)],
)
def auto_update(
    payload: Optional[AutoUpdateRequest] = None,
    generator: ContentGenerator = Depends(get_content_generator),
    catalog: CatalogService = Depends(get_catalog_service),
    settings: Settings = Depends(get_settings),
):
    payload = payload or AutoUpdateRequest()
    spec = PromptSpec(
        count=payload.count or settings.generated_count,
        theme=payload.theme,
        category=payload.category,
    )
    result = generator.generate(spec)
    products, added = catalog.merge_generated(result.products)
    return AutoUpdateResponse(
        added=added,
        fallback=result.fallback,
        products=result.products,
        count=len(products),
    )


@router.post("/track", response_model=TrackResponse)
@router.post("/track-click", response_model=TrackResponse)
def track_click(
    payload: Optional[TrackRequest] = None,
    events: EventLog = Depends(get_event_log),
):
    payload = payload or TrackRequest()
    event = events.append(
        payload.product_id, timestamp=payload.timestamp, type=payload.type
    )
    return TrackResponse(event=event)


@router.get("/analytics", response_model=AnalyticsResponse)
def analytics(
    catalog: CatalogService = Depends(get_catalog_service),
    events: EventLog = Depends(get_event_log),
    settings: Settings = Depends(get_settings),
):
    report = aggregate(
        catalog.list(), events.list(), window_days=settings.analytics_window_days
    )
    return AnalyticsResponse(**report.as_dict())


@router.get("/wisdom", response_model=WisdomListResponse)
def list_wisdom(wisdom: WisdomService = Depends(get_wisdom_service)):
    return WisdomListResponse(notes=wisdom.list())


@router.post(
    "/wisdom",
    response_model=WisdomListResponse,
    dependencies=[Depends(require_admin)],
)
def add_wisdom(
    payload: Any = Body(None),
    wisdom: WisdomService = Depends(get_wisdom_service),
):
    return WisdomListResponse(notes=wisdom.append(payload))


@router.post(
    "/update-wisdom",
    response_model=WisdomListResponse,
    dependencies=[Depends(require_admin)],
)
def update_wisdom(
    payload: Any = Body(None),
    wisdom: WisdomService = Depends(get_wisdom_service),
):
    return WisdomListResponse(notes=wisdom.replace_all(payload))
