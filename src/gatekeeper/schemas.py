"""
Pydantic schemas for the gatekeeper API.
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    ok: Literal[True] = True


class AppendProductResponse(BaseModel):
    ok: Literal[True] = True
    product: dict
    count: int


class ReplaceResponse(BaseModel):
    ok: Literal[True] = True
    count: int


class AutoUpdateRequest(BaseModel):
    theme: Optional[str] = Field(default=None, max_length=200)
    count: Optional[int] = Field(default=None, ge=1, le=10)
    category: Optional[str] = Field(default=None, max_length=64)


class AutoUpdateResponse(BaseModel):
    ok: Literal[True] = True
    added: int
    fallback: bool
    products: list[dict]
    count: int


class TrackRequest(BaseModel):
    # Left optional so a missing id is reported as a 400, not a schema 422.
    product_id: Optional[str] = None
    type: Optional[str] = Field(default=None, max_length=64)
    timestamp: Optional[Union[int, float, str]] = None


class TrackResponse(BaseModel):
    ok: Literal[True] = True
    event: dict


class AnalyticsResponse(BaseModel):
    total_clicks: int
    stats: dict[str, int]
    top: Optional[str] = None
    bottom: Optional[str] = None
    categories: dict[str, int]
    window_days: int
    recent_clicks: int
    daily: dict[str, int]
    insights: list[str]


class WisdomListResponse(BaseModel):
    notes: list[dict]
