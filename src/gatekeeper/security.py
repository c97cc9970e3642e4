"""
Shared-secret guard for mutating routes.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Depends, Header

from gatekeeper.config import Settings, get_settings
from gatekeeper.errors import ForbiddenError

logger = logging.getLogger(__name__)

ADMIN_SECRET_HEADER = "x-admin-secret"


class AccessGuard:
    def __init__(self, secret: Optional[str]):
        self._secret = secret or ""

    def authorize(self, provided: Optional[str]) -> bool:
        # An unset secret locks every mutating route.
        if not self._secret or not provided:
            return False
        return hmac.compare_digest(
            provided.encode("utf-8"), self._secret.encode("utf-8")
        )


def require_admin(
    x_admin_secret: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not AccessGuard(settings.admin_secret).authorize(x_admin_secret):
        logger.warning("Rejected mutating request with a missing or bad secret")
        raise ForbiddenError()
