"""
Error taxonomy shared by the store, the services and the HTTP layer.
"""

from __future__ import annotations

from typing import Optional


class GatekeeperError(Exception):
    """Base class for every error the service raises on purpose."""

    status_code: int = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotFoundError(GatekeeperError):
    """The requested document does not exist yet (cold start)."""

    status_code = 404


class ValidationError(GatekeeperError):
    """Caller input is malformed. The message names the offending field."""

    status_code = 400


class ForbiddenError(GatekeeperError):
    """The shared admin secret was missing or wrong."""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ConflictError(GatekeeperError):
    """A conditional write lost the race against another writer."""

    status_code = 409


class TransportError(GatekeeperError):
    """The remote could not be reached."""

    status_code = 502


class UpstreamError(TransportError):
    """The remote answered, but with an auth failure or other error status."""

    def __init__(self, message: str = "", upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class DocumentFormatError(GatekeeperError):
    """A stored document is not a UTF-8 JSON array."""

    status_code = 500
