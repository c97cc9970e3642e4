"""
Versioned document storage backed by the GitHub contents API, plus an in-memory
implementation for development and tests.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import quote

import requests

from gatekeeper.errors import (
    ConflictError,
    NotFoundError,
    TransportError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionedDocument:
    data: bytes
    version: str


class RemoteDocumentStore(Protocol):
    """Defines the whole-document operations the services need."""

    def read(self, path: str) -> VersionedDocument:
        ...

    def write(
        self,
        path: str,
        data: bytes,
        version: Optional[str],
        message: str,
        create_only: bool = False,
    ) -> str:
        """
        Store ``data`` at ``path``. A ``version`` makes the write conditional on
        the stored version; ``create_only`` makes it fail if ``path`` exists.
        Both failures raise ``ConflictError``.
        """
        ...


def blob_sha(data: bytes) -> str:
    """Git blob SHA-1 of ``data``, the same token GitHub reports for a file."""
    header = f"blob {len(data)}\0".encode("utf-8")
    return hashlib.sha1(header + data).hexdigest()


@dataclass
class InMemoryDocumentStore:
    """Test double for the remote store with the same conflict semantics."""

    documents: dict = field(default_factory=dict)
    commits: list = field(default_factory=list)

    def __post_init__(self):
        self._lock = threading.Lock()

    def read(self, path: str) -> VersionedDocument:
        with self._lock:
            stored = self.documents.get(path)
        if stored is None:
            raise NotFoundError(path)
        return stored

    def write(
        self,
        path: str,
        data: bytes,
        version: Optional[str],
        message: str,
        create_only: bool = False,
    ) -> str:
        with self._lock:
            current = self.documents.get(path)
            if create_only and current is not None:
                raise ConflictError(f"{path} was created by another writer")
            if version is not None:
                if current is None or current.version != version:
                    raise ConflictError(f"{path} changed since version {version}")
            new_version = blob_sha(data)
            self.documents[path] = VersionedDocument(data=data, version=new_version)
            self.commits.append((path, message))
        return new_version


class GitHubDocumentStore:
    """
    Stores documents as files in a GitHub repository branch.

    The file's blob SHA is the version token. GitHub refuses a PUT whose ``sha``
    no longer matches the branch head, which is what turns stale writes into
    ``ConflictError``.
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        branch: str = "main",
        api_url: str = "https://api.github.com",
        user_agent: str = "catalog-gatekeeper",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._headers = {
            "Authorization": f"token {token}",
            "User-Agent": user_agent,
            "Accept": "application/vnd.github+json",
        }

    def _contents_url(self, path: str) -> str:
        return (
            f"{self.api_url}/repos/{self.owner}/{self.repo}"
            f"/contents/{quote(path.lstrip('/'))}"
        )

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self._session.request(
                method, url, headers=self._headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            logger.error("GitHub %s %s failed: %s", method, url, exc)
            raise TransportError(f"GitHub request failed: {exc}") from exc

    @staticmethod
    def _upstream_error(action: str, path: str, response: requests.Response):
        detail = response.text[:300]
        logger.error(
            "GitHub %s %s returned %s: %s", action, path, response.status_code, detail
        )
        return UpstreamError(
            f"GitHub {action} {path} failed with status {response.status_code}",
            upstream_status=response.status_code,
        )

    def read(self, path: str) -> VersionedDocument:
        response = self._request(
            "GET", self._contents_url(path), params={"ref": self.branch}
        )
        if response.status_code == 404:
            raise NotFoundError(path)
        if not response.ok:
            raise self._upstream_error("read", path, response)

        payload = response.json()
        sha = payload["sha"]
        if payload.get("encoding") == "base64" and payload.get("content") is not None:
            data = base64.b64decode(payload["content"])
        else:
            # Files above the inline size limit come back without content.
            data = self._read_blob(path, sha)
        return VersionedDocument(data=data, version=sha)

    def _read_blob(self, path: str, sha: str) -> bytes:
        url = f"{self.api_url}/repos/{self.owner}/{self.repo}/git/blobs/{sha}"
        response = self._request("GET", url)
        if not response.ok:
            raise self._upstream_error("blob read", path, response)
        return base64.b64decode(response.json()["content"])

    def _current_sha(self, path: str) -> Optional[str]:
        try:
            return self.read(path).version
        except NotFoundError:
            return None

    def write(
        self,
        path: str,
        data: bytes,
        version: Optional[str],
        message: str,
        create_only: bool = False,
    ) -> str:
        # Without a sha GitHub only creates; an existing file answers 422.
        if create_only:
            sha = None
        else:
            sha = version if version is not None else self._current_sha(path)
        body = {
            "message": message,
            "content": base64.b64encode(data).decode("ascii"),
            "branch": self.branch,
        }
        if sha:
            body["sha"] = sha

        response = self._request("PUT", self._contents_url(path), json=body)
        if response.status_code == 409 or (
            response.status_code == 422 and "sha" in response.text
        ):
            logger.warning("GitHub rejected stale write to %s (sha=%s)", path, sha)
            raise ConflictError(f"{path} changed since version {sha}")
        if not response.ok:
            raise self._upstream_error("write", path, response)

        result = response.json()
        logger.info(
            "Committed %s as %s: %s",
            path,
            (result.get("commit") or {}).get("sha"),
            message,
        )
        return result["content"]["sha"]
