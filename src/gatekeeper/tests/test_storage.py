import base64
import json
import unittest
from unittest.mock import MagicMock

import requests

from gatekeeper.errors import (
    ConflictError,
    NotFoundError,
    TransportError,
    UpstreamError,
)
from gatekeeper.storage import GitHubDocumentStore, InMemoryDocumentStore, blob_sha


def _response(status_code, payload=None, text=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload
    response.text = text if text is not None else json.dumps(payload or {})
    return response


def _file_payload(data: bytes, sha: str = "abc123") -> dict:
    return {
        "sha": sha,
        "encoding": "base64",
        "content": base64.b64encode(data).decode("ascii"),
    }


class InMemoryDocumentStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def test_read_missing_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            self.store.read("data/products.json")

    def test_version_is_git_blob_sha(self):
        # Well-known id of the empty git blob.
        self.assertEqual(blob_sha(b""), "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391")
        version = self.store.write("a.json", b"[]\n", None, "create")
        self.assertEqual(version, blob_sha(b"[]\n"))
        self.assertEqual(self.store.read("a.json").version, version)

    def test_stale_version_conflicts(self):
        first = self.store.write("a.json", b"[1]", None, "create")
        self.store.write("a.json", b"[2]", first, "someone else")
        with self.assertRaises(ConflictError):
            self.store.write("a.json", b"[3]", first, "stale")
        self.assertEqual(self.store.read("a.json").data, b"[2]")

    def test_unconditional_write_overwrites(self):
        self.store.write("a.json", b"[1]", None, "create")
        self.store.write("a.json", b"[2]", None, "overwrite")
        self.assertEqual(self.store.read("a.json").data, b"[2]")
        self.assertEqual(
            self.store.commits, [("a.json", "create"), ("a.json", "overwrite")]
        )

    def test_create_only_write_conflicts_when_document_exists(self):
        self.store.write("a.json", b"[1]", None, "other writer")
        with self.assertRaises(ConflictError):
            self.store.write("a.json", b"[2]", None, "create", create_only=True)
        self.assertEqual(self.store.read("a.json").data, b"[1]")

    def test_create_only_write_creates_missing_document(self):
        version = self.store.write("a.json", b"[]", None, "create", create_only=True)
        self.assertEqual(self.store.read("a.json").version, version)


class GitHubDocumentStoreTests(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.store = GitHubDocumentStore(
            token="t0ken",
            owner="octo",
            repo="catalog",
            branch="main",
            session=self.session,
        )
        self.url = "https://api.github.com/repos/octo/catalog/contents/data/products.json"

    def test_read_decodes_content_and_sha(self):
        self.session.request.return_value = _response(
            200, _file_payload(b'[{"id": "a"}]', sha="f00")
        )

        document = self.store.read("data/products.json")

        self.assertEqual(document.data, b'[{"id": "a"}]')
        self.assertEqual(document.version, "f00")
        method, url = self.session.request.call_args.args
        self.assertEqual((method, url), ("GET", self.url))
        kwargs = self.session.request.call_args.kwargs
        self.assertEqual(kwargs["params"], {"ref": "main"})
        self.assertEqual(kwargs["headers"]["Authorization"], "token t0ken")

    def test_read_large_file_uses_blob_api(self):
        self.session.request.side_effect = [
            _response(200, {"sha": "big1", "encoding": "none", "content": ""}),
            _response(200, {"content": base64.b64encode(b"[]").decode("ascii")}),
        ]

        document = self.store.read("data/products.json")

        self.assertEqual(document.data, b"[]")
        blob_url = self.session.request.call_args_list[1].args[1]
        self.assertTrue(blob_url.endswith("/repos/octo/catalog/git/blobs/big1"))

    def test_read_missing_raises_not_found(self):
        self.session.request.return_value = _response(404, {"message": "Not Found"})
        with self.assertRaises(NotFoundError):
            self.store.read("data/products.json")

    def test_auth_failure_is_upstream_error(self):
        self.session.request.return_value = _response(401, {"message": "Bad creds"})
        with self.assertRaises(UpstreamError) as ctx:
            self.store.read("data/products.json")
        self.assertEqual(ctx.exception.upstream_status, 401)
        self.assertIsInstance(ctx.exception, TransportError)

    def test_network_failure_is_transport_error(self):
        self.session.request.side_effect = requests.ConnectionError("boom")
        with self.assertRaises(TransportError):
            self.store.read("data/products.json")

    def test_conditional_write_sends_sha(self):
        self.session.request.return_value = _response(
            200, {"content": {"sha": "new1"}, "commit": {"sha": "c1"}}
        )

        version = self.store.write("data/products.json", b"[]", "old1", "Update")

        self.assertEqual(version, "new1")
        method, url = self.session.request.call_args.args
        self.assertEqual((method, url), ("PUT", self.url))
        body = self.session.request.call_args.kwargs["json"]
        self.assertEqual(body["sha"], "old1")
        self.assertEqual(body["branch"], "main")
        self.assertEqual(body["message"], "Update")
        self.assertEqual(base64.b64decode(body["content"]), b"[]")

    def test_stale_write_conflicts(self):
        self.session.request.return_value = _response(
            409, {"message": "data/products.json does not match old1"}
        )
        with self.assertRaises(ConflictError):
            self.store.write("data/products.json", b"[]", "old1", "Update")

    def test_unconditional_write_looks_up_current_sha(self):
        self.session.request.side_effect = [
            _response(200, _file_payload(b"[]", sha="cur1")),
            _response(200, {"content": {"sha": "new1"}, "commit": {"sha": "c1"}}),
        ]

        self.store.write("data/products.json", b"[1]", None, "Replace")

        put_body = self.session.request.call_args_list[1].kwargs["json"]
        self.assertEqual(put_body["sha"], "cur1")

    def test_first_write_creates_without_sha(self):
        self.session.request.side_effect = [
            _response(404, {"message": "Not Found"}),
            _response(201, {"content": {"sha": "new1"}, "commit": {"sha": "c1"}}),
        ]

        version = self.store.write("data/clicks.json", b"[]", None, "Create")

        self.assertEqual(version, "new1")
        put_body = self.session.request.call_args_list[1].kwargs["json"]
        self.assertNotIn("sha", put_body)

    def test_create_only_write_skips_sha_lookup(self):
        self.session.request.return_value = _response(
            201, {"content": {"sha": "new1"}, "commit": {"sha": "c1"}}
        )

        self.store.write("data/clicks.json", b"[]", None, "Create", create_only=True)

        self.assertEqual(self.session.request.call_count, 1)
        method, _ = self.session.request.call_args.args
        self.assertEqual(method, "PUT")
        self.assertNotIn("sha", self.session.request.call_args.kwargs["json"])

    def test_create_only_write_on_existing_file_conflicts(self):
        self.session.request.return_value = _response(
            422, {"message": "Invalid request.\n\n\"sha\" wasn't supplied."}
        )
        with self.assertRaises(ConflictError):
            self.store.write(
                "data/clicks.json", b"[]", None, "Create", create_only=True
            )


if __name__ == "__main__":
    unittest.main()
