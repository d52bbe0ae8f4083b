import http.client
import io
import json
import socket
import sys
import tempfile
import threading
import unittest
import urllib.error
import urllib.request
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rich.console import Console  # noqa: E402

from rfa.comments import PayloadError  # noqa: E402
from rfa.ignore_rules import IgnoreConfig  # noqa: E402
from rfa.server import (  # noqa: E402
    MAX_BODY_BYTES,
    ServerConfig,
    ServerState,
    create_server,
    decode_json_body,
    find_free_port,
)

DIFF = "diff --git a/x.txt b/x.txt\n--- a/x.txt\n+++ b/x.txt\n@@ -1,2 +1,2 @@\n keep\n-old\n+new"
PAYLOAD = {
    "diff": DIFF,
    "comments": [{"file": "x.txt", "startLine": 2, "endLine": 2, "side": "right", "body": "fix this"}],
}


def make_state(repo: Path) -> ServerState:
    return ServerState(
        repo=repo,
        output_dir=Path("rfa"),
        ignore_config=IgnoreConfig(),
        lock=threading.Lock(),
        console=Console(file=io.StringIO()),
    )


class TestServerState(unittest.TestCase):
    def test_submit_writes_artifacts_under_repo(self):
        with tempfile.TemporaryDirectory() as tempdir:
            repo = Path(tempdir)
            result = make_state(repo).submit(PAYLOAD)
            self.assertRegex(result["mdPath"], r"^rfa/comments_[0-9a-f]{8}\.md$")
            self.assertEqual(result["clipboardText"], "review my comments on these changes in @" + result["mdPath"])
            markdown = (repo / result["mdPath"]).read_text(encoding="utf-8")
            self.assertIn("### Line 2\n> +new\nfix this\n", markdown)
            self.assertTrue((repo / result["jsonPath"]).exists())

    def test_submit_rejects_bad_payload_without_writing(self):
        with tempfile.TemporaryDirectory() as tempdir:
            repo = Path(tempdir)
            with self.assertRaises(PayloadError):
                make_state(repo).submit({"comments": "nope"})
            self.assertFalse((repo / "rfa").exists())

    def test_decode_json_body(self):
        self.assertEqual(decode_json_body(b'{"a": 1}'), {"a": 1})
        with self.assertRaises(PayloadError):
            decode_json_body(b"{not json")
        with self.assertRaises(PayloadError):
            decode_json_body(b"\xff\xfe")

    def test_decode_json_body_rejects_pathological_input(self):
        with self.assertRaises(PayloadError):
            decode_json_body(b"[" * 100000)
        with self.assertRaises(PayloadError):
            decode_json_body(b'{"startLine": ' + b"1" * 5000 + b"}")

    def test_render_html_embeds_api_endpoints(self):
        with tempfile.TemporaryDirectory() as tempdir:
            html = make_state(Path(tempdir)).render_html()
        self.assertIn('"diffUrl": "/api/diff"', html)
        self.assertIn('"submitUrl": "/api/comments"', html)


class TestFindFreePort(unittest.TestCase):
    def test_skips_bound_port(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
            busy.bind(("127.0.0.1", 0))
            busy.listen()
            taken = busy.getsockname()[1]
            port = find_free_port("127.0.0.1", start=taken, attempts=5)
        self.assertNotEqual(port, taken)
        self.assertTrue(taken < port < taken + 5)

    def test_raises_when_nothing_is_free(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
            busy.bind(("127.0.0.1", 0))
            busy.listen()
            taken = busy.getsockname()[1]
            with self.assertRaises(RuntimeError):
                find_free_port("127.0.0.1", start=taken, attempts=1)


class TestHttpRoutes(unittest.TestCase):
    def setUp(self):
        self.tempdir = tempfile.TemporaryDirectory()
        self.repo = Path(self.tempdir.name)
        config = ServerConfig(repo=self.repo, host="127.0.0.1", port=0, open_browser=False)
        self.server, url = create_server(config, Console(file=io.StringIO()))
        self.assertTrue(url.startswith("http://localhost:"))
        self.base = f"http://127.0.0.1:{self.server.server_address[1]}"
        self.stdout = io.StringIO()
        self.redirect = redirect_stdout(self.stdout)
        self.redirect.__enter__()
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()

    def tearDown(self):
        self.server.shutdown()
        self.server.server_close()
        self.thread.join(timeout=5)
        self.redirect.__exit__(None, None, None)
        self.tempdir.cleanup()

    def _post(self, path: str, body: bytes):
        request = urllib.request.Request(
            self.base + path,
            data=body,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        return urllib.request.urlopen(request, timeout=5)

    def test_review_page_and_redirect(self):
        with urllib.request.urlopen(self.base + "/", timeout=5) as response:
            self.assertTrue(response.geturl().endswith("/review"))
            self.assertIn("text/html", response.headers["Content-Type"])
            self.assertIn("review-config-json", response.read().decode("utf-8"))

    def test_diff_route_returns_plain_text(self):
        with patch("rfa.server.get_git_diff", return_value=DIFF):
            with urllib.request.urlopen(self.base + "/api/diff", timeout=5) as response:
                self.assertIn("text/plain", response.headers["Content-Type"])
                self.assertEqual(response.read().decode("utf-8"), DIFF)

    def test_diff_route_reports_git_failure(self):
        with patch("rfa.server.get_git_diff", side_effect=RuntimeError("git diff HEAD failed: boom")):
            with self.assertRaises(urllib.error.HTTPError) as context:
                urllib.request.urlopen(self.base + "/api/diff", timeout=5)
        self.assertEqual(context.exception.code, 500)
        context.exception.close()

    def test_submit_comments(self):
        with self._post("/api/comments", json.dumps(PAYLOAD).encode("utf-8")) as response:
            result = json.loads(response.read().decode("utf-8"))
        self.assertEqual(set(result.keys()), {"jsonPath", "mdPath", "clipboardText"})
        self.assertTrue((self.repo / result["mdPath"]).exists())

    def test_submit_invalid_json_is_client_error(self):
        with self.assertRaises(urllib.error.HTTPError) as context:
            self._post("/api/comments", b"{oops")
        self.assertEqual(context.exception.code, 400)
        body = json.loads(context.exception.read().decode("utf-8"))
        context.exception.close()
        self.assertFalse(body["ok"])
        self.assertFalse((self.repo / "rfa").exists())

    def test_submit_huge_integer_is_client_error(self):
        body = b'{"comments":[{"file":"a","startLine":' + b"1" * 5000 + b"}]}"
        with self.assertRaises(urllib.error.HTTPError) as context:
            self._post("/api/comments", body)
        self.assertEqual(context.exception.code, 400)
        result = json.loads(context.exception.read().decode("utf-8"))
        context.exception.close()
        self.assertFalse(result["ok"])
        self.assertIn("Invalid JSON", result["error"])

    def test_submit_write_failure_is_server_error(self):
        (self.repo / "rfa").write_text("not a directory", encoding="utf-8")
        with self.assertRaises(urllib.error.HTTPError) as context:
            self._post("/api/comments", json.dumps(PAYLOAD).encode("utf-8"))
        self.assertEqual(context.exception.code, 500)
        result = json.loads(context.exception.read().decode("utf-8"))
        context.exception.close()
        self.assertFalse(result["ok"])
        self.assertIn("Failed to write review files", result["error"])

    def test_submit_oversized_body_is_rejected_before_reading(self):
        connection = http.client.HTTPConnection("127.0.0.1", self.server.server_address[1], timeout=5)
        try:
            connection.putrequest("POST", "/api/comments")
            connection.putheader("Content-Type", "application/json")
            connection.putheader("Content-Length", str(MAX_BODY_BYTES + 1))
            connection.endheaders()
            response = connection.getresponse()
            result = json.loads(response.read().decode("utf-8"))
        finally:
            connection.close()
        self.assertEqual(response.status, 413)
        self.assertFalse(result["ok"])
        self.assertFalse((self.repo / "rfa").exists())

    def test_unknown_route_is_not_found(self):
        with self.assertRaises(urllib.error.HTTPError) as context:
            urllib.request.urlopen(self.base + "/nope", timeout=5)
        self.assertEqual(context.exception.code, 404)
        context.exception.close()


if __name__ == "__main__":
    unittest.main()
