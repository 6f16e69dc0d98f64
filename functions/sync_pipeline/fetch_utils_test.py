import time
import unittest
from unittest.mock import MagicMock

import requests

from shared.errors import FetchExhausted
from sync_pipeline.fetch_utils import Fetcher


def _response(payload=None, status_error=None, content=b"", headers=None):
    response = MagicMock()
    if status_error:
        response.raise_for_status.side_effect = status_error
    response.json.return_value = payload
    response.content = content
    response.headers = headers or {}
    return response


class FetcherTest(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.sleeps = []
        self.fetcher = Fetcher(
            "https://upstream.test/",
            base_delay=2.0,
            session=self.session,
            sleep=self.sleeps.append,
        )

    def test_api_url_quotes_segments_and_encodes_params(self):
        self.assertEqual(
            self.fetcher.api_url("collection", "Pets"),
            "https://upstream.test/api/collection/Pets",
        )
        self.assertEqual(
            self.fetcher.api_url("clan", "A B/C"),
            "https://upstream.test/api/clan/A%20B%2FC",
        )
        self.assertEqual(
            self.fetcher.api_url("clans", params={"page": 2, "pageSize": 100}),
            "https://upstream.test/api/clans?page=2&pageSize=100",
        )

    def test_returns_payload_on_first_success(self):
        self.session.get.return_value = _response({"status": "ok", "data": [1]})
        self.assertEqual(
            self.fetcher.fetch_json("https://upstream.test/api/rap"),
            {"status": "ok", "data": [1]},
        )
        self.assertEqual(self.sleeps, [])
        self.session.get.assert_called_once_with(
            "https://upstream.test/api/rap", timeout=self.fetcher.timeout
        )

    def test_retries_with_linear_backoff(self):
        self.session.get.side_effect = [
            requests.ConnectionError("reset"),
            _response(status_error=requests.HTTPError("502 Bad Gateway")),
            _response({"data": "ok"}),
        ]
        payload = self.fetcher.fetch_json("https://upstream.test/api/exists")
        self.assertEqual(payload, {"data": "ok"})
        self.assertEqual(self.sleeps, [2.0, 4.0])

    def test_raises_after_last_attempt_with_reason(self):
        self.session.get.side_effect = requests.Timeout("read timed out")
        with self.assertRaises(FetchExhausted) as ctx:
            self.fetcher.fetch_json("https://upstream.test/api/clans")
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIn("read timed out", ctx.exception.reason)
        self.assertEqual(self.session.get.call_count, 3)
        # No sleep after the final attempt.
        self.assertEqual(self.sleeps, [2.0, 4.0])

    def test_invalid_json_counts_as_failure(self):
        bad = _response()
        bad.json.side_effect = ValueError("Expecting value")
        self.session.get.side_effect = [bad, _response([1, 2])]
        self.assertEqual(self.fetcher.fetch_json("https://upstream.test/x"), [1, 2])
        self.assertEqual(self.sleeps, [2.0])

    def test_elapsed_time_covers_backoff(self):
        base_delay = 0.02
        fetcher = Fetcher(
            "https://upstream.test", base_delay=base_delay, session=self.session
        )
        self.session.get.side_effect = [
            requests.ConnectionError("one"),
            requests.ConnectionError("two"),
            _response({"data": 1}),
        ]
        start = time.monotonic()
        self.assertEqual(fetcher.fetch_json("https://upstream.test/x"), {"data": 1})
        self.assertGreaterEqual(time.monotonic() - start, base_delay * 1 + base_delay * 2)

    def test_fetch_bytes_returns_content_and_type(self):
        self.session.get.return_value = _response(
            content=b"\x89PNG", headers={"Content-Type": "image/png"}
        )
        content, content_type = self.fetcher.fetch_bytes("https://img.test/1")
        self.assertEqual(content, b"\x89PNG")
        self.assertEqual(content_type, "image/png")


if __name__ == "__main__":
    unittest.main()
