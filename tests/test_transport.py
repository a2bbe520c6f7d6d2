"""
Tests for fetch scheduling, HEAD checks and the response cache.
"""

import tempfile
import threading
import unittest
from unittest.mock import MagicMock, patch

import requests

from wp_static.core.transport import FetchedResource, ResponseCache, Transport
from wp_static.errors import ForeignDomainError, TransportError


def _response(url, status=200, body=b"", content_type="text/html"):
    resp = MagicMock()
    resp.url = url
    resp.status_code = status
    resp.ok = status < 400
    resp.content = body
    resp.headers = {"Content-Type": content_type}
    return resp


def _session(pages, head_status=None):
    """Session whose GET serves *pages* (url -> body); unknown URLs 404."""
    session = MagicMock()

    def get(url, **kwargs):
        if url in pages:
            return _response(url, body=pages[url])
        return _response(url, status=404)

    session.get.side_effect = get
    session.head.side_effect = lambda url, **kw: _response(url, status=head_status or 200)
    return session


class TestSequentialTransport(unittest.TestCase):
    def test_fifo_order_and_callbacks(self):
        pages = {"https://example.com/a": b"A", "https://example.com/b": b"B"}
        seen: list[FetchedResource] = []
        errors: list[TransportError] = []
        transport = Transport(_session(pages), "example.com", seen.append, errors.append)

        transport.visit("https://example.com/a")
        transport.visit("https://example.com/b")
        transport.visit("https://example.com/missing")
        transport.wait()

        self.assertEqual([r.body for r in seen], [b"A", b"B"])
        self.assertTrue(all(r.method == "GET" for r in seen))
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].status, 404)

    def test_work_scheduled_from_callback(self):
        pages = {"https://example.com/": b"root", "https://example.com/child": b"c"}
        seen: list[str] = []
        transport = None

        def on_response(res):
            seen.append(res.url)
            if res.url.endswith("/"):
                transport.visit("https://example.com/child")

        transport = Transport(_session(pages), "example.com", on_response)
        transport.visit("https://example.com/")
        transport.wait()
        self.assertEqual(seen, ["https://example.com/", "https://example.com/child"])

    def test_foreign_host_rejected(self):
        transport = Transport(_session({}), "example.com", lambda r: None)
        with self.assertRaises(ForeignDomainError):
            transport.visit("https://cdn.other.net/x.js")

    def test_callback_exception_does_not_stop_queue(self):
        pages = {"https://example.com/a": b"A", "https://example.com/b": b"B"}
        seen: list[str] = []

        def on_response(res):
            seen.append(res.url)
            raise RuntimeError("boom")

        transport = Transport(_session(pages), "example.com", on_response)
        transport.visit("https://example.com/a")
        transport.visit("https://example.com/b")
        with self.assertLogs("wp-static", level="ERROR"):
            transport.wait()
        self.assertEqual(len(seen), 2)

    def test_close_closes_session(self):
        session = _session({})
        with Transport(session, "example.com", lambda r: None):
            pass
        session.close.assert_called_once()


class TestParallelTransport(unittest.TestCase):
    def test_all_pages_fetched(self):
        pages = {f"https://example.com/p{i}": str(i).encode() for i in range(20)}
        seen: list[str] = []
        lock = threading.Lock()

        def on_response(res):
            with lock:
                seen.append(res.url)

        transport = Transport(_session(pages), "example.com", on_response,
                              parallel=True, workers=4)
        try:
            for url in pages:
                transport.visit(url)
            transport.wait()
        finally:
            transport.close()
        self.assertEqual(sorted(seen), sorted(pages))

    def test_nested_scheduling_waits_for_children(self):
        pages = {"https://example.com/": b"root"}
        pages.update({f"https://example.com/c{i}": b"c" for i in range(5)})
        seen: list[str] = []
        lock = threading.Lock()
        transport = None

        def on_response(res):
            with lock:
                seen.append(res.url)
            if res.url.endswith("/"):
                for i in range(5):
                    transport.visit(f"https://example.com/c{i}")

        transport = Transport(_session(pages), "example.com", on_response,
                              parallel=True, workers=3)
        try:
            transport.visit("https://example.com/")
            transport.wait()
        finally:
            transport.close()
        self.assertEqual(len(seen), 6)


class TestFetch(unittest.TestCase):
    def test_head_failure_skips_get(self):
        session = _session({"https://example.com/x": b"x"}, head_status=404)
        transport = Transport(session, "example.com", lambda r: None, check_head=True)
        with self.assertRaises(TransportError) as ctx:
            transport.fetch("https://example.com/x")
        self.assertEqual(ctx.exception.status, 404)
        session.get.assert_not_called()

    def test_head_method_not_allowed_is_inconclusive(self):
        session = _session({"https://example.com/x": b"x"}, head_status=405)
        transport = Transport(session, "example.com", lambda r: None, check_head=True)
        self.assertEqual(transport.fetch("https://example.com/x").body, b"x")

    def test_head_disabled(self):
        session = _session({"https://example.com/x": b"x"})
        transport = Transport(session, "example.com", lambda r: None, check_head=False)
        transport.fetch("https://example.com/x")
        session.head.assert_not_called()

    def test_request_exception(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("refused")
        transport = Transport(session, "example.com", lambda r: None)
        with self.assertRaises(TransportError):
            transport.fetch("https://example.com/x")

    def test_offsite_redirect_rejected(self):
        session = MagicMock()
        session.get.return_value = _response("https://evil.com/landing", body=b"x")
        transport = Transport(session, "example.com", lambda r: None)
        with self.assertRaises(TransportError):
            transport.fetch("https://example.com/go")

    def test_same_site_redirect_reports_final_url(self):
        session = MagicMock()
        session.get.return_value = _response("https://example.com/new/", body=b"n")
        transport = Transport(session, "example.com", lambda r: None)
        res = transport.fetch("https://example.com/old")
        self.assertEqual(res.url, "https://example.com/new/")

    def test_content_type_recorded(self):
        session = MagicMock()
        session.get.return_value = _response(
            "https://example.com/s.css", body=b"a{}", content_type="text/css")
        transport = Transport(session, "example.com", lambda r: None)
        self.assertEqual(transport.fetch("https://example.com/s.css").content_type, "text/css")


class TestResponseCache(unittest.TestCase):
    def test_second_fetch_served_from_disk(self):
        with tempfile.TemporaryDirectory() as tmp:
            session = _session({"https://example.com/a": b"A"})
            transport = Transport(session, "example.com", lambda r: None, cache_dir=tmp)
            first = transport.fetch("https://example.com/a")
            second = transport.fetch("https://example.com/a")
            self.assertFalse(first.from_cache)
            self.assertTrue(second.from_cache)
            self.assertEqual(second.body, b"A")
            self.assertEqual(second.content_type, "text/html")
            self.assertEqual(session.get.call_count, 1)

    def test_miss_returns_none(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertIsNone(ResponseCache(tmp).get("https://example.com/none"))

    def test_unwritable_cache_still_delivers_response(self):
        with tempfile.TemporaryDirectory() as tmp:
            seen: list[FetchedResource] = []
            errors: list[TransportError] = []
            transport = Transport(_session({"https://example.com/a": b"A"}), "example.com",
                                  seen.append, errors.append, cache_dir=tmp)
            with patch.object(ResponseCache, "put", side_effect=OSError(28, "No space left")):
                with self.assertLogs("wp-static", level="WARNING") as cm:
                    transport.visit("https://example.com/a")
                    transport.wait()
            self.assertEqual([r.body for r in seen], [b"A"])
            self.assertEqual(errors, [])
            self.assertTrue(any("[CACHE]" in m for m in cm.output))

    def test_errors_not_cached(self):
        with tempfile.TemporaryDirectory() as tmp:
            transport = Transport(_session({}), "example.com", lambda r: None, cache_dir=tmp)
            with self.assertRaises(TransportError):
                transport.fetch("https://example.com/missing")
            self.assertIsNone(transport.cache.get("https://example.com/missing"))


if __name__ == "__main__":
    unittest.main()
