from __future__ import annotations

import gzip

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from site_mirror.errors import TransportError
from site_mirror.http_client import FetchResult, HttpClient


class FakeResponse:
    def __init__(self, url, *, status=200, headers=None, body=b"", raw=None):
        self.url = url
        self.status_code = status
        self.headers = CaseInsensitiveDict(headers or {})
        self.content = body
        self._raw = raw if raw is not None else body
        self.closed = False

    @property
    def raw(self):
        return self

    def read(self, decode_content=True):
        assert decode_content is False
        return self._raw

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, response=None, error=None):
        self.headers: dict[str, str] = {}
        self.response = response
        self.error = error
        self.requests: list[tuple[str, dict]] = []

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def test_get_returns_body_and_headers():
    resp = FakeResponse(
        "http://ex.com/",
        headers={"content-type": "text/html"},
        body=b"<html></html>",
    )
    session = FakeSession(resp)
    client = HttpClient(session, timeout_s=3.5, user_agent="test-agent")

    res = client.get("HTTP://EX.com/#frag")

    assert session.requests == [("http://ex.com/", {"timeout": 3.5, "stream": True})]
    assert session.headers["User-Agent"] == "test-agent"
    assert res.url == "http://ex.com/"
    assert res.status_code == 200
    assert res.body == b"<html></html>"
    assert res.content_type == "text/html"
    assert resp.closed


def test_gzip_bodies_are_returned_undecoded():
    packed = gzip.compress(b"body{}")
    resp = FakeResponse(
        "http://ex.com/s.css",
        headers={"Content-Type": "text/css", "Content-Encoding": "gzip"},
        body=b"should not be used",
        raw=packed,
    )
    res = HttpClient(FakeSession(resp)).get("http://ex.com/s.css")

    assert res.body == packed
    assert res.content_encoding == "gzip"


def test_error_statuses_are_returned_not_raised():
    resp = FakeResponse("http://ex.com/missing", status=404, body=b"nope")
    res = HttpClient(FakeSession(resp)).get("http://ex.com/missing")
    assert res.status_code == 404


@pytest.mark.parametrize(
    "error",
    [
        requests.exceptions.ConnectionError("refused"),
        requests.exceptions.Timeout("slow"),
        requests.exceptions.ChunkedEncodingError("cut off"),
    ],
)
def test_transport_failures_raise_transport_error(error):
    client = HttpClient(FakeSession(error=error))
    with pytest.raises(TransportError, match="http://ex.com/"):
        client.get("http://ex.com/")


def test_fetch_result_header_lookup_is_case_insensitive():
    res = FetchResult(
        url="http://ex.com/",
        final_url="http://ex.com/",
        status_code=200,
        headers={"content-ENCODING": "gzip"},
        fetched_at=0.0,
        body=b"",
    )
    assert res.content_encoding == "gzip"
    assert res.content_type is None
    assert res.header("X-Missing") is None
