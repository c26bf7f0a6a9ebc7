from __future__ import annotations

import time
from dataclasses import dataclass

import requests
from requests import exceptions as req_exc
from urllib3.exceptions import HTTPError as Urllib3Error

from .content import is_gzip_encoded
from .errors import TransportError
from .urls import normalize_url

DEFAULT_USER_AGENT = "site-mirror/0.1 (+https://pypi.org/project/site-mirror/)"


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    headers: dict[str, str]
    fetched_at: float
    body: bytes

    def header(self, name: str) -> str | None:
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None

    @property
    def content_type(self) -> str | None:
        return self.header("Content-Type")

    @property
    def content_encoding(self) -> str | None:
        return self.header("Content-Encoding")


class HttpClient:
    """Single-shot GET client.

    Bodies declared as gzip are returned still compressed so the caller owns
    the decode (and its fallback); every other encoding is left to requests.
    """

    def __init__(
        self,
        session: requests.Session,
        *,
        timeout_s: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._session = session
        self._timeout_s = timeout_s
        self._session.headers["User-Agent"] = user_agent

    def get(self, url: str) -> FetchResult:
        normalized = normalize_url(url)
        try:
            resp = self._session.get(normalized, timeout=self._timeout_s, stream=True)
            try:
                headers = {k: str(v) for k, v in resp.headers.items()}
                if is_gzip_encoded(resp.headers.get("Content-Encoding")):
                    body = resp.raw.read(decode_content=False)
                else:
                    body = resp.content
            finally:
                resp.close()
        except (req_exc.RequestException, Urllib3Error, OSError) as e:
            raise TransportError(f"Failed to fetch {normalized}: {e}") from e

        # Callers decide what a >= 400 status means.
        return FetchResult(
            url=normalized,
            final_url=str(resp.url),
            status_code=int(resp.status_code),
            headers=headers,
            fetched_at=time.time(),
            body=body,
        )
