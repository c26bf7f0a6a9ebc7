from __future__ import annotations


class MirrorError(Exception):
    """Base class for every error raised by site_mirror."""


class InvalidURLError(MirrorError):
    pass


class TransportError(MirrorError):
    pass


class HTTPStatusError(MirrorError):
    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"bad status {status_code} for {url}")
        self.url = url
        self.status_code = status_code


class DecodeError(MirrorError):
    pass


class PersistenceError(MirrorError):
    pass


class ParseError(MirrorError):
    pass
