"""In-memory stand-ins for requests.Session used by probe and orchestrator tests."""

from __future__ import annotations

import threading
from types import SimpleNamespace

import requests
from requests.structures import CaseInsensitiveDict


class FakeRawHeaders:
    def __init__(self, cookies):
        self._cookies = list(cookies)

    def getlist(self, name):
        return list(self._cookies) if name.lower() == "set-cookie" else []


class FakeResponse:
    """
    Streams its body like requests does with stream=True. bytes_read counts
    what a caller actually pulled through iter_content.
    """

    def __init__(self, status_code=200, text="", headers=None, set_cookies=None, url="",
                 content=None, encoding="utf-8"):
        self.status_code = status_code
        self.content = content if content is not None else text.encode("utf-8")
        self.encoding = encoding
        self.url = url
        self.headers = CaseInsensitiveDict(headers or {})
        cookies = list(set_cookies or [])
        if cookies:
            # what requests does with repeated headers
            self.headers["Set-Cookie"] = ", ".join(cookies)
        self.raw = SimpleNamespace(headers=FakeRawHeaders(cookies))
        self.bytes_read = 0
        self.closed = False

    def iter_content(self, chunk_size=1):
        for offset in range(0, len(self.content), chunk_size):
            chunk = self.content[offset:offset + chunk_size]
            self.bytes_read += len(chunk)
            yield chunk

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class FakeSite:
    """
    Answers requests from canned responses and records each one.

    Lookup order: rules added with on() (first match wins), then exact
    (method, url) routes, then url-only routes, then the default response.
    A rule's response may be an exception instance, which is raised.
    """

    def __init__(self, default=None):
        self.default = default if default is not None else FakeResponse(404)
        self.routes = {}
        self.rules = []
        self.requests = []
        self.sessions_opened = 0
        self._lock = threading.Lock()

    def add(self, url, response, method=None):
        self.routes[(method, url)] = response
        return self

    def on(self, predicate, response):
        self.rules.append((predicate, response))
        return self

    def respond(self, method, url, **kwargs):
        with self._lock:
            self.requests.append((method, url, kwargs))

        for predicate, response in self.rules:
            if predicate(method, url):
                return self._deliver(response)
        if (method, url) in self.routes:
            return self._deliver(self.routes[(method, url)])
        if (None, url) in self.routes:
            return self._deliver(self.routes[(None, url)])
        return self._deliver(self.default)

    @staticmethod
    def _deliver(response):
        if isinstance(response, BaseException):
            raise response
        return response

    def session(self):
        with self._lock:
            self.sessions_opened += 1
        return FakeSession(self)

    def urls(self, method=None):
        return [u for m, u, _ in self.requests if method is None or m == method]


class FakeSession:
    def __init__(self, site: FakeSite):
        self.site = site
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def close(self):
        self.closed = True

    def get(self, url, **kwargs):
        return self.site.respond("GET", url, **kwargs)

    def head(self, url, **kwargs):
        return self.site.respond("HEAD", url, **kwargs)


def connection_error(message="connection refused"):
    return requests.ConnectionError(message)


SECURE_HEADERS = {
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
    "Content-Security-Policy": "default-src 'self'",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-XSS-Protection": "1; mode=block",
    "Permissions-Policy": "geolocation=()",
}
