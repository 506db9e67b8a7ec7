"""Shared fixtures: a stand-in for requests.Session so no test hits the network."""
import pytest


class FakeResponse:
    """Minimal requests.Response lookalike that records whether it was closed.

    Like requests, `text` falls back to ISO-8859-1 when the server sends no
    charset, so only `content` is safe to decode as UTF-8.
    """

    def __init__(self, body="", status_code=200, reason="OK", encoding="ISO-8859-1"):
        self.content = body.encode("utf-8") if isinstance(body, str) else body
        self.encoding = encoding
        self.status_code = status_code
        self.reason = reason
        self.closed = False

    @property
    def text(self):
        return self.content.decode(self.encoding, errors="replace")

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class FakeSession:
    """Records GET calls and replays a canned response or exception."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_session():
    """Factory: fake_session(body, status_code=200) or fake_session(error=exc).

    `body` may be str (sent as UTF-8) or raw bytes.
    """
    def _make(body="", status_code=200, reason="OK", error=None):
        return FakeSession(FakeResponse(body, status_code, reason), error)
    return _make


@pytest.fixture
def tls_files(tmp_path):
    """Readable cert, key and CA bundle files."""
    paths = {}
    for name in ("cert", "key", "cacert"):
        path = tmp_path / f"{name}.pem"
        path.write_text(f"-----BEGIN {name.upper()}-----\n")
        paths[name] = str(path)
    return paths
