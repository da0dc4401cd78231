import http.client
import io
import urllib.error

import pytest

from issue_bot import images
from issue_bot.errors import ImageFetchError


class FakeResponse(io.BytesIO):
    def __init__(self, data, content_type="image/png", status=200):
        super().__init__(data)
        self.status = status
        self.headers = {"Content-Type": content_type}


def test_is_http_url():
    assert images.is_http_url("https://cdn.discordapp.com/a.png")
    assert not images.is_http_url("ftp://example.com/a.png")
    assert not images.is_http_url("not a url")


def test_allowlisted():
    assert images.allowlisted("https://cdn.discordapp.com/a.png", ["discordapp.com"])
    assert not images.allowlisted("https://evil.com/a.png", ["discordapp.com"])
    assert images.allowlisted("https://anything.example/a.png", [])


def test_fetch_image_encodes_base64(monkeypatch):
    monkeypatch.setattr(
        "urllib.request.urlopen",
        lambda req, timeout: FakeResponse(b"hello", "image/png; charset=binary"),
    )
    img = images.fetch_image("https://cdn.example.com/a.png", max_bytes=100)
    assert img.media_type == "image/png"
    assert img.data_b64 == "aGVsbG8="


@pytest.mark.parametrize(
    "response,message",
    [
        (FakeResponse(b"<html>", "text/html"), "unsupported content type text/html"),
        (FakeResponse(b"x" * 11), "image larger than 10 bytes"),
    ],
)
def test_fetch_image_rejects(monkeypatch, response, message):
    monkeypatch.setattr("urllib.request.urlopen", lambda req, timeout: response)
    with pytest.raises(ImageFetchError, match=message):
        images.fetch_image("https://cdn.example.com/a.png", max_bytes=10)


def test_fetch_image_http_error(monkeypatch):
    def boom(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 404, "Not Found", {}, None)

    monkeypatch.setattr("urllib.request.urlopen", boom)
    with pytest.raises(ImageFetchError, match="HTTP 404"):
        images.fetch_image("https://cdn.example.com/gone.png", max_bytes=10)


class TruncatedResponse(FakeResponse):
    def read(self, *args):
        raise http.client.IncompleteRead(b"abcd", 100)


def test_fetch_image_connection_dropped_mid_body(monkeypatch):
    monkeypatch.setattr("urllib.request.urlopen", lambda req, timeout: TruncatedResponse(b""))
    with pytest.raises(ImageFetchError, match="IncompleteRead"):
        images.fetch_image("https://cdn.example.com/a.png", max_bytes=10)


def test_fetch_image_invalid_url(monkeypatch):
    def boom(req, timeout):
        raise http.client.InvalidURL("nonnumeric port: 'abc'")

    monkeypatch.setattr("urllib.request.urlopen", boom)
    with pytest.raises(ImageFetchError, match="nonnumeric port"):
        images.fetch_image("http://cdn.example.com:abc/a.png", max_bytes=10)
