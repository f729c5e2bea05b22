import pytest
import requests

from autocompress.core import remote
from autocompress.core.errors import RemoteFetchError
from autocompress.core.remote import compress_remote, fetch_source, file_name_from_url, is_already_webp


class FakeResponse:
    def __init__(self, content: bytes = b"", status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_webp_urls_are_skipped(monkeypatch):
    def unexpected(*_args, **_kwargs):
        raise AssertionError("should not download")

    monkeypatch.setattr(remote.requests, "get", unexpected)

    assert is_already_webp("https://cdn.example.com/a/PHOTO.WEBP")
    assert compress_remote("https://cdn.example.com/a/photo.webp") is None


def test_fetch_and_compress(monkeypatch, make_jpeg):
    source = make_jpeg(size=(100, 80))
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse(source.data)

    monkeypatch.setattr(remote.requests, "get", fake_get)

    result = compress_remote("https://cdn.example.com/projects/villa%20one.jpg?token=1", timeout=5)

    assert calls == [("https://cdn.example.com/projects/villa%20one.jpg?token=1", 5)]
    assert result is not None
    assert result.original_size == source.size
    assert (result.width, result.height) == (100, 80)


def test_http_errors_raise_remote_fetch_error(monkeypatch):
    monkeypatch.setattr(remote.requests, "get", lambda url, timeout: FakeResponse(status_code=404))

    with pytest.raises(RemoteFetchError) as excinfo:
        fetch_source("https://cdn.example.com/missing.jpg")

    assert excinfo.value.url == "https://cdn.example.com/missing.jpg"


def test_empty_body_raises(monkeypatch):
    monkeypatch.setattr(remote.requests, "get", lambda url, timeout: FakeResponse(b""))

    with pytest.raises(RemoteFetchError):
        fetch_source("https://cdn.example.com/empty.jpg")


def test_file_name_from_url():
    assert file_name_from_url("https://cdn.example.com/projects/villa%20one.jpg?x=1") == "villa one.jpg"
    assert file_name_from_url("https://cdn.example.com/") == "image"
