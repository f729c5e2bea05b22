from __future__ import annotations


class CompressionError(Exception):
    pass


class ImageDecodeError(CompressionError):
    pass


class CanvasError(CompressionError):
    pass


class EncodeError(CompressionError):
    pass


class RemoteFetchError(CompressionError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to download image {url}: {reason}")
        self.url = url
        self.reason = reason
