from __future__ import annotations

import logging
from urllib.parse import unquote, urlparse

import requests

from autocompress.core.errors import RemoteFetchError
from autocompress.core.models import CompressOptions, CompressResult, SourceFile
from autocompress.core.renderer import compress_image

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def is_already_webp(url: str) -> bool:
    return ".webp" in url.lower()


def file_name_from_url(url: str) -> str:
    path = unquote(urlparse(url).path)
    name = path.rstrip("/").rsplit("/", 1)[-1]
    return name or "image"


def fetch_source(url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> SourceFile:
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as error:
        raise RemoteFetchError(url, str(error)) from error

    if not response.content:
        raise RemoteFetchError(url, "empty response body")

    logger.debug("Downloaded %s (%d bytes)", url, len(response.content))
    return SourceFile(name=file_name_from_url(url), data=response.content)


def compress_remote(
    url: str,
    options: CompressOptions | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> CompressResult | None:
    """Download ``url`` and compress it; returns None when it is already WebP."""
    if is_already_webp(url):
        logger.info("Image is already in WEBP format, skipping conversion: %s", url)
        return None

    source = fetch_source(url, timeout=timeout)
    return compress_image(source, options)
