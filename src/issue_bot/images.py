"""
Fetch collected image references for the completion payload.

Images are read by URL and inlined as base64; nothing is re-hosted.
"""

from __future__ import annotations

import base64
import http.client
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Iterable
from dataclasses import dataclass

from .errors import ImageFetchError

SUPPORTED_MEDIA_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


@dataclass(frozen=True)
class ImageData:
    url: str
    media_type: str
    data_b64: str


def is_http_url(s: str) -> bool:
    try:
        u = urllib.parse.urlparse(s)
        return u.scheme in ("http", "https") and bool(u.netloc)
    except ValueError:
        return False


def allowlisted(url: str, allowed_hosts: Iterable[str]) -> bool:
    allowed_hosts = tuple(allowed_hosts)
    if not allowed_hosts:
        return True
    host = urllib.parse.urlparse(url).hostname or ""
    return any(host == h or host.endswith("." + h) for h in allowed_hosts)


def fetch_image(url: str, max_bytes: int, timeout: float = 15) -> ImageData:
    """Download one image, raising ImageFetchError for anything unusable."""
    if not is_http_url(url):
        raise ImageFetchError(f"not an http(s) URL: {url}")
    req = urllib.request.Request(url, headers={"User-Agent": "IssueBot/1.0"})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310
            status = getattr(resp, "status", 200)
            if not 200 <= status < 300:
                raise ImageFetchError(f"HTTP {status}")
            media_type = (resp.headers.get("Content-Type") or "").split(";")[0].strip().lower()
            data = resp.read(max_bytes + 1)
    except urllib.error.HTTPError as e:
        raise ImageFetchError(f"HTTP {e.code}") from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise ImageFetchError(str(getattr(e, "reason", e))) from e
    except (http.client.HTTPException, ValueError) as e:
        raise ImageFetchError(f"{type(e).__name__}: {e}") from e

    if media_type not in SUPPORTED_MEDIA_TYPES:
        raise ImageFetchError(f"unsupported content type {media_type or 'unknown'}")
    if len(data) > max_bytes:
        raise ImageFetchError(f"image larger than {max_bytes} bytes")
    return ImageData(url=url, media_type=media_type, data_b64=base64.b64encode(data).decode("ascii"))
