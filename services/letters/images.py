"""
Image loading for letter rendering.

Business images are stored as URLs that are either absolute (the image
host) or relative to this server (upload paths). The loader resolves both
forms, fetches bytes over HTTP, and measures natural dimensions.
"""

import io
import logging
from typing import Dict, Optional, Tuple
from urllib.parse import urljoin, urlparse

import requests
from PIL import Image, UnidentifiedImageError

from .exceptions import ImageLoadError

logger = logging.getLogger(__name__)


def is_absolute_url(url: str) -> bool:
    parsed = urlparse(url)
    return bool(parsed.scheme and parsed.netloc)


def resolve_image_url(url: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
    """
    Turn a stored image URL into one a renderer can fetch.

    Examples:
        "https://cdn.example.com/a.png" -> unchanged
        "/uploads/a.png", base "http://localhost:5000" -> "http://localhost:5000/uploads/a.png"
        "//cdn.example.com/a.png" -> "https://cdn.example.com/a.png"
    """
    if not url:
        return None
    url = url.strip()
    if url.startswith('//'):
        return f"https:{url}"
    if is_absolute_url(url) or url.startswith('data:'):
        return url
    if not base_url:
        return url
    return urljoin(base_url.rstrip('/') + '/', url.lstrip('/'))


class ImageLoader:
    """
    Fetches and measures images, caching bytes per URL for one export.

    Args:
        base_url: Prefix for relative upload paths
        timeout: Seconds before an HTTP fetch is abandoned
        session: Optional requests.Session (tests pass a fake)
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 10.0, session=None):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._cache: Dict[str, bytes] = {}

    def resolve(self, url: str) -> Optional[str]:
        return resolve_image_url(url, self.base_url)

    def load(self, url: str) -> bytes:
        """
        Fetch image bytes.

        Raises:
            ImageLoadError: On network failure, HTTP error or empty body.
        """
        resolved = self.resolve(url)
        if not resolved:
            raise ImageLoadError("No image URL given", url=url)
        if resolved in self._cache:
            return self._cache[resolved]

        if not is_absolute_url(resolved):
            raise ImageLoadError(f"Cannot fetch relative image URL without a base URL: {resolved}", url=resolved)

        try:
            response = self.session.get(resolved, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ImageLoadError(f"Failed to fetch image {resolved}: {e}", url=resolved) from e

        if not response.content:
            raise ImageLoadError(f"Image {resolved} is empty", url=resolved)

        self._cache[resolved] = response.content
        return response.content

    def measure_image_aspect_ratio(self, url: str) -> Tuple[int, int]:
        """
        Natural (width, height) of an image in pixels.

        Raises:
            ImageLoadError: When the image cannot be fetched or decoded.
        """
        data = self.load(url)
        try:
            with Image.open(io.BytesIO(data)) as img:
                width, height = img.size
        except (UnidentifiedImageError, OSError) as e:
            raise ImageLoadError(f"Could not decode image {url}: {e}", url=url) from e
        if not width or not height:
            raise ImageLoadError(f"Image {url} has no size", url=url)
        return width, height
