import logging
from typing import Optional, Protocol

import requests

logger = logging.getLogger(__name__)


class ImageSearchTool(Protocol):
    name: str

    def search(self, query: str) -> Optional[str]:
        """Return one landscape image URL for the query, or None."""
        ...


class UnsplashImageSearch:
    """Unsplash search API; returns nothing until an access key is configured."""

    name = "unsplash"

    def __init__(self, access_key: str | None = None, timeout: float = 5.0):
        self.access_key = access_key
        self.timeout = timeout

    def search(self, query: str) -> Optional[str]:
        if not self.access_key:
            return None
        resp = requests.get(
            "https://api.unsplash.com/search/photos",
            params={"query": query, "per_page": 1, "orientation": "landscape"},
            headers={"Authorization": f"Client-ID {self.access_key}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        results = (resp.json() if resp.content else {}).get("results") or []
        if not results:
            logger.debug("Unsplash found nothing for %r", query)
            return None
        return results[0].get("urls", {}).get("regular")


class PexelsImageSearch:
    name = "pexels"

    def __init__(self, api_key: str | None, timeout: float = 5.0):
        self.api_key = api_key
        self.timeout = timeout

    def search(self, query: str) -> Optional[str]:
        if not self.api_key:
            return None
        resp = requests.get(
            "https://api.pexels.com/v1/search",
            params={"query": query, "per_page": 1, "orientation": "landscape"},
            headers={"Authorization": self.api_key},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        photos = (resp.json() if resp.content else {}).get("photos") or []
        if not photos:
            logger.debug("Pexels found nothing for %r", query)
            return None
        return photos[0].get("src", {}).get("large")
