import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from vistaguide.llm.tools.image_search import ImageSearchTool
from vistaguide.models.domain import Destination, ImageCacheEntry, Resolution
from vistaguide.services.connectivity import ConnectivityProbe
from vistaguide.services.resolver import MultiProviderResolver, Provider
from vistaguide.storage.image_cache import ImageCache

logger = logging.getLogger(__name__)


async def _explicit_url(entity_id: str, hints: Dict[str, Any]) -> Optional[str]:
    return hints.get("image_url")


async def _first_gallery_image(entity_id: str, hints: Dict[str, Any]) -> Optional[str]:
    images = hints.get("images") or []
    return images[0] if images else None


class ImageResolver:
    """Picks a display image for a destination.

    Order: durable cache, the record's own image_url, its first gallery
    image, then each search tool. Whatever resolves is cached per id until
    clear_cache(); a cached search result gives way once the record carries
    an image of its own. Search tools are skipped while offline.
    """

    def __init__(
        self,
        cache: ImageCache,
        search_tools: Sequence[ImageSearchTool] = (),
        timeout: float = 5.0,
        query_suffix: str = "India",
        probe: ConnectivityProbe | None = None,
    ):
        self.cache = cache
        self.probe = probe
        self.search_tools = list(search_tools)
        self.query_suffix = query_suffix
        providers: List[Provider[str]] = [
            Provider("explicit", _explicit_url),
            Provider("gallery", _first_gallery_image),
        ]
        for idx, tool in enumerate(self.search_tools):
            providers.append(Provider(tool.name, self._search_with(tool, detailed=idx == 0)))
        self.resolver = MultiProviderResolver(
            providers, timeout=timeout, on_resolved=self._remember, label="images"
        )

    def _search_with(self, tool: ImageSearchTool, detailed: bool):
        async def fetch(entity_id: str, hints: Dict[str, Any]) -> Optional[str]:
            if self.probe is not None and not await self.probe.is_online():
                return None
            parts = [hints.get("title", "")]
            if detailed and hints.get("type"):
                parts.append(hints["type"])
            parts.append(self.query_suffix)
            query = " ".join(p for p in parts if p).strip()
            return await asyncio.to_thread(tool.search, query)

        return fetch

    def _remember(self, entity_id: str, url: str, provider: str) -> None:
        self.cache.put(entity_id, url, provider)

    async def resolve(self, destination: Destination) -> Resolution[str]:
        cached = self.cache.get(destination.id)
        if cached is not None and not self._superseded(cached, destination):
            return Resolution(value=cached.url, provider="cache", attempted=["cache"])
        hints = {
            "title": destination.title,
            "type": destination.type,
            "image_url": destination.image_url,
            "images": destination.images,
        }
        return await self.resolver.resolve(destination.id, hints)

    def _superseded(self, cached: ImageCacheEntry, destination: Destination) -> bool:
        if cached.provider not in {tool.name for tool in self.search_tools}:
            return False
        return bool(destination.image_url or destination.images)

    def cached_url(self, entity_id: str) -> Optional[str]:
        entry = self.cache.get(entity_id)
        return entry.url if entry else None

    async def preload(self, destinations: Sequence[Destination]) -> Dict[str, Optional[str]]:
        results = await asyncio.gather(
            *(self.resolve(d) for d in destinations), return_exceptions=True
        )
        urls: Dict[str, Optional[str]] = {}
        for dest, result in zip(destinations, results):
            if isinstance(result, Exception):
                logger.warning("Image preload failed for %s: %s", dest.id, result)
                urls[dest.id] = None
            else:
                urls[dest.id] = result.value
        logger.info(
            "Preloaded images: %d/%d resolved",
            sum(1 for u in urls.values() if u),
            len(destinations),
        )
        return urls

    def clear_cache(self) -> None:
        self.cache.clear()
