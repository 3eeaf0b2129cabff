import logging
from dataclasses import dataclass
from typing import Dict

from vistaguide.core.config import Settings
from vistaguide.llm.backends.gemini_backend import GeminiBackend
from vistaguide.llm.backends.ollama_backend import OllamaLocalBridge
from vistaguide.llm.local import LocalModelRunner
from vistaguide.llm.router import HybridInferenceRouter
from vistaguide.llm.tools.image_search import PexelsImageSearch, UnsplashImageSearch
from vistaguide.services.chat import ChatService
from vistaguide.services.connectivity import ConnectivityProbe
from vistaguide.services.destinations import DestinationService
from vistaguide.services.enrichment import EnrichmentGateway
from vistaguide.services.images import ImageResolver
from vistaguide.storage.freshness import FreshnessTracker, ttls_from_settings
from vistaguide.storage.image_cache import ImageCache
from vistaguide.storage.remote import FirestoreRestStore
from vistaguide.storage.repository import EntityStore, SQLiteEntityStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    probe: ConnectivityProbe
    store: EntityStore
    tracker: FreshnessTracker
    image_cache: ImageCache
    images: ImageResolver
    enrichment: EnrichmentGateway
    destinations: DestinationService
    router: HybridInferenceRouter
    chat: ChatService

    def clear_caches(self) -> None:
        self.store.clear()
        self.image_cache.clear()
        self.tracker.clear()
        logger.info("All caches cleared")

    def cache_stats(self) -> Dict[str, object]:
        return {
            "destinations": self.store.count(),
            "images": self.image_cache.count(),
            "freshness": self.tracker.stats(),
        }


def build_services(settings: Settings) -> Services:
    """Construct every component once, wiring remote clients only when configured."""
    probe = ConnectivityProbe(
        url=settings.connectivity_probe_url,
        timeout=settings.connectivity_timeout_seconds,
        cache_seconds=settings.connectivity_cache_seconds,
    )
    store = SQLiteEntityStore(settings.db_path)
    tracker = FreshnessTracker(settings.db_path, ttls_from_settings(settings))
    image_cache = ImageCache(settings.db_path)

    gemini = None
    if settings.gemini_api_key:
        gemini = GeminiBackend(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.remote_timeout_seconds,
        )
    else:
        logger.warning("GEMINI_API_KEY not set; enrichment and online answers disabled")

    remote = None
    if settings.firestore_project_id:
        remote = FirestoreRestStore(
            project_id=settings.firestore_project_id,
            collection=settings.firestore_collection,
            api_key=settings.firestore_api_key,
            timeout=settings.remote_timeout_seconds,
        )

    images = ImageResolver(
        image_cache,
        [
            UnsplashImageSearch(settings.unsplash_access_key, timeout=settings.provider_timeout_seconds),
            PexelsImageSearch(settings.pexels_api_key, timeout=settings.provider_timeout_seconds),
        ],
        timeout=settings.provider_timeout_seconds,
        query_suffix=settings.image_query_suffix,
        probe=probe,
    )
    enrichment = EnrichmentGateway(
        store, tracker, probe, gemini, timeout=settings.remote_timeout_seconds
    )
    destinations = DestinationService(
        store,
        probe,
        tracker,
        remote=remote,
        enrichment=enrichment,
        timeout=settings.remote_timeout_seconds,
    )
    local = LocalModelRunner(
        OllamaLocalBridge(
            host=settings.ollama_host,
            model=settings.local_model,
            timeout=settings.local_timeout_seconds,
        ),
        model_path=settings.local_model_path,
        max_tokens=settings.local_max_tokens,
        timeout=settings.local_timeout_seconds,
    )
    router = HybridInferenceRouter(
        probe, local, remote=gemini, remote_timeout=settings.remote_timeout_seconds
    )
    return Services(
        settings=settings,
        probe=probe,
        store=store,
        tracker=tracker,
        image_cache=image_cache,
        images=images,
        enrichment=enrichment,
        destinations=destinations,
        router=router,
        chat=ChatService(router),
    )
