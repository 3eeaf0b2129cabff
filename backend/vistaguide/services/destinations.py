from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError

from vistaguide.core.errors import StoreCorruptError
from vistaguide.models.domain import Destination, FreshnessKind, Provenance, Resolution
from vistaguide.models.schemas import DestinationSchema
from vistaguide.services.connectivity import ConnectivityProbe
from vistaguide.services.enrichment import EnrichmentGateway
from vistaguide.services.resolver import MultiProviderResolver, Provider
from vistaguide.storage.freshness import FreshnessTracker
from vistaguide.storage.remote import RemoteDocumentStore
from vistaguide.storage.repository import EntityStore

logger = logging.getLogger(__name__)

# freshness key for the recommendations list as a whole
RECOMMENDATIONS_KEY = "all"


class DestinationService:
    """Destination detail and recommendation lists, offline first.

    Detail lookups try a caller-supplied record, then the local store, then
    the remote store. Whatever is found is written back locally.
    """

    def __init__(
        self,
        store: EntityStore,
        probe: ConnectivityProbe,
        tracker: FreshnessTracker,
        remote: RemoteDocumentStore | None = None,
        enrichment: EnrichmentGateway | None = None,
        timeout: float = 10.0,
    ):
        self.store = store
        self.probe = probe
        self.tracker = tracker
        self.remote = remote
        self.enrichment = enrichment
        self.timeout = timeout
        self._background: Set[asyncio.Task] = set()
        self.resolver: MultiProviderResolver[Destination] = MultiProviderResolver(
            [
                Provider("preloaded", self._from_preloaded),
                Provider("local", self._from_store, cacheable=False),
                Provider("remote", self._from_remote),
            ],
            timeout=timeout,
            on_resolved=self._write_back,
            label="destinations",
        )
        self.remote_resolver: MultiProviderResolver[Destination] = MultiProviderResolver(
            [Provider("remote", self._from_remote)],
            timeout=timeout,
            on_resolved=self._replace,
            label="destinations-refresh",
        )

    async def _from_preloaded(self, entity_id: str, hints: Dict[str, Any]) -> Optional[Destination]:
        preloaded = hints.get("preloaded")
        if preloaded is None:
            return None
        return preloaded.with_provenance(Provenance.preloaded)

    async def _from_store(self, entity_id: str, hints: Dict[str, Any]) -> Optional[Destination]:
        return self.store.get(entity_id)

    async def _from_remote(self, entity_id: str, hints: Dict[str, Any]) -> Optional[Destination]:
        if self.remote is None:
            return None
        if not await self.probe.is_online():
            logger.info("Offline, skipping remote lookup for %s", entity_id)
            return None
        doc = await asyncio.to_thread(self.remote.get, entity_id)
        if not doc:
            return None
        return DestinationSchema.from_remote(entity_id, doc).to_domain()

    def _write_back(self, entity_id: str, destination: Destination, provider: str) -> None:
        self._store_plain([destination])

    def _replace(self, entity_id: str, destination: Destination, provider: str) -> None:
        self.store.upsert([destination])
        self.tracker.clear(FreshnessKind.enrichment, entity_id)

    def _store_plain(self, destinations: List[Destination]) -> List[Destination]:
        """Upsert fetched records, returning what the store now holds.

        A freshly enriched stored record is kept over a plain one. Any
        other overwrite drops enriched fields, so its enrichment freshness
        is cleared with it.
        """
        held: List[Destination] = []
        for destination in destinations:
            if destination.provenance is not Provenance.enriched:
                current = self.store.get(destination.id)
                if (
                    current is not None
                    and current.provenance is Provenance.enriched
                    and not self.tracker.is_expired(FreshnessKind.enrichment, destination.id)
                ):
                    held.append(current)
                    continue
                self.tracker.clear(FreshnessKind.enrichment, destination.id)
            self.store.upsert([destination])
            held.append(destination)
        return held

    async def resolve(
        self,
        entity_id: str,
        preloaded: Destination | None = None,
        enrich: bool = True,
    ) -> Resolution[Destination]:
        resolution = await self.resolver.resolve(entity_id, {"preloaded": preloaded})
        if not resolution.resolved or not enrich or self.enrichment is None:
            return resolution
        if resolution.provider == "remote":
            resolution.value = await self.enrichment.maybe_enrich(resolution.value)
        else:
            self._enrich_in_background(resolution.value)
        return resolution

    async def refresh(self, entity_id: str, enrich: bool = True) -> Resolution[Destination]:
        """Re-fetch from the remote store, replacing the local copy.

        Offline, or when the remote store has nothing, the local copy is returned.
        """
        if self.remote is None or not await self.probe.is_online():
            logger.info("Cannot refresh %s while offline", entity_id)
            return self._local_only(entity_id)
        resolution = await self.remote_resolver.resolve(entity_id)
        if not resolution.resolved:
            return self._local_only(entity_id, resolution.attempted)
        if enrich and self.enrichment is not None:
            resolution.value = await self.enrichment.maybe_enrich(resolution.value)
        return resolution

    def _local_only(self, entity_id: str, attempted: List[str] | None = None) -> Resolution[Destination]:
        attempted = list(attempted or []) + ["local"]
        destination = self.store.get(entity_id)
        return Resolution(
            value=destination, provider="local" if destination else None, attempted=attempted
        )

    async def list_destinations(
        self, limit: int = 20, filters: Dict[str, Any] | None = None
    ) -> List[Destination]:
        if (
            self.remote is not None
            and self.tracker.is_expired(FreshnessKind.recommendations, RECOMMENDATIONS_KEY)
            and await self.probe.is_online()
        ):
            fetched = await self._fetch_recommendations(filters or {}, limit)
            if fetched:
                held = self._store_plain(fetched)
                self.tracker.mark_fresh(FreshnessKind.recommendations, RECOMMENDATIONS_KEY)
                return held[:limit]
        return self.store.list(limit)

    async def _fetch_recommendations(self, filters: Dict[str, Any], limit: int) -> List[Destination]:
        try:
            docs = await asyncio.wait_for(
                asyncio.to_thread(self.remote.query, filters, limit), timeout=self.timeout
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Recommendations query failed, serving local copy: %s", exc)
            return []
        destinations = []
        for doc in docs:
            try:
                destinations.append(DestinationSchema.from_remote(doc["id"], doc).to_domain())
            except (KeyError, ValidationError) as exc:
                logger.warning("Skipping malformed remote destination: %s", exc)
        return destinations

    def _enrich_in_background(self, destination: Destination) -> None:
        task = asyncio.ensure_future(self._background_enrich(destination))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _background_enrich(self, destination: Destination) -> None:
        try:
            await self.enrichment.maybe_enrich(destination)
        except StoreCorruptError:
            logger.exception("Store failure during background enrichment of %s", destination.id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Background enrichment of %s failed: %s", destination.id, exc)

    async def drain(self) -> None:
        """Wait for scheduled background work; used at shutdown and in tests."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
