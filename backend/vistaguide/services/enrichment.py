import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from vistaguide.llm.client import EnrichmentClient
from vistaguide.models.domain import (
    Destination,
    EducationalInfo,
    EnrichmentState,
    FreshnessKind,
    HistoricalInfo,
    Provenance,
)
from vistaguide.services.connectivity import ConnectivityProbe
from vistaguide.storage.freshness import FreshnessTracker
from vistaguide.storage.repository import EntityStore

logger = logging.getLogger(__name__)


def _union(existing: Iterable[str], extra: Any) -> List[str]:
    if isinstance(extra, str):
        extra = [extra]
    merged: List[str] = []
    for item in list(existing) + list(extra or []):
        if isinstance(item, str) and item.strip() and item not in merged:
            merged.append(item)
    return merged


def _text(data: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def merge_enrichment(destination: Destination, data: Dict[str, Any]) -> Destination:
    """Fold a remote enrichment payload into a destination.

    Present text fields replace old ones; list fields are unioned in order.
    """
    hist_data = data.get("historical") or {}
    edu_data = data.get("educational") or {}
    hist = destination.historical_info or HistoricalInfo()
    edu = destination.educational_info or EducationalInfo()

    historical = replace(
        hist,
        brief_description=_text(hist_data, "briefDescription", "brief_description")
        or hist.brief_description,
        extended_description=_text(hist_data, "extendedDescription", "extended_description")
        or hist.extended_description,
        key_events=_union(hist.key_events, hist_data.get("keyEvents", hist_data.get("key_events"))),
        related_figures=_union(
            hist.related_figures, hist_data.get("relatedFigures", hist_data.get("related_figures"))
        ),
    )
    educational = replace(
        edu,
        facts=_union(edu.facts, edu_data.get("facts")),
        importance=_text(edu_data, "importance") or edu.importance,
        cultural_relevance=_text(edu_data, "culturalRelevance", "cultural_relevance")
        or edu.cultural_relevance,
        categories=_union(edu.categories, edu_data.get("categories")),
    )
    return replace(
        destination,
        description=_text(data, "description") or destination.description,
        historical_info=historical,
        educational_info=educational,
        updated_at=datetime.now(timezone.utc),
        provenance=Provenance.enriched,
    )


class EnrichmentGateway:
    """Calls remote AI enrichment at most once per TTL window and never offline.

    Failures are silent: the caller gets the record it passed in and the
    freshness record stays expired so the next eligible call retries.
    """

    def __init__(
        self,
        store: EntityStore,
        tracker: FreshnessTracker,
        probe: ConnectivityProbe,
        client: EnrichmentClient | None,
        timeout: float = 10.0,
    ):
        self.store = store
        self.tracker = tracker
        self.probe = probe
        self.client = client
        self.timeout = timeout
        self._inflight: Dict[str, asyncio.Task] = {}

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def state(self, entity_id: str) -> EnrichmentState:
        if not self.tracker.is_expired(FreshnessKind.enrichment, entity_id):
            return EnrichmentState.fresh
        if await self.probe.is_online():
            return EnrichmentState.expired_online
        return EnrichmentState.expired_offline

    async def maybe_enrich(self, destination: Destination) -> Destination:
        if not self.enabled:
            return destination
        state = await self.state(destination.id)
        if state is EnrichmentState.fresh:
            return self.store.get(destination.id) or destination
        if state is EnrichmentState.expired_offline:
            logger.debug("Offline, keeping %s as is", destination.id)
            return destination

        task = self._inflight.get(destination.id)
        if task is None:
            task = asyncio.ensure_future(self._enrich(destination))
            self._inflight[destination.id] = task
            task.add_done_callback(lambda t, key=destination.id: self._forget(key, t))
        # callers that go away must not cancel the shared call
        return await asyncio.shield(task)

    def _forget(self, entity_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(entity_id) is task:
            del self._inflight[entity_id]

    async def _enrich(self, destination: Destination) -> Destination:
        request = {
            "id": destination.id,
            "title": destination.title,
            "type": destination.type,
            "description": destination.description,
        }
        try:
            data = await asyncio.wait_for(
                asyncio.to_thread(self.client.enrich, request), timeout=self.timeout
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Enrichment failed for %s: %s", destination.id, exc)
            return destination
        if not data:
            logger.info("Enrichment returned nothing for %s", destination.id)
            return destination

        enriched = merge_enrichment(destination, data)
        self.store.upsert([enriched])
        self.tracker.mark_fresh(FreshnessKind.enrichment, destination.id)
        logger.info("Enriched %s", destination.id)
        return enriched
