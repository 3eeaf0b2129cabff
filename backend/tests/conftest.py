from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from vistaguide.models.domain import Destination, EducationalInfo, FreshnessKind, HistoricalInfo
from vistaguide.services.connectivity import ConnectivityProbe
from vistaguide.storage.freshness import FreshnessTracker
from vistaguide.storage.image_cache import ImageCache
from vistaguide.storage.repository import SQLiteEntityStore

TTLS = {
    FreshnessKind.enrichment: timedelta(minutes=2),
    FreshnessKind.weather: timedelta(minutes=15),
    FreshnessKind.recommendations: timedelta(minutes=15),
    FreshnessKind.image: timedelta(hours=24),
}


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class CountingProbe:
    """Async probe function that records how often it was called."""

    def __init__(self, online: bool = True) -> None:
        self.online = online
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        return self.online


class FakeRemoteStore:
    def __init__(self, docs: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.docs = docs or {}
        self.calls: List[str] = []
        self.fail = False

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        self.calls.append(f"get:{doc_id}")
        if self.fail:
            raise ConnectionError("remote down")
        doc = self.docs.get(doc_id)
        return dict(doc, id=doc_id) if doc else None

    def query(self, filters: Dict[str, Any], limit: int) -> List[Dict[str, Any]]:
        self.calls.append("query")
        if self.fail:
            raise ConnectionError("remote down")
        return [dict(doc, id=doc_id) for doc_id, doc in list(self.docs.items())[:limit]]

    def upsert(self, doc_id: str, fields: Dict[str, Any]) -> None:
        self.calls.append(f"upsert:{doc_id}")
        self.docs[doc_id] = fields


class FakeEnrichmentClient:
    def __init__(self, payload: Optional[Dict[str, Any]] = None, fail: bool = False) -> None:
        self.payload = payload if payload is not None else {
            "description": "An ivory-white marble mausoleum on the Yamuna.",
            "historical": {
                "briefDescription": "Commissioned in 1632 by Shah Jahan.",
                "keyEvents": ["1632: construction began", "1653: completed"],
                "relatedFigures": ["Shah Jahan", "Mumtaz Mahal"],
            },
            "educational": {
                "facts": ["Changes colour through the day"],
                "importance": "A symbol of love",
                "categories": ["mausoleum", "unesco"],
            },
        }
        self.fail = fail
        self.calls = 0

    def enrich(self, description: Dict[str, Any]) -> Dict[str, Any]:
        self.calls += 1
        if self.fail:
            raise RuntimeError("quota exceeded")
        return self.payload


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "offline.db")


@pytest.fixture
def store(db_path: str) -> SQLiteEntityStore:
    return SQLiteEntityStore(db_path)


@pytest.fixture
def tracker(db_path: str, clock: FakeClock) -> FreshnessTracker:
    return FreshnessTracker(db_path, TTLS, clock=clock)


@pytest.fixture
def image_cache(db_path: str) -> ImageCache:
    return ImageCache(db_path)


@pytest.fixture
def online_probe() -> ConnectivityProbe:
    return ConnectivityProbe(probe=CountingProbe(online=True))


@pytest.fixture
def offline_probe() -> ConnectivityProbe:
    probe = ConnectivityProbe(probe=CountingProbe(online=True))
    probe.simulate(force_offline=True)
    return probe


@pytest.fixture
def taj_mahal() -> Destination:
    return Destination(
        id="taj_mahal_001",
        title="Taj Mahal",
        subtitle="Agra, Uttar Pradesh",
        description=(
            "The Taj Mahal is located in Agra on the banks of the Yamuna. "
            "The Taj Mahotsav festival is celebrated every February near the monument. "
            "Parking is available at the east and west gates."
        ),
        type="monument",
        rating=4.9,
        tags=["unesco", "mughal"],
        historical_info=HistoricalInfo(
            brief_description="It was built by emperor Shah Jahan in 1632.",
            key_events=["1632: construction began"],
            related_figures=["Shah Jahan"],
        ),
        educational_info=EducationalInfo(facts=["Made of white marble"], categories=["mausoleum"]),
    )
