from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

T = TypeVar("T")


class Provenance(str, Enum):
    preloaded = "preloaded"
    local = "local"
    remote = "remote"
    enriched = "enriched"


class FreshnessKind(str, Enum):
    enrichment = "enrichment"
    weather = "weather"
    recommendations = "recommendations"
    image = "image"


class EnrichmentState(str, Enum):
    fresh = "fresh"
    expired_online = "expired_online"
    expired_offline = "expired_offline"


class AnswerSource(str, Enum):
    canned = "canned"
    remote = "remote"
    local = "local"
    context = "context"
    fallback = "fallback"


@dataclass
class GeoCoordinates:
    latitude: float
    longitude: float


@dataclass
class HistoricalInfo:
    brief_description: str = ""
    extended_description: str = ""
    key_events: List[str] = field(default_factory=list)
    timeline: Optional[str] = None
    related_figures: List[str] = field(default_factory=list)


@dataclass
class EducationalInfo:
    facts: List[str] = field(default_factory=list)
    importance: str = ""
    cultural_relevance: str = ""
    learning_objectives: List[str] = field(default_factory=list)
    architectural_style: Optional[str] = None
    categories: List[str] = field(default_factory=list)


@dataclass
class Destination:
    id: str
    title: str
    subtitle: str = ""
    description: Optional[str] = None
    type: str = "attraction"
    rating: Optional[float] = None
    tags: List[str] = field(default_factory=list)
    coordinates: Optional[GeoCoordinates] = None
    historical_info: Optional[HistoricalInfo] = None
    educational_info: Optional[EducationalInfo] = None
    image_url: Optional[str] = None
    images: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    provenance: Provenance = Provenance.local

    def with_provenance(self, provenance: Provenance) -> "Destination":
        return replace(self, provenance=provenance)


@dataclass
class ConnectivitySnapshot:
    online: bool
    checked_at: float
    simulated: bool = False


@dataclass
class ImageCacheEntry:
    entity_id: str
    url: str
    provider: str
    fetched_at: datetime


@dataclass
class Resolution(Generic[T]):
    """Outcome of a fallback chain. `value` is None when unresolved."""

    value: Optional[T] = None
    provider: Optional[str] = None
    attempted: List[str] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.value is not None


@dataclass
class Answer:
    text: str
    source: AnswerSource
    category: Optional[str] = None
    context: Optional[str] = None


@dataclass
class ChatMessage:
    text: str
    is_user: bool
    timestamp: datetime
    source: Optional[AnswerSource] = None


@dataclass
class ChatSession:
    session_id: str
    destination: Destination
    messages: List[ChatMessage] = field(default_factory=list)
    closed: bool = False

    def append(self, message: ChatMessage) -> ChatMessage:
        self.messages.append(message)
        return message


def present(value: Any) -> bool:
    """True for values a provider may return as a success."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True
