from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vistaguide.models.domain import (
    AnswerSource,
    ChatMessage,
    ChatSession,
    Destination,
    EducationalInfo,
    GeoCoordinates,
    HistoricalInfo,
    Provenance,
)


class _Record(BaseModel):
    # Remote documents use camelCase keys; stored payloads use field names.
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class GeoCoordinatesSchema(_Record):
    latitude: float
    longitude: float


class HistoricalInfoSchema(_Record):
    brief_description: str = ""
    extended_description: str = ""
    key_events: List[str] = Field(default_factory=list)
    timeline: Optional[str] = None
    related_figures: List[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, obj: HistoricalInfo) -> "HistoricalInfoSchema":
        return cls(
            brief_description=obj.brief_description,
            extended_description=obj.extended_description,
            key_events=list(obj.key_events),
            timeline=obj.timeline,
            related_figures=list(obj.related_figures),
        )

    def to_domain(self) -> HistoricalInfo:
        return HistoricalInfo(
            brief_description=self.brief_description,
            extended_description=self.extended_description,
            key_events=list(self.key_events),
            timeline=self.timeline,
            related_figures=list(self.related_figures),
        )


class EducationalInfoSchema(_Record):
    facts: List[str] = Field(default_factory=list)
    importance: str = ""
    cultural_relevance: str = ""
    learning_objectives: List[str] = Field(default_factory=list)
    architectural_style: Optional[str] = None
    categories: List[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, obj: EducationalInfo) -> "EducationalInfoSchema":
        return cls(
            facts=list(obj.facts),
            importance=obj.importance,
            cultural_relevance=obj.cultural_relevance,
            learning_objectives=list(obj.learning_objectives),
            architectural_style=obj.architectural_style,
            categories=list(obj.categories),
        )

    def to_domain(self) -> EducationalInfo:
        return EducationalInfo(
            facts=list(self.facts),
            importance=self.importance,
            cultural_relevance=self.cultural_relevance,
            learning_objectives=list(self.learning_objectives),
            architectural_style=self.architectural_style,
            categories=list(self.categories),
        )


class DestinationSchema(_Record):
    id: str
    title: str
    subtitle: str = ""
    description: Optional[str] = None
    type: str = "attraction"
    rating: Optional[float] = None
    tags: List[str] = Field(default_factory=list)
    coordinates: Optional[GeoCoordinatesSchema] = None
    historical_info: Optional[HistoricalInfoSchema] = None
    educational_info: Optional[EducationalInfoSchema] = None
    image_url: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    provenance: Provenance = Provenance.local

    @classmethod
    def from_domain(cls, obj: Destination) -> "DestinationSchema":
        return cls(
            id=obj.id,
            title=obj.title,
            subtitle=obj.subtitle,
            description=obj.description,
            type=obj.type,
            rating=obj.rating,
            tags=list(obj.tags),
            coordinates=(
                GeoCoordinatesSchema(
                    latitude=obj.coordinates.latitude,
                    longitude=obj.coordinates.longitude,
                )
                if obj.coordinates
                else None
            ),
            historical_info=(
                HistoricalInfoSchema.from_domain(obj.historical_info)
                if obj.historical_info
                else None
            ),
            educational_info=(
                EducationalInfoSchema.from_domain(obj.educational_info)
                if obj.educational_info
                else None
            ),
            image_url=obj.image_url,
            images=list(obj.images),
            created_at=obj.created_at,
            updated_at=obj.updated_at,
            provenance=obj.provenance,
        )

    @classmethod
    def from_remote(cls, doc_id: str, data: Dict[str, Any]) -> "DestinationSchema":
        """Parse a remote document body; the document id wins over any `id` field."""
        payload = dict(data)
        payload["id"] = doc_id
        payload.setdefault("title", payload.get("name") or doc_id)
        payload["provenance"] = Provenance.remote
        return cls.model_validate(payload)

    def to_domain(self) -> Destination:
        return Destination(
            id=self.id,
            title=self.title,
            subtitle=self.subtitle,
            description=self.description,
            type=self.type,
            rating=self.rating,
            tags=list(self.tags),
            coordinates=(
                GeoCoordinates(self.coordinates.latitude, self.coordinates.longitude)
                if self.coordinates
                else None
            ),
            historical_info=self.historical_info.to_domain() if self.historical_info else None,
            educational_info=(
                self.educational_info.to_domain() if self.educational_info else None
            ),
            image_url=self.image_url,
            images=list(self.images),
            created_at=self.created_at,
            updated_at=self.updated_at,
            provenance=self.provenance,
        )


class DestinationResponse(BaseModel):
    destination: DestinationSchema


class DestinationListResponse(BaseModel):
    destinations: List[DestinationSchema]


class ResolveRequest(BaseModel):
    enrich: bool = True
    preloaded: Optional[DestinationSchema] = None


class ImageResponse(BaseModel):
    entity_id: str
    url: Optional[str] = None
    provider: Optional[str] = None


class ChatMessageSchema(BaseModel):
    text: str
    is_user: bool
    timestamp: datetime
    source: Optional[AnswerSource] = None

    @classmethod
    def from_domain(cls, obj: ChatMessage) -> "ChatMessageSchema":
        return cls(
            text=obj.text,
            is_user=obj.is_user,
            timestamp=obj.timestamp,
            source=obj.source,
        )


class ChatSessionSchema(BaseModel):
    session_id: str
    destination_id: str
    messages: List[ChatMessageSchema]

    @classmethod
    def from_domain(cls, obj: ChatSession) -> "ChatSessionSchema":
        return cls(
            session_id=obj.session_id,
            destination_id=obj.destination.id,
            messages=[ChatMessageSchema.from_domain(m) for m in obj.messages],
        )


class OpenChatRequest(BaseModel):
    destination_id: str


class AskRequest(BaseModel):
    text: str = Field(min_length=1)


class NetworkSimulationRequest(BaseModel):
    force_offline: bool = False
    latency_ms: int = Field(0, ge=0)


class CacheStatsResponse(BaseModel):
    destinations: int
    images: int
    freshness: Dict[str, int]
