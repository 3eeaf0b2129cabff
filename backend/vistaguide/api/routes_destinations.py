from fastapi import APIRouter, Depends, HTTPException

from vistaguide.api import get_services
from vistaguide.models.schemas import (
    DestinationListResponse,
    DestinationResponse,
    DestinationSchema,
    ImageResponse,
    ResolveRequest,
)
from vistaguide.services.container import Services

router = APIRouter()


@router.get("/", response_model=DestinationListResponse)
async def list_destinations(
    limit: int = 20, services: Services = Depends(get_services)
) -> DestinationListResponse:
    destinations = await services.destinations.list_destinations(limit=limit)
    return DestinationListResponse(
        destinations=[DestinationSchema.from_domain(d) for d in destinations]
    )


@router.get("/{destination_id}", response_model=DestinationResponse)
async def get_destination(
    destination_id: str, enrich: bool = True, services: Services = Depends(get_services)
) -> DestinationResponse:
    resolution = await services.destinations.resolve(destination_id, enrich=enrich)
    if not resolution.resolved:
        raise HTTPException(status_code=404, detail="Destination not found")
    return DestinationResponse(destination=DestinationSchema.from_domain(resolution.value))


@router.post("/{destination_id}/resolve", response_model=DestinationResponse)
async def resolve_destination(
    destination_id: str, body: ResolveRequest, services: Services = Depends(get_services)
) -> DestinationResponse:
    preloaded = body.preloaded.to_domain() if body.preloaded else None
    resolution = await services.destinations.resolve(
        destination_id, preloaded=preloaded, enrich=body.enrich
    )
    if not resolution.resolved:
        raise HTTPException(status_code=404, detail="Destination not found")
    return DestinationResponse(destination=DestinationSchema.from_domain(resolution.value))


@router.post("/{destination_id}/refresh", response_model=DestinationResponse)
async def refresh_destination(
    destination_id: str, services: Services = Depends(get_services)
) -> DestinationResponse:
    resolution = await services.destinations.refresh(destination_id)
    if not resolution.resolved:
        raise HTTPException(status_code=404, detail="Destination not found")
    return DestinationResponse(destination=DestinationSchema.from_domain(resolution.value))


@router.get("/{destination_id}/image", response_model=ImageResponse)
async def get_destination_image(
    destination_id: str, services: Services = Depends(get_services)
) -> ImageResponse:
    resolution = await services.destinations.resolve(destination_id, enrich=False)
    if not resolution.resolved:
        raise HTTPException(status_code=404, detail="Destination not found")
    image = await services.images.resolve(resolution.value)
    return ImageResponse(entity_id=destination_id, url=image.value, provider=image.provider)
