from fastapi import APIRouter, Depends, HTTPException, Response

from vistaguide.api import get_services
from vistaguide.core.errors import NotFoundError
from vistaguide.models.schemas import (
    AskRequest,
    ChatMessageSchema,
    ChatSessionSchema,
    OpenChatRequest,
)
from vistaguide.services.container import Services

router = APIRouter()


@router.post("/sessions", response_model=ChatSessionSchema)
async def open_session(
    body: OpenChatRequest, services: Services = Depends(get_services)
) -> ChatSessionSchema:
    resolution = await services.destinations.resolve(body.destination_id, enrich=False)
    if not resolution.resolved:
        raise HTTPException(status_code=404, detail="Destination not found")
    session = services.chat.open(resolution.value)
    return ChatSessionSchema.from_domain(session)


@router.get("/sessions/{session_id}", response_model=ChatSessionSchema)
def get_session(session_id: str, services: Services = Depends(get_services)) -> ChatSessionSchema:
    try:
        session = services.chat.get(session_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    return ChatSessionSchema.from_domain(session)


@router.post("/sessions/{session_id}/messages", response_model=ChatMessageSchema)
async def ask(
    session_id: str, body: AskRequest, services: Services = Depends(get_services)
) -> ChatMessageSchema:
    try:
        message = await services.chat.ask(session_id, body.text)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    if message is None:
        raise HTTPException(status_code=410, detail="Session closed")
    return ChatMessageSchema.from_domain(message)


@router.delete("/sessions/{session_id}", status_code=204)
def close_session(session_id: str, services: Services = Depends(get_services)) -> Response:
    services.chat.close(session_id)
    return Response(status_code=204)
