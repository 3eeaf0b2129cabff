import logging
from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import uuid4

from vistaguide.core.errors import NotFoundError
from vistaguide.llm.prompts import GREETING
from vistaguide.llm.router import HybridInferenceRouter
from vistaguide.models.domain import ChatMessage, ChatSession, Destination

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ChatService:
    """In-memory chat sessions, one per open destination conversation."""

    def __init__(self, router: HybridInferenceRouter):
        self.router = router
        self.sessions: Dict[str, ChatSession] = {}

    def open(self, destination: Destination) -> ChatSession:
        session = ChatSession(session_id=str(uuid4()), destination=destination)
        session.append(
            ChatMessage(text=GREETING.format(name=destination.title), is_user=False, timestamp=_now())
        )
        self.sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> ChatSession:
        session = self.sessions.get(session_id)
        if session is None or session.closed:
            raise NotFoundError(f"chat session {session_id} not found")
        return session

    async def ask(self, session_id: str, text: str) -> Optional[ChatMessage]:
        """Append the question and the router's answer.

        Returns None when the session was closed while the answer was being produced.
        """
        session = self.get(session_id)
        session.append(ChatMessage(text=text, is_user=True, timestamp=_now()))
        answer = await self.router.answer(text, session.destination)
        if session.closed:
            logger.debug("Dropping answer for closed session %s", session_id)
            return None
        return session.append(
            ChatMessage(text=answer.text, is_user=False, timestamp=_now(), source=answer.source)
        )

    def close(self, session_id: str) -> None:
        session = self.sessions.pop(session_id, None)
        if session is not None:
            session.closed = True
            session.messages.clear()
