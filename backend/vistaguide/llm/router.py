import asyncio
import itertools
import logging
import re
from typing import List

from vistaguide.llm.classifier import classify, extract_context
from vistaguide.llm.client import RemoteModel
from vistaguide.llm.local import LocalModelRunner
from vistaguide.llm.prompts import (
    ACKNOWLEDGMENT_REPLIES,
    OFFLINE_FALLBACK,
    build_focused_prompt,
    build_guide_prompt,
)
from vistaguide.llm.sanitize import sanitize_model_output, strip_control
from vistaguide.models.domain import Answer, AnswerSource, Destination
from vistaguide.services.connectivity import ConnectivityProbe

logger = logging.getLogger(__name__)

ACK_MAX_LENGTH = 30
_ACK = re.compile(
    r"\b(ok|okay|thanks|thank you|thank u|thx|got it|alright|all right|cool|nice|"
    r"great|awesome|perfect|understood)\b"
)


def is_acknowledgment(text: str) -> bool:
    lower = text.lower().strip()
    if not lower or len(lower) > ACK_MAX_LENGTH or "?" in lower:
        return False
    return bool(_ACK.search(lower))


def background_for(destination: Destination) -> str:
    """Flatten everything known about a destination into prose sentences."""
    parts: List[str] = []
    if destination.description:
        parts.append(destination.description)
    hist = destination.historical_info
    if hist:
        parts.extend([hist.brief_description, hist.extended_description])
        parts.extend(hist.key_events)
    edu = destination.educational_info
    if edu:
        parts.extend(edu.facts)
        parts.extend([edu.importance, edu.cultural_relevance])
        if edu.architectural_style:
            parts.append(f"Its architectural style is {edu.architectural_style}")
    sentences = []
    for part in parts:
        part = (part or "").strip()
        if not part:
            continue
        sentences.append(part if part[-1] in ".!?" else part + ".")
    return " ".join(sentences)


class HybridInferenceRouter:
    """Answers questions about a destination, online through a remote model
    and offline through a small local model fed with extracted context.
    Always returns an answer."""

    def __init__(
        self,
        probe: ConnectivityProbe,
        local: LocalModelRunner,
        remote: RemoteModel | None = None,
        remote_timeout: float = 10.0,
    ):
        self.probe = probe
        self.local = local
        self.remote = remote
        self.remote_timeout = remote_timeout
        self._replies = itertools.cycle(ACKNOWLEDGMENT_REPLIES)

    async def answer(self, question: str, destination: Destination) -> Answer:
        name = destination.title
        if is_acknowledgment(question):
            return Answer(text=next(self._replies).format(name=name), source=AnswerSource.canned)

        background = background_for(destination)
        if self.remote is not None and await self.probe.is_online():
            text = await self._answer_remote(name, background, question)
            if text:
                return Answer(text=text, source=AnswerSource.remote)
        return await self._answer_offline(name, background, question)

    async def _answer_remote(self, name: str, background: str, question: str) -> str:
        prompt = build_guide_prompt(name, background, question)
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self.remote.complete, prompt), timeout=self.remote_timeout
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Remote model failed, answering offline: %s", exc)
            return ""
        text = strip_control(text or "")
        if not text:
            logger.info("Remote model returned nothing, answering offline")
        return text

    async def _answer_offline(self, name: str, background: str, question: str) -> Answer:
        category = classify(question)
        context = extract_context(category, background)
        prompt = build_focused_prompt(name, question, context)
        logger.debug("Offline question classified as %s (context=%s)", category.value, bool(context))

        raw = ""
        try:
            raw = await self.local.generate(prompt)
        except Exception as exc:  # noqa: BLE001
            logger.info("Local model gave no answer: %s", exc)
        text = sanitize_model_output(raw)
        if text:
            return Answer(text=text, source=AnswerSource.local, category=category.value, context=context)
        if context:
            return Answer(
                text=context, source=AnswerSource.context, category=category.value, context=context
            )
        return Answer(
            text=OFFLINE_FALLBACK.format(name=name),
            source=AnswerSource.fallback,
            category=category.value,
        )
