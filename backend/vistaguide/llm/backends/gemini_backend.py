from __future__ import annotations

import json
import logging
from typing import Any, Dict

import requests

from vistaguide.core.errors import InferenceUnavailableError, SourceUnavailableError
from vistaguide.llm.prompts import build_enrichment_prompt

logger = logging.getLogger(__name__)


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse the outermost {...} block of a model reply, ignoring any prose around it."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("no JSON object in model output")
    data = json.loads(text[start : end + 1])
    if not isinstance(data, dict):
        raise ValueError("model output is not a JSON object")
    return data


class GeminiBackend:
    """
    RemoteModel and EnrichmentClient over the Generative Language REST API.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _generate(self, prompt: str, generation_config: Dict[str, Any] | None = None) -> str:
        payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if generation_config:
            payload["generationConfig"] = generation_config
        try:
            resp = self.session.post(
                self.endpoint,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Gemini request failed: %s", exc)
            raise SourceUnavailableError(f"gemini request failed: {exc}") from exc

        try:
            text = resp.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise InferenceUnavailableError("unexpected Gemini response shape") from exc
        if not text or not text.strip():
            raise InferenceUnavailableError("empty Gemini response")
        return text

    def complete(self, prompt: str) -> str:
        return self._generate(
            prompt,
            {"temperature": 0.7, "topK": 40, "topP": 0.95, "maxOutputTokens": 500},
        ).strip()

    def enrich(self, description: Dict[str, Any]) -> Dict[str, Any]:
        prompt = build_enrichment_prompt(description.get("title", ""), description.get("type"))
        content = self._generate(prompt)
        try:
            return extract_json_object(content)
        except ValueError as exc:
            logger.error("Invalid enrichment JSON from model: %.200s", content)
            raise InferenceUnavailableError("model returned invalid JSON") from exc
