from __future__ import annotations

import logging
from dataclasses import dataclass, field

import requests

from vistaguide.core.errors import InferenceUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class OllamaLocalBridge:
    """
    LocalInferenceBridge backed by an Ollama server on the same machine.
    `initialize` checks that the model is present; `generate` is a single
    non-streaming completion.
    """

    host: str = "http://localhost:11434"
    model: str = "gemma3:270m"
    timeout: float = 30.0
    session: requests.Session = field(default_factory=requests.Session)
    _loaded: bool = False

    def initialize(self, model_path: str | None = None) -> bool:
        if model_path:
            # a path selects a model tag registered from that file
            self.model = model_path
        try:
            resp = self.session.post(
                f"{self.host}/api/show", json={"model": self.model}, timeout=self.timeout
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Local model %s unavailable: %s", self.model, exc)
            self._loaded = False
            return False
        self._loaded = True
        logger.info("Local model %s ready", self.model)
        return True

    def is_loaded(self) -> bool:
        return self._loaded

    def generate(self, prompt: str, max_tokens: int) -> str:
        if not self._loaded:
            raise InferenceUnavailableError("local model not initialized")
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"num_predict": max_tokens, "temperature": 0.3},
        }
        try:
            resp = self.session.post(
                f"{self.host}/api/generate", json=payload, timeout=self.timeout
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Ollama request failed: %s", exc)
            raise InferenceUnavailableError(f"local generation failed: {exc}") from exc
        return resp.json().get("response", "")
