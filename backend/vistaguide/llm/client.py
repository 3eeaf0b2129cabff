from typing import Any, Dict, Protocol


class RemoteModel(Protocol):
    def complete(self, prompt: str) -> str:
        ...


class EnrichmentClient(Protocol):
    def enrich(self, description: Dict[str, Any]) -> Dict[str, Any]:
        """Return enrichment fields for a destination (see prompts.ENRICHMENT_SCHEMA)."""
        ...


class LocalInferenceBridge(Protocol):
    """
    Opaque on-device model. Calls block, so callers run them off the event
    loop and never more than one at a time.
    """

    def initialize(self, model_path: str | None = None) -> bool:
        ...

    def generate(self, prompt: str, max_tokens: int) -> str:
        ...

    def is_loaded(self) -> bool:
        ...
