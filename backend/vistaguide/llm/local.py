import asyncio
import logging
import threading

from vistaguide.core.errors import InferenceUnavailableError
from vistaguide.llm.client import LocalInferenceBridge

logger = logging.getLogger(__name__)


class LocalModelRunner:
    """Runs a blocking LocalInferenceBridge off the event loop.

    Calls reach the bridge one at a time, including calls whose caller has
    already timed out. Only a bridge that refuses to initialize disables
    local answers; a slow call just fails that one request.
    """

    def __init__(
        self,
        bridge: LocalInferenceBridge | None,
        model_path: str | None = None,
        max_tokens: int = 80,
        timeout: float = 30.0,
    ):
        self.bridge = bridge
        self.model_path = model_path
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._bridge_lock = threading.Lock()
        self._init_failed = False

    @property
    def available(self) -> bool:
        return self.bridge is not None and not self._init_failed

    def _initialize(self) -> bool:
        with self._bridge_lock:
            if self.bridge.is_loaded():
                return True
            return bool(self.bridge.initialize(self.model_path))

    def _generate(self, prompt: str) -> str:
        with self._bridge_lock:
            return self.bridge.generate(prompt, self.max_tokens)

    async def ensure_ready(self) -> bool:
        if not self.available:
            return False
        if self.bridge.is_loaded():
            return True
        try:
            ready = await asyncio.wait_for(
                asyncio.to_thread(self._initialize), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            # still starting, or queued behind a running call
            logger.info("Local model not ready after %ss", self.timeout)
            return False
        except Exception as exc:  # noqa: BLE001
            logger.warning("Local model initialization failed: %s", exc)
            ready = False
        if not ready:
            self._init_failed = True
            logger.warning("Local model not loaded; offline answers unavailable")
        return ready

    async def generate(self, prompt: str) -> str:
        if not await self.ensure_ready():
            raise InferenceUnavailableError("offline answers unavailable")
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._generate, prompt), timeout=self.timeout
            )
        except asyncio.TimeoutError as exc:
            raise InferenceUnavailableError(
                f"local model timed out after {self.timeout}s"
            ) from exc
