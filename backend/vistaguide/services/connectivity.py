import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import requests

from vistaguide.models.domain import ConnectivitySnapshot

logger = logging.getLogger(__name__)

ProbeFn = Callable[[], Awaitable[bool]]


@dataclass
class NetworkSimulation:
    """Test and demo override. Forced offline beats any probe or cached value."""

    force_offline: bool = False
    latency_seconds: float = 0.0


class ConnectivityProbe:
    def __init__(
        self,
        url: str = "https://www.google.com/generate_204",
        timeout: float = 2.0,
        cache_seconds: float = 30.0,
        probe: Optional[ProbeFn] = None,
        clock: Callable[[], float] = time.monotonic,
        simulation: Optional[NetworkSimulation] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.cache_seconds = cache_seconds
        self.clock = clock
        self.simulation = simulation or NetworkSimulation()
        self._probe = probe or self._http_probe
        self._snapshot: Optional[ConnectivitySnapshot] = None
        self._inflight: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> Optional[ConnectivitySnapshot]:
        return self._snapshot

    def _is_current(self) -> bool:
        return (
            self._snapshot is not None
            and self.clock() - self._snapshot.checked_at < self.cache_seconds
        )

    async def is_online(self) -> bool:
        if self.simulation.force_offline:
            return False
        if self._is_current():
            return self._snapshot.online
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._refresh())
        # shield so one cancelled caller does not abort the probe for the others
        return await asyncio.shield(self._inflight)

    def is_online_cached(self) -> Optional[bool]:
        if self.simulation.force_offline:
            return False
        if not self._is_current():
            return None
        return self._snapshot.online

    def invalidate(self) -> None:
        self._snapshot = None

    def simulate(self, force_offline: bool = False, latency_seconds: float = 0.0) -> None:
        self.simulation = NetworkSimulation(force_offline, latency_seconds)
        self.invalidate()
        logger.info(
            "Network simulation: offline=%s latency=%.2fs", force_offline, latency_seconds
        )

    async def _refresh(self) -> bool:
        if self.simulation.latency_seconds > 0:
            await asyncio.sleep(self.simulation.latency_seconds)
        try:
            online = bool(await asyncio.wait_for(self._probe(), timeout=self.timeout))
        except Exception as exc:  # noqa: BLE001
            logger.info("Connectivity probe failed, assuming offline: %s", exc)
            online = False
        self._snapshot = ConnectivitySnapshot(online=online, checked_at=self.clock())
        return online

    async def _http_probe(self) -> bool:
        resp = await asyncio.to_thread(
            requests.head, self.url, timeout=self.timeout, allow_redirects=False
        )
        return resp.status_code < 500
