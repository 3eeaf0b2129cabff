import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

from vistaguide.core.errors import StoreCorruptError
from vistaguide.models.domain import Resolution, present

logger = logging.getLogger(__name__)

T = TypeVar("T")

ProviderFn = Callable[[str, Dict[str, Any]], Awaitable[Optional[T]]]


@dataclass
class Provider(Generic[T]):
    name: str
    fetch: ProviderFn
    # values already held locally are not written back
    cacheable: bool = True


class MultiProviderResolver(Generic[T]):
    """Walks providers in order; the first present value wins.

    A provider that raises, times out or returns an empty value is skipped.
    StoreCorruptError is never skipped.
    """

    def __init__(
        self,
        providers: Sequence[Provider[T]],
        timeout: float = 5.0,
        on_resolved: Optional[Callable[[str, T, str], None]] = None,
        label: str = "resolver",
    ):
        self.providers = list(providers)
        self.timeout = timeout
        self.on_resolved = on_resolved
        self.label = label

    async def resolve(self, entity_id: str, hints: Optional[Dict[str, Any]] = None) -> Resolution[T]:
        hints = hints or {}
        attempted: List[str] = []
        for provider in self.providers:
            attempted.append(provider.name)
            try:
                value = await asyncio.wait_for(
                    provider.fetch(entity_id, hints), timeout=self.timeout
                )
            except StoreCorruptError:
                raise
            except asyncio.TimeoutError:
                logger.warning(
                    "%s: provider %s timed out for %s", self.label, provider.name, entity_id
                )
                continue
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "%s: provider %s failed for %s: %s",
                    self.label,
                    provider.name,
                    entity_id,
                    exc,
                )
                continue

            if not present(value):
                logger.debug("%s: provider %s had nothing for %s", self.label, provider.name, entity_id)
                continue

            logger.info("%s: resolved %s via %s", self.label, entity_id, provider.name)
            if provider.cacheable and self.on_resolved is not None:
                self.on_resolved(entity_id, value, provider.name)
            return Resolution(value=value, provider=provider.name, attempted=attempted)

        logger.info("%s: %s unresolved after %s", self.label, entity_id, attempted)
        return Resolution(value=None, provider=None, attempted=attempted)
