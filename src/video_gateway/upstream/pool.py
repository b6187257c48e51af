"""Rotating pool of interchangeable upstream providers."""

import asyncio
import logging
from typing import Sequence

import httpx

from ..config import Settings, settings as default_settings
from ..exceptions import NoProviderAvailable
from ..interfaces import Provider

logger = logging.getLogger(__name__)


class ProviderPool:
    """Hands out one reachable provider per acquisition.

    Probing starts at a shared cursor and walks the pool cyclically, at most
    once around. The first provider that answers the liveness call is
    returned and becomes the starting point of the next acquisition.

    The cursor is shared by all concurrent requests and updated without a
    lock. Overlapping acquisitions may overwrite each other's update, which
    only affects where the next probe starts.
    """

    def __init__(
        self,
        providers: Sequence[Provider],
        client: httpx.AsyncClient,
        probe_path: str | None = None,
        probe_timeout: float | None = None,
        config: Settings | None = None,
    ):
        if not providers:
            raise ValueError("ProviderPool requires at least one provider")

        config = config or default_settings
        self.providers: tuple[Provider, ...] = tuple(providers)
        self.client = client
        self.probe_path = probe_path or config.probe_path
        self.probe_timeout = probe_timeout if probe_timeout is not None else config.probe_timeout
        self._cursor = 0

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, config: Settings | None = None) -> "ProviderPool":
        config = config or default_settings
        return cls([Provider(url) for url in config.providers], client, config=config)

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self.providers)

    async def probe(self, provider: Provider, timeout: float | None = None) -> bool:
        """Return True if the provider answers its liveness call with a 2xx."""
        timeout = self.probe_timeout if timeout is None else timeout
        try:
            response = await self.client.get(provider.url(self.probe_path), timeout=timeout)
        except httpx.HTTPError as e:
            logger.debug("Provider %s not reachable: %s", provider.base_url, e)
            return False

        if not response.is_success:
            logger.debug("Provider %s answered %s", provider.base_url, response.status_code)
            return False
        return True

    async def acquire(self, timeout: float | None = None) -> Provider:
        """Return the first reachable provider, starting at the cursor.

        Args:
            timeout: Overall budget in seconds. Each probe is capped by the
                remaining budget. Without one, the worst case is
                ``len(pool) * probe_timeout``.

        Raises:
            NoProviderAvailable: Every provider was tried once without
                success, or the budget ran out.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        start = self._cursor
        count = len(self.providers)

        for offset in range(count):
            probe_timeout = self.probe_timeout
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                probe_timeout = min(probe_timeout, remaining)

            index = (start + offset) % count
            provider = self.providers[index]
            if await self.probe(provider, probe_timeout):
                self._cursor = index
                return provider
            logger.info("Instance %s not working, trying next...", provider.base_url)

        raise NoProviderAvailable("No working provider instances available")
