"""Crawl exclusion guard."""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from release_sentry.modules.crawler.domain.exceptions import CrawlInProgressError


class CrawlGuard(ABC):
    """Single-holder exclusion over the crawl critical section.

    Acquisition never waits: a busy guard rejects immediately.
    """

    @abstractmethod
    async def try_acquire(self) -> bool:
        """Take the guard if free. Returns False when already held."""
        pass

    @abstractmethod
    async def release(self) -> None:
        pass

    @abstractmethod
    async def is_busy(self) -> bool:
        """Advisory check; the answer may be stale by the time it is used."""
        pass

    @asynccontextmanager
    async def hold(self) -> AsyncGenerator[None, None]:
        """Hold the guard for the duration of the block.

        Raises:
            CrawlInProgressError: 已有抓取在进行
        """
        if not await self.try_acquire():
            raise CrawlInProgressError()
        try:
            yield
        finally:
            await self.release()
