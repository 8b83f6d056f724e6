"""
Page Pool
=========
Bounded set of reusable renderer sessions (Playwright pages in production).

- At most ``size`` sessions are checked out at any moment; further
  ``acquire()`` calls suspend until one is released.
- Released sessions go back to an idle list for reuse; broken or surplus
  sessions are disposed.
- ``close()`` disposes idle *and* checked-out sessions and is safe to call
  while tasks are still mid-flight or after some sessions failed.

The pool is agnostic of Playwright: it is built from a ``factory`` coroutine
that creates a session and a ``disposer`` coroutine that destroys one.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Generic, List, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")


class PoolExhausted(RuntimeError):
    """No session can be handed out (pool closed or session creation impossible)."""


class PagePool(Generic[S]):
    """
    Usage::

        pool = PagePool(factory=context.new_page, disposer=lambda p: p.close(), size=5)
        async with pool.session() as page:
            await page.goto(url)
        await pool.close()
    """

    def __init__(
        self,
        factory: Callable[[], Awaitable[S]],
        disposer: Callable[[S], Awaitable[Any]],
        size: int = 5,
        is_healthy: Optional[Callable[[S], bool]] = None,
    ):
        if size < 1:
            raise ValueError("pool size must be >= 1")
        self.size = size
        self._factory = factory
        self._disposer = disposer
        self._is_healthy = is_healthy
        self._slots = asyncio.Semaphore(size)
        self._idle: List[S] = []
        self._checked_out: Set[S] = set()
        self._orphans: Set[S] = set()   # checked out when close() ran
        self._closed = False
        self.created = 0
        self.disposed = 0

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def acquire(self) -> S:
        """Check out an idle session, or create one if under the cap."""
        if self._closed:
            raise PoolExhausted("page pool is closed")
        await self._slots.acquire()
        if self._closed:
            self._slots.release()
            raise PoolExhausted("page pool is closed")
        try:
            if self._idle:
                session = self._idle.pop()
            else:
                session = await self._factory()
                self.created += 1
        except BaseException:
            self._slots.release()
            raise
        self._checked_out.add(session)
        return session

    async def release(self, session: S, broken: bool = False) -> None:
        """Return a session to the idle list, or dispose it."""
        if session in self._orphans:
            self._orphans.discard(session)
            self._slots.release()
            return
        if session not in self._checked_out:
            logger.warning("[POOL] Release of a session that is not checked out — ignored")
            return

        self._checked_out.discard(session)
        try:
            if broken or not self._healthy(session):
                await self._dispose(session)
            elif self._closed or len(self._idle) >= self.size:
                await self._dispose(session)
            else:
                self._idle.append(session)
        finally:
            self._slots.release()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[S]:
        """Acquire/release pair that holds on every exit path."""
        session = await self.acquire()
        try:
            yield session
        finally:
            await self.release(session)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Dispose every session the pool knows about. Idempotent."""
        if self._closed:
            return
        self._closed = True
        idle, self._idle = self._idle, []
        in_flight = list(self._checked_out)
        self._orphans.update(in_flight)
        self._checked_out.clear()

        for session in idle + in_flight:
            await self._dispose(session)
        logger.debug(
            f"[POOL] Closed — created={self.created} disposed={self.disposed} "
            f"(in-flight at close: {len(in_flight)})"
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def checked_out(self) -> int:
        return len(self._checked_out)

    @property
    def idle(self) -> int:
        return len(self._idle)

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _healthy(self, session: S) -> bool:
        if self._is_healthy is None:
            return True
        try:
            return bool(self._is_healthy(session))
        except Exception:
            return False

    async def _dispose(self, session: S) -> None:
        try:
            await self._disposer(session)
        except Exception as e:
            # Sessions that died mid-flight often fail to close cleanly
            logger.debug(f"[POOL] Dispose failed: {e}")
        finally:
            self.disposed += 1
