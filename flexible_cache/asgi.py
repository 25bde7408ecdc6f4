"""
FastAPI / Starlette integration.

FlushRefreshesMiddleware runs pending refreshes once each HTTP request has
been handled, so stale values scheduled during the request are recomputed
after the response went out. lifespan() builds the process-wide cache from
the YAML config at startup.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool
from starlette.types import ASGIApp, Receive, Scope, Send

from flexible_cache import facade
from flexible_cache.config import build_cache, configure_logging, load_config
from flexible_cache.errors import RefreshError
from flexible_cache.flexible import FlexibleCache

logger = logging.getLogger(__name__)


class FlushRefreshesMiddleware:
    """Pure ASGI middleware flushing the refresh scheduler after each request."""

    def __init__(self, app: ASGIApp, cache: Optional[FlexibleCache] = None) -> None:
        self.app = app
        self._cache = cache

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        try:
            await self.app(scope, receive, send)
        finally:
            await self._flush()

    async def _flush(self) -> None:
        cache = self._cache or facade.get_flexible_cache()
        try:
            # Refreshes may block on locks and store I/O.
            ran = await run_in_threadpool(cache.flush)
        except RefreshError as exc:
            # The response is already sent; there is no caller left to raise to.
            for key, error in exc.failures:
                logger.error("Deferred refresh of %s failed: %r", key, error)
            return
        if ran:
            logger.debug("Flushed %d deferred refresh(es)", ran)


def install(app: FastAPI, cache: Optional[FlexibleCache] = None) -> None:
    """Register FlushRefreshesMiddleware on `app`."""
    app.add_middleware(FlushRefreshesMiddleware, cache=cache)


def lifespan(config_path: Optional[str] = None):
    """
    Build a FastAPI lifespan that configures the process-wide cache.

    Startup: configure logging, load config, build stores, install the
    cache as the facade singleton. Shutdown: run anything still pending.
    """

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        configure_logging()
        config = load_config(config_path)
        cache = facade.configure(build_cache(config))
        logger.info("Flexible cache ready (stores: %s)", ", ".join(cache.registry.names()))
        yield
        try:
            await run_in_threadpool(cache.flush)
        except RefreshError as exc:
            logger.error("Refreshes failed during shutdown: %s", exc)
        facade.reset()

    return _lifespan
