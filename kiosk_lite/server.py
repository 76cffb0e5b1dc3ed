"""kiosk_lite HTTP server: polling API over the fetcher state, plus process lifecycle."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections import OrderedDict
from typing import Optional

import httpx
from aiohttp import web

from .config_loader import KioskConfig
from .core.http_client import close_all_clients
from .core.timezone_utils import now_utc
from .fetchers.base import Result
from .hashing import SerializationError, canonical_json, diff, hash_state
from .registry import build_manager
from .state import StateCoordinator

logger = logging.getLogger(__name__)

HASH_HEADER = "X-Dashboard-Hash"
SNAPSHOT_HISTORY = 8

# Sections may be keyed by their type when a source kept its default name
_TYPE_FALLBACK_KEYS = frozenset({"rss", "weather"})


class DashboardAPI:
    """Request handlers for the dashboard polling contract.

    ``GET /api/updates`` returns the full per-section snapshot and its digest.
    A client that sends back the digest it last saw gets ``304`` while
    nothing changed. Recently served snapshots are remembered so that
    ``changed`` can name only the sections that differ from the client's copy.
    """

    def __init__(self, config: KioskConfig, coordinator: StateCoordinator) -> None:
        self.config = config
        self.coordinator = coordinator
        self._served: OrderedDict[str, dict[str, Result]] = OrderedDict()

    def current_updates(self) -> dict[str, Result]:
        """Latest Result for every configured section that has one."""
        snapshot = self.coordinator.snapshot()
        updates: dict[str, Result] = {}
        for section in self.config.sections:
            result = snapshot.get(section.id)
            if result is None and section.type in _TYPE_FALLBACK_KEYS:
                result = snapshot.get(section.type)
            if result is not None:
                updates[section.id] = result
        return updates

    def _remember(self, digest: str, updates: dict[str, Result]) -> None:
        self._served[digest] = updates
        self._served.move_to_end(digest)
        while len(self._served) > SNAPSHOT_HISTORY:
            self._served.popitem(last=False)

    async def updates(self, request: web.Request) -> web.StreamResponse:
        client_hash = request.headers.get(HASH_HEADER, "")
        updates = self.current_updates()

        try:
            digest = hash_state(updates)
            if client_hash and client_hash == digest:
                return web.Response(status=304)

            previous = self._served.get(client_hash)
            changed = diff(previous, updates) if previous is not None else sorted(updates)
            body = canonical_json(
                {"status": "ok", "hash": digest, "updates": updates, "changed": changed}
            )
        except SerializationError as e:
            logger.exception("Failed to serialize dashboard state")
            return web.json_response({"status": "error", "error": str(e)}, status=500)

        self._remember(digest, updates)
        return web.Response(text=body, content_type="application/json")

    async def health(self, _request: web.Request) -> web.Response:
        """Per-source health; 503 once every source that reported is failing."""
        snapshot = self.coordinator.snapshot()
        sources = {
            name: {
                "is_healthy": result.status.is_healthy,
                "last_fetch_time": result.status.last_fetch_time.isoformat(),
                "error": result.status.error_message,
            }
            for name, result in sorted(snapshot.items())
        }
        healthy = sum(1 for s in sources.values() if s["is_healthy"])

        if not sources:
            status, code = "starting", 200
        elif healthy == 0:
            status, code = "unhealthy", 503
        elif healthy < len(sources):
            status, code = "degraded", 200
        else:
            status, code = "ok", 200

        return web.json_response(
            {
                "status": status,
                "server_time": now_utc().isoformat(),
                "healthy_sources": healthy,
                "total_sources": len(sources),
                "sources": sources,
            },
            status=code,
        )


def create_app(config: KioskConfig, coordinator: StateCoordinator) -> web.Application:
    """Build the aiohttp application serving ``/health`` and ``/api/updates``."""
    api = DashboardAPI(config, coordinator)
    app = web.Application()
    app["api"] = api
    app.router.add_get("/health", api.health)
    app.router.add_get("/api/updates", api.updates)
    return app


async def _serve(
    config: KioskConfig,
    stop_event: Optional[asyncio.Event] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    """Run fetchers, state coordinator and web server until ``stop_event`` is set.

    SIGINT/SIGTERM set the event when running on the main thread.
    """
    stop_event = stop_event or asyncio.Event()
    manager = build_manager(config, client)
    coordinator = StateCoordinator()
    app = create_app(config, coordinator)

    runner = web.AppRunner(app)
    await runner.setup()
    host, port = config.server.host, config.server.port
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        raise
    logger.info("Server started on %s:%d", host, port)

    coordinator_task = asyncio.create_task(
        coordinator.run(manager.updates(), stop_event), name="state-coordinator"
    )
    manager_task = asyncio.create_task(manager.start(stop_event), name="fetch-manager")

    loop = asyncio.get_running_loop()

    def _on_signal() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.remove_signal_handler(sig)

    for task in (manager_task, coordinator_task):
        try:
            await task
        except Exception as e:
            logger.warning("%s ended with error during shutdown: %s", task.get_name(), e)

    await runner.cleanup()

    try:
        await close_all_clients()
        logger.debug("Shared HTTP clients cleaned up")
    except Exception as e:
        logger.warning("Error cleaning up shared HTTP clients: %s", e)

    logger.info("Server shutdown complete")


def start_server(config: KioskConfig, debug_mode: bool = False) -> None:
    """Run the asyncio event loop and HTTP server; blocks until SIGINT/SIGTERM."""
    from .lite_logging import configure_lite_logging

    configure_lite_logging(debug_mode=debug_mode)
    logger.info("Logging configuration applied: debug_mode=%s", debug_mode)

    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")

