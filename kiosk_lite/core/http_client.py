"""Shared HTTP client manager for kiosk_lite fetchers.

Every adapter that is not handed an explicit client borrows a pooled
httpx.AsyncClient from here, so a dashboard with many sections reuses a
handful of connections instead of opening one client per fetch. Limits are
sized for small single-board computers.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

from kiosk_lite import __version__

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_ID = "fetchers"

# Global state for shared HTTP clients
_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_health: dict[str, dict[str, float]] = {}
_client_lock = asyncio.Lock()

_DEFAULT_LIMITS = httpx.Limits(
    max_connections=8,
    max_keepalive_connections=4,
)

# Upstream calls are additionally bounded by each adapter's own wall-clock timeout.
DEFAULT_TIMEOUT = httpx.Timeout(
    connect=10.0,
    read=10.0,
    write=10.0,
    pool=10.0,
)

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": f"kiosk-lite/{__version__} (+https://github.com/kiosk-lite)",
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}

# Health check thresholds
HEALTH_ERROR_THRESHOLD = 3  # Recreate client after 3 consecutive errors
HEALTH_TIMEOUT_SECONDS = 300  # Only errors within the last 5 minutes count


def _create_ipv4_transport(limits: httpx.Limits) -> httpx.AsyncHTTPTransport:
    """Create HTTP transport configured for IPv4-only connections.

    Avoids IPv6 resolution stalls on hosts where IPv6 is configured but DNS for
    some upstreams only answers over IPv4.

    Args:
        limits: Connection limits

    Returns:
        HTTP transport bound to the IPv4 wildcard address
    """
    return httpx.AsyncHTTPTransport(
        limits=limits,
        local_address="0.0.0.0",  # nosec B104 - intentional IPv4 binding for client
    )


async def get_shared_client(
    client_id: str = DEFAULT_CLIENT_ID,
    limits: Optional[httpx.Limits] = None,
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """Get or create a shared HTTP client with connection pooling.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        limits: Custom connection limits
        timeout: Custom timeout configuration

    Returns:
        Shared httpx.AsyncClient

    Raises:
        RuntimeError: If client creation fails
    """
    async with _client_lock:
        await _recreate_client_if_unhealthy(client_id)

        if client_id not in _shared_clients or _shared_clients[client_id].is_closed:
            effective_limits = limits or _DEFAULT_LIMITS
            effective_timeout = timeout or DEFAULT_TIMEOUT
            try:
                logger.debug(
                    "Creating shared HTTP client '%s' with limits: max_connections=%d, "
                    "max_keepalive=%d (IPv4-only)",
                    client_id,
                    effective_limits.max_connections,
                    effective_limits.max_keepalive_connections,
                )
                _shared_clients[client_id] = httpx.AsyncClient(
                    transport=_create_ipv4_transport(effective_limits),
                    timeout=effective_timeout,
                    follow_redirects=True,
                    verify=True,
                    headers=DEFAULT_HEADERS,
                )
            except Exception as e:
                logger.exception("Failed to create shared HTTP client '%s'", client_id)
                raise RuntimeError(f"Failed to create shared HTTP client: {e}") from e

            _client_health[client_id] = {
                "error_count": 0,
                "last_error_time": 0,
                "created_time": time.time(),
            }
            logger.info("Created shared HTTP client '%s'", client_id)

        return _shared_clients[client_id]


async def close_all_clients() -> None:
    """Close all shared HTTP clients.

    Called during application shutdown (and after each test) so no
    connections leak past the event loop.
    """
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            try:
                if not client.is_closed:
                    await client.aclose()
                    logger.debug("Closed shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
        _client_health.clear()
        logger.debug("All shared HTTP clients closed")


async def record_client_error(client_id: str = DEFAULT_CLIENT_ID) -> None:
    """Record a transport-level error for health tracking.

    Args:
        client_id: Identifier of the client that encountered an error
    """
    async with _client_lock:
        health = _client_health.setdefault(
            client_id,
            {"error_count": 0, "last_error_time": 0, "created_time": time.time()},
        )
        health["error_count"] += 1
        health["last_error_time"] = time.time()

        logger.debug(
            "Recorded error for client '%s', total errors: %d",
            client_id,
            health["error_count"],
        )


async def record_client_success(client_id: str = DEFAULT_CLIENT_ID) -> None:
    """Record a successful operation, clearing the error count.

    Args:
        client_id: Identifier of the client that had a successful operation
    """
    async with _client_lock:
        if client_id in _client_health:
            _client_health[client_id]["error_count"] = 0


def get_client_health(client_id: str = DEFAULT_CLIENT_ID) -> Optional[dict[str, float]]:
    """Return a copy of the health counters for a client, if tracked."""
    health = _client_health.get(client_id)
    return dict(health) if health is not None else None


async def _recreate_client_if_unhealthy(client_id: str) -> None:
    """Drop a client that has failed repeatedly so the next call builds a fresh one.

    Must be called with ``_client_lock`` held.

    Args:
        client_id: Identifier of the client to check
    """
    health = _client_health.get(client_id)
    if health is None:
        return

    should_recreate = (
        health["error_count"] >= HEALTH_ERROR_THRESHOLD
        and (time.time() - health["last_error_time"]) < HEALTH_TIMEOUT_SECONDS
    )

    if should_recreate and client_id in _shared_clients:
        logger.warning(
            "Recreating unhealthy client '%s' due to %d errors in last %d seconds",
            client_id,
            health["error_count"],
            HEALTH_TIMEOUT_SECONDS,
        )
        old_client = _shared_clients.pop(client_id)
        del _client_health[client_id]
        try:
            if not old_client.is_closed:
                await old_client.aclose()
        except Exception as e:
            logger.warning("Error closing unhealthy client '%s': %s", client_id, e)
