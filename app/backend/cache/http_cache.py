"""
Glue between FastAPI handlers and the response cache.

Handlers pass a loader that builds the JSON payload; the payload is served
from the cache when a fresh copy exists and stored after a successful load
otherwise. Failed loads raise before anything is stored.
"""
import logging
from typing import Any, Callable

from fastapi import Request, Response

from cache.response_cache import MISS, ResponseCache

logger = logging.getLogger(__name__)


def cache_key(request: Request) -> str:
    """Path plus raw query string, e.g. ``/api/products?page=2``."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def cached_response(
    cache: ResponseCache,
    request: Request,
    response: Response,
    ttl_ms: int,
    loader: Callable[[], Any],
) -> Any:
    response.headers["Cache-Control"] = f"public, max-age={int(ttl_ms // 1000)}"

    if request.method != "GET":
        return loader()

    key = cache_key(request)
    cached = cache.get(key)
    if cached is not MISS:
        logger.info("[CACHE HIT] %s", key)
        response.headers["X-Cache-Status"] = "HIT"
        return cached

    logger.info("[CACHE MISS] %s", key)
    payload = loader()
    cache.set(key, payload, ttl_ms)
    logger.info("[CACHE SET] %s", key)
    response.headers["X-Cache-Status"] = "MISS"
    return payload
