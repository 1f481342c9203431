"""Response cache — key-addressed, time-bounded memoization of handlers."""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import json
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from starlette.requests import Request
from starlette.responses import Response

from fastapi_request_chain._tasks import BackgroundTaskSet
from fastapi_request_chain._types import Clock, Handler, KeyFunc
from fastapi_request_chain.context import RequestContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheItem:
    """A stored response. ``value`` is a template and is never handed out."""

    key: str
    value: Response
    dob: float

    def is_valid(self, now: float, lifetime_ms: float) -> bool:
        return now < self.dob + lifetime_ms / 1000


@dataclass(frozen=True)
class CacheOptions:
    """Response cache configuration.

    ``lifetime`` is in milliseconds; zero or None means unbounded, like the
    default. ``coalesce`` makes concurrent misses for one key share a single
    handler call.
    """

    lifetime: float | None = math.inf
    debug: bool = False
    coalesce: bool = False

    def __post_init__(self) -> None:
        if not self.lifetime:
            object.__setattr__(self, "lifetime", math.inf)
        elif self.lifetime < 0:
            raise ValueError("lifetime must not be negative")


@runtime_checkable
class CacheStore(Protocol):
    """Pluggable storage for cache items.

    Methods are synchronous: each call is atomic with respect to other
    requests on the event loop.
    """

    def latest(self, key: str) -> CacheItem | None: ...
    def replace(self, item: CacheItem) -> None: ...
    def discard(self, key: str) -> None: ...
    def clear(self) -> None: ...


class InMemoryCacheStore:
    """Default in-memory store keeping the latest item per key. Single-process only."""

    def __init__(self) -> None:
        self._items: dict[str, CacheItem] = {}

    def __len__(self) -> int:
        return len(self._items)

    def latest(self, key: str) -> CacheItem | None:
        return self._items.get(key)

    def replace(self, item: CacheItem) -> None:
        self._items[item.key] = item

    def discard(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()


def default_cache_key(ctx: RequestContext) -> str:
    """Derive the cache key from the request URL and the route data."""
    try:
        data = json.dumps(dict(ctx.data), sort_keys=True, default=str)
    except TypeError:
        # Mixed key types cannot be sorted; keep insertion order
        data = json.dumps(dict(ctx.data), default=str)
    return f"{ctx.request.url}-{data}"


def is_buffered(response: Response) -> bool:
    """True when the whole body is held in memory and can be replayed."""
    return isinstance(getattr(response, "body", None), (bytes, bytearray, memoryview))


def clone_response(response: Response) -> Response:
    """Return an independent copy of a buffered response."""
    clone = Response(content=bytes(response.body), status_code=response.status_code)
    clone.raw_headers = list(response.raw_headers)
    return clone


def not_modified(response: Response) -> Response:
    """Build a bodiless 304 carrying the headers of ``response``."""
    result = Response(status_code=304)
    result.raw_headers = [
        (name, value)
        for name, value in response.raw_headers
        if name != b"content-length"
    ]
    return result


def etag_matches(request: Request, response: Response) -> bool:
    etag = response.headers.get("etag")
    if_none_match = request.headers.get("if-none-match")
    return bool(etag and if_none_match and etag in if_none_match)


class ResponseCache:
    """Memoizes handler responses by key with lazy expiry and ETag support."""

    def __init__(
        self,
        options: CacheOptions | None = None,
        *,
        store: CacheStore | None = None,
        key_func: KeyFunc | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.options = options or CacheOptions()
        self._store: CacheStore = store if store is not None else InMemoryCacheStore()
        self._key_func = key_func or default_cache_key
        self._clock = clock or time.monotonic
        self._tasks = BackgroundTaskSet("cache store")
        self._in_flight: dict[str, asyncio.Future[Response]] = {}

    def _debug(self, msg: str, *args: Any) -> None:
        if self.options.debug:
            logger.debug(msg, *args)

    def lookup(self, key: str) -> CacheItem | None:
        """Return the current item for ``key``, or None if missing or expired."""
        item = self._store.latest(key)
        if item is None or not item.is_valid(self._clock(), self.options.lifetime):
            return None
        return item

    def store(self, key: str, response: Response) -> CacheItem:
        """Supersede whatever is stored under ``key`` with ``response``."""
        item = CacheItem(key=key, value=response, dob=self._clock())
        self._store.replace(item)
        self._debug("cache store %s", key)
        return item

    def invalidate(self, key: str) -> None:
        self._store.discard(key)

    def clear(self) -> None:
        self._store.clear()

    async def drain(self) -> None:
        """Wait for pending background stores."""
        await self._tasks.drain()

    async def _store_later(self, key: str, response: Response) -> None:
        self.store(key, response)

    async def _compute(
        self, key: str, handler: Handler, ctx: RequestContext
    ) -> tuple[Response, bool]:
        """Run the handler; the flag tells whether this call owns the result."""
        if not self.options.coalesce:
            return await handler(ctx), True

        pending = self._in_flight.get(key)
        if pending is not None:
            try:
                response = await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
            else:
                if is_buffered(response):
                    return response, False
            return await handler(ctx), True

        future: asyncio.Future[Response] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            response = await handler(ctx)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Nobody may be waiting; mark the exception as retrieved
            future.exception()
            raise
        else:
            future.set_result(response)
        finally:
            self._in_flight.pop(key, None)
        return response, True

    def memoize(self, handler: Handler) -> Handler:
        """Wrap ``handler`` so repeated requests for one key are served from cache."""

        @functools.wraps(handler)
        async def memoized(ctx: RequestContext) -> Response:
            key = self._key_func(ctx)

            item = self.lookup(key)
            if item is not None:
                if etag_matches(ctx.request, item.value):
                    self._debug("cache hit (not modified) %s", key)
                    return not_modified(item.value)
                self._debug("cache hit %s", key)
                return clone_response(item.value)

            self._debug("cache miss %s", key)
            response, owner = await self._compute(key, handler, ctx)
            if not is_buffered(response):
                return response
            if owner:
                self._tasks.spawn(self._store_later(key, response))
            return clone_response(response)

        return memoized


def create_response_cache(
    options: CacheOptions | None = None, **overrides: Any
) -> Callable[[Handler], Handler]:
    """Create a fresh cache and return its ``memoize`` decorator.

    Keyword overrides are applied on top of ``options``, e.g.
    ``create_response_cache(lifetime=30_000)``.
    """
    if overrides:
        options = dataclasses.replace(options or CacheOptions(), **overrides)
    return ResponseCache(options).memoize
