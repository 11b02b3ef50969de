"""Async HTTP client for the engine with retries, throttling and an optional cache."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from bulkdata.config.http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
    ShouldCacheHook,
)
from bulkdata.config.storage import get_storage_config

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

__all__ = [
    "CacheConfig",
    "RateLimit",
    "ResilienceConfig",
    "ResilientClient",
    "RetryPolicy",
    "build_retry",
]

log = getLogger(__name__)


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        allowed_methods=sorted(policy.allowed_methods),
        status_forcelist=sorted(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


class ResilientClient:
    """Wraps an ``httpx.AsyncClient`` configured from a ``ResilienceConfig``.

    Every request passes the rate limiter first; retries happen below it in the
    transport, so a retried request counts once against the limit.
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = None
        if config.ratelimit is not None:
            self._limiter = AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
        self._client = _build_client(config)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: object = None,
        params: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        if self._limiter is not None:
            if not self._limiter.has_capacity():
                log.debug("%s: rate limit reached, waiting", self.config.name)
            async with self._limiter:
                response = await self._client.request(method, url, json=json, params=params)
        else:
            response = await self._client.request(method, url, json=json, params=params)
        if response.is_error:
            log.debug(
                "%s: %s %s answered %s", self.config.name, method, url, response.status_code
            )
        return response

    async def get(self, url: str, *, params: Mapping[str, str] | None = None) -> httpx.Response:
        return await self.request("GET", url, params=params)

    async def post(
        self,
        url: str,
        *,
        json: object = None,
        params: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        return await self.request("POST", url, json=json, params=params)

    async def put(
        self,
        url: str,
        *,
        json: object = None,
        params: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        return await self.request("PUT", url, json=json, params=params)


def _build_client(config: ResilienceConfig) -> httpx.AsyncClient:
    transport = RetryTransport(retry=build_retry(config.retry))
    headers = dict(config.default_headers or {})
    base_url = config.base_url or ""
    cache = config.cache
    if cache is None or not cache.enabled:
        return httpx.AsyncClient(
            base_url=base_url,
            timeout=config.timeout_seconds,
            headers=headers,
            transport=transport,
        )
    return AsyncCacheClient(
        base_url=base_url,
        timeout=config.timeout_seconds,
        headers=headers,
        transport=transport,
        storage=_cache_storage(cache),
        policy=_cache_policy(cache.should_cache),
    )


def _cache_storage(cache: CacheConfig) -> AsyncSqliteStorage:
    if cache.backend == "memory":
        database_path = ":memory:"
    elif cache.backend == "sqlite":
        database_path = cache.sqlite_path or str(get_storage_config().http_cache_path())
    else:
        raise ValueError(f"Unsupported cache backend: {cache.backend}")
    return AsyncSqliteStorage(database_path=database_path, default_ttl=cache.default_ttl_seconds)


def _cache_policy(predicate: ShouldCacheHook | None) -> FilterPolicy | None:
    if predicate is None:
        return None
    return FilterPolicy(response_filters=[_JsonBodyFilter(predicate)])


class _JsonBodyFilter(BaseFilter[HishelCacheResponse]):
    """Only lets responses into the cache when their JSON body passes ``predicate``."""

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if body is None:
            return False
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False
        return bool(self._predicate(payload))
