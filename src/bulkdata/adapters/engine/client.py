"""HTTP client for the resolution engine REST API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from http import HTTPStatus
from logging import getLogger
from typing import TYPE_CHECKING, Self
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from bulkdata.adapters.http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    ResilientClient,
)
from bulkdata.config.engine import EngineConfig
from bulkdata.domain.ports.engine import (
    DataSourceCatalog,
    EngineError,
    RecordAdded,
    RecordDuplicate,
    RecordIngestor,
    RecordRejected,
)

from .schema import DataSourcesResponse, ErrorResponse, LoadRecordResponse
from .translator import parse_resolution_info

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from types import TracebackType

    from bulkdata.domain.ports.engine import IngestOutcome, SubmittedRecord

log = getLogger(__name__)

DATA_SOURCES_PATH = "data-sources"
_DATA_SOURCES_TTL_SECONDS = 300.0


def _should_cache_data_sources(payload: object) -> bool:
    try:
        DataSourcesResponse.model_validate(payload)
    except ValidationError:
        return False
    return True


def records_resilience_config(
    config: EngineConfig,
    *,
    ratelimit: RateLimit | None = None,
) -> ResilienceConfig:
    return ResilienceConfig(
        name="engine-records",
        base_url=config.base_url,
        timeout_seconds=config.timeout_seconds,
        ratelimit=ratelimit,
        cache=None,
        default_headers=config.headers(),
    )


def catalog_resilience_config(config: EngineConfig) -> ResilienceConfig:
    return ResilienceConfig(
        name="engine-catalog",
        base_url=config.base_url,
        timeout_seconds=config.timeout_seconds,
        cache=CacheConfig(
            backend="memory",
            default_ttl_seconds=_DATA_SOURCES_TTL_SECONDS,
            should_cache=_should_cache_data_sources,
        ),
        default_headers=config.headers(),
    )


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpResolutionEngine:
    """Synchronous engine port backed by the async resilient client.

    Calls run on a private event loop so the single-threaded loader can block on each
    submission. Record submissions are never cached; the data source list is.
    """

    config: EngineConfig = field(default_factory=EngineConfig.from_environment)
    ratelimit: RateLimit | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _runner: asyncio.Runner | None = field(default=None, init=False, repr=False)
    _records_client: ResilientClient | None = field(default=None, init=False, repr=False)
    _catalog_client: ResilientClient | None = field(default=None, init=False, repr=False)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def add_record(self, record: SubmittedRecord) -> IngestOutcome:
        return self._run(self._add_record(record))

    def data_sources(self) -> frozenset[str]:
        return self._run(self._data_sources())

    def close(self) -> None:
        if self._runner is None:
            return
        for client in (self._records_client, self._catalog_client):
            if client is not None:
                self._runner.run(client.aclose())
        self._records_client = None
        self._catalog_client = None
        self._runner.close()
        self._runner = None

    def _run[T](self, coro: Coroutine[object, object, T]) -> T:
        if self._runner is None:
            self._runner = asyncio.Runner()
        return self._runner.run(coro)

    def _records(self) -> ResilientClient:
        if self._records_client is None:
            self._records_client = self.client_factory(
                records_resilience_config(self.config, ratelimit=self.ratelimit)
            )
        return self._records_client

    def _catalog(self) -> ResilientClient:
        if self._catalog_client is None:
            self._catalog_client = self.client_factory(catalog_resilience_config(self.config))
        return self._catalog_client

    async def _add_record(self, record: SubmittedRecord) -> IngestOutcome:
        path = f"{DATA_SOURCES_PATH}/{quote(record.data_source, safe='')}/records"
        params: dict[str, str] = {"withInfo": "true"}
        if record.load_id:
            params["loadId"] = record.load_id
        payload = dict(record.payload)
        try:
            if record.record_id is not None:
                response = await self._records().put(
                    f"{path}/{quote(record.record_id, safe='')}", json=payload, params=params
                )
            else:
                response = await self._records().post(path, json=payload, params=params)
        except httpx.HTTPError as exc:
            raise EngineError(f"Engine request failed: {exc}") from exc
        return _interpret_load_response(response, record)

    async def _data_sources(self) -> frozenset[str]:
        try:
            response = await self._catalog().get(DATA_SOURCES_PATH)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise EngineError(f"Could not list data sources: {exc}") from exc
        try:
            parsed = DataSourcesResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise EngineError("Unexpected data source payload", code="ENGINE_PROTOCOL") from exc
        return frozenset(code.strip().upper() for code in parsed.data.data_sources)


def _interpret_load_response(response: httpx.Response, record: SubmittedRecord) -> IngestOutcome:
    status = response.status_code
    if status in {HTTPStatus.OK, HTTPStatus.CREATED}:
        try:
            parsed = LoadRecordResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise EngineError("Unexpected load payload", code="ENGINE_PROTOCOL") from exc
        info = parse_resolution_info(
            parsed.data.info,
            data_source=record.data_source,
            record_id=parsed.data.record_id or record.record_id,
        )
        return RecordAdded(info=info)

    error = _first_error(response)
    if status == HTTPStatus.CONFLICT:
        return RecordDuplicate(reason=error[1] if error else None)
    if HTTPStatus.BAD_REQUEST <= status < HTTPStatus.INTERNAL_SERVER_ERROR:
        code, message = error or (f"HTTP_{status}", response.reason_phrase)
        return RecordRejected(code=code, message=message)

    message = error[1] if error else response.reason_phrase
    log.error(
        "Engine failure %s for %s/%s: %s", status, record.data_source, record.record_id, message
    )
    raise EngineError(message or f"HTTP {status}", code=f"HTTP_{status}")


def _first_error(response: httpx.Response) -> tuple[str, str] | None:
    try:
        parsed = ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return None
    first = parsed.first()
    if first is None:
        return None
    return first.code or f"HTTP_{response.status_code}", first.message


if TYPE_CHECKING:
    _ingestor_check: RecordIngestor = HttpResolutionEngine()
    _catalog_check: DataSourceCatalog = HttpResolutionEngine()
