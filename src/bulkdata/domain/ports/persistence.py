"""Ports for persisting load runs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bulkdata.domain.model import BulkLoadResult, LoadProgress, LoadRun


@runtime_checkable
class LoadRunRepository(Protocol):
    """Stores load-run progress so other processes can poll it."""

    def save_progress(self, load_id: str, progress: LoadProgress) -> None: ...

    def save_result(self, result: BulkLoadResult) -> None: ...

    def get(self, load_id: str) -> LoadRun | None: ...

    def list_recent(self, limit: int = 20) -> list[LoadRun]: ...
