"""SQLAlchemy repository for load runs."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select, update

from bulkdata.adapters.sqlalchemy.mappings import load_error_table, load_run_table
from bulkdata.domain.model import BulkLoadError, LoadProgress, LoadRun, LoadStatus
from bulkdata.domain.ports.persistence import LoadRunRepository

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

    from bulkdata.domain.model import BulkLoadResult


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyLoadRunRepository(LoadRunRepository):
    """Upserts load-run rows so polling readers see the latest progress."""

    def __init__(self, session: Session, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.session = session
        self._clock = clock

    def save_progress(self, load_id: str, progress: LoadProgress) -> None:
        values = {
            "status": progress.status,
            "submitted": progress.submitted,
            "loaded": progress.loaded,
            "skipped": progress.skipped,
            "failed": progress.failed,
            "incomplete": progress.incomplete,
            "abort_reason": progress.abort_reason,
            "started_at": progress.started_at,
            "finished_at": progress.finished_at,
            "updated_at": self._clock(),
        }
        exists_stmt = select(load_run_table.c.load_id).where(load_run_table.c.load_id == load_id)
        if self.session.execute(exists_stmt).scalar_one_or_none() is None:
            self.session.execute(insert(load_run_table).values(load_id=load_id, **values))
        else:
            self.session.execute(
                update(load_run_table).where(load_run_table.c.load_id == load_id).values(**values)
            )

    def save_result(self, result: BulkLoadResult) -> None:
        self.save_progress(
            result.load_id,
            LoadProgress(
                status=result.status,
                submitted=result.submitted,
                loaded=result.loaded,
                skipped=result.skipped,
                failed=result.failed,
                incomplete=result.incomplete,
                abort_reason=result.abort_reason,
                started_at=result.started_at,
                finished_at=result.finished_at,
            ),
        )
        self.session.execute(
            delete(load_error_table).where(load_error_table.c.load_id == result.load_id)
        )
        if result.errors:
            self.session.execute(
                insert(load_error_table),
                [
                    {
                        "load_id": result.load_id,
                        "position": position,
                        "code": error.code,
                        "message": error.message,
                        "data_source": error.data_source,
                        "record_id": error.record_id,
                        "line_number": error.line_number,
                    }
                    for position, error in enumerate(result.errors)
                ],
            )

    def get(self, load_id: str) -> LoadRun | None:
        row = self.session.execute(
            select(load_run_table).where(load_run_table.c.load_id == load_id)
        ).one_or_none()
        if row is None:
            return None
        return LoadRun(
            load_id=load_id,
            progress=_progress_from_row(row),
            errors=self._errors(load_id),
        )

    def list_recent(self, limit: int = 20) -> list[LoadRun]:
        rows = self.session.execute(
            select(load_run_table).order_by(load_run_table.c.updated_at.desc()).limit(limit)
        ).all()
        return [LoadRun(load_id=row.load_id, progress=_progress_from_row(row)) for row in rows]

    def _errors(self, load_id: str) -> tuple[BulkLoadError, ...]:
        rows = self.session.execute(
            select(load_error_table)
            .where(load_error_table.c.load_id == load_id)
            .order_by(load_error_table.c.position)
        ).all()
        return tuple(
            BulkLoadError(
                code=row.code,
                message=row.message,
                data_source=row.data_source,
                record_id=row.record_id,
                line_number=row.line_number,
            )
            for row in rows
        )


def _progress_from_row(row: Row[tuple[object, ...]]) -> LoadProgress:
    mapping = row._mapping  # noqa: SLF001
    return LoadProgress(
        status=LoadStatus(mapping["status"]),
        submitted=mapping["submitted"],
        loaded=mapping["loaded"],
        skipped=mapping["skipped"],
        failed=mapping["failed"],
        incomplete=mapping["incomplete"],
        abort_reason=mapping["abort_reason"],
        started_at=mapping["started_at"],
        finished_at=mapping["finished_at"],
    )
