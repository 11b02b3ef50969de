"""SQLAlchemy-backed unit of work for load runs."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from bulkdata.adapters.sqlalchemy.mappings import create_all_tables
from bulkdata.adapters.sqlalchemy.repositories import SqlAlchemyLoadRunRepository
from bulkdata.config.storage import get_database_config
from bulkdata.domain.ports.unit_of_work import LoadRunRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """The run store was used before ``startup()`` or configured twice."""


@dataclass(slots=True)
class _StoreState:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine | None) -> None:
        self.engine = engine
        self.sessions = None if engine is None else sessionmaker(bind=engine)

    def open_session(self) -> Session:
        if self.sessions is None:
            raise StartupError(
                "Load run store not started; call "
                "bulkdata.adapters.sqlalchemy.unit_of_work.startup() first"
            )
        return self.sessions()


_STATE = _StoreState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the run store to an engine and make sure its tables exist.

    Without an explicit engine one is created from ``database_uri`` or, failing that,
    from the database settings in the environment.
    """

    if _STATE.engine is not None and not force:
        raise StartupError("Load run store already started; pass force=True to rebind it")

    if engine is None:
        database = get_database_config()
        engine = create_engine(database_uri or database.uri, echo=database.echo)
    create_all_tables(engine)
    _STATE.bind(engine)
    log.debug("Load run store bound to %s", engine.url.render_as_string(hide_password=True))


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.bind(None)


class SqlAlchemyLoadRunUnitOfWork:
    """One session per ``with`` block; rolls back when the block raises."""

    def __init__(self) -> None:
        if not is_started():
            raise StartupError("Load run store not started")
        self._session: Session | None = None
        self._repositories: LoadRunRepositories | None = None

    def __enter__(self) -> SqlAlchemyLoadRunUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work already entered")
        self._session = _STATE.open_session()
        self._repositories = LoadRunRepositories(
            load_runs=SqlAlchemyLoadRunRepository(self._session)
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self._active_session()
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def repositories(self) -> LoadRunRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work used outside its with block")
        return self._repositories

    def commit(self) -> None:
        self._active_session().commit()

    def rollback(self) -> None:
        self._active_session().rollback()

    def _active_session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work used outside its with block")
        return self._session


if TYPE_CHECKING:
    from bulkdata.domain.ports.unit_of_work import LoadRunUnitOfWork

    _uow_check: LoadRunUnitOfWork = SqlAlchemyLoadRunUnitOfWork()
