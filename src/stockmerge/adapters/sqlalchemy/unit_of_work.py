"""SQLAlchemy-backed unit of work for snapshot imports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stockmerge.config import get_database_config
from stockmerge.domain.model import EntityType
from stockmerge.domain.ports import ImportRepositories, RepositoryCollection, StoreWriteError

from .mappings import TABLE_BY_ENTITY_TYPE, create_all_tables
from .repositories import SqlAlchemyRecordRepository

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine
    from sqlalchemy.engine.interfaces import DBAPIConnection
    from sqlalchemy.pool import ConnectionPoolEntry


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used outside its context."""


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
) -> sessionmaker[Session]:
    """Create the store tables and return a session factory bound to the engine."""

    if engine is not None:
        resolved_engine = engine
    elif database_uri is not None:
        resolved_engine = create_engine(database_uri, future=True)
    else:
        config = get_database_config()
        resolved_engine = create_engine(config.uri, echo=config.echo, future=True)
    if resolved_engine.dialect.name == "sqlite":
        event.listen(resolved_engine, "connect", _enable_sqlite_foreign_keys)
    create_all_tables(resolved_engine)
    return sessionmaker(bind=resolved_engine, expire_on_commit=False)


def _enable_sqlite_foreign_keys(
    dbapi_connection: DBAPIConnection, _connection_record: ConnectionPoolEntry
) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyImportUnitOfWork(BaseSqlAlchemyUnitOfWork[ImportRepositories]):
    """Unit of work exposing one repository per store table."""

    def _build_repositories(self, session: Session) -> ImportRepositories:
        def repository(entity_type: EntityType) -> SqlAlchemyRecordRepository:
            return SqlAlchemyRecordRepository(session, TABLE_BY_ENTITY_TYPE[entity_type])

        return ImportRepositories(
            categories=repository(EntityType.CATEGORY),
            suppliers=repository(EntityType.SUPPLIER),
            products=repository(EntityType.PRODUCT),
            customers=repository(EntityType.CUSTOMER),
            expense_categories=repository(EntityType.EXPENSE_CATEGORY),
            sales=repository(EntityType.SALE),
            expenses=repository(EntityType.EXPENSE),
            bulk_pricing=repository(EntityType.BULK_PRICING),
            stock_movements=repository(EntityType.STOCK_MOVEMENT),
            shop_settings=repository(EntityType.SHOP_SETTINGS),
        )


if TYPE_CHECKING:
    from stockmerge.domain.ports import ImportUnitOfWork

    _uow_check: ImportUnitOfWork = SqlAlchemyImportUnitOfWork(sessionmaker())
