"""SqlAlchemy Core 를 이용한 저장소 구현."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator, Iterator, Optional

from sqlalchemy import MetaData, Table, select
from sqlalchemy.engine import Connection, Engine, Transaction
from sqlalchemy.exc import SQLAlchemyError

from civitas.core import (
    AbstractStore,
    CivitasError,
    EntitySchema,
    PersistenceError,
    Record,
)
from civitas.logging import get_logger

logger = get_logger("civitas.store")


@contextmanager
def translate_errors(action: str) -> Generator[None, None, None]:
    """``SQLAlchemyError`` 를 :class:`PersistenceError` 로 변환합니다."""
    try:
        yield
    except SQLAlchemyError as e:
        reason = str(getattr(e, "orig", None) or e).splitlines()[0]
        logger.debug("%s failed: %r", action, e)
        raise PersistenceError(f"{action} failed: {reason}") from e


class SqlAlchemyStore(AbstractStore):
    """SqlAlchemy ``Engine`` 을 저장소로 하는 :class:`AbstractStore` 구현입니다.

    ``begin()`` 에서 커넥션을 하나 할당 받아 ``close()`` 까지 독점해서 사용합니다.
    """

    def __init__(self, engine: Engine, metadata: MetaData):
        self.engine = engine
        self.metadata = metadata
        self.connection: Optional[Connection] = None
        self.transaction: Optional[Transaction] = None

    def __repr__(self) -> str:
        return f"SqlAlchemyStore[{self.engine.url}]"

    @property
    def conn(self) -> Connection:
        if self.connection is None:
            raise CivitasError("store transaction is not started")
        return self.connection

    def _table(self, schema: EntitySchema) -> Table:
        return self.metadata.tables[schema.table]

    def begin(self) -> None:
        with translate_errors("begin"):
            self.connection = self.engine.connect()
            self.transaction = self.connection.begin()

    def commit(self) -> None:
        if self.transaction is None:
            raise CivitasError("store transaction is not started")
        with translate_errors("commit"):
            self.transaction.commit()

    def rollback(self) -> None:
        if self.transaction is not None and self.transaction.is_active:
            with translate_errors("rollback"):
                self.transaction.rollback()

    def close(self) -> None:
        if self.connection is not None:
            self.connection.close()
        self.connection = None
        self.transaction = None

    def find_by_id(self, schema: EntitySchema, id: int) -> Optional[Record]:
        table = self._table(schema)
        with translate_errors(f"find {schema.name}"):
            row = self.conn.execute(select(table).where(table.c.id == id))
            found = row.mappings().first()
        return dict(found) if found is not None else None

    def insert(self, schema: EntitySchema, record: Record) -> int:
        table = self._table(schema)
        with translate_errors(f"insert {schema.name}"):
            result = self.conn.execute(table.insert().values(**record))
        [new_id] = result.inserted_primary_key
        return new_id

    def update(self, schema: EntitySchema, id: int, record: Record) -> None:
        table = self._table(schema)
        with translate_errors(f"update {schema.name}"):
            result = self.conn.execute(
                table.update().where(table.c.id == id).values(**record)
            )
        if result.rowcount == 0:
            raise PersistenceError(
                f"update {schema.name} failed: id={id} does not exist"
            )

    def delete(self, schema: EntitySchema, id: int) -> None:
        table = self._table(schema)
        with translate_errors(f"delete {schema.name}"):
            self.conn.execute(table.delete().where(table.c.id == id))

    def scan(
        self,
        schema: EntitySchema,
        order_by: Optional[str] = None,
        descending: bool = False,
        **filter_by: Any,
    ) -> Iterator[Record]:
        table = self._table(schema)
        stmt = select(table)

        for name, value in filter_by.items():
            column = table.c[name]
            stmt = stmt.where(column.is_(None) if value is None else column == value)

        if order_by:
            column = table.c[order_by]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        stmt = stmt.order_by(table.c.id)

        with translate_errors(f"scan {schema.name}"):
            rows = [dict(row) for row in self.conn.execute(stmt).mappings()]
        return iter(rows)


class SqlAlchemyStoreMaker:
    """:class:`SqlAlchemyStore` 팩토리. ``sessionmaker`` 처럼 호출해서 사용합니다."""

    def __init__(self, engine: Engine, metadata: MetaData):
        self.engine = engine
        self.metadata = metadata

    def __repr__(self) -> str:
        return f"SqlAlchemyStoreMaker[{self.engine.url}]"

    def __call__(self) -> SqlAlchemyStore:
        return SqlAlchemyStore(self.engine, self.metadata)

    def dispose(self) -> None:
        """커넥션 풀을 닫고 자원을 반환합니다."""
        self.engine.dispose()
