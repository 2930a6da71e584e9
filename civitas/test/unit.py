"""Test 헬퍼를 제공하는 모듈.

- 실제 DB 없이 UnitOfWork 를 테스트할 수 있는 인메모리 저장소를 제공합니다.

Example: ::

    db = FakeDatabase()
    uow = UnitOfWork(db)   # FakeDatabase 는 Store 팩토리로 사용할 수 있습니다.
"""
from __future__ import annotations

import copy
from collections import defaultdict
from typing import Any, Callable, Iterator, Optional

from civitas.core import (
    AbstractStore,
    CivitasError,
    EntitySchema,
    PersistenceError,
    Record,
)

RejectFunc = Callable[[str, Record], bool]
"""``(table, record)`` 를 받아 쓰기를 거부할지 결정하는 함수 타입."""


class FakeDatabase:
    """단위 테스트를 위한 Fake DB.

    테이블별로 ``id -> record`` 딕셔너리를 가지며, 호출하면 이 DB에 연결된
    :class:`FakeStore` 를 리턴합니다.

    Params:
        - reject: 참을 리턴하면 insert/update 가 :class:`PersistenceError` 로 실패합니다.
    """

    def __init__(self, reject: Optional[RejectFunc] = None):
        self.tables: dict[str, dict[int, Record]] = defaultdict(dict)
        self.sequences: dict[str, int] = defaultdict(int)
        self.reject = reject
        self.stores: list[FakeStore] = []

    def __call__(self) -> FakeStore:
        store = FakeStore(self)
        self.stores.append(store)
        return store

    def rows(self, table: str) -> list[Record]:
        """테이블의 모든 레코드를 id 순서로 리턴합니다."""
        return [dict(r) for _, r in sorted(self.tables[table].items())]

    @property
    def commits(self) -> int:
        return sum(1 for it in self.stores if it.committed)


class FakeStore(AbstractStore):
    """단위 테스트를 위한 Fake 저장소.

    ``begin()`` 시점의 테이블 스냅샷을 보관했다가 ``rollback()`` 때 되돌립니다.
    """

    def __init__(self, db: FakeDatabase):
        self.db = db
        self._snapshot: Optional[dict[str, dict[int, Record]]] = None
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def _check_active(self) -> None:
        if self._snapshot is None:
            raise CivitasError("store transaction is not started")

    def _check_reject(self, action: str, schema: EntitySchema, record: Record) -> None:
        if self.db.reject and self.db.reject(schema.table, record):
            raise PersistenceError(f"{action} {schema.name} failed: rejected")

    def begin(self) -> None:
        self._snapshot = copy.deepcopy(dict(self.db.tables))

    def commit(self) -> None:
        self._check_active()
        self._snapshot = None
        self.committed = True

    def rollback(self) -> None:
        if self._snapshot is not None:
            self.db.tables = defaultdict(dict, self._snapshot)
            self._snapshot = None
            self.rolled_back = True

    def close(self) -> None:
        self.rollback()
        self.closed = True

    def find_by_id(self, schema: EntitySchema, id: int) -> Optional[Record]:
        self._check_active()
        record = self.db.tables[schema.table].get(id)
        return dict(record) if record is not None else None

    def insert(self, schema: EntitySchema, record: Record) -> int:
        self._check_active()
        self._check_reject("insert", schema, record)
        self.db.sequences[schema.table] += 1
        new_id = self.db.sequences[schema.table]
        self.db.tables[schema.table][new_id] = {**record, "id": new_id}
        return new_id

    def update(self, schema: EntitySchema, id: int, record: Record) -> None:
        self._check_active()
        if id not in self.db.tables[schema.table]:
            raise PersistenceError(
                f"update {schema.name} failed: id={id} does not exist"
            )
        self._check_reject("update", schema, record)
        self.db.tables[schema.table][id].update(record)

    def delete(self, schema: EntitySchema, id: int) -> None:
        self._check_active()
        self.db.tables[schema.table].pop(id, None)

    def scan(
        self,
        schema: EntitySchema,
        order_by: Optional[str] = None,
        descending: bool = False,
        **filter_by: Any,
    ) -> Iterator[Record]:
        self._check_active()
        rows = [
            dict(r)
            for _, r in sorted(self.db.tables[schema.table].items())
            if all(r.get(k) == v for k, v in filter_by.items())
        ]
        if order_by:
            rows.sort(key=lambda r: _null_first(r[order_by]), reverse=descending)
        return iter(rows)


def _null_first(value: Any) -> tuple[bool, Any]:
    return (value is not None, value if value is not None else 0)
