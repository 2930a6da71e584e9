"""UnitOfWork 패턴 모듈.

UoW 는 영구 저장소의 유일한 진입점이며, 로드된 객체의 최신 상태를 계속 트래킹 합니다.

- ``with uow:`` 블록에 진입할 때마다 새 저장소 트랜잭션과 새 추적 컨텍스트가
  할당됩니다.
- ``commit()`` 은 추적 중인 모든 엔티티를 저장소에 씁니다. 변경 여부를 비교하지
  않고 추적 중인 엔티티는 모두 변경된 것으로 간주합니다.
- 블록을 빠져나가면 추적하던 엔티티는 모두 detached 상태가 됩니다.
"""
from __future__ import annotations

import enum
from typing import Any, Optional, Sequence, Type, TypeVar

from civitas.core import (
    AbstractStore,
    AbstractUnitOfWork,
    Entity,
    EntityState,
    UnitOfWorkStateError,
    get_schema,
)
from civitas.domain import Citizen, City
from civitas.identity import IdentityMap, IdentityResolver
from civitas.logging import get_logger
from civitas.orm import StoreMaker, get_store_factory
from civitas.relationship import detach
from civitas.repo import Repository

E = TypeVar("E", bound=Entity)

logger = get_logger("civitas.uow")


class UnitOfWorkState(enum.Enum):
    NEW = "new"
    OPEN = "open"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ABORTED = "aborted"


class UnitOfWork(AbstractUnitOfWork):
    """추적 컨텍스트와 저장소 트랜잭션을 묶는 UnitOfWork 구현입니다.

    상태 전이::

        new ─> open ─> committing ─> committed
                 │          └──────> aborted
                 └─────────────────> aborted
    """

    # pylint: disable=super-init-not-called
    def __init__(
        self,
        get_store: Optional[StoreMaker] = None,
        kinds: Sequence[Type[Entity]] = (City, Citizen),
    ) -> None:
        """UoW를 초기화합니다. ``get_store`` 가 없으면 기본 Store 팩토리를 사용합니다."""
        self.get_store = get_store or get_store_factory()
        self.kinds = kinds
        self.repos = {kind: Repository(kind, self) for kind in kinds}

        self.state = UnitOfWorkState.NEW
        self.committed = False
        self.store: Optional[AbstractStore] = None
        self.identity_map: Optional[IdentityMap] = None
        self.resolver: Optional[IdentityResolver] = None

    def __repr__(self) -> str:
        return f"UnitOfWork[{self.state.value}]"

    def __enter__(self) -> UnitOfWork:
        """``with`` 블록에 진입했을 때 필요한 작업을 수행합니다.

        저장소 트랜잭션을 시작하고, 새 추적 컨텍스트를 할당합니다.
        """
        if self.state in (UnitOfWorkState.OPEN, UnitOfWorkState.COMMITTING):
            raise UnitOfWorkStateError(f"{self!r} is already in use")

        store = self.get_store()
        try:
            store.begin()
        except Exception:
            store.close()
            raise

        self.store = store
        self.identity_map = IdentityMap()
        self.resolver = IdentityResolver(self.identity_map, store)
        self.committed = False
        self.state = UnitOfWorkState.OPEN
        logger.debug("begin %r with %r", self, store)
        return self

    def __exit__(self, *args: Any) -> None:
        """``with`` 블록을 빠져나갈 때 필요한 작업을 수행합니다.

        커밋되지 않은 변경을 롤백하고 저장소를 close 합니다.
        """
        try:
            super().__exit__(*args)
        finally:
            if self.store:
                self.store.close()
            self.store = None
            self.identity_map = None
            self.resolver = None

    def _check_open(self) -> IdentityResolver:
        if self.state is not UnitOfWorkState.OPEN or not self.resolver:
            raise UnitOfWorkStateError(f"{self!r} is not open")
        return self.resolver

    def get(self, kind: Type[E], id: int) -> Optional[E]:  # pylint: disable=redefined-builtin
        """식별자로 추적 인스턴스를 조회합니다. 없으면 ``None`` 을 리턴합니다."""
        return self._check_open().get(kind, id)

    def resolve(self, item: E) -> E:
        """외부 레퍼런스를 현재 추적 컨텍스트의 인스턴스로 해석합니다."""
        return self._check_open().resolve(item)

    def add(self, item: E) -> E:
        """엔티티를 추적 컨텍스트에 등록합니다. id가 없으면 커밋할 때 insert 됩니다."""
        return self.resolve(item)

    def remove(self, item: Entity) -> None:
        """엔티티를 삭제 표시합니다.

        도시를 삭제하면 그 시점에 소속된 시민들도 함께 삭제됩니다. 이미 분리된
        시민은 영향을 받지 않습니다.
        """
        resolver = self._check_open()
        assert self.identity_map is not None

        tracked = resolver.resolve(item)
        if tracked.state is EntityState.REMOVED:
            return

        if isinstance(tracked, City):
            for citizen in tracked.citizens:
                self.identity_map.mark_removed(citizen)
        elif isinstance(tracked, Citizen) and tracked.city is not None:
            detach(tracked.city, tracked)

        self.identity_map.mark_removed(tracked)

    def list(
        self, kind: Type[E], order_by: Optional[str] = None, descending: bool = False
    ) -> list[E]:
        """저장소의 ``kind`` 엔티티를 모두 조회합니다. 관계는 모두 채워집니다."""
        schema = get_schema(kind)
        if order_by:
            schema.validate_field(order_by)

        resolver = self._check_open()
        assert self.store is not None

        items = [
            resolver.load(schema, record)
            for record in self.store.scan(schema, order_by, descending)
        ]
        return [it for it in items if it.state is not EntityState.REMOVED]  # type: ignore

    def _cascade(self) -> None:
        """도시에 소속된 시민과 시민이 소속된 도시를 모두 추적 컨텍스트에 등록합니다."""
        assert self.identity_map is not None
        identity_map = self.identity_map

        pending = [it for it in identity_map if it.state is not EntityState.REMOVED]
        while pending:
            item = pending.pop()
            if isinstance(item, City):
                related: list[Entity] = list(item.citizens)
            elif isinstance(item, Citizen) and item.city is not None:
                related = [item.city]
            else:
                continue

            for it in related:
                if it in identity_map:
                    continue
                if it._context is not None and it._context is not identity_map:
                    raise UnitOfWorkStateError(
                        f"{it!r} is tracked by another unit of work"
                    )
                if it.identity is not None and identity_map.get(it.identity):
                    raise UnitOfWorkStateError(
                        f"{it!r} is attached but another instance is already tracked"
                    )
                identity_map.track(it)
                pending.append(it)

    def _flush(self, inserted: list[Entity]) -> None:
        assert self.store is not None and self.identity_map is not None
        store = self.store

        self._cascade()
        items = list(self.identity_map)
        alive = [it for it in items if it.state is not EntityState.REMOVED]
        removed = [
            it for it in items if it.state is EntityState.REMOVED and it.id is not None
        ]

        # 외래키 때문에 도시를 먼저 쓰고, 삭제는 시민부터 합니다.
        for kind in (City, Citizen):
            schema = get_schema(kind)
            for item in (it for it in alive if isinstance(it, kind)):
                record = schema.to_record(item)
                if item.id is None:
                    item.id = store.insert(schema, record)
                    self.identity_map.rekey(item)
                    inserted.append(item)
                else:
                    store.update(schema, item.id, record)

        for kind in (Citizen, City):
            schema = get_schema(kind)
            for item in (it for it in removed if isinstance(it, kind)):
                store.delete(schema, item.id)  # type: ignore

        logger.debug(
            "flush %r: %d inserted, %d updated, %d deleted",
            self,
            len(inserted),
            len(alive) - len(inserted),
            len(removed),
        )

    def _commit(self) -> None:
        """추적 중인 모든 엔티티를 저장소에 쓰고 트랜잭션을 커밋합니다.

        하나라도 실패하면 저장소를 롤백하고, 이번 커밋에서 부여된 id를 되돌린 뒤
        원래의 예외를 다시 발생시킵니다.
        """
        self._check_open()
        assert self.store is not None and self.identity_map is not None

        self.state = UnitOfWorkState.COMMITTING
        inserted: list[Entity] = []
        try:
            self._flush(inserted)
            self.store.commit()
        except Exception as e:
            logger.error("commit aborted: %s", getattr(e, "message", e))
            self._abort(inserted)
            raise

        self.committed = True
        self.state = UnitOfWorkState.COMMITTED
        self.identity_map.close(committed=True)
        logger.debug("committed %r", self)

    def _abort(self, inserted: Sequence[Entity] = ()) -> None:
        assert self.store is not None and self.identity_map is not None
        try:
            self.store.rollback()
        finally:
            self.identity_map.close(committed=False)
            for item in inserted:
                item.id = None
                item._state = EntityState.UNBOUND
            self.state = UnitOfWorkState.ABORTED

    def rollback(self) -> None:
        """커밋되지 않은 모든 변경을 취소합니다. 이미 닫혔다면 아무 일도 하지 않습니다."""
        if self.state is not UnitOfWorkState.OPEN:
            return

        self._abort()
        logger.debug("rolled back %r", self)
