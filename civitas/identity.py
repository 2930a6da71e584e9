"""추적 컨텍스트(Identity Map)와 식별자 해석기.

하나의 UnitOfWork 안에서는 같은 영구 식별자를 나타내는 추적 인스턴스가
최대 하나만 존재해야 합니다. 외부에서 전달된 레퍼런스(unbound, detached,
또는 이미 추적 중인 객체)는 모두 :class:`IdentityResolver` 를 거쳐
추적 인스턴스로 바뀐 뒤에 사용됩니다.
"""
from __future__ import annotations

from typing import Iterator, Optional, Type, TypeVar

from civitas.core import (
    AbstractStore,
    Entity,
    EntitySchema,
    EntityState,
    Identity,
    Record,
    StaleReferenceError,
    UnitOfWorkStateError,
    get_schema,
)
from civitas.domain import Citizen, City
from civitas.relationship import attach

E = TypeVar("E", bound=Entity)


class IdentityMap:
    """UnitOfWork 하나에 속한 추적 컨텍스트입니다."""

    def __init__(self) -> None:
        self._tracked: dict[Identity, Entity] = {}
        self._new: list[Entity] = []
        """아직 id가 없는 추적 엔티티."""

    def __repr__(self) -> str:
        return f"IdentityMap[{len(self)} tracked]"

    def __len__(self) -> int:
        return len(self._tracked) + len(self._new)

    def __iter__(self) -> Iterator[Entity]:
        return iter(list(self._tracked.values()) + list(self._new))

    def __contains__(self, item: object) -> bool:
        return any(it is item for it in self)

    def get(self, identity: Identity) -> Optional[Entity]:
        return self._tracked.get(identity)

    def track(self, item: Entity) -> None:
        identity = item.identity
        if identity is None:
            if not any(it is item for it in self._new):
                self._new.append(item)
        else:
            self._tracked[identity] = item

        if item.state is not EntityState.REMOVED:
            item._state = EntityState.TRACKED
        item._context = self

    def rekey(self, item: Entity) -> None:
        """insert 로 id가 부여된 엔티티를 식별자로 다시 등록합니다."""
        self._new = [it for it in self._new if it is not item]
        self.track(item)

    def mark_removed(self, item: Entity) -> None:
        item._state = EntityState.REMOVED

    def close(self, committed: bool) -> None:
        """추적을 종료합니다.

        모든 엔티티는 detached 상태가 되며, 커밋이 성공한 경우에만 삭제 표시된
        엔티티가 removed 상태로 남습니다. id가 없는 엔티티는 unbound 로 돌아갑니다.
        """
        for item in self:
            if item.id is None:
                item._state = EntityState.UNBOUND
            elif not (committed and item.state is EntityState.REMOVED):
                item._state = EntityState.DETACHED
            item._context = None

        self._tracked.clear()
        self._new.clear()


class IdentityResolver:
    """임의의 엔티티 레퍼런스를 현재 추적 컨텍스트의 유일한 인스턴스로 해석합니다."""

    def __init__(self, identity_map: IdentityMap, store: AbstractStore):
        self.identity_map = identity_map
        self.store = store

    def resolve(self, item: E) -> E:
        """``item`` 과 같은 식별자를 가진 추적 인스턴스를 리턴합니다.

        - id가 없으면 새 추적 엔티티로 등록하고 그대로 리턴합니다.
        - 이미 추적 중인 식별자라면 추적 인스턴스를 리턴합니다. 이 때 ``item`` 의
          속성 값은 무시됩니다.
        - 추적 중이 아니라면 저장소에서 다시 로드한 뒤 ``item`` 의 속성 값을
          덮어써서 리턴합니다.

        Raises:
            StaleReferenceError: 저장소에도 해당 식별자가 없는 경우
            UnitOfWorkStateError: 다른 UnitOfWork 가 추적 중인 새 엔티티인 경우
        """
        identity = item.identity

        if identity is None:
            if item._context is not None and item._context is not self.identity_map:
                raise UnitOfWorkStateError(
                    f"{item!r} is tracked by another unit of work"
                )
            self.identity_map.track(item)
            return item

        tracked = self.identity_map.get(identity)
        if tracked is not None:
            return tracked  # type: ignore

        loaded = self.get(type(item), identity.id)
        if loaded is None:
            raise StaleReferenceError(
                f"{type(item).__name__} id={identity.id} does not exist"
            )

        get_schema(type(item)).copy_fields(item, loaded)
        return loaded

    def get(self, kind: Type[E], id: int) -> Optional[E]:  # pylint: disable=redefined-builtin
        """식별자로 추적 인스턴스를 조회합니다. 필요하면 저장소에서 로드합니다.

        저장소에도 없으면 ``None`` 을 리턴합니다.
        """
        tracked = self.identity_map.get(Identity(kind, id))
        if tracked is not None:
            return tracked  # type: ignore

        schema = get_schema(kind)
        record = self.store.find_by_id(schema, id)
        if record is None:
            return None

        return self.load(schema, record)  # type: ignore

    def load(self, schema: EntitySchema, record: Record) -> Entity:
        """저장소 레코드를 관계가 모두 채워진 추적 인스턴스로 만듭니다.

        이미 추적 중인 식별자라면 추적 인스턴스가 우선하며, 그 관계도 변경하지
        않습니다.
        """
        identity = Identity(schema.entity_class, record["id"])
        tracked = self.identity_map.get(identity)
        if tracked is not None:
            return tracked

        if schema.entity_class is City:
            return self._load_city(schema, record)

        city: Optional[City] = None
        city_id = record.get(schema.parent_key) if schema.parent_key else None
        if city_id is not None:
            # 도시를 로드하면 소속 시민들도 함께 로드됩니다.
            city = self.get(City, city_id)
            tracked = self.identity_map.get(identity)
            if tracked is not None:
                return tracked

        item = schema.from_record(record)
        self.identity_map.track(item)
        if city is not None and city.state is not EntityState.REMOVED:
            attach(city, item)  # type: ignore
        return item

    def _load_city(self, schema: EntitySchema, record: Record) -> City:
        city = schema.from_record(record)
        self.identity_map.track(city)

        citizen_schema = get_schema(Citizen)
        for citizen_record in self.store.scan(citizen_schema, city_id=city.id):
            identity = Identity(Citizen, citizen_record["id"])
            if self.identity_map.get(identity) is not None:
                continue

            citizen = citizen_schema.from_record(citizen_record)
            self.identity_map.track(citizen)
            attach(city, citizen)  # type: ignore

        return city  # type: ignore
