"""엔티티 식별 모델과 영구 저장소의 추상 인터페이스.

메모리 상의 도메인 객체는 다음 4가지 생명주기 상태 중 하나에 있습니다.

- ``unbound``: 생성만 되고 UnitOfWork 에 한 번도 전달되지 않은 상태 (id 없음)
- ``tracked``: 열려 있는 UnitOfWork 의 추적 컨텍스트에 등록된 상태
- ``detached``: 추적하던 UnitOfWork 가 닫힌 상태. id와 마지막 값은 유지됩니다.
- ``removed``: 삭제 표시된 상태. 더 이상 변경할 수 없습니다.
"""
from __future__ import annotations

import abc
import enum
from collections.abc import MutableSet
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import (
    Any,
    ClassVar,
    Iterable,
    Iterator,
    NamedTuple,
    Optional,
    Protocol,
    Sequence,
    Type,
    TypeVar,
)

from civitas.core.errors import CivitasError, InvalidFieldError, RemovedEntityError

Record = dict[str, Any]
"""저장소에 기록되는 한 행(row)의 컬럼 이름과 값."""


class EntityState(enum.Enum):
    UNBOUND = "unbound"
    TRACKED = "tracked"
    DETACHED = "detached"
    REMOVED = "removed"


class Identity(NamedTuple):
    """영구 저장된 엔티티의 식별자. 엔티티 종류와 PK 값의 쌍입니다."""

    kind: type
    id: int


@dataclass(frozen=True)
class EntitySchema:
    """엔티티 종류별 매핑 정보.

    클래스 선언 시 :func:`entity` 데코레이터로 등록됩니다.
    """

    entity_class: type
    table: str
    fields: tuple[str, ...]
    """``id`` 를 제외한 스칼라 속성 이름들."""

    parent_attr: Optional[str] = None
    """부모 엔티티를 가리키는 속성 이름."""

    parent_key: Optional[str] = None
    """부모 엔티티의 id가 저장되는 외래키 컬럼 이름."""

    @property
    def name(self) -> str:
        return self.entity_class.__name__

    def validate_field(self, field: str) -> str:
        """정렬 등에 사용할 수 있는 속성 이름인지 검사합니다.

        Raises:
            InvalidFieldError: ``id`` 나 스칼라 속성이 아닌 경우
        """
        if field != "id" and field not in self.fields:
            raise InvalidFieldError(f"{self.name} has no attribute {field!r}")
        return field

    def validate_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        for field in changes:
            if field not in self.fields:
                raise InvalidFieldError(f"{self.name} has no attribute {field!r}")
        return changes

    def to_record(self, entity: Entity) -> Record:
        record = {field: getattr(entity, field) for field in self.fields}
        if self.parent_attr and self.parent_key:
            parent = getattr(entity, self.parent_attr)
            record[self.parent_key] = parent.id if parent is not None else None
        return record

    def from_record(self, record: Record) -> Entity:
        """저장소 레코드로부터 새 인스턴스를 만듭니다. 부모 관계는 연결하지 않습니다."""
        values = {field: record[field] for field in self.fields}
        return self.entity_class(id=record["id"], **values)

    def copy_fields(self, source: Entity, target: Entity) -> None:
        for field in self.fields:
            setattr(target, field, getattr(source, field))


SCHEMAS: dict[type, EntitySchema] = {}

E = TypeVar("E", bound="Entity")


def entity(
    table: str,
    fields: Sequence[str],
    parent_attr: Optional[str] = None,
    parent_key: Optional[str] = None,
):
    """엔티티 클래스에 :class:`EntitySchema` 를 등록하는 클래스 데코레이터."""

    def wrapper(cls: Type[E]) -> Type[E]:
        schema = EntitySchema(cls, table, tuple(fields), parent_attr, parent_key)
        cls.__schema__ = schema
        SCHEMAS[cls] = schema
        return cls

    return wrapper


def get_schema(kind: type) -> EntitySchema:
    if kind not in SCHEMAS:
        raise CivitasError("schema not registered for: %r" % kind)
    return SCHEMAS[kind]


class Entity:
    """모든 엔티티의 기본 클래스.

    PK 로 ``id`` 필드를 제공하며, 최초 insert 가 성공했을 때 저장소가 부여합니다.
    동등성 비교는 기본 레퍼런스 비교이며, 식별자 기준 비교는
    :func:`same_identity` 를 사용합니다.
    """

    __schema__: ClassVar[EntitySchema]

    def __init__(self, id: Optional[int] = None):  # pylint: disable=redefined-builtin
        self._state = EntityState.UNBOUND if id is None else EntityState.DETACHED
        self._context: Optional[Any] = None
        self.id = id

    def __setattr__(self, name: str, value: Any) -> None:
        removed = self.__dict__.get("_state") is EntityState.REMOVED
        if removed and not name.startswith("_"):
            raise RemovedEntityError(f"{self!r} is removed and cannot be modified")
        super().__setattr__(name, value)

    @property
    def state(self) -> EntityState:
        return self._state

    @property
    def identity(self) -> Optional[Identity]:
        if self.id is None:
            return None
        return Identity(type(self), self.id)


def same_identity(a: Optional[Entity], b: Optional[Entity]) -> bool:
    """두 레퍼런스가 같은 영구 식별자를 나타내는지 여부.

    id가 없는 엔티티는 자기 자신과만 같습니다.
    """
    if a is None or b is None:
        return a is b
    if a is b:
        return True
    return type(a) is type(b) and a.id is not None and a.id == b.id


class EntitySet(MutableSet):
    """식별자 기준으로 중복을 허용하지 않는 엔티티 컬렉션.

    insert 후 id가 바뀌어도 멤버십이 유지되도록 해시 대신 선형 탐색을 사용합니다.
    """

    def __init__(self, items: Iterable[Entity] = ()):
        self._items: list[Entity] = []
        for it in items:
            self.add(it)

    def find(self, item: Entity) -> Optional[Entity]:
        """``item`` 과 같은 식별자를 가진 멤버를 리턴합니다."""
        return next((it for it in self._items if same_identity(it, item)), None)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, Entity) and self.find(item) is not None

    def __iter__(self) -> Iterator[Entity]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item: Entity) -> None:
        if item not in self:
            self._items.append(item)

    def discard(self, item: Entity) -> None:
        self._items = [it for it in self._items if not same_identity(it, item)]

    def __repr__(self) -> str:
        return f"EntitySet({self._items!r})"


class Resolver(Protocol):
    """외부 엔티티 레퍼런스를 추적 인스턴스로 바꿔주는 객체."""

    def resolve(self, item: E) -> E:
        ...


class AbstractStore(AbstractContextManager["AbstractStore"]):
    """관계형 저장소의 추상 인터페이스입니다.

    UnitOfWork 한 번에 하나의 저장소 객체가 할당되며, ``begin()`` 부터
    ``commit()`` 또는 ``rollback()`` 까지가 하나의 트랜잭션입니다.
    모든 쓰기 실패는 :class:`~civitas.core.errors.PersistenceError` 로 알립니다.
    """

    def __exit__(self, *args: Any) -> None:
        self.close()

    @abc.abstractmethod
    def begin(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """저장소와 연결된 자원을 반환합니다."""
        return

    @abc.abstractmethod
    def find_by_id(self, schema: EntitySchema, id: int) -> Optional[Record]:
        """id에 해당하는 레코드를 조회합니다. 없으면 ``None`` 을 리턴합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def insert(self, schema: EntitySchema, record: Record) -> int:
        """레코드를 추가하고 저장소가 부여한 id를 리턴합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def update(self, schema: EntitySchema, id: int, record: Record) -> None:
        """레코드를 갱신합니다. id가 없으면 실패합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def delete(self, schema: EntitySchema, id: int) -> None:
        """레코드를 삭제합니다. id가 없으면 아무 일도 하지 않습니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def scan(
        self,
        schema: EntitySchema,
        order_by: Optional[str] = None,
        descending: bool = False,
        **filter_by: Any,
    ) -> Iterator[Record]:
        """``filter_by`` 조건에 맞는 레코드를 ``order_by`` 순서로 조회합니다."""
        raise NotImplementedError


class AbstractUnitOfWork(AbstractContextManager["AbstractUnitOfWork"]):
    """UnitOfWork 패턴의 추상 인터페이스입니다.

    UnitOfWork(UoW)는 영구 저장소의 유일한 진입점이며, 로드된 객체의
    최신 상태를 계속 트래킹 합니다.
    """

    def __enter__(self) -> AbstractUnitOfWork:
        """``with`` 블록에 진입했을때 실행되는 메소드입니다."""
        return self

    def __exit__(self, *args: Any) -> None:
        """``with`` 블록에서 빠져나갈 때 실행되는 메소드입니다."""
        self.rollback()  # commit() 안되었을때 변경을 롤백합니다.
        # (이미 커밋 되었을 경우 rollback은 아무 효과도 없음)

    repos: dict[type, Any]

    def __getitem__(self, kind: Type[E]) -> Any:
        if kind not in self.repos:
            raise CivitasError("repository not found for: %r" % kind)
        return self.repos[kind]

    def commit(self) -> None:
        """추적 중인 모든 변경을 저장소에 반영합니다."""
        self._commit()

    @abc.abstractmethod
    def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        """모든 변경을 취소합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def get(self, kind: Type[E], id: int) -> Optional[E]:
        raise NotImplementedError

    @abc.abstractmethod
    def resolve(self, item: E) -> E:
        raise NotImplementedError

    @abc.abstractmethod
    def add(self, item: E) -> E:
        raise NotImplementedError

    @abc.abstractmethod
    def remove(self, item: Entity) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def list(
        self, kind: Type[E], order_by: Optional[str] = None, descending: bool = False
    ) -> list[E]:
        raise NotImplementedError
