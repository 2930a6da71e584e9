"""레포지터리 패턴 구현."""
from __future__ import annotations

from typing import TYPE_CHECKING, Generic, Optional, Type, TypeVar

from civitas.core import CivitasError, Entity

if TYPE_CHECKING:
    from civitas.core import AbstractUnitOfWork

E = TypeVar("E", bound=Entity)


class Repository(Generic[E]):
    """UnitOfWork 의 추적 컨텍스트 위에서 한 종류의 엔티티를 다루는 레포지터리입니다.

    ``uow[City].get(1)`` 처럼 UoW 를 통해서 사용합니다. 조회한 객체는 모두
    UoW 가 추적하는 인스턴스이므로, 같은 id를 두 번 조회하면 같은 객체가
    리턴됩니다.
    """

    def __init__(self, entity_class: Type[E], uow: AbstractUnitOfWork):
        self.entity_class = entity_class
        self.uow = uow

    def __repr__(self) -> str:
        return f"Repository[{self.entity_class.__name__}]"

    def _check_kind(self, item: Entity) -> None:
        if not isinstance(item, self.entity_class):
            raise CivitasError(f"{item!r} is not a {self.entity_class.__name__}")

    def add(self, item: E) -> E:
        """레포지터리에 :class:`E` 객체를 추가하고 추적 인스턴스를 리턴합니다."""
        self._check_kind(item)
        return self.uow.add(item)

    def get(self, id: int) -> Optional[E]:  # pylint: disable=redefined-builtin
        """id에 해당하는 객체를 조회합니다. 못 찾을 경우 ``None`` 을 리턴합니다."""
        return self.uow.get(self.entity_class, id)

    def delete(self, item: E) -> None:
        """레포지터리에서 객체를 삭제 표시합니다."""
        self._check_kind(item)
        self.uow.remove(item)

    def all(self, order_by: Optional[str] = None, descending: bool = False) -> list[E]:
        """모든 객체 리스트를 조회합니다."""
        return self.uow.list(self.entity_class, order_by, descending)
