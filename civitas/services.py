"""도시/시민 CRUD 서비스.

모든 함수는 ``uow`` 로 전달된 UnitOfWork 블록 하나 안에서 실행되며, 리턴되는
엔티티는 모두 detached 상태입니다.
"""
from __future__ import annotations

import enum
from typing import Any, Iterable, Optional, Type, TypeVar, Union

from civitas.core import (
    Entity,
    NotFoundError,
    StaleReferenceError,
    get_schema,
)
from civitas.domain import Citizen, City
from civitas.logging import get_logger
from civitas.relationship import replace_all
from civitas.uow import UnitOfWork

E = TypeVar("E", bound=Entity)

CitizenRef = Union[Citizen, int]
"""시민 객체 또는 시민 id."""


class _Keep(enum.Enum):
    KEEP = "keep"


KEEP_CITIZENS = _Keep.KEEP
"""``update_city`` 에서 소속 시민을 변경하지 않을 때 사용합니다."""

logger = get_logger("civitas.services")


def add_city(
    name: str, country: Optional[str], population: Optional[int], uow: UnitOfWork
) -> City:
    """새 도시를 추가하고 id가 부여된 도시를 리턴합니다.

    Raises:
        PersistenceError: 저장소가 insert 를 거부한 경우
    """
    city = City(name, country, population)
    with uow:
        uow[City].add(city)
        uow.commit()
    return city


def add_citizen(
    name: str, surname: Optional[str], age: Optional[int], uow: UnitOfWork
) -> Citizen:
    """새 시민을 추가하고 id가 부여된 시민을 리턴합니다.

    Raises:
        PersistenceError: 저장소가 insert 를 거부한 경우
    """
    citizen = Citizen(name, surname, age)
    with uow:
        uow[Citizen].add(citizen)
        uow.commit()
    return citizen


def update_citizen(citizen_id: int, uow: UnitOfWork, **changes: Any) -> Citizen:
    """시민의 속성을 변경합니다.

    Raises:
        InvalidFieldError: 시민에 없는 속성을 변경하려 한 경우
        NotFoundError: ``citizen_id`` 에 해당하는 시민이 없는 경우
    """
    get_schema(Citizen).validate_changes(changes)

    with uow:
        citizen = uow[Citizen].get(citizen_id)
        if citizen is None:
            raise NotFoundError(f"Citizen not found with id: {citizen_id}")

        for field, value in changes.items():
            setattr(citizen, field, value)
        uow.commit()

    return citizen


def _resolve_citizen(ref: CitizenRef, uow: UnitOfWork) -> Citizen:
    if isinstance(ref, Citizen):
        return ref

    citizen = uow[Citizen].get(ref)
    if citizen is None:
        raise StaleReferenceError(f"Citizen id={ref} does not exist")
    return citizen


def update_city(
    city_id: int,
    uow: UnitOfWork,
    citizens: Union[Iterable[CitizenRef], None, _Keep] = KEEP_CITIZENS,
    **changes: Any,
) -> City:
    """도시의 속성과 소속 시민들을 변경합니다.

    ``citizens`` 를 생략하면(:data:`KEEP_CITIZENS`) 소속 시민은 그대로 두고,
    ``None`` 이나 빈 컬렉션이면 모두 분리합니다. 새로 소속된 시민 중 id가 없는
    시민은 함께 insert 됩니다.

    Raises:
        InvalidFieldError: 도시에 없는 속성을 변경하려 한 경우
        NotFoundError: ``city_id`` 에 해당하는 도시가 없는 경우
        StaleReferenceError: ``citizens`` 중 저장소에 없는 시민이 있는 경우
    """
    get_schema(City).validate_changes(changes)

    with uow:
        city = uow[City].get(city_id)
        if city is None:
            raise NotFoundError(f"City not found with id: {city_id}")

        for field, value in changes.items():
            setattr(city, field, value)

        if citizens is not KEEP_CITIZENS:
            members = [_resolve_citizen(it, uow) for it in citizens or ()]
            replace_all(city, members, uow)

        uow.commit()

    return city


def delete(
    kind: Type[Entity], id: int, uow: UnitOfWork  # pylint: disable=redefined-builtin
) -> bool:
    """id에 해당하는 엔티티를 삭제합니다.

    도시를 삭제하면 소속된 시민들도 함께 삭제됩니다. 삭제할 엔티티가 없으면
    아무 일도 하지 않고 ``False`` 를 리턴합니다.
    """
    with uow:
        item = uow[kind].get(id)
        if item is None:
            logger.debug("%s with id %s not found", kind.__name__, id)
            return False

        uow[kind].delete(item)
        uow.commit()

    logger.info("Deleted %s with id %s", kind.__name__, id)
    return True


def list_all(
    kind: Type[E],
    uow: UnitOfWork,
    order_by: Optional[str] = None,
    descending: bool = False,
) -> list[E]:
    """``kind`` 엔티티를 모두 조회합니다.

    Raises:
        InvalidFieldError: ``order_by`` 가 ``kind`` 의 속성이 아닌 경우.
            저장소에 접근하기 전에 발생합니다.
    """
    if order_by:
        get_schema(kind).validate_field(order_by)

    with uow:
        return uow[kind].all(order_by, descending)


def get_city_with_citizens(city_id: int, uow: UnitOfWork) -> Optional[City]:
    """소속 시민들이 모두 채워진 도시를 조회합니다. 없으면 ``None`` 을 리턴합니다."""
    with uow:
        return uow[City].get(city_id)
