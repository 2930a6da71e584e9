"""도시-시민 양방향 관계 동기화.

:attr:`Citizen.city <civitas.domain.Citizen.city>` 와
:attr:`City.citizens <civitas.domain.City.citizens>` 양쪽을 동시에 변경하는
유일한 모듈입니다. 각 함수가 끝난 시점에는 항상 다음이 성립합니다.

- ``citizen.city is city`` 이면 ``citizen in city.citizens``
- ``citizen in city.citizens`` 이면 ``citizen.city is city``
"""
from __future__ import annotations

from typing import Iterable

from civitas.core import EntityState, RemovedEntityError, Resolver, same_identity
from civitas.domain import Citizen, City


def _check_not_removed(*items: object) -> None:
    for item in items:
        if getattr(item, "state", None) is EntityState.REMOVED:
            raise RemovedEntityError(f"{item!r} is removed and cannot be modified")


def attach(city: City, citizen: Citizen) -> None:
    """시민을 도시에 소속시킵니다.

    다른 도시에 소속되어 있었다면 그 도시에서 먼저 제거합니다(이동).
    이미 같은 도시에 소속되어 있다면 아무 일도 하지 않습니다.
    """
    _check_not_removed(city, citizen)

    old_city = citizen.city
    if old_city is not None and old_city is not city:
        old_city._citizens.discard(citizen)

    city._citizens.add(citizen)
    citizen._city = city


def detach(city: City, citizen: Citizen) -> None:
    """시민을 도시에서 분리합니다. 시민 자체는 삭제되지 않습니다.

    소속되어 있지 않으면 아무 일도 하지 않습니다.
    """
    member = city._citizens.find(citizen)
    if member is None:
        return

    _check_not_removed(city, member)
    city._citizens.discard(member)
    for it in (member, citizen):
        if it.city is city:
            it._city = None  # type: ignore


def replace_all(city: City, citizens: Iterable[Citizen], resolver: Resolver) -> None:
    """도시의 시민 컬렉션을 ``citizens`` 로 교체합니다.

    비교는 레퍼런스가 아니라 식별자 기준입니다. 빠지는 시민을 모두 분리한 뒤,
    새 시민들을 :class:`~civitas.identity.IdentityResolver` 로 해석해서
    소속시킵니다.
    """
    citizens = list(citizens)

    for current in city.citizens:
        if not any(same_identity(current, it) for it in citizens):
            detach(city, current)

    for citizen in citizens:
        attach(city, resolver.resolve(citizen))
