"""도메인 모델."""

from __future__ import annotations

from typing import Optional

from civitas.core.models import Entity, EntitySet, entity


@entity("city", fields=("name", "country", "population"))
class City(Entity):
    """여러 시민(:class:`Citizen`)이 소속되는 도시입니다.

    ``citizens`` 컬렉션은 읽기 전용이며, 변경은 :mod:`civitas.relationship`
    모듈의 함수만 할 수 있습니다.
    """

    def __init__(
        self,
        name: str,
        country: Optional[str] = None,
        population: Optional[int] = None,
        id: Optional[int] = None,
    ):  # pylint: disable=redefined-builtin
        super().__init__(id)
        self.name = name
        self.country = country
        self.population = population
        self._citizens = EntitySet()

    @property
    def citizens(self) -> frozenset[Citizen]:
        """현재 소속된 시민들."""
        return frozenset(self._citizens)  # type: ignore

    def __repr__(self) -> str:
        return f"City(id={self.id!r}, name={self.name!r})"


@entity(
    "citizen",
    fields=("name", "surname", "age"),
    parent_attr="city",
    parent_key="city_id",
)
class Citizen(Entity):
    """도시에 소속될 수 있는 시민입니다. 최대 한 도시에만 소속됩니다."""

    def __init__(
        self,
        name: str,
        surname: Optional[str] = None,
        age: Optional[int] = None,
        id: Optional[int] = None,
    ):  # pylint: disable=redefined-builtin
        super().__init__(id)
        self.name = name
        self.surname = surname
        self.age = age
        self._city: Optional[City] = None

    @property
    def city(self) -> Optional[City]:
        """소속 도시. 소속이 없으면 ``None``."""
        return self._city

    def __repr__(self) -> str:
        return f"Citizen(id={self.id!r}, name={self.name!r}, surname={self.surname!r})"
