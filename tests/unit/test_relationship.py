"""도시-시민 양방향 관계 동기화 테스트."""
import pytest

from civitas.core import EntityState, RemovedEntityError
from civitas.domain import Citizen, City
from civitas.relationship import attach, detach, replace_all


class PassThroughResolver:
    def resolve(self, item):
        return item


def test_attach_updates_both_sides(city: City, anna: Citizen):
    attach(city, anna)

    assert anna.city is city
    assert anna in city.citizens


def test_attach_twice_is_idempotent(city: City, anna: Citizen):
    attach(city, anna)
    attach(city, anna)

    assert len(city.citizens) == 1
    assert anna.city is city


def test_attach_moves_citizen_between_cities(city: City, anna: Citizen):
    other = City("Hilltop", "Y", 200)
    attach(city, anna)
    attach(other, anna)

    assert anna.city is other
    assert anna not in city.citizens
    assert anna in other.citizens


def test_detach_clears_both_sides(city: City, anna: Citizen):
    attach(city, anna)
    detach(city, anna)

    assert anna.city is None
    assert not city.citizens


def test_detach_non_member_does_nothing(city: City, anna: Citizen):
    other = City("Hilltop")
    attach(other, anna)

    detach(city, anna)

    assert anna.city is other
    assert anna in other.citizens


def test_replace_all_compares_by_identity(city: City):
    """같은 id를 가진 다른 인스턴스는 같은 시민으로 취급합니다."""
    city.id = 1
    stay = Citizen("Anna", "Puig", 30, id=10)
    leave = Citizen("Joan", "Soler", 40, id=11)
    attach(city, stay)
    attach(city, leave)

    replace_all(city, [Citizen("Anna", "Puig", 30, id=10)], PassThroughResolver())

    assert [it.id for it in city.citizens] == [10]
    assert leave.city is None


def test_replace_all_with_empty_detaches_everyone(city: City, anna: Citizen):
    attach(city, anna)

    replace_all(city, [], PassThroughResolver())

    assert not city.citizens
    assert anna.city is None


def test_citizens_collection_is_read_only(city: City, anna: Citizen):
    attach(city, anna)

    with pytest.raises(AttributeError):
        city.citizens.add(Citizen("Joan"))  # type: ignore


def test_removed_entity_cannot_be_attached(city: City, anna: Citizen):
    anna._state = EntityState.REMOVED

    with pytest.raises(RemovedEntityError):
        attach(city, anna)


def test_detach_with_copy_clears_copy_link(city: City):
    """같은 id를 가진 복사본으로 분리해도 복사본의 도시 링크가 지워집니다."""
    city.id = 1
    member = Citizen("Anna", "Puig", 30, id=10)
    attach(city, member)
    copy = Citizen("Anna", "Puig", 30, id=10)
    copy._city = city

    detach(city, copy)

    assert not city.citizens
    assert member.city is None
    assert copy.city is None
