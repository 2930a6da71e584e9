"""SqlAlchemy 저장소 통합 테스트 (인메모리 SQLite)."""
import pytest

from civitas.core import CivitasError, PersistenceError, get_schema
from civitas.domain import Citizen, City
from civitas.store import SqlAlchemyStoreMaker

CITY = get_schema(City)
CITIZEN = get_schema(Citizen)


def test_insert_and_find(get_store: SqlAlchemyStoreMaker):
    with get_store() as store:
        store.begin()
        record = {"name": "Riverside", "country": "X", "population": 1}
        new_id = store.insert(CITY, record)
        store.commit()

    with get_store() as store:
        store.begin()
        record = store.find_by_id(CITY, new_id)

    assert record == {
        "id": new_id,
        "name": "Riverside",
        "country": "X",
        "population": 1,
    }


def test_find_missing_returns_none(get_store: SqlAlchemyStoreMaker):
    with get_store() as store:
        store.begin()
        assert store.find_by_id(CITIZEN, 404) is None


def test_rollback_discards_writes(get_store: SqlAlchemyStoreMaker):
    with get_store() as store:
        store.begin()
        store.insert(CITY, {"name": "Temp", "country": None, "population": None})
        store.rollback()

    with get_store() as store:
        store.begin()
        assert list(store.scan(CITY)) == []


def test_not_null_violation_is_persistence_error(get_store: SqlAlchemyStoreMaker):
    with get_store() as store:
        store.begin()
        with pytest.raises(PersistenceError, match="insert Citizen failed"):
            store.insert(CITIZEN, {"name": None, "surname": None, "age": None})


def test_update_missing_row(get_store: SqlAlchemyStoreMaker):
    with get_store() as store:
        store.begin()
        with pytest.raises(PersistenceError, match="does not exist"):
            store.update(CITY, 9, {"name": "Nowhere", "country": None, "population": 0})


def test_scan_filters_and_orders(get_store: SqlAlchemyStoreMaker):
    with get_store() as store:
        store.begin()
        city_id = store.insert(CITY, {"name": "R", "country": None, "population": None})
        for name, age, member in [("A", 40, True), ("B", 20, True), ("C", 30, False)]:
            store.insert(
                CITIZEN,
                {
                    "name": name,
                    "surname": None,
                    "age": age,
                    "city_id": city_id if member else None,
                },
            )

        members = [r["name"] for r in store.scan(CITIZEN, "age", city_id=city_id)]
        orphans = [r["name"] for r in store.scan(CITIZEN, city_id=None)]
        oldest_first = [r["name"] for r in store.scan(CITIZEN, "age", True)]

    assert members == ["B", "A"]
    assert orphans == ["C"]
    assert oldest_first == ["A", "C", "B"]


def test_operations_require_begin(get_store: SqlAlchemyStoreMaker):
    store = get_store()
    with pytest.raises(CivitasError, match="not started"):
        store.find_by_id(CITY, 1)
