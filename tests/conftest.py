# pylint: disable=redefined-outer-name
"""pytest 에서 사용될 전역 Fixture들을 정의합니다."""
from __future__ import annotations

from typing import Callable, Generator

import pytest
from sqlalchemy import MetaData
from sqlalchemy.pool import StaticPool

from civitas.domain import Citizen, City
from civitas.orm import init_engine, init_tables
from civitas.store import SqlAlchemyStoreMaker
from civitas.test.unit import FakeDatabase
from civitas.uow import UnitOfWork

UowMaker = Callable[[], UnitOfWork]
""":func:`new_uow` 픽스처 타입."""


def memory_store_maker() -> SqlAlchemyStoreMaker:
    """테이블이 생성된 인메모리 SQLite DB의 Store 팩토리를 만듭니다."""
    metadata = init_tables(MetaData())
    engine = init_engine(
        metadata, "sqlite://", {"check_same_thread": False}, StaticPool
    )
    return SqlAlchemyStoreMaker(engine, metadata)


@pytest.fixture
def fake_db() -> FakeDatabase:
    """단위 테스트용 :class:`FakeDatabase` 픽스처."""
    return FakeDatabase()


@pytest.fixture
def get_store() -> Generator[SqlAlchemyStoreMaker, None, None]:
    """매번 새로 만들어지는 인메모리 SQLite Store 팩토리 픽스처."""
    maker = memory_store_maker()
    yield maker
    maker.dispose()


@pytest.fixture
def new_uow(get_store: SqlAlchemyStoreMaker) -> UowMaker:
    """SQLite 저장소를 사용하는 새 :class:`UnitOfWork` 를 만드는 함수를 리턴합니다."""
    return lambda: UnitOfWork(get_store)


@pytest.fixture
def city() -> City:
    return City("Riverside", "X", 1000)


@pytest.fixture
def anna() -> Citizen:
    return Citizen("Anna", "Puig", 30)
