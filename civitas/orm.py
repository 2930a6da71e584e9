"""테이블 매핑과 DB 엔진 초기화 모듈."""
from __future__ import annotations

from typing import Any, Callable, Optional, Type

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import Pool
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from civitas.config import Civitas
from civitas.core import AbstractStore, PersistenceError
from civitas.logging import get_logger
from civitas.store import SqlAlchemyStoreMaker

StoreMaker = Callable[[], AbstractStore]
"""Store 팩토리 타입."""

logger = get_logger("civitas.orm")

metadata: Optional[MetaData] = None

_get_store: Optional[StoreMaker] = None  # pylint: disable=invalid-name


def init_tables(metadata: MetaData) -> MetaData:
    """도메인 엔티티의 테이블을 ``metadata`` 에 등록합니다.

    시민과 도시의 관계는 ``citizen.city_id`` 외래키로만 저장됩니다.
    """
    Table(
        "city",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(255), nullable=False),
        Column("country", String(255)),
        Column("population", Integer),
        extend_existing=True,
    )

    Table(
        "citizen",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(255), nullable=False),
        Column("surname", String(255)),
        Column("age", Integer),
        Column("city_id", ForeignKey("city.id"), nullable=True),
        extend_existing=True,
    )

    return metadata


def start_mappers(use_exist: bool = True) -> MetaData:
    """테이블 정의가 등록된 ``MetaData`` 를 리턴합니다."""
    global metadata  # pylint: disable=global-statement,invalid-name
    if use_exist and metadata:
        return metadata

    metadata = init_tables(MetaData())
    return metadata


def init_engine(
    meta: MetaData,
    url: str,
    connect_args: Optional[dict[str, Any]] = None,
    poolclass: Optional[Type[Pool]] = None,
    show_log: bool = False,
    drop_all: bool = False,
) -> Engine:
    """DB 엔진을 만들고 테이블을 생성합니다.

    최초 접속은 최대 3번까지 재시도 합니다.

    Raises:
        PersistenceError: DB에 접속할 수 없는 경우
    """
    engine = create_engine(
        url,
        connect_args=connect_args or {},
        poolclass=poolclass,
        echo=show_log,
    )

    try:
        retrying = Retrying(
            stop=stop_after_attempt(3),
            wait=wait_exponential(max=4),
            retry=retry_if_exception_type(OperationalError),
        )
        for attempt in retrying:
            with attempt:
                logger.debug(
                    "connecting to %s (attempt %d)",
                    engine.url,
                    attempt.retry_state.attempt_number,
                )
                with engine.begin() as conn:
                    if drop_all:
                        meta.drop_all(conn)
                    meta.create_all(conn)
    except RetryError as retry_failure:
        engine.dispose()
        logger.error(
            "Failed to connect to %s %s times, giving up!",
            engine.url,
            retry_failure.last_attempt.attempt_number,
        )
        raise PersistenceError(f"cannot connect to database: {engine.url}") from (
            retry_failure.last_attempt.exception()
        )

    return engine


def init_db(
    db_url: Optional[str] = None,
    drop_all: bool = False,
    show_log: bool = False,
    config: Optional[Civitas] = None,
) -> StoreMaker:
    """DB 엔진을 초기화 하고 기본 Store 팩토리로 등록합니다."""
    global _get_store  # pylint: disable=global-statement

    config = config or Civitas.load_from_config()
    url = db_url or config.get_db_url()
    engine = init_engine(
        start_mappers(),
        url,
        connect_args=config.get_db_connect_args(url),
        poolclass=config.get_db_poolclass(url),
        show_log=show_log,
        drop_all=drop_all,
    )
    _get_store = SqlAlchemyStoreMaker(engine, start_mappers())
    return _get_store


def get_store_factory() -> StoreMaker:
    """기본 Store 팩토리를 리턴합니다. 없으면 설정을 읽어 새로 만듭니다."""
    if not _get_store:
        return init_db()
    return _get_store


def set_default_store_factory(get_store: Optional[StoreMaker]) -> None:
    global _get_store  # pylint: disable=global-statement
    _get_store = get_store


def dispose() -> None:
    """기본 Store 팩토리의 커넥션 풀을 닫습니다."""
    global _get_store  # pylint: disable=global-statement
    if isinstance(_get_store, SqlAlchemyStoreMaker):
        _get_store.dispose()
    _get_store = None
