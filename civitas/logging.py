"""로거 설정.

``CIVITAS_LOG_LEVEL`` 환경변수(``DEBUG``, ``INFO`` ...)로 기본 레벨을 바꿀 수 있습니다.
"""
import logging
import os

from uvicorn.logging import DefaultFormatter

LOG_FORMAT = "%(levelprefix)s %(name)s: %(message)s"


def get_log_level() -> int:
    level = logging.getLevelName(os.environ.get("CIVITAS_LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str, log_level=None):
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(log_level or get_log_level())
        ch = logging.StreamHandler()
        ch.setFormatter(DefaultFormatter(fmt=LOG_FORMAT))
        logger.addHandler(ch)

    return logger
