"""Command line script for Civitas."""
from __future__ import annotations

import os
import shutil
import sys
from argparse import ArgumentParser, RawTextHelpFormatter
from pathlib import Path
from textwrap import dedent
from typing import Any, Optional, Sequence

from civitas import services
from civitas.config import Civitas
from civitas.core import CivitasError
from civitas.domain import Citizen, City
from civitas.logging import get_logger
from civitas.orm import StoreMaker, init_db
from civitas.uow import UnitOfWork
from civitas.utils import (
    Fore,
    bold,
    collection_to_string,
    fg,
    format_citizen,
    format_city,
)

YELLOW, CYAN, RED, GREEN, WHITE_EX = (
    Fore.YELLOW,
    Fore.CYAN,
    Fore.RED,
    Fore.GREEN,
    Fore.LIGHTWHITE_EX,
)

KINDS = {"city": City, "citizen": Citizen}

logger = get_logger("civitas.command")


class CivitasCommand:
    def __init__(self, get_store: Optional[StoreMaker] = None):
        """Constructor.

        현재 경로의 ``setup.cfg`` 에서 설정을 읽습니다. ``get_store`` 가 없으면
        처음 DB 작업을 할 때 설정의 DB URL 로 접속합니다.
        """
        self.path = Path(os.path.abspath("."))
        self.config = Civitas.load_from_config(self.path)
        self._get_store = get_store

    @property
    def uow(self) -> UnitOfWork:
        if not self._get_store:
            self._get_store = init_db(config=self.config)
        return UnitOfWork(self._get_store)

    def print_warn(self, msg: str):
        print(f"{bold('Civitas WARNING:', YELLOW)} {msg}")

    def banner(self, msg, icon=""):
        """프로젝트 배너를 표시합니다."""
        if os.name == "nt":
            icon = ""
        banner_width = min(75, shutil.get_terminal_size().columns)
        print("─" * banner_width)
        print(f"{icon} {msg}")
        print("─" * banner_width)

    def info(self):
        """Civitas 설정 정보를 출력합니다."""
        dot = bold("-", YELLOW)
        self.banner(f"{bold('Civitas Information')}", icon="💡")
        print(dot, fg("Name", CYAN), "    :", fg(self.config.name, WHITE_EX))
        print(dot, fg("Title", CYAN), "   :", fg(self.config.title, WHITE_EX))
        print(dot, fg("Database", CYAN), ":", fg(self.config.get_db_url(), WHITE_EX))
        print(dot, fg("Path", CYAN), "    :", fg(self.path, WHITE_EX))

    def init(self, drop=False):
        """DB 테이블을 생성합니다.

        --drop 옵션을 주면 기존 테이블을 모두 지우고 다시 만듭니다.
        """
        if drop:
            self.print_warn(f"dropping all tables of {self.config.get_db_url()}")
        self._get_store = init_db(config=self.config, drop_all=drop)
        bullet = bold("✓" if os.name != "nt" else "v", GREEN)
        db_url = bold(self.config.get_db_url(), YELLOW)
        print(f"{bullet} init {fg('database', CYAN)}... {db_url}")

    def add_city(self, name: str, country: Optional[str], population: Optional[int]):
        """새 도시를 추가합니다."""
        city = services.add_city(name, country, population, self.uow)
        print(format_city(city))

    def add_citizen(self, name: str, surname: Optional[str], age: Optional[int]):
        """새 시민을 추가합니다."""
        citizen = services.add_citizen(name, surname, age, self.uow)
        print(format_citizen(citizen))

    def update_city(
        self, id: int, citizens: Optional[list[int]] = None, **changes: Any
    ):
        """도시 정보와 소속 시민을 변경합니다.

        --citizens 에 시민 id 목록을 주면 소속 시민을 그 목록으로 교체합니다.
        id 없이 --citizens 만 주면 소속 시민을 모두 분리합니다.
        """
        changes = {k: v for k, v in changes.items() if v is not None}
        members = services.KEEP_CITIZENS if citizens is None else citizens
        city = services.update_city(id, self.uow, members, **changes)
        print(format_city(city))

    def update_citizen(self, id: int, **changes: Any):
        """시민 정보를 변경합니다."""
        changes = {k: v for k, v in changes.items() if v is not None}
        citizen = services.update_citizen(id, self.uow, **changes)
        print(format_citizen(citizen))

    def delete(self, kind: str, id: int):
        """도시나 시민을 삭제합니다.

        도시를 삭제하면 소속된 시민들도 함께 삭제됩니다.
        """
        if services.delete(KINDS[kind], id, self.uow):
            print(f"Deleted {KINDS[kind].__name__} with id {id}")
        else:
            self.print_warn(f"{KINDS[kind].__name__} with id {id} not found")

    def list(self, kind: str, order_by: Optional[str] = None, desc: bool = False):
        """도시나 시민 목록을 출력합니다."""
        items = services.list_all(KINDS[kind], self.uow, order_by, desc)
        print(collection_to_string(KINDS[kind], items))

    def show(self, id: int):
        """소속 시민을 포함한 도시 정보를 출력합니다."""
        city = services.get_city_with_citizens(id, self.uow)
        if city is None:
            self.print_warn(f"City with id {id} not found")
            return
        print(format_city(city))
        citizens = sorted(city.citizens, key=lambda it: it.id)
        print(collection_to_string(Citizen, citizens))


class CivitasCommandParser:
    """콘솔 커맨드 명령어 파서.

    실제 작업은 `CivitasCommand` 객체에 위임합니다.
    """

    def __init__(self, cmd: Optional[CivitasCommand] = None):
        """기본 생성자."""
        self.parser = ArgumentParser(
            "civitas",
            description=f"✨ {bold('Civitas')} : {fg('city registry utility', CYAN)}",
        )
        self._subparsers = self.parser.add_subparsers(dest="command")
        self._cmd = cmd or CivitasCommand()

        # init subparsers
        for handler in [
            self._cmd.info,
            self._cmd.init,
            self._cmd.add_city,
            self._cmd.add_citizen,
            self._cmd.update_city,
            self._cmd.update_citizen,
            self._cmd.delete,
            self._cmd.list,
            self._cmd.show,
        ]:
            command = handler.__name__.replace("_", "-")
            # 핸들러 함수의 주석을 커맨드라인 도움말로 변환하기 위한 작업입니다.
            doc = None
            if handler.__doc__:
                lines = handler.__doc__.splitlines()
                doc = lines[0] + "\n" + dedent("\n".join(lines[1:]))
            parser = self._subparsers.add_parser(
                command,
                description=doc,
                formatter_class=RawTextHelpFormatter,
            )
            self._add_arguments(command, parser)

    def _add_arguments(self, command: str, parser: ArgumentParser):
        if command == "init":
            parser.add_argument("--drop", action="store_true", help="기존 테이블 삭제")
        if command == "add-city":
            parser.add_argument("name")
            parser.add_argument("country", nargs="?")
            parser.add_argument("population", nargs="?", type=int)
        if command == "add-citizen":
            parser.add_argument("name")
            parser.add_argument("surname", nargs="?")
            parser.add_argument("age", nargs="?", type=int)
        if command == "update-city":
            parser.add_argument("id", type=int)
            parser.add_argument("--name")
            parser.add_argument("--country")
            parser.add_argument("--population", type=int)
            parser.add_argument(
                "--citizens", nargs="*", type=int, metavar="ID", help="소속 시민 id 목록"
            )
        if command == "update-citizen":
            parser.add_argument("id", type=int)
            parser.add_argument("--name")
            parser.add_argument("--surname")
            parser.add_argument("--age", type=int)
        if command == "delete":
            parser.add_argument("kind", choices=list(KINDS))
            parser.add_argument("id", type=int)
        if command == "list":
            parser.add_argument("kind", choices=list(KINDS))
            parser.add_argument("--order-by", metavar="FIELD")
            parser.add_argument("--desc", action="store_true", help="내림차순 정렬")
        if command == "show":
            parser.add_argument("id", type=int)

    def parse_args(self, args: Sequence[str]) -> int:
        """콘솔 명령어를 해석해서 적절한 작업을 수행합니다."""
        if not args:
            self.parser.print_help()
            return 0

        ns = self.parser.parse_args(args)
        kwargs = vars(ns)
        command = kwargs.pop("command").replace("-", "_")
        try:
            getattr(self._cmd, command)(**kwargs)
        except CivitasError as e:
            logger.debug("command %s failed", command, exc_info=True)
            print(
                f"{bold('Civitas ERROR:', RED)} {fg(e.message, YELLOW)}",
                file=sys.stderr,
            )
            return 1
        return 0


def console_main():
    parser = CivitasCommandParser()
    sys.exit(parser.parse_args(sys.argv[1:]))


if __name__ == "__main__":
    console_main()
