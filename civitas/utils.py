import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterable, Optional

from colorama import init as init_colors

from civitas.core import Entity
from civitas.domain import Citizen, City

init_colors()  # For Windows environment

from colorama import Fore, Style  # noqa: E402


def fg(text, color=Fore.WHITE):
    """텍스트를 지정된 ANSI 컬러로 출력합니다."""
    return f"{color}{text}{Fore.RESET}"


def bold(text, color=Fore.WHITE):
    """텍스트를 지정된 ANSI 컬러와 밝기 효과를 주어 출력합니다."""
    return f"{Style.BRIGHT}{color}{text}{Style.RESET_ALL}"


@contextmanager
def cwd(path: Path) -> Generator:
    """Helper to guarantee work in the path only during the context.

    Restore previous working directory when exit the context block.
    """
    oldpwd = os.getcwd()
    os.chdir(path)
    try:
        yield
    finally:
        os.chdir(oldpwd)


def format_citizen(citizen: Citizen) -> str:
    """``10: Anna Puig (30 years)`` 형식."""
    return f"{citizen.id}: {citizen.name} {citizen.surname} ({citizen.age} years)"


def format_city(city: City) -> str:
    citizens = " | ".join(
        f"{it.name} {it.surname}" for it in sorted(city.citizens, key=_sort_key)
    )
    return (
        f"City [ID={city.id}, Name={city.name}, Country={city.country}, "
        f"Population={city.population}, Citizens: [{citizens or 'Empty'}]]"
    )


def format_entity(item: Entity) -> str:
    if isinstance(item, City):
        return format_city(item)
    if isinstance(item, Citizen):
        return format_citizen(item)
    return repr(item)


def collection_to_string(kind: type, items: Optional[Iterable[Entity]]) -> str:
    """엔티티 컬렉션을 한 줄에 하나씩 출력할 문자열로 만듭니다."""
    lines = [format_entity(it) for it in items or ()]
    if not lines:
        return f"[No {kind.__name__} found]"
    return "\n".join(lines)


def _sort_key(item: Entity):
    return (item.id is None, item.id or 0)
