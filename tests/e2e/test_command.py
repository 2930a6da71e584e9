"""``civitas`` 커맨드 실행 E2E Test.

임시 디렉토리의 ``setup.cfg`` 에 지정된 SQLite 파일 DB를 사용합니다.
"""
from pathlib import Path

import pytest

from civitas import orm
from civitas.command import CivitasCommand, CivitasCommandParser
from civitas.utils import cwd


@pytest.fixture
def run(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys):
    """커맨드를 실행하고 ``(exit code, stdout, stderr)`` 를 리턴하는 함수."""
    monkeypatch.delenv("CIVITAS_DB_URL", raising=False)
    (tmp_path / "setup.cfg").write_text(
        f"[civitas]\nname = testtown\ndb_url = sqlite:///{tmp_path / 'town.db'}\n"
    )

    def wrapper(*args: str):
        with cwd(tmp_path):
            code = CivitasCommandParser(CivitasCommand()).parse_args(list(args))
        out, err = capsys.readouterr()
        return code, out, err

    with cwd(tmp_path):
        CivitasCommand().init()
    capsys.readouterr()

    yield wrapper

    orm.dispose()


def test_info(run):
    code, out, _ = run("info")

    assert code == 0
    assert "testtown" in out
    assert "town.db" in out


def test_add_and_list(run):
    assert run("add-city", "Riverside", "X", "1000")[1].strip() == (
        "City [ID=1, Name=Riverside, Country=X, Population=1000, Citizens: [Empty]]"
    )
    _, out, _ = run("add-citizen", "Anna", "Puig", "30")
    assert out.strip() == "1: Anna Puig (30 years)"
    run("add-citizen", "Joan", "Soler", "40")

    _, out, _ = run("list", "citizen", "--order-by", "age", "--desc")

    assert out.splitlines() == ["2: Joan Soler (40 years)", "1: Anna Puig (30 years)"]


def test_empty_list(run):
    _, out, _ = run("list", "city")

    assert out.strip() == "[No City found]"


def test_update_city_and_show(run):
    run("add-city", "Riverside", "X", "1000")
    run("add-citizen", "Anna", "Puig", "30")
    run("add-citizen", "Joan", "Soler", "40")

    code, out, _ = run(
        "update-city", "1", "--population", "1200", "--citizens", "1", "2"
    )

    assert code == 0
    assert "Population=1200" in out
    assert "Citizens: [Anna Puig | Joan Soler]" in out

    _, out, _ = run("show", "1")
    assert out.splitlines()[1:] == [
        "1: Anna Puig (30 years)",
        "2: Joan Soler (40 years)",
    ]


def test_delete_city_cascades(run):
    run("add-city", "Riverside", "X", "1000")
    run("add-citizen", "Anna", "Puig", "30")
    run("update-city", "1", "--citizens", "1")

    code, out, _ = run("delete", "city", "1")

    assert code == 0
    assert "Deleted City with id 1" in out
    assert run("list", "citizen")[1].strip() == "[No Citizen found]"


def test_errors_exit_with_code_1(run):
    code, _, err = run("update-citizen", "9", "--age", "3")

    assert code == 1
    assert "Civitas ERROR:" in err
    assert "Citizen not found with id: 9" in err

    run("add-city", "Riverside")
    code, _, err = run("update-city", "1", "--citizens", "42")
    assert code == 1
    assert "does not exist" in err


def test_invalid_order_field(run):
    code, _, err = run("list", "city", "--order-by", "mayor")

    assert code == 1
    assert "mayor" in err


def test_update_city_citizens_flag(run):
    run("add-city", "Riverside", "X", "1000")
    run("add-citizen", "Anna", "Puig", "30")
    run("update-city", "1", "--citizens", "1")

    _, out, _ = run("update-city", "1", "--name", "R2")
    assert "Citizens: [Anna Puig]" in out

    _, out, _ = run("update-city", "1", "--citizens")
    assert "Citizens: [Empty]" in out
