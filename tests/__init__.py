import uuid


def random_suffix() -> str:
    """랜덤 이름 뒤에 붙일 UUID 기반의 6자리 임의의 문자열을 생성합니다."""
    return uuid.uuid4().hex[:6]


def random_city_name(name: str = "") -> str:
    """임의의 도시 이름을 생성합니다."""
    return f"city-{name}-{random_suffix()}"


def random_surname(name: str = "") -> str:
    """임의의 성(surname)을 생성합니다."""
    return f"surname-{name}-{random_suffix()}"
