class CivitasError(Exception):
    """``Civitas`` 와 관련된 모든 에러의 기본 클래스."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    ...


class NotFoundError(CivitasError):
    """필수로 존재해야 하는 엔티티를 찾지 못했을 때 발생하는 에러."""

    ...


class StaleReferenceError(CivitasError):
    """어디에서도 해석할 수 없는 엔티티 레퍼런스를 사용했을 때 발생하는 에러."""

    ...


class InvalidFieldError(CivitasError):
    """엔티티에 존재하지 않는 속성을 지정했을 때 발생하는 에러."""

    ...


class PersistenceError(CivitasError):
    """저장소가 쓰기 작업을 거부했을 때 발생하는 에러.

    UnitOfWork 는 이 에러를 받으면 모든 변경을 롤백합니다.
    """

    ...


class UnitOfWorkStateError(CivitasError):
    """UnitOfWork 의 현재 상태에서 허용되지 않는 작업을 할 때 발생하는 에러."""

    ...


class RemovedEntityError(CivitasError):
    """삭제 표시된 엔티티를 변경하려 할 때 발생하는 에러."""

    ...
