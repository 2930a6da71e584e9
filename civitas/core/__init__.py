from .errors import (  # noqa
    CivitasError,
    InvalidFieldError,
    NotFoundError,
    PersistenceError,
    RemovedEntityError,
    StaleReferenceError,
    UnitOfWorkStateError,
)
from .models import (  # noqa
    SCHEMAS,
    AbstractStore,
    AbstractUnitOfWork,
    Entity,
    EntitySchema,
    EntitySet,
    EntityState,
    Identity,
    Record,
    Resolver,
    entity,
    get_schema,
    same_identity,
)
