from sqlalchemy.exc import IntegrityError


class BookingDBError(Exception):
    pass


class NotFoundError(BookingDBError):
    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidPasswordError(BookingDBError):
    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        super().__init__(f"Password must be at most {max_bytes} bytes when UTF-8 encoded")


class InvalidTransitionError(BookingDBError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change booking status from {current} to {requested}")


class ConstraintViolation(BookingDBError):
    def __init__(self, message: str, detail: str = ""):
        self.detail = detail
        super().__init__(message)


class UniqueViolation(ConstraintViolation):
    pass


class ForeignKeyViolation(ConstraintViolation):
    pass


class CheckViolation(ConstraintViolation):
    pass


class NotNullViolation(ConstraintViolation):
    pass


# (needle, class, message); SQLite wording first, then PostgreSQL
_PATTERNS = (
    ("unique constraint failed", UniqueViolation, "Unique constraint violated"),
    ("duplicate key value", UniqueViolation, "Unique constraint violated"),
    ("foreign key constraint", ForeignKeyViolation, "Foreign key constraint violated"),
    ("check constraint", CheckViolation, "Check constraint violated"),
    ("not null constraint failed", NotNullViolation, "Not-null constraint violated"),
    ("not-null constraint", NotNullViolation, "Not-null constraint violated"),
)


def translate_integrity_error(exc: IntegrityError) -> ConstraintViolation:
    detail = str(exc.orig) if exc.orig is not None else str(exc)
    lowered = detail.lower()
    for needle, error_cls, message in _PATTERNS:
        if needle in lowered:
            return error_cls(message, detail)
    return ConstraintViolation("Integrity constraint violated", detail)
