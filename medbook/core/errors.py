"""
Error kinds raised by the service layer.

Services never raise HTTP exceptions for domain failures. They raise
``ServiceError`` tagged with an ``ErrorKind``; the HTTP layer turns the kind
into a status code with ``STATUS_BY_KIND``.
"""
from enum import Enum
from typing import Union

from fastapi import status


# Largest value a 64-bit signed INTEGER column or bind parameter can hold
MAX_DB_INTEGER = 2 ** 63 - 1


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    CAST = "cast"
    INTERNAL = "internal"


# A held slot is reported as a bad booking request, same as the public API always did
STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CAST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ServiceError(Exception):
    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def __repr__(self):
        return f"<ServiceError(kind={self.kind.value}, message='{self.message}')>"


def validation_error(message: str) -> ServiceError:
    return ServiceError(ErrorKind.VALIDATION, message)


def not_found(message: str) -> ServiceError:
    return ServiceError(ErrorKind.NOT_FOUND, message)


def conflict(message: str) -> ServiceError:
    return ServiceError(ErrorKind.CONFLICT, message)


def internal_error(message: str) -> ServiceError:
    return ServiceError(ErrorKind.INTERNAL, message)


def parse_identifier(raw: Union[str, int, None], label: str) -> int:
    """Convert a path or body identifier to a primary key.

    Raises a CAST error with the same wording clients already rely on,
    e.g. ``Invalid Appointment ID: abc``.
    """
    if isinstance(raw, int) and not isinstance(raw, bool):
        value = raw
    else:
        text = str(raw).strip() if raw is not None else ""
        # str.isdigit also accepts digits such as "²" that int() rejects
        if not (text.isascii() and text.isdigit()):
            raise ServiceError(ErrorKind.CAST, f"Invalid {label} ID: {raw}")
        value = int(text)

    if value <= 0 or value > MAX_DB_INTEGER:
        raise ServiceError(ErrorKind.CAST, f"Invalid {label} ID: {raw}")
    return value
