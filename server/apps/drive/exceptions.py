"""Exceptions for drive app.

Every error raised by the business logic is a ``DriveError`` carrying an
``ErrorKind``; the API layer maps the kind to an HTTP status.
"""

from enum import StrEnum
from typing import ClassVar


class ErrorKind(StrEnum):
    """Category of a drive failure."""

    NOT_FOUND = 'not_found'
    CONFLICT = 'conflict'
    INVALID_OPERATION = 'invalid_operation'
    VALIDATION = 'validation_error'
    DEPENDENCY_FAILURE = 'dependency_failure'


class DriveError(Exception):
    """Base class for drive business errors."""

    kind: ClassVar[ErrorKind]


class NotFoundError(DriveError):
    """Raised when a record is missing, deleted or owned by someone else.

    The three cases are deliberately indistinguishable.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, identifier: object) -> None:
        """Initialize NotFoundError.

        Args:
            entity: Kind of record looked up ('Folder', 'File', ...).
            identifier: Id or public link that was requested.
        """
        self.entity = entity
        self.identifier = identifier
        super().__init__(f'{entity} not found')


class ConflictError(DriveError):
    """Raised when a name is already taken among active siblings."""

    kind = ErrorKind.CONFLICT

    def __init__(self, entity: str, name: str) -> None:
        """Initialize ConflictError.

        Args:
            entity: Kind of record ('Folder' or 'File').
            name: Conflicting name.
        """
        self.entity = entity
        self.name = name
        super().__init__(
            f'A {entity.lower()} named "{name}" already exists in this location',
        )


class InvalidOperationError(DriveError):
    """Raised for a structurally disallowed transition."""

    kind = ErrorKind.INVALID_OPERATION


class InvalidInputError(DriveError):
    """Raised for malformed input, before any store access."""

    kind = ErrorKind.VALIDATION

    def __init__(self, field: str, message: str) -> None:
        """Initialize InvalidInputError.

        Args:
            field: Name of the offending input field.
            message: Human readable description.
        """
        self.field = field
        super().__init__(message)


class DependencyFailureError(DriveError):
    """Raised when the object store call fails.

    Database state may already be committed when this is raised.
    """

    kind = ErrorKind.DEPENDENCY_FAILURE

    def __init__(self, operation: str, key: str) -> None:
        """Initialize DependencyFailureError.

        Args:
            operation: Object store operation that failed.
            key: Object key or container prefix involved.
        """
        self.operation = operation
        self.key = key
        super().__init__(f'Object storage {operation} failed for {key}')
