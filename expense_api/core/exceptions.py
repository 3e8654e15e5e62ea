from __future__ import annotations


class DomainError(Exception):
    """Base class for errors raised by the service layer."""

    kind = "domain_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    kind = "not_found"

    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f"{entity} ({key}) was not found")
        self.entity = entity
        self.key = key


class ValidationError(DomainError):
    kind = "validation_error"


class ConflictError(DomainError):
    kind = "conflict"
