"""Wyjatki domenowe zamowien i przypisan kurierow.

Kazdy wyjatek niesie kod HTTP, ktory router przeklada na HTTPException.
"""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundError(DomainError):
    status_code = 404

    def __init__(self, entity: str, identifier):
        super().__init__(f"{entity} {identifier} nie istnieje")
        self.entity = entity
        self.identifier = identifier


class InvalidStateError(DomainError):
    status_code = 400


class InvalidTransitionError(InvalidStateError):
    def __init__(self, current, requested):
        current = getattr(current, "value", current)
        requested = getattr(requested, "value", requested)
        super().__init__(f"Niedozwolona zmiana statusu: {current} -> {requested}")
        self.current = current
        self.requested = requested


class AuthorizationError(DomainError):
    status_code = 403


class NoCandidateError(DomainError):
    status_code = 404

    def __init__(self, zone: str):
        super().__init__(f"Brak dostepnego kuriera w strefie \"{zone}\"")
        self.zone = zone


class ConcurrencyConflictError(DomainError):
    status_code = 409


class CodeCollisionError(DomainError):
    status_code = 409
