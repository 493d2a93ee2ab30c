class BakeryDomainError(Exception):
    """Base class for all domain errors. Carries the HTTP status and the user-facing message."""

    status_code = 400

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class BusinessRuleError(BakeryDomainError):
    """Raised when a request violates a business rule."""


class DuplicateError(BusinessRuleError):
    """Raised when a unique field (plate, username, store name...) is already taken."""


class InvalidStateTransitionError(BusinessRuleError):
    """Raised when an entity cannot move from its current status to the requested one."""


class NoAvailableDistributorError(BusinessRuleError):
    """Raised when no distributor can take an order."""


class NotFoundError(BakeryDomainError):
    """Raised when a referenced entity does not exist."""

    status_code = 404


class AuthenticationError(BakeryDomainError):
    """Raised when credentials or tokens are missing or invalid."""

    status_code = 401


class PermissionDeniedError(BakeryDomainError):
    """Raised when the current user may not act on a resource."""

    status_code = 403


class DatabaseQueryError(BakeryDomainError):
    """Raised when a database operation fails unexpectedly."""

    status_code = 500
