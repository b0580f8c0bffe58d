class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action or does not own the record."""


class NotFoundError(DomainError):
    """Raised when a referenced class slot, absence or account does not exist."""


class InvalidStateError(DomainError):
    """Raised when the absence status does not allow the requested transition."""


class DeadlineExpiredError(DomainError):
    """Raised when a makeup is requested after the makeup deadline."""


class CapacityExceededError(DomainError):
    """Raised when the chosen makeup class has no free spots."""


class MonthlyCapExceededError(DomainError):
    """Raised when the member already used all makeups for the month."""
