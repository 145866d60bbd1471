class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error

class ValidationError(AppError):
    """Raised when input validation fails."""
    pass

class MalformedEntityError(ValidationError):
    """Raised when an entity or partial record is structurally malformed (e.g. missing id)."""
    pass

class CardinalityError(AppError):
    """Raised when a collection would leave its declared min/max bounds."""
    pass

class EntityNotFoundError(AppError):
    """Raised when an operation targets an id that is not in the collection."""
    pass

class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass
