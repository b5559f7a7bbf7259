class DocVaultError(Exception):
    """Базовая ошибка приложения"""

    default_message = "Request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentials(DocVaultError):
    default_message = "Invalid credentials"


class AccessDenied(DocVaultError, PermissionError):
    default_message = "Access denied"


class InvalidState(DocVaultError):
    default_message = "Operation is not allowed in the current document state"


class ConflictError(InvalidState):
    default_message = "Document was modified concurrently, please retry"


class NotFound(DocVaultError):
    default_message = "Not found"


class StorageFailure(DocVaultError):
    default_message = "File storage is unavailable"


class ValidationError(DocVaultError, ValueError):
    default_message = "Invalid input"
