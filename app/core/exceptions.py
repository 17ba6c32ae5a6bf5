from typing import Optional, Any

class IntakeBotError(Exception):
    """
    Base exception for the intake bot.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ResourceNotFoundError(IntakeBotError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class AuthenticationError(IntakeBotError):
    """
    Raised when a webhook call cannot be authenticated.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)

class AuthorizationError(IntakeBotError):
    """
    Raised when a caller lacks the role an action requires.
    """
    def __init__(self, message: str = "Access denied", details: Optional[Any] = None):
        super().__init__(message, code="FORBIDDEN", status_code=403, details=details)

class UnknownWizardError(IntakeBotError):
    """
    Raised when a dialog is entered under a name nobody registered.
    """
    def __init__(self, name: str):
        super().__init__(f"Unknown wizard: {name}", code="UNKNOWN_WIZARD", status_code=500, details={"wizard": name})

class ExternalServiceError(IntakeBotError):
    """
    Raised when an external service (e.g., Telegram) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)

class DeliveryError(ExternalServiceError):
    """
    Raised when a message could not be delivered to a recipient.
    """
    def __init__(self, recipient_id: int, reason: str):
        super().__init__(
            f"Delivery to {recipient_id} failed: {reason}",
            details={"recipient_id": recipient_id, "reason": reason},
        )
        self.recipient_id = recipient_id
        self.reason = reason

class PersistenceError(IntakeBotError):
    """
    Raised when the record store cannot be reached or rejects a write.
    """
    def __init__(self, message: str = "Record store unavailable", details: Optional[Any] = None):
        super().__init__(message, code="PERSISTENCE_ERROR", status_code=503, details=details)
