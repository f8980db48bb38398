"""
Custom exceptions for the waitlist service
"""

class BaseAppException(Exception):
    """Base application exception"""
    status_code = 500

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class ValidationError(BaseAppException):
    """Raised when a submission fails validation"""
    status_code = 400

    def __init__(self, message: str, details: str = None, error_code: str = None):
        super().__init__(message, details)
        self.error_code = error_code


class EmailRequiredError(ValidationError):
    """Payload is missing or carries no email field"""
    def __init__(self, details: str = None):
        super().__init__("Email is required", details, error_code="email_required")


class InvalidEmailError(ValidationError):
    """Email does not match the address grammar"""
    def __init__(self, details: str = None):
        super().__init__("Invalid email format", details, error_code="invalid_email")


class ExternalServiceError(BaseAppException):
    """Raised when external service calls fail"""
    pass


class DatabaseError(BaseAppException):
    """Raised when ledger storage operations fail"""
    pass


class LedgerUnavailableError(DatabaseError):
    """Storage could not be read or appended to"""
    def __init__(self, details: str = None):
        super().__init__("Something went wrong. Please try again later.", details)


class CapacityExceededError(DatabaseError):
    """Ledger reached its size bound and must be rotated"""
    def __init__(self, details: str = None):
        super().__init__("Service temporarily unavailable", details)


class DuplicateSignupError(DatabaseError):
    """Append refused because the email is already recorded"""
    def __init__(self, email: str):
        super().__init__("Email already on the waitlist", email)
        self.email = email


class BackendUnreachableError(ExternalServiceError):
    """Waitlist endpoint could not be reached over the network"""
    def __init__(self, endpoint: str, details: str = None):
        super().__init__(f"Waitlist service unreachable: {endpoint}", details)
        self.endpoint = endpoint
