"""
Custom exceptions for the application.
Following domain-driven design principles with specific exception types.
"""


class BaseApplicationException(Exception):
    """Base exception for all application-specific exceptions"""
    default_message = "An application error occurred"

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BaseApplicationException):
    """Raised when validation fails"""
    default_message = "Validation failed"


class NotFoundError(BaseApplicationException):
    """Raised when a resource is not found"""
    default_message = "Resource not found"

    def __init__(self, resource_type=None, resource_id=None, **kwargs):
        self.resource_type = resource_type
        self.resource_id = resource_id
        if 'message' not in kwargs and resource_type:
            kwargs['message'] = f"{resource_type} {resource_id} not found"
        super().__init__(**kwargs)


class PermissionDeniedError(BaseApplicationException):
    """Raised when user doesn't have permission"""
    default_message = "Permission denied"


class BusinessLogicError(BaseApplicationException):
    """Raised when business rule is violated"""
    default_message = "Business rule violation"


class InvalidStateError(BusinessLogicError):
    """Raised when an operation is not allowed from the current status"""
    default_message = "Operation not allowed in the current state"


class DuplicateOperationError(BusinessLogicError):
    """
    Raised on an idempotency hit (payment already reconciled, invoice
    already exists for the period, reminder stage already sent).
    Callers treat it as a silent no-op, not a failure.
    """
    default_message = "Operation already performed"


class DataIntegrityError(BusinessLogicError):
    """Raised when a record is missing a linkage it is expected to have"""
    default_message = "Data integrity problem"


class ExternalDependencyError(BaseApplicationException):
    """Raised when an external collaborator (email, payment gateway) fails"""
    default_message = "External service failed"
