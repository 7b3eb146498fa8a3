"""
Call Service Exceptions

Custom exceptions for call request / call session errors.
Routers map each one to an HTTP status.
"""


class CallServiceError(Exception):
    """Base exception for call service errors"""
    pass


class InvalidRequestError(CallServiceError):
    """Raised when required fields are missing or invalid (400)"""
    pass


class NotFoundOrAlreadyProcessedError(CallServiceError):
    """Raised when a record is missing or a status-guarded update matched no row (404)"""
    pass


class PrincipalMismatchError(CallServiceError):
    """Raised when the acting principal does not own the record (403)"""
    pass


class InvalidStateError(CallServiceError):
    """Raised when a record is not in the status an operation requires (409)"""
    pass


class StorageUnavailableError(CallServiceError):
    """Raised when the database rejects or drops a write (500)"""
    pass
