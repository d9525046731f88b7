"""
Service-level exceptions, translated to HTTP status codes by the API layer
"""
from typing import Optional


class ServiceError(Exception):
    """Base class for errors raised by the service layer"""
    
    status_code = 500
    
    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class NotFoundError(ServiceError):
    """A referenced module, assessment, question, answer or attempt does not exist"""
    status_code = 404


class InvalidRequestError(ServiceError):
    """Input is well-formed but violates a business rule"""
    status_code = 400


class PermissionDeniedError(ServiceError):
    """The caller is not allowed to access the resource"""
    status_code = 403
