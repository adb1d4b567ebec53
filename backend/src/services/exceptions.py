"""
Custom exceptions for service layer.

Provides specific exception types for business logic errors
that can be translated to appropriate HTTP responses.

"No update available" is deliberately absent: it is a protocol state carried
by lookup results and directives, never an error.
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when client input is missing, malformed or unsupported."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class ConfigurationError(ServiceError):
    """Raised when a client asks for something the server was not configured for."""

    status_code = 400


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any, message: Optional[str] = None):
        self.resource = resource
        self.identifier = identifier
        super().__init__(message or f"{resource} {identifier} not found")


class InvalidBundleError(ServiceError):
    """Raised when a stored update bundle cannot be described to clients."""

    status_code = 404


class UpstreamError(ServiceError):
    """Raised when the store or blob storage fails."""

    status_code = 500


class StorageError(UpstreamError):
    """Raised by storage adapters when a blob operation fails."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class ProtocolViolationError(ServiceError):
    """Raised when code asks for a response shape the protocol version cannot carry."""

    status_code = 500
