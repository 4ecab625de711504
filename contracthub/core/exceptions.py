# contracthub/core/exceptions.py
"""
Core Exceptions - standardized error handling for the ContractHub API.

Every error carries a human-readable message, optional details and the
HTTP status it is reported with. Route handlers never build error
responses themselves; the exception handlers in main.py render these.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ContractHubError(Exception):
    """Base exception for all ContractHub errors"""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Response body for this error"""
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ContractHubError):
    """Malformed or missing input"""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize validation error.

        Args:
            message: Error description
            field: Field that failed validation
            value: Invalid value
            details: Additional validation context
        """
        super().__init__(message, details)
        self.field = field
        self.value = value

        if field:
            self.details['field'] = field
        if value is not None:
            self.details['value'] = str(value)


class AuthFailure(str, Enum):
    """Why a session could not be used"""
    UNAUTHENTICATED = "unauthenticated"
    INVALID = "invalid"
    EXPIRED = "expired"


class AuthError(ContractHubError):
    """Missing, invalid or expired session"""

    status_code = 401

    def __init__(
        self,
        message: str,
        kind: AuthFailure = AuthFailure.UNAUTHENTICATED,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.kind = kind
        self.details['reason'] = kind.value


class ForbiddenError(ContractHubError):
    """CSRF mismatch or access-control denial"""

    status_code = 403


class NotFoundError(ContractHubError):
    """Requested entity does not exist"""

    status_code = 404

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        resource_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.resource = resource
        self.resource_id = resource_id

        if resource:
            self.details['resource'] = resource
        if resource_id is not None:
            self.details['id'] = str(resource_id)


class ConflictError(ContractHubError):
    """Request conflicts with the current state of an entity"""

    status_code = 409


class RateLimitError(ContractHubError):
    """Client exceeded the request ceiling"""

    status_code = 429

    def __init__(
        self,
        message: str,
        retry_after: int,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "retry_after": self.retry_after}


class InternalError(ContractHubError):
    """Unexpected fault; the message returned to callers stays generic"""

    status_code = 500


class StorageError(InternalError):
    """Fault in the persistence collaborator"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.operation = operation

        if operation:
            self.details['operation'] = operation


class EncryptionError(InternalError):
    """Encryption or decryption of a stored field failed"""


class ConfigurationError(ContractHubError):
    """Errors in system configuration and initialization"""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            message: Error description
            component: Component with configuration issue
            details: Additional configuration context
        """
        super().__init__(message, details)
        self.component = component

        if component:
            self.details['component'] = component


class ServiceError(ContractHubError):
    """Errors in external service interactions"""

    status_code = 503

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize service error.

        Args:
            message: Error description
            service_name: Name of the failing service
            operation: Operation that failed
            details: Additional service context
        """
        super().__init__(message, details)
        self.service_name = service_name
        self.operation = operation

        if service_name:
            self.details['service'] = service_name
        if operation:
            self.details['operation'] = operation


class GPTServiceError(ServiceError):
    """Specific errors for GPT service interactions"""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, service_name="GPT", details=details)
        self.model = model

        if model:
            self.details['model'] = model


class RedisServiceError(ServiceError):
    """Specific errors for Redis service interactions"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, service_name="Redis", operation=operation, details=details)
        self.key = key

        if key:
            self.details['key'] = key


class OAuthServiceError(ServiceError):
    """Identity provider rejected or failed a request"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, service_name="GoogleOAuth", operation=operation, details=details)


# Convenience functions for creating common errors

def not_found(resource: str, resource_id: Any = None) -> NotFoundError:
    """Create a not-found error for a named resource."""
    return NotFoundError(f"{resource} not found", resource=resource, resource_id=resource_id)
