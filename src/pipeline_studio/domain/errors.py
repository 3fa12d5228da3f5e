"""
Custom exception hierarchy for Pipeline Studio.

This module defines a comprehensive exception hierarchy with:
- Consistent error codes for API responses
- HTTP status code mappings for FastAPI
- Detailed error messages for debugging

Exception Categories:
- 4xx Client Errors: ValidationError, NotFoundError, BadRequestError, AuthenticationError
- 5xx Server Errors: GatewayError and subclasses
- 422 Domain Errors: TransformationError, InstructionParseError, PipelineGraphError

Usage:
    raise GatewayConnectionError("Gateway unreachable")
    raise ValidationError("Host is required", details={"field": "host"})
"""

from typing import Any, Dict, Optional


class PipelineStudioException(Exception):
    """
    Base exception for all Pipeline Studio errors.

    All custom exceptions inherit from this class, providing:
    - error_code: Machine-readable error identifier
    - http_status: Suggested HTTP status code for API responses
    - details: Optional structured data for debugging

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code (e.g., "GATEWAY_TIMEOUT")
        http_status: HTTP status code to return (default: 500)
        details: Optional dictionary with additional error context
    """

    error_code: str = "INTERNAL_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        if http_status:
            self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Client Errors (4xx)
# =============================================================================


class ValidationError(PipelineStudioException):
    """
    Raised when input validation fails.

    HTTP Status: 422 Unprocessable Entity

    Examples:
        - Missing host on a credential
        - Schema browsing before a database is selected
    """

    error_code = "VALIDATION_ERROR"
    http_status = 422


class BadRequestError(PipelineStudioException):
    """
    Raised when the request is malformed or invalid.

    HTTP Status: 400 Bad Request
    """

    error_code = "BAD_REQUEST"
    http_status = 400


class NotFoundError(PipelineStudioException):
    """
    Raised when a requested resource is not found.

    HTTP Status: 404 Not Found

    Examples:
        - Unknown connection id
        - Unknown pipeline graph or node
    """

    error_code = "NOT_FOUND"
    http_status = 404


class AuthenticationError(PipelineStudioException):
    """
    Raised when login or signup is rejected.

    HTTP Status: 401 Unauthorized
    """

    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


# =============================================================================
# Configuration Errors (5xx)
# =============================================================================


class ConfigurationError(PipelineStudioException):
    """
    Raised when configuration is invalid or missing.

    HTTP Status: 500 Internal Server Error
    """

    error_code = "CONFIGURATION_ERROR"
    http_status = 500


# =============================================================================
# Gateway Errors (5xx)
# =============================================================================


class GatewayError(PipelineStudioException):
    """
    Base class for database gateway errors.

    HTTP Status: 503 Service Unavailable
    """

    error_code = "GATEWAY_ERROR"
    http_status = 503


class GatewayConnectionError(GatewayError):
    """
    Raised when the gateway cannot be reached.

    HTTP Status: 503 Service Unavailable

    Examples:
        - DNS failure
        - Connection refused
        - Tunnel offline
    """

    error_code = "GATEWAY_CONNECTION_ERROR"
    http_status = 503


class GatewayTimeoutError(GatewayError):
    """
    Raised when a gateway call exceeds its timeout.

    HTTP Status: 504 Gateway Timeout
    """

    error_code = "GATEWAY_TIMEOUT"
    http_status = 504


class GatewayResponseError(GatewayError):
    """
    Raised when the gateway answers with an unusable response.

    HTTP Status: 502 Bad Gateway

    Examples:
        - Non-2xx status code
        - HTML page instead of JSON (tunnel interstitial)
        - JSON without status == "success"
    """

    error_code = "GATEWAY_RESPONSE_ERROR"
    http_status = 502


# =============================================================================
# Domain Errors
# =============================================================================


class TransformationError(PipelineStudioException):
    """
    Raised when a transformation plan cannot be applied.

    HTTP Status: 422 Unprocessable Entity

    Examples:
        - Operation references an unknown column
        - Cast to an unsupported type
    """

    error_code = "TRANSFORMATION_ERROR"
    http_status = 422


class InstructionParseError(TransformationError):
    """
    Raised when a free-text instruction cannot be interpreted.

    HTTP Status: 422 Unprocessable Entity
    """

    error_code = "INSTRUCTION_PARSE_ERROR"
    http_status = 422


class PipelineGraphError(PipelineStudioException):
    """
    Raised when a pipeline graph operation or import is invalid.

    HTTP Status: 422 Unprocessable Entity

    Examples:
        - Import document missing nodes/edges
        - Edge referencing a missing node in an import
    """

    error_code = "PIPELINE_GRAPH_ERROR"
    http_status = 422
