"""
Service exceptions for flowtask.

All errors raised by the client and service layers derive from ServiceError,
so the HTTP and MCP surfaces can convert them uniformly.
"""
from typing import Optional, Dict, Any

from fastapi import HTTPException


class ServiceError(Exception):
    """Base class for all service-level errors."""

    def __init__(
        self,
        message: str,
        request_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.message = message
        self.request_id = request_id
        self.context = context or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for logging and error responses."""
        result: Dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
        }
        if self.request_id:
            result["request_id"] = self.request_id
        if self.context:
            result["context"] = self.context
        if self.original_error is not None:
            result["original_error"] = {
                "type": type(self.original_error).__name__,
                "message": str(self.original_error),
            }
        return result


class ConfigurationError(ServiceError):
    """Raised when settings or credentials are missing or invalid."""


class TransportError(ServiceError):
    """Non-2xx response, timeout, or connection failure talking to Flow."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        **kwargs
    ):
        context = dict(kwargs.pop("context", None) or {})
        if status_code is not None:
            context["status_code"] = status_code
        if endpoint is not None:
            context["endpoint"] = endpoint
        super().__init__(message, context=context, **kwargs)
        self.status_code = status_code
        self.endpoint = endpoint


class RemoteError(ServiceError):
    """The response envelope reported a logical failure."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        endpoint: Optional[str] = None,
        **kwargs
    ):
        context = dict(kwargs.pop("context", None) or {})
        if code:
            context["code"] = code
        if endpoint is not None:
            context["endpoint"] = endpoint
        super().__init__(message, context=context, **kwargs)
        self.code = code
        self.endpoint = endpoint


class ResponseFormatError(RemoteError):
    """The response body could not be interpreted."""


class NotFoundError(ServiceError):
    """
    A requested resource does not exist.

    The pipeline reports absence by returning None; this exception is only
    raised at the HTTP and MCP surfaces.
    """

    def __init__(
        self,
        resource_type: str,
        resource_id: Any,
        message: Optional[str] = None,
        **kwargs
    ):
        context = dict(kwargs.pop("context", None) or {})
        context["resource_type"] = resource_type
        context["resource_id"] = str(resource_id)
        super().__init__(
            message or f"{resource_type} '{resource_id}' not found",
            context=context,
            **kwargs
        )
        self.resource_type = resource_type
        self.resource_id = str(resource_id)


class TaskNotFoundError(NotFoundError):
    """No task matches the given task number."""

    def __init__(self, task_number: str, **kwargs):
        super().__init__("Task", task_number, **kwargs)


def to_http_exception(exc: ServiceError) -> HTTPException:
    """
    Convert a ServiceError into an HTTPException.

    Args:
        exc: Service error to convert

    Returns:
        HTTPException with a status code matching the error category
    """
    if isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, (TransportError, RemoteError)):
        status_code = 502
    else:
        status_code = 500
    return HTTPException(status_code=status_code, detail=exc.to_dict())


def to_mcp_error_response(exc: ServiceError) -> Dict[str, Any]:
    """
    Convert a ServiceError into a JSON-RPC error object.

    Args:
        exc: Service error to convert

    Returns:
        Dictionary suitable for the "error" member of a JSON-RPC response
    """
    if isinstance(exc, NotFoundError):
        code = -32004
    else:
        code = -32603
    return {
        "code": code,
        "message": exc.message,
        "data": exc.to_dict(),
    }
