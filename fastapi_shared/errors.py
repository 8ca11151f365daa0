"""Error kinds and the API exception used for structured error responses."""

from enum import Enum

from fastapi.responses import JSONResponse


class ErrorKind(str, Enum):
    """Machine-readable error kinds."""

    # Client errors (4xx)
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    ANONYMOUS_UNAUTHORIZED = "anonymous_unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    CONFLICT = "conflict"

    # Server errors (5xx)
    INTERNAL_SERVER_ERROR = "internal_server_error"
    DATA = "data"
    SERVICE_UNAVAILABLE = "service_unavailable"


# Status code, default client-facing message and type name per kind
ERROR_CATALOG: dict[ErrorKind, dict] = {
    ErrorKind.BAD_REQUEST: {
        "status_code": 400,
        "message": "Invalid Request",
        "type": "BadRequestException",
    },
    ErrorKind.UNAUTHORIZED: {
        "status_code": 401,
        "message": "Unauthorized",
        "type": "UnauthorizedException",
    },
    ErrorKind.ANONYMOUS_UNAUTHORIZED: {
        "status_code": 401,
        "message": "Unauthorized",
        "type": "AnonymousUnauthorizedException",
    },
    ErrorKind.FORBIDDEN: {
        "status_code": 403,
        "message": "Forbidden",
        "type": "ForbiddenException",
    },
    ErrorKind.NOT_FOUND: {
        "status_code": 404,
        "message": "Not Found",
        "type": "NotFoundException",
    },
    ErrorKind.METHOD_NOT_ALLOWED: {
        "status_code": 405,
        "message": "Method Not Allowed",
        "type": "MethodNotAllowedException",
    },
    ErrorKind.CONFLICT: {
        "status_code": 409,
        "message": "Conflict",
        "type": "ConflictException",
    },
    ErrorKind.INTERNAL_SERVER_ERROR: {
        "status_code": 500,
        "message": "Internal Server Error",
        "type": "InternalServerErrorException",
    },
    ErrorKind.DATA: {
        "status_code": 500,
        "message": "Internal Server Error",
        "type": "DataException",
    },
    ErrorKind.SERVICE_UNAVAILABLE: {
        "status_code": 503,
        "message": "Service Unavailable",
        "type": "ServiceUnavailableException",
    },
}


class ApiException(Exception):
    """
    A client-facing failure tagged with its ErrorKind.

    Carries two messages: ``message`` is internal and only reaches the client
    when debug output is explicitly enabled, ``response_message`` is always
    safe to send.

    Example:
        raise ApiException.not_found(
            f"Place {place_id} missing from index",
            response_message="Place not found",
        )
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        response_message: str | None = None,
    ):
        entry = ERROR_CATALOG[kind]
        self.kind = kind
        self.message = message
        self.response_message = response_message or entry["message"]
        self.status_code: int = entry["status_code"]
        super().__init__(message)

    @property
    def error_type(self) -> str:
        """Type name used in logs, e.g. ``NotFoundException``."""
        return ERROR_CATALOG[self.kind]["type"]

    def to_json(self) -> dict:
        """Full representation including the internal message, for logs."""
        return {
            "status_code": self.status_code,
            "error": self.response_message,
            "debug_message": self.message,
        }

    def to_response(self, debug: bool = False) -> JSONResponse:
        """Convert to a JSON response; the internal message is added only in debug."""
        body = {"status": self.status_code, "error": self.response_message}
        if debug:
            body["debug_message"] = self.message
        return JSONResponse(status_code=self.status_code, content=body)

    def __str__(self) -> str:
        return f"{self.message} [{self.status_code}] {self.response_message}"

    def __repr__(self) -> str:
        return f"ApiException({self.kind.name}, {self.message!r})"

    # === Factories ===

    @classmethod
    def bad_request(cls, message: str, response_message: str | None = None) -> "ApiException":
        return cls(ErrorKind.BAD_REQUEST, message, response_message)

    @classmethod
    def unauthorized(cls, message: str, response_message: str | None = None) -> "ApiException":
        return cls(ErrorKind.UNAUTHORIZED, message, response_message)

    @classmethod
    def anonymous_unauthorized(
        cls, message: str, response_message: str | None = None
    ) -> "ApiException":
        return cls(ErrorKind.ANONYMOUS_UNAUTHORIZED, message, response_message)

    @classmethod
    def forbidden(cls, message: str, response_message: str | None = None) -> "ApiException":
        """For authenticated callers lacking permission; use unauthorized for bad credentials."""
        return cls(ErrorKind.FORBIDDEN, message, response_message)

    @classmethod
    def not_found(cls, message: str, response_message: str | None = None) -> "ApiException":
        return cls(ErrorKind.NOT_FOUND, message, response_message)

    @classmethod
    def method_not_allowed(
        cls, message: str, response_message: str | None = None
    ) -> "ApiException":
        return cls(ErrorKind.METHOD_NOT_ALLOWED, message, response_message)

    @classmethod
    def conflict(cls, message: str, response_message: str | None = None) -> "ApiException":
        return cls(ErrorKind.CONFLICT, message, response_message)

    @classmethod
    def internal_server_error(
        cls, message: str, response_message: str | None = None
    ) -> "ApiException":
        return cls(ErrorKind.INTERNAL_SERVER_ERROR, message, response_message)

    @classmethod
    def data(cls, message: str, response_message: str | None = None) -> "ApiException":
        """Stored or upstream data is inconsistent."""
        return cls(ErrorKind.DATA, message, response_message)

    @classmethod
    def service_unavailable(
        cls, message: str, response_message: str | None = None
    ) -> "ApiException":
        return cls(ErrorKind.SERVICE_UNAVAILABLE, message, response_message)
