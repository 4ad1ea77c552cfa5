"""
Error taxonomy of the renewal API.

WHAT: Each error a route can surface is an AppException subclass that
knows its HTTP status. Services raise them; exception_handlers.py turns
them into ``{error, message, status_code, details}``.

Keyword arguments passed at raise time become ``details`` (minus
anything that looks like a credential), so a 403 can say which invoice
was refused without the gateway token ever reaching a response body.
"""

from typing import Any, Dict, Optional

SENSITIVE_KEYS = frozenset({"password", "token", "secret", "key", "api_key", "access_token"})


class AppException(Exception):
    """Base class; ``status_code`` and ``default_message`` are per subclass."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Args:
            message: Text shown to the caller (defaults to the class message)
            status_code: Overrides the class status for this instance only
            **context: Extra details for the response body and the logs
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        details = {k: v for k, v in self.context.items() if k.lower() not in SENSITIVE_KEYS}
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": details or None,
        }


# ============================================================================
# 401 / 403
# ============================================================================


class AuthenticationError(AppException):
    """No user behind the request (missing, bad or expired token)."""

    status_code = 401
    default_message = "Usuário não autenticado"


class TokenExpiredError(AuthenticationError):
    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    default_message = "Token is invalid"


class AuthorizationError(AppException):
    status_code = 403
    default_message = "You do not have permission to perform this action"


class InvoiceAccessDenied(AuthorizationError):
    """
    The invoice exists but belongs to another company.

    Reported as 403 rather than 404, as the renewal screen expects.
    """

    default_message = "Fatura não pertence à empresa"


# ============================================================================
# 400 / 404
# ============================================================================


class ValidationError(AppException):
    status_code = 400
    default_message = "Validation failed"


class ResourceNotFoundError(AppException):
    status_code = 404
    default_message = "Resource not found"


class InvoiceNotFoundError(ResourceNotFoundError):
    default_message = "Fatura não encontrada"


class CompanyNotFoundError(ResourceNotFoundError):
    default_message = "Empresa não encontrada"


class PlanNotFoundError(ResourceNotFoundError):
    default_message = "Plano não encontrado"


# ============================================================================
# Gateway and internal failures
# ============================================================================


class PaymentGatewayError(AppException):
    """
    A MercadoPago call failed.

    Covers transport errors, timeouts, error responses and bodies that
    cannot be decoded. The status is 500 unless the gateway answered with
    its own error status, which is passed through. ``gateway_message`` in
    the context holds the gateway's own wording.
    """

    status_code = 500
    default_message = "Payment gateway error"


class InternalError(AppException):
    status_code = 500
    default_message = "Internal server error"


class ConfigurationError(InternalError):
    """Required configuration (e.g. the gateway token) is missing."""

    default_message = "Application is misconfigured"
