"""
Tests for the exception hierarchy and its HTTP mapping.

Every error surfaced by the renewal endpoints carries a status code and a
``message``; context never leaks credentials.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from renewal.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    CompanyNotFoundError,
    ConfigurationError,
    InvoiceAccessDenied,
    InvoiceNotFoundError,
    PaymentGatewayError,
    PlanNotFoundError,
    ResourceNotFoundError,
    TokenExpiredError,
    ValidationError,
)
from renewal.core.exception_handlers import app_exception_handler


class TestAppException:
    def test_default_message(self):
        exc = AppException()
        assert exc.message == "An unexpected error occurred"
        assert exc.status_code == 500

    def test_custom_status_code(self):
        exc = AppException(message="Teapot", status_code=418)
        assert exc.status_code == 418

    def test_to_dict_shape(self):
        exc = ValidationError(message="invoiceId é obrigatório", field="invoiceId")

        assert exc.to_dict() == {
            "error": "ValidationError",
            "message": "invoiceId é obrigatório",
            "status_code": 400,
            "details": {"field": "invoiceId"},
        }

    def test_to_dict_filters_sensitive_context(self):
        """Gateway credentials never reach a response body."""
        exc = PaymentGatewayError(
            message="Erro",
            access_token="APP_USR-secret",
            token="abc",
            payment_id="123",
        )

        details = exc.to_dict()["details"]
        assert details == {"payment_id": "123"}

    def test_to_dict_without_context(self):
        assert InvoiceNotFoundError().to_dict()["details"] is None


class TestStatusCodes:
    @pytest.mark.parametrize(
        "exc_class,status_code",
        [
            (AuthenticationError, 401),
            (TokenExpiredError, 401),
            (AuthorizationError, 403),
            (InvoiceAccessDenied, 403),
            (ValidationError, 400),
            (InvoiceNotFoundError, 404),
            (CompanyNotFoundError, 404),
            (PlanNotFoundError, 404),
            (PaymentGatewayError, 500),
            (ConfigurationError, 500),
        ],
    )
    def test_default_status(self, exc_class, status_code):
        assert exc_class().status_code == status_code

    def test_not_found_messages_are_specific(self):
        assert InvoiceNotFoundError().message == "Fatura não encontrada"
        assert CompanyNotFoundError().message == "Empresa não encontrada"
        assert PlanNotFoundError().message == "Plano não encontrado"
        assert issubclass(PlanNotFoundError, ResourceNotFoundError)

    def test_gateway_status_passthrough(self):
        exc = PaymentGatewayError(message="Erro ao gerar QR code PIX: bad payer", status_code=400)
        assert exc.status_code == 400
        # Class default is untouched
        assert PaymentGatewayError().status_code == 500


class TestExceptionHandler:
    def _app(self, exc: AppException) -> TestClient:
        app = FastAPI()
        app.add_exception_handler(AppException, app_exception_handler)

        @app.get("/boom")
        async def boom():
            raise exc

        return TestClient(app)

    def test_handler_renders_status_and_message(self):
        client = self._app(InvoiceAccessDenied(invoice_id=9))

        response = client.get("/boom")

        assert response.status_code == 403
        body = response.json()
        assert body["message"] == "Fatura não pertence à empresa"
        assert body["error"] == "InvoiceAccessDenied"
        assert body["details"] == {"invoice_id": 9}

    def test_handler_renders_gateway_errors(self):
        client = self._app(PaymentGatewayError(message="Erro ao verificar status do pagamento"))

        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json()["message"] == "Erro ao verificar status do pagamento"
