"""
Unit tests for the MercadoPago gateway client.

HOW: The client gets an httpx.AsyncClient backed by MockTransport, so
requests are inspected and answered in-process.
"""

import json

import httpx
import pytest
from decimal import Decimal

from renewal.core.config import Settings
from renewal.core.exceptions import ConfigurationError, PaymentGatewayError
from renewal.services.mercadopago_client import (
    MercadoPagoClient,
    PaymentIntent,
    PixPaymentRequest,
    build_gateway_client,
    identification_type,
)

TOKEN = "TEST-0000000000000000-000000-abcdef"

PAYMENT_BODY = {
    "id": 1319542111,
    "status": "pending",
    "status_detail": "pending_waiting_transfer",
    "external_reference": "7",
    "transaction_amount": 49.9,
    "point_of_interaction": {
        "transaction_data": {
            "qr_code": "00020126580014br.gov.bcb.pix",
            "qr_code_base64": "iVBORw0KGgo=",
            "ticket_url": "https://www.mercadopago.com.br/payments/1319542111/ticket",
        }
    },
}


def _request(document="12345678901") -> PixPaymentRequest:
    return PixPaymentRequest(
        amount=Decimal("49.90"),
        description="Fatura #7 - Plano Pro",
        payer_email="financeiro@acme.com.br",
        payer_first_name="Acme Ltda",
        payer_document=document,
        external_reference="7",
    )


def _client(handler) -> MercadoPagoClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MercadoPagoClient(access_token=TOKEN, http_client=http)


class TestIdentificationType:
    @pytest.mark.parametrize(
        "document,expected",
        [
            ("12345678901", "CPF"),
            ("12345678000190", "CNPJ"),
            ("1234567890", "CNPJ"),
            ("", "CNPJ"),
            (None, "CNPJ"),
        ],
    )
    def test_only_eleven_characters_is_cpf(self, document, expected):
        assert identification_type(document) == expected


class TestPixPaymentRequest:
    def test_payload(self):
        payload = _request().to_payload()

        assert payload == {
            "transaction_amount": 49.9,
            "description": "Fatura #7 - Plano Pro",
            "payment_method_id": "pix",
            "payer": {
                "email": "financeiro@acme.com.br",
                "first_name": "Acme Ltda",
                "identification": {"type": "CPF", "number": "12345678901"},
            },
            "external_reference": "7",
        }

    def test_missing_document_sent_as_empty_cnpj(self):
        identification = _request(document=None).to_payload()["payer"]["identification"]
        assert identification == {"type": "CNPJ", "number": ""}


class TestPaymentIntent:
    def test_from_api(self):
        intent = PaymentIntent.from_api(PAYMENT_BODY)

        assert intent.id == "1319542111"
        assert intent.status == "pending"
        assert intent.external_reference == "7"
        assert intent.transaction_amount == Decimal("49.9")
        assert intent.qr_code == "00020126580014br.gov.bcb.pix"
        assert intent.qr_code_base64 == "iVBORw0KGgo="
        assert intent.is_approved is False

    def test_from_api_without_point_of_interaction(self):
        intent = PaymentIntent.from_api({"id": 5, "status": "approved"})

        assert intent.qr_code is None
        assert intent.is_approved is True

    def test_from_api_requires_id(self):
        with pytest.raises(PaymentGatewayError):
            PaymentIntent.from_api({"status": "approved"})


@pytest.mark.asyncio
class TestMercadoPagoClient:
    async def test_create_pix_payment_sends_authenticated_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=PAYMENT_BODY)

        client = _client(handler)
        intent = await client.create_pix_payment(_request())

        assert intent.id == "1319542111"
        assert seen["method"] == "POST"
        assert seen["url"] == "https://api.mercadopago.com/v1/payments"
        assert seen["headers"]["Authorization"] == f"Bearer {TOKEN}"
        assert seen["headers"]["X-Idempotency-Key"]
        assert seen["body"]["payment_method_id"] == "pix"
        assert seen["body"]["external_reference"] == "7"

    async def test_each_creation_gets_a_new_idempotency_key(self):
        keys = []

        def handler(request: httpx.Request) -> httpx.Response:
            keys.append(request.headers["X-Idempotency-Key"])
            return httpx.Response(201, json=PAYMENT_BODY)

        client = _client(handler)
        await client.create_pix_payment(_request())
        await client.create_pix_payment(_request())

        assert len(set(keys)) == 2

    async def test_get_payment(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/v1/payments/1319542111"
            assert "X-Idempotency-Key" not in request.headers
            return httpx.Response(200, json={**PAYMENT_BODY, "status": "approved"})

        intent = await _client(handler).get_payment("1319542111")

        assert intent.is_approved is True

    async def test_gateway_error_passes_status_and_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={
                    "message": "payer.email must be a valid email",
                    "error": "bad_request",
                    "status": 400,
                    "cause": [],
                },
            )

        with pytest.raises(PaymentGatewayError) as exc_info:
            await _client(handler).create_pix_payment(_request())

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "payer.email must be a valid email"
        assert exc_info.value.context["gateway_message"] == "payer.email must be a valid email"

    async def test_non_json_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(PaymentGatewayError) as exc_info:
            await _client(handler).get_payment("1")

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad Gateway"

    async def test_timeout_becomes_gateway_error_500(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(PaymentGatewayError) as exc_info:
            await _client(handler).get_payment("1")

        assert exc_info.value.status_code == 500

    async def test_connection_error_becomes_gateway_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PaymentGatewayError) as exc_info:
            await _client(handler).create_pix_payment(_request())

        assert exc_info.value.status_code == 500

    async def test_invalid_json_success_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        with pytest.raises(PaymentGatewayError):
            await _client(handler).get_payment("1")

    async def test_aclose_leaves_injected_client_open(self):
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        client = MercadoPagoClient(access_token=TOKEN, http_client=http)

        await client.aclose()

        assert http.is_closed is False
        await http.aclose()

    async def test_aclose_closes_owned_client(self):
        client = MercadoPagoClient(access_token=TOKEN)

        await client.aclose()

        assert client._client.is_closed is True


class TestBuildGatewayClient:
    def _settings(self, **overrides) -> Settings:
        return Settings(
            JWT_SECRET="x",
            DATABASE_URL="sqlite+aiosqlite:///:memory:",
            **overrides,
        )

    def test_missing_token_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            build_gateway_client(self._settings(MERCADOPAGO_ACCESS_TOKEN=None))

    def test_empty_token_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            MercadoPagoClient(access_token="")

    @pytest.mark.asyncio
    async def test_builds_with_settings(self):
        client = build_gateway_client(
            self._settings(
                MERCADOPAGO_ACCESS_TOKEN=TOKEN,
                MERCADOPAGO_BASE_URL="https://sandbox.example/",
                MERCADOPAGO_TIMEOUT_SECONDS=2.5,
            )
        )

        assert client._base_url == "https://sandbox.example"
        assert client._timeout == 2.5
        await client.aclose()
