import hashlib
import hmac
import re
from unittest.mock import MagicMock, patch

import pytest
import requests

from marketplace.domain.errors import GatewayError, GatewayUnavailableError, TransactionNotFoundError
from marketplace.services.paystack_client import PaystackClient, verify_webhook_signature

SECRET = "sk_test_secret"


def _response(status_code=200, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body if body is not None else {}
    return resp


@pytest.fixture
def client():
    return PaystackClient(secret_key=SECRET, base_url="https://api.paystack.test/", timeout=5)


@patch("marketplace.services.paystack_client.requests.request")
def test_initialize_sends_minor_units_and_auth(mock_request, client):
    mock_request.return_value = _response(
        body={
            "status": True,
            "data": {
                "authorization_url": "https://checkout.paystack.com/abc",
                "access_code": "abc",
                "reference": "ORDER_1_1700000000000",
            },
        }
    )

    tx = client.initialize_transaction(
        "buyer@example.com", 1500000, reference="ORDER_1_1700000000000", metadata={"order_id": "1"}
    )

    assert tx.authorization_url == "https://checkout.paystack.com/abc"
    assert tx.reference == "ORDER_1_1700000000000"

    method, url = mock_request.call_args.args
    kwargs = mock_request.call_args.kwargs
    assert method == "POST"
    assert url == "https://api.paystack.test/transaction/initialize"
    assert kwargs["timeout"] == 5
    assert kwargs["headers"]["Authorization"] == f"Bearer {SECRET}"
    assert kwargs["json"]["amount"] == 1500000
    assert kwargs["json"]["metadata"] == {"order_id": "1"}


@patch("marketplace.services.paystack_client.requests.request")
def test_initialize_generates_reference_when_missing(mock_request, client):
    mock_request.return_value = _response(
        body={"status": True, "data": {"authorization_url": "u", "access_code": "c"}}
    )

    tx = client.initialize_transaction("buyer@example.com", 100)

    assert re.fullmatch(r"PAY_\d+_[a-z0-9]{9}", tx.reference)
    assert mock_request.call_args.kwargs["json"]["reference"] == tx.reference


@pytest.mark.parametrize("amount", [0, -100, 10.5, True])
def test_initialize_rejects_invalid_amount(client, amount):
    with patch("marketplace.services.paystack_client.requests.request") as mock_request:
        with pytest.raises(ValueError):
            client.initialize_transaction("buyer@example.com", amount)
        mock_request.assert_not_called()


@patch("marketplace.services.paystack_client.requests.request")
def test_verify_maps_response(mock_request, client):
    mock_request.return_value = _response(
        body={
            "status": True,
            "data": {
                "status": "success",
                "reference": "REF1",
                "amount": 1500000,
                "currency": "NGN",
                "customer": {"email": "buyer@example.com"},
                "metadata": {"cart_id": "cart-1"},
            },
        }
    )

    tx = client.verify_transaction("REF1")

    assert mock_request.call_args.args == ("GET", "https://api.paystack.test/transaction/verify/REF1")
    assert tx.status == "success"
    assert tx.amount_minor == 1500000
    assert tx.customer_email == "buyer@example.com"
    assert tx.metadata == {"cart_id": "cart-1"}


@patch("marketplace.services.paystack_client.requests.request")
def test_verify_tolerates_empty_string_metadata(mock_request, client):
    mock_request.return_value = _response(
        body={"status": True, "data": {"status": "abandoned", "reference": "REF1", "amount": 100, "metadata": ""}}
    )

    tx = client.verify_transaction("REF1")

    assert tx.status == "abandoned"
    assert tx.metadata == {}


@patch("marketplace.services.paystack_client.requests.request")
def test_verify_unknown_reference(mock_request, client):
    mock_request.return_value = _response(404, {"status": False, "message": "Transaction reference not found"})

    with pytest.raises(TransactionNotFoundError) as exc:
        client.verify_transaction("nope")

    assert exc.value.kind == "not_found"


@patch("marketplace.services.paystack_client.requests.request")
def test_server_error_is_unavailable(mock_request, client):
    mock_request.return_value = _response(502)

    with pytest.raises(GatewayUnavailableError):
        client.verify_transaction("REF1")


@patch("marketplace.services.paystack_client.requests.request")
def test_timeout_is_unavailable(mock_request, client):
    mock_request.side_effect = requests.Timeout("read timed out")

    with pytest.raises(GatewayUnavailableError):
        client.verify_transaction("REF1")


@patch("marketplace.services.paystack_client.requests.request")
def test_client_error_is_not_retryable(mock_request, client):
    mock_request.return_value = _response(400, {"status": False, "message": "Invalid key"})

    with pytest.raises(GatewayError) as exc:
        client.verify_transaction("REF1")

    assert not isinstance(exc.value, GatewayUnavailableError)
    assert exc.value.message == "Invalid key"


def test_missing_secret_key_fails_fast(monkeypatch):
    monkeypatch.setattr("marketplace.services.paystack_client.PAYSTACK_SECRET_KEY", "")

    with pytest.raises(RuntimeError):
        PaystackClient(secret_key="")


def test_webhook_signature():
    body = b'{"event":"charge.success","data":{"reference":"REF1"}}'
    good = hmac.new(SECRET.encode(), body, hashlib.sha512).hexdigest()

    assert verify_webhook_signature(body, good, SECRET) is True
    assert verify_webhook_signature(body, good.upper(), SECRET) is True
    assert verify_webhook_signature(body + b" ", good, SECRET) is False
    assert verify_webhook_signature(body, good, "other-secret") is False
    assert verify_webhook_signature(body, None, SECRET) is False
    assert verify_webhook_signature(body, "", SECRET) is False


@patch("marketplace.services.paystack_client.requests.request")
def test_verify_encodes_reference_in_path(mock_request, client):
    mock_request.return_value = _response(404, {"status": False, "message": "Transaction reference not found"})

    with pytest.raises(TransactionNotFoundError):
        client.verify_transaction("../../balance")

    _, url = mock_request.call_args.args
    assert url == "https://api.paystack.test/transaction/verify/..%2F..%2Fbalance"


@patch("marketplace.services.paystack_client.requests.request")
def test_non_object_data_is_gateway_error(mock_request, client):
    mock_request.return_value = _response(body={"status": True, "data": [{"balance": 100}]})

    with pytest.raises(GatewayError) as exc:
        client.verify_transaction("../../balance")

    assert exc.value.kind == "internal"
    assert not isinstance(exc.value, GatewayUnavailableError)
