"""
Tests for PIX checkout, the payment webhook and email notifications.
Outbound HTTP is patched; nothing reaches Mercado Pago or Resend.
"""
from unittest import mock

import pytest
import requests

from storefront import notifications, payments, schemas
from storefront.errors import ConfigurationError, PaymentError, ValidationError

GOOD_TOKEN = "TEST-" + "1" * 60


def fake_response(status_code=200, json_data=None):
    resp = mock.Mock(spec=requests.Response)
    resp.status_code = status_code
    resp.json.return_value = json_data or {}
    resp.text = str(json_data)
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


PIX_RESPONSE = {
    "id": 123456789,
    "status": "pending",
    "point_of_interaction": {
        "transaction_data": {"qr_code": "00020126-pix-code", "qr_code_base64": "iVBORw0KGgo="}
    },
}


# -------------------- TOKEN CHECKS --------------------

@pytest.mark.parametrize(
    "token",
    [None, "", "YOUR_MERCADO_PAGO_ACCESS_TOKEN", "PROD-" + "1" * 60, "TEST-short"],
)
def test_bad_tokens_are_rejected(token):
    with pytest.raises(ConfigurationError):
        payments.check_access_token(token)


def test_production_token_accepted():
    token = "APP_USR-" + "9" * 60
    assert payments.check_access_token(token) == token


# -------------------- CHECKOUT --------------------

@pytest.mark.parametrize("amount", [None, 0, -10, "abc", "nan", "inf", float("-inf")])
def test_parse_amount_rejects_invalid(amount):
    with pytest.raises(ValidationError):
        payments.parse_amount(amount)


def test_build_pix_body_defaults():
    body = payments.build_pix_body(10.0, None, [])
    assert body["payment_method_id"] == "pix"
    assert body["payer"] == {"email": "test_user_123@test.com", "first_name": "Teste", "last_name": "Usuario"}


def test_build_pix_body_splits_name():
    payer = schemas.Payer(email="ana@example.com", nome="Ana Maria Souza", telefone="11999990000")
    items = [schemas.CartItem(title="Hoodie", size="M", color="preto", qty=2, price=119.9)]
    body = payments.build_pix_body(239.8, payer, items)
    assert body["payer"]["first_name"] == "Ana"
    assert body["payer"]["last_name"] == "Maria Souza"
    assert body["metadata"]["phone"] == "11999990000"
    assert body["metadata"]["items"][0]["qty"] == 2


def test_checkout_endpoint(client):
    with mock.patch("storefront.payments.requests.post", return_value=fake_response(201, PIX_RESPONSE)) as post:
        resp = client.post(
            "/api/checkout/pix",
            json={
                "amount": "239.80",
                "payer": {"email": "ana@example.com", "nome": "Ana Souza"},
                "items": [{"title": "Hoodie", "qty": 2, "price": 119.9}],
            },
        )
    assert resp.status_code == 200, resp.text
    assert resp.json() == {
        "id": 123456789,
        "status": "pending",
        "qr_code": "00020126-pix-code",
        "qr_base64": "iVBORw0KGgo=",
        "copy_and_paste": "00020126-pix-code",
        "amount": 239.8,
    }
    kwargs = post.call_args.kwargs
    assert kwargs["json"]["transaction_amount"] == 239.8
    assert kwargs["headers"]["Authorization"] == f"Bearer {GOOD_TOKEN}"
    assert kwargs["headers"]["X-Idempotency-Key"]
    assert kwargs["timeout"]


def test_checkout_rejects_invalid_amount(client):
    with mock.patch("storefront.payments.requests.post") as post:
        resp = client.post("/api/checkout/pix", json={"amount": 0})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid amount"}
    post.assert_not_called()


def test_checkout_without_token(client, settings):
    settings.mp_access_token = None
    resp = client.post("/api/checkout/pix", json={"amount": 10})
    assert resp.status_code == 500
    assert "MP_ACCESS_TOKEN" in resp.json()["error"]


def test_checkout_provider_unauthorized(client):
    with mock.patch("storefront.payments.requests.post", return_value=fake_response(401, {"message": "unauthorized"})):
        resp = client.post("/api/checkout/pix", json={"amount": 10})
    assert resp.status_code == 502
    assert "access token" in resp.json()["error"]


def test_checkout_provider_unreachable(client):
    with mock.patch("storefront.payments.requests.post", side_effect=requests.ConnectionError("boom")):
        resp = client.post("/api/checkout/pix", json={"amount": 10})
    assert resp.status_code == 502


def test_get_payment_errors_are_payment_errors():
    client = payments.MercadoPagoClient(GOOD_TOKEN)
    with mock.patch("storefront.payments.requests.get", return_value=fake_response(500, {"message": "down"})):
        with pytest.raises(PaymentError, match="down"):
            client.get_payment(1)


# -------------------- NOTIFICATIONS --------------------

@pytest.mark.parametrize(
    "amount,expected",
    [(0, "R$ 0,00"), (119.9, "R$ 119,90"), (1234.5, "R$ 1.234,50"), (1234567.891, "R$ 1.234.567,89")],
)
def test_format_brl(amount, expected):
    assert notifications.format_brl(amount) == expected


APPROVED = {
    "id": 55,
    "status": "approved",
    "transaction_amount": 239.8,
    "payer": {"email": "ana@example.com"},
    "metadata": {"name": "Ana", "phone": "11999990000"},
}


def test_notify_sends_customer_and_admin():
    sender = mock.Mock()
    assert notifications.notify_payment_approved(sender, APPROVED, "owner@loja.com") == 2
    recipients = [c.args[0] for c in sender.send.call_args_list]
    assert recipients == ["ana@example.com", "owner@loja.com"]
    assert "R$ 239,80" in sender.send.call_args_list[0].args[2]


def test_notify_skips_pending_payments():
    sender = mock.Mock()
    assert notifications.notify_payment_approved(sender, dict(APPROVED, status="pending"), "owner@loja.com") == 0
    sender.send.assert_not_called()


def test_notify_continues_after_failed_send():
    sender = mock.Mock()
    sender.send.side_effect = [requests.HTTPError("bounced"), {"id": "x"}]
    assert notifications.notify_payment_approved(sender, APPROVED, "owner@loja.com") == 1
    assert sender.send.call_count == 2


def test_email_sender_posts_to_resend():
    sender = notifications.EmailSender("re_key", "Loja <loja@example.com>")
    with mock.patch("storefront.notifications.requests.post", return_value=fake_response(200, {"id": "e1"})) as post:
        assert sender.send("ana@example.com", "Oi", "<p>Oi</p>") == {"id": "e1"}
    kwargs = post.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "Bearer re_key"
    assert kwargs["json"]["to"] == "ana@example.com"


# -------------------- WEBHOOK --------------------

def test_webhook_ignores_other_events(client):
    with mock.patch("storefront.payments.requests.get") as get:
        resp = client.post("/api/webhooks/mp", json={"type": "merchant_order", "data": {"id": "1"}})
    assert resp.status_code == 200
    get.assert_not_called()


def test_webhook_notifies_on_approved_payment(client, settings):
    settings.resend_api_key = "re_key"
    settings.email_from = "loja@example.com"
    settings.email_admin = "owner@loja.com"
    with mock.patch("storefront.payments.requests.get", return_value=fake_response(200, APPROVED)), \
            mock.patch("storefront.notifications.requests.post", return_value=fake_response(200, {"id": "e"})) as post:
        resp = client.post("/api/webhooks/mp", json={"type": "payment", "action": "payment.updated", "data": {"id": "55"}})
    assert resp.status_code == 200
    assert post.call_count == 2


def test_webhook_without_email_config_sends_nothing(client):
    with mock.patch("storefront.payments.requests.get", return_value=fake_response(200, APPROVED)), \
            mock.patch("storefront.notifications.requests.post") as post:
        resp = client.post("/api/webhooks/mp", json={"type": "payment", "data": {"id": "55"}})
    assert resp.status_code == 200
    post.assert_not_called()


def test_webhook_always_answers_200(client):
    with mock.patch("storefront.payments.requests.get", side_effect=requests.Timeout("slow")):
        resp = client.post("/api/webhooks/mp", json={"type": "payment", "data": {"id": "55"}})
    assert resp.status_code == 200


@pytest.mark.parametrize(
    "kwargs",
    [
        {"data": {"id": "55", "topic": "payment"}},
        {"params": {"type": "payment", "data.id": "55"}},
        {"json": {"type": "payment", "data": {"id": 55}}},
    ],
)
def test_webhook_reads_form_query_and_json_notifications(client, kwargs):
    with mock.patch("storefront.payments.requests.get", return_value=fake_response(200, APPROVED)) as get:
        resp = client.post("/api/webhooks/mp", **kwargs)
    assert resp.status_code == 200
    assert get.call_args.args[0].endswith("/v1/payments/55")


@pytest.mark.parametrize(
    "body",
    ["not json at all", "[1, 2, 3]", '"payment"', '{"type": "payment", "data": "55"}', '{"type": "payment", "data": [55]}'],
)
def test_webhook_answers_200_to_unreadable_bodies(client, body):
    with mock.patch("storefront.payments.requests.get") as get:
        resp = client.post("/api/webhooks/mp", content=body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    get.assert_not_called()


@pytest.mark.parametrize("json_data", [ValueError("Expecting value"), ["approved"]])
def test_webhook_answers_200_to_unreadable_provider_answer(client, settings, json_data):
    settings.resend_api_key = "re_key"
    settings.email_from = "loja@example.com"
    answer = fake_response(200)
    if isinstance(json_data, Exception):
        answer.json.side_effect = json_data
    else:
        answer.json.return_value = json_data
    with mock.patch("storefront.payments.requests.get", return_value=answer), \
            mock.patch("storefront.notifications.requests.post") as post:
        resp = client.post("/api/webhooks/mp", json={"type": "payment", "data": {"id": "55"}})
    assert resp.status_code == 200
    post.assert_not_called()


def test_webhook_notifies_even_with_odd_payer_fields(client, settings):
    settings.resend_api_key = "re_key"
    settings.email_from = "loja@example.com"
    settings.email_admin = "owner@loja.com"
    payment = dict(APPROVED, payer="ana@example.com", metadata=None)
    with mock.patch("storefront.payments.requests.get", return_value=fake_response(200, payment)), \
            mock.patch("storefront.notifications.requests.post", return_value=fake_response(200, {"id": "e"})) as post:
        resp = client.post("/api/webhooks/mp", json={"type": "payment", "data": {"id": "55"}})
    assert resp.status_code == 200
    assert post.call_count == 1
    assert post.call_args.kwargs["json"]["to"] == "owner@loja.com"


@pytest.mark.parametrize("payment_id", ["55/../../users", "55?x=1", "abc", "-5", "５５"])
def test_webhook_ignores_malformed_payment_ids(client, payment_id):
    with mock.patch("storefront.payments.requests.get") as get:
        resp = client.post("/api/webhooks/mp", json={"type": "payment", "data": {"id": payment_id}})
    assert resp.status_code == 200
    get.assert_not_called()


# -------------------- PAYMENT LOOKUP --------------------

@pytest.mark.parametrize(
    "value,expected",
    [(55, True), ("123456789", True), ("55/../users", False), ("", False), ("1.5", False), ("５５", False), (True, False)],
)
def test_is_payment_id(value, expected):
    assert payments.is_payment_id(value) is expected


def test_get_payment_rejects_malformed_id():
    client = payments.MercadoPagoClient(GOOD_TOKEN)
    with mock.patch("storefront.payments.requests.get") as get:
        with pytest.raises(ValidationError):
            client.get_payment("55/../../users")
    get.assert_not_called()


def test_get_payment_unreadable_answer():
    client = payments.MercadoPagoClient(GOOD_TOKEN)
    answer = fake_response(200)
    answer.json.side_effect = ValueError("Expecting value")
    with mock.patch("storefront.payments.requests.get", return_value=answer):
        with pytest.raises(PaymentError, match="unreadable"):
            client.get_payment(55)


def test_get_payment_non_object_answer():
    client = payments.MercadoPagoClient(GOOD_TOKEN)
    with mock.patch("storefront.payments.requests.get", return_value=fake_response(200, [1, 2])):
        with pytest.raises(PaymentError, match="unexpected"):
            client.get_payment(55)


def test_provider_error_with_html_body():
    client = payments.MercadoPagoClient(GOOD_TOKEN)
    answer = fake_response(502)
    answer.json.side_effect = ValueError("Expecting value")
    answer.text = "<html>Bad Gateway</html>"
    with mock.patch("storefront.payments.requests.get", return_value=answer):
        with pytest.raises(PaymentError, match="Bad Gateway"):
            client.get_payment(55)
