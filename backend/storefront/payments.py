"""
PIX checkout through the Mercado Pago payments API.

Two calls are made: create a PIX payment (returns the QR code) and fetch a
payment by id (used by the webhook). There is no retry here; each create
carries an idempotency key so the provider can deduplicate.
"""
import logging
import math
import uuid
from typing import Any, Dict, Optional

import requests

from . import schemas
from .errors import ConfigurationError, PaymentError, ValidationError

logger = logging.getLogger(__name__)

MP_API_URL = "https://api.mercadopago.com"
PLACEHOLDER_TOKEN = "YOUR_MERCADO_PAGO_ACCESS_TOKEN"
MIN_TOKEN_LENGTH = 50
DEFAULT_PAYER_EMAIL = "test_user_123@test.com"
ORDER_DESCRIPTION = "Pedido Loja Street"


def check_access_token(token: Optional[str]) -> str:
    if not token or token == PLACEHOLDER_TOKEN:
        raise ConfigurationError("Mercado Pago access token is not configured (MP_ACCESS_TOKEN)")
    if not (token.startswith("TEST-") or token.startswith("APP_USR-")):
        raise ConfigurationError(
            "Mercado Pago access token is invalid: it must start with TEST- (sandbox) or APP_USR- (production)"
        )
    if len(token) < MIN_TOKEN_LENGTH:
        raise ConfigurationError("Mercado Pago access token looks truncated")
    return token


def is_payment_id(value) -> bool:
    # Mercado Pago payment ids are plain integers
    if isinstance(value, bool):
        return False
    text = str(value)
    return text.isascii() and text.isdigit()


def token_preview(token: str) -> str:
    return token[:10] + "..."


class MercadoPagoClient:
    def __init__(self, access_token: Optional[str], timeout: float = 15.0, base_url: str = MP_API_URL):
        self.access_token = check_access_token(access_token)
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")

    def _headers(self, idempotency_key: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        return headers

    def _json(self, resp: requests.Response, action: str) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise PaymentError(f"Mercado Pago sent an unreadable answer while trying to {action}") from e
        if not isinstance(data, dict):
            raise PaymentError(f"Mercado Pago sent an unexpected answer while trying to {action}")
        return data

    def _handle(self, resp: requests.Response, action: str) -> Dict[str, Any]:
        if resp.status_code == 401:
            raise PaymentError(
                f"Mercado Pago rejected the access token while trying to {action}. "
                "Check that it is correct, not expired, and allowed to create PIX payments."
            )
        if resp.status_code == 404:
            raise PaymentError(f"Mercado Pago endpoint not found while trying to {action}")
        if resp.status_code >= 400:
            try:
                message = self._json(resp, action).get("message") or resp.text
            except PaymentError:
                message = resp.text
            raise PaymentError(f"Failed to {action}: {message}")
        return self._json(resp, action)

    def create_pix_payment(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = requests.post(
                f"{self.base_url}/v1/payments",
                json=body,
                headers=self._headers(uuid.uuid4().hex),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise PaymentError(f"Failed to create PIX payment: {e}") from e
        return self._handle(resp, "create PIX payment")

    def get_payment(self, payment_id) -> Dict[str, Any]:
        if not is_payment_id(payment_id):
            raise ValidationError("Invalid payment id")
        try:
            resp = requests.get(
                f"{self.base_url}/v1/payments/{payment_id}",
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise PaymentError(f"Failed to fetch payment {payment_id}: {e}") from e
        return self._handle(resp, f"fetch payment {payment_id}")


def parse_amount(raw) -> float:
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        amount = 0.0
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("Invalid amount")
    return amount


def build_pix_body(amount: float, payer: Optional[schemas.Payer], items) -> Dict[str, Any]:
    payer = payer or schemas.Payer()
    parts = (payer.name or "").split()
    return {
        "transaction_amount": amount,
        "description": ORDER_DESCRIPTION,
        "payment_method_id": "pix",
        "payer": {
            "email": payer.email or DEFAULT_PAYER_EMAIL,
            "first_name": parts[0] if parts else "Teste",
            "last_name": " ".join(parts[1:]) or "Usuario",
        },
        "metadata": {
            "name": payer.name or "",
            "phone": payer.phone or "",
            "items": [
                {"title": i.title, "size": i.size, "color": i.color, "qty": i.qty, "price": i.price}
                for i in items or []
            ],
        },
    }


def create_pix_checkout(client: MercadoPagoClient, checkout: schemas.PixCheckoutIn) -> schemas.PixCheckoutOut:
    amount = parse_amount(checkout.amount)
    body = build_pix_body(amount, checkout.payer, checkout.items)
    logger.info("[PIX] creating payment of R$ %.2f (token %s)", amount, token_preview(client.access_token))

    resp = client.create_pix_payment(body)
    tx = (resp.get("point_of_interaction") or {}).get("transaction_data") or {}
    logger.info("[PIX] payment %s created, status=%s, qr=%s", resp.get("id"), resp.get("status"), bool(tx.get("qr_code_base64")))
    return schemas.PixCheckoutOut(
        id=resp.get("id"),
        status=resp.get("status"),
        qr_code=tx.get("qr_code"),
        qr_base64=tx.get("qr_code_base64"),
        copy_and_paste=tx.get("qr_code"),
        amount=amount,
    )
