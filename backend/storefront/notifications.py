import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


def format_brl(amount) -> str:
    """1234.5 -> 'R$ 1.234,50'"""
    text = f"{float(amount or 0):,.2f}"
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


class EmailSender:
    def __init__(self, api_key: str, sender: str, timeout: float = 10.0, api_url: str = RESEND_API_URL):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self.api_url = api_url

    def send(self, to: str, subject: str, html: str) -> Dict[str, Any]:
        resp = requests.post(
            self.api_url,
            json={"from": self.sender, "to": to, "subject": subject, "html": html},
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()


def customer_email(payment_id, amount, name: Optional[str]) -> str:
    return f"""
<h2>Pagamento Confirmado!</h2>
<p>Olá {name or 'Cliente'},</p>
<p>Seu pagamento de {format_brl(amount)} foi aprovado com sucesso!</p>
<p><strong>Número do pedido:</strong> {payment_id}</p>
<p>Em breve você receberá mais informações sobre o envio do seu pedido.</p>
<p>Obrigado pela compra!</p>
"""


def admin_email(payment_id, amount, status, payer_email, metadata: Dict[str, Any]) -> str:
    return f"""
<h2>Novo pagamento aprovado!</h2>
<p><strong>ID:</strong> {payment_id}</p>
<p><strong>Valor:</strong> {format_brl(amount)}</p>
<p><strong>Cliente:</strong> {metadata.get('name') or 'N/A'}</p>
<p><strong>E-mail:</strong> {payer_email}</p>
<p><strong>Telefone:</strong> {metadata.get('phone') or 'N/A'}</p>
<p><strong>Status:</strong> {status}</p>
"""


def notify_payment_approved(sender: EmailSender, payment: Dict[str, Any], admin_address: Optional[str] = None) -> int:
    """
    Send the customer confirmation and the admin notice for an approved
    payment. A failed send is logged and does not block the other one.
    Returns how many emails went out.
    """
    if payment.get("status") != "approved":
        return 0
    payment_id = payment.get("id")
    amount = payment.get("transaction_amount") or 0
    payer = payment.get("payer")
    payer_email = (payer.get("email") if isinstance(payer, dict) else None) or ""
    metadata = payment.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    sent = 0

    if payer_email:
        try:
            sender.send(
                payer_email,
                "✅ Pagamento Aprovado - Loja Street",
                customer_email(payment_id, amount, metadata.get("name")),
            )
            sent += 1
            logger.info("[Email] confirmation sent to %s", payer_email)
        except (requests.RequestException, ValueError):
            logger.exception("[Email] failed to send confirmation to %s", payer_email)

    if admin_address:
        try:
            sender.send(
                admin_address,
                f"💰 Novo Pagamento Aprovado - {format_brl(amount)}",
                admin_email(payment_id, amount, payment.get("status"), payer_email, metadata),
            )
            sent += 1
            logger.info("[Email] admin notified about payment %s", payment_id)
        except (requests.RequestException, ValueError):
            logger.exception("[Email] failed to notify admin about payment %s", payment_id)

    return sent
