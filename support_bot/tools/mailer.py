"""Transactional email through SendGrid.

Two templates are supported: asking the internal mailbox for a
delivery proof, and sending a customer their invoice PDF.
"""

import base64
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import (
    Attachment,
    Disposition,
    FileContent,
    FileName,
    FileType,
    From,
    Mail,
)

from support_bot.config import EmailConfig, settings
from support_bot.tools.errors import EmailError

logger = logging.getLogger(__name__)

_WRAPPER = (
    '<div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; '
    'background-color: #f9f9f9; padding: 20px; border: 1px solid #ddd; '
    'border-radius: 8px; max-width: 600px; margin: 20px auto;">{body}'
    '<p style="font-size: 16px; color: #555;">Saludos cordiales,<br/>'
    "<strong>El equipo de {store}</strong></p></div>"
)


class EmailKind(str, Enum):
    DELIVERY_PROOF_REQUEST = "delivery_proof_request"
    INVOICE = "invoice"


@dataclass
class EmailAttachment:
    filename: str
    content: bytes
    mime_type: str = "application/pdf"


def render_template(kind: EmailKind, order_number: str, customer_email: str = "") -> tuple[str, str, str]:
    """Return ``(subject, text_body, html_body)`` for a template kind."""
    store = settings.store.name
    if kind == EmailKind.DELIVERY_PROOF_REQUEST:
        text = (
            f"¿Puedes enviar el comprobante de entrega del pedido {order_number} "
            f"al siguiente correo: {customer_email}?"
        )
        subject = "Comprobante de entrega de pedido"
    else:
        text = (
            f"Adjuntamos la factura de tu pedido {order_number}! "
            f"Muchas gracias por confiar en {store}!"
        )
        subject = f"Factura de tu pedido {order_number}"
    html = _WRAPPER.format(
        body=f'<p style="font-size: 16px; color: #555;"><strong>Hola!</strong></p>'
             f'<p style="font-size: 16px; color: #555;">{text}</p>',
        store=store,
    )
    return subject, text, html


class SendGridMailer:

    def __init__(self, config: Optional[EmailConfig] = None, client: Any = None) -> None:
        self.config = config or settings.email
        self._client = client or SendGridAPIClient(api_key=self.config.api_key.strip())

    def send(
        self,
        to: str,
        kind: EmailKind,
        order_number: str,
        customer_email: str = "",
        attachment: Optional[EmailAttachment] = None,
    ) -> None:
        """Send one templated email.

        Raises:
            EmailError: If SendGrid rejects or cannot receive the message.
        """
        subject, text, html = render_template(kind, order_number, customer_email)
        message = Mail(
            from_email=From(self.config.from_email, self.config.from_name),
            to_emails=to,
            subject=subject,
            plain_text_content=text,
            html_content=html,
        )
        if attachment is not None:
            message.attachment = Attachment(
                FileContent(base64.b64encode(attachment.content).decode("ascii")),
                FileName(attachment.filename),
                FileType(attachment.mime_type),
                Disposition("attachment"),
            )

        try:
            response = self._client.send(message)
        except Exception as exc:
            # python_http_client raises its own HTTPError hierarchy
            logger.error("Email '%s' to %s failed: %s", kind.value, to, type(exc).__name__)
            raise EmailError(f"Email could not be sent: {kind.value}") from exc

        if response.status_code >= 300:
            logger.error("Email '%s' to %s rejected with %s", kind.value, to, response.status_code)
            raise EmailError(f"Email rejected with status {response.status_code}")
        logger.info("Email '%s' sent to %s for order %s", kind.value, to, order_number)
