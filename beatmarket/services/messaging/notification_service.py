# beatmarket/services/messaging/notification_service.py
import logging
import asyncio
from dataclasses import dataclass
from typing import List
from functools import partial
from html import escape

import resend  # blocking SDK

from beatmarket.app.config import settings
from beatmarket.utils.formatting import format_price

logger = logging.getLogger(__name__)

if not settings.RESEND_API_KEY:
    logger.warning("RESEND_API_KEY not set, emails will fail until you set it.")

# configure SDK (global)
resend.api_key = settings.RESEND_API_KEY


@dataclass
class ConfirmationLine:
    beat_title: str
    license_type: str
    price: int


SUBJECTS = {
    "en": "Your order {order_number} is confirmed",
    "fr": "Votre commande {order_number} est confirmée",
}

BODIES = {
    "en": {
        "greeting": "Thank you for your purchase!",
        "order": "Order",
        "total": "Total",
        "cta": "Download your files",
        "guest_note": "This link is valid for 30 days and allows {max_downloads} downloads.",
    },
    "fr": {
        "greeting": "Merci pour votre achat !",
        "order": "Commande",
        "total": "Total",
        "cta": "Télécharger vos fichiers",
        "guest_note": "Ce lien est valable 30 jours et permet {max_downloads} téléchargements.",
    },
}


def render_order_confirmation(
    order_number: str,
    lines: List[ConfirmationLine],
    total_amount: int,
    download_url: str,
    locale: str,
    is_guest: bool = False,
) -> str:
    """Localized HTML body for the order confirmation email."""
    texts = BODIES.get(locale) or BODIES[settings.DEFAULT_LOCALE]
    currency = settings.STRIPE_CURRENCY
    rows = "".join(
        f"<tr><td>{escape(line.beat_title)}</td>"
        f"<td>{escape(str(line.license_type)).upper()}</td>"
        f"<td style=\"text-align:right\">{format_price(line.price, locale, currency)}</td></tr>"
        for line in lines
    )
    guest_note = ""
    if is_guest:
        guest_note = f"<p>{texts['guest_note'].format(max_downloads=settings.GUEST_MAX_DOWNLOADS)}</p>"

    return (
        f"<h2>{texts['greeting']}</h2>"
        f"<p>{texts['order']} <strong>{escape(order_number)}</strong></p>"
        f"<table>{rows}"
        f"<tr><td colspan=\"2\"><strong>{texts['total']}</strong></td>"
        f"<td style=\"text-align:right\"><strong>{format_price(total_amount, locale, currency)}</strong></td></tr>"
        f"</table>"
        f"<p><a href=\"{escape(download_url)}\">{texts['cta']}</a></p>"
        f"{guest_note}"
    )


class NotificationService:
    """Send notifications via Resend email."""

    @staticmethod
    async def _run_blocking(fn, *args, **kwargs):
        """Run a blocking function in the default threadpool so async event loop isn't blocked."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fn, *args, **kwargs))

    @staticmethod
    def _send_email_blocking(to: str, subject: str, html: str) -> dict:
        """Blocking call to the resend SDK. Returns SDK response dict or raises."""
        return resend.Emails.send({
            "from": settings.RESEND_FROM_EMAIL,
            "to": to,
            "subject": subject,
            "html": html,
        })

    @classmethod
    async def send_email(cls, to: str, subject: str, html: str, max_retries: int = 3) -> bool:
        """Send one email with retries. Returns True on success, False on permanent failure."""
        attempt = 0
        backoff_seconds = 1
        while attempt < max_retries:
            attempt += 1
            try:
                resp = await cls._run_blocking(cls._send_email_blocking, to, subject, html)
                logger.info(f"[EMAIL] Sent '{subject}' to {to} (attempt {attempt}) resp: {resp}")
                return True
            except Exception as exc:
                logger.exception(f"[EMAIL] Error sending '{subject}' to {to} (attempt {attempt}): {exc}")
                if attempt < max_retries:
                    await asyncio.sleep(backoff_seconds)
                    backoff_seconds *= 2
        logger.error(f"[EMAIL] Failed to send '{subject}' to {to} after {attempt} attempts.")
        return False

    @classmethod
    async def send_order_confirmation(
        cls,
        email: str,
        order_number: str,
        lines: List[ConfirmationLine],
        total_amount: int,
        download_url: str,
        locale: str = "en",
        is_guest: bool = False,
    ) -> bool:
        logger.info(f"[EMAIL] Sending order confirmation {order_number} to {email}")
        subject = (SUBJECTS.get(locale) or SUBJECTS[settings.DEFAULT_LOCALE]).format(order_number=order_number)
        html = render_order_confirmation(order_number, lines, total_amount, download_url, locale, is_guest)
        return await cls.send_email(email, subject, html)


def get_notification_service() -> NotificationService:
    return NotificationService()
