"""
Order notification sender.

Turns a finalized OrderSummary into an email through the EmailJS REST API.
The sender reports success as a boolean; the caller decides what a failed
send means for the session being submitted.
"""

import datetime
import logging
from typing import Optional, Protocol

import httpx

from ...core.config import EMAILJS_API_URL, ORDER_EMAIL_RECIPIENT
from ..counting.schemas import OrderSummary
from .schemas import EmailSettings

logger = logging.getLogger(__name__)


class NotificationSender(Protocol):
    async def send(self, summary: OrderSummary) -> bool: ...

    async def send_test_email(self) -> bool: ...


def format_order_date(moment: datetime.datetime) -> str:
    """Human date used in the email body, e.g. 'Oct 18, 2026, 9:05 AM'."""
    hour = moment.hour % 12 or 12
    return f"{moment.strftime('%b')} {moment.day}, {moment.year}, {hour}:{moment.minute:02d} {moment.strftime('%p')}"


def format_items_list(summary: OrderSummary) -> str:
    blocks = []
    for line in summary.items:
        if len(line.suppliers) > 1:
            suppliers_text = f"Available from: {', '.join(line.suppliers)}"
        else:
            suppliers_text = f"Supplier: {line.suppliers[0] if line.suppliers else 'Unknown Supplier'}"
        if line.quantity is not None:
            blocks.append(f"• {line.product_name} (Qty: {line.quantity})\n  {suppliers_text}")
        else:
            blocks.append(f"• {line.product_name}\n  {suppliers_text}")
    return "\n\n".join(blocks)


class EmailJSSender:
    def __init__(
        self,
        settings: EmailSettings,
        recipient: str = ORDER_EMAIL_RECIPIENT,
        api_url: str = EMAILJS_API_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        self.settings = settings
        self.recipient = recipient
        self.api_url = api_url
        self._client = client
        self._timeout = timeout

    def _payload(self, template_params: dict) -> dict:
        return {
            "service_id": self.settings.service_id,
            "template_id": self.settings.template_id,
            "user_id": self.settings.public_key,
            "template_params": template_params,
        }

    async def _post(self, template_params: dict) -> bool:
        if not self.settings.is_complete:
            logger.error("EmailJS credentials incomplete; not sending")
            return False
        try:
            if self._client is not None:
                response = await self._client.post(self.api_url, json=self._payload(template_params))
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self.api_url, json=self._payload(template_params))
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send email: {e}", exc_info=True)
            return False
        logger.info("Email sent to %s (%s)", self.recipient, template_params.get("location_name"))
        return True

    async def send(self, summary: OrderSummary) -> bool:
        return await self._post(
            {
                "to_email": self.recipient,
                "location_name": summary.location_name,
                "user_name": summary.user_name,
                "order_date": format_order_date(summary.order_date),
                "items_list": format_items_list(summary),
                "total_items": len(summary.items),
            }
        )

    async def send_test_email(self) -> bool:
        return await self._post(
            {
                "to_email": self.recipient,
                "location_name": "Test Location",
                "user_name": "Test User",
                "order_date": format_order_date(datetime.datetime.now()),
                "items_list": "Test Product 1 (Qty: 5) - Test Supplier\nTest Product 2 - Test Supplier",
                "total_items": 2,
            }
        )
