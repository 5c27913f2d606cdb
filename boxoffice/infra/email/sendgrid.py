"""
SendGrid email sender

Sends order emails through the SendGrid v3 API. Message layout lives in a
SendGrid dynamic template; this module only hands over the template data.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from boxoffice.features.fulfillment.domain import (
    NotificationConfigError,
    TransientDeliveryError,
    build_order_url,
)
from boxoffice.models import Order, Performance, Ticket, User, Venue

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class EmailSender:
    """Sends ticket emails via SendGrid"""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        template_id: str,
        api_url: str = "https://api.sendgrid.com/v3/mail/send",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.template_id = template_id
        self.api_url = api_url
        self._http_client = http_client

    def _check_configured(self) -> None:
        if not self.api_key:
            raise NotificationConfigError("SENDGRID_API_KEY is not set")
        if not self.from_email:
            raise NotificationConfigError("SENDGRID_FROM_EMAIL or FROM_EMAIL is not set")
        if not self.template_id:
            raise NotificationConfigError("SENDGRID_TEMPLATE_ID is not set")

    def build_payload(
        self,
        to: str,
        subject: str,
        order: Order,
        tickets: List[Ticket],
        performance: Optional[Performance],
        venue: Optional[Venue],
        seller: Optional[User],
    ) -> Dict[str, Any]:
        template_data = {
            "subject": subject,
            "order": order.model_dump(mode="json", exclude={"view_token"}),
            "order_url": _order_url(order),
            "tickets": [ticket.model_dump(mode="json") for ticket in tickets],
            "performance": performance.model_dump(mode="json") if performance else None,
            "venue": venue.model_dump(mode="json") if venue else None,
            "seller": {
                "name": seller.display_name,
                "email": seller.email,
            } if seller else None,
        }

        payload: Dict[str, Any] = {
            "personalizations": [{"to": [{"email": to}], "dynamic_template_data": template_data}],
            "from": {"email": self.from_email},
            "template_id": self.template_id,
        }
        if seller and seller.email:
            payload["reply_to"] = {"email": seller.email, "name": seller.display_name or seller.email}
        return payload

    async def send(
        self,
        to: str,
        subject: str,
        order: Order,
        tickets: List[Ticket],
        performance: Optional[Performance] = None,
        venue: Optional[Venue] = None,
        seller: Optional[User] = None,
    ) -> None:
        """
        Send the order summary email

        Raises:
            NotificationConfigError: sender is not configured
            TransientDeliveryError: SendGrid rejected the request or was unreachable
        """
        self._check_configured()
        payload = self.build_payload(to, subject, order, tickets, performance, venue, seller)
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.api_url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                    response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise TransientDeliveryError(f"SendGrid request failed: {e}") from e

        if response.status_code >= 300:
            raise TransientDeliveryError(
                f"SendGrid returned {response.status_code}: {response.text[:500]}"
            )

        logger.info(f"EmailSender: Sent '{subject}' to {to} for order {order.id}")


def _order_url(order: Order) -> Optional[str]:
    if not order.base_url or not order.view_token:
        return None
    return build_order_url(order.base_url, order.id, order.view_token)
