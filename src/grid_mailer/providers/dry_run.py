"""Delivery client that serializes messages without sending them."""

import json
import logging
from typing import Optional

from ..models import MessageModel, SendResult
from .base import BaseDeliveryClient
from .sendgrid import build_mail

logger = logging.getLogger(__name__)


class DryRunDeliveryClient(BaseDeliveryClient):
    """Builds the SendGrid request body and logs it instead of sending."""

    def __init__(self):
        self.sent = []

    async def send(
        self, message: MessageModel, correlation_id: Optional[str] = None
    ) -> SendResult:
        payload = build_mail(message).get()
        self.sent.append(payload)
        logger.info(f"Dry run, request body not sent: {json.dumps(payload, default=str)}")
        return SendResult(
            status_code=202,
            message_id=f"dry-run-{correlation_id or 'test'}",
            correlation_id=correlation_id,
        )
