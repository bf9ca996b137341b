"""Composes send requests into messages and hands them to a delivery client."""

import logging
import uuid
from typing import Optional

from .audit import AuditWriter
from .builder import MessageBuilder
from .config import Settings
from .exceptions import ConfigurationMissingError
from .models import EmailRequest, MessageModel, SendResult
from .providers.base import BaseDeliveryClient

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Test email"


class EmailSender:
    """High-level sender that applies configured defaults and delivers."""

    def __init__(
        self,
        settings: Settings,
        client: BaseDeliveryClient,
        audit: Optional[AuditWriter] = None,
    ):
        """Initialize the email sender.

        Args:
            settings: Loaded settings (sender identity, default recipient)
            client: Delivery client
            audit: Writer for audit copies; none are written when omitted
        """
        self.settings = settings
        self.client = client
        self.audit = audit

    def compose(self, request: EmailRequest) -> MessageModel:
        """Build a message from a request and the configured defaults.

        Args:
            request: Send request

        Returns:
            Validated message

        Raises:
            ConfigurationMissingError: If the sender or a needed default recipient is not configured
            ValidationFailedError: If the resulting message is incomplete
        """
        if not self.settings.default_email_from:
            raise ConfigurationMissingError("DefaultEmailFrom")

        recipients = [r for r in request.to if r and r.strip()]
        if not recipients:
            if not self.settings.default_email_to:
                raise ConfigurationMissingError("DefaultEmailTo")
            recipients = [self.settings.default_email_to]

        builder = (
            MessageBuilder.create()
            .to(recipients)
            .from_(self.settings.default_email_from, self.settings.default_display_name)
            .subject(request.subject)
            .html_body(request.html_body or "")
        )
        if request.text_body:
            builder.text_body(request.text_body)
        if request.cc:
            builder.cc(request.cc)
        if request.bcc:
            builder.bcc(request.bcc)
        if request.attachments:
            builder.attach_files(request.attachments)
        if request.categories:
            builder.set_categories(request.categories)
        if request.hide_recipients:
            builder.hide_recipients()

        return builder.build()

    async def send_email(self, request: EmailRequest) -> SendResult:
        """Compose and deliver a request with one attempt."""
        message = self.compose(request)
        return await self.deliver(message)

    async def deliver(
        self, message: MessageModel, correlation_id: Optional[str] = None
    ) -> SendResult:
        """Deliver an already built message, writing the audit copy first."""
        correlation_id = correlation_id or str(uuid.uuid4())
        if self.audit is not None:
            self.audit.write(message)
        logger.info(
            f"Sending '{message.subject}' to {len(message.to)} recipient(s) (correlation_id: {correlation_id})"
        )
        return await self.client.send(message, correlation_id=correlation_id)
