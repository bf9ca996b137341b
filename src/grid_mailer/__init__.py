"""Compose email messages and deliver them through SendGrid."""

__version__ = "0.1.0"

from .exceptions import (
    GridMailerError,
    ConfigurationMissingError,
    InvalidInputError,
    ValidationError,
    InvalidAddressError,
    InvalidUnsubscribeTemplateError,
    MissingBodyError,
    MissingRecipientsError,
    MissingSenderError,
    MissingSubjectError,
    ValidationFailedError,
    ProviderError,
    DeliveryFailedError,
    AuthenticationError,
)
from .models import Address, Attachment, InlineImage, MessageModel, EmailRequest, SendResult
from .builder import MessageBuilder
from .config import Settings, load_settings
from .sender import EmailSender
from .providers import DryRunDeliveryClient, SendGridDeliveryClient

__all__ = [
    "GridMailerError",
    "ConfigurationMissingError",
    "InvalidInputError",
    "ValidationError",
    "InvalidAddressError",
    "InvalidUnsubscribeTemplateError",
    "MissingBodyError",
    "MissingRecipientsError",
    "MissingSenderError",
    "MissingSubjectError",
    "ValidationFailedError",
    "ProviderError",
    "DeliveryFailedError",
    "AuthenticationError",
    "Address",
    "Attachment",
    "InlineImage",
    "MessageModel",
    "EmailRequest",
    "SendResult",
    "MessageBuilder",
    "Settings",
    "load_settings",
    "EmailSender",
    "DryRunDeliveryClient",
    "SendGridDeliveryClient",
]
