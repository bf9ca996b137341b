"""Delivery client implementations."""

from .base import BaseDeliveryClient
from .dry_run import DryRunDeliveryClient
from .sendgrid import SendGridDeliveryClient, build_mail

__all__ = ["BaseDeliveryClient", "DryRunDeliveryClient", "SendGridDeliveryClient", "build_mail"]
