"""SendGrid delivery client."""

import asyncio
import base64
import logging
import uuid
from typing import List, Optional
from urllib.error import URLError

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers import mail as sg

from ..builder import HIDDEN_RECIPIENTS_HEADER
from ..config import SendGridConfig, Settings
from ..exceptions import (
    AuthenticationError,
    ConfigurationMissingError,
    DeliveryFailedError,
)
from ..models import Address, MessageModel, SendResult
from .base import BaseDeliveryClient

logger = logging.getLogger(__name__)

API_KEY_USERNAME = "apikey"


def resolve_api_key(config: SendGridConfig) -> str:
    """Pick the API key out of the configured SendGrid credentials.

    SendGrid authenticates the v3 API with an API key only. A configured
    password is accepted as the key when the user name is empty or the
    literal ``apikey``, the same convention SendGrid uses for SMTP relay.

    Raises:
        ConfigurationMissingError: If no usable key is configured
    """
    if config.api_key:
        return config.api_key
    if config.password and (not config.username or config.username == API_KEY_USERNAME):
        return config.password
    if config.username:
        raise ConfigurationMissingError(
            "SendGridApiKey",
            f"SendGrid user '{config.username}' needs an API key; "
            "user name/password authentication is not accepted by the v3 API",
        )
    raise ConfigurationMissingError("SendGridApiKey")


def _email(address: Address, email_cls):
    return email_cls(address.email, address.display_name)


def build_mail(message: MessageModel) -> sg.Mail:
    """Map a MessageModel onto the SendGrid v3 request helpers.

    Args:
        message: Validated message

    Returns:
        Mail object; ``mail.get()`` is the JSON request body
    """
    mail = sg.Mail(
        from_email=_email(message.from_address, sg.From),
        subject=message.subject,
        plain_text_content=message.text_body or None,
        html_content=message.html_body or None,
    )

    for personalization in _personalizations(message):
        mail.add_personalization(personalization, index=len(mail.personalizations or []))

    for key, value in message.headers.items():
        # The fan-out list is carried by the personalizations; sending the
        # header would show every reader the full recipient list.
        if key == HIDDEN_RECIPIENTS_HEADER:
            continue
        mail.add_header(sg.Header(key, value))
    for category in message.categories:
        mail.add_category(sg.Category(category))
    for key, value in message.unique_args.items():
        mail.add_custom_arg(sg.CustomArg(key, value))
    if message.template_id:
        mail.template_id = sg.TemplateId(message.template_id)

    for attachment in message.attachments:
        mail.add_attachment(
            sg.Attachment(
                file_content=sg.FileContent(base64.b64encode(attachment.content).decode()),
                file_name=sg.FileName(attachment.name),
                file_type=sg.FileType(attachment.content_type),
                disposition=sg.Disposition("inline" if attachment.is_inline else "attachment"),
                content_id=sg.ContentId(attachment.content_id) if attachment.is_inline else None,
            )
        )

    tracking_settings = _tracking_settings(message)
    if tracking_settings.get():
        mail.tracking_settings = tracking_settings

    mail_settings = _mail_settings(message)
    if mail_settings.get():
        mail.mail_settings = mail_settings

    return mail


def _per_recipient(message: MessageModel) -> bool:
    if message.hide_recipients:
        return True
    return len(message.to) > 1 and any(len(v) > 1 for v in message.substitutions.values())


def _personalizations(message: MessageModel) -> List[sg.Personalization]:
    """One personalization per recipient when hiding or substituting per recipient.

    Recipient ``i`` gets value ``i`` of each substitution list (the last value
    when the list is shorter). Cc and bcc ride on the first personalization so
    they receive a single copy.
    """
    if _per_recipient(message):
        recipients = message.hidden_recipients or message.to
        groups = [[address] for address in recipients]
    else:
        groups = [list(message.to)]

    personalizations = []
    for index, group in enumerate(groups):
        personalization = sg.Personalization()
        for address in group:
            personalization.add_to(_email(address, sg.To))
        if index == 0:
            for address in message.cc:
                personalization.add_cc(_email(address, sg.Cc))
            for address in message.bcc:
                personalization.add_bcc(_email(address, sg.Bcc))
        for tag, values in message.substitutions.items():
            if values:
                value = values[index] if index < len(values) else values[-1]
                personalization.add_substitution(sg.Substitution(tag, value))
        personalizations.append(personalization)
    return personalizations


def _tracking_settings(message: MessageModel) -> sg.TrackingSettings:
    flags = message.tracking
    settings = sg.TrackingSettings()

    if flags.open_tracking.enabled is not None:
        settings.open_tracking = sg.OpenTracking(flags.open_tracking.enabled)

    click = flags.click_tracking
    if click.enabled is not None:
        settings.click_tracking = sg.ClickTracking(
            click.enabled, click.include_plain_text if click.enabled else None
        )

    ga = flags.google_analytics
    if ga.enabled is not None:
        settings.ganalytics = sg.Ganalytics(
            enable=ga.enabled,
            utm_source=sg.UtmSource(ga.source) if ga.source else None,
            utm_medium=sg.UtmMedium(ga.medium) if ga.medium else None,
            utm_term=sg.UtmTerm(ga.term) if ga.term else None,
            utm_content=sg.UtmContent(ga.content) if ga.content else None,
            utm_campaign=sg.UtmCampaign(ga.campaign) if ga.campaign else None,
        )

    unsubscribe = message.unsubscribe
    if unsubscribe.enabled is not None:
        settings.subscription_tracking = sg.SubscriptionTracking(
            enable=unsubscribe.enabled,
            text=sg.SubscriptionText(unsubscribe.text) if unsubscribe.text else None,
            html=sg.SubscriptionHtml(unsubscribe.html) if unsubscribe.html else None,
            substitution_tag=(
                sg.SubscriptionSubstitutionTag(unsubscribe.substitution_tag)
                if unsubscribe.substitution_tag
                else None
            ),
        )

    return settings


def _mail_settings(message: MessageModel) -> sg.MailSettings:
    settings = sg.MailSettings()

    spam = message.tracking.spam_check
    if spam.enabled:
        settings.spam_check = sg.SpamCheck(
            True,
            threshold=sg.SpamThreshold(spam.score),
            post_to_url=sg.SpamUrl(spam.url) if spam.url else None,
        )
    elif spam.enabled is False:
        settings.spam_check = sg.SpamCheck(False)

    footer = message.footer
    if footer.enabled is not None:
        settings.footer_settings = sg.FooterSettings(
            footer.enabled,
            text=sg.FooterText(footer.text) if footer.text else None,
            html=sg.FooterHtml(footer.html) if footer.html else None,
        )

    bcc = message.bcc_filter
    if bcc.enabled is not None:
        settings.bcc_settings = sg.BccSettings(
            bcc.enabled, email=sg.BccSettingsEmail(bcc.email) if bcc.email else None
        )

    if message.bypass_list_management.enabled is not None:
        settings.bypass_list_management = sg.BypassListManagement(
            message.bypass_list_management.enabled
        )

    return settings


def _decode(body) -> Optional[str]:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return str(body)


class SendGridDeliveryClient(BaseDeliveryClient):
    """Delivers messages through the SendGrid v3 mail/send endpoint."""

    def __init__(self, api_key: str):
        """Initialize SendGrid client.

        Args:
            api_key: SendGrid API key
        """
        if not api_key:
            raise ConfigurationMissingError("SendGridApiKey")
        self.client = SendGridAPIClient(api_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SendGridDeliveryClient":
        return cls(resolve_api_key(settings.sendgrid))

    async def send(
        self, message: MessageModel, correlation_id: Optional[str] = None
    ) -> SendResult:
        """Send a message via SendGrid, once.

        Args:
            message: Validated message
            correlation_id: Optional correlation ID for tracking

        Returns:
            SendResult with the provider's status and message id

        Raises:
            AuthenticationError: If SendGrid rejects the credentials
            DeliveryFailedError: On any other failure
        """
        correlation_id = correlation_id or str(uuid.uuid4())
        mail = build_mail(message)

        try:
            response = await asyncio.to_thread(self.client.send, mail)
        except HTTPError as e:
            status_code = getattr(e, "status_code", None)
            body = _decode(getattr(e, "body", None))
            logger.error(
                f"SendGrid rejected message (status {status_code}, correlation_id: {correlation_id}): {body}"
            )
            if status_code in (401, 403):
                raise AuthenticationError(
                    f"SendGrid authentication failed with status {status_code}",
                    status_code=status_code,
                    body=body,
                ) from e
            raise DeliveryFailedError(
                f"SendGrid returned status {status_code}: {body}",
                status_code=status_code,
                body=body,
            ) from e
        except URLError as e:
            logger.error(f"Could not reach SendGrid (correlation_id: {correlation_id}): {e}")
            raise DeliveryFailedError(f"Could not reach SendGrid: {e.reason}") from e
        except OSError as e:
            # timeouts and dropped connections after the request was opened
            logger.error(f"Connection to SendGrid failed (correlation_id: {correlation_id}): {e!r}")
            raise DeliveryFailedError(f"Connection to SendGrid failed: {e!r}") from e

        if response.status_code not in (200, 201, 202):
            body = _decode(response.body)
            raise DeliveryFailedError(
                f"SendGrid returned status {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
            )

        message_id = response.headers.get("X-Message-Id") if response.headers else None
        recipient_count = len(message.hidden_recipients or message.to)
        logger.info(
            f"Email '{message.subject}' accepted by SendGrid for {recipient_count} recipient(s) "
            f"(message_id: {message_id}, correlation_id: {correlation_id})"
        )
        return SendResult(
            status_code=response.status_code,
            message_id=message_id,
            correlation_id=correlation_id,
        )
