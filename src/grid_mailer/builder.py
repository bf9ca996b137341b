"""Fluent builder for MessageModel."""

import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .exceptions import InvalidInputError, ValidationFailedError
from .models import (
    Address,
    Attachment,
    BccFilter,
    BypassListManagement,
    ClickTracking,
    Footer,
    GoogleAnalytics,
    InlineImage,
    MessageModel,
    OpenTracking,
    SpamCheck,
    TrackingFlags,
    Unsubscribe,
)
from .validators import collect_build_errors, validate_unsubscribe_templates

logger = logging.getLogger(__name__)

HIDDEN_RECIPIENTS_HEADER = "X-SMTPAPI"

Source = Union[bytes, bytearray, str, os.PathLike, Any]


def _read_source(source: Source, name: Optional[str]) -> tuple:
    """Resolve bytes, a binary file object or a path into (name, content).

    Raises:
        InvalidInputError: If the path does not exist or no name can be derived
    """
    if isinstance(source, (bytes, bytearray)):
        if not name:
            raise InvalidInputError("A name is required for in-memory content")
        return name, bytes(source)

    if hasattr(source, "read"):
        content = source.read()
        if isinstance(content, str):
            content = content.encode("utf-8")
        name = name or Path(getattr(source, "name", "") or "").name
        if not name:
            raise InvalidInputError("A name is required for stream content")
        return name, content

    path = Path(source)
    if not path.is_file():
        raise InvalidInputError(f"File not found: {path}")
    return name or path.name, path.read_bytes()


class MessageBuilder:
    """Accumulates message fields through chained calls.

    Every setter returns the builder. Cross-field checks are deferred to
    :meth:`build`, which reports all violated rules at once.

    Example::

        message = (
            MessageBuilder.create()
            .from_("noreply@example.com", "Billing")
            .to(["a@example.com", "Bob <b@example.com>"])
            .subject("Your invoice")
            .html_body(html)
            .enable_click_tracking()
            .build()
        )
    """

    def __init__(self):
        self._from: Optional[Address] = None
        self._to: List[Address] = []
        self._cc: List[Address] = []
        self._bcc: List[Address] = []
        self._subject: Optional[str] = None
        self._html_body: Optional[str] = None
        self._text_body: Optional[str] = None
        self._template_id: Optional[str] = None
        self._attachments: List[Attachment] = []
        self._inline_images: List[InlineImage] = []
        self._headers: Dict[str, str] = {}
        self._substitutions: Dict[str, List[str]] = {}
        self._unique_args: Dict[str, str] = {}
        self._categories: List[str] = []
        self._open_tracking = OpenTracking()
        self._click_tracking = ClickTracking()
        self._spam_check = SpamCheck()
        self._google_analytics = GoogleAnalytics()
        self._footer = Footer()
        self._bcc_filter = BccFilter()
        self._bypass_list_management = BypassListManagement()
        self._unsubscribe = Unsubscribe()
        self._hide_recipients = False

    @classmethod
    def create(cls) -> "MessageBuilder":
        return cls()

    # Addresses

    @staticmethod
    def _addresses(value: Any, display_name: Optional[str] = None) -> List[Address]:
        if isinstance(value, (str, tuple, Address)):
            return [Address.parse(value, display_name)]
        if display_name is not None:
            raise ValueError("display_name only applies to a single address")
        return [Address.parse(item) for item in value]

    def from_(self, address: Any, display_name: Optional[str] = None) -> "MessageBuilder":
        self._from = Address.parse(address, display_name)
        return self

    def to(self, address: Any, display_name: Optional[str] = None) -> "MessageBuilder":
        """Append one or more visible recipients."""
        self._to.extend(self._addresses(address, display_name))
        return self

    def cc(self, address: Any, display_name: Optional[str] = None) -> "MessageBuilder":
        self._cc.extend(self._addresses(address, display_name))
        return self

    def bcc(self, address: Any, display_name: Optional[str] = None) -> "MessageBuilder":
        self._bcc.extend(self._addresses(address, display_name))
        return self

    def hide_recipients(self) -> "MessageBuilder":
        """Move the ``to`` list into a header at build time, showing only the sender."""
        self._hide_recipients = True
        return self

    # Content

    def subject(self, subject: str) -> "MessageBuilder":
        self._subject = subject
        return self

    def html_body(self, html: str) -> "MessageBuilder":
        self._html_body = html
        return self

    def text_body(self, text: str) -> "MessageBuilder":
        self._text_body = text
        return self

    def attach_file(self, source: Source, name: Optional[str] = None) -> "MessageBuilder":
        """Attach bytes, a binary file object or the file at a path."""
        if isinstance(source, Attachment):
            self._attachments.append(source)
            return self
        name, content = _read_source(source, name)
        self._attachments.append(Attachment(name=name, content=content))
        return self

    def attach_files(self, items: Iterable[Any]) -> "MessageBuilder":
        for item in items:
            if isinstance(item, tuple):
                self.attach_file(*item)
            else:
                self.attach_file(item)
        return self

    def embed_image(
        self,
        source: Source,
        name: Optional[str] = None,
        content_id: Optional[str] = None,
    ) -> "MessageBuilder":
        """Embed an image for ``cid:`` references in the HTML body.

        The image is registered as an inline attachment too, so mail readers
        can resolve the reference.
        """
        if isinstance(source, InlineImage):
            image = source
        else:
            name, content = _read_source(source, name)
            image = InlineImage(name=name, content=content, content_id=content_id or name)
        self._inline_images.append(image)
        self._attachments.append(
            Attachment(name=image.name, content=image.content, content_id=image.content_id)
        )
        return self

    def embed_images(self, items: Iterable[Any]) -> "MessageBuilder":
        for item in items:
            if isinstance(item, tuple):
                self.embed_image(*item)
            else:
                self.embed_image(item)
        return self

    def add_header(self, key: str, value: str) -> "MessageBuilder":
        self._headers[key] = value
        return self

    def add_headers(self, headers: Mapping[str, str]) -> "MessageBuilder":
        self._headers.update(headers)
        return self

    def substitute(self, tag: str, values: Union[str, Iterable[str]]) -> "MessageBuilder":
        """Append replacement value(s) for a substitution tag."""
        if isinstance(values, str):
            values = [values]
        self._substitutions.setdefault(tag, []).extend(values)
        return self

    def include_unique_arg(self, key: str, value: str) -> "MessageBuilder":
        self._unique_args[key] = value
        return self

    def include_unique_args(self, identifiers: Mapping[str, str]) -> "MessageBuilder":
        self._unique_args.update(identifiers)
        return self

    def set_category(self, category: str) -> "MessageBuilder":
        if category not in self._categories:
            self._categories.append(category)
        return self

    def set_categories(self, categories: Iterable[str]) -> "MessageBuilder":
        for category in categories:
            self.set_category(category)
        return self

    # Tracking, filters and settings

    def enable_open_tracking(self) -> "MessageBuilder":
        self._open_tracking = OpenTracking(enabled=True)
        return self

    def disable_open_tracking(self) -> "MessageBuilder":
        self._open_tracking = OpenTracking(enabled=False)
        return self

    def enable_click_tracking(self, include_plain_text: bool = False) -> "MessageBuilder":
        self._click_tracking = ClickTracking(enabled=True, include_plain_text=include_plain_text)
        return self

    def disable_click_tracking(self) -> "MessageBuilder":
        self._click_tracking = ClickTracking(enabled=False)
        return self

    def enable_spam_check(self, score: int = 5, url: Optional[str] = None) -> "MessageBuilder":
        self._spam_check = SpamCheck(enabled=True, score=score, url=url)
        return self

    def disable_spam_check(self) -> "MessageBuilder":
        self._spam_check = SpamCheck(enabled=False)
        return self

    def enable_google_analytics(
        self,
        source: str,
        medium: str,
        term: str,
        content: Optional[str] = None,
        campaign: Optional[str] = None,
    ) -> "MessageBuilder":
        self._google_analytics = GoogleAnalytics(
            enabled=True,
            source=source,
            medium=medium,
            term=term,
            content=content,
            campaign=campaign,
        )
        return self

    def disable_google_analytics(self) -> "MessageBuilder":
        self._google_analytics = GoogleAnalytics(enabled=False)
        return self

    def enable_footer(self, text: Optional[str] = None, html: Optional[str] = None) -> "MessageBuilder":
        self._footer = Footer(enabled=True, text=text, html=html)
        return self

    def disable_footer(self) -> "MessageBuilder":
        self._footer = Footer(enabled=False)
        return self

    def enable_bcc(self, email: str) -> "MessageBuilder":
        """Blind-copy every message to ``email`` through the provider's bcc filter."""
        self._bcc_filter = BccFilter(enabled=True, email=Address.parse(email).email)
        return self

    def disable_bcc(self) -> "MessageBuilder":
        self._bcc_filter = BccFilter(enabled=False)
        return self

    def enable_bypass_list_management(self) -> "MessageBuilder":
        self._bypass_list_management = BypassListManagement(enabled=True)
        return self

    def disable_bypass_list_management(self) -> "MessageBuilder":
        self._bypass_list_management = BypassListManagement(enabled=False)
        return self

    def enable_template_engine(self, template_id: str) -> "MessageBuilder":
        """Render the body from a provider-side template; body fields become optional."""
        self._template_id = template_id
        return self

    def disable_template_engine(self) -> "MessageBuilder":
        self._template_id = None
        return self

    def enable_unsubscribe(self, text: str, html: str) -> "MessageBuilder":
        """Enable the provider's unsubscribe footer.

        Args:
            text: Plain-text footer containing a bare ``<% %>`` placeholder
            html: HTML footer containing a ``<% link text %>`` placeholder

        Raises:
            InvalidUnsubscribeTemplateError: If either template lacks its placeholder
        """
        validate_unsubscribe_templates(text, html)
        self._unsubscribe = Unsubscribe(enabled=True, text=text, html=html)
        return self

    def enable_unsubscribe_tag(self, tag: str) -> "MessageBuilder":
        """Enable unsubscribe links by replacing ``tag`` wherever it appears in the body."""
        self._unsubscribe = Unsubscribe(enabled=True, substitution_tag=tag)
        return self

    def disable_unsubscribe(self) -> "MessageBuilder":
        self._unsubscribe = Unsubscribe(enabled=False)
        return self

    # Build

    def build(self) -> MessageModel:
        """Validate the accumulated fields and return an immutable message.

        Raises:
            ValidationFailedError: Listing every violated rule
        """
        errors = collect_build_errors(
            self._html_body,
            self._text_body,
            self._template_id,
            self._to,
            self._from,
            self._subject,
        )
        if errors:
            raise ValidationFailedError(errors)

        to = tuple(self._to)
        headers = dict(self._headers)
        hidden = ()
        if self._hide_recipients:
            hidden = to
            headers[HIDDEN_RECIPIENTS_HEADER] = self._hidden_recipients_header(hidden)
            to = (self._from,)
            logger.debug(f"Hiding {len(hidden)} recipients behind {self._from.email}")

        return MessageModel(
            from_address=self._from,
            to=to,
            subject=self._subject,
            cc=tuple(self._cc),
            bcc=tuple(self._bcc),
            html_body=self._html_body,
            text_body=self._text_body,
            template_id=self._template_id,
            attachments=tuple(self._attachments),
            inline_images=tuple(self._inline_images),
            headers=MappingProxyType(headers),
            substitutions=MappingProxyType(
                {tag: tuple(values) for tag, values in self._substitutions.items()}
            ),
            unique_args=MappingProxyType(dict(self._unique_args)),
            categories=tuple(self._categories),
            tracking=TrackingFlags(
                open_tracking=self._open_tracking,
                click_tracking=self._click_tracking,
                spam_check=self._spam_check,
                google_analytics=self._google_analytics,
            ),
            footer=self._footer,
            bcc_filter=self._bcc_filter,
            bypass_list_management=self._bypass_list_management,
            unsubscribe=self._unsubscribe,
            hide_recipients=self._hide_recipients,
            hidden_recipients=hidden,
        )

    def _hidden_recipients_header(self, recipients) -> str:
        payload: Dict[str, Any] = {"to": [address.formatted() for address in recipients]}
        if self._substitutions:
            payload["sub"] = {tag: list(values) for tag, values in self._substitutions.items()}
        return json.dumps(payload)
