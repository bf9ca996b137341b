"""Data models for grid mailer."""

import mimetypes
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parseaddr
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .exceptions import InvalidAddressError
from .validators import validate_email_address


@dataclass(frozen=True)
class Address:
    """An email address with an optional display name."""

    email: str
    display_name: Optional[str] = None

    @classmethod
    def parse(cls, value: Any, display_name: Optional[str] = None) -> "Address":
        """Create an address from a string, tuple or existing Address.

        Args:
            value: ``"a@x.com"``, ``"Name <a@x.com>"``, ``(email, name)`` or Address
            display_name: Overrides any display name found in ``value``

        Returns:
            Validated Address

        Raises:
            InvalidAddressError: If the email part is not a valid address
        """
        if isinstance(value, Address):
            if display_name is None:
                return value
            return cls(value.email, display_name)

        if isinstance(value, tuple):
            if len(value) != 2:
                raise InvalidAddressError(f"Expected (email, name) pair, got {value!r}")
            email, name = value
        elif isinstance(value, str):
            name, email = parseaddr(value)
            if not email:
                email = value
        else:
            raise InvalidAddressError(f"Unsupported address value: {value!r}")

        is_valid, result = validate_email_address((email or "").strip())
        if not is_valid:
            raise InvalidAddressError(f"Invalid email address {email!r}: {result}")

        name = display_name if display_name is not None else name
        return cls(result, name or None)

    def formatted(self) -> str:
        """Render as ``Name <email>``, or the bare email without a name."""
        if self.display_name and self.display_name.strip():
            return f"{self.display_name} <{self.email}>"
        return self.email

    def __str__(self) -> str:
        return self.formatted()


def guess_content_type(name: str) -> str:
    content_type, _ = mimetypes.guess_type(name)
    return content_type or "application/octet-stream"


@dataclass(frozen=True)
class Attachment:
    """A file attached to the message. Inline when ``content_id`` is set."""

    name: str
    content: bytes
    content_type: str = ""
    content_id: Optional[str] = None

    def __post_init__(self):
        if not self.content_type:
            object.__setattr__(self, "content_type", guess_content_type(self.name))

    @property
    def is_inline(self) -> bool:
        return self.content_id is not None


@dataclass(frozen=True)
class InlineImage:
    """An image embedded in the HTML body, referenced as ``cid:<content_id>``."""

    name: str
    content: bytes
    content_id: str


# Tracking and filter settings. ``enabled=None`` leaves the provider default.


@dataclass(frozen=True)
class OpenTracking:
    enabled: Optional[bool] = None


@dataclass(frozen=True)
class ClickTracking:
    enabled: Optional[bool] = None
    include_plain_text: bool = False


@dataclass(frozen=True)
class SpamCheck:
    enabled: Optional[bool] = None
    score: int = 5
    url: Optional[str] = None


@dataclass(frozen=True)
class GoogleAnalytics:
    enabled: Optional[bool] = None
    source: Optional[str] = None
    medium: Optional[str] = None
    term: Optional[str] = None
    content: Optional[str] = None
    campaign: Optional[str] = None


@dataclass(frozen=True)
class TrackingFlags:
    """Per-message tracking and analytics toggles."""

    open_tracking: OpenTracking = field(default_factory=OpenTracking)
    click_tracking: ClickTracking = field(default_factory=ClickTracking)
    spam_check: SpamCheck = field(default_factory=SpamCheck)
    google_analytics: GoogleAnalytics = field(default_factory=GoogleAnalytics)


@dataclass(frozen=True)
class Footer:
    enabled: Optional[bool] = None
    text: Optional[str] = None
    html: Optional[str] = None


@dataclass(frozen=True)
class BccFilter:
    enabled: Optional[bool] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class BypassListManagement:
    enabled: Optional[bool] = None


@dataclass(frozen=True)
class Unsubscribe:
    """Unsubscribe footer filled in by the provider's subscription filter."""

    enabled: Optional[bool] = None
    text: Optional[str] = None
    html: Optional[str] = None
    substitution_tag: Optional[str] = None


@dataclass(frozen=True)
class MessageModel:
    """A validated email, ready for delivery. Never mutated after build."""

    from_address: Address
    to: Tuple[Address, ...]
    subject: str
    cc: Tuple[Address, ...] = ()
    bcc: Tuple[Address, ...] = ()
    html_body: Optional[str] = None
    text_body: Optional[str] = None
    template_id: Optional[str] = None
    attachments: Tuple[Attachment, ...] = ()
    inline_images: Tuple[InlineImage, ...] = ()
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    substitutions: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    unique_args: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    categories: Tuple[str, ...] = ()
    tracking: TrackingFlags = field(default_factory=TrackingFlags)
    footer: Footer = field(default_factory=Footer)
    bcc_filter: BccFilter = field(default_factory=BccFilter)
    bypass_list_management: BypassListManagement = field(
        default_factory=BypassListManagement
    )
    unsubscribe: Unsubscribe = field(default_factory=Unsubscribe)
    hide_recipients: bool = False
    hidden_recipients: Tuple[Address, ...] = ()

    def __str__(self) -> str:
        lines = [f"Subject: {self.subject}", "Emails to:"]
        lines.extend(f" - {address.formatted()}" for address in self.hidden_recipients or self.to)
        return "\n".join(lines) + "\n"


@dataclass
class EmailRequest:
    """A send request as received from the CLI or a library caller."""

    to: List[str] = field(default_factory=list)
    subject: Optional[str] = None
    html_body: Optional[str] = None
    text_body: Optional[str] = None
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    attachments: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    hide_recipients: bool = False


@dataclass
class SendResult:
    """Result of a delivery attempt accepted by the provider."""

    status_code: int
    message_id: Optional[str] = None
    correlation_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status_code": self.status_code,
            "message_id": self.message_id,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
        }
