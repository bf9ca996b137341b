"""Email and message validation utilities."""

import re
from typing import List, Optional, Sequence, Tuple

from email_validator import validate_email, EmailNotValidError

from .exceptions import (
    InvalidUnsubscribeTemplateError,
    MissingBodyError,
    MissingRecipientsError,
    MissingSenderError,
    MissingSubjectError,
    ValidationError,
)

# "<% %>" with nothing but whitespace inside
TEXT_UNSUBSCRIBE_PATTERN = re.compile(r"<%\s*%>")
# "<% some tag %>": one or more tokens separated by single whitespace
HTML_UNSUBSCRIBE_PATTERN = re.compile(r"<%\s*[^\s%]+(?:\s[^\s%]+)*\s*%>")


def validate_email_address(email: str) -> Tuple[bool, str]:
    """Validate an email address.

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, normalized_email_or_error_message)
    """
    if not email:
        return False, "The email address is empty."
    try:
        valid = validate_email(email, check_deliverability=False)
        return True, valid.normalized
    except EmailNotValidError as e:
        return False, str(e)


def validate_unsubscribe_templates(text: str, html: str) -> None:
    """Check that both unsubscribe templates carry a provider placeholder.

    Raises:
        InvalidUnsubscribeTemplateError: naming the part that failed
    """
    if not text or not TEXT_UNSUBSCRIBE_PATTERN.search(text):
        raise InvalidUnsubscribeTemplateError("text")
    if not html or not HTML_UNSUBSCRIBE_PATTERN.search(html):
        raise InvalidUnsubscribeTemplateError("html")


def collect_build_errors(
    html_body: Optional[str],
    text_body: Optional[str],
    template_id: Optional[str],
    to: Sequence,
    from_address,
    subject: Optional[str],
) -> List[ValidationError]:
    """Evaluate every build rule and return all violations in rule order.

    Args:
        html_body: HTML body, if any
        text_body: Plain-text body, if any
        template_id: Provider template id, if any
        to: Visible recipients
        from_address: Sender address or None
        subject: Subject line

    Returns:
        List of violations; empty when the message can be built
    """
    errors: List[ValidationError] = []

    if not html_body and not text_body and not template_id:
        errors.append(MissingBodyError())
    if len(to) == 0:
        errors.append(MissingRecipientsError())
    if from_address is None:
        errors.append(MissingSenderError())
    if not subject:
        errors.append(MissingSubjectError())

    return errors
