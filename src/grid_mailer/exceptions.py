"""Custom exceptions for grid mailer."""

from typing import List, Optional


class GridMailerError(Exception):
    """Base exception for all grid mailer errors."""

    pass


class ConfigurationMissingError(GridMailerError):
    """Raised when a required configuration value is absent."""

    def __init__(self, key: str, message: Optional[str] = None):
        self.key = key
        super().__init__(message or f"Missing configuration value: {key}")


class InvalidInputError(GridMailerError):
    """Raised when an input file or value cannot be used."""

    pass


class ValidationError(GridMailerError):
    """Raised when validation fails."""

    pass


class InvalidAddressError(ValidationError):
    """Raised when an email address is syntactically invalid."""

    pass


class InvalidUnsubscribeTemplateError(ValidationError):
    """Raised when an unsubscribe template lacks its placeholder."""

    def __init__(self, part: str):
        self.part = part
        super().__init__(f"Missing substitution replacement tag in {part}")


class MissingBodyError(ValidationError):
    """Mail does not contain a body."""

    def __init__(self):
        super().__init__("Mail does not contain a body.")


class MissingRecipientsError(ValidationError):
    """Mail does not have any recipients."""

    def __init__(self):
        super().__init__("Mail does not have any recipients.")


class MissingSenderError(ValidationError):
    """Mail does not have a valid sender."""

    def __init__(self):
        super().__init__("Mail does not have a valid sender's email address.")


class MissingSubjectError(ValidationError):
    """Mail does not have a subject."""

    def __init__(self):
        super().__init__("Mail does not have a subject.")


class ValidationFailedError(ValidationError):
    """Raised by the builder when one or more build rules are violated.

    Every violated rule is kept in ``errors``, in rule order.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"Mail has one or more issues and cannot be built: {details}")


class ProviderError(GridMailerError):
    """Raised when there's an error with the email provider."""

    pass


class DeliveryFailedError(ProviderError):
    """Raised when the provider rejects or never receives the message."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthenticationError(DeliveryFailedError):
    """Raised when authentication with the provider fails."""

    pass
