"""Shared test fixtures."""

import pytest

from grid_mailer.builder import MessageBuilder
from grid_mailer.config import Settings, SendGridConfig


@pytest.fixture
def settings():
    """Settings with a configured sender and default recipient."""
    return Settings(
        default_email_from="noreply@example.com",
        default_email_to="ops@example.com",
        default_display_name="Billing",
        sendgrid=SendGridConfig(api_key="SG.test-key"),
    )


@pytest.fixture
def builder():
    """Builder holding the minimum fields for a valid message."""
    return (
        MessageBuilder.create()
        .from_("noreply@example.com", "Billing")
        .to("alice@example.com")
        .subject("Invoice")
        .html_body("<h1>Invoice</h1>")
    )


@pytest.fixture
def body_file(tmp_path):
    """An HTML body on disk."""
    path = tmp_path / "invoice.html"
    path.write_text("<html><body><h1>Invoice</h1></body></html>", encoding="utf-8")
    return path


@pytest.fixture
def clean_env(monkeypatch):
    """Remove GRID_MAILER_ variables so tests see only what they set."""
    import os

    for key in list(os.environ):
        if key.upper().startswith("GRID_MAILER_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch
