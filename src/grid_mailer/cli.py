"""Command line entry point: compose one message from a body file and send it."""

import asyncio
import logging
import re
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .audit import AuditWriter
from .config import Settings, load_settings
from .exceptions import GridMailerError, InvalidInputError, ValidationFailedError
from .logging import setup_logging
from .models import EmailRequest
from .providers import DryRunDeliveryClient, SendGridDeliveryClient
from .providers.base import BaseDeliveryClient
from .sender import DEFAULT_SUBJECT, EmailSender

logger = logging.getLogger(__name__)

_RECIPIENT_SEPARATORS = re.compile(r"[;,]")


def parse_recipients(raw: Optional[str]) -> List[str]:
    """Split a ``;``/``,`` delimited address list, dropping blank entries."""
    if not raw:
        return []
    return [part.strip() for part in _RECIPIENT_SEPARATORS.split(raw) if part.strip()]


def read_body(path: str) -> str:
    """Read the message body file.

    Raises:
        InvalidInputError: If the file does not exist
    """
    body_path = Path(path)
    if not body_path.is_file():
        raise InvalidInputError(f"File email body not exists: {path}")
    return body_path.read_text(encoding="utf-8")


def create_client(settings: Settings, dry_run: bool = False) -> BaseDeliveryClient:
    """Create the delivery client for this run.

    Raises:
        ConfigurationMissingError: If SendGrid credentials are not configured
    """
    if dry_run:
        return DryRunDeliveryClient()
    return SendGridDeliveryClient.from_settings(settings)


def create_audit_writer(settings: Settings, audit_dir: Optional[str]) -> Optional[AuditWriter]:
    if audit_dir:
        return AuditWriter(audit_dir)
    if settings.audit.enabled:
        return AuditWriter(settings.audit.directory)
    return None


@click.command()
@click.argument("body_file", required=False)
@click.option("--file", "file_path", help="Email body file path.")
@click.option("--email", "emails", help="Comma-separated emails: some@example.com;some2@example.com")
@click.option("--subject", default=DEFAULT_SUBJECT, show_default=True, help="Email subject.")
@click.option("--cc", help="Carbon-copy recipients, same syntax as --email.")
@click.option("--bcc", help="Blind-copy recipients, same syntax as --email.")
@click.option("--attach", multiple=True, type=click.Path(exists=True, dir_okay=False), help="File to attach (repeatable).")
@click.option("--category", multiple=True, help="Provider category (repeatable).")
@click.option("--hide-recipients", is_flag=True, help="Show each recipient only the sender in To.")
@click.option("--audit-dir", type=click.Path(file_okay=False), help="Write a copy of the body here before sending.")
@click.option("--dry-run", is_flag=True, help="Build the request but do not send it.")
@click.option("--config", "config_file", type=click.Path(exists=True), help="Config file path (YAML/JSON)")
@click.option("--env-file", type=click.Path(exists=True), help=".env file path")
@click.option("--log-level", help="Override the configured log level.")
@click.option("--pause", is_flag=True, help="Wait for a key press before exiting.")
def main(
    body_file: Optional[str],
    file_path: Optional[str],
    emails: Optional[str],
    subject: str,
    cc: Optional[str],
    bcc: Optional[str],
    attach: Tuple[str, ...],
    category: Tuple[str, ...],
    hide_recipients: bool,
    audit_dir: Optional[str],
    dry_run: bool,
    config_file: Optional[str],
    env_file: Optional[str],
    log_level: Optional[str],
    pause: bool,
):
    """Send the HTML in BODY_FILE (or --file) through SendGrid.

    With only BODY_FILE the configured default recipient and the subject
    "Test email" are used.
    """
    try:
        _run(
            body_path=file_path or body_file,
            emails=emails,
            subject=subject,
            cc=cc,
            bcc=bcc,
            attach=attach,
            category=category,
            hide_recipients=hide_recipients,
            audit_dir=audit_dir,
            dry_run=dry_run,
            config_file=config_file,
            env_file=env_file,
            log_level=log_level,
        )
    finally:
        if pause:
            click.pause()


def _run(
    body_path: Optional[str],
    emails: Optional[str],
    subject: str,
    cc: Optional[str],
    bcc: Optional[str],
    attach: Tuple[str, ...],
    category: Tuple[str, ...],
    hide_recipients: bool,
    audit_dir: Optional[str],
    dry_run: bool,
    config_file: Optional[str],
    env_file: Optional[str],
    log_level: Optional[str],
):
    if not body_path:
        click.echo("Invalid parameters.", err=True)
        sys.exit(1)

    try:
        settings = load_settings(env_file=env_file, config_file=config_file)
        if log_level:
            settings.logging.level = log_level
        setup_logging(settings.logging)

        request = EmailRequest(
            to=parse_recipients(emails),
            subject=subject,
            html_body=read_body(body_path),
            cc=parse_recipients(cc),
            bcc=parse_recipients(bcc),
            attachments=list(attach),
            categories=list(category),
            hide_recipients=hide_recipients,
        )

        client = create_client(settings, dry_run=dry_run)
        sender = EmailSender(settings, client, audit=create_audit_writer(settings, audit_dir))
        message = sender.compose(request)

        click.echo("Email message:")
        click.echo(str(message))

        click.echo("Sending email...")
        result = asyncio.run(sender.deliver(message))

        click.echo("Email has been sent")
        if result.message_id:
            click.echo(f"Message ID: {result.message_id}")

    except InvalidInputError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    except ValidationFailedError as e:
        click.echo("Error: Mail has one or more issues and cannot be built:", err=True)
        for error in e.errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)
    except GridMailerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.exception("Unexpected error")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
