"""Optional on-disk copies of outgoing message bodies."""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .models import MessageModel

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]+")


class AuditWriter:
    """Writes each message body to ``email-<subject>-<timestamp>.html``."""

    def __init__(self, directory: Union[str, Path] = "."):
        self.directory = Path(directory)

    def filename_for(self, message: MessageModel, now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        subject = _UNSAFE_FILENAME_CHARS.sub("_", message.subject).strip("_") or "untitled"
        return f"email-{subject}-{now.strftime('%Y%m%dT%H%M%S%f')}.html"

    def write(self, message: MessageModel) -> Path:
        """Write the HTML body, or the text body when there is no HTML.

        Returns:
            Path of the written copy
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / self.filename_for(message)
        path.write_text(message.html_body or message.text_body or "", encoding="utf-8")
        logger.info(f"Audit copy written to {path}")
        return path
