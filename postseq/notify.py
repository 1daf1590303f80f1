"""
Best-effort email notification of pipeline failures.

The pipeline core never sends mail itself. The top-level caller builds a
Notification from the error it caught and hands it to a notifier; a failed
delivery is logged and otherwise ignored.
"""

import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from pathlib import Path
from typing import List, Optional, Union

from jinja2 import Environment, FileSystemLoader

from .pipeline_core.error_handling import PipelineError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


@dataclass(frozen=True)
class Notification:
    """A message for the notification collaborator."""

    sender: str
    recipients: List[str] = field(default_factory=list)
    subject: str = ""
    body: str = ""


def build_error_notification(
    error: PipelineError,
    barcode: str,
    working_dir: Union[str, Path],
    host: str,
    sender: str,
    recipients: List[str],
) -> Notification:
    """Describe a failed run with enough context to find its logs.

    Parameters
    ----------
    error : PipelineError
        The error that ended the run; its ``stage`` names the failing stage
    barcode : str
        Flowcell/lane barcode of the run
    working_dir : str or Path
        Directory the run was working in
    host : str
        Host the run executed on
    sender : str
        From address
    recipients : List[str]
        Addresses that receive error reports

    Returns
    -------
    Notification
        Ready-to-send notification
    """
    env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), keep_trailing_newline=True)
    body = env.get_template("error_email.txt").render(
        stage=error.stage or "unknown",
        barcode=barcode,
        working_dir=str(working_dir),
        host=host,
        message=str(error),
        details=error.details,
    )
    return Notification(
        sender=sender,
        recipients=list(recipients),
        subject=f"Mapping error for lane barcode {barcode}",
        body=body,
    )


class EmailNotifier:
    """Deliver notifications through an SMTP relay.

    Parameters
    ----------
    smtp_host : str
        SMTP relay host
    port : int
        SMTP port
    timeout : float
        Seconds to wait for the relay
    """

    def __init__(self, smtp_host: str = "localhost", port: int = 25, timeout: float = 30.0):
        self.smtp_host = smtp_host
        self.port = port
        self.timeout = timeout

    def send(self, notification: Notification) -> bool:
        """Send ``notification``; return False instead of raising on failure."""
        if not notification.recipients:
            logger.warning(f"No recipients for '{notification.subject}', notification not sent")
            return False

        message = EmailMessage()
        message["From"] = notification.sender
        message["To"] = ", ".join(notification.recipients)
        message["Subject"] = notification.subject
        message.set_content(notification.body)

        try:
            with smtplib.SMTP(self.smtp_host, self.port, timeout=self.timeout) as smtp:
                smtp.send_message(message)
        except (OSError, smtplib.SMTPException) as e:
            logger.warning(f"Could not deliver notification via {self.smtp_host}: {e}")
            return False

        logger.info(f"Notification sent to {', '.join(notification.recipients)}")
        return True


def notify_failure(
    notifier: Optional[EmailNotifier],
    error: PipelineError,
    barcode: str,
    working_dir: Union[str, Path],
    host: str,
    sender: str,
    recipients: List[str],
) -> Notification:
    """Build the failure notification, log it and hand it to ``notifier`` if given."""
    notification = build_error_notification(error, barcode, working_dir, host, sender, recipients)
    logger.error(notification.body.strip())
    if notifier is not None:
        notifier.send(notification)
    return notification
