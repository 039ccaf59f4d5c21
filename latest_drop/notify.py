"""Email notification for Latest Drop.

Sends the run report to the configured recipients over SMTP. When no
SMTP host is configured the report is written to the log instead, so a
run without mail settings still leaves a trace.
"""

import logging
import smtplib
from email.message import EmailMessage

from latest_drop.outcome import Priority, Report

logger = logging.getLogger(__name__)

_X_PRIORITY = {
    Priority.HIGH: ("1 (Highest)", "High"),
    Priority.NORMAL: ("3 (Normal)", "Normal"),
}


def build_message(report: Report, sender: str, recipients: list[str]) -> EmailMessage:
    """Return a plain-text message carrying *report*."""
    msg = EmailMessage()
    msg["Subject"] = report.subject
    msg["From"] = sender
    msg["To"] = ", ".join(recipients)
    x_priority, importance = _X_PRIORITY[report.priority]
    msg["X-Priority"] = x_priority
    msg["Importance"] = importance
    msg.set_content(report.body)
    return msg


class MailNotifier:
    """SMTP mail sender.

    Parameters
    ----------
    host : str
        SMTP server. Blank means log-only.
    port : int
        SMTP port.
    sender : str
        Address used in the From header.
    use_tls : bool
        If True, upgrade the connection with STARTTLS.
    username, password : str
        Credentials; login is skipped when *username* is blank.
    timeout : float
        Socket timeout in seconds.
    """

    def __init__(
        self,
        host: str = "",
        port: int = 25,
        sender: str = "latest-drop@localhost",
        use_tls: bool = False,
        username: str = "",
        password: str = "",
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self._use_tls = use_tls
        self._username = username
        self._password = password
        self._timeout = timeout

    @classmethod
    def from_config(cls, cfg) -> "MailNotifier":
        return cls(
            host=cfg.smtp_host,
            port=cfg.smtp_port,
            sender=cfg.mail_from,
            use_tls=cfg.smtp_use_tls,
            username=cfg.smtp_username,
            password=cfg.smtp_password,
        )

    @property
    def available(self) -> bool:
        """True if an SMTP host is configured."""
        return bool(self.host)

    def send(self, report: Report, recipients: list[str]) -> None:
        """Deliver *report* to *recipients*. Raises OSError / SMTPException."""
        if not recipients:
            logger.warning("No recipients; report not sent: %s", report.subject)
            return
        if not self.available:
            logger.info(
                "Mail not configured; report [%s] %s:\n%s",
                report.priority.value, report.subject, report.body,
            )
            return

        msg = build_message(report, self.sender, recipients)
        with smtplib.SMTP(self.host, self.port, timeout=self._timeout) as smtp:
            if self._use_tls:
                smtp.starttls()
            if self._username:
                smtp.login(self._username, self._password)
            smtp.send_message(msg)
        logger.info("Mailed '%s' to %s", report.subject, ", ".join(recipients))
