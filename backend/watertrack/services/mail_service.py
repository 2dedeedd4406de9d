"""
WaterTrack Backend: Mail Service
================================

What:  Composes the account verification and password recovery letters.
How:   Renders a small HTML template with a link into the frontend, then
       hands the letter to deliver(), which logs it.
Who:   Called by UserService during registration, re-verification and
       password recovery.

There is no outbound transport: deliver() is the hook a real provider would
plug into. With MAIL_ECHO_LETTERS enabled the routes also return the letter
in the response body so the flows can be completed without a mailbox.
"""

import html
import logging
from dataclasses import asdict, dataclass
from typing import Dict

from watertrack.config import settings

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Confirm the registration on Tracker of water"
RECOVERY_SUBJECT = "Your Account Password Reset Request"

_LETTER_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<style>
  body {{ font-family: Arial, sans-serif; background-color: #f4f4f4; margin: 0; }}
  .container {{ max-width: 600px; margin: 20px auto; padding: 20px; background-color: #fff; }}
  .header, .footer {{ background-color: #00bfff; color: #fff; padding: 10px; text-align: center; }}
  .content {{ padding: 20px; text-align: center; }}
  .button {{ display: inline-block; padding: 10px 20px; margin-top: 20px;
             background-color: #00bfff; color: #fff; text-decoration: none; border-radius: 5px; }}
</style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{title}</h1></div>
    <div class="content">
      {paragraphs}
      <a href="{link}" class="button">{action}</a>
      <p>If the button does not work, open this link in your browser:</p>
      <p><a href="{link}">{link}</a></p>
    </div>
    <div class="footer"><p>{footer}</p></div>
  </div>
</body>
</html>
"""


@dataclass(frozen=True)
class Letter:
    to: str
    subject: str
    html: str

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)


def _frontend_link(kind: str, token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/{kind}/{token}"


def _render(title: str, paragraphs: list, link: str, action: str, footer: str) -> str:
    return _LETTER_TEMPLATE.format(
        title=html.escape(title),
        paragraphs="\n      ".join(f"<p>{html.escape(p)}</p>" for p in paragraphs),
        link=html.escape(link, quote=True),
        action=html.escape(action),
        footer=html.escape(footer),
    )


class MailService:
    """Letter composition plus the delivery hook."""

    def compose_verification_letter(self, email: str, verification_token: str) -> Letter:
        link = _frontend_link("verification", verification_token)
        body = _render(
            title="Activate Your Tracker of Water Account",
            paragraphs=[
                "We're excited to have you on board!",
                "To get started, please activate your account by clicking the button below:",
            ],
            link=link,
            action="Activate Account",
            footer="Need help? Reach out to our support team for assistance.",
        )
        return Letter(to=email, subject=VERIFICATION_SUBJECT, html=body)

    def compose_recovery_letter(self, email: str, recovery_token: str) -> Letter:
        link = _frontend_link("recovery", recovery_token)
        body = _render(
            title="Password Reset Request",
            paragraphs=[
                "We received a request to reset the password for your account.",
                "If you did not make this request, please ignore this email.",
            ],
            link=link,
            action="Reset Password",
            footer="If you have any questions, please don't hesitate to contact us.",
        )
        return Letter(to=email, subject=RECOVERY_SUBJECT, html=body)

    def deliver(self, letter: Letter) -> None:
        # Tokens are part of the body; only the envelope is logged
        logger.info("Letter '%s' queued for %s (from %s)", letter.subject, letter.to, settings.mail_sender)


mail_service = MailService()
