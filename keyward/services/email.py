"""Outbound activation email.

Delivery goes through the Resend HTTP API. Registration only depends on the
``EmailSender`` protocol, so tests swap in a recording fake.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import httpx
import structlog

from keyward.config import EmailConfig

logger = structlog.get_logger()

DEFAULT_TEMPLATE = """\
<!DOCTYPE html>
<html>
  <body style="font-family: sans-serif;">
    <p>Your activation code:</p>
    <p style="font-size: 20px; font-family: monospace;"><strong>{{code}}</strong></p>
    <p>Exchange it once for your API key. If you did not request it, ignore this email.</p>
  </body>
</html>
"""


class EmailDeliveryError(Exception):
    """The email provider did not accept the message."""


class EmailSender(Protocol):
    async def send_activation_code(self, to: str, code: str) -> None: ...


def load_template(config: EmailConfig) -> str:
    """Read the configured HTML template, or fall back to the built-in one."""
    if config.template_path:
        return Path(config.template_path).read_text()
    return DEFAULT_TEMPLATE


class ResendEmailSender:
    """Sends activation codes through Resend."""

    def __init__(
        self,
        config: EmailConfig,
        client: httpx.AsyncClient,
        template: str | None = None,
    ) -> None:
        if not config.resend_api_key:
            raise ValueError("resend_api_key is required")
        self._config = config
        self._client = client
        self._template = template if template is not None else load_template(config)
        self._log = logger.bind(component="email")

    def render(self, code: str) -> str:
        return self._template.replace("{{code}}", code)

    async def send_activation_code(self, to: str, code: str) -> None:
        """Deliver ``code`` to ``to``.

        Raises:
            EmailDeliveryError: On transport failure or a non-2xx response
        """
        payload = {
            "from": self._config.sender,
            "to": [to],
            "subject": self._config.subject,
            "html": self.render(code),
        }
        try:
            response = await self._client.post(
                self._config.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self._config.resend_api_key}"},
                timeout=self._config.timeout,
            )
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"Email transport failed: {exc}") from exc

        if response.status_code >= 300:
            raise EmailDeliveryError(
                f"Email provider returned HTTP {response.status_code}: {response.text[:200]}"
            )

        self._log.info("email.activation_code.sent", to=to)
