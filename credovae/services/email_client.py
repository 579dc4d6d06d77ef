"""
Transactional email senders.

ResendEmailSender posts to the Resend REST API. ConsoleEmailSender only logs,
for local development without an API key. Neither retries.
"""

import logging
import requests

logger = logging.getLogger(__name__)

RESEND_API_URL = 'https://api.resend.com/emails'


class ResendEmailSender:
    def __init__(self, api_key, from_email, api_url=RESEND_API_URL, timeout=5.0):
        self.api_key = api_key
        self.from_email = from_email
        self.api_url = api_url
        self.timeout = timeout

    def send(self, to, subject, html):
        """Returns True when Resend accepted the message."""
        try:
            resp = requests.post(
                self.api_url,
                json={'from': self.from_email, 'to': to, 'subject': subject, 'html': html},
                headers={'Authorization': f'Bearer {self.api_key}'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Email send to %s failed: %s", to, e)
            return False

        if not resp.ok:
            logger.error("Email send to %s rejected (%s): %s", to, resp.status_code, resp.text)
            return False
        return True


class ConsoleEmailSender:
    def send(self, to, subject, html):
        logger.info("EMAIL to=%s subject=%r\n%s", to, subject, html)
        return True


def build_email_sender(config):
    backend = config.get('EMAIL_BACKEND', 'console')
    if backend == 'resend':
        return ResendEmailSender(
            api_key=config['RESEND_API_KEY'],
            from_email=config['RESEND_FROM_EMAIL'],
            timeout=config.get('EMAIL_TIMEOUT', 5.0),
        )
    if backend == 'console':
        return ConsoleEmailSender()
    raise ValueError(f"Unknown EMAIL_BACKEND: {backend}")
