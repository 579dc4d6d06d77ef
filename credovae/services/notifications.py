"""
Notification Sink
Out-of-band code delivery (email) and the admin notice board.
"""

import logging
import threading
import time
from collections import deque
from datetime import datetime, timezone
from decimal import Decimal
from flask import current_app

logger = logging.getLogger(__name__)

OTP_EMAIL_SUBJECT = 'Credovae Bank - Your Transaction OTP'


def get_email_sender():
    return current_app.extensions['email_sender']


def get_notice_board():
    return current_app.extensions['notice_board']


def render_code_email(user_name, recipient_name, amount, code, expiry_minutes):
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #2563eb;">Transaction Verification</h2>
      <p>Hello {user_name},</p>
      <p>You are initiating a transfer of <strong>${Decimal(amount):.2f}</strong> to <strong>{recipient_name}</strong>.</p>
      <div style="background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <p style="margin: 0; font-size: 14px; color: #6b7280;">Your OTP Code:</p>
        <h1 style="margin: 10px 0; font-size: 36px; letter-spacing: 8px; color: #2563eb;">{code}</h1>
        <p style="margin: 0; font-size: 12px; color: #6b7280;">Valid for {expiry_minutes} minutes</p>
      </div>
      <p style="color: #ef4444; font-size: 14px;">Never share this code with anyone</p>
    </div>
    """


def send_code(recipient_email, payload):
    """
    Email a one-time code. payload: user_name, recipient_name, amount, code.
    Returns True on delivery; any sender error counts as a failure.
    """
    html = render_code_email(
        payload['user_name'],
        payload['recipient_name'],
        payload['amount'],
        payload['code'],
        current_app.config['OTP_EXPIRY_MINUTES'],
    )
    try:
        delivered = get_email_sender().send(recipient_email, OTP_EMAIL_SUBJECT, html)
    except Exception as e:
        logger.error("OTP email to %s raised: %s", recipient_email, e)
        return False
    if delivered:
        logger.info("OTP email sent to %s", recipient_email)
    return bool(delivered)


class NoticeBoard:
    """Bounded in-memory list of admin console notices."""

    def __init__(self, maxlen=500):
        self._notices = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def append(self, message, type='info'):
        notice = {
            'id': f"NOT{time.time_ns()}",
            'message': message,
            'type': type,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }
        with self._lock:
            self._notices.append(notice)
        return notice

    def list(self):
        # Newest first
        with self._lock:
            return list(reversed(self._notices))

    def delete(self, notice_id):
        with self._lock:
            for notice in self._notices:
                if notice['id'] == notice_id:
                    self._notices.remove(notice)
                    return True
        return False

    def clear(self):
        with self._lock:
            self._notices.clear()


def record_admin_notice(message, type='info'):
    """Fire-and-forget: never raises into the calling workflow."""
    try:
        get_notice_board().append(message, type=type)
    except Exception as e:
        logger.warning("Could not record admin notice %r: %s", message, e)
