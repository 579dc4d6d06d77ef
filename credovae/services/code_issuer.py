"""
Code Issuer
Issues one-time numeric codes and verifies submissions against their stored hash.
"""

import hashlib
import hmac
import logging
import re
import secrets
from datetime import timedelta
from flask import current_app
from credovae.extensions import db
from credovae.models.otp_code import OneTimeCode
from credovae.errors import AlreadyUsed, Expired, InvalidCode, NotFound, TooManyAttempts
from credovae.services.store import as_utc, clean_text, parse_uuid, store_errors, utcnow

logger = logging.getLogger(__name__)


def hash_code(code):
    return hashlib.sha256(code.encode('utf-8')).hexdigest()


def generate_code(length):
    # Uniform over the full 10**length space, zero-padded
    return str(secrets.randbelow(10 ** length)).zfill(length)


def issue(owner_id, commit=True):
    """
    Create a code for owner_id. Returns (code_id, plaintext).

    Only the hash is stored; the plaintext is handed back for out-of-band delivery.
    """
    config = current_app.config
    plaintext = generate_code(config['OTP_LENGTH'])
    record = OneTimeCode(
        user_id=owner_id,
        code_hash=hash_code(plaintext),
        expires_at=utcnow() + timedelta(minutes=config['OTP_EXPIRY_MINUTES']),
        attempts=0,
        consumed=False,
    )
    with store_errors('Issuing OTP'):
        db.session.add(record)
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    return record.code_id, plaintext


def revoke(code_id):
    """Delete a code that was never delivered."""
    with store_errors('Revoking OTP'):
        record = db.session.get(OneTimeCode, parse_uuid(code_id, 'OTP'))
        if record is not None:
            db.session.delete(record)
            db.session.commit()


def verify(code_id, submitted, commit=True):
    """
    Check a submitted code, consuming it on success.

    Failure order: NotFound, AlreadyUsed, Expired, TooManyAttempts, InvalidCode.
    A mismatch increments attempts once and is committed before raising. With
    commit=False a successful match is left in the session so the caller can
    commit it together with its own writes.
    """
    code_id = parse_uuid(code_id, 'OTP')
    config = current_app.config
    max_attempts = config['OTP_MAX_ATTEMPTS']
    length = config['OTP_LENGTH']

    with store_errors('Verifying OTP'):
        # Row lock serialises concurrent submissions on the attempt counter;
        # always re-read so a code consumed by another session is seen
        record = db.session.get(
            OneTimeCode, code_id, with_for_update=True, populate_existing=True
        )
        if record is None:
            db.session.rollback()
            raise NotFound("OTP not found")

        if record.consumed:
            db.session.rollback()
            raise AlreadyUsed()

        if utcnow() > as_utc(record.expires_at):
            db.session.rollback()
            raise Expired()

        if record.attempts >= max_attempts:
            db.session.rollback()
            raise TooManyAttempts()

        submitted = clean_text(submitted)
        well_formed = re.fullmatch(rf'\d{{{length}}}', submitted) is not None
        if not well_formed or not hmac.compare_digest(hash_code(submitted), record.code_hash):
            attempts = record.attempts + 1
            record.attempts = attempts
            db.session.commit()
            logger.info("OTP %s mismatch (%d/%d)", code_id, attempts, max_attempts)
            raise InvalidCode(attempts_remaining=max(max_attempts - attempts, 0))

        record.consumed = True
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    return record
