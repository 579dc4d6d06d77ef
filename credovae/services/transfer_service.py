"""
Transfer Orchestrator
Drives an OTP-gated outgoing transfer:
    DETAILS_ENTERED -> CODE_SENT -> COMPLETED
    DETAILS_ENTERED | CODE_SENT -> ABANDONED

The balance is only debited in complete(), after the code is verified, in the
same database transaction that consumes the code and inserts the PENDING
transaction record.
"""

import logging
from decimal import Decimal
from sqlalchemy import update
from credovae.extensions import db
from credovae.models.account import Account
from credovae.models.transaction import Transaction
from credovae.models.transfer_attempt import TransferAttempt
from credovae.errors import (
    Conflict,
    DeliveryFailure,
    InsufficientFunds,
    MissingField,
    NotFound,
)
from credovae.services import code_issuer
from credovae.services.notifications import record_admin_notice, send_code
from credovae.services.routing_codes import validate_routing_code
from credovae.services.store import clean_text, parse_amount, parse_uuid, store_errors, utcnow

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = [
    "recipient_name",
    "recipient_bank",
    "recipient_account",
    "amount",
    "recipient_country",
]

OPEN_STATES = ("DETAILS_ENTERED", "CODE_SENT")


def validate(details, balance):
    """
    Validate transfer details against the sender's current balance.
    Returns a cleaned dict ready to persist.
    """
    details = details if isinstance(details, dict) else {}
    missing = [
        f for f in REQUIRED_FIELDS
        if clean_text(details.get(f)) == ""
    ]
    if missing:
        raise MissingField(missing)

    amount = parse_amount(details["amount"])
    if amount > Decimal(balance):
        raise InsufficientFunds(current_balance=float(balance))

    country = clean_text(details["recipient_country"]).upper()
    routing_code = validate_routing_code(country, details.get("routing_code"))

    return {
        "recipient_name":    clean_text(details["recipient_name"]),
        "recipient_bank":    clean_text(details["recipient_bank"]),
        "recipient_account": clean_text(details["recipient_account"]),
        "recipient_country": country,
        "routing_code":      routing_code,
        "amount":            amount,
        "description":       clean_text(details.get("description")),
    }


def _get_account_for(user):
    account = Account.query.filter_by(user_id=user.user_id).first()
    if account is None:
        raise NotFound("Account not found")
    return account


def _get_attempt(attempt_id, user, lock=False):
    attempt = db.session.get(
        TransferAttempt, parse_uuid(attempt_id, "Transfer"), with_for_update=lock
    )
    if attempt is None or attempt.user_id != user.user_id:
        raise NotFound("Transfer not found")
    return attempt


def validate_for_user(user, details):
    with store_errors("Loading account"):
        account = _get_account_for(user)
    return validate(details, account.balance)


def initiate(user, details):
    """
    Validate, persist the attempt, issue a code and email it.

    On delivery failure the code is deleted, the attempt is abandoned and
    DeliveryFailure is raised. The balance is not touched here.
    """
    with store_errors("Initiating transfer"):
        account = _get_account_for(user)
        cleaned = validate(details, account.balance)

        attempt = TransferAttempt(
            user_id=user.user_id,
            account_id=account.account_id,
            state="DETAILS_ENTERED",
            **cleaned,
        )
        db.session.add(attempt)
        db.session.flush()

        code_id, plaintext = code_issuer.issue(user.user_id, commit=False)
        attempt.code_id = code_id
        db.session.commit()

    delivered = send_code(user.email, {
        "user_name": user.display_name,
        "recipient_name": attempt.recipient_name,
        "amount": attempt.amount,
        "code": plaintext,
    })

    with store_errors("Recording code delivery"):
        if not delivered:
            code_issuer.revoke(code_id)
            attempt.code_id = None
            attempt.state = "ABANDONED"
            attempt.updated_at = utcnow()
            db.session.commit()
            raise DeliveryFailure()

        attempt.state = "CODE_SENT"
        attempt.updated_at = utcnow()
        db.session.commit()

    logger.info("Transfer %s code sent to %s", attempt.attempt_id, user.email)
    return attempt


def complete(attempt_id, user, submitted_code):
    """
    Verify the code and, in one database transaction, consume it, debit the
    account and create a PENDING OUTGOING transaction.

    Any failure leaves the attempt in CODE_SENT with the balance unchanged.
    """
    with store_errors("Completing transfer"):
        attempt = _get_attempt(attempt_id, user)
        if attempt.state == "COMPLETED":
            raise Conflict("Transfer already completed")
        if attempt.state != "CODE_SENT" or attempt.code_id is None:
            raise Conflict(f"Transfer is {attempt.state}, no code outstanding")

        code_issuer.verify(attempt.code_id, submitted_code, commit=False)

        # Compare-and-set against the stored balance, never a cached copy
        now = utcnow()
        result = db.session.execute(
            update(Account)
            .where(Account.account_id == attempt.account_id, Account.balance >= attempt.amount)
            .values(balance=Account.balance - attempt.amount, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise InsufficientFunds()

        txn = Transaction(
            account_id=attempt.account_id,
            type="OUTGOING",
            amount=attempt.amount,
            recipient_name=attempt.recipient_name,
            recipient_bank=attempt.recipient_bank,
            recipient_account=attempt.recipient_account,
            recipient_country=attempt.recipient_country,
            routing_code=attempt.routing_code,
            description=attempt.description,
            status="PENDING",
            created_at=now,
        )
        db.session.add(txn)
        db.session.flush()

        attempt.state = "COMPLETED"
        attempt.transaction_id = txn.transaction_id
        attempt.updated_at = now
        db.session.commit()

    logger.info("Transfer %s completed as transaction %s", attempt.attempt_id, txn.transaction_id)
    record_admin_notice(
        f"New transfer of ${txn.amount:.2f} to {txn.recipient_name} awaiting approval"
    )
    return txn


def cancel(attempt_id, user):
    """Abandon an open attempt. No balance was moved, so there is nothing to undo."""
    with store_errors("Cancelling transfer"):
        attempt = _get_attempt(attempt_id, user, lock=True)
        if attempt.state not in OPEN_STATES:
            raise Conflict(f"Cannot cancel a {attempt.state} transfer")
        attempt.state = "ABANDONED"
        attempt.updated_at = utcnow()
        db.session.commit()
    return attempt
