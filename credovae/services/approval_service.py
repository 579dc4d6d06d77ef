"""
Approval Workflow
Admin review of transactions: approve keeps the debit, reject refunds it.

    PENDING -> SUCCESSFUL (approve)
    PENDING -> REJECTED   (reject; OUTGOING amount credited back)
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import update
from credovae.extensions import db
from credovae.models.account import Account
from credovae.models.transaction import Transaction, TYPES, STATUSES
from credovae.errors import AlreadyResolved, InsufficientFunds, NotFound
from credovae.services.notifications import record_admin_notice
from credovae.services.store import as_utc, clean_text, parse_amount, parse_uuid, store_errors, utcnow

logger = logging.getLogger(__name__)

VALID_TRANSITIONS = {
    "PENDING": {"SUCCESSFUL", "REJECTED"},
    "SUCCESSFUL": set(),
    "REJECTED": set(),
}


def list_pending():
    with store_errors("Listing pending transactions"):
        return (
            Transaction.query.filter_by(status="PENDING")
            .order_by(Transaction.created_at.desc())
            .all()
        )


def list_transactions(status=None, type=None, account_id=None, page=1, per_page=20):
    query = Transaction.query
    if status:
        query = query.filter(Transaction.status == status.upper())
    if type:
        query = query.filter(Transaction.type == type.upper())
    if account_id:
        query = query.filter(Transaction.account_id == parse_uuid(account_id, "Account"))

    with store_errors("Listing transactions"):
        pagination = query.order_by(Transaction.created_at.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )
    return {
        'data': [t.to_dict() for t in pagination.items],
        'pagination': {
            'page': pagination.page,
            'per_page': pagination.per_page,
            'total': pagination.total,
            'total_pages': pagination.pages,
        },
    }


def get_transaction(transaction_id):
    with store_errors("Loading transaction"):
        txn = db.session.get(Transaction, parse_uuid(transaction_id, "Transaction"))
    if txn is None:
        raise NotFound("Transaction not found")
    return txn


def _lock_pending(transaction_id, new_status):
    txn = db.session.get(
        Transaction, parse_uuid(transaction_id, "Transaction"), with_for_update=True
    )
    if txn is None:
        db.session.rollback()
        raise NotFound("Transaction not found")
    if new_status not in VALID_TRANSITIONS.get(txn.status, set()):
        status = txn.status
        db.session.rollback()
        raise AlreadyResolved(f"Transaction is already {status}")
    return txn


def approve(transaction_id):
    """Finalise a pending transaction. The debit was applied at creation."""
    with store_errors("Approving transaction"):
        txn = _lock_pending(transaction_id, "SUCCESSFUL")
        txn.status = "SUCCESSFUL"
        txn.updated_at = utcnow()
        db.session.commit()

    logger.info("Transaction %s approved", txn.transaction_id)
    record_admin_notice(f"Transaction {txn.transaction_id} approved successfully")
    return txn


def reject(transaction_id):
    """Reverse a pending transaction; refund and status flip commit together."""
    with store_errors("Rejecting transaction"):
        txn = _lock_pending(transaction_id, "REJECTED")
        now = utcnow()
        refunded = txn.type == "OUTGOING"
        if refunded:
            result = db.session.execute(
                update(Account)
                .where(Account.account_id == txn.account_id)
                .values(balance=Account.balance + txn.amount, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.session.rollback()
                raise NotFound("Account not found")

        txn.status = "REJECTED"
        txn.updated_at = now
        db.session.commit()

    logger.info("Transaction %s rejected (refunded=%s)", txn.transaction_id, refunded)
    suffix = " Amount refunded to user." if refunded else ""
    record_admin_notice(f"Transaction {txn.transaction_id} rejected.{suffix}")
    return txn


def simulate_transaction(account_id, type, amount, description=None):
    """
    Admin-created PENDING transaction against an account. OUTGOING debits
    immediately with the same compare-and-set as a user transfer.
    """
    type = clean_text(type).upper()
    if type not in TYPES:
        type = "INCOMING"
    amount = parse_amount(amount)

    with store_errors("Simulating transaction"):
        account = db.session.get(Account, parse_uuid(account_id, "Account"))
        if account is None:
            raise NotFound("Account not found")

        now = utcnow()
        if type == "OUTGOING":
            result = db.session.execute(
                update(Account)
                .where(Account.account_id == account.account_id, Account.balance >= amount)
                .values(balance=Account.balance - amount, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.session.rollback()
                raise InsufficientFunds("Insufficient balance for this transaction")

        txn = Transaction(
            account_id=account.account_id,
            type=type,
            amount=amount,
            recipient_name="Bank Transfer",
            recipient_bank="Internal",
            recipient_account=f"TXN-{int(now.timestamp() * 1000)}",
            description=clean_text(description) or "Account Credit",
            status="PENDING",
            created_at=now,
        )
        db.session.add(txn)
        db.session.commit()

    record_admin_notice(
        f"Transaction simulated: {type} ${amount:.2f}. Status: Pending"
    )
    return txn


def _summarise(transactions):
    incoming = sum(
        (Decimal(t.amount) for t in transactions if t.type == "INCOMING" and t.status == "SUCCESSFUL"),
        Decimal("0"),
    )
    outgoing = sum(
        (Decimal(t.amount) for t in transactions if t.type == "OUTGOING" and t.status == "SUCCESSFUL"),
        Decimal("0"),
    )
    return {
        "incoming_total": incoming,
        "outgoing_total": outgoing,
        "pending_count": sum(1 for t in transactions if t.status == "PENDING"),
        "transaction_count": len(transactions),
    }


def get_stats(account_id=None):
    """
    Totals of resolved incoming/outgoing amounts and pending count.
    Recomputed from the full transaction set on every call.
    """
    query = Transaction.query
    if account_id is not None:
        query = query.filter(Transaction.account_id == parse_uuid(account_id, "Account"))
    with store_errors("Computing stats"):
        transactions = query.all()
    return _summarise(transactions)


def get_admin_stats(today=None):
    with store_errors("Computing stats"):
        transactions = Transaction.query.all()
    stats = _summarise(transactions)

    today = today or datetime.now(timezone.utc).date()
    stats.update({
        status.lower() + "_count": sum(1 for t in transactions if t.status == status)
        for status in STATUSES
    })
    stats["approved_today_count"] = sum(
        1 for t in transactions
        if t.status == "SUCCESSFUL"
        and as_utc(t.updated_at or t.created_at).date() == today
    )
    return stats


def stats_to_dict(stats):
    return {
        key: float(value) if isinstance(value, Decimal) else value
        for key, value in stats.items()
    }
