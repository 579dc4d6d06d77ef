"""
Account Service
Login-time provisioning, dashboards, messages and profile revalidation.
"""

import logging
from decimal import Decimal
from flask import current_app
from credovae.extensions import db
from credovae.models.account import Account
from credovae.models.message import Message
from credovae.models.transaction import Transaction
from credovae.models.user import User, ADMIN_ROLES
from credovae.errors import Forbidden, MissingField, NotFound, Unauthorized
from credovae.services import approval_service
from credovae.services.store import clean_text, parse_uuid, store_errors, utcnow

logger = logging.getLogger(__name__)

TRANSACTION_FILTERS = ("all", "INCOMING", "OUTGOING", "PENDING")
NAME_MAX_LENGTH = 255


def authenticate(email, password, admin_only=False):
    with store_errors("Authenticating"):
        user = User.query.filter_by(email=clean_text(email).lower()).first()

    if user is None or not user.check_password(str(password or '')):
        raise Unauthorized("Invalid email or password")
    if not user.is_active:
        raise Forbidden("Account is deactivated")
    if admin_only and user.role not in ADMIN_ROLES:
        raise Unauthorized("Invalid credentials or insufficient permissions")
    return user


def ensure_account(user):
    """Return the user's account, opening one with the default balance if missing."""
    with store_errors("Loading account"):
        account = Account.query.filter_by(user_id=user.user_id).first()
        if account is None:
            account = Account(
                user_id=user.user_id,
                balance=Decimal(str(current_app.config['DEFAULT_OPENING_BALANCE'])),
            )
            db.session.add(account)
            db.session.commit()
            logger.info("Opened account %s for %s", account.account_number, user.email)
    return account


def load_principal(user_id, roles=None):
    """
    Re-read the caller's profile. Token claims are never trusted for role or
    active status.
    """
    with store_errors("Loading profile"):
        user = db.session.get(User, parse_uuid(user_id, "User"))
    if user is None:
        raise Unauthorized("User not found")
    if not user.is_active:
        raise Forbidden("Account is deactivated")
    if roles is not None and user.role not in roles:
        raise Forbidden()
    return user


def get_account(user):
    with store_errors("Loading account"):
        account = Account.query.filter_by(user_id=user.user_id).first()
    if account is None:
        raise NotFound("Account not found")
    return account


def list_account_transactions(account, view='all'):
    query = Transaction.query.filter_by(account_id=account.account_id)
    if view in ("INCOMING", "OUTGOING"):
        query = query.filter(Transaction.type == view)
    elif view == "PENDING":
        query = query.filter(Transaction.status == "PENDING")
    with store_errors("Loading transactions"):
        return query.order_by(Transaction.created_at.desc()).all()


def get_dashboard(user):
    account = get_account(user)
    stats = approval_service.get_stats(account.account_id)
    recent = list_account_transactions(account)[:5]
    return {
        'user': user.to_dict(),
        'account': account.to_dict(),
        'stats': approval_service.stats_to_dict(stats),
        'recent_transactions': [t.to_dict() for t in recent],
    }


def list_messages(user):
    """Messages newest first; opening the list marks them read."""
    with store_errors("Loading messages"):
        messages = (
            Message.query.filter_by(user_id=user.user_id)
            .order_by(Message.created_at.desc())
            .all()
        )
        payload = [m.to_dict() for m in messages]
        unread = [m for m in messages if not m.is_read]
        for m in unread:
            m.is_read = True
        if unread:
            db.session.commit()
            logger.info("Marked %d messages as read for %s", len(unread), user.email)
    return payload


def unread_count(user):
    with store_errors("Counting messages"):
        return Message.query.filter_by(user_id=user.user_id, is_read=False).count()


def touch_last_seen(user):
    with store_errors("Updating last seen"):
        user.last_seen = utcnow()
        db.session.commit()
    return user


def update_profile(user, data):
    """Self-service edit of the caller's display name."""
    name = clean_text((data or {}).get('name'))
    if not name:
        raise MissingField(['name'], message='Please enter a name')
    if len(name) > NAME_MAX_LENGTH:
        raise MissingField(['name'], message=f'Name must be at most {NAME_MAX_LENGTH} characters')
    with store_errors("Updating profile"):
        user.name = name
        user.updated_at = utcnow()
        db.session.commit()
    logger.info("Profile name updated for %s", user.email)
    return user
