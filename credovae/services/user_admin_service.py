"""
User administration for the admin console: list, create, edit, adjust
balance, toggle active, delete and message users. Every operation checks the
actor's role against the target's through services.authorization.
"""

import logging
import re
from decimal import Decimal
from sqlalchemy import update
from credovae.extensions import db
from credovae.models.account import Account
from credovae.models.message import Message
from credovae.models.user import User
from credovae.errors import (
    Conflict,
    Forbidden,
    InsufficientFunds,
    MissingField,
    NotFound,
)
from credovae.services.authorization import can_assign_role, can_edit, can_view, visible_roles
from credovae.services.notifications import record_admin_notice
from credovae.services.store import clean_text, parse_amount, parse_balance, parse_uuid, store_errors, utcnow

logger = logging.getLogger(__name__)

EMAIL_REGEX = r'^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$'
MIN_PASSWORD_LENGTH = 8


def _user_row(user):
    data = user.to_dict()
    account = user.account
    data['account_id'] = str(account.account_id) if account else None
    data['account_number'] = account.account_number if account else 'N/A'
    data['balance'] = float(account.balance) if account else 0.0
    return data


def list_users(actor, search=None):
    query = User.query.filter(User.role.in_(visible_roles(actor.role)))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(User.email.ilike(like), User.name.ilike(like)))
    with store_errors("Listing users"):
        users = query.order_by(User.created_at.desc()).all()
        return [_user_row(u) for u in users]


def get_user(actor, user_id, for_edit=False):
    with store_errors("Loading user"):
        user = db.session.get(User, parse_uuid(user_id, "User"))
    # Hidden profiles look the same as missing ones
    if user is None or not can_view(actor.role, user.role):
        raise NotFound("User not found")
    if for_edit and not can_edit(actor.role, user.role):
        raise Forbidden("You cannot modify this user")
    return user


def user_details(user):
    return _user_row(user)


def create_user(actor, data):
    data = data if isinstance(data, dict) else {}
    fields = {f: clean_text(data.get(f)) for f in ('email', 'name', 'account_number')}
    # Passwords are taken verbatim
    fields['password'] = '' if data.get('password') is None else str(data['password'])
    missing = [f for f in ('email', 'name', 'password') if not fields[f]]
    if missing:
        raise MissingField(missing)

    email = fields['email'].lower()
    if not re.match(EMAIL_REGEX, email):
        raise MissingField(['email'], message='Invalid email format')
    if len(fields['password']) < MIN_PASSWORD_LENGTH:
        raise MissingField(['password'], message=f'Password must be at least {MIN_PASSWORD_LENGTH} characters')

    # Only the elevated role may pick a role; everyone else creates plain users
    role = clean_text(data.get('role')) or 'user'
    if role != 'user' and not can_assign_role(actor.role, role):
        logger.info("Role %r requested by %s forced to user", role, actor.email)
        role = 'user'

    balance = Decimal('0')
    if clean_text(data.get('balance')):
        balance = parse_balance(data['balance'])

    with store_errors("Creating user"):
        if User.query.filter_by(email=email).first():
            raise Conflict('Email already exists')

        user = User(email=email, name=fields['name'], role=role, is_active=True)
        user.set_password(fields['password'])
        db.session.add(user)
        db.session.flush()

        account_kwargs = {'user_id': user.user_id, 'balance': balance}
        if fields['account_number']:
            account_kwargs['account_number'] = fields['account_number']
            if Account.query.filter_by(account_number=account_kwargs['account_number']).first():
                db.session.rollback()
                raise Conflict('Account number already exists')
        db.session.add(Account(**account_kwargs))
        db.session.commit()

    record_admin_notice(f'New user "{user.display_name}" created successfully.')
    return user


def update_user(actor, user_id, data):
    """Update a user's name and/or set their balance outright."""
    data = data if isinstance(data, dict) else {}
    user = get_user(actor, user_id, for_edit=True)
    name = clean_text(data.get('name'))
    balance = parse_balance(data['balance']) if clean_text(data.get('balance')) else None

    with store_errors("Updating user"):
        if name:
            user.name = name
            user.updated_at = utcnow()

        if balance is not None:
            if user.account is None:
                raise NotFound("Account not found")
            user.account.balance = balance
            user.account.updated_at = utcnow()

        db.session.commit()

    record_admin_notice(f'User "{user.display_name}" updated successfully.')
    return user


def adjust_balance(actor, user_id, amount, direction):
    """Quick credit/debit, applied in SQL against the stored balance."""
    user = get_user(actor, user_id, for_edit=True)
    amount = parse_amount(amount)

    with store_errors("Adjusting balance"):
        account = user.account
        if account is None:
            raise NotFound("Account not found")

        stmt = update(Account).where(Account.account_id == account.account_id)
        if direction == 'debit':
            stmt = stmt.where(Account.balance >= amount)
            new_balance = Account.balance - amount
        else:
            new_balance = Account.balance + amount
        result = db.session.execute(
            stmt.values(balance=new_balance, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise InsufficientFunds()
        db.session.commit()
        db.session.refresh(account)

    verb = 'Debited' if direction == 'debit' else 'Credited'
    prep = 'from' if direction == 'debit' else 'to'
    record_admin_notice(f"{verb} ${amount:.2f} {prep} {user.display_name}")
    return account


def toggle_active(actor, user_id):
    user = get_user(actor, user_id, for_edit=True)
    if user.user_id == actor.user_id:
        raise Conflict("You cannot deactivate yourself")
    with store_errors("Toggling user status"):
        user.is_active = not user.is_active
        user.updated_at = utcnow()
        db.session.commit()
    state = 'Active' if user.is_active else 'Inactive'
    record_admin_notice(f"User status changed to {state}")
    return user


def delete_user(actor, user_id):
    user = get_user(actor, user_id, for_edit=True)
    if user.user_id == actor.user_id:
        raise Conflict("You cannot delete yourself")
    name = user.display_name
    with store_errors("Deleting user"):
        db.session.delete(user)
        db.session.commit()
    record_admin_notice(f'User "{name}" deleted successfully.')


def send_message(actor, user_id, text):
    user = get_user(actor, user_id)
    text = clean_text(text)
    if not text:
        raise MissingField(['message_text'], message='Please enter a message')
    with store_errors("Sending message"):
        message = Message(admin_id=actor.user_id, user_id=user.user_id, message_text=text)
        db.session.add(message)
        db.session.commit()
    record_admin_notice(f"Message sent to {user.display_name}")
    return message
