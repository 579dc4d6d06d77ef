import uuid
import secrets
from datetime import datetime, timezone
from credovae.extensions import db


def generate_account_number():
    return 'ACC' + ''.join(secrets.choice('0123456789') for _ in range(10))


class Account(db.Model):
    __tablename__ = 'accounts'

    account_id = db.Column(db.UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(
        db.UUID(as_uuid=True),
        db.ForeignKey('users.user_id', ondelete='CASCADE'),
        unique=True,
        nullable=False,
    )
    account_number = db.Column(db.String(32), unique=True, nullable=False, default=generate_account_number)
    balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.CheckConstraint('balance >= 0', name='ck_accounts_balance_non_negative'),
    )

    owner = db.relationship('User', back_populates='account')
    transactions = db.relationship(
        'Transaction', back_populates='account', cascade='all, delete-orphan'
    )

    def to_dict(self):
        return {
            'account_id': str(self.account_id),
            'user_id': str(self.user_id),
            'account_number': self.account_number,
            'balance': float(self.balance or 0),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
