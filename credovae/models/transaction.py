"""
Transaction Model
Type:   INCOMING | OUTGOING
Status: PENDING | SUCCESSFUL | REJECTED
"""

import uuid
from datetime import datetime, timezone
from credovae.extensions import db

TYPES = ("INCOMING", "OUTGOING")
STATUSES = ("PENDING", "SUCCESSFUL", "REJECTED")


class Transaction(db.Model):
    __tablename__ = "transactions"

    transaction_id = db.Column(
        db.UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    account_id = db.Column(
        db.UUID(as_uuid=True),
        db.ForeignKey("accounts.account_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = db.Column(
        db.Enum(*TYPES, name="transaction_type"),
        nullable=False
    )
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    recipient_name = db.Column(db.String(255), nullable=False)
    recipient_bank = db.Column(db.String(255))
    recipient_account = db.Column(db.String(64))
    recipient_country = db.Column(db.String(2))
    routing_code = db.Column(db.String(64))
    description = db.Column(db.Text)
    status = db.Column(
        db.Enum(*STATUSES, name="transaction_status"),
        nullable=False,
        default="PENDING",
        index=True,
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )

    account = db.relationship("Account", back_populates="transactions")

    def to_dict(self):
        return {
            "transaction_id":    str(self.transaction_id),
            "account_id":        str(self.account_id),
            "type":              self.type,
            "amount":            float(self.amount),
            "recipient_name":    self.recipient_name,
            "recipient_bank":    self.recipient_bank,
            "recipient_account": self.recipient_account,
            "recipient_country": self.recipient_country,
            "routing_code":      self.routing_code,
            "description":       self.description or "",
            "status":            self.status,
            "created_at":        self.created_at.isoformat(),
            "updated_at":        self.updated_at.isoformat() if self.updated_at else None,
        }
