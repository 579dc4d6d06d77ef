"""
Transfer Attempt Model
State: DETAILS_ENTERED | CODE_SENT | COMPLETED | ABANDONED
"""

import uuid
from datetime import datetime, timezone
from credovae.extensions import db

STATES = ("DETAILS_ENTERED", "CODE_SENT", "COMPLETED", "ABANDONED")


class TransferAttempt(db.Model):
    __tablename__ = "transfer_attempts"

    attempt_id = db.Column(db.UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(
        db.UUID(as_uuid=True),
        db.ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    account_id = db.Column(
        db.UUID(as_uuid=True),
        db.ForeignKey("accounts.account_id", ondelete="CASCADE"),
        nullable=False,
    )
    recipient_name = db.Column(db.String(255), nullable=False)
    recipient_bank = db.Column(db.String(255), nullable=False)
    recipient_account = db.Column(db.String(64), nullable=False)
    recipient_country = db.Column(db.String(2), nullable=False)
    routing_code = db.Column(db.String(64))
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.Text)
    code_id = db.Column(db.UUID(as_uuid=True), nullable=True)
    transaction_id = db.Column(db.UUID(as_uuid=True), nullable=True)
    state = db.Column(
        db.Enum(*STATES, name="transfer_state"),
        nullable=False,
        default="DETAILS_ENTERED",
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "attempt_id":        str(self.attempt_id),
            "state":             self.state,
            "recipient_name":    self.recipient_name,
            "recipient_bank":    self.recipient_bank,
            "recipient_account": self.recipient_account,
            "recipient_country": self.recipient_country,
            "routing_code":      self.routing_code,
            "amount":            float(self.amount),
            "description":       self.description or "",
            "transaction_id":    str(self.transaction_id) if self.transaction_id else None,
            "created_at":        self.created_at.isoformat(),
        }
