import uuid
from datetime import datetime, timezone
from credovae.extensions import db


class OneTimeCode(db.Model):
    __tablename__ = 'otp_codes'

    code_id = db.Column(db.UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(
        db.UUID(as_uuid=True),
        db.ForeignKey('users.user_id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    # SHA-256 hex of the code; the plaintext is only ever emailed
    code_hash = db.Column(db.String(64), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    consumed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'code_id': str(self.code_id),
            'user_id': str(self.user_id),
            'expires_at': self.expires_at.isoformat(),
            'attempts': self.attempts,
            'consumed': self.consumed,
        }
