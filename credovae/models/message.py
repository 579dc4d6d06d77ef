import uuid
from datetime import datetime, timezone
from credovae.extensions import db


class Message(db.Model):
    __tablename__ = 'messages'

    message_id = db.Column(db.UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = db.Column(db.UUID(as_uuid=True), db.ForeignKey('users.user_id', ondelete='SET NULL'))
    user_id = db.Column(
        db.UUID(as_uuid=True),
        db.ForeignKey('users.user_id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    message_text = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'message_id': str(self.message_id),
            'message_text': self.message_text,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
