import uuid
import bcrypt
from datetime import datetime, timezone, timedelta
from credovae.extensions import db

ROLES = ("user", "admin", "master_admin")
ADMIN_ROLES = ("admin", "master_admin")

ONLINE_WINDOW = timedelta(minutes=5)


class User(db.Model):
    __tablename__ = 'users'

    user_id = db.Column(db.UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(255))
    password_hash = db.Column(db.Text, nullable=False)
    role = db.Column(db.String(20), nullable=False, default='user')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_seen = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    account = db.relationship(
        'Account', back_populates='owner', uselist=False, cascade='all, delete-orphan'
    )

    def set_password(self, password):
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    def check_password(self, password):
        return bcrypt.checkpw(password.encode('utf-8'), self.password_hash.encode('utf-8'))

    @property
    def display_name(self):
        return self.name or self.email.split('@')[0]

    @property
    def is_admin(self):
        return self.role in ADMIN_ROLES

    def online_status(self, now=None):
        if not self.last_seen:
            return 'Never'
        now = now or datetime.now(timezone.utc)
        last_seen = self.last_seen
        if last_seen.tzinfo is None:
            last_seen = last_seen.replace(tzinfo=timezone.utc)
        return 'Online' if now - last_seen <= ONLINE_WINDOW else 'Offline'

    def to_dict(self):
        return {
            'user_id': str(self.user_id),
            'email': self.email,
            'name': self.display_name,
            'role': self.role,
            'is_active': self.is_active,
            'last_seen': self.last_seen.isoformat() if self.last_seen else None,
            'online_status': self.online_status(),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
