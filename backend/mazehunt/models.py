from mazehunt import db
from datetime import datetime, timezone
import secrets
import string
import random

DISPLAY_ID_PREFIX = 'HUNTER-'
DISPLAY_ID_SUFFIX_LENGTH = 4


def utcnow():
    """Naive UTC timestamp; every stored datetime uses this clock."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat(timespec='milliseconds') + 'Z' if value else None


def fit(column, value):
    """Trim a client-supplied string to the length of the given String column."""
    value = value or ''
    length = column.property.columns[0].type.length
    return value[:length] if length else value


def generate_device_id():
    return secrets.token_hex(32)


def generate_display_id():
    """Generate a unique, short display id such as HUNTER-QWER."""
    while True:
        suffix = ''.join(random.choices(string.ascii_uppercase, k=DISPLAY_ID_SUFFIX_LENGTH))
        code = DISPLAY_ID_PREFIX + suffix
        if not DeviceIdentity.query.filter_by(display_id=code).first():
            return code


class DeviceIdentity(db.Model):
    __tablename__ = 'device_identity'
    id = db.Column(db.Integer, primary_key=True)
    device_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    display_id = db.Column(db.String(16), unique=True, nullable=False, index=True)
    # Client-reported environment; advisory only
    fingerprint_user_agent = db.Column(db.String(512), nullable=False, default='')
    screen_resolution = db.Column(db.String(32), nullable=False, default='')
    timezone = db.Column(db.String(64), nullable=False, default='')
    language = db.Column(db.String(32), nullable=False, default='')
    platform = db.Column(db.String(64), nullable=False, default='')
    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    last_active_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    addresses = db.relationship(
        'DeviceAddress',
        back_populates='identity',
        order_by='DeviceAddress.id',
        cascade='all, delete-orphan',
    )

    def __init__(self, **kwargs):
        super(DeviceIdentity, self).__init__(**kwargs)
        if not self.device_id:
            self.device_id = generate_device_id()
        if not self.display_id:
            self.display_id = generate_display_id()

    def has_address(self, address):
        address = fit(DeviceAddress.address, address)
        return any(a.address == address for a in self.addresses)

    def touch_address(self, address, now=None):
        """Refresh last_seen for a known address, else append it."""
        now = now or utcnow()
        address = fit(DeviceAddress.address, address)
        for entry in self.addresses:
            if entry.address == address:
                entry.last_seen = now
                return entry
        entry = DeviceAddress(address=address, first_seen=now, last_seen=now)
        self.addresses.append(entry)
        return entry


class DeviceAddress(db.Model):
    __tablename__ = 'device_address'
    __table_args__ = (db.UniqueConstraint('identity_id', 'address', name='uq_device_address_identity_address'),)
    id = db.Column(db.Integer, primary_key=True)
    identity_id = db.Column(db.Integer, db.ForeignKey('device_identity.id'), nullable=False, index=True)
    address = db.Column(db.String(64), nullable=False, index=True)
    first_seen = db.Column(db.DateTime, default=utcnow, nullable=False)
    last_seen = db.Column(db.DateTime, default=utcnow, nullable=False)
    identity = db.relationship('DeviceIdentity', back_populates='addresses')


class ScoreRecord(db.Model):
    __tablename__ = 'score_record'
    id = db.Column(db.Integer, primary_key=True)
    # Plain reference to DeviceIdentity.device_id; not a foreign key
    device_id = db.Column(db.String(64), nullable=False)
    display_id = db.Column(db.String(16), nullable=False)
    score = db.Column(db.Integer, nullable=False)
    level = db.Column(db.Integer, nullable=False)
    game_time_seconds = db.Column(db.Integer, default=0, nullable=False)
    enemies_defeated = db.Column(db.Integer, default=0, nullable=False)
    treasures_found = db.Column(db.Integer, default=0, nullable=False)
    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    submission_user_agent = db.Column(db.String(512), nullable=False, default='')
    submission_address = db.Column(db.String(64), nullable=False, default='')
    submitted_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'displayId': self.display_id,
            'score': self.score,
            'level': self.level,
            'gameTime': self.game_time_seconds,
            'enemiesDefeated': self.enemies_defeated,
            'treasuresFound': self.treasures_found,
            'createdAt': isoformat(self.created_at),
            'isVerified': self.is_verified,
        }


# Leaderboard ordering and per-device recency lookups
db.Index('ix_score_record_rank', ScoreRecord.score.desc(), ScoreRecord.created_at.desc())
db.Index('ix_score_record_device_recent', ScoreRecord.device_id, ScoreRecord.created_at.desc())
