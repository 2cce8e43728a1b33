from datetime import datetime, timezone

from flask import current_app
from flask_login import UserMixin

from arena import db, bcrypt

ROLE_ADMIN = 'admin'
ROLE_PARTICIPANT = 'participant'


def _utcnow():
    return datetime.now(timezone.utc)


def _starting_coins():
    return current_app.config.get('STARTING_COINS', 1000)


class Participant(UserMixin, db.Model):
    __tablename__ = 'participant'
    id = db.Column(db.Integer, primary_key=True)
    identity = db.Column(db.String(64), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    password_hash = db.Column(db.String(128), nullable=False)
    role = db.Column(db.String(16), default=ROLE_PARTICIPANT, nullable=False)
    is_girl = db.Column(db.Boolean, default=False, nullable=False)
    # Sparse: admins never get a number
    assigned_number = db.Column(db.Integer, unique=True, nullable=True)
    coins = db.Column(db.Integer, default=_starting_coins, nullable=False)
    is_eliminated = db.Column(db.Boolean, default=False, nullable=False)
    session_token = db.Column(db.String(64), nullable=True)
    connection_id = db.Column(db.String(64), nullable=True, index=True)
    won_items = db.relationship(
        'WonItem',
        back_populates='participant',
        order_by='WonItem.id',
        cascade='all, delete-orphan',
    )

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'identity': self.identity,
            'name': self.name,
            'role': self.role,
            'is_girl': self.is_girl,
            'assigned_number': self.assigned_number,
            'coins': self.coins,
            'is_eliminated': self.is_eliminated,
            'won_items': [item.to_dict() for item in self.won_items],
        }


class WonItem(db.Model):
    __tablename__ = 'won_item'
    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('participant.id'), nullable=False)
    item_name = db.Column(db.String(128), nullable=False)
    winning_bid = db.Column(db.Integer, nullable=False)
    participant = db.relationship('Participant', back_populates='won_items')

    def to_dict(self):
        return {
            'name': self.item_name,
            'winning_bid': self.winning_bid,
        }


class AuditEntry(db.Model):
    """Write-behind audit trail; never read back by the live services."""
    __tablename__ = 'audit_entry'
    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(64), nullable=False)
    detail = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
