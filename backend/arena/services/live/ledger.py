"""Participant ledger: the only writer of persisted participant fields.

Every public method runs as one unit of work against the SQLAlchemy session.
Store failures roll the session back and surface as ``StoreError``.
"""
import random
from functools import wraps
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from arena.exceptions import StoreError
from arena.models import AuditEntry, Participant, WonItem, ROLE_ADMIN, ROLE_PARTICIPANT

TARGET_ALL = 'all'
TARGET_BOYS = 'boys'
TARGET_GIRLS = 'girls'
TARGETS = (TARGET_ALL, TARGET_BOYS, TARGET_GIRLS)


def _unit_of_work(commit):
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                result = func(self, *args, **kwargs)
                if commit:
                    self.db.session.commit()
                return result
            except SQLAlchemyError as exc:
                current_app.logger.error(f"[ledger] {func.__name__} failed: {exc}")
                self.db.session.rollback()
                raise StoreError(f"{func.__name__} failed") from exc
        return wrapper
    return decorator


_reads = _unit_of_work(commit=False)
_writes = _unit_of_work(commit=True)


class ParticipantLedger:
    """Narrow repository over the participant tables."""

    def __init__(self, database):
        self.db = database

    # ---- lookups ----

    @_reads
    def get(self, identity: str) -> Optional[Participant]:
        return Participant.query.filter_by(identity=identity).first()

    @_reads
    def get_with_token(self, identity: str, token: str) -> Optional[Participant]:
        if not token:
            return None
        return Participant.query.filter_by(identity=identity, session_token=token).first()

    @_reads
    def get_by_connection(self, connection_id: str) -> Optional[Participant]:
        return Participant.query.filter_by(connection_id=connection_id).first()

    @_reads
    def roster(self) -> List[Participant]:
        return (
            Participant.query.filter(Participant.role != ROLE_ADMIN)
            .order_by(Participant.assigned_number)
            .all()
        )

    @_reads
    def targeted(self, target: str) -> List[Participant]:
        """Non-eliminated participants a shape quest for ``target`` applies to."""
        query = Participant.query.filter_by(role=ROLE_PARTICIPANT, is_eliminated=False)
        if target == TARGET_BOYS:
            query = query.filter_by(is_girl=False)
        elif target == TARGET_GIRLS:
            query = query.filter_by(is_girl=True)
        return query.all()

    # ---- session binding ----

    @_writes
    def rotate_session(self, participant: Participant, token: str) -> Participant:
        participant.session_token = token
        participant.connection_id = None
        self.db.session.add(participant)
        return participant

    @_writes
    def bind_connection(self, participant: Participant, connection_id: str) -> Participant:
        # A connection speaks for one participant only
        Participant.query.filter(
            Participant.connection_id == connection_id, Participant.id != participant.id
        ).update({Participant.connection_id: None}, synchronize_session='fetch')
        participant.connection_id = connection_id
        self.db.session.add(participant)
        return participant

    @_writes
    def release_connection(self, connection_id: str) -> int:
        return Participant.query.filter_by(connection_id=connection_id).update(
            {Participant.connection_id: None}, synchronize_session='fetch'
        )

    # ---- elimination ----

    @_writes
    def eliminate_identities(self, identities: Iterable[str]) -> List[int]:
        """Eliminate the given identities and return their display numbers."""
        identities = list(identities)
        if not identities:
            return []
        losers = Participant.query.filter(Participant.identity.in_(identities)).all()
        for participant in losers:
            participant.is_eliminated = True
            self.db.session.add(participant)
        return sorted(p.assigned_number for p in losers if p.assigned_number is not None)

    @_writes
    def eliminate_numbers(self, numbers: Iterable[int]) -> int:
        numbers = list(numbers)
        if not numbers:
            return 0
        return Participant.query.filter(Participant.assigned_number.in_(numbers)).update(
            {Participant.is_eliminated: True}, synchronize_session='fetch'
        )

    @_writes
    def reset_eliminations(self) -> int:
        return Participant.query.filter_by(is_eliminated=True).update(
            {Participant.is_eliminated: False}, synchronize_session='fetch'
        )

    @_writes
    def un_eliminate(self, identity: str) -> Optional[Participant]:
        participant = Participant.query.filter_by(identity=identity).first()
        if participant:
            participant.is_eliminated = False
            self.db.session.add(participant)
        return participant

    # ---- currency ----

    @_writes
    def adjust_coins(self, identity: str, delta: int) -> Optional[int]:
        """Apply a signed delta atomically; return the new balance or None if unknown.

        No floor is applied, balances may go negative.
        """
        updated = Participant.query.filter_by(identity=identity).update(
            {Participant.coins: Participant.coins + delta}, synchronize_session='fetch'
        )
        if not updated:
            return None
        self.db.session.flush()
        return self.db.session.query(Participant.coins).filter_by(identity=identity).scalar()

    @_writes
    def record_win(self, identity: str, item_name: str, winning_bid: int) -> Optional[int]:
        """Debit the winning bid, append the won item, return the new balance."""
        updated = Participant.query.filter_by(identity=identity).update(
            {Participant.coins: Participant.coins - winning_bid}, synchronize_session='fetch'
        )
        if not updated:
            return None
        winner = Participant.query.filter_by(identity=identity).first()
        self.db.session.add(WonItem(participant=winner, item_name=item_name, winning_bid=winning_bid))
        self.db.session.flush()
        return winner.coins

    # ---- roster import ----

    @_reads
    def existing_identities(self, identities: Iterable[str]) -> set:
        identities = list(identities)
        if not identities:
            return set()
        rows = self.db.session.query(Participant.identity).filter(Participant.identity.in_(identities))
        return {row[0] for row in rows}

    @_reads
    def used_numbers(self) -> set:
        rows = self.db.session.query(Participant.assigned_number).filter(
            Participant.assigned_number.isnot(None)
        )
        return {row[0] for row in rows}

    @_writes
    def register_many(self, participants: List[Participant]) -> int:
        self.db.session.add_all(participants)
        return len(participants)

    # ---- audit ----

    @_writes
    def audit(self, event_type: str, detail: str) -> None:
        self.db.session.add(AuditEntry(event_type=event_type, detail=detail))


def pick_number(used: set, low: int, high: int) -> Optional[int]:
    """Random unused display number in [low, high], or None when exhausted."""
    free = [n for n in range(low, high + 1) if n not in used]
    if not free:
        return None
    return random.choice(free)
