"""Shape quest: a timed elimination round.

Lifecycle is ``idle -> active -> resolving -> idle``. The admin starts a
round for a target group, participants pick a shape, and the admin names the
losing shape. The advertised countdown is only a client display aid; the
round ends when the admin resolves it.
"""
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from flask import current_app

from arena.exceptions import StoreError, ValidationError
from arena.services.live import broadcast
from arena.services.live.ledger import TARGETS

SHAPES = ('circle', 'triangle', 'square')

IDLE = 'idle'
ACTIVE = 'active'
RESOLVING = 'resolving'


@dataclass
class ShapeQuestState:
    duration_sec: int
    phase: str = IDLE
    target: Optional[str] = None
    started_at: Optional[float] = None
    choices: Dict[str, str] = field(default_factory=dict)

    @property
    def active(self):
        return self.phase == ACTIVE


class ShapeQuestEngine:
    def __init__(self, ledger, broadcaster, duration_sec=30, eliminate_silent=True, clock=time.time):
        self.ledger = ledger
        self.broadcaster = broadcaster
        self.eliminate_silent = eliminate_silent
        self.clock = clock
        self.state = ShapeQuestState(duration_sec=duration_sec)
        self._lock = threading.Lock()

    def start(self, target: str) -> bool:
        if target not in TARGETS:
            raise ValidationError(f"Unknown quest target: {target!r}")
        with self._lock:
            if self.state.phase != IDLE:
                current_app.logger.info(f"[quest] start ignored, quest is {self.state.phase}")
                return False
            self.state.phase = ACTIVE
            self.state.target = target
            self.state.choices = {}
            self.state.started_at = self.clock()
        current_app.logger.info(f"[quest] started target={target}")
        self.broadcaster.emit_all(broadcast.SHAPE_QUEST_STARTED, {
            'target': target,
            'duration': self.state.duration_sec,
        })
        return True

    def remaining_time(self) -> int:
        if not self.state.active or self.state.started_at is None:
            return 0
        elapsed = self.clock() - self.state.started_at
        return max(0, int(self.state.duration_sec - elapsed))

    def sync(self, connection_id: str) -> None:
        """Catch a late joiner up on a running quest, if time remains."""
        with self._lock:
            target = self.state.target if self.state.active else None
            remaining = self.remaining_time()
        if target is None or remaining <= 0:
            return
        self.broadcaster.emit_to(connection_id, broadcast.SHAPE_QUEST_SYNC, {
            'target': target,
            'remainingTime': remaining,
        })

    def record_choice(self, identity: str, shape: str) -> bool:
        if shape not in SHAPES:
            raise ValidationError(f"Unknown shape: {shape!r}")
        with self._lock:
            if not self.state.active:
                return False
            self.state.choices[identity] = shape
        return True

    def resolve_elimination(self, losing_shape: str):
        """Eliminate targeted players who picked ``losing_shape`` or stayed silent.

        Returns the eliminated display numbers, or None if no quest is active.
        """
        if losing_shape not in SHAPES:
            raise ValidationError(f"Unknown shape: {losing_shape!r}")
        with self._lock:
            if not self.state.active:
                return None
            self.state.phase = RESOLVING
            target = self.state.target
            choices = dict(self.state.choices)

        committed = False
        try:
            population = self.ledger.targeted(target)
            losers = [
                p.identity for p in population
                if choices.get(p.identity) == losing_shape
                or (self.eliminate_silent and p.identity not in choices)
            ]
            numbers = self.ledger.eliminate_identities(losers)
            committed = True
            self.broadcaster.emit_all(broadcast.PLAYERS_ELIMINATED, {'numbers': numbers})
            self._audit(f"shape={losing_shape} target={target} eliminated={len(losers)}")
        finally:
            # Never left in resolving: an unwritten round reopens for retry
            with self._lock:
                if self.state.phase == RESOLVING:
                    if committed:
                        self.state.phase = IDLE
                        self.state.started_at = None
                    else:
                        self.state.phase = ACTIVE
        current_app.logger.info(f"[quest] resolved shape={losing_shape} eliminated={len(losers)}")
        return numbers

    def snapshot(self) -> dict:
        with self._lock:
            return {
                'active': self.state.active,
                'phase': self.state.phase,
                'target': self.state.target if self.state.active else None,
                'duration': self.state.duration_sec,
                'remaining_time': self.remaining_time(),
                'choices_made': len(self.state.choices) if self.state.active else 0,
            }

    def _audit(self, detail):
        try:
            self.ledger.audit('SHAPE_QUEST_RESOLVED', detail)
        except StoreError as exc:
            current_app.logger.warning(f"[quest] audit append failed: {exc}")
