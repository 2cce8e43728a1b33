"""The live coordinator owns every piece of in-memory game state.

One instance is created per Flask app (see ``create_app``) and handed to the
HTTP routes and live-channel handlers through ``get_coordinator()``. Tests
build their own instances.
"""
from typing import Iterable, List, Optional

from flask import current_app

from arena.exceptions import StoreError, ValidationError
from arena.services.live import broadcast
from arena.services.live.auction import AuctionEngine, as_int
from arena.services.live.sessions import SessionAuthenticator
from arena.services.live.shape_quest import ShapeQuestEngine


class LiveCoordinator:
    def __init__(self, ledger, broadcaster, quest_duration_sec=30, eliminate_silent=True, clock=None):
        self.ledger = ledger
        self.broadcaster = broadcaster
        self.sessions = SessionAuthenticator(ledger, broadcaster)
        quest_kwargs = {'clock': clock} if clock else {}
        self.shape_quest = ShapeQuestEngine(
            ledger,
            broadcaster,
            duration_sec=quest_duration_sec,
            eliminate_silent=eliminate_silent,
            **quest_kwargs,
        )
        self.auction = AuctionEngine(ledger, broadcaster)

    @classmethod
    def from_config(cls, ledger, broadcaster, config):
        return cls(
            ledger,
            broadcaster,
            quest_duration_sec=int(config.get('SHAPE_QUEST_DURATION_SEC', 30)),
            eliminate_silent=bool(config.get('ELIMINATE_SILENT_PLAYERS', True)),
        )

    # ---- connection lifecycle ----

    def sync_connection(self, connection_id: str) -> None:
        """Push in-progress mini-game state to a freshly bound connection."""
        self.shape_quest.sync(connection_id)
        self.auction.sync(connection_id)

    def snapshot(self) -> dict:
        return {
            'shape_quest': self.shape_quest.snapshot(),
            'auction': self.auction.snapshot(),
        }

    # ---- admin ledger commands ----

    def eliminate_by_number(self, numbers: Iterable) -> List[int]:
        parsed = []
        for raw in numbers or []:
            try:
                parsed.append(int(str(raw).strip()))
            except ValueError:
                current_app.logger.info(f"[ledger] ignoring non-numeric player number {raw!r}")
        self.ledger.eliminate_numbers(parsed)
        self.broadcaster.emit_all(broadcast.PLAYERS_ELIMINATED, {'numbers': parsed})
        self._audit('PLAYERS_ELIMINATED', f"numbers={parsed}")
        return parsed

    def reset_all_eliminations(self) -> int:
        count = self.ledger.reset_eliminations()
        self.broadcaster.emit_all(broadcast.ALL_PLAYERS_RESET, {})
        self._audit('ALL_PLAYERS_RESET', f"revived={count}")
        return count

    def un_eliminate(self, identity: str) -> bool:
        if not identity:
            raise ValidationError('identity is required')
        participant = self.ledger.un_eliminate(identity)
        if participant is None:
            return False
        self.broadcaster.emit_all(broadcast.PLAYER_UN_ELIMINATED, {'identity': identity})
        self._audit('PLAYER_UN_ELIMINATED', f"identity={identity}")
        return True

    def update_coins(self, identity: str, change_amount) -> Optional[int]:
        if not identity:
            raise ValidationError('identity is required')
        delta = as_int(change_amount, 'changeAmount')
        new_balance = self.ledger.adjust_coins(identity, delta)
        if new_balance is None:
            return None
        self.broadcaster.emit_all(broadcast.COINS_UPDATED, {
            'identity': identity,
            'newBalance': new_balance,
        })
        self._audit('COINS_UPDATED', f"identity={identity} delta={delta} balance={new_balance}")
        return new_balance

    def _audit(self, event_type, detail):
        try:
            self.ledger.audit(event_type, detail)
        except StoreError as exc:
            current_app.logger.warning(f"[ledger] audit append failed for {event_type}: {exc}")
