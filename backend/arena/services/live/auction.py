"""Live ascending-bid auction, one item at a time."""
import threading
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from arena.exceptions import StoreError, ValidationError
from arena.services.live import broadcast


@dataclass(frozen=True)
class Bid:
    identity: str
    name: str
    amount: int


@dataclass
class AuctionState:
    active: bool = False
    item_name: Optional[str] = None
    high_bid: int = 0
    high_bidder: Optional[Bid] = None


def as_int(value, field_name):
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not number.is_integer():
        raise ValidationError(f"{field_name} must be a whole number")
    return int(number)


class AuctionEngine:
    def __init__(self, ledger, broadcaster):
        self.ledger = ledger
        self.broadcaster = broadcaster
        self.state = AuctionState()
        self._lock = threading.Lock()

    def start(self, item_name: str) -> None:
        item_name = (item_name or '').strip()
        if not item_name:
            raise ValidationError('itemName is required')
        with self._lock:
            if self.state.active:
                current_app.logger.warning(
                    f"[auction] '{self.state.item_name}' replaced by '{item_name}' "
                    f"with standing bid {self.state.high_bid}"
                )
            self.state = AuctionState(active=True, item_name=item_name)
        current_app.logger.info(f"[auction] started item={item_name}")
        self.broadcaster.emit_all(broadcast.AUCTION_STARTED, {'itemName': item_name})

    def sync(self, connection_id: str) -> None:
        with self._lock:
            if not self.state.active:
                return
            payload = {'itemName': self.state.item_name, 'highBid': self.state.high_bid}
        self.broadcaster.emit_to(connection_id, broadcast.AUCTION_SYNC, payload)

    def place_bid(self, identity: str, name: str, amount) -> bool:
        """Accept strictly higher bids while active; anything else is silently dropped."""
        amount = as_int(amount, 'bidAmount')
        with self._lock:
            if not self.state.active or amount <= self.state.high_bid:
                return False
            self.state.high_bid = amount
            self.state.high_bidder = Bid(identity=identity, name=name, amount=amount)
        self.broadcaster.emit_all(broadcast.NEW_BID, {
            'identity': identity,
            'name': name,
            'bidAmount': amount,
        })
        return True

    def end(self, winner_identity: str, item_name: str, final_bid) -> Optional[int]:
        """Charge the winner and close the auction.

        The debit is unconditional, so a winner may end with a negative
        balance. The engine returns to idle whether or not the ledger update
        succeeds. Returns the winner's new balance, or None when the winner
        is unknown.
        """
        if not winner_identity or not item_name:
            raise ValidationError('winnerIdentity and itemName are required')
        final_bid = as_int(final_bid, 'finalBid')

        try:
            new_balance = self.ledger.record_win(winner_identity, item_name, final_bid)
            if new_balance is None:
                current_app.logger.warning(f"[auction] unknown winner {winner_identity}")
                return None
            self._audit(f"winner={winner_identity} item={item_name} bid={final_bid}")
            self.broadcaster.emit_all(broadcast.AUCTION_ENDED, {
                'winnerIdentity': winner_identity,
                'itemName': item_name,
                'finalBid': final_bid,
            })
            self.broadcaster.emit_all(broadcast.COINS_UPDATED, {
                'identity': winner_identity,
                'newBalance': new_balance,
            })
            current_app.logger.info(f"[auction] sold {item_name} to {winner_identity} for {final_bid}")
            return new_balance
        finally:
            with self._lock:
                self.state = AuctionState()

    def snapshot(self) -> dict:
        with self._lock:
            bidder = self.state.high_bidder
            return {
                'active': self.state.active,
                'item_name': self.state.item_name,
                'high_bid': self.state.high_bid,
                'high_bidder': None if bidder is None else {
                    'identity': bidder.identity,
                    'name': bidder.name,
                    'amount': bidder.amount,
                },
            }

    def _audit(self, detail):
        try:
            self.ledger.audit('AUCTION_ENDED', detail)
        except StoreError as exc:
            current_app.logger.warning(f"[auction] audit append failed: {exc}")
