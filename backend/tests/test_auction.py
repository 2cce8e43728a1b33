import pytest

from arena import db
from arena.exceptions import StoreError, ValidationError
from arena.models import AuditEntry, Participant
from arena.services.live.auction import AuctionEngine
from arena.services.live.ledger import ParticipantLedger


def test_start_resets_and_broadcasts(coordinator, recorder):
    coordinator.auction.start('  Golden Ticket ')
    state = coordinator.auction.state
    assert state.active and state.item_name == 'Golden Ticket'
    assert state.high_bid == 0 and state.high_bidder is None
    assert recorder.named('event:auctionStarted') == [{'itemName': 'Golden Ticket'}]


def test_start_requires_item_name(coordinator, recorder):
    with pytest.raises(ValidationError):
        coordinator.auction.start('   ')
    assert not coordinator.auction.state.active


def test_start_overwrites_running_auction(coordinator):
    auction = coordinator.auction
    auction.start('Lamp')
    auction.place_bid('p1', 'P1', 300)
    auction.start('Rug')
    assert auction.state.item_name == 'Rug'
    assert auction.state.high_bid == 0
    assert auction.state.high_bidder is None


def test_bids_must_strictly_increase(coordinator, recorder):
    auction = coordinator.auction
    auction.start('Lamp')
    assert auction.place_bid('p1', 'P1', 100) is True
    assert auction.place_bid('p2', 'P2', 50) is False
    assert auction.place_bid('p2', 'P2', 100) is False
    assert auction.state.high_bid == 100
    assert auction.state.high_bidder.identity == 'p1'
    assert auction.place_bid('p2', 'P2', 150) is True
    assert auction.state.high_bid == 150
    assert auction.state.high_bidder.identity == 'p2'
    assert recorder.named('event:newBid') == [
        {'identity': 'p1', 'name': 'P1', 'bidAmount': 100},
        {'identity': 'p2', 'name': 'P2', 'bidAmount': 150},
    ]


def test_bid_without_auction_ignored(coordinator, recorder):
    assert coordinator.auction.place_bid('p1', 'P1', 500) is False
    assert recorder.events == []


def test_non_numeric_bid_rejected(coordinator):
    coordinator.auction.start('Lamp')
    with pytest.raises(ValidationError):
        coordinator.auction.place_bid('p1', 'P1', 'lots')


def test_end_charges_winner_and_records_item(coordinator, recorder, make_participant):
    make_participant('p1', coins=1000)
    auction = coordinator.auction
    auction.start('Lamp')
    auction.place_bid('p1', 'P1', 250)

    new_balance = auction.end('p1', 'Lamp', 250)

    assert new_balance == 750
    winner = Participant.query.filter_by(identity='p1').first()
    assert winner.coins == 750
    assert [item.to_dict() for item in winner.won_items] == [{'name': 'Lamp', 'winning_bid': 250}]
    ended = [name for name, _, _ in recorder.events if name in ('event:auctionEnded', 'event:coinsUpdated')]
    assert ended == ['event:auctionEnded', 'event:coinsUpdated']
    assert recorder.named('event:auctionEnded') == [{'winnerIdentity': 'p1', 'itemName': 'Lamp', 'finalBid': 250}]
    assert recorder.named('event:coinsUpdated') == [{'identity': 'p1', 'newBalance': 750}]
    assert AuditEntry.query.filter_by(event_type='AUCTION_ENDED').count() == 1
    assert not auction.state.active


def test_end_debit_can_go_negative(coordinator, recorder, make_participant):
    make_participant('p1', coins=100)
    coordinator.auction.start('Lamp')
    assert coordinator.auction.end('p1', 'Lamp', '400') == -300
    assert recorder.named('event:coinsUpdated') == [{'identity': 'p1', 'newBalance': -300}]


def test_end_resets_even_when_ledger_fails(flask_app, recorder, make_participant):
    make_participant('p1')

    class BrokenLedger(ParticipantLedger):
        def record_win(self, identity, item_name, winning_bid):
            raise StoreError('store offline')

    auction = AuctionEngine(BrokenLedger(db), recorder)
    auction.start('Lamp')
    auction.place_bid('p1', 'P1', 100)
    with pytest.raises(StoreError):
        auction.end('p1', 'Lamp', 100)
    assert not auction.state.active
    assert auction.state.high_bid == 0
    assert recorder.named('event:auctionEnded') == []


def test_end_with_unknown_winner_resets(coordinator, recorder):
    coordinator.auction.start('Lamp')
    assert coordinator.auction.end('ghost', 'Lamp', 100) is None
    assert not coordinator.auction.state.active
    assert recorder.named('event:auctionEnded') == []


@pytest.mark.parametrize('winner,item,bid', [
    (None, 'Lamp', 100),
    ('p1', '', 100),
    ('p1', 'Lamp', 'abc'),
    ('p1', 'Lamp', None),
])
def test_end_with_invalid_fields_is_dropped(coordinator, make_participant, winner, item, bid):
    make_participant('p1', coins=1000)
    coordinator.auction.start('Lamp')
    with pytest.raises(ValidationError):
        coordinator.auction.end(winner, item, bid)
    assert coordinator.auction.state.active
    assert Participant.query.filter_by(identity='p1').first().coins == 1000


def test_late_joiner_sync(coordinator, recorder):
    coordinator.auction.sync('sid-early')
    assert recorder.events == []
    coordinator.auction.start('Lamp')
    coordinator.auction.place_bid('p1', 'P1', 40)
    coordinator.auction.sync('sid-late')
    assert ('event:auctionSync', {'itemName': 'Lamp', 'highBid': 40}, 'sid-late') in recorder.events


def test_snapshot_includes_leader(coordinator):
    coordinator.auction.start('Lamp')
    coordinator.auction.place_bid('p1', 'P1', 40)
    assert coordinator.auction.snapshot() == {
        'active': True,
        'item_name': 'Lamp',
        'high_bid': 40,
        'high_bidder': {'identity': 'p1', 'name': 'P1', 'amount': 40},
    }
