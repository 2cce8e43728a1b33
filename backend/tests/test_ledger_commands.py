import pytest

from arena import db
from arena.exceptions import ValidationError
from arena.models import AuditEntry, Participant


def _stored(identity):
    return Participant.query.filter_by(identity=identity).first()


@pytest.mark.parametrize('delta', [250, -75, '-1200'])
def test_coins_updated_matches_balance_plus_delta(coordinator, recorder, make_participant, delta):
    make_participant('p1', coins=1000)
    before = _stored('p1').coins

    new_balance = coordinator.update_coins('p1', delta)

    assert new_balance == before + int(delta)
    assert _stored('p1').coins == new_balance
    assert recorder.named('event:coinsUpdated') == [{'identity': 'p1', 'newBalance': new_balance}]


def test_update_coins_unknown_identity(coordinator, recorder):
    assert coordinator.update_coins('ghost', 10) is None
    assert recorder.events == []


def test_update_coins_requires_number(coordinator, make_participant):
    make_participant('p1')
    with pytest.raises(ValidationError):
        coordinator.update_coins('p1', 'ten')
    with pytest.raises(ValidationError):
        coordinator.update_coins('', 10)


def test_eliminate_by_number_ignores_junk(coordinator, recorder, make_participant):
    make_participant('p1', number=4)
    make_participant('p2', number=9)
    make_participant('p3', number=12)

    numbers = coordinator.eliminate_by_number(['4', ' 12 ', 'x', None])

    assert numbers == [4, 12]
    assert _stored('p1').is_eliminated and _stored('p3').is_eliminated
    assert not _stored('p2').is_eliminated
    assert recorder.named('event:playersEliminated') == [{'numbers': [4, 12]}]
    assert AuditEntry.query.filter_by(event_type='PLAYERS_ELIMINATED').count() == 1


def test_reset_all_eliminations(coordinator, recorder, make_participant):
    make_participant('p1', is_eliminated=True)
    make_participant('p2', is_eliminated=True)
    make_participant('p3')
    assert coordinator.reset_all_eliminations() == 2
    assert Participant.query.filter_by(is_eliminated=True).count() == 0
    assert recorder.named('event:allPlayersReset') == [{}]


def test_un_eliminate(coordinator, recorder, make_participant):
    make_participant('p1', is_eliminated=True)
    assert coordinator.un_eliminate('p1') is True
    assert not _stored('p1').is_eliminated
    assert recorder.named('event:playerUnEliminated') == [{'identity': 'p1'}]


def test_un_eliminate_unknown_identity(coordinator, recorder):
    assert coordinator.un_eliminate('ghost') is False
    assert recorder.events == []


def test_new_participant_balance_defaults_to_configured_coins(flask_app):
    flask_app.config['STARTING_COINS'] = 300
    participant = Participant(identity='p9', name='P9')
    participant.set_password('pw')
    db.session.add(participant)
    db.session.commit()
    assert _stored('p9').coins == 300
