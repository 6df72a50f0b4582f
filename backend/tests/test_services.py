from datetime import timedelta

import pytest

from mazehunt import db
from mazehunt.errors import ForbiddenError, InternalError, NotFoundError, RateLimitedError, ValidationError
from mazehunt.models import DISPLAY_ID_PREFIX, DeviceIdentity, generate_display_id, utcnow
from mazehunt.services import identity as identity_service
from mazehunt.services.leaderboard import get_leaderboard, get_player_stats
from mazehunt.services.submission import submit_score
from mazehunt.storage import wait_for_storage


def _new_identity(address='10.1.0.1', agent='ua-1'):
    return identity_service.identify(None, {}, address, agent)


def test_display_id_skips_taken_codes(flask_app, monkeypatch):
    taken = _new_identity()
    draws = iter([list(taken.display_id[len(DISPLAY_ID_PREFIX):]), list('ZZZZ')])
    monkeypatch.setattr('mazehunt.models.random.choices', lambda population, k: next(draws))
    assert generate_display_id() == 'HUNTER-ZZZZ'


def test_unknown_existing_device_id_creates_new_identity(flask_app):
    first = _new_identity()
    # Same address would normally be reused, but an unresolvable id skips that lookup
    result = identity_service.identify('stale-device-id', {}, '10.1.0.1', 'ua-1')
    assert result.is_existing is False
    assert result.device_id != first.device_id
    assert DeviceIdentity.query.count() == 2


def test_create_redraws_display_id_after_collision(flask_app, monkeypatch):
    taken = _new_identity()
    draws = iter([taken.display_id, 'HUNTER-QQQQ'])
    monkeypatch.setattr('mazehunt.models.generate_display_id', lambda: next(draws))

    result = identity_service.identify(None, {}, '10.9.9.9', 'ua-other')
    assert result.is_existing is False
    assert result.display_id == 'HUNTER-QQQQ'
    assert DeviceIdentity.query.count() == 2


def test_create_gives_up_after_repeated_collisions(flask_app, monkeypatch):
    taken = _new_identity()
    monkeypatch.setattr('mazehunt.models.generate_display_id', lambda: taken.display_id)

    with pytest.raises(InternalError):
        identity_service.identify(None, {}, '10.9.9.9', 'ua-other')
    assert DeviceIdentity.query.count() == 1


def test_recent_duplicate_lookup_expires(flask_app):
    first = _new_identity()
    stored = DeviceIdentity.query.filter_by(device_id=first.device_id).one()
    stored.created_at = utcnow() - timedelta(hours=25)
    db.session.commit()

    second = _new_identity()
    assert second.is_existing is False
    assert second.device_id != first.device_id


def test_recent_duplicate_matches_user_agent(flask_app):
    first = _new_identity(address='10.1.0.1', agent='same-browser')
    again = _new_identity(address='172.16.0.5', agent='same-browser')
    assert again.is_existing is True
    assert again.device_id == first.device_id
    # Reuse does not record the new address
    stored = DeviceIdentity.query.filter_by(device_id=first.device_id).one()
    assert [a.address for a in stored.addresses] == ['10.1.0.1']


def test_verify_by_user_agent_only(flask_app):
    created = _new_identity(address='10.1.0.1', agent='ua-1')
    result = identity_service.verify(created.device_id, None, '203.0.113.7', 'ua-1')
    assert result['verified'] is True


def test_verify_unknown_device(flask_app):
    with pytest.raises(NotFoundError):
        identity_service.verify('missing', None, '10.1.0.1', 'ua-1')
    with pytest.raises(ValidationError):
        identity_service.verify({'x': 1}, None, '10.1.0.1', 'ua-1')


def test_submit_checks(flask_app):
    created = _new_identity()
    with pytest.raises(ValidationError):
        submit_score(created.device_id, None, 1)
    with pytest.raises(NotFoundError):
        submit_score('missing', 10, 1)
    with pytest.raises(ValidationError):
        submit_score(['a'], 10, 1)
    with pytest.raises(ValidationError):
        submit_score(created.device_id, 10, 1, treasures_found=2**31)
    with pytest.raises(ValidationError):
        submit_score(created.device_id, 10, False)

    submit_score(created.device_id, 10, 1, client_address='10.1.0.1', client_user_agent='ua-1')
    with pytest.raises(RateLimitedError):
        submit_score(created.device_id, 10, 1)
    with pytest.raises(ForbiddenError):
        submit_score(created.device_id, 100001, 1)


def test_submit_freezes_verification_flag(flask_app):
    created = _new_identity()
    record = submit_score(created.device_id, 50, 2)
    identity_service.verify(created.device_id, None, '10.1.0.1', 'ua-1')
    db.session.refresh(record)
    assert record.is_verified is False
    assert record.display_id == created.display_id


def test_submit_refreshes_last_active(flask_app):
    created = _new_identity()
    stored = DeviceIdentity.query.filter_by(device_id=created.device_id).one()
    stored.last_active_at = utcnow() - timedelta(days=3)
    db.session.commit()

    submit_score(created.device_id, 50, 2)
    assert stored.last_active_at > utcnow() - timedelta(minutes=1)


def test_leaderboard_rejects_out_of_range(flask_app):
    with pytest.raises(ValidationError):
        get_leaderboard(0, 10)
    with pytest.raises(ValidationError):
        get_leaderboard(1, 101)
    with pytest.raises(ValidationError):
        get_leaderboard(2**62, 10)
    empty = get_leaderboard(1, 10)
    assert empty['scores'] == []
    assert empty['pagination'] == {'current': 1, 'total': 0, 'count': 0, 'totalScores': 0}


def test_player_stats_not_found(flask_app):
    with pytest.raises(NotFoundError):
        get_player_stats('missing')


def test_wait_for_storage_retries_with_fixed_backoff(flask_app, monkeypatch):
    answers = iter([False, False, True])
    monkeypatch.setattr('mazehunt.storage.storage_connected', lambda: next(answers))
    sleeps = []
    attempts = wait_for_storage(flask_app, interval=2, sleep=sleeps.append)
    assert attempts == 3
    assert sleeps == [2, 2]


def test_wait_for_storage_gives_up_when_bounded(flask_app, monkeypatch):
    monkeypatch.setattr('mazehunt.storage.storage_connected', lambda: False)
    sleeps = []
    with pytest.raises(RuntimeError):
        wait_for_storage(flask_app, interval=1, max_attempts=3, sleep=sleeps.append)
    assert sleeps == [1, 1]


def test_empty_user_agent_is_not_a_match(flask_app):
    created = _new_identity(address='10.1.0.1', agent='')
    assert identity_service.find_recent_duplicate('10.2.0.2', '') is None
    assert identity_service.find_recent_duplicate('10.1.0.1', '').device_id == created.device_id
    result = identity_service.verify(created.device_id, None, '10.2.0.2', '')
    assert result['verified'] is False
