from datetime import timedelta

import pytest

from blip.core.errors import AuthorizationError, NotFoundError
from blip.models.reveal import Reveal
from blip.models.signal import MutualSignal
from blip.services import consent
from blip.services.signals import create_signal

from conftest import ALICE, BOB, CAROL, NOW, NYC, NYC_NEIGHBOUR


@pytest.fixture
def match_id(db, make_user):
    make_user(ALICE, display_name="Alice", short_bio="hi")
    make_user(BOB, display_name="Bob")
    create_signal(db, ALICE, *NYC, now=NOW)
    result = create_signal(db, BOB, *NYC_NEIGHBOUR, now=NOW)
    return result.matches[0].id


def _match(db, match_id):
    db.expire_all()
    return db.get(MutualSignal, match_id)


def test_single_ack_waits(db, match_id):
    result = consent.acknowledge(db, match_id, ALICE, now=NOW)

    assert result.reveal_created is False
    match = _match(db, match_id)
    assert match.status == "pending"
    assert ALICE in match.participants()
    assert db.query(Reveal).count() == 0


def test_both_acks_accept_and_create_reveal_pair(db, match_id):
    consent.acknowledge(db, match_id, ALICE, now=NOW)
    later = NOW + timedelta(seconds=20)
    result = consent.acknowledge(db, match_id, BOB, now=later)

    assert result.reveal_created is True
    assert result.other_user_id == ALICE
    assert result.other_user_profile == {"display_name": "Alice", "avatar_url": None, "short_bio": "hi"}
    assert result.reveal_expires_at == later + timedelta(minutes=15)

    assert _match(db, match_id).status == "accepted"
    reveals = db.query(Reveal).filter(Reveal.mutual_signal_id == match_id).all()
    assert {(r.viewer_id, r.viewed_id) for r in reveals} == {(ALICE, BOB), (BOB, ALICE)}
    assert all(r.expires_at == later + timedelta(minutes=15) for r in reveals)


def test_accepted_is_terminal(db, match_id):
    consent.acknowledge(db, match_id, ALICE, now=NOW)
    consent.acknowledge(db, match_id, BOB, now=NOW)

    for user in (ALICE, BOB):
        with pytest.raises(NotFoundError):
            consent.acknowledge(db, match_id, user, now=NOW)
        with pytest.raises(NotFoundError):
            consent.decline(db, match_id, user, now=NOW)

    assert _match(db, match_id).status == "accepted"
    assert db.query(Reveal).count() == 2


def test_decline_by_one_side_ends_match(db, match_id):
    consent.acknowledge(db, match_id, ALICE, now=NOW)
    consent.decline(db, match_id, BOB, now=NOW)

    match = _match(db, match_id)
    assert match.status == "declined"
    declined_flags = {match.user_a_id: match.user_a_declined, match.user_b_id: match.user_b_declined}
    assert declined_flags == {ALICE: False, BOB: True}

    with pytest.raises(NotFoundError):
        consent.acknowledge(db, match_id, BOB, now=NOW)
    assert _match(db, match_id).status == "declined"
    assert db.query(Reveal).count() == 0


def test_outsider_is_rejected(db, match_id):
    with pytest.raises(AuthorizationError):
        consent.acknowledge(db, match_id, CAROL, now=NOW)
    with pytest.raises(AuthorizationError):
        consent.decline(db, match_id, CAROL, now=NOW)


def test_expired_or_unknown_match_is_absent(db, match_id):
    with pytest.raises(NotFoundError):
        consent.acknowledge(db, match_id, ALICE, now=NOW + timedelta(minutes=6))
    with pytest.raises(NotFoundError):
        consent.acknowledge(db, "does-not-exist", ALICE, now=NOW)


def test_transition_happens_exactly_once(db, match_id):
    db.query(MutualSignal).filter(MutualSignal.id == match_id).update(
        {"user_a_acknowledged": True, "user_b_acknowledged": True}
    )
    db.commit()

    assert consent._transition_to_accepted(db, match_id) is True
    assert consent._transition_to_accepted(db, match_id) is False
    db.commit()


def test_list_pending_reports_own_side(db, match_id):
    consent.acknowledge(db, match_id, ALICE, now=NOW)

    (for_alice,) = consent.list_pending(db, ALICE, now=NOW)
    (for_bob,) = consent.list_pending(db, BOB, now=NOW)

    assert for_alice["other_user_id"] == BOB and for_alice["acknowledged"] is True
    assert for_bob["other_user_id"] == ALICE and for_bob["acknowledged"] is False
    assert for_alice["time_remaining"] == 5 * 60 * 1000

    assert consent.list_pending(db, ALICE, now=NOW + timedelta(minutes=6)) == []
