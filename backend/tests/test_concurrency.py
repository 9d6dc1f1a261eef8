"""Optimistic locking under interleaved sessions.

Two sessions read the same row, then race to change it. Whichever writes
second must see an edit conflict instead of silently overwriting.
"""
from datetime import datetime, timedelta, timezone

import pytest

from materix.errors import EditConflict, RecordNotFound
from materix.models.friend_pair import FriendPair
from materix.models.user import User
from materix.services import free_time_service, friend_service


def _users(db):
    alice = User(name="Alice", email="alice@example.com")
    bob = User(name="Bob", email="bob@example.com")
    db.add_all([alice, bob])
    db.commit()
    return alice.id, bob.id


@pytest.fixture
def sessions(session_factory):
    first, second = session_factory(), session_factory()
    yield first, second
    first.close()
    second.close()


class TestFriendRequestRace:

    def test_accept_then_reject(self, db, sessions):
        alice_id, bob_id = _users(db)
        request_id = friend_service.send_request(db, alice_id, bob_id).id
        first, second = sessions

        # keep both copies referenced so each session holds its version 1 snapshot
        seen_by_first = friend_service.get_request(first, request_id)
        seen_by_second = friend_service.get_request(second, request_id)
        assert seen_by_first.version == seen_by_second.version == 1

        accepted = friend_service.accept_request(first, request_id, bob_id)
        assert accepted.version == 2

        with pytest.raises(EditConflict):
            friend_service.remove_request(second, request_id, alice_id)

        db.expire_all()
        pair = db.query(FriendPair).one()
        assert pair.status == "accepted"
        assert pair.version == 2

    def test_reject_then_accept(self, db, sessions):
        alice_id, bob_id = _users(db)
        request_id = friend_service.send_request(db, alice_id, bob_id).id
        first, second = sessions

        # keep both copies referenced so each session holds its version 1 snapshot
        seen_by_first = friend_service.get_request(first, request_id)
        seen_by_second = friend_service.get_request(second, request_id)
        assert seen_by_first.version == seen_by_second.version == 1

        friend_service.remove_request(first, request_id, bob_id)

        with pytest.raises((EditConflict, RecordNotFound)):
            friend_service.accept_request(second, request_id, bob_id)

        db.expire_all()
        assert db.query(FriendPair).count() == 0

    def test_late_reader_sees_not_found(self, db, sessions):
        alice_id, bob_id = _users(db)
        request_id = friend_service.send_request(db, alice_id, bob_id).id
        first, second = sessions

        friend_service.remove_request(first, request_id, bob_id)
        with pytest.raises(RecordNotFound):
            friend_service.accept_request(second, request_id, bob_id)

    def test_session_usable_after_conflict(self, db, sessions):
        alice_id, bob_id = _users(db)
        request_id = friend_service.send_request(db, alice_id, bob_id).id
        first, second = sessions

        stale = friend_service.get_request(second, request_id)
        assert stale.version == 1
        friend_service.accept_request(first, request_id, bob_id)
        with pytest.raises(EditConflict):
            friend_service.remove_request(second, request_id, bob_id)

        # after the rollback the session rereads the current version
        friend_service.remove_request(second, request_id, bob_id, version=2)
        db.expire_all()
        assert db.query(FriendPair).count() == 0


class TestFreeTimeRace:

    def test_concurrent_updates(self, db, sessions):
        alice_id, _ = _users(db)
        start = datetime.now(timezone.utc) + timedelta(days=1)
        window_id = free_time_service.create_free_time(db, alice_id, start, start + timedelta(hours=1)).id
        first, second = sessions

        mine = free_time_service.get_free_time(first, window_id, alice_id)
        theirs = free_time_service.get_free_time(second, window_id, alice_id)

        free_time_service.update_free_time(first, mine, tags=["first"])
        with pytest.raises(EditConflict):
            free_time_service.update_free_time(second, theirs, tags=["second"])

        db.expire_all()
        assert free_time_service.get_free_time(db, window_id, alice_id).tags == ["first"]
