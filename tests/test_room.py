import pytest

from constants import CONNECT_DELAY, FAST_POLL, FIRST_POLL, GRACE_PERIOD, POLL
from identity import Auth, AuthMetadata
from room import ANSWER, OFFER, Room, RoomMetadata
from schemas.records import AuthData, RoomData
from schemas.signals import AddCandidate, ConnectAt, JoinRoom, NextPoll, SetSDP


def peer(token: str) -> Auth:
    return Auth(token, AuthData(), AuthMetadata(kill_at=0))


@pytest.fixture()
def room(clock):
    return Room("ROOM01", RoomData(), RoomMetadata(), modified=True)


@pytest.fixture()
def host():
    return peer("HOST")


@pytest.fixture()
def guest():
    return peer("GUEST")


def test_slot_assignment(room, host, guest):
    assert room.join_room(host) is True
    assert room.slot_of("HOST") == OFFER
    assert room.is_full is False

    assert room.join_room(guest) is True
    assert room.slot_of("GUEST") == ANSWER
    assert room.is_full is True

    assert room.join_room(peer("THIRD")) is False
    assert room.slot_of("THIRD") is None


def test_join_marks_identity_and_queues_join_signal(room, clock, host):
    room.join_room(host)

    assert host.get_room() == room.code
    assert host.meta.kill_at is None
    assert room.pull_signals(host) == [JoinRoom(code=room.code), NextPoll(at=clock.t + FIRST_POLL)]


def test_signals_forwarded_to_other_peer(room, host, guest):
    room.join_room(host)
    room.send_signal(host, [SetSDP(sdp="offer"), AddCandidate(candidate=("cand", "0", 0))])
    room.join_room(guest)

    pulled = room.pull_signals(guest)

    assert pulled[:3] == [SetSDP(sdp="offer"), AddCandidate(candidate=("cand", "0", 0)), JoinRoom(code=room.code)]
    assert isinstance(pulled[-1], NextPoll)
    assert room.data.offer.sent_sdp is True
    assert room.data.offer.ice_done is False


def test_join_signal_is_not_forwarded(room, host, guest):
    room.join_room(host)
    room.join_room(guest)
    room.pull_signals(host)

    room.send_signal(guest, [JoinRoom(code=room.code)])

    assert room.pull_signals(host)[:-1] == []


def test_connect_sent_once_to_both(room, clock, host, guest):
    room.join_room(host)
    room.join_room(guest)
    room.meta.offer.next_poll = clock.t + 3
    room.meta.answer.next_poll = clock.t + 7

    room.send_signal(host, [SetSDP(sdp="offer"), AddCandidate(candidate=("", None, None))])
    assert room.data.sent_connect is False
    room.send_signal(guest, [SetSDP(sdp="answer")])
    assert room.data.sent_connect is True

    expected = ConnectAt(at=clock.t + 7 + CONNECT_DELAY)
    assert expected in room.pull_signals(host)
    assert expected in room.pull_signals(guest)

    room.send_signal(guest, [AddCandidate(candidate=("", None, None))])
    assert not any(isinstance(s, ConnectAt) for s in room.pull_signals(host))
    assert not any(isinstance(s, ConnectAt) for s in room.pull_signals(guest))


def test_connect_needs_an_ice_end_marker(room, host, guest):
    room.join_room(host)
    room.join_room(guest)
    room.send_signal(host, [SetSDP(sdp="offer"), AddCandidate(candidate=("cand", None, None))])
    room.send_signal(guest, [SetSDP(sdp="answer")])

    assert room.data.sent_connect is False


def test_poll_cadence(room, clock, host, guest):
    room.join_room(host)
    room.poll(host)
    assert room.meta.offer.next_poll == clock.t + POLL

    room.join_room(guest)
    room.poll(host)
    assert room.meta.offer.next_poll == clock.t + FAST_POLL
    assert room.meta.answer.next_poll == clock.t + FIRST_POLL


def test_pull_drains_queue(room, host):
    room.join_room(host)
    room.pull_signals(host)
    room.modified = False

    assert room.pull_signals(host) == [NextPoll(at=room.meta.offer.next_poll)]
    assert room.modified is False


def test_keys_to_kill(room, clock, host, guest):
    room.join_room(host)
    assert room.keys_to_kill(clock.t) == []

    room.join_room(guest)
    room.meta.answer.next_poll = clock.t - 5
    kill_at = clock.t - 5 + GRACE_PERIOD
    assert room.keys_to_kill(kill_at - 1) == []
    assert room.keys_to_kill(kill_at) == ["auth:HOST", "auth:GUEST", f"room:{room.code}"]


def test_keys_to_kill_offer_only(room, clock, host):
    room.join_room(host)
    kill_at = clock.t + FIRST_POLL + GRACE_PERIOD

    assert room.keys_to_kill(kill_at - 1) == []
    assert room.keys_to_kill(kill_at) == ["auth:HOST", "room:ROOM01"]


async def test_round_trip_through_store(store, room, host, guest):
    room.join_room(host)
    room.send_signal(host, [SetSDP(sdp="offer"), AddCandidate(candidate=("cand", "audio", 1))])
    await room.write(store)

    loaded = await Room.load(store, room.code)
    assert loaded.slot_of("HOST") == OFFER
    assert loaded.meta.answer is None
    assert loaded.data.answer.queue == [SetSDP(sdp="offer"), AddCandidate(candidate=("cand", "audio", 1))]

    obj = await store.get(f"room:{room.code}")
    assert obj.metadata["answer_token"] == ""
    assert obj.metadata["answer_next_poll"] == ""
