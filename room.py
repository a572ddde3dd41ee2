"""
Room broker.

A room binds two peers, ``offer`` then ``answer``. Each slot keeps a queue of
signals waiting for that peer plus handshake progress flags. Slot tokens and
poll deadlines live in the record's metadata so expiry can be decided from a
listing alone.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from constants import (
    ROOM_PREFIX, ROOM_KEY_LENGTH, GRACE_PERIOD, FIRST_POLL, POLL, FAST_POLL, CONNECT_DELAY,
)
from identity import Auth
from records import Record
from schemas.records import PeerState, RoomData
from schemas.signals import AddCandidate, ConnectAt, JoinRoom, NextPoll, SetSDP, Signal
import utils
from logging_config import get_logger

logger = get_logger(__name__)

OFFER = "offer"
ANSWER = "answer"


def _default_next_poll() -> int:
    return utils.now() + FIRST_POLL


@dataclass
class PeerMetadata:
    token: str = ""
    next_poll: int = field(default_factory=_default_next_poll)


@dataclass
class RoomMetadata:
    offer: PeerMetadata = field(default_factory=PeerMetadata)
    # Absent until a second peer joins
    answer: Optional[PeerMetadata] = None


class Room(Record):
    PREFIX = ROOM_PREFIX
    KEY_LENGTH = ROOM_KEY_LENGTH
    payload_model = RoomData

    @classmethod
    def default_metadata(cls) -> RoomMetadata:
        return RoomMetadata()

    @classmethod
    def decode_metadata(cls, metadata: Dict[str, str]) -> RoomMetadata:
        slots = {}
        for slot in (OFFER, ANSWER):
            token = metadata.get(f"{slot}_token", "")
            next_poll = metadata.get(f"{slot}_next_poll", "")
            if token == "" or next_poll == "":
                continue
            slots[slot] = PeerMetadata(token=token, next_poll=int(next_poll))
        # A stored room always has its offerer
        return RoomMetadata(offer=slots[OFFER], answer=slots.get(ANSWER))

    def encode_metadata(self) -> Dict[str, str]:
        metadata = {}
        for slot, peer in ((OFFER, self.meta.offer), (ANSWER, self.meta.answer)):
            if peer is None:
                metadata[f"{slot}_token"] = ""
                metadata[f"{slot}_next_poll"] = ""
            else:
                metadata[f"{slot}_token"] = peer.token
                metadata[f"{slot}_next_poll"] = utils.encode_timestamp(peer.next_poll)
        return metadata

    @property
    def code(self) -> str:
        return self.key

    @property
    def is_full(self) -> bool:
        return self.meta.answer is not None

    def slot_of(self, token: str) -> Optional[str]:
        if self.meta.offer.token and self.meta.offer.token == token:
            return OFFER
        if self.meta.answer is not None and self.meta.answer.token == token:
            return ANSWER
        return None

    def _peer_meta(self, slot: str) -> PeerMetadata:
        return self.meta.offer if slot == OFFER else self.meta.answer

    def _peer_state(self, slot: str) -> PeerState:
        return self.data.offer if slot == OFFER else self.data.answer

    def _require_slot(self, peer: Auth) -> str:
        slot = self.slot_of(peer.key)
        if slot is None:
            raise ValueError(f"Peer is not bound to room {self.code}")
        return slot

    def join_room(self, peer: Auth) -> bool:
        """Bind ``peer`` to the first free slot. Returns False if the room is full."""
        if not self.meta.offer.token:
            slot = OFFER
            self.meta.offer.token = peer.key
        elif self.meta.answer is None:
            slot = ANSWER
            self.meta.answer = PeerMetadata(token=peer.key)
        else:
            return False

        peer.join_room(self.code)
        # Delivered on this same exchange so the peer learns it was accepted
        self._peer_state(slot).queue.append(JoinRoom(code=self.code))
        self.modified = True
        logger.info(f"Peer {peer.key[:6]}... joined room {self.code} as {slot}")
        return True

    def poll(self, peer: Auth):
        """Schedule the peer's next poll; fast once both peers are present."""
        slot = self._require_slot(peer)
        interval = FAST_POLL if self.is_full else POLL
        self._peer_meta(slot).next_poll = utils.now() + interval
        self.modified = True

    def send_signal(self, sender: Auth, signals: Iterable[Signal]):
        slot = self._require_slot(sender)
        peer = self._peer_state(slot)
        other = self._peer_state(ANSWER if slot == OFFER else OFFER)

        forwarded = 0
        for signal in signals:
            if signal.can_send():
                other.queue.append(signal)
                forwarded += 1
                self.modified = True

            if isinstance(signal, SetSDP):
                peer.sent_sdp = True
                self.modified = True
            elif isinstance(signal, AddCandidate) and signal.is_end_of_candidates:
                peer.ice_done = True
                self.modified = True

        if forwarded:
            logger.debug(f"Room {self.code}: forwarded {forwarded} signals from {slot}")
        self._try_set_connect()

    def _try_set_connect(self):
        data = self.data
        if data.sent_connect:
            return
        if not (data.offer.sent_sdp and data.answer.sent_sdp):
            return
        if not (data.offer.ice_done or data.answer.ice_done):
            return
        if self.meta.answer is None:
            return

        # Both peers will have polled by the later of their deadlines
        connect_at = max(self.meta.offer.next_poll, self.meta.answer.next_poll) + CONNECT_DELAY
        signal = ConnectAt(at=connect_at)
        data.offer.queue.append(signal)
        data.answer.queue.append(signal)
        data.sent_connect = True
        self.modified = True
        logger.info(f"Room {self.code}: connect scheduled at {connect_at}")

    def pull_signals(self, reader: Auth) -> List[Signal]:
        slot = self._require_slot(reader)
        state = self._peer_state(slot)
        queue = state.queue
        if queue:
            state.queue = []
            self.modified = True
        return queue + [NextPoll(at=self._peer_meta(slot).next_poll)]

    def kill_at(self) -> int:
        next_poll = self.meta.offer.next_poll
        if self.meta.answer is not None:
            next_poll = min(next_poll, self.meta.answer.next_poll)
        return next_poll + GRACE_PERIOD

    def is_done(self, now: int) -> bool:
        return now >= self.kill_at()

    def keys_to_kill(self, now: int) -> List[str]:
        if not self.is_done(now):
            return []
        keys = [Auth.full_key(self.meta.offer.token)]
        if self.meta.answer is not None:
            keys.append(Auth.full_key(self.meta.answer.token))
        # Last, so a failed identity delete keeps the room listing it
        keys.append(self.full_key(self.key))
        return keys
