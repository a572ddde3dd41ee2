from pydantic import BaseModel, Field
from typing import List, Optional

from schemas.signals import Signal


class AuthData(BaseModel):
    room: Optional[str] = None


class PeerState(BaseModel):
    sent_sdp: bool = False
    ice_done: bool = False
    # Signals waiting to be delivered to this peer
    queue: List[Signal] = Field(default_factory=list)


class RoomData(BaseModel):
    sent_connect: bool = False
    offer: PeerState = Field(default_factory=PeerState)
    answer: PeerState = Field(default_factory=PeerState)
