import json
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError

from backend import RedisBackend, redis_backend
from exceptions import StorageError
from identity import Auth
from room import Room
from schemas.responses import IdentResponse
from schemas.signals import JoinRoom, Signal, dump_signals, parse_signals
import utils
from logging_config import get_logger

logger = get_logger(__name__)

signalling_router = APIRouter(tags=["signalling"])


def get_store() -> RedisBackend:
    return redis_backend


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@signalling_router.post("/ident", response_model=IdentResponse)
async def ident(request: Request, store: RedisBackend = Depends(get_store)):
    logger.info(f"Ident request from {_client_host(request)}")
    try:
        auth = await Auth.issue(store)
    except StorageError as e:
        logger.error(f"Error issuing identity: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to issue token.")
    return IdentResponse(token=auth.token)


@signalling_router.post("/poll")
async def poll(
    request: Request,
    authorization: Optional[str] = Header(None),
    store: RedisBackend = Depends(get_store),
):
    # Body: [{"SetSDP": "..."}, {"AddCandidate": ["candidate", "0", 0]}, {"JoinRoom": "7HD92F"}]
    # Response 200: [{"JoinRoom": "7HD92F"}, {"ConnectAt": 1700000000}, {"NextPoll": 1700000001}]
    if not authorization:
        logger.warning(f"Poll rejected: missing token from {_client_host(request)}")
        raise HTTPException(status_code=403, detail="Missing token.")

    body = await request.body()
    try:
        signals = parse_signals(json.loads(body) if body else [])
    except (ValueError, ValidationError) as e:
        logger.warning(f"Poll rejected: malformed signals from {_client_host(request)}: {e}")
        raise HTTPException(status_code=400, detail="Invalid signals: malformed.")

    if any(not s.can_send() for s in signals if not isinstance(s, JoinRoom)):
        logger.warning(f"Poll rejected: broker-only signal sent from {_client_host(request)}")
        raise HTTPException(status_code=400, detail="Invalid signals: can't send.")

    try:
        pending = await exchange(store, authorization, signals)
    except StorageError as e:
        logger.error(f"Error during poll: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Storage error.")
    return dump_signals(pending)


async def exchange(store: RedisBackend, token: str, signals: List[Signal]) -> List[Signal]:
    """Apply one poll for ``token``: route its signals and drain its queue.

    All reads happen first and both records are written last, so a rejected
    request leaves storage untouched.
    """
    user = await Auth.load(store, token)
    if user is None:
        logger.warning("Poll rejected: invalid token")
        raise HTTPException(status_code=403, detail="Invalid token.")

    join = next((s for s in signals if isinstance(s, JoinRoom)), None)
    code = user.get_room()

    if code is not None:
        if join is not None:
            logger.warning(f"Poll rejected: peer already in room {code} tried to join {join.code}")
            raise HTTPException(status_code=400, detail="Already in a room.")
        room = await Room.load(store, code)
        if room is None or room.is_done(utils.now()) or room.slot_of(user.key) is None:
            logger.warning(f"Poll rejected: room {code} expired")
            raise HTTPException(status_code=400, detail="Room expired.")
        already_joined = True
    else:
        # Creating or joining
        already_joined = False
        if join is not None:
            room = await Room.load(store, join.code)
            if room is None:
                logger.warning(f"Join failed: room {join.code} not found")
                raise HTTPException(status_code=404, detail="Room not found.")
            if room.is_done(utils.now()):
                logger.warning(f"Join failed: room {join.code} expired")
                raise HTTPException(status_code=400, detail="Room expired.")
        else:
            room = await Room.create(store)
            logger.info(f"Room {room.code} created")

        if not room.join_room(user):
            logger.warning(f"Join failed: room {room.code} is full")
            raise HTTPException(status_code=400, detail="Room is full.")

    room.send_signal(user, signals)
    if already_joined:
        room.poll(user)
    pending = room.pull_signals(user)

    await room.write(store)
    await user.write(store)
    logger.debug(f"Room {room.code}: delivered {len(pending)} signals")
    return pending
