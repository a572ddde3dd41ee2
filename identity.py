from dataclasses import dataclass, field
from typing import Dict, List, Optional

from backend import RedisBackend
from constants import AUTH_PREFIX, AUTH_KEY_LENGTH, GRACE_PERIOD
from records import Record
from schemas.records import AuthData
import utils
from logging_config import get_logger

logger = get_logger(__name__)


def _default_kill_at() -> int:
    return utils.now() + GRACE_PERIOD


@dataclass
class AuthMetadata:
    # Unset once the peer has joined a room; the room's timers govern expiry then.
    kill_at: Optional[int] = field(default_factory=_default_kill_at)


class Auth(Record):
    """Per-peer session. The key is the bearer token used for polling."""

    PREFIX = AUTH_PREFIX
    KEY_LENGTH = AUTH_KEY_LENGTH
    payload_model = AuthData

    @classmethod
    def default_metadata(cls) -> AuthMetadata:
        return AuthMetadata()

    @classmethod
    def decode_metadata(cls, metadata: Dict[str, str]) -> AuthMetadata:
        return AuthMetadata(kill_at=utils.decode_timestamp(metadata["kill_at"]))

    def encode_metadata(self) -> Dict[str, str]:
        return {"kill_at": utils.encode_timestamp(self.meta.kill_at)}

    @classmethod
    async def issue(cls, store: RedisBackend) -> "Auth":
        auth = await cls.create(store)
        await auth.write(store)
        logger.info(f"Issued identity {auth.key[:6]}..., kill_at={auth.meta.kill_at}")
        return auth

    @property
    def token(self) -> str:
        return self.key

    def get_room(self) -> Optional[str]:
        return self.data.room

    def join_room(self, code: str):
        self.data.room = code
        self.meta.kill_at = None
        self.modified = True

    def keys_to_kill(self, now: int) -> List[str]:
        if self.meta.kill_at is not None and now >= self.meta.kill_at:
            return [self.full_key(self.key)]
        return []
