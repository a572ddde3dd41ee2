"""
Keyed record store.

A record binds a pydantic payload (stored as the object body) and a flat
string metadata map (stored as the object's metadata) to ``prefix:key``.
Subclasses set ``PREFIX``, ``KEY_LENGTH`` and ``payload_model`` and provide
``default_metadata``, ``decode_metadata`` and ``encode_metadata``.
"""
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

from backend import RedisBackend
from exceptions import CorruptRecordError
from redis_keys import RECORD_KEY
import utils
from logging_config import get_logger

logger = get_logger(__name__)


class Record:
    PREFIX: str = ""
    KEY_LENGTH: int = 0
    payload_model: Type[BaseModel] = BaseModel

    def __init__(self, key: str, data: Optional[BaseModel], meta: Any, modified: bool = False):
        self.key = key
        # None when rehydrated from a metadata listing
        self.data = data
        self.meta = meta
        self.modified = modified

    @classmethod
    def full_key(cls, key: str) -> str:
        return RECORD_KEY.format(prefix=cls.PREFIX, key=key)

    @classmethod
    def owns(cls, full_key: str) -> bool:
        return full_key.startswith(cls.PREFIX + ":")

    @classmethod
    def strip_prefix(cls, full_key: str) -> str:
        return full_key[len(cls.PREFIX) + 1:]

    @classmethod
    def default_metadata(cls) -> Any:
        raise NotImplementedError

    @classmethod
    def decode_metadata(cls, metadata: Dict[str, str]) -> Any:
        """Build the metadata object. May raise KeyError or ValueError."""
        raise NotImplementedError

    def encode_metadata(self) -> Dict[str, str]:
        raise NotImplementedError

    @classmethod
    def _read_metadata(cls, key: str, metadata: Dict[str, str]) -> Any:
        try:
            return cls.decode_metadata(metadata)
        except KeyError as e:
            raise CorruptRecordError(cls.full_key(key), f"missing metadata field {e}") from e
        except ValueError as e:
            raise CorruptRecordError(cls.full_key(key), f"bad metadata value: {e}") from e

    @classmethod
    async def new_key(cls, store: RedisBackend) -> str:
        while True:
            key = utils.generate_key(cls.KEY_LENGTH)
            if not await store.head(cls.full_key(key)):
                return key
            logger.debug(f"Key collision on {cls.full_key(key)}, retrying")

    @classmethod
    async def create(cls, store: RedisBackend):
        key = await cls.new_key(store)
        logger.debug(f"Allocated new record {cls.full_key(key)}")
        return cls(key, cls.payload_model(), cls.default_metadata(), modified=True)

    @classmethod
    async def load(cls, store: RedisBackend, key: str):
        obj = await store.get(cls.full_key(key))
        if obj is None:
            return None
        meta = cls._read_metadata(key, obj.metadata)
        try:
            data = cls.payload_model.model_validate_json(obj.body)
        except ValidationError as e:
            raise CorruptRecordError(cls.full_key(key), "unreadable body") from e
        return cls(key, data, meta)

    @classmethod
    def from_listing(cls, full_key: str, metadata: Dict[str, str]):
        """Rehydrate metadata only, as returned by a store listing."""
        key = cls.strip_prefix(full_key)
        return cls(key, None, cls._read_metadata(key, metadata))

    async def write(self, store: RedisBackend):
        if not self.modified:
            return
        if self.data is None:
            raise ValueError(f"Cannot write metadata-only record {self.full_key(self.key)}")
        await store.put(
            self.full_key(self.key),
            self.data.model_dump_json(by_alias=True),
            self.encode_metadata(),
        )
        self.modified = False
