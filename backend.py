from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import redis
import redis.asyncio as aioredis

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, REDIS_DB
from exceptions import StorageError
from redis_keys import REDIS_BODY_KEY, REDIS_META_KEY, REDIS_META_PATTERN
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class StoredObject:
    key: str
    body: str
    metadata: Dict[str, str] = field(default_factory=dict)


class RedisBackend:
    """Object store with a body and a flat string metadata map per key.

    Each object lives in two Redis keys so metadata can be listed without
    reading bodies. Writes replace both in a single MULTI/EXEC.
    """

    def __init__(self, redis_client: Optional[aioredis.Redis] = None):
        if redis_client is None:
            logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}")
            redis_client = aioredis.Redis(
                host=REDIS_HOST,
                port=REDIS_PORT,
                password=REDIS_PASSWORD,
                db=REDIS_DB,
                decode_responses=True,
            )
        self.redis_client = redis_client

    async def ping(self) -> bool:
        try:
            return await self.redis_client.ping()
        except redis.RedisError as e:
            raise StorageError(f"Redis unavailable: {e}") from e

    async def head(self, key: str) -> bool:
        try:
            exists = await self.redis_client.exists(REDIS_BODY_KEY.format(key=key))
        except redis.RedisError as e:
            logger.error(f"Failed to probe {key}: {e}", exc_info=True)
            raise StorageError(f"Failed to probe {key}") from e
        return bool(exists)

    async def get(self, key: str) -> Optional[StoredObject]:
        logger.debug(f"Fetching object {key}")
        try:
            body = await self.redis_client.get(REDIS_BODY_KEY.format(key=key))
            if body is None:
                logger.debug(f"Object {key} not found in Redis")
                return None
            metadata = await self.redis_client.hgetall(REDIS_META_KEY.format(key=key))
        except redis.RedisError as e:
            logger.error(f"Failed to fetch {key}: {e}", exc_info=True)
            raise StorageError(f"Failed to fetch {key}") from e
        return StoredObject(key=key, body=body, metadata=metadata)

    async def put(self, key: str, body: str, metadata: Dict[str, str]):
        logger.debug(f"Writing object {key} with metadata {metadata}")
        body_key = REDIS_BODY_KEY.format(key=key)
        meta_key = REDIS_META_KEY.format(key=key)
        try:
            async with self.redis_client.pipeline(transaction=True) as pipe:
                pipe.set(body_key, body)
                pipe.delete(meta_key)
                # Redis refuses empty hashes
                if metadata:
                    pipe.hset(meta_key, mapping=metadata)
                await pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Failed to write {key}: {e}", exc_info=True)
            raise StorageError(f"Failed to write {key}") from e

    async def delete(self, key: str):
        logger.debug(f"Deleting object {key}")
        try:
            await self.redis_client.delete(REDIS_BODY_KEY.format(key=key), REDIS_META_KEY.format(key=key))
        except redis.RedisError as e:
            logger.error(f"Failed to delete {key}: {e}", exc_info=True)
            raise StorageError(f"Failed to delete {key}") from e

    async def delete_many(self, keys: Iterable[str]) -> List[str]:
        """Delete keys in order, stopping at the first failure. Returns the keys deleted."""
        deleted = []
        for key in keys:
            try:
                await self.delete(key)
            except StorageError:
                break
            deleted.append(key)
        return deleted

    async def list_objects(self) -> List[Tuple[str, Dict[str, str]]]:
        """List every object's key and metadata. Bodies are never read."""
        prefix_len = len(REDIS_META_KEY.format(key=""))
        objects = []
        try:
            async for meta_key in self.redis_client.scan_iter(match=REDIS_META_PATTERN):
                metadata = await self.redis_client.hgetall(meta_key)
                objects.append((meta_key[prefix_len:], metadata))
        except redis.RedisError as e:
            logger.error(f"Failed to list objects: {e}", exc_info=True)
            raise StorageError("Failed to list objects") from e
        logger.debug(f"Listed {len(objects)} objects")
        return objects

    async def close(self):
        await self.redis_client.aclose()


redis_backend = RedisBackend()
