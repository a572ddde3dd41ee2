"""
Garbage collection of expired identities and rooms.

Works from a metadata listing only, record bodies are never read. Run it
periodically, either in-process (see app.py) or from an external scheduler:

    python cleanup.py
"""
import asyncio
import os
from typing import List, Optional

from backend import RedisBackend
from exceptions import CorruptRecordError, StorageError
from identity import Auth
from room import Room
import utils
from logging_config import get_logger, setup_logging

logger = get_logger(__name__)

RECORD_TYPES = (Auth, Room)


async def sweep(store: RedisBackend, now: Optional[int] = None) -> List[str]:
    """Delete every expired record. Returns the keys actually deleted."""
    now = utils.now() if now is None else now
    objects = await store.list_objects()

    # One group per expired record, dependents first so a failed delete leaves
    # the record that points at them for the next sweep
    groups = []
    seen = set()
    for full_key, metadata in objects:
        record_type = next((t for t in RECORD_TYPES if t.owns(full_key)), None)
        if record_type is None:
            logger.warning(f"Skipping unknown object {full_key}")
            continue
        try:
            record = record_type.from_listing(full_key, metadata)
        except CorruptRecordError as e:
            logger.error(f"Skipping unreadable object during sweep: {e}")
            continue
        group = [key for key in record.keys_to_kill(now) if key not in seen]
        seen.update(group)
        if group:
            groups.append(group)

    if not groups:
        logger.debug(f"Sweep over {len(objects)} objects found nothing to delete")
        return []

    logger.info(f"Deleting {groups}")
    deleted = []
    for group in groups:
        done = await store.delete_many(group)
        if len(done) < len(group):
            logger.error(f"Failed to delete {group[len(done)]} during sweep, leaving {group[len(done):]}")
        deleted.extend(done)
    return deleted


async def run_periodically(store: RedisBackend, interval: int):
    logger.info(f"Starting cleanup loop every {interval} seconds")
    while True:
        try:
            await sweep(store)
        except StorageError as e:
            logger.error(f"Cleanup sweep failed: {e}", exc_info=True)
        await asyncio.sleep(interval)


async def _main():
    store = RedisBackend()
    try:
        deleted = await sweep(store)
        logger.info(f"Sweep complete, deleted {len(deleted)} objects")
    finally:
        await store.close()


if __name__ == "__main__":
    setup_logging(log_level=os.getenv("LOG_LEVEL", "INFO"), log_file=os.getenv("LOG_FILE", None))
    asyncio.run(_main())
