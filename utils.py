"""
Clock, key generation and metadata timestamp helpers
"""
import random
import time
from typing import Optional

from constants import KEY_ALPHABET

_rng = random.SystemRandom()


def now() -> int:
    """Current wall-clock time in whole Unix seconds"""
    return int(time.time())


def generate_key(length: int) -> str:
    """Generate a random uppercase alphanumeric key"""
    return "".join(_rng.choice(KEY_ALPHABET) for _ in range(length))


def encode_timestamp(value: Optional[int]) -> str:
    return "" if value is None else str(int(value))


def decode_timestamp(value: str) -> Optional[int]:
    if value == "":
        return None
    return int(value)
