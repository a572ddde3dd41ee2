import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
REDIS_DB = int(os.getenv("REDIS_DB", 0))

# Seconds between in-process sweeps, 0 leaves cleanup to an external scheduler
CLEANUP_INTERVAL = int(os.getenv("CLEANUP_INTERVAL", 10))

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))
# Honour X-Forwarded-For when the broker sits behind a proxy or CDN
FORWARDED_ALLOW_IPS = os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1")

# Protocol timings, in seconds
GRACE_PERIOD = 20
FIRST_POLL = 1
POLL = 10
FAST_POLL = 1
CONNECT_DELAY = 5

KEY_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

AUTH_PREFIX = "auth"
AUTH_KEY_LENGTH = 32

ROOM_PREFIX = "room"
ROOM_KEY_LENGTH = 6
