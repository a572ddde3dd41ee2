"""Run the broker under uvicorn. Cleanup can instead be run alone with `python cleanup.py`."""
import os

import uvicorn

from constants import HOST, PORT, FORWARDED_ALLOW_IPS, CLEANUP_INTERVAL
from logging_config import setup_logging, get_logger

log_level = os.getenv("LOG_LEVEL", "DEBUG")
setup_logging(log_level=log_level, log_file=os.getenv("LOG_FILE", None))
logger = get_logger(__name__)


def main():
    logger.info(f"Starting rendezvous broker on {HOST}:{PORT}, cleanup every {CLEANUP_INTERVAL}s")
    uvicorn.run(
        "app:app",
        host=HOST,
        port=PORT,
        log_level=log_level.lower(),
        proxy_headers=True,
        forwarded_allow_ips=FORWARDED_ALLOW_IPS,
    )


if __name__ == "__main__":
    main()
