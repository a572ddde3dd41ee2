class StorageError(Exception):
    """The object store failed or returned something unusable."""


class CorruptRecordError(StorageError):
    """A stored record's metadata or body could not be decoded."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Corrupt record {key}: {reason}")
        self.key = key
        self.reason = reason
