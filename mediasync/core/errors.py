class MediaSyncError(Exception):
    """Base class for every failure raised by the media sync layer."""


class CapacityExceeded(MediaSyncError):
    """Pre-flight rejection: the collection would grow past its cap. No I/O happened."""

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__(f"At most {limit} media items allowed (requested {requested})")


class BlobUploadFailure(MediaSyncError):
    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Blob upload failed for {key}: {message}")


class BlobDeleteFailure(MediaSyncError):
    """Raised inside blob adapters only. `remove()` logs it and carries on."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Blob delete failed for {key}: {message}")


class MetadataWriteFailure(MediaSyncError):
    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Metadata {operation} failed: {message}")
