"""Custom exceptions for the thumbnails pipeline."""

from __future__ import annotations


class ThumbnailsPipelineError(Exception):
    """Base exception for all thumbnails pipeline errors."""


class ConfigurationError(ThumbnailsPipelineError):
    """Error raised for missing or invalid configuration. Fatal for the invocation."""


class StorageError(ThumbnailsPipelineError):
    """Error raised for S3 related failures.

    ``transient`` is set when the failure came from throttling, the network or
    the invocation deadline, after the client's own retries were exhausted.
    """

    def __init__(self, message: str, *, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class FetchError(StorageError):
    """Error raised when an object cannot be read from S3."""


class ObjectNotFoundError(FetchError):
    """Error raised when the notified object no longer exists."""


class PutError(StorageError):
    """Error raised when a thumbnail cannot be written to S3."""


class ImageProcessingError(ThumbnailsPipelineError):
    """Error raised when processing a single image fails."""


class DecodeError(ImageProcessingError):
    """Error raised when bytes are not a valid image in the configured codec."""


class ResizeError(ImageProcessingError):
    """Error raised when a thumbnail cannot be computed."""


class EncodeError(ImageProcessingError):
    """Error raised when a thumbnail cannot be encoded."""
