"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Protocol


class AsyncS3ClientProtocol(Protocol):
    """Protocol for the async (aioboto3) S3 client operations we use."""

    async def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...

    async def put_object(self, **kwargs: Any) -> Dict[str, Any]:
        """Put object to S3."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class StorageGateway(ABC):
    """Abstract fetch/put access to the object store."""

    @abstractmethod
    async def fetch(self, bucket: str, key: str) -> bytes:
        """Read an object's bytes."""
        ...

    @abstractmethod
    async def put(
        self,
        bucket: str,
        key: str,
        body: bytes,
        tags: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Write an object."""
        ...
