"""S3 storage gateway used by the fan-out workers."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Mapping, Optional, TypeVar

from .error_handling import translate_storage_errors
from .exceptions import FetchError, PutError
from .protocols import AsyncS3ClientProtocol, StorageGateway

THUMBNAIL_TAGS: Dict[str, str] = {"kind": "thumbnail"}
THUMBNAIL_CONTENT_TYPE = "image/jpeg"

T = TypeVar("T")


@dataclass(frozen=True)
class Deadline:
    """Point on the monotonic clock after which network calls are abandoned."""

    expires_at: Optional[float] = None
    clock: Any = field(default=time.monotonic, compare=False, repr=False)

    @classmethod
    def after(cls, seconds: Optional[float]) -> "Deadline":
        if seconds is None:
            return cls()
        return cls(expires_at=time.monotonic() + seconds)

    @classmethod
    def none(cls) -> "Deadline":
        return cls()

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when there is no deadline."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - self.clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable``, cancelling it if the deadline passes first."""
        remaining = self.remaining()
        if remaining is None:
            return await awaitable
        if remaining <= 0:
            # Close the coroutine so it is not reported as never awaited
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
            raise asyncio.TimeoutError()
        return await asyncio.wait_for(awaitable, timeout=remaining)


class S3Gateway(StorageGateway):
    """
    Fetch and put objects through a shared aioboto3 client.

    The client is configured with the retry policy, so the gateway surfaces
    whatever remains after retries. Each call observes the invocation deadline.
    """

    def __init__(
        self,
        s3_client: AsyncS3ClientProtocol,
        deadline: Optional[Deadline] = None,
        storage_class: str = "STANDARD",
    ):
        self._s3_client = s3_client
        self._deadline = deadline or Deadline.none()
        self._storage_class = storage_class

    @property
    def deadline(self) -> Deadline:
        return self._deadline

    @translate_storage_errors(FetchError)
    async def fetch(self, bucket: str, key: str) -> bytes:
        """Read the whole object body."""
        return await self._deadline.run(self._read_object(bucket, key))

    async def _read_object(self, bucket: str, key: str) -> bytes:
        response = await self._s3_client.get_object(Bucket=bucket, Key=key)
        async with response["Body"] as stream:
            return await stream.read()

    @translate_storage_errors(PutError)
    async def put(
        self,
        bucket: str,
        key: str,
        body: bytes,
        tags: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Write a thumbnail, tagged so derived artifacts can be told apart from originals."""
        metadata = dict(tags or {})
        metadata.update(THUMBNAIL_TAGS)

        await self._deadline.run(
            self._s3_client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType=THUMBNAIL_CONTENT_TYPE,
                StorageClass=self._storage_class,
                Metadata=metadata,
            )
        )
