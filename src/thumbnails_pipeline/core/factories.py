"""Factory classes for creating configured service instances."""

from typing import Any, Optional

import aioboto3
from botocore.config import Config

from .fanout import FanOutScheduler
from .models import PipelineConfig
from .observability import StructuredLogger
from .protocols import AsyncS3ClientProtocol, LoggerProtocol
from .storage import Deadline, S3Gateway


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, debug: bool = False) -> LoggerProtocol:
        """Create a configured structured logger."""
        return StructuredLogger(name, level="DEBUG" if debug else None)


class S3ClientFactory:
    """Factory for aioboto3 S3 clients."""

    @staticmethod
    def client_config(config: PipelineConfig) -> Config:
        """botocore client config carrying the retry policy."""
        return Config(retries={"max_attempts": config.max_retry, "mode": "standard"})

    @staticmethod
    def create_s3_client(config: PipelineConfig, region: Optional[str] = None) -> Any:
        """
        Create an S3 client context manager.

        Static credentials are used when configured; otherwise the default
        credential chain (e.g. the Lambda execution role) applies. The region
        comes from config, falling back to the region of the notification.
        """
        session_kwargs = {}
        if config.access_key_id and config.secret_access_key:
            session_kwargs["aws_access_key_id"] = config.access_key_id
            session_kwargs["aws_secret_access_key"] = config.secret_access_key

        session = aioboto3.Session(**session_kwargs)
        return session.client(  # type: ignore[reportUnknownMemberType]
            "s3",
            region_name=config.region or region or None,
            config=S3ClientFactory.client_config(config),
        )


class ThumbnailPipelineFactory:
    """Factory for wiring the fan-out pipeline."""

    @staticmethod
    def create_scheduler(
        s3_client: AsyncS3ClientProtocol,
        config: PipelineConfig,
        deadline: Optional[Deadline] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> FanOutScheduler:
        """Create a scheduler around an already opened S3 client."""
        if logger is None:
            logger = LoggerFactory.create_logger("thumbnails-pipeline.fanout", config.debug)

        gateway = S3Gateway(s3_client, deadline=deadline, storage_class=config.storage_class)
        return FanOutScheduler(gateway=gateway, config=config, logger=logger)
