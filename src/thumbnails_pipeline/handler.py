"""AWS Lambda entry point for S3 object-created notifications."""

import asyncio
import functools
from typing import Any, Dict, Optional, Sequence

from .core import (
    BatchReport,
    Deadline,
    Notification,
    PipelineConfig,
    get_logger,
    load_config,
    log_configuration,
    parse_notifications,
)
from .core.factories import S3ClientFactory, ThumbnailPipelineFactory
from .core.logging_config import set_debug
from .core.protocols import AsyncS3ClientProtocol, LoggerProtocol

# Seconds kept back from the Lambda time limit so the batch can log and return
DEADLINE_SAFETY_MARGIN = 1.0


@functools.lru_cache(maxsize=1)
def get_config() -> PipelineConfig:
    """Read the configuration once per process (warm containers reuse it)."""
    config = load_config()
    if config.debug:
        set_debug(get_logger())
        log_configuration(config)
    return config


def deadline_from_context(context: Any) -> Deadline:
    """Derive the invocation deadline from the Lambda context, if there is one."""
    get_remaining = getattr(context, "get_remaining_time_in_millis", None)
    if get_remaining is None:
        return Deadline.none()
    seconds = get_remaining() / 1000.0 - DEADLINE_SAFETY_MARGIN
    return Deadline.after(max(0.0, seconds))


async def run_batch(
    notifications: Sequence[Notification],
    config: PipelineConfig,
    deadline: Optional[Deadline] = None,
    s3_client: Optional[AsyncS3ClientProtocol] = None,
    logger: Optional[LoggerProtocol] = None,
) -> BatchReport:
    """
    Run one batch through the fan-out scheduler.

    A single S3 client is shared by every worker in the batch. When no client
    is given, one is opened for the duration of the batch.
    """
    if not notifications:
        return BatchReport()

    if s3_client is not None:
        scheduler = ThumbnailPipelineFactory.create_scheduler(
            s3_client, config, deadline=deadline, logger=logger
        )
        return await scheduler.process_batch(notifications)

    region = notifications[0].region
    async with S3ClientFactory.create_s3_client(config, region=region) as client:
        scheduler = ThumbnailPipelineFactory.create_scheduler(
            client, config, deadline=deadline, logger=logger
        )
        return await scheduler.process_batch(notifications)


def lambda_handler(event: Dict[str, Any], context: Any) -> None:
    """
    Lambda entry point.

    Returns normally whatever happens to individual images; failures are only
    logged. A ConfigurationError is fatal and propagates.
    """
    logger = get_logger()
    logger.info("[Start]")
    try:
        notifications = parse_notifications(event)
        if not notifications:
            logger.info("No object-created records in event")
            return

        config = get_config()
        report = asyncio.run(
            run_batch(notifications, config, deadline=deadline_from_context(context))
        )
        logger.info(
            f"Processed {report.total} notification(s): "
            f"{report.thumbnails_written} thumbnail(s) written, "
            f"{report.thumbnails_failed} failed, {report.failed_objects} object(s) unreadable"
        )
    finally:
        logger.info("[End]")
