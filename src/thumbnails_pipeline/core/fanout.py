"""Two-level concurrent fan-out: one task per notified object, one per size target."""

import asyncio
import time
from typing import Awaitable, List, Optional, Sequence

from PIL import Image

from .codec import decode_image, encode_image
from .eligibility import screen_notification
from .error_handling import BatchOperationContextManager
from .exceptions import (
    DecodeError,
    EncodeError,
    FetchError,
    PutError,
    ResizeError,
    ThumbnailsPipelineError,
)
from .keys import derive_output_key
from .models import (
    BatchReport,
    Notification,
    ObjectResult,
    ObjectStatus,
    PipelineConfig,
    SizeResult,
    SizeTarget,
    SkipReason,
    Stage,
)
from .observability import LogContext, StructuredLogger
from .protocols import LoggerProtocol, StorageGateway
from .resize import make_thumbnail

STAGE_BY_ERROR = (
    (FetchError, Stage.FETCH),
    (DecodeError, Stage.DECODE),
    (ResizeError, Stage.RESIZE),
    (EncodeError, Stage.ENCODE),
    (PutError, Stage.PUT),
)


def stage_for(error: BaseException) -> Stage:
    for error_cls, stage in STAGE_BY_ERROR:
        if isinstance(error, error_cls):
            return stage
    return Stage.UNEXPECTED


class FanOutScheduler:
    """
    Process a batch of notifications.

    Every notification yields exactly one ObjectResult. Screened-out items are
    completed immediately; survivors each get an object-worker task, which in
    turn spawns one size-worker task per configured size once the source image
    is decoded. Failures are recorded in the results and logged; they never
    abort siblings or the batch.
    """

    def __init__(
        self,
        gateway: StorageGateway,
        config: PipelineConfig,
        logger: Optional[LoggerProtocol] = None,
    ):
        self._gateway = gateway
        self._config = config
        self._logger = logger or StructuredLogger("thumbnails-pipeline.fanout")

    async def process_batch(self, notifications: Sequence[Notification]) -> BatchReport:
        """Run the whole batch and return once every worker at both levels is done."""
        start_time = time.time()
        if not notifications:
            self._logger.info("Empty batch, nothing to do")
            return BatchReport()

        batch_context = LogContext(
            operation="process_batch", component="fanout_scheduler"
        ).with_metadata(batch_size=len(notifications))
        self._logger.info("Received notifications", batch_context)

        with BatchOperationContextManager(
            f"Thumbnail batch {batch_context.correlation_id}"
        ) as batch:
            units = [self._dispatch(n, batch_context) for n in notifications]
            # Outer barrier: one awaitable per notification, skipped or not
            outcomes = await asyncio.gather(*units, return_exceptions=True)

            results: List[ObjectResult] = []
            for notification, outcome in zip(notifications, outcomes):
                if isinstance(outcome, BaseException):
                    outcome = self._unexpected_object_failure(
                        notification, outcome, batch_context
                    )
                results.append(outcome)

                if outcome.status == ObjectStatus.FAILED:
                    batch.add_error(f"{outcome.stage.value}: {outcome.error}", outcome.key)
                for size_result in outcome.sizes:
                    if not size_result.success:
                        batch.add_error(
                            f"{size_result.stage.value}: {size_result.error}",
                            size_result.output_key or f"{outcome.key}@{size_result.size}",
                        )

        report = BatchReport(results=results, processing_time=time.time() - start_time)
        self._logger.info("Batch completed", batch_context, **report.summary())
        return report

    def _dispatch(
        self, notification: Notification, batch_context: LogContext
    ) -> Awaitable[ObjectResult]:
        decision = screen_notification(notification, self._config.supported_extensions)

        if not decision.process:
            self._logger.info(
                f"Ignoring {decision.reason.value} object",
                batch_context.with_operation("screen"),
                key=notification.key,
            )
            done: "asyncio.Future[ObjectResult]" = asyncio.get_running_loop().create_future()
            done.set_result(self._skipped(notification, decision.reason))
            return done

        return asyncio.create_task(
            self._process_object(notification, batch_context),
            name=f"object:{notification.key}",
        )

    @staticmethod
    def _skipped(notification: Notification, reason: SkipReason) -> ObjectResult:
        return ObjectResult(
            bucket=notification.bucket,
            key=notification.key,
            status=ObjectStatus.SKIPPED,
            skip_reason=reason,
        )

    async def _process_object(
        self, notification: Notification, batch_context: LogContext
    ) -> ObjectResult:
        """Object-worker: fetch and decode once, then fan out per size."""
        start_time = time.time()
        log_context = batch_context.with_operation("process_object").with_metadata(
            bucket=notification.bucket, key=notification.key
        )
        result = ObjectResult(
            bucket=notification.bucket,
            key=notification.key,
            status=ObjectStatus.PROCESSED,
        )

        try:
            self._logger.debug("Fetching object", log_context)
            data = await self._gateway.fetch(notification.bucket, notification.key)
            image = decode_image(data)
        except (FetchError, DecodeError) as e:
            result.status = ObjectStatus.FAILED
            result.stage = stage_for(e)
            result.error = str(e)
            result.processing_time = time.time() - start_time
            self._logger.error(
                "Read image failed", log_context, stage=result.stage.value, error=str(e)
            )
            return result

        try:
            self._logger.debug(
                f"Decoded image {image.width}x{image.height}", log_context
            )
            sizes = self._config.sizes
            tasks = [
                asyncio.create_task(
                    self._process_size(notification, image, size, log_context, start_time),
                    name=f"size:{notification.key}:{size}",
                )
                for size in sizes
            ]
            # Inner barrier: the source image must outlive every size-worker
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            image.close()

        for size, outcome in zip(sizes, outcomes):
            if isinstance(outcome, BaseException):
                outcome = self._unexpected_size_failure(
                    notification, size, outcome, log_context
                )
            result.sizes.append(outcome)

        result.processing_time = time.time() - start_time
        return result

    async def _process_size(
        self,
        notification: Notification,
        image: Image.Image,
        size: SizeTarget,
        object_context: LogContext,
        object_start: float,
    ) -> SizeResult:
        """Size-worker: resize, derive key, encode, put."""
        start_time = time.time()
        log_context = object_context.with_operation("process_size").with_metadata(
            size=str(size)
        )
        result = SizeResult(source_key=notification.key, size=size)

        try:
            thumbnail = make_thumbnail(image, size, self._config.resample)
            result.output_key = derive_output_key(notification.key, size)
            try:
                body = encode_image(thumbnail, self._config.jpeg_quality)
            finally:
                thumbnail.close()
            await self._gateway.put(notification.bucket, result.output_key, body)
        except ThumbnailsPipelineError as e:
            result.stage = stage_for(e)
            result.error = str(e)
            result.processing_time = time.time() - start_time
            self._logger.error(
                "Create thumbnail failed",
                log_context,
                stage=result.stage.value,
                output_key=result.output_key,
                error=str(e),
            )
            return result

        result.success = True
        result.processing_time = time.time() - start_time
        self._logger.info(
            "Created thumbnail",
            log_context,
            output_key=result.output_key,
            elapsed_ms=round((time.time() - object_start) * 1000, 1),
        )
        return result

    def _unexpected_object_failure(
        self, notification: Notification, error: BaseException, context: LogContext
    ) -> ObjectResult:
        self._logger.error(
            "Unexpected object-worker failure",
            context,
            key=notification.key,
            error=repr(error),
        )
        return ObjectResult(
            bucket=notification.bucket,
            key=notification.key,
            status=ObjectStatus.FAILED,
            stage=Stage.UNEXPECTED,
            error=repr(error),
        )

    def _unexpected_size_failure(
        self,
        notification: Notification,
        size: SizeTarget,
        error: BaseException,
        context: LogContext,
    ) -> SizeResult:
        self._logger.error(
            "Unexpected size-worker failure", context, size=str(size), error=repr(error)
        )
        return SizeResult(
            source_key=notification.key,
            size=size,
            output_key=derive_output_key(notification.key, size),
            stage=Stage.UNEXPECTED,
            error=repr(error),
        )
