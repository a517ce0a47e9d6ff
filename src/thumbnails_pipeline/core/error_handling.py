# src/thumbnails_pipeline/core/error_handling.py

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, List, Type

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import ObjectNotFoundError, StorageError, FetchError

NOT_FOUND_ERROR_CODES = ("NoSuchKey", "NotFound", "404")
TRANSIENT_S3_ERROR_CODES = (
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "SlowDown",
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "InternalError",
    "ServiceUnavailable",
)


def classify_client_error(exc: ClientError, error_cls: Type[StorageError]) -> StorageError:
    """Map a botocore ClientError onto the storage error taxonomy."""
    error = exc.response.get("Error", {})
    code = str(error.get("Code", ""))
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode") or 0

    if issubclass(error_cls, FetchError) and code in NOT_FOUND_ERROR_CODES:
        return ObjectNotFoundError(f"Object not found: {error.get('Message', code)}")

    transient = code in TRANSIENT_S3_ERROR_CODES or int(status) >= 500
    return error_cls(f"S3 error {code}: {error.get('Message', exc)}", transient=transient)


def translate_storage_errors(error_cls: Type[StorageError]) -> Callable:
    """
    Decorator for async S3 calls that converts third-party failures into ``error_cls``.

    botocore has already applied its retry policy by the time an error reaches
    this point, so nothing here retries.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = logging.getLogger(func.__module__ + "." + func.__qualname__)
            try:
                return await func(*args, **kwargs)
            except StorageError:
                raise
            except ClientError as e:
                error = classify_client_error(e, error_cls)
                logger.error(f"S3 operation '{func.__name__}' failed: {e}")
                raise error from e
            except BotoCoreError as e:
                logger.error(f"S3 connection failure in '{func.__name__}': {e}")
                raise error_cls(f"S3 connection failure: {e}", transient=True) from e
            except asyncio.TimeoutError as e:
                logger.error(f"S3 operation '{func.__name__}' aborted: deadline exceeded")
                raise error_cls("Deadline exceeded", transient=True) from e

        return wrapper

    return decorator


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """

    def __init__(self, operation_name: str = "Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, str]] = []
        self.logger = logging.getLogger(
            self.__class__.__module__ + "." + self.__class__.__name__
        )

    def __enter__(self) -> "BatchOperationContextManager":
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i+1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Exceptions not reported through add_error still propagate
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item") -> None:
        """
        Report an error for a specific item inside the 'with' block.

        Args:
            error_message: The error message or exception string.
            item_identifier: A string identifying the item that failed (e.g. the S3 key).
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(
            f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}"
        )
