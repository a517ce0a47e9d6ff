"""Core utilities and shared components for the thumbnails pipeline."""

from .codec import decode_image, encode_image
from .config import load_config, log_configuration, parse_sizes
from .eligibility import screen_notification
from .events import parse_notifications
from .exceptions import (
    ThumbnailsPipelineError,
    ConfigurationError,
    StorageError,
    FetchError,
    ObjectNotFoundError,
    PutError,
    ImageProcessingError,
    DecodeError,
    ResizeError,
    EncodeError,
)
from .fanout import FanOutScheduler
from .keys import derive_output_key, matches_size_marker, parse_size_marker
from .logging_config import get_logger, setup_logger
from .models import (
    BatchReport,
    EligibilityDecision,
    Notification,
    ObjectResult,
    ObjectStatus,
    PipelineConfig,
    SizeResult,
    SizeTarget,
    SkipReason,
    Stage,
)
from .resize import fit_within, make_thumbnail
from .storage import Deadline, S3Gateway

__all__ = [
    "BatchReport",
    "EligibilityDecision",
    "Notification",
    "ObjectResult",
    "ObjectStatus",
    "PipelineConfig",
    "SizeResult",
    "SizeTarget",
    "SkipReason",
    "Stage",
    "decode_image",
    "encode_image",
    "fit_within",
    "make_thumbnail",
    "derive_output_key",
    "matches_size_marker",
    "parse_size_marker",
    "screen_notification",
    "parse_notifications",
    "load_config",
    "log_configuration",
    "parse_sizes",
    "Deadline",
    "S3Gateway",
    "FanOutScheduler",
    "setup_logger",
    "get_logger",
    "ThumbnailsPipelineError",
    "ConfigurationError",
    "StorageError",
    "FetchError",
    "ObjectNotFoundError",
    "PutError",
    "ImageProcessingError",
    "DecodeError",
    "ResizeError",
    "EncodeError",
]
