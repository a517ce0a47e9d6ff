"""Shared data models for the thumbnails pipeline."""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_EXTENSIONS: Tuple[str, ...] = (".jpg", ".jpeg")
RESAMPLE_FILTERS: Tuple[str, ...] = ("lanczos", "bicubic", "bilinear")


class Notification(BaseModel):
    """One object-created event delivered by S3."""

    model_config = ConfigDict(frozen=True)

    bucket: str
    key: str
    region: str = ""


class SizeTarget(BaseModel):
    """Bounding box a thumbnail must fit in."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0)
    height: int = Field(gt=0)

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


class PipelineConfig(BaseModel):
    """Process-wide configuration, built once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: Optional[str] = None
    max_retry: int = Field(default=3, ge=0)
    sizes: Tuple[SizeTarget, ...]
    supported_extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    jpeg_quality: int = Field(default=75, ge=1, le=95)
    resample: str = "lanczos"
    storage_class: str = "STANDARD"
    debug: bool = False

    @field_validator("supported_extensions")
    @classmethod
    def normalize_extensions(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        normalized = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = "." + ext
            normalized.append(ext)
        if not normalized:
            raise ValueError("at least one supported extension is required")
        return tuple(normalized)

    @field_validator("resample")
    @classmethod
    def check_resample(cls, value: str) -> str:
        value = value.lower()
        if value not in RESAMPLE_FILTERS:
            raise ValueError(
                f"unknown resample filter {value!r}, expected one of {RESAMPLE_FILTERS}"
            )
        return value

    @model_validator(mode="after")
    def check_sizes_and_credentials(self) -> "PipelineConfig":
        if not self.sizes:
            raise ValueError("at least one size target is required")
        # Output keys only encode width and height, so duplicates would overwrite each other
        seen = set()
        for size in self.sizes:
            if (size.width, size.height) in seen:
                raise ValueError(f"duplicate size target {size}")
            seen.add((size.width, size.height))
        if bool(self.access_key_id) != bool(self.secret_access_key):
            raise ValueError(
                "access_key_id and secret_access_key must be configured together"
            )
        return self


class SkipReason(str, Enum):
    """Why a notification was not processed."""

    DIRECTORY = "directory"
    DERIVED_THUMBNAIL = "derived-thumbnail"
    UNSUPPORTED_TYPE = "unsupported-type"


class EligibilityDecision(BaseModel):
    """Outcome of screening a notification."""

    model_config = ConfigDict(frozen=True)

    process: bool
    reason: Optional[SkipReason] = None

    @classmethod
    def accept(cls) -> "EligibilityDecision":
        return cls(process=True)

    @classmethod
    def skip(cls, reason: SkipReason) -> "EligibilityDecision":
        return cls(process=False, reason=reason)


class Stage(str, Enum):
    """Pipeline step at which a unit of work failed."""

    FETCH = "fetch"
    DECODE = "decode"
    RESIZE = "resize"
    ENCODE = "encode"
    PUT = "put"
    UNEXPECTED = "unexpected"


class ObjectStatus(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


class SizeResult(BaseModel):
    """Result of producing one thumbnail."""

    source_key: str
    size: SizeTarget
    output_key: str = ""
    success: bool = False
    stage: Optional[Stage] = None
    error: str = ""
    processing_time: float = 0.0


class ObjectResult(BaseModel):
    """Result of handling one notification."""

    bucket: str
    key: str
    status: ObjectStatus
    skip_reason: Optional[SkipReason] = None
    stage: Optional[Stage] = None
    error: str = ""
    sizes: List[SizeResult] = Field(default_factory=list)
    processing_time: float = 0.0


class BatchReport(BaseModel):
    """All results of one batch invocation, one entry per notification."""

    results: List[ObjectResult] = Field(default_factory=list)
    processing_time: float = 0.0

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def skipped_count(self) -> int:
        return sum(1 for r in self.results if r.status == ObjectStatus.SKIPPED)

    @property
    def dispatched_count(self) -> int:
        return self.total - self.skipped_count

    @property
    def failed_objects(self) -> int:
        return sum(1 for r in self.results if r.status == ObjectStatus.FAILED)

    @property
    def thumbnails_written(self) -> int:
        return sum(1 for r in self.results for s in r.sizes if s.success)

    @property
    def thumbnails_failed(self) -> int:
        return sum(1 for r in self.results for s in r.sizes if not s.success)

    def summary(self) -> dict:
        """Counts only, safe to return from the Lambda handler."""
        return {
            "total_items": self.total,
            "skipped_count": self.skipped_count,
            "dispatched_count": self.dispatched_count,
            "failed_objects": self.failed_objects,
            "thumbnails_written": self.thumbnails_written,
            "thumbnails_failed": self.thumbnails_failed,
            "processing_time": self.processing_time,
        }
