"""Testing utilities and fakes for the thumbnails pipeline."""

from .fakes import (
    FakeAsyncS3Client,
    FakeLogger,
    FakeStreamingBody,
    S3Object,
    S3Bucket,
    create_test_image,
    make_client_error,
    setup_test_s3_environment,
)

__all__ = [
    "FakeAsyncS3Client",
    "FakeLogger",
    "FakeStreamingBody",
    "S3Object",
    "S3Bucket",
    "create_test_image",
    "make_client_error",
    "setup_test_s3_environment",
]
