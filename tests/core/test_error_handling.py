# tests/core/test_error_handling.py

import asyncio
import logging

import pytest
from botocore.exceptions import EndpointConnectionError

from thumbnails_pipeline.core.exceptions import (
    ConfigurationError,
    DecodeError,
    EncodeError,
    FetchError,
    ImageProcessingError,
    ObjectNotFoundError,
    PutError,
    ResizeError,
    StorageError,
    ThumbnailsPipelineError,
)
from thumbnails_pipeline.core.error_handling import (
    BatchOperationContextManager,
    classify_client_error,
    translate_storage_errors,
)
from thumbnails_pipeline.testing.fakes import make_client_error


# --- Tests for Custom Exceptions ---

def test_exception_hierarchy():
    """Per-item errors and the fatal configuration error share one base."""
    for error_cls in (ConfigurationError, StorageError, ImageProcessingError):
        assert issubclass(error_cls, ThumbnailsPipelineError)
    assert issubclass(ObjectNotFoundError, FetchError)
    assert issubclass(FetchError, StorageError)
    assert issubclass(PutError, StorageError)
    for error_cls in (DecodeError, ResizeError, EncodeError):
        assert issubclass(error_cls, ImageProcessingError)


def test_storage_error_transient_flag():
    assert StorageError("x").transient is False
    assert PutError("x", transient=True).transient is True


# --- Tests for classify_client_error ---

@pytest.mark.parametrize("code", ["NoSuchKey", "NotFound", "404"])
def test_classify_not_found_on_fetch(code):
    error = classify_client_error(make_client_error(code, "GetObject", 404), FetchError)
    assert isinstance(error, ObjectNotFoundError)


def test_classify_not_found_code_on_put_stays_put_error():
    error = classify_client_error(make_client_error("NoSuchKey", "PutObject", 404), PutError)
    assert type(error) is PutError


@pytest.mark.parametrize(
    "code,status,transient",
    [
        ("SlowDown", 503, True),
        ("ThrottlingException", 400, True),
        ("RequestTimeout", 400, True),
        ("InternalError", 500, True),
        ("SomethingNew", 502, True),
        ("AccessDenied", 403, False),
        ("InvalidBucketName", 400, False),
    ],
)
def test_classify_transient(code, status, transient):
    error = classify_client_error(make_client_error(code, "PutObject", status), PutError)
    assert error.transient is transient


# --- Tests for @translate_storage_errors ---

@translate_storage_errors(FetchError)
async def _raise(exc):
    raise exc


def test_translate_client_error():
    with pytest.raises(ObjectNotFoundError) as exc_info:
        asyncio.run(_raise(make_client_error("NoSuchKey", "GetObject", 404)))
    assert exc_info.value.__cause__ is not None


def test_translate_connection_error_is_transient():
    with pytest.raises(FetchError) as exc_info:
        asyncio.run(_raise(EndpointConnectionError(endpoint_url="https://s3.example")))
    assert exc_info.value.transient is True


def test_translate_timeout_is_transient():
    with pytest.raises(FetchError, match="Deadline exceeded") as exc_info:
        asyncio.run(_raise(asyncio.TimeoutError()))
    assert exc_info.value.transient is True


def test_translate_passes_through_storage_errors():
    original = PutError("already translated")
    with pytest.raises(PutError) as exc_info:
        asyncio.run(_raise(original))
    assert exc_info.value is original


def test_translate_does_not_hide_programming_errors():
    with pytest.raises(KeyError):
        asyncio.run(_raise(KeyError("Body")))


def test_translate_preserves_return_value():
    @translate_storage_errors(FetchError)
    async def ok():
        return b"bytes"

    assert asyncio.run(ok()) == b"bytes"
    assert ok.__name__ == "ok"


def test_translate_logs_failures(caplog):
    with caplog.at_level(logging.ERROR):
        with pytest.raises(FetchError):
            asyncio.run(_raise(make_client_error("SlowDown", "GetObject", 503)))
    assert any("failed" in r.getMessage() for r in caplog.records)


# --- Tests for BatchOperationContextManager ---

def test_batch_context_manager_success(caplog):
    with caplog.at_level(logging.INFO):
        with BatchOperationContextManager("Test batch") as batch:
            pass
    assert batch.errors == []
    assert "Starting Test batch." in caplog.text
    assert "Test batch completed successfully." in caplog.text


def test_batch_context_manager_collects_errors(caplog):
    with caplog.at_level(logging.INFO):
        with BatchOperationContextManager("Test batch") as batch:
            batch.add_error("put: SlowDown", "photo_100x100.jpg")
            batch.add_error(ValueError("bad"), "a.jpg")

    assert batch.errors == [
        {"item": "photo_100x100.jpg", "error": "put: SlowDown"},
        {"item": "a.jpg", "error": "bad"},
    ]
    assert "Test batch completed with 2 error(s)." in caplog.text
    assert "Error 1/2 for item 'photo_100x100.jpg': put: SlowDown" in caplog.text


def test_batch_context_manager_propagates_unhandled(caplog):
    with caplog.at_level(logging.ERROR):
        with pytest.raises(RuntimeError):
            with BatchOperationContextManager("Test batch"):
                raise RuntimeError("boom")
    assert "failed due to an unhandled exception: boom" in caplog.text
