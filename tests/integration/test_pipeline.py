"""Integration tests for the complete fan-out pipeline."""

import asyncio
import io

import pytest
from PIL import Image

from thumbnails_pipeline.core.fanout import FanOutScheduler
from thumbnails_pipeline.core.factories import ThumbnailPipelineFactory
from thumbnails_pipeline.core.models import (
    Notification,
    ObjectStatus,
    PipelineConfig,
    SizeTarget,
    SkipReason,
    Stage,
)
from thumbnails_pipeline.core.storage import Deadline, S3Gateway
from thumbnails_pipeline.testing.fakes import (
    FakeAsyncS3Client,
    FakeLogger,
    create_test_image,
    setup_test_s3_environment,
)


def _config(*pairs, **kwargs):
    sizes = tuple(SizeTarget(width=w, height=h) for w, h in pairs)
    return PipelineConfig(sizes=sizes, **kwargs)


def _notify(*keys, bucket="uploads"):
    return [Notification(bucket=bucket, key=k, region="us-east-1") for k in keys]


def _run(s3_client, config, notifications, logger=None, deadline=None):
    scheduler = ThumbnailPipelineFactory.create_scheduler(
        s3_client, config, deadline=deadline, logger=logger or FakeLogger()
    )
    return asyncio.run(scheduler.process_batch(notifications))


class TestPipelineIntegration:
    """End-to-end batches against the fake S3 client."""

    def test_two_sizes_produce_two_puts(self):
        """photo.jpg with sizes 100x100 and 200x200 yields exactly two PUTs."""
        fake_s3 = setup_test_s3_environment()

        report = _run(fake_s3, _config((100, 100), (200, 200)), _notify("photo.jpg"))

        assert sorted(call["Key"] for call in fake_s3.put_calls) == [
            "photo_100x100.jpg",
            "photo_200x200.jpg",
        ]
        assert report.thumbnails_written == 2
        assert report.results[0].status == ObjectStatus.PROCESSED

        bucket = fake_s3.get_bucket("uploads")
        for key, bound in [("photo_100x100.jpg", (100, 100)), ("photo_200x200.jpg", (200, 200))]:
            stored = bucket.get_object(key)
            assert stored.metadata == {"kind": "thumbnail"}
            assert stored.storage_class == "STANDARD"
            with Image.open(io.BytesIO(stored.body)) as thumb:
                assert thumb.format == "JPEG"
                assert thumb.width <= bound[0] and thumb.height <= bound[1]
                # 400x300 source keeps its 4:3 ratio
                assert abs(thumb.width / thumb.height - 4 / 3) < 0.05

    def test_directory_is_not_dispatched(self):
        """Batch {a.jpg, dir/} dispatches exactly one object-worker."""
        fake_s3 = setup_test_s3_environment()

        report = _run(fake_s3, _config((50, 50)), _notify("a.jpg", "dir/"))

        assert report.total == 2
        assert report.dispatched_count == 1
        assert [c["Key"] for c in fake_s3.get_calls] == ["a.jpg"]
        assert report.results[1].status == ObjectStatus.SKIPPED
        assert report.results[1].skip_reason == SkipReason.DIRECTORY
        assert report.results[0].sizes[0].success

    def test_missing_object_spawns_no_size_workers(self):
        """NotFound on fetch is logged; the batch still completes."""
        fake_s3 = setup_test_s3_environment()
        logger = FakeLogger()

        report = _run(fake_s3, _config((100, 100), (200, 200)), _notify("gone.jpg"), logger)

        result = report.results[0]
        assert result.status == ObjectStatus.FAILED
        assert result.stage == Stage.FETCH
        assert result.sizes == []
        assert fake_s3.put_calls == []
        errors = logger.get_logs("ERROR")
        assert any(log.get("key") == "gone.jpg" and log.get("stage") == "fetch" for log in errors)

    def test_one_failed_put_does_not_stop_sibling(self):
        """A PUT failing after retries leaves the other size's PUT in storage."""
        fake_s3 = setup_test_s3_environment()
        fake_s3.fail_put("photo_100x100.jpg", code="SlowDown", status=503)

        report = _run(fake_s3, _config((100, 100), (200, 200)), _notify("photo.jpg"))

        sizes = {str(s.size): s for s in report.results[0].sizes}
        assert sizes["100x100"].success is False
        assert sizes["100x100"].stage == Stage.PUT
        assert sizes["200x200"].success is True

        bucket = fake_s3.get_bucket("uploads")
        assert bucket.get_object("photo_100x100.jpg") is None
        assert bucket.get_object("photo_200x200.jpg") is not None
        assert report.results[0].status == ObjectStatus.PROCESSED

    def test_bad_image_does_not_block_batch(self):
        fake_s3 = setup_test_s3_environment()

        report = _run(
            fake_s3,
            _config((64, 64)),
            _notify("broken.jpg", "photo.jpg", "photos/landscape.JPEG"),
        )

        by_key = {r.key: r for r in report.results}
        assert by_key["broken.jpg"].status == ObjectStatus.FAILED
        assert by_key["broken.jpg"].stage == Stage.DECODE
        assert by_key["photo.jpg"].sizes[0].success
        assert by_key["photos/landscape.JPEG"].sizes[0].output_key == (
            "photos/landscape_64x64.JPEG"
        )
        assert report.thumbnails_written == 2

    def test_own_output_is_not_reprocessed(self):
        """Feeding the written thumbnails back in triggers nothing."""
        fake_s3 = setup_test_s3_environment()
        config = _config((100, 100), (200, 200))
        _run(fake_s3, config, _notify("photo.jpg"))
        written = [call["Key"] for call in fake_s3.put_calls]
        fake_s3.get_calls.clear()
        fake_s3.put_calls.clear()

        report = _run(fake_s3, config, _notify(*written))

        assert report.skipped_count == 2
        assert all(r.skip_reason == SkipReason.DERIVED_THUMBNAIL for r in report.results)
        assert fake_s3.get_calls == []
        assert fake_s3.put_calls == []

    def test_results_follow_notification_order(self):
        fake_s3 = setup_test_s3_environment()
        keys = ["picture.png", "photo.jpg", "dir/", "a.jpg", "photo_100x100.jpg"]

        report = _run(fake_s3, _config((32, 32)), _notify(*keys))

        assert [r.key for r in report.results] == keys
        assert [r.skip_reason for r in report.results] == [
            SkipReason.UNSUPPORTED_TYPE,
            None,
            SkipReason.DIRECTORY,
            None,
            SkipReason.DERIVED_THUMBNAIL,
        ]

    def test_empty_batch(self):
        fake_s3 = FakeAsyncS3Client()

        report = _run(fake_s3, _config((10, 10)), [])

        assert report.total == 0
        assert fake_s3.get_calls == [] and fake_s3.put_calls == []

    def test_all_skipped_batch_makes_no_calls(self):
        fake_s3 = setup_test_s3_environment()

        report = _run(fake_s3, _config((10, 10)), _notify("a/", "b.txt", "c_1x1.jpg"))

        assert report.skipped_count == 3
        assert fake_s3.get_calls == []


class TestFanOutConcurrency:
    """Concurrency behaviour of the two fan-out levels."""

    def test_objects_and_sizes_run_concurrently(self):
        fake_s3 = FakeAsyncS3Client()
        bucket = fake_s3.create_bucket("uploads")
        keys = [f"img{i}.jpg" for i in range(4)]
        for key in keys:
            bucket.add_object(key, create_test_image(120, 90))
        fake_s3.set_delay(0.05)

        report = _run(fake_s3, _config((10, 10), (20, 20), (30, 30)), _notify(*keys))

        assert report.thumbnails_written == 12
        # All four fetches were in flight together, then all twelve puts
        assert fake_s3.max_in_flight >= 4
        assert len(fake_s3.put_calls) == 12

    def test_fetch_completes_before_size_workers_start(self):
        fake_s3 = setup_test_s3_environment()
        events = []
        original_get = fake_s3.get_object
        original_put = fake_s3.put_object

        async def get_object(**kwargs):
            response = await original_get(**kwargs)
            events.append(("fetched", kwargs["Key"]))
            return response

        async def put_object(**kwargs):
            events.append(("put", kwargs["Key"]))
            return await original_put(**kwargs)

        fake_s3.get_object = get_object
        fake_s3.put_object = put_object

        _run(fake_s3, _config((10, 10), (20, 20)), _notify("photo.jpg"))

        assert events[0] == ("fetched", "photo.jpg")
        assert {e[0] for e in events[1:]} == {"put"}

    def test_deadline_fails_units_but_batch_returns(self):
        fake_s3 = setup_test_s3_environment()
        fake_s3.set_delay(5)

        report = _run(
            fake_s3,
            _config((10, 10)),
            _notify("photo.jpg", "a.jpg"),
            deadline=Deadline.after(0.05),
        )

        assert report.failed_objects == 2
        assert all(r.stage == Stage.FETCH for r in report.results)
        assert "Deadline exceeded" in report.results[0].error


class TestFailureIsolation:
    """Unexpected failures are contained at the joins."""

    def test_unexpected_size_worker_error_is_contained(self, monkeypatch):
        fake_s3 = setup_test_s3_environment()

        def exploding_encode(image, quality=75):
            if image.width <= 10:
                raise MemoryError("out of memory")
            return b"jpeg"

        monkeypatch.setattr("thumbnails_pipeline.core.fanout.encode_image", exploding_encode)

        report = _run(fake_s3, _config((10, 10), (200, 200)), _notify("photo.jpg"))

        sizes = {str(s.size): s for s in report.results[0].sizes}
        assert sizes["10x10"].stage == Stage.UNEXPECTED
        assert "MemoryError" in sizes["10x10"].error
        assert sizes["200x200"].success is True

    def test_unexpected_object_worker_error_is_contained(self):
        class BrokenGateway(S3Gateway):
            async def fetch(self, bucket, key):
                if key == "a.jpg":
                    raise RuntimeError("bug")
                return await super().fetch(bucket, key)

        fake_s3 = setup_test_s3_environment()
        logger = FakeLogger()
        scheduler = FanOutScheduler(BrokenGateway(fake_s3), _config((10, 10)), logger)

        report = asyncio.run(scheduler.process_batch(_notify("a.jpg", "photo.jpg")))

        assert report.results[0].status == ObjectStatus.FAILED
        assert report.results[0].stage == Stage.UNEXPECTED
        assert report.results[1].sizes[0].success is True
        assert any("Unexpected" in log["message"] for log in logger.get_logs("ERROR"))

    @pytest.mark.parametrize("quality", [10, 95])
    def test_configured_quality_is_used(self, quality):
        fake_s3 = setup_test_s3_environment()

        _run(fake_s3, _config((300, 300), jpeg_quality=quality), _notify("photo.jpg"))

        assert fake_s3.get_bucket("uploads").get_object("photo_300x300.jpg") is not None
