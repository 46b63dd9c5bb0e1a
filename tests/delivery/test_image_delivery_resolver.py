"""ImageDeliveryResolver end to end with in-memory collaborators."""
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from app.delivery.errors import AccessDenied, ImageNotFound, TransientStorageFailure
from app.delivery.models import ClientInfo, ImageRecord, Member, SetGate
from app.delivery.resolver import ImageDeliveryResolver
from app.delivery.tracking import read_tracking_id
from app.forensics.logger import ForensicLogger
from app.services.signed_url_cache import CacheStatus, SignedUrlCache
from app.storage.local import LocalObjectStorage
from fakes import BrokenRedis, FakeRedis, FakeStorage, make_image_bytes, open_image

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
PRIMARY = "2026/03/spring/original/a.png"
STATIC = "2026/03/spring/watermarked/a.png"


class FakeImages:
    def __init__(self, *records):
        self.records = {r.image_id: r for r in records}
        self.calls = 0

    def get_record(self, image_id):
        self.calls += 1
        return self.records.get(image_id)


def _record(image_id="img1", watermarked=STATIC, published=True, scheduled=None, min_tier=None):
    return ImageRecord(
        image_id=image_id,
        object_key=PRIMARY,
        watermarked_object_key=watermarked,
        set_id="set1",
        filename="a.png",
        gate=SetGate(
            set_id="set1",
            published_at=NOW - timedelta(days=1) if published else None,
            scheduled_time=scheduled,
            min_tier=min_tier,
        ),
    )


def _resolver(record=None, storage=None, redis_client=None, forensic=None):
    storage = storage or FakeStorage(
        {PRIMARY: make_image_bytes(color=(200, 10, 10)), STATIC: make_image_bytes(color=(10, 200, 10))}
    )
    forensic = forensic or MagicMock(spec=ForensicLogger)
    resolver = ImageDeliveryResolver(
        images=FakeImages(record or _record()),
        storage=storage,
        url_cache=SignedUrlCache(redis_client or FakeRedis(), prefix="t:", max_ttl_seconds=240, safety_margin_seconds=60),
        forensic_logger=forensic,
        clock=lambda: NOW,
        url_ttl_seconds=900,
    )
    return resolver, storage, forensic


BRONZE = Member(user_id="u-bronze", tier="bronze", watermark_identity="patreon-42")
PLATINUM = Member(user_id="u-plat", tier="platinum")
CLIENT = ClientInfo(ip_address="203.0.113.9", user_agent="pytest", referer="https://vault.test/sets/1")


class TestView:
    def test_bronze_view_uses_static_variant(self):
        resolver, storage, _ = _resolver()
        result = resolver.resolve("img1", BRONZE, "view", CLIENT)
        assert storage.sign_calls == [(STATIC, 900)]
        assert STATIC in result.url
        assert result.expires_in == 900
        assert result.tier == "bronze"
        assert len(result.tracking_id) == 16

    def test_gold_view_uses_primary(self):
        resolver, storage, _ = _resolver()
        resolver.resolve("img1", Member(user_id="g", tier="gold"), "view")
        assert storage.sign_calls == [(PRIMARY, 900)]

    def test_second_view_hits_cache(self):
        resolver, storage, _ = _resolver()
        first = resolver.resolve("img1", BRONZE, "view")
        second = resolver.resolve("img1", BRONZE, "view")
        assert first.cache_status == CacheStatus.MISS
        assert second.cache_status == CacheStatus.HIT
        assert second.url == first.url
        assert len(storage.sign_calls) == 1

    def test_cache_backend_error_still_serves_fresh_url(self):
        resolver, storage, _ = _resolver(redis_client=BrokenRedis())
        result = resolver.resolve("img1", PLATINUM, "view")
        assert result.cache_status == CacheStatus.ERROR
        assert result.url.startswith("https://storage.test/")
        assert len(storage.sign_calls) == 1

    def test_signing_failure_is_transient_error(self):
        storage = FakeStorage()
        storage.failing.add(PRIMARY)
        resolver, _, _ = _resolver(storage=storage)
        with pytest.raises(TransientStorageFailure):
            resolver.resolve("img1", PLATINUM, "view")

    def test_forensic_event_dispatched(self):
        resolver, _, forensic = _resolver()
        result = resolver.resolve("img1", BRONZE, "view", CLIENT)
        event = forensic.log.call_args[0][0]
        assert event.action == "view"
        assert event.user_id == "u-bronze"
        assert event.image_id == "img1"
        assert event.set_id == "set1"
        assert event.ip_address == "203.0.113.9"
        assert event.user_tier == "bronze"
        assert event.referer == "https://vault.test/sets/1"
        assert event.tracking_id == result.tracking_id
        assert event.timestamp == NOW


class TestGateShortCircuit:
    def test_unknown_image_is_not_found(self):
        resolver, storage, forensic = _resolver()
        with pytest.raises(ImageNotFound):
            resolver.resolve("missing", BRONZE, "view")
        assert storage.sign_calls == []
        forensic.log.assert_not_called()

    def test_unpublished_denied_before_storage(self):
        resolver, storage, forensic = _resolver(record=_record(published=False, scheduled=NOW + timedelta(hours=1)))
        with pytest.raises(AccessDenied) as exc:
            resolver.resolve("img1", PLATINUM, "download")
        assert exc.value.reason == "unpublished"
        assert storage.get_calls == []
        assert storage.sign_calls == []
        forensic.log.assert_not_called()

    def test_insufficient_tier_denied(self):
        resolver, storage, _ = _resolver(record=_record(min_tier="gold"))
        with pytest.raises(AccessDenied) as exc:
            resolver.resolve("img1", BRONZE, "view")
        assert exc.value.reason == "insufficient_tier"
        assert storage.sign_calls == []

    def test_creator_bypasses_gate(self):
        resolver, _, _ = _resolver(record=_record(published=False))
        creator = Member(user_id="c", tier="bronze", is_creator=True)
        result = resolver.resolve("img1", creator, "view")
        assert PRIMARY in result.url


class TestDownload:
    def test_platinum_download_has_tracking_without_rendering(self):
        resolver, storage, _ = _resolver()
        with patch("app.delivery.resolver.apply_id_watermark") as render:
            result = resolver.resolve("img1", PLATINUM, "download")
        render.assert_not_called()
        assert storage.get_calls == [PRIMARY]
        assert result.watermarked is False
        assert read_tracking_id(result.content) == result.tracking_id
        # primary pixels untouched
        original = open_image(storage.objects[PRIMARY]).convert("RGB").tobytes()
        assert open_image(result.content).convert("RGB").tobytes() == original

    def test_bronze_download_renders_id_mark_over_static_variant(self):
        resolver, storage, _ = _resolver()
        result = resolver.resolve("img1", BRONZE, "download")
        assert storage.get_calls == [STATIC]
        assert result.watermarked is True
        assert result.content_type == "image/png"
        assert read_tracking_id(result.content) == result.tracking_id
        static_pixels = open_image(storage.objects[STATIC]).convert("RGB").tobytes()
        assert open_image(result.content).convert("RGB").tobytes() != static_pixels

    def test_bronze_id_mark_uses_identity(self):
        resolver, _, _ = _resolver()
        with patch("app.delivery.resolver.apply_id_watermark", side_effect=lambda b, identity, spec: b) as render:
            resolver.resolve("img1", BRONZE, "download")
        assert render.call_args[0][1] == "patreon-42"

    def test_missing_static_variant_falls_back_to_primary(self):
        storage = FakeStorage({PRIMARY: make_image_bytes()})
        resolver, _, _ = _resolver(storage=storage)
        result = resolver.resolve("img1", BRONZE, "download")
        assert storage.get_calls == [STATIC, PRIMARY]
        assert result.watermarked is True

    def test_both_objects_failing_is_transient_error(self):
        storage = FakeStorage()
        storage.failing.update({PRIMARY, STATIC})
        resolver, _, forensic = _resolver(storage=storage)
        with pytest.raises(TransientStorageFailure):
            resolver.resolve("img1", BRONZE, "download")
        forensic.log.assert_not_called()

    def test_render_failure_still_delivers_with_tracking(self):
        resolver, _, _ = _resolver()
        with patch("app.delivery.resolver.apply_id_watermark", side_effect=OSError("font exploded")):
            result = resolver.resolve("img1", BRONZE, "download")
        assert result.watermarked is False
        assert read_tracking_id(result.content) == result.tracking_id


class TestConcurrentMisses:
    def test_two_concurrent_misses_both_succeed(self):
        resolver, storage, _ = _resolver()
        barrier = threading.Barrier(2)
        results, errors = [], []

        def run():
            try:
                barrier.wait(timeout=5)
                results.append(resolver.resolve("img1", PLATINUM, "view"))
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=run) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert len(results) == 2
        for r in results:
            assert r.url.startswith(f"https://storage.test/{PRIMARY}")
            assert r.expires_in == 900
        # a later request is served from whichever write landed last
        assert resolver.resolve("img1", PLATINUM, "view").cache_status == CacheStatus.HIT


class TestForensicFailure:
    def test_logger_exception_never_reaches_caller(self):
        forensic = MagicMock(spec=ForensicLogger)
        forensic.log.side_effect = RuntimeError("forensics db down")
        resolver, _, _ = _resolver(forensic=forensic)
        result = resolver.resolve("img1", PLATINUM, "view")
        assert result.url.startswith("https://storage.test/")
        forensic.log.assert_called_once()

    def test_broker_failure_inside_logger_is_swallowed(self):
        def broken_send(payload):
            raise ConnectionError("broker unreachable")

        resolver, _, _ = _resolver(forensic=ForensicLogger(send=broken_send))
        result = resolver.resolve("img1", PLATINUM, "download")
        assert result.content


class TestUnsupportedObjectKey:
    KEY = "2026/03/spring/original/café #1.png"

    def _resolver(self, tmp_path):
        record = _record(watermarked=None).model_copy(update={"object_key": self.KEY})
        return _resolver(record=record, storage=LocalObjectStorage(root=str(tmp_path), secret="s"))[0]

    def test_view_reports_storage_failure(self, tmp_path):
        with pytest.raises(TransientStorageFailure):
            self._resolver(tmp_path).resolve("img1", PLATINUM, "view")

    def test_download_reports_storage_failure(self, tmp_path):
        with pytest.raises(TransientStorageFailure):
            self._resolver(tmp_path).resolve("img1", PLATINUM, "download")

    def test_bronze_download_falls_back_from_bad_variant_key(self, tmp_path):
        storage = LocalObjectStorage(root=str(tmp_path), secret="s")
        storage.put_object(PRIMARY, make_image_bytes())
        record = _record().model_copy(update={"watermarked_object_key": self.KEY})
        resolver, _, _ = _resolver(record=record, storage=storage)
        result = resolver.resolve("img1", BRONZE, "download")
        assert read_tracking_id(result.content) == result.tracking_id
