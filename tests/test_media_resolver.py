import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from newsroom.exceptions import StorageUnavailableError
from newsroom.models.enums import MediaKind
from newsroom.models.media import MediaReference
from newsroom.services.media_resolver import IncomingMedia, MediaResolver, ServeAction
from newsroom.services.object_storage import ObjectStorage


class TestMediaReference:
    def test_parse_classifies_strings(self):
        assert MediaReference.parse("https://cdn.example.com/a.jpg").kind == MediaKind.ABSOLUTE_URL
        assert MediaReference.parse("/uploads/a.jpg").kind == MediaKind.LOCAL_PATH
        assert MediaReference.parse("uploads/a.jpg").kind == MediaKind.STORAGE_KEY
        assert MediaReference.parse("").is_empty

    def test_exactly_one_field_view(self):
        assert MediaReference.local_path("/uploads/a.jpg").as_fields() == (None, "/uploads/a.jpg")
        assert MediaReference.storage_key("uploads/a.jpg").as_fields() == ("uploads/a.jpg", None)
        assert MediaReference.empty().as_fields() == (None, None)

    def test_blank_value_is_empty(self):
        ref = MediaReference(MediaKind.STORAGE_KEY, "   ")
        assert ref.kind == MediaKind.EMPTY

    def test_filename_ignores_query(self):
        assert MediaReference.parse("https://x.test/uploads/a.jpg?sig=1").filename == "a.jpg"


class TestObjectStorageUrls:
    def test_default_public_url(self, object_storage):
        assert object_storage.public_url("uploads/a b.jpg") == "https://test-bucket.storage.googleapis.com/uploads/a%20b.jpg"

    def test_public_base_wins(self, storage_settings, fake_gcs):
        settings = storage_settings.model_copy(update={
            "storage_public_url": "https://media.example.com/",
            "storage_endpoint": "https://storage.internal",
        })
        storage = ObjectStorage(settings, client=fake_gcs)
        assert storage.public_url("uploads/a.jpg") == "https://media.example.com/uploads/a.jpg"

    def test_endpoint_is_path_style(self, storage_settings, fake_gcs):
        settings = storage_settings.model_copy(update={"storage_endpoint": "https://storage.internal/"})
        storage = ObjectStorage(settings, client=fake_gcs)
        assert storage.public_url("uploads/a.jpg") == "https://storage.internal/test-bucket/uploads/a.jpg"

    def test_key_for_public_url(self, storage_settings, fake_gcs):
        settings = storage_settings.model_copy(update={"storage_public_url": "https://media.example.com"})
        storage = ObjectStorage(settings, client=fake_gcs)

        assert storage.key_for_public_url("https://media.example.com/uploads/a%20b.jpg?v=2") == "uploads/a b.jpg"
        assert storage.key_for_public_url("https://media.example.com.evil.test/uploads/a.jpg") is None
        assert storage.key_for_public_url("https://other.example/uploads/a.jpg") is None

    def test_disabled_storage_refuses_uploads(self, disabled_storage):
        with pytest.raises(StorageUnavailableError):
            disabled_storage.upload_buffer(b"data", "uploads/a.jpg")
        assert disabled_storage.exists("uploads/a.jpg") is False


class TestListingResolution:
    def test_storage_key_becomes_public_url(self, storage_resolver):
        ref = MediaReference.storage_key("uploads/a.jpg")
        assert storage_resolver.resolve_for_listing(ref) == "https://test-bucket.storage.googleapis.com/uploads/a.jpg"

    def test_local_upload_rewritten_when_storage_active(self, storage_resolver):
        ref = MediaReference.local_path("/uploads/a.jpg")
        assert storage_resolver.resolve_for_listing(ref) == "https://test-bucket.storage.googleapis.com/uploads/a.jpg"

    def test_local_path_kept_without_storage(self, local_resolver):
        assert local_resolver.resolve_for_listing(MediaReference.local_path("/uploads/a.jpg")) == "/uploads/a.jpg"

    def test_external_url_untouched(self, storage_resolver):
        url = "https://images.example.org/photo.jpg"
        assert storage_resolver.resolve_for_listing(MediaReference.absolute_url(url)) == url

    def test_legacy_absolute_upload_url_is_normalized(self, storage_resolver):
        ref = MediaReference.absolute_url("http://old-server.test/uploads/a.jpg")
        assert storage_resolver.resolve_for_listing(ref) == "https://test-bucket.storage.googleapis.com/uploads/a.jpg"

    def test_empty_reference(self, local_resolver):
        assert local_resolver.resolve_for_listing(MediaReference.empty()) == ""

    def test_storage_key_served_locally_without_storage(self, local_resolver):
        ref = MediaReference.storage_key("uploads/a.jpg")
        assert local_resolver.resolve_for_listing(ref) == "/uploads/a.jpg"


class TestServingResolution:
    @pytest.mark.asyncio
    async def test_missing_local_file_without_fallback_is_not_found(self, local_resolver):
        decision = await local_resolver.resolve_for_serving(MediaReference.local_path("/uploads/missing.jpg"))
        assert decision.action == ServeAction.NOT_FOUND

    @pytest.mark.asyncio
    async def test_missing_local_file_with_url_placeholder_redirects(self, settings, disabled_storage):
        settings = settings.model_copy(update={"default_placeholder_image": "https://cdn.example.com/placeholder.png"})
        resolver = MediaResolver(settings, disabled_storage)

        decision = await resolver.resolve_for_serving(MediaReference.local_path("/uploads/missing.jpg"))

        assert decision.action == ServeAction.REDIRECT
        assert decision.target == "https://cdn.example.com/placeholder.png"

    @pytest.mark.asyncio
    async def test_missing_local_file_with_file_placeholder(self, settings, disabled_storage):
        Path(settings.static_dir, "placeholder.png").write_bytes(b"png")
        settings = settings.model_copy(update={"default_placeholder_image": "/placeholder.png"})
        resolver = MediaResolver(settings, disabled_storage)

        decision = await resolver.resolve_for_serving(MediaReference.local_path("/uploads/missing.jpg"))

        assert decision.action == ServeAction.FILE
        assert decision.target.endswith("placeholder.png")

    @pytest.mark.asyncio
    async def test_existing_local_file_is_streamed(self, local_resolver, settings):
        Path(settings.upload_dir, "a.jpg").write_bytes(b"jpg")

        decision = await local_resolver.resolve_for_serving(MediaReference.local_path("/uploads/a.jpg"))

        assert decision.action == ServeAction.FILE
        assert decision.target == str(Path(settings.upload_dir) / "a.jpg")

    @pytest.mark.asyncio
    async def test_existing_object_redirects_to_signed_url(self, storage_resolver, bucket):
        bucket.objects["uploads/a.jpg"] = (b"jpg", "image/jpeg")

        decision = await storage_resolver.resolve_for_serving(MediaReference.storage_key("uploads/a.jpg"))

        assert decision.action == ServeAction.REDIRECT
        assert decision.target.startswith("https://signed.example.com/test-bucket/uploads/a.jpg")
        assert "X-Goog-Expires=900" in decision.target

    @pytest.mark.asyncio
    async def test_signing_failure_falls_back_to_public_url(self, storage_resolver, bucket):
        bucket.objects["uploads/a.jpg"] = (b"jpg", "image/jpeg")
        bucket.fail_signing = True

        decision = await storage_resolver.resolve_for_serving(MediaReference.storage_key("uploads/a.jpg"))

        assert decision.action == ServeAction.REDIRECT
        assert decision.target == "https://test-bucket.storage.googleapis.com/uploads/a.jpg"

    @pytest.mark.asyncio
    async def test_missing_object_is_not_found(self, storage_resolver):
        decision = await storage_resolver.resolve_for_serving(MediaReference.storage_key("uploads/gone.jpg"))
        assert decision.action == ServeAction.NOT_FOUND

    @pytest.mark.asyncio
    async def test_local_upload_found_in_store(self, storage_resolver, bucket):
        bucket.objects["uploads/a.jpg"] = (b"jpg", "image/jpeg")

        decision = await storage_resolver.resolve_for_serving(MediaReference.local_path("/uploads/a.jpg"))

        assert decision.action == ServeAction.REDIRECT
        assert "uploads/a.jpg" in decision.target

    @pytest.mark.asyncio
    async def test_external_url_redirects(self, local_resolver):
        decision = await local_resolver.resolve_for_serving(MediaReference.absolute_url("https://img.example.org/x.png"))

        assert decision.action == ServeAction.REDIRECT
        assert decision.target == "https://img.example.org/x.png"

    @pytest.mark.asyncio
    async def test_existence_check_timeout_counts_as_missing(self, storage_resolver, bucket):
        bucket.objects["uploads/a.jpg"] = (b"jpg", "image/jpeg")
        storage_resolver.timeout = 0.01

        def slow_exists(key):
            import time
            time.sleep(0.2)
            return True

        with patch.object(storage_resolver.storage, "exists", side_effect=slow_exists):
            decision = await storage_resolver.resolve_for_serving(MediaReference.storage_key("uploads/a.jpg"))

        assert decision.action == ServeAction.NOT_FOUND


class TestUploads:
    @pytest.mark.asyncio
    async def test_upload_without_storage_stays_local(self, local_resolver, settings):
        ref = await local_resolver.store_upload(IncomingMedia("photo.JPG", b"jpg-bytes", "image/jpeg"))

        assert ref.kind == MediaKind.LOCAL_PATH
        assert ref.value.startswith("/uploads/") and ref.value.endswith(".jpg")
        assert Path(settings.upload_dir, ref.filename).read_bytes() == b"jpg-bytes"

    @pytest.mark.asyncio
    async def test_upload_with_storage_returns_key(self, storage_resolver, bucket, storage_settings):
        ref = await storage_resolver.store_upload(IncomingMedia("photo.png", b"png-bytes", "image/png"))

        assert ref.kind == MediaKind.STORAGE_KEY
        assert bucket.objects[ref.value] == (b"png-bytes", "image/png")
        assert not Path(storage_settings.upload_dir, ref.filename).exists()

    @pytest.mark.asyncio
    async def test_failed_store_upload_falls_back_to_local(self, storage_resolver, bucket, storage_settings):
        bucket.fail_uploads = True

        ref = await storage_resolver.store_upload(IncomingMedia("photo.png", b"png-bytes", "image/png"))

        assert ref.kind == MediaKind.LOCAL_PATH
        assert Path(storage_settings.upload_dir, ref.filename).exists()
        assert bucket.objects == {}

    @pytest.mark.asyncio
    async def test_gallery_keeps_input_order(self, storage_resolver, bucket):
        # the first file finishes last
        bucket.upload_delays[b"first"] = 0.2
        uploads = [
            IncomingMedia("1.jpg", b"first", "image/jpeg"),
            IncomingMedia("2.jpg", b"second", "image/jpeg"),
            IncomingMedia("3.jpg", b"third", "image/jpeg"),
        ]

        refs = await storage_resolver.store_gallery(uploads)

        assert [bucket.objects[ref.value][0] for ref in refs] == [b"first", b"second", b"third"]

    @pytest.mark.asyncio
    async def test_failing_gallery_element_does_not_abort_siblings(self, local_resolver):
        original = MediaResolver._write_local

        def flaky_write(path, data):
            if data == b"broken":
                raise OSError("disk full")
            original(path, data)

        uploads = [
            IncomingMedia("1.jpg", b"one"),
            IncomingMedia("2.jpg", b"broken"),
            IncomingMedia("3.jpg", b"three"),
        ]
        with patch.object(MediaResolver, "_write_local", staticmethod(flaky_write)):
            refs = await local_resolver.store_gallery(uploads)

        assert len(refs) == 2
        assert all(ref.kind == MediaKind.LOCAL_PATH for ref in refs)


class TestDeletion:
    @pytest.mark.asyncio
    async def test_gallery_keys_removed_from_store(self, storage_resolver, bucket):
        bucket.objects["uploads/1.jpg"] = (b"1", None)
        bucket.objects["uploads/2.jpg"] = (b"2", None)
        refs = [MediaReference.storage_key("uploads/1.jpg"), MediaReference.storage_key("uploads/2.jpg")]

        removed = await storage_resolver.delete_all(refs)

        assert removed == 2
        assert bucket.objects == {}

    @pytest.mark.asyncio
    async def test_local_files_unlinked(self, local_resolver, settings):
        Path(settings.upload_dir, "a.jpg").write_bytes(b"a")

        assert await local_resolver.delete_media(MediaReference.local_path("/uploads/a.jpg")) is True
        assert not Path(settings.upload_dir, "a.jpg").exists()

    @pytest.mark.asyncio
    async def test_store_failure_is_swallowed(self, storage_resolver, bucket):
        bucket.objects["uploads/a.jpg"] = (b"a", None)
        bucket.fail_deletes = True

        removed = await storage_resolver.delete_media(MediaReference.storage_key("uploads/a.jpg"))

        assert removed is False
        assert "uploads/a.jpg" in bucket.objects

    @pytest.mark.asyncio
    async def test_external_urls_are_left_alone(self, storage_resolver):
        assert await storage_resolver.delete_media(MediaReference.absolute_url("https://img.example.org/x.png")) is False

    @pytest.mark.asyncio
    async def test_foreign_upload_urls_never_delete_bucket_objects(self, storage_resolver, bucket):
        bucket.objects["uploads/a.jpg"] = (b"ours", None)

        removed = await storage_resolver.delete_media(MediaReference.absolute_url("https://other.example/uploads/a.jpg"))

        assert removed is False
        assert "uploads/a.jpg" in bucket.objects

    @pytest.mark.asyncio
    async def test_public_base_urls_are_deleted(self, storage_settings, fake_gcs, bucket):
        settings = storage_settings.model_copy(update={"storage_public_url": "https://media.example.com"})
        resolver = MediaResolver(settings, ObjectStorage(settings, client=fake_gcs))
        bucket.objects["uploads/a.jpg"] = (b"ours", None)

        assert await resolver.delete_media(MediaReference.absolute_url("https://media.example.com/uploads/a.jpg")) is True
        assert bucket.objects == {}

    @pytest.mark.asyncio
    async def test_local_upload_path_removes_migrated_object(self, storage_resolver, bucket):
        bucket.objects["uploads/a.jpg"] = (b"ours", None)

        assert await storage_resolver.delete_media(MediaReference.local_path("/uploads/a.jpg")) is True
        assert bucket.objects == {}

    @pytest.mark.asyncio
    async def test_legacy_upload_redirect(self, storage_resolver, local_resolver):
        assert await local_resolver.redirect_for_upload("a.jpg") is None
        url = await storage_resolver.redirect_for_upload("a.jpg")
        assert url.startswith("https://signed.example.com/test-bucket/uploads/a.jpg")
