import os
import tempfile
import time

# Keep import-time settings away from the working tree
_BOOT_DIR = tempfile.mkdtemp(prefix="newsroom-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("STATIC_DIR", os.path.join(_BOOT_DIR, "public"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_BOOT_DIR, "public", "uploads"))
os.environ.setdefault("OBJECT_STORAGE_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from unittest.mock import MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from newsroom.config import Settings
from newsroom.core.database import Base
from newsroom.models.enums import UserRole
from newsroom.models.news_item import NewsItem
from newsroom.models.user import User
from newsroom.repositories.news_repository import NewsRepository
from newsroom.repositories.user_repository import UserRepository
from newsroom.services.media_resolver import MediaResolver
from newsroom.services.object_storage import ObjectStorage
from newsroom.services.publication_service import PublicationService
from newsroom.services.slug_service import SlugService


class FakeBlob:
    def __init__(self, bucket: "FakeBucket", name: str):
        self.bucket = bucket
        self.name = name

    def exists(self):
        return self.name in self.bucket.objects

    def upload_from_string(self, data, content_type=None):
        if self.bucket.fail_uploads:
            raise RuntimeError("upload refused")
        delay = self.bucket.upload_delays.get(data)
        if delay:
            time.sleep(delay)
        self.bucket.objects[self.name] = (data, content_type)

    def generate_signed_url(self, version, expiration, method):
        if self.bucket.fail_signing:
            raise RuntimeError("no signing credentials")
        return f"https://signed.example.com/{self.bucket.name}/{self.name}?X-Goog-Expires={int(expiration.total_seconds())}"

    def delete(self):
        if self.bucket.fail_deletes:
            raise RuntimeError("delete refused")
        del self.bucket.objects[self.name]


class FakeBucket:
    def __init__(self, name: str):
        self.name = name
        self.objects = {}
        self.upload_delays = {}
        self.fail_uploads = False
        self.fail_signing = False
        self.fail_deletes = False

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)


class FakeStorageClient:
    """In-memory stand-in for google.cloud.storage.Client"""

    def __init__(self):
        self.buckets = {}

    def bucket(self, name: str) -> FakeBucket:
        return self.buckets.setdefault(name, FakeBucket(name))


@pytest.fixture
def settings(tmp_path):
    public = tmp_path / "public"
    (public / "uploads").mkdir(parents=True)
    return Settings(
        _env_file=None,
        database_url="sqlite:///:memory:",
        static_dir=str(public),
        upload_dir=str(public / "uploads"),
        server_url="http://api.test",
        frontend_url="http://frontend.test",
        object_storage_enabled=False,
        storage_bucket="",
        news_api_key=None,
        demo_mode=False,
    )


@pytest.fixture
def storage_settings(settings):
    return settings.model_copy(update={"object_storage_enabled": True, "storage_bucket": "test-bucket"})


@pytest.fixture
def fake_gcs():
    return FakeStorageClient()


@pytest.fixture
def bucket(fake_gcs):
    return fake_gcs.bucket("test-bucket")


@pytest.fixture
def disabled_storage(settings):
    return ObjectStorage(settings)


@pytest.fixture
def object_storage(storage_settings, fake_gcs):
    return ObjectStorage(storage_settings, client=fake_gcs)


@pytest.fixture
def local_resolver(settings, disabled_storage):
    return MediaResolver(settings, disabled_storage)


@pytest.fixture
def storage_resolver(storage_settings, object_storage):
    return MediaResolver(storage_settings, object_storage)


@pytest.fixture
def test_db():
    # StaticPool keeps one connection so every thread sees the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def news_repo(test_db):
    return NewsRepository(test_db)


@pytest.fixture
def user_repo(test_db):
    return UserRepository(test_db)


@pytest.fixture
def slug_service(news_repo):
    return SlugService(news_repo)


@pytest.fixture
def publication(news_repo, slug_service, local_resolver, settings):
    return PublicationService(news_repo, slug_service, local_resolver, settings)


@pytest.fixture
def make_item(news_repo):
    counter = {"n": 0}

    def _make(**overrides) -> NewsItem:
        counter["n"] += 1
        fields = {
            "title": f"Story {counter['n']}",
            "slug": f"story-{counter['n']}",
            "short_id": f"short{counter['n']:05d}",
            "description": "Description",
            "content": "Content",
            "category": "ujala",
            "is_ujala": True,
            "approved": True,
        }
        kind = overrides.pop("kind", None)
        image = overrides.pop("image", None)
        gallery = overrides.pop("gallery_images", None)
        fields.update(overrides)
        item = NewsItem(**fields)
        if kind is not None:
            item.kind = kind
        if image is not None:
            item.image = image
        if gallery is not None:
            item.gallery_images = gallery
        return news_repo.insert(item)

    return _make


@pytest.fixture
def make_user(user_repo):
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.REPORTER, **overrides) -> User:
        counter["n"] += 1
        fields = {
            "firebase_uid": f"firebase-{counter['n']}",
            "email": f"user{counter['n']}@example.com",
            "full_name": f"User {counter['n']}",
            "role": UserRole(role).value,
        }
        fields.update(overrides)
        return user_repo.create(User(**fields))

    return _make


@pytest.fixture
def current_user(make_user):
    """Mutable holder for the user the API sees as authenticated"""
    return {"user": make_user(UserRole.SUPERADMIN, full_name="Super Admin")}


@pytest.fixture
def mock_news_provider():
    provider = MagicMock()
    provider.configured = False
    provider.get_article_by_slug = MagicMock(return_value=None)
    return provider


@pytest.fixture
def upstream_images():
    """URL -> (status, body, headers) served to the image proxy's HTTP client"""
    return {}


@pytest.fixture
def image_proxy(settings, disabled_storage, upstream_images):
    import httpx
    from newsroom.services.image_proxy import ImageProxy

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) not in upstream_images:
            raise httpx.ConnectError("connection refused", request=request)
        status, body, headers = upstream_images[str(request.url)]
        return httpx.Response(status, content=body, headers=headers)

    return ImageProxy(settings, disabled_storage, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.fixture
async def async_client(test_db, settings, local_resolver, disabled_storage, current_user, mock_news_provider, image_proxy):
    from httpx import AsyncClient, ASGITransport
    from newsroom.main import create_application
    from newsroom.config import get_settings
    from newsroom.core.database import get_db
    from newsroom.api.dependencies import get_current_user_required

    app = create_application(settings)
    app.state.object_storage = disabled_storage
    app.state.media_resolver = local_resolver
    app.state.news_provider = mock_news_provider
    app.state.image_proxy = image_proxy

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_current_user_required] = lambda: current_user["user"]

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
