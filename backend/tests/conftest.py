import importlib
import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from filerelay.core.config import get_settings
from filerelay.services.storage import LocalStorageService


class RecordingStorage(LocalStorageService):
    """Local storage that remembers every upload it was asked to perform."""

    def __init__(self, base_path: Path) -> None:
        super().__init__(base_path)
        self.uploads: list[str] = []

    async def upload(self, key, data, content_type=None):  # type: ignore[override]
        self.uploads.append(key)
        return await super().upload(key, data, content_type)


@pytest.fixture(scope="session", autouse=True)
def configure_environment(tmp_path_factory):
    os.environ["ENV"] = "test"
    os.environ["STORAGE_BACKEND"] = "local"
    os.environ["LOCAL_STORAGE_DIR"] = str(tmp_path_factory.mktemp("default-storage"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage(tmp_path) -> RecordingStorage:
    return RecordingStorage(tmp_path / "bucket")


@pytest.fixture
def app_instance(configure_environment, storage):
    from filerelay import main as app_module

    importlib.reload(app_module)
    return app_module.create_app(storage=storage)


@pytest_asyncio.fixture
async def client(app_instance):
    transport = ASGITransport(app=app_instance)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
