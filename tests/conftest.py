from typing import Iterable, List

import pytest

from catalog_admin.core.config import Config
from catalog_admin.core.db import Base
from catalog_admin.core.db.engine import create_engine_for_url, create_session_factory
from catalog_admin.core.exceptions import UploadError
from catalog_admin.core.store import EntityStoreClient
from catalog_admin.modules.image_sets.service import ImageSetWorkspace
from catalog_admin.modules.image_sets.staging import PendingFile


class FakeUploader:
    """Records uploads; fails for files whose original name is in ``fail_on``."""

    def __init__(self, fail_on: Iterable[str] = ()):
        self.fail_on = set(fail_on)
        self.calls: List[str] = []

    async def upload(self, content: bytes, filename: str, content_type: str) -> str:
        self.calls.append(filename)
        if any(filename.endswith(f"_{name}") for name in self.fail_on):
            raise UploadError(f"{filename} rejected by file host")
        return f"https://cdn.example.com/{filename}"


def image_file(name: str, size: int = 16, content_type: str = "image/jpeg") -> PendingFile:
    return PendingFile(filename=name, content_type=content_type, content=b"\xff" * size)


@pytest.fixture
async def session_factory(tmp_path):
    # One database file per test; every session gets its own connection
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def store(session_factory) -> EntityStoreClient:
    return EntityStoreClient(session_factory)


@pytest.fixture
def settings(tmp_path) -> Config:
    return Config(PREVIEW_DIR=str(tmp_path / "previews"))


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
async def catalog(store) -> dict:
    """
    Product 1 "Anarkali" with variations red/S, red/M, blue/S,
    product 2 "Plain tee" without variations, and a small color palette.
    """
    await store.insert("categories", [{"name": "Dresses"}])
    products = await store.insert(
        "products",
        [
            {"sku": "AN-001", "name": "Anarkali", "category_id": 1, "price": 1499},
            {"sku": "TE-001", "name": "Plain tee", "category_id": 1, "price": 299},
        ],
    )
    variations = await store.insert(
        "variations",
        [
            {"product_id": products[0]["id"], "color": "Red", "size": "S", "stock": 4},
            {"product_id": products[0]["id"], "color": "Red", "size": "M", "stock": 2},
            {"product_id": products[0]["id"], "color": "Blue", "size": "S", "stock": 7},
        ],
    )
    await store.insert(
        "colors",
        [{"name": "red", "hex_code": "#FF0000"}, {"name": "Green", "hex_code": "#00FF00"}],
    )
    return {
        "product": products[0],
        "empty_product": products[1],
        "red_ids": [variations[0]["id"], variations[1]["id"]],
        "blue_ids": [variations[2]["id"]],
    }


@pytest.fixture
def workspace(store, uploader, settings):
    ws = ImageSetWorkspace("test-workspace", store, uploader, settings)
    yield ws
    ws.close()
