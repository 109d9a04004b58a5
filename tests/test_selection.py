import pytest

from catalog_admin.core.exceptions import (
    NotFoundError,
    RemoteError,
    SelectionError,
    UnsavedChangesError,
    ValidationError,
)
from catalog_admin.modules.image_sets.selection import CatalogSelectionState
from catalog_admin.modules.image_sets.staging import ImageStagingBuffer, PreviewRegistry

from .conftest import image_file


@pytest.fixture
def previews(tmp_path):
    return PreviewRegistry(tmp_path / "previews")


@pytest.fixture
def buffer(previews):
    return ImageStagingBuffer(previews)


@pytest.fixture
def selection(store, buffer):
    return CatalogSelectionState(store, buffer)


async def test_select_product_groups_variations_by_color(selection, catalog):
    groups = await selection.select_product(catalog["product"]["id"])

    assert [(g.color, g.variation_ids, g.sizes, g.hex_code) for g in groups] == [
        ("Red", catalog["red_ids"], ["S", "M"], "#FF0000"),
        ("Blue", catalog["blue_ids"], ["S"], None),
    ]
    assert selection.colors == ["Red", "Blue"]
    assert selection.color is None


async def test_product_without_variations_has_no_colors(selection, catalog):
    groups = await selection.select_product(catalog["empty_product"]["id"])

    assert groups == []
    assert selection.colors == []


async def test_unknown_product(selection, catalog):
    with pytest.raises(NotFoundError):
        await selection.select_product(999)
    assert selection.product is None


async def test_select_color_yields_color_variation_ids(selection, catalog):
    await selection.select_product(catalog["product"]["id"])

    assert selection.select_color("Red") == catalog["red_ids"]
    assert selection.require_color_variation_ids() == catalog["red_ids"]


async def test_check_color_does_not_change_selection(selection, catalog):
    await selection.select_product(catalog["product"]["id"])
    selection.select_color("Red")

    assert selection.check_color("Blue") == catalog["blue_ids"]
    assert selection.color == "Red"
    assert selection.color_variation_ids == catalog["red_ids"]


async def test_select_color_requires_product_and_known_color(selection, catalog):
    with pytest.raises(SelectionError):
        selection.select_color("Red")

    await selection.select_product(catalog["product"]["id"])
    with pytest.raises(ValidationError):
        selection.select_color("Green")

    with pytest.raises(SelectionError):
        selection.require_color_variation_ids()


async def test_switching_discards_staged_files_by_default(selection, buffer, previews, catalog):
    await selection.select_product(catalog["product"]["id"])
    selection.select_color("Red")
    buffer.add_files([image_file("a.jpg"), image_file("b.jpg")])

    selection.select_color("Blue")

    assert len(buffer) == 0
    assert previews.open_count == 0

    buffer.add_files([image_file("c.jpg")])
    await selection.select_product(catalog["empty_product"]["id"])
    assert len(buffer) == 0
    assert selection.color is None


async def test_confirm_policy_refuses_to_drop_unsaved_changes(store, buffer, previews, catalog):
    selection = CatalogSelectionState(store, buffer, policy="confirm")
    await selection.select_product(catalog["product"]["id"])
    selection.select_color("Red")
    buffer.add_files([image_file("a.jpg")])

    with pytest.raises(UnsavedChangesError):
        selection.select_color("Blue")
    with pytest.raises(UnsavedChangesError):
        await selection.select_product(catalog["empty_product"]["id"])
    assert selection.color == "Red"
    assert len(buffer) == 1

    selection.select_color("Blue", force=True)
    assert len(buffer) == 0
    assert previews.open_count == 0


async def test_failed_product_fetch_leaves_selection_unchanged(selection, buffer, catalog, monkeypatch):
    await selection.select_product(catalog["product"]["id"])
    selection.select_color("Red")
    buffer.add_files([image_file("a.jpg")])

    async def broken_select(*args, **kwargs):
        raise RemoteError("connection reset")

    monkeypatch.setattr(selection.store, "select", broken_select)

    with pytest.raises(RemoteError):
        await selection.select_product(catalog["empty_product"]["id"])
    assert selection.product_id == catalog["product"]["id"]
    assert selection.color == "Red"
    assert len(buffer) == 1


def test_unknown_policy(store, buffer):
    with pytest.raises(ValueError):
        CatalogSelectionState(store, buffer, policy="ask")
