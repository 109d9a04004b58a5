import pytest

from catalog_admin.core.exceptions import NotFoundError, ValidationError
from catalog_admin.modules.image_sets.staging import (
    ImageStagingBuffer,
    PreviewRegistry,
    StagingEntry,
)

from .conftest import image_file


@pytest.fixture
def previews(tmp_path) -> PreviewRegistry:
    return PreviewRegistry(tmp_path / "previews")


@pytest.fixture
def buffer(previews) -> ImageStagingBuffer:
    return ImageStagingBuffer(previews, capacity=9, max_file_bytes=5 * 1024 * 1024)


def primaries(buffer):
    return [index for index, entry in enumerate(buffer) if entry.is_primary]


def test_add_files_stages_pending_entries_with_previews(buffer, previews):
    result = buffer.add_files([image_file("a.jpg"), image_file("b.png", content_type="image/png")], 1, 10)

    assert [entry.pending_file.filename for entry in result.accepted] == ["a.jpg", "b.png"]
    assert result.rejected == [] and result.truncated == []
    assert all(entry.url.startswith("preview://") for entry in buffer)
    assert all(entry.product_id == 1 and entry.variation_id == 10 for entry in buffer)
    assert previews.open_count == 2
    assert primaries(buffer) == [0]
    assert buffer.dirty


def test_non_image_is_rejected_and_the_rest_staged(buffer):
    result = buffer.add_files(
        [
            image_file("front.jpg"),
            image_file("notes.pdf", content_type="application/pdf"),
            image_file("back.jpg"),
        ]
    )

    assert result.rejected == [("notes.pdf", "notes.pdf is not an image")]
    assert [entry.pending_file.filename for entry in buffer] == ["front.jpg", "back.jpg"]


def test_oversized_file_is_rejected(buffer):
    result = buffer.add_files(
        [image_file("huge.jpg", size=5 * 1024 * 1024 + 1), image_file("ok.jpg", size=5 * 1024 * 1024)]
    )

    assert result.rejected == [("huge.jpg", "huge.jpg is larger than 5 MB")]
    assert len(buffer) == 1


def test_buffer_never_exceeds_capacity(buffer, previews):
    first = buffer.add_files([image_file(f"{i}.jpg") for i in range(7)])
    second = buffer.add_files([image_file(f"x{i}.jpg") for i in range(4)])
    third = buffer.add_files([image_file("late.jpg")])

    assert len(first.accepted) == 7
    assert [entry.pending_file.filename for entry in second.accepted] == ["x0.jpg", "x1.jpg"]
    assert second.truncated == ["x2.jpg", "x3.jpg"]
    assert third.accepted == [] and third.truncated == ["late.jpg"]
    assert len(buffer) == 9
    assert previews.open_count == 9


def test_rejections_do_not_use_capacity(buffer):
    buffer.add_files([image_file(f"{i}.jpg") for i in range(8)])

    result = buffer.add_files([image_file("doc.txt", content_type="text/plain"), image_file("last.jpg")])

    assert [entry.pending_file.filename for entry in result.accepted] == ["last.jpg"]
    assert len(result.rejected) == 1


@pytest.mark.parametrize("moves", [[(0, 2)], [(2, 0)], [(1, 1)], [(3, 0), (0, 3), (2, 1)]])
def test_reorder_keeps_single_primary_at_front(buffer, moves):
    buffer.add_files([image_file(f"{i}.jpg") for i in range(4)])
    names = [entry.pending_file.filename for entry in buffer]

    for from_index, to_index in moves:
        buffer.reorder(from_index, to_index)
        names.insert(to_index, names.pop(from_index))

    assert [entry.pending_file.filename for entry in buffer] == names
    assert primaries(buffer) == [0]


def test_reorder_out_of_range(buffer):
    buffer.add_files([image_file("a.jpg")])

    with pytest.raises(ValidationError):
        buffer.reorder(0, 1)


def test_removing_primary_promotes_next_entry(buffer, previews):
    buffer.add_files([image_file("a.jpg"), image_file("b.jpg")])
    first, second = buffer.entries
    first_preview = first.preview.path

    removed = buffer.remove(first.local_id)

    assert removed is first
    assert buffer.entries == [second]
    assert second.is_primary
    assert not first_preview.exists()
    assert previews.open_count == 1

    buffer.remove(second.local_id)
    assert len(buffer) == 0
    assert previews.open_count == 0


def test_remove_unknown_entry(buffer):
    with pytest.raises(NotFoundError):
        buffer.remove("missing")


def test_clear_releases_every_preview(buffer, previews):
    buffer.add_files([image_file(f"{i}.jpg") for i in range(3)])
    paths = [entry.preview.path for entry in buffer]

    buffer.clear()

    assert len(buffer) == 0
    assert previews.open_count == 0
    assert not any(path.exists() for path in paths)
    assert not buffer.dirty


def test_replace_releases_previews_of_discarded_entries(buffer, previews):
    buffer.add_files([image_file("a.jpg")])

    buffer.replace(
        [
            StagingEntry(local_id="r1", url="https://cdn/1.jpg", image_id=1),
            StagingEntry(local_id="r2", url="https://cdn/2.jpg", image_id=2, is_primary=True),
        ]
    )

    assert previews.open_count == 0
    assert [entry.local_id for entry in buffer] == ["r1", "r2"]
    assert primaries(buffer) == [0]
    assert not buffer.dirty


def test_mark_persisted_releases_preview(buffer, previews):
    [entry] = buffer.add_files([image_file("a.jpg")]).accepted

    buffer.mark_persisted(entry.local_id, "https://cdn/a.jpg", [5, 6])

    assert not entry.is_pending
    assert entry.url == "https://cdn/a.jpg"
    assert entry.image_id == 5 and entry.sibling_image_ids == [5, 6]
    assert previews.open_count == 0
    assert buffer.mark_persisted("gone", "https://cdn/x.jpg", [7]) is None
