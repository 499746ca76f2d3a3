import io
import logging
import pytest
from pathlib import Path
from PIL import Image, ImageOps
from photo_catalog.models import PictureRecord
from photo_catalog.exceptions import ThumbnailError
from photo_catalog.thumbnails.generator import load_thumbnail, apply_orientation, decode_preview
from photo_catalog.thumbnails.sync import ThumbnailSynchronizer
from photo_catalog.thumbnails.cache import PreviewCache

TOLERANCE = 40

def sample_points(img: Image.Image):
    w, h = img.size
    return [img.getpixel((int(w * fx), int(h * fy))) for fy in (0.25, 0.75) for fx in (0.25, 0.75)]

def assert_same_layout(actual: Image.Image, expected: Image.Image):
    assert actual.size == expected.size
    for got, want in zip(sample_points(actual.convert("RGB")), sample_points(expected.convert("RGB"))):
        assert all(abs(g - w) <= TOLERANCE for g, w in zip(got, want)), (got, want)

@pytest.mark.parametrize("orientation", range(1, 9))
def test_load_thumbnail_applies_orientation(write_jpeg, tmp_path, orientation):
    src = write_jpeg(tmp_path / f"o{orientation}.jpg", orientation=orientation)

    thumb = Image.open(io.BytesIO(load_thumbnail(src)))
    with Image.open(src) as original:
        expected = ImageOps.exif_transpose(original)

    assert thumb.format == "JPEG"
    assert_same_layout(thumb, expected)

def test_apply_orientation_rotates_transposed_cases():
    base = Image.new("RGB", (4, 2))

    assert apply_orientation(base, 1).size == (4, 2)
    assert apply_orientation(base, 3).size == (4, 2)
    for orientation in (5, 6, 7, 8):
        assert apply_orientation(base, orientation).size == (2, 4)

def test_thumbnail_fits_box_and_keeps_aspect(write_jpeg, tmp_path):
    src = write_jpeg(tmp_path / "big.jpg", size=(1200, 600))

    thumb = Image.open(io.BytesIO(load_thumbnail(src)))

    assert thumb.size == (240, 120)

def test_thumbnail_of_unreadable_file(tmp_path):
    junk = tmp_path / "junk.jpg"
    junk.write_bytes(b"not an image")

    with pytest.raises(ThumbnailError):
        load_thumbnail(junk)

def test_decode_preview_is_full_size_and_upright(write_jpeg, tmp_path):
    src = write_jpeg(tmp_path / "p.jpg", orientation=6, size=(80, 40))

    preview = decode_preview("pid", src)

    assert (preview.width, preview.height) == (40, 80)
    assert preview.picture_id == "pid"
    assert len(preview.data) == preview.width * preview.height * len(preview.mode)

def test_sync_fills_missing_thumbnails(db_ops, write_jpeg, tmp_path):
    a = write_jpeg(tmp_path / "a.jpg")
    b = write_jpeg(tmp_path / "b.jpg")
    rec_a = PictureRecord.from_path(a)
    rec_b = PictureRecord.from_path(b)
    rec_b.thumbnail = b"existing"
    db_ops.insert_pictures([rec_a, rec_b])

    result = ThumbnailSynchronizer(db_ops, max_workers=2).sync()

    assert result.updated == [rec_a.id]
    assert db_ops.get_picture(rec_a.id).thumbnail.startswith(b"\xff\xd8")
    assert db_ops.get_picture(rec_b.id).thumbnail == b"existing"

def test_sync_all_regenerates_everything(db_ops, write_jpeg, tmp_path):
    rec = PictureRecord.from_path(write_jpeg(tmp_path / "a.jpg"))
    rec.thumbnail = b"stale"
    db_ops.insert_pictures([rec])

    result = ThumbnailSynchronizer(db_ops, max_workers=1).sync(update_all=True)

    assert result.updated == [rec.id]
    assert db_ops.get_picture(rec.id).thumbnail != b"stale"

def test_sync_continues_past_unreadable_sources(db_ops, write_jpeg, tmp_path, caplog):
    good = PictureRecord.from_path(write_jpeg(tmp_path / "good.jpg"))
    gone = PictureRecord(directory=str(tmp_path), filename="gone.jpg")
    db_ops.insert_pictures([good, gone])

    with caplog.at_level(logging.WARNING):
        result = ThumbnailSynchronizer(db_ops, max_workers=2).sync()

    assert result.updated == [good.id]
    assert result.failed == [gone.id]
    assert db_ops.get_picture(gone.id).thumbnail is None
    assert any("gone.jpg" in r.message for r in caplog.records)

def test_sync_invalidates_cached_previews(db_ops, write_jpeg, tmp_path):
    rec = PictureRecord.from_path(write_jpeg(tmp_path / "a.jpg"))
    db_ops.insert_pictures([rec])
    cache = PreviewCache(lambda pid: db_ops.get_picture(pid).filepath)
    cache.get_or_load(rec.id)

    ThumbnailSynchronizer(db_ops, max_workers=1, preview_cache=cache).sync()

    assert rec.id not in cache

def test_sync_requires_positive_worker_cap(db_ops):
    with pytest.raises(ValueError):
        ThumbnailSynchronizer(db_ops, max_workers=0)
    assert ThumbnailSynchronizer(db_ops).max_workers >= 1
