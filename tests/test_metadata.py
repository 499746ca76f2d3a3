import pytest
from pathlib import Path
from datetime import datetime
from photo_catalog.metadata.extract import MetadataExtractor

def test_capture_time_from_exif(write_jpeg, tmp_path):
    dt = datetime(2024, 3, 1, 10, 30, 0)
    img = write_jpeg(tmp_path / "a.jpg", capture=dt)

    assert MetadataExtractor().get_capture_time(img) == dt

def test_capture_time_missing_tag(write_jpeg, tmp_path):
    img = write_jpeg(tmp_path / "a.jpg")

    assert MetadataExtractor().get_capture_time(img) is None

def test_capture_time_unreadable_file_is_not_fatal(tmp_path):
    missing = tmp_path / "gone.jpg"

    assert MetadataExtractor().get_capture_time(missing) is None

def test_capture_time_garbage_file(tmp_path):
    junk = tmp_path / "junk.jpg"
    junk.write_bytes(b"definitely not a jpeg")

    assert MetadataExtractor().get_capture_time(junk) is None
