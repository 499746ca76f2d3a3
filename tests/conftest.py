import pytest
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import Image

from photo_catalog.database.schema import init_schema
from photo_catalog.database.ops import DBOperations
from photo_catalog.database.db import apply_pragmas

# Quadrant colours: top-left, top-right, bottom-left, bottom-right
QUADRANTS = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0)]

@pytest.fixture
def conn():
    """Returns an in-memory SQLite connection with the schema initialized."""
    c = sqlite3.connect(":memory:", check_same_thread=False)
    apply_pragmas(c)
    init_schema(c)
    try:
        yield c
    finally:
        c.close()

@pytest.fixture
def db_ops(conn):
    """Returns a DBOperations instance attached to the in-memory DB."""
    return DBOperations(conn)

def quadrant_image(size=(128, 64)) -> Image.Image:
    """An image whose four quadrants have distinct colours, so any flip or rotation is visible."""
    w, h = size
    img = Image.new("RGB", size)
    for idx, colour in enumerate(QUADRANTS):
        x0 = (idx % 2) * (w // 2)
        y0 = (idx // 2) * (h // 2)
        img.paste(colour, (x0, y0, x0 + w // 2, y0 + h // 2))
    return img

@pytest.fixture
def write_jpeg():
    """Writes a real JPEG, optionally carrying a capture time and an orientation tag."""
    def _write(path: Path,
               capture: Optional[datetime] = None,
               orientation: Optional[int] = None,
               size=(128, 64)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        exif = Image.Exif()
        if orientation is not None:
            exif[0x0112] = orientation
        if capture is not None:
            exif[0x0132] = capture.strftime("%Y:%m:%d %H:%M:%S")
        quadrant_image(size).save(path, "JPEG", quality=95, exif=exif.tobytes())
        return path
    return _write
