"""
Decoding helpers for thumbnails and full size previews.

Orientation is read from the EXIF block and applied after resizing, so the
expensive resample always works on the stored pixel layout.
"""
import io
import logging
from pathlib import Path

from PIL import Image

from .. import config
from ..exceptions import ThumbnailError
from ..models import PreviewImage

# EXIF orientation -> transpose needed to display the image upright
ORIENTATION_TRANSPOSE = {
    2: Image.Transpose.FLIP_LEFT_RIGHT,
    3: Image.Transpose.ROTATE_180,
    4: Image.Transpose.FLIP_TOP_BOTTOM,
    5: Image.Transpose.TRANSPOSE,
    6: Image.Transpose.ROTATE_270,
    7: Image.Transpose.TRANSVERSE,
    8: Image.Transpose.ROTATE_90,
}


def read_orientation(image: Image.Image) -> int:
    try:
        value = int(image.getexif().get(config.ORIENTATION_TAG, 1))
    except (TypeError, ValueError):
        return 1
    return value if 1 <= value <= 8 else 1


def apply_orientation(image: Image.Image, orientation: int) -> Image.Image:
    """Returns the image as it should be displayed for an EXIF orientation of 1-8."""
    op = ORIENTATION_TRANSPOSE.get(orientation)
    if op is None:
        return image
    return image.transpose(op)


def load_thumbnail(path: Path, width: int = config.THUMBNAIL_SIZE[0], height: int = config.THUMBNAIL_SIZE[1]) -> bytes:
    """
    Decodes `path`, fits it inside width x height keeping the aspect ratio,
    corrects its orientation and returns it encoded as JPEG.
    """
    try:
        with Image.open(path) as img:
            orientation = read_orientation(img)
            # Let the JPEG decoder downscale while reading
            img.draft('RGB', (width, height))
            img.thumbnail((width, height), Image.Resampling.LANCZOS)
            thumb = apply_orientation(img, orientation)
            if thumb.mode != 'RGB':
                thumb = thumb.convert('RGB')

            buf = io.BytesIO()
            thumb.save(buf, config.THUMBNAIL_FORMAT, quality=config.THUMBNAIL_QUALITY)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ThumbnailError(f"Cannot build thumbnail for {path}: {e}") from e

    logging.debug(f"Generated thumbnail for {path}")
    return buf.getvalue()


def decode_preview(picture_id: str, path: Path) -> PreviewImage:
    """Decodes the full resolution image, upright, into raw pixels."""
    try:
        with Image.open(path) as img:
            orientation = read_orientation(img)
            img.load()
            upright = apply_orientation(img, orientation)
            if upright.mode not in ('RGB', 'RGBA'):
                upright = upright.convert('RGB')
            return PreviewImage(
                picture_id=picture_id,
                width=upright.width,
                height=upright.height,
                mode=upright.mode,
                data=upright.tobytes(),
            )
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ThumbnailError(f"Cannot decode preview for {path}: {e}") from e
