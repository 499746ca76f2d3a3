"""
Configuration constants for the photo catalog.
"""

# --- File Type Definitions ---
# Extensions are compared case-sensitively and without the leading dot.
# Only these can be the primary member of a picture.
IMAGE_EXTS = {'jpg', 'JPG'}

# Camera raw formats, recorded as the companion of a primary image.
RAW_EXTS = {
    'raw', 'RAW', 'arw', 'ARW', 'raf', 'RAF',
    'cr2', 'CR2', 'cr3', 'CR3', 'nef', 'NEF', 'orf', 'ORF',
    'rw2', 'RW2', 'dng', 'DNG',
}

# Extension to Type Mapping
EXT_TO_TYPE = {}
for ext in IMAGE_EXTS: EXT_TO_TYPE[ext] = 'jpeg'
for ext in RAW_EXTS: EXT_TO_TYPE[ext] = 'raw'

# --- Metadata Parsing ---
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]
ORIENTATION_TAG = 0x0112

# --- Organization ---
FOLDER_PATTERN = "{year:04d}/{year:04d}-{month:02d}-{day:02d}"

# --- Concurrency ---
# Upper bound on in-flight file transfers.
DEFAULT_MAX_WORKERS = 16

# --- Thumbnails ---
THUMBNAIL_SIZE = (240, 240)
THUMBNAIL_FORMAT = 'JPEG'
THUMBNAIL_QUALITY = 85

# --- Preview Cache ---
PREVIEW_CACHE_CAPACITY = 20

# --- Catalog ---
DEFAULT_DB_NAME = "photo_catalog.db"
LOG_FILE_NAME = "photo_catalog.log"

# Applied to every catalog connection, in order. busy_timeout is in ms.
DB_PRAGMAS = [
    ("journal_mode", "WAL"),
    ("synchronous", "NORMAL"),
    ("temp_store", "MEMORY"),
    ("foreign_keys", "ON"),
    ("busy_timeout", 5000),
]
