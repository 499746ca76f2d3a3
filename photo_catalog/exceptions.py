"""
Custom exception hierarchy for the photo catalog.

Errors that concern a single picture (missing metadata, unreadable files,
failed copies) are caught where they occur and counted; catalog errors
propagate to the caller.
"""


class PhotoCatalogError(Exception):
    """Base exception for all photo catalog errors."""
    pass


class MetadataExtractionError(PhotoCatalogError):
    """Raised when metadata cannot be extracted from a file."""
    pass


class MissingCaptureTimeError(MetadataExtractionError):
    """Raised when a destination needs a capture time the picture does not have."""

    def __init__(self, path):
        super().__init__(f"No capture time for {path}")
        self.path = path


class AmbiguousGroupError(PhotoCatalogError):
    """Raised when several files share a base name and no single primary/companion pair exists."""
    pass


class DatabaseError(PhotoCatalogError):
    """Raised when catalog operations fail."""
    pass


class FileOperationError(PhotoCatalogError):
    """Raised when file copy operations fail."""

    def __init__(self, message: str, partial: bool = False):
        super().__init__(message)
        # True when the primary was copied but its companion was not
        self.partial = partial


class ThumbnailError(PhotoCatalogError):
    """Raised when a thumbnail or preview cannot be decoded."""
    pass
