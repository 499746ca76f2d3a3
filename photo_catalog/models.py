import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


class Selection(str, Enum):
    IGNORE = "Ignore"
    ORDINARY = "Ordinary"
    PICK = "Pick"


class Flag(str, Enum):
    RED = "Red"
    GREEN = "Green"
    BLUE = "Blue"
    YELLOW = "Yellow"
    PURPLE = "Purple"


def new_picture_id() -> str:
    return str(uuid.uuid4())


@dataclass
class PictureRecord:
    """
    A picture known to (or about to enter) the catalog.

    The location is kept split into directory and filename so the catalog
    can answer prefix queries on the directory.
    """
    directory: str
    filename: str
    id: str = field(default_factory=new_picture_id)
    raw_extension: Optional[str] = None
    capture_time: Optional[datetime] = None

    # Reserved for content based dedup; nothing populates these yet.
    short_hash: Optional[bytes] = None
    full_hash: Optional[bytes] = None

    selection: Selection = Selection.ORDINARY
    hidden: bool = False
    flag: Optional[Flag] = None
    rating: Optional[int] = None
    thumbnail: Optional[bytes] = None
    directory_id: Optional[str] = None

    @classmethod
    def from_path(cls, path: Path) -> "PictureRecord":
        return cls(directory=str(path.parent), filename=path.name)

    @property
    def filepath(self) -> Path:
        return Path(self.directory) / self.filename

    @property
    def companion_path(self) -> Optional[Path]:
        """Path of the raw companion next to the primary, if there is one."""
        if not self.raw_extension:
            return None
        return self.filepath.with_suffix(f".{self.raw_extension}")

    def relocate(self, path: Path):
        self.directory = str(path.parent)
        self.filename = path.name


@dataclass
class DiscoveredGroup:
    """A primary image and the extension of its raw companion, as found on disk."""
    primary: Path
    raw_extension: Optional[str] = None

    def to_record(self) -> PictureRecord:
        record = PictureRecord.from_path(self.primary)
        record.raw_extension = self.raw_extension
        return record


@dataclass
class ImportTask:
    """One entry of an import plan."""
    record: PictureRecord
    source: Path
    destination: Path
    create_parent: bool = False

    @property
    def in_place(self) -> bool:
        return self.source == self.destination


@dataclass
class ImportPlan:
    tasks: List[ImportTask] = field(default_factory=list)
    skipped_known: int = 0
    missing_capture_time: int = 0
    collisions: int = 0


@dataclass
class TransferResult:
    imported: List[PictureRecord] = field(default_factory=list)
    copied: int = 0
    skipped_existing: int = 0
    failures: List[Tuple[Path, Exception]] = field(default_factory=list)


@dataclass
class ImportSummary:
    scanned: int
    plan: ImportPlan
    transfer: TransferResult


@dataclass
class ThumbnailResult:
    updated: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


@dataclass
class PreviewImage:
    """Decoded, ready to display pixels for one picture."""
    picture_id: str
    width: int
    height: int
    mode: str
    data: bytes
