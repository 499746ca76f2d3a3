import threading
from collections import OrderedDict
from pathlib import Path
from typing import Callable, Optional

from .. import config
from ..models import PreviewImage
from .generator import decode_preview


class PreviewCache:
    """
    Fixed capacity LRU cache of decoded previews, keyed by picture id.

    Not thread-safe: wrap it in SharedPreviewCache when more than one thread
    touches it.
    """

    def __init__(self,
                 resolve_path: Callable[[str], Path],
                 capacity: int = config.PREVIEW_CACHE_CAPACITY,
                 loader: Callable[[str, Path], PreviewImage] = decode_preview):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._resolve_path = resolve_path
        self._loader = loader
        self.capacity = capacity
        self._data: "OrderedDict[str, PreviewImage]" = OrderedDict()

    def get_or_load(self, picture_id: str) -> PreviewImage:
        image = self._data.get(picture_id)
        if image is not None:
            self._data.move_to_end(picture_id)
            return image

        image = self._loader(picture_id, self._resolve_path(picture_id))
        self._data[picture_id] = image
        while len(self._data) > self.capacity:
            self._data.popitem(last=False)
        return image

    def invalidate(self, picture_id: str) -> Optional[PreviewImage]:
        """Drops the cached preview; the next request decodes it again."""
        return self._data.pop(picture_id, None)

    def clear(self):
        self._data.clear()

    def __contains__(self, picture_id: str) -> bool:
        return picture_id in self._data

    def __len__(self) -> int:
        return len(self._data)


class SharedPreviewCache:
    """Mutex guarded handle to a PreviewCache for multi-threaded callers."""

    def __init__(self, cache: PreviewCache):
        self._cache = cache
        self._lock = threading.Lock()

    def get_or_load(self, picture_id: str) -> PreviewImage:
        with self._lock:
            return self._cache.get_or_load(picture_id)

    def invalidate(self, picture_id: str) -> Optional[PreviewImage]:
        with self._lock:
            return self._cache.invalidate(picture_id)

    def clear(self):
        with self._lock:
            self._cache.clear()

    def __contains__(self, picture_id: str) -> bool:
        with self._lock:
            return picture_id in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
