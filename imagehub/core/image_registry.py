"""In-memory image registry.

Purpose:
- Sole authority over which images exist in the process and their decoded data.
- Map generated ids to `ImageObject` instances and own their lifecycle.

Synchronization:
- One `threading.Lock` guards the id -> entity mapping.
- Decoding happens outside the lock; only the insert is serialized.
- Entities are removed from the mapping under the lock and disposed outside it,
  so every removed entity is disposed exactly once by whoever removed it.
- `list_images` copies the values under the lock (point-in-time snapshot).

Failure handling:
- `import_image` never raises; decode, I/O and memory failures are logged and
  reported as `None`, and nothing is registered.
- `load` is the raising variant used by callers that surface the reason.

Side effects:
- None beyond process memory. Nothing survives a restart.
"""

import logging
import threading
import uuid
from typing import Dict, List, Optional, Union

from imagehub.core.errors import DecodeError, RegistryConflictError
from imagehub.core.image_object import ImageObject


logger = logging.getLogger(__name__)

ImageId = Union[uuid.UUID, str]


def parse_image_id(image_id: ImageId) -> Optional[uuid.UUID]:
    """Return `image_id` as a UUID, or `None` when it is malformed."""
    if isinstance(image_id, uuid.UUID):
        return image_id
    try:
        return uuid.UUID(str(image_id))
    except (TypeError, ValueError, AttributeError):
        return None


class ImageRegistry:
    """Thread-safe id -> `ImageObject` store."""

    def __init__(self):
        self._images: Dict[uuid.UUID, ImageObject] = {}
        self._lock = threading.Lock()

    def __len__(self):
        return self.count()

    def __contains__(self, image_id):
        return self.get(image_id) is not None

    def count(self) -> int:
        with self._lock:
            return len(self._images)

    # ============================================================
    # IMPORT
    # ============================================================

    def load(self, file_path: str) -> ImageObject:
        """Decode `file_path` and register the result.

        Raises:
            DecodeError: the file could not be decoded.
            RegistryConflictError: the generated id is already registered. The new
                entity is disposed and the existing one is left untouched.
        """
        try:
            image = ImageObject(file_path)
        except MemoryError as exc:
            raise DecodeError(f"Out of memory while decoding '{file_path}'") from exc

        with self._lock:
            conflict = image.id in self._images
            if not conflict:
                self._images[image.id] = image

        if conflict:
            image.dispose()
            raise RegistryConflictError(f"Image id {image.id} is already registered.")

        logger.info("Registered image %s (%d frame(s)) from %s", image.id, image.frame_count, file_path)
        return image

    def import_image(self, file_path: str) -> Optional[ImageObject]:
        """Decode and register `file_path`; return `None` on any failure."""
        try:
            return self.load(file_path)
        except (DecodeError, RegistryConflictError) as exc:
            logger.warning("Import of %s failed: %s", file_path, exc)
        except Exception:
            logger.exception("Unexpected failure importing %s", file_path)
        return None

    # ============================================================
    # QUERIES
    # ============================================================

    def list_images(self) -> List[ImageObject]:
        """Return a snapshot of all registered images."""
        with self._lock:
            return list(self._images.values())

    def get(self, image_id: ImageId) -> Optional[ImageObject]:
        key = parse_image_id(image_id)
        if key is None:
            return None
        with self._lock:
            return self._images.get(key)

    # ============================================================
    # REMOVAL
    # ============================================================

    def delete(self, image_id: ImageId) -> bool:
        """Remove and dispose one image. Returns whether it was present."""
        key = parse_image_id(image_id)
        if key is None:
            return False

        with self._lock:
            image = self._images.pop(key, None)

        if image is None:
            return False

        image.dispose()
        logger.info("Deleted image %s", key)
        return True

    def clear(self) -> int:
        """Remove and dispose every image. Returns the number removed."""
        with self._lock:
            removed, self._images = self._images, {}

        for image in removed.values():
            image.dispose()

        if removed:
            logger.info("Cleared %d image(s)", len(removed))
        return len(removed)
