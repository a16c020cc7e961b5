"""Decoded image entity held by the registry.

Architectural role:
    Owns the decoded pixel buffers of one imported asset and exposes pixel-level
    and encoded-payload access to the registry and the HTTP adapter.

Decode lifecycle:
    1. Open the source file with Pillow inside a `with` block (handle always closed).
    2. Iterate every frame of the source (`ImageSequence`) and convert each one into
       an independent RGBA copy.
    3. Keep the frames until `dispose()` is called by the registry.

Pixel layout:
    - 4 channels x 8 bits (RGBA, 32 bits per pixel), row-major.

Failure handling:
    - Unrecognized, truncated or corrupt files raise `DecodeError`.
    - Out-of-range frame indexes produce empty results for readers and
      `NotFoundError` for `set_pixels`.

Disposal:
    - `dispose()` closes every frame and leaves the object in a defined-empty
      state; readers return empty results afterwards.
"""

import base64
import io
import logging
import threading
import uuid
from typing import List, Optional, Tuple

from PIL import Image, ImageSequence

from imagehub.core.errors import DecodeError, NotFoundError, ValidationError


logger = logging.getLogger(__name__)


class ImageObject:
    """One imported image with its decoded RGBA frames."""

    CHANNELS = 4
    BITS_PER_CHANNEL = 8
    BITS_PER_PIXEL = CHANNELS * BITS_PER_CHANNEL

    def __init__(self, file_path: str):
        self.id = uuid.uuid4()
        self.file_path = str(file_path)
        self._lock = threading.Lock()
        self._disposed = False

        frames = _decode_frames(self.file_path)
        self.frames: List[Image.Image] = frames
        self.sizes: List[Tuple[int, int]] = [frame.size for frame in frames]

    def __repr__(self):
        return f"<ImageObject {self.id} frames={self.frame_count} path={self.file_path!r}>"

    # ============================================================
    # PROPERTIES
    # ============================================================

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def has_frame(self, frame_index: int) -> bool:
        return 0 <= frame_index < len(self.frames)

    # ============================================================
    # PIXEL ACCESS
    # ============================================================

    def get_pixels(self, frame_index: int = 0) -> bytes:
        """Return a copy of the raw RGBA bytes of one frame.

        Returns `b""` for an out-of-range index or a disposed object.
        """
        with self._lock:
            if not self.has_frame(frame_index):
                return b""
            return self.frames[frame_index].tobytes()

    def set_pixels(self, pixels: bytes, frame_index: int = 0) -> Image.Image:
        """Replace the pixel contents of one frame in place.

        The byte count must equal `width * height * 4` exactly; anything else is
        rejected and the frame keeps its previous contents.

        Raises:
            NotFoundError: `frame_index` is out of range.
            ValidationError: byte count does not match the frame size.
        """
        with self._lock:
            if not self.has_frame(frame_index):
                raise NotFoundError(f"No frame {frame_index} in image {self.id}.")

            frame = self.frames[frame_index]
            width, height = frame.size
            expected = width * height * self.CHANNELS
            if len(pixels) != expected:
                raise ValidationError(
                    f"Expected {expected} bytes for a {width}x{height} frame, got {len(pixels)}."
                )

            frame.frombytes(bytes(pixels))
            return frame

    def get_base64_png(self, frame_index: int = 0) -> Optional[str]:
        """Encode one frame as PNG and return it as base64 text (`None` if absent)."""
        with self._lock:
            if not self.has_frame(frame_index):
                return None
            buffer = io.BytesIO()
            self.frames[frame_index].save(buffer, format="PNG")

        return base64.b64encode(buffer.getvalue()).decode("ascii")

    # ============================================================
    # DISPOSAL
    # ============================================================

    def dispose(self):
        """Release every frame buffer. Safe to call more than once."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            frames, self.frames, self.sizes = self.frames, [], []

        for frame in frames:
            frame.close()


def _decode_frames(path: str) -> List[Image.Image]:
    """Decode every frame of `path` into independent RGBA images."""
    frames: List[Image.Image] = []
    try:
        with Image.open(path) as source:
            for frame in ImageSequence.Iterator(source):
                # convert() always returns a detached copy, so the source can close.
                frames.append(frame.convert("RGBA"))
    except (OSError, ValueError, SyntaxError, EOFError, Image.DecompressionBombError, MemoryError) as exc:
        for frame in frames:
            frame.close()
        raise DecodeError(f"Could not decode image '{path}': {exc}") from exc

    if not frames:
        raise DecodeError(f"Image '{path}' contains no frames.")

    logger.debug("Decoded %d frame(s) from %s", len(frames), path)
    return frames
