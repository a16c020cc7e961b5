"""
Upload staging utilities for the image API.

Architectural role:
- Turn a client-supplied upload (filename + bytes) into a file on local storage
  that the registry can decode.
- Enforce size constraints before anything is written.
- Provide adapter-level preprocessing only (no endpoint registration).

Processing lifecycle:
1. Reject empty and oversized payloads.
2. Sanitize the client filename (path components, invalid characters, extension).
3. Resolve a collision-free path inside the staging directory.
4. Write the payload and hand the path to the caller.
5. Caller removes the staged file once the registry has decoded it.

Error handling strategy:
- Input problems raise `ValidationError` (mapped to HTTP 400 by the adapter).
- I/O errors propagate unchanged (mapped to HTTP 500).
- Staged-file cleanup is best-effort and never raises.

Side effects:
- Creates the staging directory on first use.
- Writes and removes files under the staging directory.
"""

import logging
import os
import re
import tempfile
import uuid
from typing import Optional

from dotenv import load_dotenv

from imagehub.core.errors import ValidationError

load_dotenv()

logger = logging.getLogger(__name__)


# ============================================================
# CONFIG
# ============================================================

MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "50"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024
UPLOAD_DIR = os.path.realpath(os.getenv("IMAGEHUB_UPLOAD_DIR", tempfile.gettempdir()))
DEFAULT_FILENAME = "upload"
STAGING_ATTEMPTS = 5

# Characters rejected by common filesystems, plus ASCII control characters.
_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]+')


# ============================================================
# PUBLIC ENTRYPOINTS
# ============================================================

def stage_upload(filename: Optional[str], data: bytes, directory: Optional[str] = None) -> str:
    """
    Write an uploaded payload into the staging directory and return its path.

    Input validation behavior:
    - Empty payload -> `ValidationError`.
    - Payload above `MAX_UPLOAD_SIZE_BYTES` -> `ValidationError`.
    """
    if not data:
        raise ValidationError("No file was uploaded or the file is empty.")

    check_upload_size(len(data))

    target_dir = directory or UPLOAD_DIR
    os.makedirs(target_dir, exist_ok=True)

    safe_name = sanitize_filename(filename)
    dest_path = staging_path(safe_name, target_dir)

    # "xb" fails instead of overwriting if another request claimed the name after
    # `staging_path` looked; such a loser retries under a fresh random suffix.
    for _ in range(STAGING_ATTEMPTS):
        try:
            with open(dest_path, "xb") as f:
                f.write(data)
            break
        except FileExistsError:
            logger.debug("Staging path %s was taken concurrently, retrying", dest_path)
            dest_path = _suffixed_path(safe_name, target_dir)
    else:
        raise FileExistsError(f"Could not claim a staging path for {safe_name!r} in {target_dir}")

    logger.debug("Staged upload %r as %s (%d bytes)", filename, dest_path, len(data))
    return dest_path


def check_upload_size(size: Optional[int]):
    """Raise `ValidationError` when `size` is above the limit; unknown sizes pass."""
    if size is not None and size > MAX_UPLOAD_SIZE_BYTES:
        raise ValidationError(f"File exceeds max size limit of {MAX_UPLOAD_SIZE_MB} MB.")


def discard_staged(path: Optional[str]):
    """Remove a staged file, ignoring files that are already gone."""
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("Could not remove staged upload %s", path, exc_info=True)


# ============================================================
# FILENAME HANDLING
# ============================================================

def sanitize_filename(filename: Optional[str]) -> str:
    """
    Reduce a client filename to a safe basename.

    - Strips directory components (both `/` and `\\` separators).
    - Splits on invalid characters and joins the pieces with `_`.
    - Falls back to `DEFAULT_FILENAME` when nothing usable remains, and prefixes
      it to names that would otherwise be a bare extension (`.png`).
    - Re-appends the original extension if sanitizing dropped it.
    """
    original = _basename(filename or "")

    pieces = [piece for piece in _INVALID_CHARS.split(original) if piece]
    safe_name = "_".join(pieces).strip()

    # Names made only of dots would resolve to the directory itself.
    if not safe_name.strip("."):
        safe_name = DEFAULT_FILENAME
    elif safe_name.startswith("."):
        safe_name = DEFAULT_FILENAME + safe_name

    _, ext = os.path.splitext(safe_name)
    if not ext:
        _, original_ext = os.path.splitext(original)
        original_ext = _INVALID_CHARS.sub("", original_ext)
        if len(original_ext) > 1:
            safe_name += original_ext

    return safe_name


def staging_path(safe_name: str, directory: str) -> str:
    """Return a path for `safe_name` in `directory`, suffixed with a random id on collision."""
    dest_path = os.path.join(directory, safe_name)

    if os.path.exists(dest_path):
        dest_path = _suffixed_path(safe_name, directory)

    return dest_path


def _suffixed_path(safe_name: str, directory: str) -> str:
    base, ext = os.path.splitext(safe_name)
    return os.path.join(directory, f"{base}_{uuid.uuid4().hex}{ext}")


def _basename(path: str) -> str:
    """Last path component, treating both separator styles as separators."""
    return re.split(r"[\\/]", path)[-1]
