"""
HTTP API adapter for the image registry.

Architectural role:
- Expose registry operations as REST endpoints under `/api/image`.
- Enforce adapter-level input validation (upload payload, id and frame format).
- Delegate storage work to `imagehub.core.image_registry.ImageRegistry`.
- Normalize registry outcomes to HTTP status codes and DTO responses.

Endpoint responsibilities:
- `GET /api/image/list`: summaries of all registered images.
- `POST /api/image/load`: stage a multipart upload and import it.
- `DELETE /api/image/delete/{id}`: remove one image.
- `DELETE /api/image/clear`: remove every image.
- `GET /api/image/data/{id}/{frame}`: one frame as a base64 PNG payload.

Error handling strategy:
- `ValidationError` -> 400, `NotFoundError` -> 404.
- Any other exception -> 500 with the exception message as `detail`.
- Error bodies follow a problem-details shape: `title`, `detail`, `status`.

Concurrency:
- Decode, PNG encode and clear run in the threadpool so the event loop is never
  pinned by image work.

Side effects:
- Writes staged uploads under the configured upload directory and removes them
  after import.
- Loads environment variables at import time via `load_dotenv()`.
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os
from typing import List, Optional

from fastapi import Depends, FastAPI, File, UploadFile
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from imagehub.api.uploads import check_upload_size, discard_staged, stage_upload
from imagehub.core.errors import NotFoundError, ValidationError
from imagehub.core.image_registry import ImageRegistry, parse_image_id
from imagehub.shared.dtos import ImageData, ImageObjInfo


logger = logging.getLogger(__name__)

DEBUG = os.getenv("DEBUG") == "true"
SWAGGER_ENABLED = os.getenv("SWAGGER_ENABLED", "false").lower() == "true"
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "5115"))

app = FastAPI(
    title="imagehub",
    description="In-memory image hosting API for multimodal model clients",
    docs_url="/docs" if SWAGGER_ENABLED else None,
    redoc_url=None,
)

# Process-wide registry. Nothing survives a restart.
registry = ImageRegistry()


def get_registry() -> ImageRegistry:
    """Dependency hook returning the process registry (overridable in tests)."""
    return registry


# ============================================================
# Response helpers
# ============================================================

def problem(status: int, title: str, detail: str) -> JSONResponse:
    """Build a problem-details JSON error response."""
    return JSONResponse(
        status_code=status,
        content={"title": title, "detail": detail, "status": status},
    )


def _error_response(exc: Exception, title: str) -> JSONResponse:
    """Map an exception raised inside a route to its HTTP response."""
    if isinstance(exc, ValidationError):
        return problem(400, title, str(exc))
    if isinstance(exc, NotFoundError):
        return problem(404, title, str(exc))
    logger.exception("%s", title)
    return problem(500, title, str(exc) or exc.__class__.__name__)


def _require_id(raw_id: str):
    image_id = parse_image_id(raw_id)
    if image_id is None:
        raise ValidationError(f"'{raw_id}' is not a valid image id.")
    return image_id


def _require_frame(raw_frame: str) -> int:
    try:
        return int(raw_frame)
    except (TypeError, ValueError):
        raise ValidationError(f"'{raw_frame}' is not a valid frame index.")


# ============================================================
# Listing
# ============================================================

@app.get("/api/image/list", response_model=List[ImageObjInfo])
def list_images(images: ImageRegistry = Depends(get_registry)):
    """Return summaries of every registered image (point-in-time snapshot)."""
    try:
        return [ImageObjInfo.from_image(image) for image in images.list_images()]
    except Exception as exc:
        return _error_response(exc, "Error retrieving image list")


# ============================================================
# Upload
# ============================================================

@app.post("/api/image/load", response_model=ImageObjInfo)
async def load_image(
    file: Optional[UploadFile] = File(None),
    images: ImageRegistry = Depends(get_registry),
):
    """
    Stage a multipart upload and import it into the registry.

    Input validation behavior:
    - Missing or empty file -> 400.
    - Oversized file -> 400.
    - Undecodable image -> 500 with the decode message.
    """
    staged_path = None
    try:
        if file is None:
            raise ValidationError("No file was uploaded or the file is empty.")

        # Reject oversized parts before reading the spooled body into memory.
        check_upload_size(file.size)
        data = await file.read()
        staged_path = await run_in_threadpool(stage_upload, file.filename, data)

        logger.debug("Importing staged upload %s", staged_path)

        image = await run_in_threadpool(images.load, staged_path)
        return ImageObjInfo.from_image(image)

    except ValidationError as exc:
        return _error_response(exc, "Invalid file")
    except Exception as exc:
        return _error_response(exc, "Error loading image")
    finally:
        # Frames are decoded eagerly, so the staged copy is never read again.
        discard_staged(staged_path)


# ============================================================
# Removal
# ============================================================

@app.delete("/api/image/delete/{image_id}")
def delete_image(image_id: str, images: ImageRegistry = Depends(get_registry)):
    """Remove one image; 404 when the id is unknown."""
    try:
        key = _require_id(image_id)
        if not images.delete(key):
            raise NotFoundError(f"No image found with ID {key}.")
        return Response(status_code=200)
    except NotFoundError as exc:
        return _error_response(exc, "Image not found")
    except Exception as exc:
        return _error_response(exc, "Error deleting image")


@app.delete("/api/image/clear")
def clear_images(images: ImageRegistry = Depends(get_registry)):
    """Remove and dispose every image."""
    try:
        images.clear()
        return Response(status_code=200)
    except Exception as exc:
        return _error_response(exc, "Error clearing images")


# ============================================================
# Frame data
# ============================================================

@app.get("/api/image/data/{image_id}", response_model=ImageData)
@app.get("/api/image/data/{image_id}/{frame}", response_model=ImageData)
def get_image_data(
    image_id: str,
    frame: str = "0",
    images: ImageRegistry = Depends(get_registry),
):
    """Return one frame re-encoded as a base64 PNG payload."""
    try:
        key = _require_id(image_id)
        frame_index = _require_frame(frame)

        image = images.get(key)
        if image is None:
            raise NotFoundError(f"No image found with ID {key}.")

        if not image.has_frame(frame_index):
            raise NotFoundError(f"No frame {frame_index} found for image ID {key}.")

        data = ImageData.from_image(image, frame_index)
        if data is None:
            # Deleted or cleared while encoding.
            raise NotFoundError(f"No image found with ID {key}.")

        return data
    except NotFoundError as exc:
        return _error_response(exc, "Image not found")
    except Exception as exc:
        return _error_response(exc, "Error retrieving image data")


# ============================================================
# Server entrypoint
# ============================================================

def run():
    """Serve `app` with uvicorn on `HOST`:`PORT`."""
    import uvicorn

    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    run()
