"""Typed HTTP client for the imagehub API.

Architectural role:
    Used by front-ends (the terminal CLI, notebooks, other services) to call the
    REST surface exposed by `imagehub.api.http_api` and to parse its DTOs.

Invocation flow:
    caller -> `ApiClient.<operation>` -> `requests.Session` -> JSON -> DTO.

Retry behavior:
    No retry loop is implemented. Each call is attempted once with the configured
    timeout.

Failure handling model:
    Calls are best-effort. Transport and HTTP failures are logged and converted into
    empty results (`[]`, `None`, `False`) to keep caller-side control flow stable.
"""

import logging
import os

import requests

from imagehub.llm.provider_config import API_BASE_URL, REQUEST_TIMEOUT
from imagehub.shared.dtos import ImageData, ImageObjInfo


logger = logging.getLogger(__name__)


class ApiClient:
    """Thin wrapper over the `/api/image` endpoints."""

    def __init__(self, base_url=None, session=None, timeout=REQUEST_TIMEOUT):
        self.base_url = (base_url or API_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, path):
        return f"{self.base_url}/api/image/{path}"

    def _request(self, method, path, **kwargs):
        response = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response

    # ============================================================
    # Queries
    # ============================================================

    def list_images(self):
        """Return summaries of every registered image (`[]` on failure)."""
        try:
            data = self._request("GET", "list").json()
            return [ImageObjInfo.model_validate(item) for item in data]
        except Exception:
            logger.exception("Could not list images")
            return []

    def get_image_data(self, image_id, frame=0):
        """Return one frame as base64 PNG payload, or `None`."""
        try:
            data = self._request("GET", f"data/{image_id}/{frame}").json()
            return ImageData.model_validate(data)
        except Exception:
            logger.exception("Could not fetch frame %s of image %s", frame, image_id)
            return None

    # ============================================================
    # Mutations
    # ============================================================

    def upload_bytes(self, filename, data, content_type="application/octet-stream"):
        """Upload raw file bytes; return the new image summary or `None`."""
        try:
            response = self._request(
                "POST",
                "load",
                files={"file": (filename, data, content_type)},
            )
            return ImageObjInfo.model_validate(response.json())
        except Exception:
            logger.exception("Could not upload %s", filename)
            return None

    def upload_image(self, path):
        """Upload a local file, keeping its filename."""
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError:
            logger.exception("Could not read %s", path)
            return None
        return self.upload_bytes(os.path.basename(path), data)

    def delete_image(self, image_id):
        """Delete one image. Returns `True` when the server confirmed it."""
        try:
            self._request("DELETE", f"delete/{image_id}")
            return True
        except Exception:
            logger.exception("Could not delete image %s", image_id)
            return False

    def clear_images(self):
        """Delete every image. Returns `True` on success."""
        try:
            self._request("DELETE", "clear")
            return True
        except Exception:
            logger.exception("Could not clear images")
            return False
