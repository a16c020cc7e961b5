"""Transfer DTOs for the image API.

Both models serialize with camelCase keys (`sourcePath`, `frameCount`,
`frameIndex`) and accept either camelCase or snake_case on input, so the same
classes are used by the FastAPI routes and by `imagehub.llm.client`.

DTOs are built fresh per request and never cached.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from imagehub.core.image_object import ImageObject


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageObjInfo(_CamelModel):
    """Summary of one registered image."""

    id: uuid.UUID
    source_path: str = ""
    frame_count: int = 0

    @classmethod
    def from_image(cls, image: ImageObject) -> "ImageObjInfo":
        return cls(id=image.id, source_path=image.file_path, frame_count=image.frame_count)


class ImageData(_CamelModel):
    """One frame re-encoded as a self-contained base64 PNG payload."""

    id: uuid.UUID
    frame_index: int
    width: int
    height: int
    format: str = "png"
    base64: str

    @property
    def mime_type(self) -> str:
        return f"image/{self.format}"

    @classmethod
    def from_image(cls, image: ImageObject, frame_index: int) -> Optional["ImageData"]:
        """Build the payload for one frame; `None` if the frame is unavailable."""
        if not image.has_frame(frame_index):
            return None

        try:
            width, height = image.sizes[frame_index]
        except IndexError:
            # Disposed between the range check and the size lookup.
            return None

        encoded = image.get_base64_png(frame_index)
        if encoded is None:
            return None

        return cls(
            id=image.id,
            frame_index=frame_index,
            width=width,
            height=height,
            format="png",
            base64=encoded,
        )
