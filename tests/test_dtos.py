"""Tests for the transfer DTOs."""

import uuid

from imagehub.core.image_object import ImageObject
from imagehub.shared.dtos import ImageData, ImageObjInfo


class TestImageObjInfo:
    def test_from_image(self, animated_gif):
        image = ImageObject(str(animated_gif))
        info = ImageObjInfo.from_image(image)

        assert info.id == image.id
        assert info.source_path == str(animated_gif)
        assert info.frame_count == 3

    def test_serializes_camel_case(self, red_png):
        info = ImageObjInfo.from_image(ImageObject(str(red_png)))
        payload = info.model_dump(by_alias=True, mode="json")

        assert set(payload) == {"id", "sourcePath", "frameCount"}
        assert payload["frameCount"] == 1

    def test_parses_camel_case(self):
        image_id = uuid.uuid4()
        info = ImageObjInfo.model_validate(
            {"id": str(image_id), "sourcePath": "/tmp/a.png", "frameCount": 2}
        )

        assert info.id == image_id
        assert info.frame_count == 2


class TestImageData:
    def test_from_image(self, animated_gif):
        image = ImageObject(str(animated_gif))
        data = ImageData.from_image(image, 2)

        assert data.frame_index == 2
        assert (data.width, data.height) == (4, 3)
        assert data.format == "png"
        assert data.mime_type == "image/png"
        assert data.base64 == image.get_base64_png(2)

    def test_out_of_range_frame(self, red_png):
        assert ImageData.from_image(ImageObject(str(red_png)), 1) is None

    def test_disposed_image(self, red_png):
        image = ImageObject(str(red_png))
        image.dispose()

        assert ImageData.from_image(image, 0) is None

    def test_serializes_camel_case(self, red_png):
        data = ImageData.from_image(ImageObject(str(red_png)), 0)
        payload = data.model_dump(by_alias=True, mode="json")

        assert set(payload) == {"id", "frameIndex", "width", "height", "format", "base64"}
