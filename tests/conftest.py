"""Shared test fixtures and factories."""

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from imagehub.api import http_api, uploads
from imagehub.core.image_registry import ImageRegistry

RED = (255, 0, 0, 255)
FRAME_COLORS = [(255, 0, 0, 255), (0, 255, 0, 255), (0, 0, 255, 255)]


# =============================================================================
# Image Factories
# =============================================================================


def write_png(path: Path, size=(2, 2), color=RED) -> Path:
    Image.new("RGBA", size, color).save(path, format="PNG")
    return path


def write_gif(path: Path, size=(4, 3), colors=FRAME_COLORS) -> Path:
    frames = [Image.new("RGB", size, color[:3]) for color in colors]
    frames[0].save(
        path,
        format="GIF",
        save_all=True,
        append_images=frames[1:],
        duration=100,
        loop=0,
    )
    return path


@pytest.fixture
def red_png(tmp_path: Path) -> Path:
    """2x2 solid-red PNG."""
    return write_png(tmp_path / "red.png")


@pytest.fixture
def animated_gif(tmp_path: Path) -> Path:
    """3-frame animated GIF (red, green, blue)."""
    return write_gif(tmp_path / "anim.gif")


@pytest.fixture
def corrupt_file(tmp_path: Path) -> Path:
    path = tmp_path / "broken.png"
    path.write_bytes(b"definitely not an image")
    return path


@pytest.fixture
def truncated_png(tmp_path: Path) -> Path:
    noise = Image.frombytes("RGBA", (64, 64), os.urandom(64 * 64 * 4))
    source = tmp_path / "full.png"
    noise.save(source, format="PNG")
    data = source.read_bytes()
    path = tmp_path / "truncated.png"
    path.write_bytes(data[: len(data) // 2])
    return path


# =============================================================================
# Registry / API Fixtures
# =============================================================================


@pytest.fixture
def registry():
    images = ImageRegistry()
    yield images
    images.clear()


@pytest.fixture
def staging_dir(tmp_path: Path, monkeypatch) -> Path:
    directory = tmp_path / "staging"
    monkeypatch.setattr(uploads, "UPLOAD_DIR", str(directory))
    return directory


@pytest.fixture
def api_client(registry, staging_dir):
    """TestClient bound to an isolated registry and staging directory."""
    http_api.app.dependency_overrides[http_api.get_registry] = lambda: registry
    with TestClient(http_api.app) as client:
        yield client
    http_api.app.dependency_overrides.clear()
