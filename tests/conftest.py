"""Shared pytest fixtures for meshexport tests."""

from pathlib import Path

import numpy as np
import pytest

from meshexport.core.material import Material, MaterialSlot
from meshexport.core.mesh import MeshDescription
from meshexport.core.texture import PixelFormat, Texture, TextureSourceBuffer


def _has_trimesh() -> bool:
    try:
        import trimesh  # noqa: F401
        return True
    except ImportError:
        return False


needs_trimesh = pytest.mark.skipif(not _has_trimesh(), reason="trimesh not installed")


CUBE_VERTICES = np.array([
    [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
    [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],
], dtype=np.float64)

# Two outward-facing triangles per side
CUBE_FACES = np.array([
    [0, 2, 1], [0, 3, 2],  # bottom (z=0)
    [4, 5, 6], [4, 6, 7],  # top (z=1)
    [0, 1, 5], [0, 5, 4],  # front (y=0)
    [2, 3, 7], [2, 7, 6],  # back (y=1)
    [1, 2, 6], [1, 6, 5],  # right (x=1)
    [3, 0, 4], [3, 4, 7],  # left (x=0)
], dtype=np.int64)


def make_rgba_texture(name: str = "Base Color*Map", width: int = 2, height: int = 2) -> Texture:
    """Small opaque RGBA8 texture with a distinct color per pixel."""
    data = bytes(
        v
        for i in range(width * height)
        for v in (10 * i % 256, 20 * i % 256, 30 * i % 256, 255)
    )
    return Texture(
        name=name,
        primary=TextureSourceBuffer(width, height, PixelFormat.RGBA8, data),
    )


@pytest.fixture
def cube_mesh() -> MeshDescription:
    """Unit cube: 8 vertices, 12 triangles, 24 corner instances, slot 0."""
    return MeshDescription.from_triangles(CUBE_VERTICES, CUBE_FACES, name="Cube")


@pytest.fixture
def cube_slots() -> list[MaterialSlot]:
    return [MaterialSlot(0, Material(name="cube_material"))]


@pytest.fixture
def textured_material() -> Material:
    return Material(name="Metal/Rough:01", textures={"BaseColor": make_rgba_texture()})


@pytest.fixture
def two_slot_mesh() -> MeshDescription:
    """Cube with the first six triangles on slot 0 and the rest on slot 1."""
    slots = np.array([0] * 6 + [1] * 6, dtype=np.int64)
    return MeshDescription.from_triangles(CUBE_VERTICES, CUBE_FACES, face_slots=slots, name="Split")


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "export"
    out.mkdir()
    return out
