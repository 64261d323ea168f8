"""Texture and pixel buffer types shared by the texture pipeline."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class PixelFormat(str, Enum):
    """Layout of a raw texture source buffer."""

    BGRA8 = "BGRA8"
    RGBA8 = "RGBA8"
    GRAY8 = "Gray8"
    UNKNOWN = "Unknown"


class ChannelOrder(str, Enum):
    RGBA = "RGBA"
    BGRA = "BGRA"


# Bytes per pixel for the formats the normalizer understands.
CHANNELS_PER_FORMAT = {
    PixelFormat.BGRA8: 4,
    PixelFormat.RGBA8: 4,
    PixelFormat.GRAY8: 1,
}


@dataclass(frozen=True)
class TextureSourceBuffer:
    """Raw pixel data as provided by a texture source."""

    width: int
    height: int
    pixel_format: PixelFormat
    data: bytes

    @property
    def num_pixels(self) -> int:
        return max(self.width, 0) * max(self.height, 0)


@dataclass(frozen=True)
class CanonicalColorBuffer:
    """8-bit, 4-channel pixels; ``data`` is always width*height*4 bytes."""

    width: int
    height: int
    channel_order: ChannelOrder
    data: bytes

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        offset = (y * self.width + x) * 4
        return tuple(self.data[offset:offset + 4])


@dataclass
class Texture:
    """A texture with an optional full-fidelity and an optional resident source.

    ``secondary`` holds resident (mip / platform) data and is always read as
    BGRA8 whatever its declared format.
    """

    name: str
    primary: Optional[TextureSourceBuffer] = None
    secondary: Optional[TextureSourceBuffer] = None


class SourceTier(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class PixelSource:
    """Primary(buffer) | Secondary(buffer) | Unavailable."""

    tier: SourceTier
    buffer: Optional[TextureSourceBuffer] = None

    @property
    def available(self) -> bool:
        return self.tier is not SourceTier.UNAVAILABLE


def select_pixel_source(texture: Texture, *, allow_secondary: bool = True) -> PixelSource:
    """Pick the best raw buffer a texture can provide."""
    primary = texture.primary
    if primary is not None and primary.data:
        return PixelSource(SourceTier.PRIMARY, primary)

    secondary = texture.secondary
    if allow_secondary and secondary is not None and secondary.num_pixels > 0:
        if len(secondary.data) >= secondary.num_pixels * 4:
            return PixelSource(
                SourceTier.SECONDARY,
                replace(secondary, pixel_format=PixelFormat.BGRA8),
            )

    return PixelSource(SourceTier.UNAVAILABLE)
