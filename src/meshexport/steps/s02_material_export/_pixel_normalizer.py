"""Decode raw texture source buffers into a canonical 4x8-bit color buffer."""

from __future__ import annotations

import numpy as np

from meshexport.core.errors import (
    EmptySourceError,
    TruncatedSourceError,
    UnsupportedFormatError,
)
from meshexport.core.texture import (
    CHANNELS_PER_FORMAT,
    CanonicalColorBuffer,
    ChannelOrder,
    PixelFormat,
    TextureSourceBuffer,
)

# Column order that turns an RGBA pixel into each canonical order.
_FROM_RGBA = {
    ChannelOrder.RGBA: [0, 1, 2, 3],
    ChannelOrder.BGRA: [2, 1, 0, 3],
}


def normalize(
    source: TextureSourceBuffer,
    channel_order: ChannelOrder = ChannelOrder.RGBA,
    *,
    pad_truncated: bool = False,
) -> CanonicalColorBuffer:
    """Convert ``source`` to a width*height*4 buffer in ``channel_order``.

    BGRA8 and RGBA8 are remapped per 4-byte group, Gray8 is broadcast to
    R=G=B with opaque alpha. An unrecognized format is read as BGRA8 when the
    buffer holds at least 4 bytes per pixel.

    Raises:
        EmptySourceError: no bytes, or no pixels.
        TruncatedSourceError: fewer bytes than width*height*channels and
            ``pad_truncated`` is False. With ``pad_truncated`` the missing
            tail pixels stay zero.
        UnsupportedFormatError: unknown format and too few bytes to guess.
    """
    channel_order = ChannelOrder(channel_order)
    n_pixels = source.num_pixels
    if not source.data:
        raise EmptySourceError("Texture source buffer is empty")
    if n_pixels == 0:
        raise EmptySourceError(f"Texture source has no pixels ({source.width}x{source.height})")

    try:
        pixel_format = PixelFormat(source.pixel_format)
    except ValueError:
        pixel_format = PixelFormat.UNKNOWN
    if pixel_format not in CHANNELS_PER_FORMAT:
        if len(source.data) < n_pixels * 4:
            raise UnsupportedFormatError(
                f"Unsupported pixel format {source.pixel_format!s} "
                f"({len(source.data)} bytes for {source.width}x{source.height})"
            )
        # Lossy guess: anything with 4 bytes per pixel is read as BGRA8.
        pixel_format = PixelFormat.BGRA8

    channels = CHANNELS_PER_FORMAT[pixel_format]
    expected = n_pixels * channels
    raw = np.frombuffer(source.data, dtype=np.uint8)
    if raw.size < expected and not pad_truncated:
        raise TruncatedSourceError(
            f"{pixel_format.value} source has {raw.size} bytes, expected {expected}"
        )

    # Whole pixels only; a partial pixel at the tail is left zero.
    usable = min(raw.size, expected) // channels
    pixels = raw[: usable * channels].reshape(usable, channels)

    rgba = np.zeros((n_pixels, 4), dtype=np.uint8)
    if pixel_format is PixelFormat.GRAY8:
        rgba[:usable, 0:3] = pixels
        rgba[:usable, 3] = 255
    elif pixel_format is PixelFormat.BGRA8:
        rgba[:usable] = pixels[:, [2, 1, 0, 3]]
    else:
        rgba[:usable] = pixels

    out = rgba[:, _FROM_RGBA[channel_order]]
    return CanonicalColorBuffer(
        width=source.width,
        height=source.height,
        channel_order=channel_order,
        data=np.ascontiguousarray(out).tobytes(),
    )
