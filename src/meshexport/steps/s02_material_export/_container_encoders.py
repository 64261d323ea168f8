"""Image container encoders and the ordered fallback chain.

Each encoder maps a CanonicalColorBuffer to a self-contained file image using
Pillow, always at maximum fidelity. An encoder rejects a buffer by raising any
exception (Pillow reports format limits as ValueError, OSError or
struct.error) or by returning no bytes; the chain then moves on to the next
candidate format.
"""

from __future__ import annotations

import io
import logging
from enum import Enum
from typing import Callable, Iterable, Mapping, Optional, Union

from PIL import Image

from meshexport.core.errors import AllCandidatesFailedError
from meshexport.core.logging import DiagnosticsSink
from meshexport.core.texture import CanonicalColorBuffer

logger = logging.getLogger(__name__)


class ContainerFormat(str, Enum):
    PNG = "png"
    TGA = "tga"
    BMP = "bmp"
    JPEG = "jpg"

    @property
    def extension(self) -> str:
        return self.value


Encoder = Callable[[CanonicalColorBuffer], bytes]


def to_pil_image(buffer: CanonicalColorBuffer) -> Image.Image:
    """Wrap a canonical buffer as an RGBA Pillow image (top row first)."""
    return Image.frombytes(
        "RGBA",
        (buffer.width, buffer.height),
        buffer.data,
        "raw",
        buffer.channel_order.value,
    )


def _save(image: Image.Image, fmt: str, **params) -> bytes:
    out = io.BytesIO()
    image.save(out, format=fmt, **params)
    return out.getvalue()


def encode_png(buffer: CanonicalColorBuffer) -> bytes:
    return _save(to_pil_image(buffer), "PNG", compress_level=9)


def encode_tga(buffer: CanonicalColorBuffer) -> bytes:
    # Uncompressed 32-bit TGA
    return _save(to_pil_image(buffer), "TGA", compression=None)


def encode_bmp(buffer: CanonicalColorBuffer) -> bytes:
    return _save(to_pil_image(buffer), "BMP")


def encode_jpeg(buffer: CanonicalColorBuffer) -> bytes:
    """JPEG at quality 100 without chroma subsampling.

    JPEG has no alpha channel, so buffers with any transparent pixel are
    rejected instead of silently flattened.
    """
    image = to_pil_image(buffer)
    low, _ = image.getchannel("A").getextrema()
    if low < 255:
        raise ValueError("JPEG cannot store transparency")
    return _save(image.convert("RGB"), "JPEG", quality=100, subsampling=0)


ENCODERS: dict[ContainerFormat, Encoder] = {
    ContainerFormat.PNG: encode_png,
    ContainerFormat.TGA: encode_tga,
    ContainerFormat.BMP: encode_bmp,
    ContainerFormat.JPEG: encode_jpeg,
}


def encode(
    buffer: CanonicalColorBuffer,
    candidates: Iterable[Union[ContainerFormat, str]],
    *,
    encoders: Optional[Mapping[ContainerFormat, Encoder]] = None,
    log: Optional[DiagnosticsSink] = None,
) -> tuple[bytes, ContainerFormat]:
    """Encode ``buffer`` with the first candidate format that accepts it.

    Args:
        buffer: Canonical pixels.
        candidates: Formats in order of preference.
        encoders: Overrides for the default per-format encoders.

    Returns:
        ``(file_bytes, format)`` of the first successful candidate.

    Raises:
        AllCandidatesFailedError: no candidate produced any bytes.
    """
    log = log if log is not None else logger
    registry = dict(ENCODERS)
    if encoders:
        registry.update(encoders)

    failures: dict[str, str] = {}
    for candidate in candidates:
        fmt = ContainerFormat(candidate)
        encoder = registry.get(fmt)
        if encoder is None:
            failures[fmt.value] = "no encoder registered"
            continue
        try:
            data = encoder(buffer)
        except Exception as e:
            failures[fmt.value] = f"{e.__class__.__name__}: {e}"
            log.debug(f"{fmt.value} encoder rejected {buffer.width}x{buffer.height} buffer: {e}")
            continue
        if not data:
            failures[fmt.value] = "encoder produced no data"
            continue
        return data, fmt

    raise AllCandidatesFailedError(failures)
