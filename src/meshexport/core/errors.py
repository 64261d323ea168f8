"""Error taxonomy for the export pipeline.

Structural mesh failures and the geometry write are fatal and propagate to
the caller. Pixel, encode and texture/material write failures are raised by
the low-level helpers but absorbed (and logged) per texture or per slot.
"""

from __future__ import annotations

from enum import Enum


class ExportError(Exception):
    """Base class for every error raised by meshexport."""


class InvalidMeshError(ExportError):
    """Mesh has no usable topology (no vertices, no triangles, dangling IDs)."""


class MissingMeshDataError(ExportError):
    """A required topology table is absent from the mesh description."""


class MergeError(ExportError):
    """The mesh-merge collaborator did not produce a usable mesh."""


class IOWriteError(ExportError):
    """Writing an output artifact failed."""

    def __init__(self, path, reason: str = ""):
        self.path = path
        self.reason = reason
        msg = f"Failed to write {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PixelErrorKind(str, Enum):
    EMPTY_SOURCE = "EmptySource"
    TRUNCATED_SOURCE = "TruncatedSource"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"


class PixelError(ExportError):
    """Raw texture data could not be normalized."""

    kind: PixelErrorKind


class EmptySourceError(PixelError):
    kind = PixelErrorKind.EMPTY_SOURCE


class TruncatedSourceError(PixelError):
    kind = PixelErrorKind.TRUNCATED_SOURCE


class UnsupportedFormatError(PixelError):
    kind = PixelErrorKind.UNSUPPORTED_FORMAT


class EncodeError(ExportError):
    """A canonical color buffer could not be encoded to an image container."""


class AllCandidatesFailedError(EncodeError):
    """Every candidate container format rejected the buffer."""

    def __init__(self, failures: dict[str, str]):
        self.failures = dict(failures)
        if failures:
            detail = "; ".join(f"{fmt}: {why}" for fmt, why in failures.items())
        else:
            detail = "no candidate formats given"
        super().__init__(f"All container formats failed ({detail})")
