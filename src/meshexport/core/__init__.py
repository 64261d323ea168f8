"""meshexport core: base step, shared contracts, mesh/material model, errors."""

from .step_base import BaseStep
from .contracts import ExportConfig, ExportSummary, StepMeta
from .errors import (
    AllCandidatesFailedError,
    EncodeError,
    ExportError,
    InvalidMeshError,
    IOWriteError,
    MergeError,
    MissingMeshDataError,
    PixelError,
)
from .material import Material, MaterialSlot, resolve_bound_texture
from .mesh import MeshDescription, Renderable, validate_topology
from .texture import (
    CanonicalColorBuffer,
    ChannelOrder,
    PixelFormat,
    Texture,
    TextureSourceBuffer,
    select_pixel_source,
)
from .logging import setup_logging

__all__ = [
    "BaseStep",
    "ExportConfig",
    "ExportSummary",
    "StepMeta",
    "AllCandidatesFailedError",
    "EncodeError",
    "ExportError",
    "InvalidMeshError",
    "IOWriteError",
    "MergeError",
    "MissingMeshDataError",
    "PixelError",
    "Material",
    "MaterialSlot",
    "resolve_bound_texture",
    "MeshDescription",
    "Renderable",
    "validate_topology",
    "CanonicalColorBuffer",
    "ChannelOrder",
    "PixelFormat",
    "Texture",
    "TextureSourceBuffer",
    "select_pixel_source",
    "setup_logging",
]
