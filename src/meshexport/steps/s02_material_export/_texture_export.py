"""Texture export: resolve a material's texture and write it as an image file.

Failures here are never fatal. A texture that cannot be resolved, decoded,
encoded or written is logged and the material is exported untextured.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

from meshexport.core.errors import EncodeError, IOWriteError, PixelError
from meshexport.core.logging import DiagnosticsSink
from meshexport.core.material import Material, resolve_bound_texture
from meshexport.core.texture import (
    CHANNELS_PER_FORMAT,
    ChannelOrder,
    SourceTier,
    Texture,
    select_pixel_source,
)
from meshexport.utils.io import ensure_dir, sanitize_file_name, write_bytes

from ._container_encoders import ContainerFormat, Encoder, encode
from ._pixel_normalizer import normalize
from .config import MaterialExportConfig

logger = logging.getLogger(__name__)


class TextureExporter:
    """Exports material textures into ``<output_dir>/<textures_dir>/``.

    One instance serves a single export call. A texture bound to several
    materials is written once and its relative path reused. Distinct textures
    whose sanitized names clash get numbered file names.
    """

    def __init__(
        self,
        config: Optional[MaterialExportConfig] = None,
        log: Optional[DiagnosticsSink] = None,
        encoders: Optional[Mapping[ContainerFormat, Encoder]] = None,
    ):
        self.config = config or MaterialExportConfig()
        self.log = log if log is not None else logger
        self.encoders = encoders
        self._exported: dict[int, Optional[str]] = {}
        self._file_names: set[str] = set()

    def export(self, material: Material, output_dir: Path) -> Optional[str]:
        """Export the material's base color texture.

        Returns:
            ``Textures/<file>`` relative to ``output_dir`` (forward slashes),
            or None when the material has no exportable texture.
        """
        bound = resolve_bound_texture(material, self.config.texture_parameter_names)
        if bound is None:
            self.log.warning(f"No base color texture found for material: {material.name}")
            return None

        param_name, texture = bound
        self.log.info(f"Found texture '{texture.name}' with parameter name: {param_name}")

        key = id(texture)
        if key not in self._exported:
            try:
                self._exported[key] = self._export_texture(texture, Path(output_dir))
            except Exception as e:
                self.log.error(
                    f"Unexpected error exporting texture '{texture.name}', "
                    f"material stays untextured: {e.__class__.__name__}: {e}"
                )
                self._exported[key] = None
        return self._exported[key]

    def _export_texture(self, texture: Texture, output_dir: Path) -> Optional[str]:
        source = select_pixel_source(
            texture, allow_secondary=self.config.use_secondary_source
        )
        if not source.available:
            self.log.warning(f"Texture '{texture.name}' has no usable pixel data, skipping")
            return None
        if source.tier is SourceTier.SECONDARY:
            self.log.warning(
                f"Texture '{texture.name}' has no source data, using resident BGRA8 data"
            )

        buffer = source.buffer
        self.log.info(
            f"Texture size: {buffer.width}x{buffer.height}, "
            f"Format: {buffer.pixel_format}, Data size: {len(buffer.data)}"
        )
        if buffer.pixel_format not in CHANNELS_PER_FORMAT:
            self.log.warning(
                f"Texture '{texture.name}' has unrecognized format {buffer.pixel_format}, "
                "attempting to read it as BGRA8"
            )

        try:
            canonical = normalize(
                buffer,
                ChannelOrder(self.config.channel_order),
                pad_truncated=self.config.pad_truncated_textures,
            )
            data, fmt = encode(
                canonical,
                self.config.container_formats,
                encoders=self.encoders,
                log=self.log,
            )
        except PixelError as e:
            self.log.warning(f"Cannot decode texture '{texture.name}' ({e.kind.value}): {e}")
            return None
        except EncodeError as e:
            self.log.error(f"Cannot encode texture '{texture.name}': {e}")
            return None

        file_name = self._unique_file_name(sanitize_file_name(texture.name), fmt.extension)
        try:
            textures_dir = ensure_dir(output_dir / self.config.textures_dir)
            texture_path = write_bytes(textures_dir / file_name, data)
        except IOWriteError as e:
            self.log.error(f"Failed to save texture file: {e}")
            return None

        self.log.info(f"Successfully exported texture: {texture_path}")
        return f"{Path(self.config.textures_dir).as_posix()}/{file_name}"

    def _unique_file_name(self, stem: str, extension: str) -> str:
        """``<stem>.<ext>``, suffixed ``_1``, ``_2``... if already used in this export."""
        file_name = f"{stem}.{extension}"
        n = 0
        while file_name in self._file_names:
            n += 1
            file_name = f"{stem}_{n}.{extension}"
        if n:
            self.log.warning(
                f"Texture file name {stem}.{extension} already used, writing {file_name}"
            )
        self._file_names.add(file_name)
        return file_name
