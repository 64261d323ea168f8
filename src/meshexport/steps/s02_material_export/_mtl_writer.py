"""MTL writer: one neutral material block per assigned material slot."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from meshexport.core.errors import IOWriteError
from meshexport.core.logging import DiagnosticsSink
from meshexport.core.material import MaterialSlot
from meshexport.utils.io import sanitize_file_name, write_text

from ._texture_export import TextureExporter
from .config import MaterialExportConfig

logger = logging.getLogger(__name__)


@dataclass
class MaterialLibrary:
    """Encoded MTL text and what went into it."""

    text: str
    mtl_path: Optional[Path] = None
    material_names: list[str] = field(default_factory=list)
    skipped_slots: list[int] = field(default_factory=list)
    texture_paths: dict[str, str] = field(default_factory=dict)


def _num(value: float) -> str:
    # Shortest round-tripping form: 1.0, 0.8, 32.0
    return repr(float(value))


def _rgb(values: Sequence[float]) -> str:
    return " ".join(_num(v) for v in values)


def material_block(
    name: str,
    config: MaterialExportConfig,
    texture_path: Optional[str] = None,
) -> list[str]:
    """Lines of a single ``newmtl`` block (no trailing blank line)."""
    lines = [
        f"newmtl {name}",
        f"Ka {_rgb(config.ambient)}",
        f"Kd {_rgb(config.diffuse)}",
        f"Ks {_rgb(config.specular)}",
        f"Ns {_num(config.shininess)}",
        f"d {_num(config.opacity)}",
        f"illum {config.illumination_model}",
    ]
    if texture_path:
        lines.append(f"map_Kd {texture_path}")
    return lines


def export_materials(
    slots: Sequence[MaterialSlot],
    output_dir: Path,
    base_name: str,
    *,
    config: Optional[MaterialExportConfig] = None,
    log: Optional[DiagnosticsSink] = None,
    texture_exporter: Optional[TextureExporter] = None,
) -> MaterialLibrary:
    """Build ``<base_name>.mtl`` in ``output_dir`` and export its textures.

    Unassigned slots are skipped with a warning. Texture problems leave the
    material untextured. A failed .mtl write is logged and reported through
    ``MaterialLibrary.mtl_path`` being None; it is never raised.
    """
    config = config or MaterialExportConfig()
    log = log if log is not None else logger
    textures = texture_exporter or TextureExporter(config, log)
    output_dir = Path(output_dir)

    log.info(f"Exporting {len(slots)} materials")

    library = MaterialLibrary(text="")
    lines: list[str] = []
    for slot in slots:
        material = slot.material
        if material is None:
            log.warning(f"Material {slot.index} is null")
            library.skipped_slots.append(slot.index)
            continue

        name = sanitize_file_name(material.name)
        log.info(f"Processing material: {name}")

        texture_path = textures.export(material, output_dir)
        if texture_path:
            library.texture_paths[name] = texture_path

        lines.extend(material_block(name, config, texture_path))
        lines.append("")
        library.material_names.append(name)

    library.text = "\n".join(lines)

    mtl_path = output_dir / f"{base_name}.mtl"
    try:
        write_text(mtl_path, library.text)
    except IOWriteError as e:
        log.error(f"Failed to save MTL file: {e}")
        return library

    library.mtl_path = mtl_path
    log.info(f"MTL file saved: {mtl_path} ({len(library.material_names)} materials)")
    log.debug(f"MTL content:\n{library.text}")
    return library
