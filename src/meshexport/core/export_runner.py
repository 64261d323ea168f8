"""Export orchestrator: geometry step, then material step.

The OBJ write is the only point of no return. Once it succeeds the export is
reported as successful, whatever happens to the material library and the
textures afterwards.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

import yaml

from .contracts import ExportConfig, ExportSummary
from .errors import ExportError, InvalidMeshError, MergeError
from .logging import DiagnosticsSink
from .material import MaterialSlot
from .mesh import MeshDescription, Renderable, validate_topology

logger = logging.getLogger(__name__)

MeshMerger = Callable[[Sequence[Renderable]], tuple[MeshDescription, list[MaterialSlot]]]


def load_export_config(config_path: Path) -> ExportConfig:
    """Load and validate export.yaml. An empty file yields the defaults."""
    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return ExportConfig(**raw)


def material_names_for_slots(slots: Sequence[MaterialSlot]) -> list[Optional[str]]:
    """Sanitized material name per slot index, None where nothing is assigned.

    Raises:
        InvalidMeshError: a slot has a negative index.
    """
    from meshexport.utils.io import sanitize_file_name

    if not slots:
        return []
    negative = sorted(s.index for s in slots if s.index < 0)
    if negative:
        raise InvalidMeshError(f"Material slots with negative index: {negative}")
    names: list[Optional[str]] = [None] * (max(s.index for s in slots) + 1)
    for slot in slots:
        if slot.material is not None:
            names[slot.index] = sanitize_file_name(slot.material.name)
    return names


def resolve_output_path(
    output_path: Union[str, Path],
    export_format: str = "obj",
    log: Optional[DiagnosticsSink] = None,
) -> Path:
    """Return the .obj path actually written for a requested output path."""
    log = log if log is not None else logger
    output_path = Path(output_path)
    if export_format == "gltf":
        log.warning("glTF export is not available. Falling back to OBJ export.")
    if output_path.suffix.lower() != ".obj":
        obj_path = output_path.with_suffix(".obj")
        log.warning(f"Writing OBJ to {obj_path} instead of {output_path}")
        return obj_path
    return output_path


def export_mesh(
    mesh: MeshDescription,
    slots: Sequence[MaterialSlot],
    output_path: Union[str, Path],
    config: Optional[ExportConfig] = None,
    log: Optional[DiagnosticsSink] = None,
) -> ExportSummary:
    """Export a merged mesh to ``output_path`` (.obj) plus .mtl and textures.

    Raises:
        MissingMeshDataError, InvalidMeshError: the mesh cannot be exported.
        IOWriteError: the output directory or the OBJ file could not be written.
    """
    from meshexport.steps.s01_geometry_export.contracts import GeometryExportInput
    from meshexport.steps.s01_geometry_export.step import GeometryExportStep
    from meshexport.steps.s02_material_export.contracts import MaterialExportInput
    from meshexport.steps.s02_material_export.step import MaterialExportStep
    from meshexport.utils.io import ensure_dir

    config = config or ExportConfig()
    log = log if log is not None else logger
    obj_path = resolve_output_path(output_path, config.export_format, log)

    # --- 1. Validate topology before touching the disk ---
    material_names = material_names_for_slots(slots)
    validate_topology(mesh, num_slots=len(material_names))

    # --- 2. Output directory ---
    output_dir = ensure_dir(obj_path.parent)

    # --- 3. Geometry (fatal on failure) ---
    geometry_step = GeometryExportStep(config=config.geometry, log=log)
    geometry = geometry_step.execute(GeometryExportInput(
        mesh=mesh,
        material_names=material_names,
        obj_path=obj_path,
    ))

    # --- 4. Materials + textures (degrade gracefully) ---
    material_step = MaterialExportStep(config=config.materials, log=log)
    materials = material_step.execute(MaterialExportInput(
        slots=list(slots),
        output_dir=output_dir,
        base_name=obj_path.stem,
    ))
    if materials.mtl_path is None:
        log.warning(f"Geometry exported without material library: {obj_path}")

    log.info(f"Successfully exported merged mesh to: {obj_path}")
    return ExportSummary(
        obj_path=geometry.obj_path,
        mtl_path=materials.mtl_path,
        num_vertices=geometry.num_vertices,
        num_vertex_instances=geometry.num_vertex_instances,
        num_faces=geometry.num_faces,
        num_materials=materials.num_materials,
        num_textures=materials.num_textures,
        texture_paths=materials.texture_paths,
        steps=[s.last_meta for s in (geometry_step, material_step) if s.last_meta],
    )


def merge_and_export(
    renderables: Sequence[Renderable],
    merger: MeshMerger,
    export_path: Union[str, Path],
    config: Optional[ExportConfig] = None,
    log: Optional[DiagnosticsSink] = None,
) -> Optional[ExportSummary]:
    """Merge collected renderables with ``merger`` and export the result.

    Returns None (with a warning) when there is nothing to export.

    Raises:
        MergeError: the merger failed or returned no mesh.
        ExportError: any fatal error of :func:`export_mesh`.
    """
    log = log if log is not None else logger
    log.info("Starting mesh merge and export process...")

    if not renderables:
        log.warning("No renderable meshes found to export")
        return None

    log.info(f"Merging {len(renderables)} renderables...")
    try:
        mesh, slots = merger(renderables)
    except ExportError:
        raise
    except Exception as e:
        raise MergeError(f"Mesh merge failed: {e}") from e
    if mesh is None:
        raise MergeError("Mesh merge returned no mesh")

    log.info(
        f"Merged {len(renderables)} renderables into '{mesh.name}' "
        f"({mesh.num_vertices} vertices, {mesh.num_triangles} triangles, {len(slots)} slots)"
    )
    return export_mesh(mesh, slots, export_path, config=config, log=log)
