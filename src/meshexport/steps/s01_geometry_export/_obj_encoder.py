"""Wavefront OBJ encoder for a merged MeshDescription.

Output layout:
    # header comments
    mtllib <name>.mtl
    v ...   one per vertex (Z-up -> Y-up swapped)
    vt ...  one per vertex-instance (V flipped)
    vn ...  one per vertex-instance (Z-up -> Y-up swapped)
    usemtl / f ...  grouped by material slot
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from meshexport.core.logging import DiagnosticsSink
from meshexport.core.mesh import MeshDescription
from meshexport.utils.geometry import flip_v, swap_yz

from .config import GeometryExportConfig

logger = logging.getLogger(__name__)


@dataclass
class EncodedGeometry:
    """OBJ text plus the counts reported by the geometry step."""

    text: str
    num_vertices: int = 0
    num_vertex_instances: int = 0
    num_faces: int = 0
    faces_per_material: dict[str, int] = field(default_factory=dict)


def _fmt_rows(rows: np.ndarray, prefix: str, precision: int) -> list[str]:
    fmt = " ".join([f"{{:.{precision}f}}"] * rows.shape[1])
    return [f"{prefix} " + fmt.format(*row) for row in rows.tolist()]


def encode_geometry(
    mesh: MeshDescription,
    material_names: Sequence[Optional[str]],
    mtl_file_name: str,
    *,
    config: Optional[GeometryExportConfig] = None,
    log: Optional[DiagnosticsSink] = None,
) -> EncodedGeometry:
    """Encode ``mesh`` as OBJ text.

    Args:
        mesh: Merged mesh. All topology tables must be present.
        material_names: Material name per slot index; ``None`` marks an
            unassigned slot whose polygons are not emitted.
        mtl_file_name: File name written on the ``mtllib`` line.

    Raises:
        MissingMeshDataError: a topology table is absent.
    """
    config = config or GeometryExportConfig()
    log = log if log is not None else logger
    mesh.require_tables()

    precision = config.float_precision
    lines: list[str] = [f"# {config.header_comment}", f"# Mesh: {mesh.name}"]
    lines.append(f"mtllib {mtl_file_name}")
    lines.append("")

    log.info(
        f"Encoding {mesh.num_vertices} vertices, "
        f"{mesh.num_vertex_instances} vertex instances, {mesh.num_triangles} triangles"
    )

    # --- Positions (OBJ indices start at 1) ---
    vertex_index = {int(vid): i + 1 for i, vid in enumerate(mesh.get_vertex_ids().tolist())}
    positions = swap_yz(np.asarray(mesh.vertex_positions).reshape(-1, 3))
    lines.extend(_fmt_rows(positions, "v", precision))
    lines.append("")

    # --- Texture coordinates; this counter also indexes the normals ---
    instance_index: dict[int, int] = {}
    uvs = flip_v(np.asarray(mesh.instance_uvs).reshape(-1, 2))
    lines.extend(_fmt_rows(uvs, "vt", precision))
    for i, iid in enumerate(mesh.get_instance_ids().tolist()):
        instance_index[int(iid)] = i + 1
    lines.append("")

    # --- Normals ---
    normals = swap_yz(np.asarray(mesh.instance_normals).reshape(-1, 3))
    lines.extend(_fmt_rows(normals, "vn", precision))
    lines.append("")

    instance_vertices = np.asarray(mesh.instance_vertices).tolist()
    polygon_slots = np.asarray(mesh.polygon_slots).tolist()

    # --- Faces grouped by material slot ---
    faces_per_material: dict[str, int] = {}
    total_faces = 0
    skipped_corners = 0
    for slot, material_name in enumerate(material_names):
        if material_name is None:
            log.warning(f"Material slot {slot} has no material, skipping its faces")
            continue

        if config.group_comments:
            lines.append(f"# Material: {material_name}")
        lines.append(f"usemtl {material_name}")

        face_count = 0
        for poly_slot, tri_ids in zip(polygon_slots, mesh.polygon_triangles):
            if poly_slot != slot:
                continue
            for tri_id in tri_ids:
                corners = mesh.triangles[tri_id]
                if len(corners) != 3:
                    skipped_corners += 1
                    continue
                refs = []
                for iid in corners:
                    uv_normal = instance_index[int(iid)]
                    vi = vertex_index[int(instance_vertices[uv_normal - 1])]
                    refs.append(f"{vi}/{uv_normal}/{uv_normal}")
                lines.append("f " + " ".join(refs))
                face_count += 1

        lines.append("")
        faces_per_material[material_name] = faces_per_material.get(material_name, 0) + face_count
        total_faces += face_count
        log.info(f"Encoded {face_count} faces for material: {material_name}")

    if skipped_corners:
        log.warning(f"Skipped {skipped_corners} faces without exactly 3 corners")

    return EncodedGeometry(
        text="\n".join(lines),
        num_vertices=mesh.num_vertices,
        num_vertex_instances=mesh.num_vertex_instances,
        num_faces=total_faces,
        faces_per_material=faces_per_material,
    )
