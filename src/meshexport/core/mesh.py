"""Mesh description handed to the exporter by the mesh-merge collaborator.

The layout follows a vertex / vertex-instance / triangle / polygon split:
positions live on vertices, normals and UVs live on vertex-instances (one per
face corner), triangles reference vertex-instances and polygons group
triangles under a material slot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from .errors import InvalidMeshError, MissingMeshDataError
from .material import MaterialSlot


@dataclass
class MeshDescription:
    """Merged mesh, read-only for the duration of one export call."""

    vertex_positions: Optional[np.ndarray]  # (V, 3) float
    instance_vertices: Optional[np.ndarray]  # (I,) vertex ID per vertex-instance
    instance_normals: Optional[np.ndarray]  # (I, 3) float
    instance_uvs: Optional[np.ndarray]  # (I, 2) float
    triangles: Optional[Sequence[Sequence[int]]]  # vertex-instance IDs per triangle
    polygon_slots: Optional[np.ndarray]  # (P,) material slot index per polygon
    polygon_triangles: Optional[Sequence[Sequence[int]]]  # triangle indices per polygon
    vertex_ids: Optional[np.ndarray] = None  # element IDs; positions when None
    instance_ids: Optional[np.ndarray] = None
    name: str = "MergedMesh"

    @property
    def num_vertices(self) -> int:
        return 0 if self.vertex_positions is None else len(self.vertex_positions)

    @property
    def num_vertex_instances(self) -> int:
        return 0 if self.instance_vertices is None else len(self.instance_vertices)

    @property
    def num_triangles(self) -> int:
        return 0 if self.triangles is None else len(self.triangles)

    @property
    def num_polygons(self) -> int:
        return 0 if self.polygon_slots is None else len(self.polygon_slots)

    def get_vertex_ids(self) -> np.ndarray:
        if self.vertex_ids is not None:
            return np.asarray(self.vertex_ids)
        return np.arange(self.num_vertices)

    def get_instance_ids(self) -> np.ndarray:
        if self.instance_ids is not None:
            return np.asarray(self.instance_ids)
        return np.arange(self.num_vertex_instances)

    def require_tables(self) -> None:
        """Raise MissingMeshDataError if any topology table is absent."""
        missing = [
            label
            for label, table in (
                ("vertices", self.vertex_positions),
                ("vertex instances", self.instance_vertices),
                ("instance normals", self.instance_normals),
                ("instance UVs", self.instance_uvs),
                ("triangles", self.triangles),
                ("polygons", self.polygon_slots),
                ("polygon triangles", self.polygon_triangles),
            )
            if table is None
        ]
        if missing:
            raise MissingMeshDataError(
                f"Mesh '{self.name}' is missing: {', '.join(missing)}"
            )

    @classmethod
    def from_triangles(
        cls,
        vertices: np.ndarray,
        faces: np.ndarray,
        *,
        corner_normals: Optional[np.ndarray] = None,
        corner_uvs: Optional[np.ndarray] = None,
        face_slots: Optional[np.ndarray] = None,
        name: str = "MergedMesh",
        decimals: int = 6,
    ) -> "MeshDescription":
        """Build a description from plain triangle arrays.

        Every triangle becomes its own polygon. Face corners sharing the same
        vertex, normal and UV (compared at ``decimals`` precision) collapse into
        one vertex-instance.

        Args:
            vertices: (V, 3) positions.
            faces: (F, 3) vertex indices.
            corner_normals: (F, 3, 3) per-corner normals; flat face normals
                are computed when omitted.
            corner_uvs: (F, 3, 2) per-corner UVs; zeros when omitted.
            face_slots: (F,) material slot per face; slot 0 when omitted.
        """
        vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
        n_faces = len(faces)

        if corner_normals is None:
            corner_normals = np.repeat(
                _face_normals(vertices, faces)[:, np.newaxis, :], 3, axis=1
            )
        corner_normals = np.asarray(corner_normals, dtype=np.float64).reshape(n_faces, 3, 3)

        if corner_uvs is None:
            corner_uvs = np.zeros((n_faces, 3, 2), dtype=np.float64)
        corner_uvs = np.asarray(corner_uvs, dtype=np.float64).reshape(n_faces, 3, 2)

        if face_slots is None:
            face_slots = np.zeros(n_faces, dtype=np.int64)

        instance_index: dict[tuple, int] = {}
        inst_vertices: list[int] = []
        inst_normals: list[np.ndarray] = []
        inst_uvs: list[np.ndarray] = []
        triangles: list[tuple[int, int, int]] = []

        for f in range(n_faces):
            corners = []
            for c in range(3):
                vid = int(faces[f, c])
                normal = corner_normals[f, c]
                uv = corner_uvs[f, c]
                key = (
                    vid,
                    tuple(np.round(normal, decimals).tolist()),
                    tuple(np.round(uv, decimals).tolist()),
                )
                idx = instance_index.get(key)
                if idx is None:
                    idx = len(inst_vertices)
                    instance_index[key] = idx
                    inst_vertices.append(vid)
                    inst_normals.append(normal)
                    inst_uvs.append(uv)
                corners.append(idx)
            triangles.append(tuple(corners))

        return cls(
            vertex_positions=vertices,
            instance_vertices=np.asarray(inst_vertices, dtype=np.int64),
            instance_normals=np.asarray(inst_normals, dtype=np.float64).reshape(-1, 3),
            instance_uvs=np.asarray(inst_uvs, dtype=np.float64).reshape(-1, 2),
            triangles=triangles,
            polygon_slots=np.asarray(face_slots, dtype=np.int64),
            polygon_triangles=[[f] for f in range(n_faces)],
            name=name,
        )


@dataclass
class Renderable:
    """One object collected from a scene, before merging."""

    name: str
    mesh: MeshDescription
    slots: list[MaterialSlot] = field(default_factory=list)


def _face_normals(vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """Unit face normals; degenerate faces get a zero normal."""
    if len(faces) == 0:
        return np.zeros((0, 3), dtype=np.float64)
    v0 = vertices[faces[:, 0]]
    v1 = vertices[faces[:, 1]]
    v2 = vertices[faces[:, 2]]
    normals = np.cross(v1 - v0, v2 - v0)
    norms = np.linalg.norm(normals, axis=1, keepdims=True)
    return normals / np.where(norms > 1e-12, norms, 1.0)


def validate_topology(mesh: MeshDescription, num_slots: int) -> None:
    """Check that the mesh can be exported.

    Raises:
        MissingMeshDataError: a topology table is absent.
        InvalidMeshError: the mesh is empty or references unknown elements.
    """
    mesh.require_tables()

    if mesh.num_vertices == 0:
        raise InvalidMeshError(f"Mesh '{mesh.name}' has no vertices")
    if mesh.num_triangles == 0:
        raise InvalidMeshError(f"Mesh '{mesh.name}' has no triangles")

    n_inst = mesh.num_vertex_instances
    if len(mesh.instance_normals) != n_inst or len(mesh.instance_uvs) != n_inst:
        raise InvalidMeshError(
            f"Mesh '{mesh.name}': {n_inst} vertex instances but "
            f"{len(mesh.instance_normals)} normals and {len(mesh.instance_uvs)} UVs"
        )
    if len(mesh.polygon_triangles) != mesh.num_polygons:
        raise InvalidMeshError(
            f"Mesh '{mesh.name}': {mesh.num_polygons} polygon slots but "
            f"{len(mesh.polygon_triangles)} polygon triangle lists"
        )

    vertex_ids = set(mesh.get_vertex_ids().tolist())
    unknown_vertices = set(np.asarray(mesh.instance_vertices).tolist()) - vertex_ids
    if unknown_vertices:
        raise InvalidMeshError(
            f"Mesh '{mesh.name}': vertex instances reference unknown vertices "
            f"{sorted(unknown_vertices)[:5]}"
        )

    instance_ids = set(mesh.get_instance_ids().tolist())
    for t, corners in enumerate(mesh.triangles):
        for iid in corners:
            if int(iid) not in instance_ids:
                raise InvalidMeshError(
                    f"Mesh '{mesh.name}': triangle {t} references unknown "
                    f"vertex instance {iid}"
                )

    for p, (slot, tri_ids) in enumerate(zip(mesh.polygon_slots, mesh.polygon_triangles)):
        if not 0 <= int(slot) < num_slots:
            raise InvalidMeshError(
                f"Mesh '{mesh.name}': polygon {p} uses material slot {slot}, "
                f"only {num_slots} slots available"
            )
        for t in tri_ids:
            if not 0 <= int(t) < mesh.num_triangles:
                raise InvalidMeshError(
                    f"Mesh '{mesh.name}': polygon {p} references unknown triangle {t}"
                )
