"""Scene loading: trimesh scenes -> renderables -> one merged mesh.

This is the input side of the exporter used by the CLI:
- ``collect_renderables`` enumerates every mesh node of a loaded scene,
- ``concatenate_renderables`` is the default mesh-merge collaborator. It
  only stacks the tables with ID offsets and gives each distinct material
  its own slot; no welding, atlas packing or baking.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from meshexport.core.logging import DiagnosticsSink
from meshexport.core.material import Material, MaterialSlot
from meshexport.core.mesh import MeshDescription, Renderable
from meshexport.core.texture import PixelFormat, Texture, TextureSourceBuffer
from meshexport.utils.geometry import flip_v, swap_yz

logger = logging.getLogger(__name__)

# PBR maps other than base color, kept as the material's parameter list
_PBR_PARAMETER_TEXTURES = (
    "emissiveTexture",
    "occlusionTexture",
    "metallicRoughnessTexture",
    "normalTexture",
)


def load_scene(path: Path):
    """Load any trimesh-supported file as a ``trimesh.Scene``."""
    import trimesh

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Mesh file not found: {path}")
    return trimesh.load(str(path), force="scene")


def texture_from_image(image, name: str) -> Texture:
    """Wrap a PIL image as a texture with a primary source buffer."""
    if image.mode == "L":
        pixel_format = PixelFormat.GRAY8
    else:
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        pixel_format = PixelFormat.RGBA8
    buffer = TextureSourceBuffer(
        width=image.width,
        height=image.height,
        pixel_format=pixel_format,
        data=image.tobytes(),
    )
    return Texture(name=name, primary=buffer)


def _image_name(image, fallback: str) -> str:
    filename = getattr(image, "filename", None)
    if filename:
        return Path(filename).stem
    return fallback


def material_from_visual(visual, default_name: str) -> Material:
    """Convert a trimesh visual's material to a :class:`Material`.

    ``SimpleMaterial.image`` is bound as ``Diffuse``, ``PBRMaterial``'s
    ``baseColorTexture`` as ``BaseColor``; the remaining PBR maps form the
    ordered parameter list.
    """
    source = getattr(visual, "material", None)
    if source is None:
        return Material(name=default_name)

    name = getattr(source, "name", None) or default_name
    converted: dict[int, Texture] = {}

    def _texture(image, suffix: str) -> Texture:
        key = id(image)
        if key not in converted:
            converted[key] = texture_from_image(image, _image_name(image, f"{name}_{suffix}"))
        return converted[key]

    textures: dict[str, Optional[Texture]] = {}
    base_color = getattr(source, "baseColorTexture", None)
    if base_color is not None:
        textures["BaseColor"] = _texture(base_color, "BaseColor")
    image = getattr(source, "image", None)
    if image is not None:
        textures["Diffuse"] = _texture(image, "Diffuse")

    parameters = []
    for attr in _PBR_PARAMETER_TEXTURES:
        extra = getattr(source, attr, None)
        if extra is not None:
            parameters.append((attr, _texture(extra, attr)))

    return Material(name=name, textures=textures, parameter_textures=parameters or None)


def renderable_from_trimesh(
    mesh,
    name: str,
    *,
    source_up_axis: str = "Y",
    material: Optional[Material] = None,
) -> Renderable:
    """Convert one (already world-space) ``trimesh.Trimesh``.

    trimesh vertices are already split at UV / normal seams, so every vertex
    becomes exactly one vertex-instance. A Y-up source is converted to the
    Z-up frame the OBJ encoder expects. ``material`` overrides the one
    converted from the mesh's visual.
    """
    vertices = np.asarray(mesh.vertices, dtype=np.float64)
    normals = np.asarray(mesh.vertex_normals, dtype=np.float64)
    faces = np.asarray(mesh.faces, dtype=np.int64)
    if source_up_axis == "Y":
        vertices = swap_yz(vertices)
        normals = swap_yz(normals)

    # trimesh keeps UVs with a bottom-left origin; the encoder expects top-left
    uvs = getattr(mesh.visual, "uv", None)
    if uvs is None or len(uvs) != len(vertices):
        uvs = np.zeros((len(vertices), 2), dtype=np.float64)
    else:
        uvs = flip_v(uvs)

    if material is None:
        material = material_from_visual(mesh.visual, default_name=f"{name}_material")

    description = MeshDescription(
        vertex_positions=vertices,
        instance_vertices=np.arange(len(vertices), dtype=np.int64),
        instance_normals=normals,
        instance_uvs=np.asarray(uvs, dtype=np.float64),
        triangles=[tuple(f) for f in faces.tolist()],
        polygon_slots=np.zeros(len(faces), dtype=np.int64),
        polygon_triangles=[[i] for i in range(len(faces))],
        name=name,
    )
    return Renderable(name=name, mesh=description, slots=[MaterialSlot(0, material)])


def collect_renderables(
    scene,
    *,
    source_up_axis: str = "Y",
    log: Optional[DiagnosticsSink] = None,
) -> list[Renderable]:
    """Every scene node carrying a non-empty triangle mesh, in world space.

    Nodes sharing a source material share one :class:`Material`, so the
    merger gives them a single slot.
    """
    import trimesh

    log = log if log is not None else logger
    material_cache: dict[int, Material] = {}
    renderables = []
    for node_name in scene.graph.nodes_geometry:
        transform, geometry_name = scene.graph[node_name]
        geometry = scene.geometry.get(geometry_name)
        if not isinstance(geometry, trimesh.Trimesh) or len(geometry.faces) == 0:
            log.debug(f"Skipping node without triangles: {node_name}")
            continue

        # Key on the original material; copy() below duplicates the visual
        source_material = getattr(geometry.visual, "material", None)
        key = id(source_material) if source_material is not None else None

        mesh = geometry.copy()
        mesh.apply_transform(transform)
        renderable = renderable_from_trimesh(
            mesh,
            name=str(node_name),
            source_up_axis=source_up_axis,
            material=material_cache.get(key) if key is not None else None,
        )
        if key is not None:
            material_cache.setdefault(key, renderable.slots[0].material)
        renderables.append(renderable)

    log.info(f"Collected {len(renderables)} renderable meshes")
    return renderables


def concatenate_renderables(
    renderables: Sequence[Renderable],
    name: str = "MergedMesh",
) -> tuple[MeshDescription, list[MaterialSlot]]:
    """Stack renderables into one mesh; one slot per distinct material."""
    slots: list[MaterialSlot] = []
    slot_of_material: dict[int, int] = {}

    positions, inst_vertices, inst_normals, inst_uvs = [], [], [], []
    triangles: list[tuple[int, ...]] = []
    polygon_slots: list[int] = []
    polygon_triangles: list[list[int]] = []
    vertex_offset = instance_offset = triangle_offset = 0

    for renderable in renderables:
        mesh = renderable.mesh
        mesh.require_tables()

        # Local slot index -> merged slot index
        local_slots: dict[int, int] = {}
        for slot in renderable.slots:
            if slot.material is None:
                local_slots[slot.index] = len(slots)
                slots.append(MaterialSlot(len(slots), None))
                continue
            key = id(slot.material)
            if key not in slot_of_material:
                slot_of_material[key] = len(slots)
                slots.append(MaterialSlot(len(slots), slot.material))
            local_slots[slot.index] = slot_of_material[key]

        vertex_pos = {int(v): i for i, v in enumerate(mesh.get_vertex_ids().tolist())}
        instance_pos = {int(v): i for i, v in enumerate(mesh.get_instance_ids().tolist())}

        positions.append(np.asarray(mesh.vertex_positions, dtype=np.float64).reshape(-1, 3))
        inst_vertices.extend(
            vertex_offset + vertex_pos[int(v)] for v in np.asarray(mesh.instance_vertices).tolist()
        )
        inst_normals.append(np.asarray(mesh.instance_normals, dtype=np.float64).reshape(-1, 3))
        inst_uvs.append(np.asarray(mesh.instance_uvs, dtype=np.float64).reshape(-1, 2))
        triangles.extend(
            tuple(instance_offset + instance_pos[int(i)] for i in tri) for tri in mesh.triangles
        )
        polygon_slots.extend(local_slots[int(s)] for s in np.asarray(mesh.polygon_slots).tolist())
        polygon_triangles.extend(
            [triangle_offset + int(t) for t in tris] for tris in mesh.polygon_triangles
        )

        vertex_offset += mesh.num_vertices
        instance_offset += mesh.num_vertex_instances
        triangle_offset += mesh.num_triangles

    merged = MeshDescription(
        vertex_positions=np.concatenate(positions) if positions else np.zeros((0, 3)),
        instance_vertices=np.asarray(inst_vertices, dtype=np.int64),
        instance_normals=np.concatenate(inst_normals) if inst_normals else np.zeros((0, 3)),
        instance_uvs=np.concatenate(inst_uvs) if inst_uvs else np.zeros((0, 2)),
        triangles=triangles,
        polygon_slots=np.asarray(polygon_slots, dtype=np.int64),
        polygon_triangles=polygon_triangles,
        name=name,
    )
    return merged, slots
