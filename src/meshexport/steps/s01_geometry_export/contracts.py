"""I/O contracts for Step 01: Geometry (OBJ) export."""

from pathlib import Path
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, WithJsonSchema

from meshexport.core.mesh import MeshDescription

MeshField = Annotated[
    MeshDescription,
    WithJsonSchema({"type": "object", "description": "In-memory MeshDescription"}),
]


class GeometryExportInput(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    mesh: MeshField = Field(..., description="Merged mesh to encode")
    material_names: list[Optional[str]] = Field(
        ..., description="Sanitized material name per slot index, None for unassigned slots"
    )
    obj_path: Path = Field(..., description="Destination .obj file")


class GeometryExportOutput(BaseModel):
    obj_path: Path = Field(..., description="Path to the written .obj file")
    mtl_file_name: str = Field(..., description="Material library referenced by mtllib")
    num_vertices: int = Field(0, description="Number of 'v' records")
    num_vertex_instances: int = Field(0, description="Number of 'vt' and 'vn' records")
    num_faces: int = Field(0, description="Number of 'f' records")
    faces_per_material: dict[str, int] = Field(default_factory=dict)
