"""Common Pydantic models shared across export steps."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from meshexport.steps.s01_geometry_export.config import GeometryExportConfig
from meshexport.steps.s02_material_export.config import MaterialExportConfig


class StepMeta(BaseModel):
    """Metadata recorded for every executed step."""

    step_name: str
    elapsed_seconds: float = 0.0
    params: dict[str, Any] = Field(default_factory=dict)


class ExportConfig(BaseModel):
    """Top-level export configuration, usually loaded from export.yaml."""

    export_format: Literal["obj", "gltf"] = Field(
        "obj",
        description="Requested format. 'gltf' has no writer and falls back to OBJ.",
    )
    log_level: str = Field("INFO", description="Logging level used by the CLI")
    geometry: GeometryExportConfig = Field(default_factory=GeometryExportConfig)
    materials: MaterialExportConfig = Field(default_factory=MaterialExportConfig)


class ExportSummary(BaseModel):
    """Result of one successful export call."""

    obj_path: Path
    mtl_path: Optional[Path] = Field(None, description="None when the MTL write failed")
    num_vertices: int = 0
    num_vertex_instances: int = 0
    num_faces: int = 0
    num_materials: int = 0
    num_textures: int = 0
    texture_paths: dict[str, str] = Field(
        default_factory=dict, description="Material name -> relative texture path"
    )
    steps: list[StepMeta] = Field(default_factory=list)
