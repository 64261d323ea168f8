"""I/O contracts for Step 02: Material (MTL) and texture export."""

from pathlib import Path
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, WithJsonSchema

from meshexport.core.material import MaterialSlot

SlotField = Annotated[
    MaterialSlot,
    WithJsonSchema({"type": "object", "description": "MaterialSlot (index, material)"}),
]


class MaterialExportInput(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    slots: list[SlotField] = Field(..., description="Material slots in slot order")
    output_dir: Path = Field(..., description="Directory of the companion .obj file")
    base_name: str = Field(..., description="Stem of the .obj file; the .mtl is <base_name>.mtl")


class MaterialExportOutput(BaseModel):
    mtl_path: Optional[Path] = Field(None, description="Written .mtl file, None if the write failed")
    num_materials: int = Field(0, description="Number of newmtl blocks")
    num_textures: int = Field(0, description="Number of map_Kd references")
    skipped_slots: list[int] = Field(default_factory=list, description="Unassigned slot indices")
    texture_paths: dict[str, str] = Field(
        default_factory=dict, description="Material name -> Textures/<file>"
    )
