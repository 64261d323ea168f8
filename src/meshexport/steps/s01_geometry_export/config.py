"""Configuration for Step 01: Geometry (OBJ) export."""

from pydantic import BaseModel, Field


class GeometryExportConfig(BaseModel):
    header_comment: str = Field(
        "Exported by meshexport", description="First comment line of the OBJ file"
    )
    float_precision: int = Field(
        6, ge=1, le=12, description="Decimal digits for positions, UVs and normals"
    )
    group_comments: bool = Field(
        True, description="Emit a '# Material: <name>' comment before each usemtl"
    )
