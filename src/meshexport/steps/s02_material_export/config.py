"""Configuration for Step 02: Material (MTL) and texture export."""

from typing import Literal

from pydantic import BaseModel, Field


class MaterialExportConfig(BaseModel):
    # Neutral appearance written for every material (RGB 0-1)
    ambient: list[float] = Field(
        default=[1.0, 1.0, 1.0], min_length=3, max_length=3, description="Ka"
    )
    diffuse: list[float] = Field(
        default=[0.8, 0.8, 0.8], min_length=3, max_length=3, description="Kd"
    )
    specular: list[float] = Field(
        default=[0.5, 0.5, 0.5], min_length=3, max_length=3, description="Ks"
    )
    shininess: float = Field(32.0, ge=0, description="Ns")
    opacity: float = Field(1.0, ge=0, le=1, description="d")
    illumination_model: int = Field(2, ge=0, le=10, description="illum")

    # Texture lookup
    texture_parameter_names: list[str] = Field(
        default=[
            "BaseColor",
            "Diffuse",
            "DiffuseTexture",
            "BaseColorTexture",
            "Texture",
            "Albedo",
        ],
        description="Texture binding names probed in order on every material",
    )
    use_secondary_source: bool = Field(
        True, description="Fall back to resident (BGRA8) data when the source is missing"
    )
    pad_truncated_textures: bool = Field(
        False,
        description="Accept short pixel buffers and zero-fill the tail instead of skipping the texture",
    )

    # Texture output
    container_formats: list[Literal["png", "tga", "bmp", "jpg"]] = Field(
        default=["png", "tga", "bmp"],
        min_length=1,
        description="Image formats tried in order until one encodes",
    )
    channel_order: Literal["RGBA", "BGRA"] = Field(
        "RGBA", description="Channel order of the canonical color buffer"
    )
    textures_dir: str = Field("Textures", description="Texture folder next to the .mtl")
