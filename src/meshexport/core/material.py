"""Materials, material slots and texture-binding lookup."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from .texture import Texture

DEFAULT_TEXTURE_PARAMETER_NAMES = (
    "BaseColor",
    "Diffuse",
    "DiffuseTexture",
    "BaseColorTexture",
    "Texture",
    "Albedo",
)


@dataclass
class Material:
    """A material exposing its textures by binding name.

    ``textures`` is the named-parameter lookup. ``parameter_textures`` is the
    optional ordered parameter list some materials (instances) carry; it is
    scanned when no probed name is bound.
    """

    name: str
    textures: dict[str, Optional[Texture]] = field(default_factory=dict)
    parameter_textures: Optional[list[tuple[str, Optional[Texture]]]] = None


@dataclass
class MaterialSlot:
    index: int
    material: Optional[Material] = None


def resolve_bound_texture(
    material: Material,
    names: Sequence[str] = DEFAULT_TEXTURE_PARAMETER_NAMES,
) -> Optional[tuple[str, Texture]]:
    """Return ``(parameter_name, texture)`` for the first bound texture.

    Named bindings are probed in ``names`` order first, then the material's
    parameter list (if it has one) is scanned for the first non-empty entry.
    """
    for name in names:
        texture = material.textures.get(name)
        if texture is not None:
            return name, texture

    for name, texture in material.parameter_textures or ():
        if texture is not None:
            return name, texture

    return None
