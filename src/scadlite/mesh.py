"""Display meshes: a geometry buffer paired with a surface material."""

from dataclasses import dataclass

from .geometry import GeometryBuffer


@dataclass(frozen=True)
class Material:
    """Physically based surface description handed to the renderer."""
    color: int = 0xF9D71C
    roughness: float = 0.4
    metalness: float = 0.1

    @property
    def hex_color(self) -> str:
        return f"#{self.color:06x}"

    def to_json(self) -> dict:
        return {
            "color": self.hex_color,
            "roughness": self.roughness,
            "metalness": self.metalness,
        }


DEFAULT_MATERIAL = Material()


@dataclass(frozen=True, eq=False)
class Mesh:
    geometry: GeometryBuffer
    material: Material = DEFAULT_MATERIAL
    cast_shadow: bool = True
    receive_shadow: bool = True

    def to_json(self) -> dict:
        return {
            "geometry": self.geometry.to_json(),
            "material": self.material.to_json(),
            "cast_shadow": self.cast_shadow,
            "receive_shadow": self.receive_shadow,
        }


def create_mesh(buffer: GeometryBuffer, material: Material = DEFAULT_MATERIAL) -> Mesh:
    return Mesh(geometry=buffer, material=material)
