"""Physics variants: spatial dimension and physics case as runtime data."""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


class Physics(Enum):
    """Supported physics cases."""
    ELASTICITY = "elasticity"
    COMPLIANT = "compliant"
    HEAT = "heat"


@dataclass(frozen=True)
class PhysicsVariant:
    """
    One of {2D, 3D} x {elasticity, compliant, heat}.

    All constants that differ between variants are attached here so callers
    never branch on dimension or physics themselves.
    """
    dim: int
    physics: Physics
    nxyz: Tuple[int, ...]
    xc: Tuple[float, ...]
    volfrac: float
    rmin_factor: float
    Emin: float

    @property
    def dofs_per_node(self) -> int:
        """Nodal degrees of freedom: one temperature, or one displacement per axis."""
        if self.physics is Physics.HEAT:
            return 1
        return self.dim

    @property
    def name(self) -> str:
        return f"{self.dim}d_{self.physics.value}"

    def default_rmin(self) -> float:
        """Filter radius as a multiple of the largest element edge."""
        h = max(
            (self.xc[2 * i + 1] - self.xc[2 * i]) / (self.nxyz[i] - 1)
            for i in range(self.dim)
        )
        return self.rmin_factor * h

    def __str__(self) -> str:
        return self.name


_VARIANTS = {
    (2, Physics.ELASTICITY): PhysicsVariant(
        2, Physics.ELASTICITY, (241, 121), (0.0, 2.0, 0.0, 1.0), 0.45, 6.0, 1.0e-9),
    (2, Physics.COMPLIANT): PhysicsVariant(
        2, Physics.COMPLIANT, (241, 121), (0.0, 80.0, 0.0, 40.0), 0.3, 3.0, 1.0e-9),
    (2, Physics.HEAT): PhysicsVariant(
        2, Physics.HEAT, (201, 249), (0.0, 50.0, 0.0, 62.0), 0.45, 3.0, 1.0e-3),
    (3, Physics.ELASTICITY): PhysicsVariant(
        3, Physics.ELASTICITY, (65, 33, 33), (0.0, 2.0, 0.0, 1.0, 0.0, 1.0), 0.12, 3.0, 1.0e-9),
    (3, Physics.COMPLIANT): PhysicsVariant(
        3, Physics.COMPLIANT, (81, 41, 9), (0.0, 80.0, 0.0, 40.0, 0.0, 10.0), 0.3, 3.0, 1.0e-9),
    (3, Physics.HEAT): PhysicsVariant(
        3, Physics.HEAT, (49, 65, 49), (0.0, 50.0, 0.0, 62.0, 0.0, 50.0), 0.3, 3.0, 1.0e-3),
}


def get_variant(dim: int, physics: Union[Physics, str]) -> PhysicsVariant:
    """
    Look up a physics variant.

    Args:
        dim: Spatial dimension (2 or 3)
        physics: Physics case, as enum or its string value

    Returns:
        The matching variant with its default problem constants
    """
    if isinstance(physics, str):
        try:
            physics = Physics(physics.lower())
        except ValueError:
            raise ValueError(f"Unknown physics: {physics}") from None
    try:
        return _VARIANTS[(dim, physics)]
    except KeyError:
        raise ValueError(f"Unsupported dimension: {dim}") from None


def parse_variant(name: str) -> PhysicsVariant:
    """Parse a variant name such as ``"2d_elasticity"`` or ``"3D-heat"``."""
    token = name.strip().lower().replace("-", "_")
    dim_part, _, physics_part = token.partition("_")
    if dim_part not in ("2d", "3d") or not physics_part:
        raise ValueError(f"Invalid physics variant: {name}")
    return get_variant(int(dim_part[0]), physics_part)


def all_variants() -> Tuple[PhysicsVariant, ...]:
    return tuple(_VARIANTS.values())
