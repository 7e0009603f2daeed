"""
Lambert solution representation.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from lambert_bvp.boundary import BoundaryConditions, BoundaryVelocities


class PathType(Enum):
    """Energy branch of a transfer."""
    LOW_PATH = "low"
    HIGH_PATH = "high"
    MIN_ENERGY_PATH = "min_energy"


class OrbitType(Enum):
    """Conic type of a transfer, decided from the dimensionless time of flight."""
    ELLIPTIC = "elliptic"
    PARABOLIC = "parabolic"
    HYPERBOLIC = "hyperbolic"


@dataclass(frozen=True, slots=True, eq=False)
class LambertSolution:
    """
    One branch of a Lambert problem.

    Attributes:
        n_rev: Number of complete revolutions
        path_type: Low, high or minimum-energy path
        orbit_type: Elliptic, parabolic or hyperbolic transfer
        posigrade: True for posigrade motion, False for retrograde
        boundary_conditions: The problem this branch solves
        boundary_velocities: Velocities at both ends, or None when no
            convergent solution exists
    """
    n_rev: int
    path_type: PathType
    orbit_type: OrbitType
    posigrade: bool
    boundary_conditions: BoundaryConditions
    boundary_velocities: Optional[BoundaryVelocities]

    @property
    def initial_velocity(self):
        return None if self.boundary_velocities is None else self.boundary_velocities.initial_velocity

    @property
    def terminal_velocity(self):
        return None if self.boundary_velocities is None else self.boundary_velocities.terminal_velocity
