"""
Spacecraft state representation in Cartesian coordinates.
"""
from typing import Mapping, NamedTuple, Optional

import numpy as np


class SpacecraftState(NamedTuple):
    """
    Time-tagged Cartesian state of a spacecraft.

    Attributes:
        epoch: Epoch in seconds on the caller's time scale
        r: Position vector [x, y, z] in m
        v: Velocity vector [vx, vy, vz] in m/s
        mass: Spacecraft mass in kg
        frame: Name of the inertial frame of r and v
        additional: Extra named quantities computed along the propagation,
            e.g. the state transition matrix

    Examples:
        >>> import numpy as np
        >>> state = SpacecraftState(
        ...     epoch=0.0,
        ...     r=np.array([7.0e6, 0.0, 0.0]),
        ...     v=np.array([0.0, 7.5e3, 0.0])
        ... )
        >>> state.mass
        1000.0
    """
    epoch: float
    r: np.ndarray
    v: np.ndarray
    mass: float = 1000.0
    frame: str = "GCRF"
    additional: Optional[Mapping[str, np.ndarray]] = None

    def get_additional(self, name: str) -> np.ndarray:
        """Return the additional quantity stored under ``name``."""
        if not self.additional or name not in self.additional:
            raise KeyError(f"No additional state named '{name}'")
        return self.additional[name]
