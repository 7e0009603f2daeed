"""
Boundary conditions and boundary velocities of a Lambert problem.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np


def _frozen_vector(value) -> np.ndarray:
    vec = np.array(value, dtype=float).reshape(3)
    vec.flags.writeable = False
    return vec


@dataclass(frozen=True, slots=True, eq=False)
class BoundaryConditions:
    """
    Two epochs and the two positions to be connected by a transfer.

    Attributes:
        initial_epoch: Departure epoch (s on the caller's time scale)
        initial_position: Departure position (m)
        terminal_epoch: Arrival epoch (s); may precede ``initial_epoch``
        terminal_position: Arrival position (m)
        frame: Name of the inertial frame both positions are expressed in
    """

    initial_epoch: float
    initial_position: np.ndarray
    terminal_epoch: float
    terminal_position: np.ndarray
    frame: str = "GCRF"

    def __post_init__(self):
        object.__setattr__(self, "initial_epoch", float(self.initial_epoch))
        object.__setattr__(self, "terminal_epoch", float(self.terminal_epoch))
        object.__setattr__(self, "initial_position", _frozen_vector(self.initial_position))
        object.__setattr__(self, "terminal_position", _frozen_vector(self.terminal_position))

    @property
    def time_of_flight(self) -> float:
        """Signed duration from the initial to the terminal epoch (s)."""
        return self.terminal_epoch - self.initial_epoch

    def reversed(self) -> BoundaryConditions:
        """Return the same problem with initial and terminal ends swapped."""
        return BoundaryConditions(
            initial_epoch=self.terminal_epoch,
            initial_position=self.terminal_position,
            terminal_epoch=self.initial_epoch,
            terminal_position=self.initial_position,
            frame=self.frame,
        )

    def shifted(self, shift) -> BoundaryConditions:
        """
        Return boundary conditions perturbed by an 8-element shift.

        The shift is ordered like the Jacobian columns:
        (t1, r1x, r1y, r1z, t2, r2x, r2y, r2z).
        """
        shift = np.asarray(shift, dtype=float)
        return BoundaryConditions(
            initial_epoch=self.initial_epoch + shift[0],
            initial_position=self.initial_position + shift[1:4],
            terminal_epoch=self.terminal_epoch + shift[4],
            terminal_position=self.terminal_position + shift[5:8],
            frame=self.frame,
        )


@dataclass(frozen=True, slots=True, eq=False)
class BoundaryVelocities:
    """Velocities at both ends of a transfer (m/s)."""

    initial_velocity: np.ndarray
    terminal_velocity: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "initial_velocity", _frozen_vector(self.initial_velocity))
        object.__setattr__(self, "terminal_velocity", _frozen_vector(self.terminal_velocity))

    def reversed(self) -> BoundaryVelocities:
        return BoundaryVelocities(self.terminal_velocity, self.initial_velocity)
