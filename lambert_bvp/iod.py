"""
Initial orbit determination from two position measurements.
"""
import math
from typing import Optional, Tuple, Union

import numpy as np

from lambert_bvp.boundary import BoundaryConditions
from lambert_bvp.errors import NonChronologicalEpochsError
from lambert_bvp.solver import LambertSolver
from lambert_bvp.spacecraft_state import SpacecraftState


class IodLambert:
    """
    Estimate an orbit passing through two time-tagged positions.

    Args:
        mu_or_solver: A configured :class:`LambertSolver`, or a gravitational
            parameter (m^3/s^2) for a solver with default settings
    """

    def __init__(self, mu_or_solver: Union[float, LambertSolver]):
        if isinstance(mu_or_solver, LambertSolver):
            self.solver = mu_or_solver
        else:
            self.solver = LambertSolver(mu_or_solver)

    @property
    def mu(self) -> float:
        return self.solver.mu

    def estimate(self, frame: str, posigrade: bool, n_rev: int,
                 p1, t1: float, p2, t2: float) -> Optional[SpacecraftState]:
        """
        Estimate the state at ``t1`` from positions at ``t1`` and ``t2``.

        The sweep angle travelled between ``t1`` and ``t2`` is
        ``2 pi n_rev + alpha`` when ``posigrade`` is True and
        ``2 pi (n_rev + 1) - alpha`` otherwise, where ``alpha`` in [0, pi] is
        the separation angle between ``p1`` and ``p2``. For instance, if ``t2``
        is less than half a period after ``t1``, use ``posigrade=True`` and
        ``n_rev=0``; between half a period and one period, use
        ``posigrade=False`` and ``n_rev=0``.

        For multi-revolution retrograde requests the high path is returned,
        otherwise the zero-revolution or low path solution.

        Raises:
            NonChronologicalEpochsError: if ``t2`` precedes ``t1``
            InvalidRevolutionCountError: if ``n_rev`` is not admissible
        """
        if t2 - t1 < 0.0:
            raise NonChronologicalEpochsError(t1, t2)

        bc = BoundaryConditions(t1, p1, t2, p2, frame)
        solutions = self.solver.solve(posigrade, bc, n_rev)
        if n_rev > 0 and not posigrade:
            chosen = solutions[1]
        else:
            chosen = solutions[0]
        if chosen.initial_velocity is None:
            return None
        return SpacecraftState(
            epoch=bc.initial_epoch,
            r=np.array(bc.initial_position),
            v=np.array(chosen.initial_velocity),
            frame=frame,
        )

    def estimate_from_states(self, frame: str, posigrade: bool, n_rev: int,
                             state1: SpacecraftState,
                             state2: SpacecraftState) -> Optional[SpacecraftState]:
        """Same as :meth:`estimate`, taking epochs and positions from two states."""
        return self.estimate(frame, posigrade, n_rev,
                             state1.r, state1.epoch, state2.r, state2.epoch)

    def solve_planar(self, r1: float, r2: float, dth: float, tof: float,
                     n_rev: int) -> Optional[Tuple[float, float]]:
        """
        Radial and transverse departure velocity of a planar transfer.

        The departure point lies on the x axis at radius ``r1`` and the
        arrival point at radius ``r2`` and polar angle ``dth``. The direction
        of motion follows from ``dth`` reduced to [0, 2 pi): posigrade up to pi.

        Returns:
            (vr, vt) at departure, or None if the solution has no velocities
        """
        p1 = np.array([r1, 0.0, 0.0])
        p2 = np.array([r2 * math.cos(dth), r2 * math.sin(dth), 0.0])
        dth_normalized = dth % (2.0 * math.pi)
        posigrade = dth_normalized <= math.pi

        bc = BoundaryConditions(0.0, p1, tof, p2)
        solution = self.solver.solve(posigrade, bc, n_rev)[0]
        v1 = solution.initial_velocity
        if v1 is None or not np.all(np.isfinite(v1[:2])):
            return None
        # p1 lies on the x axis: x is radial, y is transverse
        return float(v1[0]), float(v1[1])
