"""
Lambert solver for two-point boundary value problems in orbital mechanics.

Solves Lambert's problem: given two position vectors and their epochs, find
the velocities of every two-body conic connecting them, for all admissible
numbers of complete revolutions.

Combines Izzo's (2015) dimensionless formulation and Householder iteration
with the branch handling of Der (2011).

References:
    Izzo, D. (2015). Revisiting Lambert's problem. Celestial Mechanics and
    Dynamical Astronomy, 121(1), 1-15.
    Der, G. J. (2011). The Superior Lambert Algorithm. AMOS Conference.
"""
import logging
from typing import List, Optional, Union

import jax
import jax.numpy as jnp
import numpy as np
from scipy.linalg import lu_factor, lu_solve

from lambert_bvp.analytic import kepler_state
from lambert_bvp.boundary import BoundaryConditions, BoundaryVelocities
from lambert_bvp.errors import InvalidRevolutionCountError
from lambert_bvp.geometry import TransferGeometry, transfer_geometry
from lambert_bvp.householder import (
    calculate_y,
    householder_solve,
    initial_guess_x,
    reconstruct_vr_vt,
)
from lambert_bvp.settings import HouseholderSettings
from lambert_bvp.solution import LambertSolution, PathType

logger = logging.getLogger(__name__)

# free parameters of the Jacobian: (t1, v1x, v1y, v1z, t2, r1x, r1y, r1z)
N_FREE_PARAMETERS = 8


def _boundary_map(p, mu):
    """Velocities and positions at both ends as functions of the free parameters."""
    v1 = p[1:4]
    r1 = p[5:8]
    r2, v2 = kepler_state(r1, v1, p[4] - p[0], mu)
    return jnp.concatenate([v1, v2, r1, r2])


_boundary_partials = jax.jit(jax.jacfwd(_boundary_map))


class LambertSolver:
    """
    Multi-revolution Lambert solver.

    A solver holds only immutable configuration and may be shared between
    threads.

    Args:
        mu: Gravitational parameter of the central body (m^3/s^2)
        settings: Householder iteration settings (defaults if None)

    Examples:
        >>> solver = LambertSolver(3.986004418e14)
        >>> bc = BoundaryConditions(0.0, [7.0e6, 0.0, 0.0], 3600.0, [0.0, 8.0e6, 0.0])
        >>> solutions = solver.solve(True, bc)
        >>> solutions[0].n_rev
        0
    """

    def __init__(self, mu: float, settings: Optional[HouseholderSettings] = None):
        self._mu = float(mu)
        self._settings = settings if settings is not None else HouseholderSettings()

    @property
    def mu(self) -> float:
        return self._mu

    @property
    def settings(self) -> HouseholderSettings:
        return self._settings

    def solve(self, posigrade: bool, boundary_conditions: BoundaryConditions,
              n_rev: Optional[int] = None) -> List[LambertSolution]:
        """
        Solve the Lambert problem.

        Args:
            posigrade: Direction of motion
            boundary_conditions: Epochs and positions at both ends
            n_rev: If None, all admissible revolution counts are returned.
                Otherwise only the solutions with exactly ``n_rev`` complete
                revolutions.

        Returns:
            Solutions ordered by increasing number of revolutions, the low
            path before the high path: ``[n=0, n=1 low, n=1 high, ...]``.
            A single solution is returned for zero revolutions.

        Raises:
            InvalidRevolutionCountError: if ``n_rev`` is negative or larger
                than the maximum admissible number of revolutions
            HouseholderConvergenceError: if a branch does not converge
        """
        if boundary_conditions.time_of_flight < 0.0:
            return self._solve_backward(posigrade, boundary_conditions, n_rev)

        geometry = transfer_geometry(self._mu, posigrade, boundary_conditions)
        logger.debug("Lambert geometry: sigma=%.12f tau=%.12f orbit=%s n_max=%d",
                     geometry.sigma, geometry.tau, geometry.orbit_type.name, geometry.n_max)

        if n_rev is None:
            rev_counts = range(geometry.n_max + 1)
        else:
            if n_rev < 0 or n_rev > geometry.n_max:
                raise InvalidRevolutionCountError(n_rev, geometry.n_max)
            rev_counts = [n_rev]

        solutions = []
        for n in rev_counts:
            if n == 0:
                path_types = [geometry.shortest_path_type]
            else:
                path_types = [PathType.LOW_PATH, PathType.HIGH_PATH]
            for path_type in path_types:
                velocities = self._solve_branch(geometry, n, path_type)
                solutions.append(LambertSolution(
                    n_rev=n,
                    path_type=path_type,
                    orbit_type=geometry.orbit_type,
                    posigrade=posigrade,
                    boundary_conditions=boundary_conditions,
                    boundary_velocities=velocities,
                ))
        return solutions

    def _solve_backward(self, posigrade, boundary_conditions, n_rev):
        """Solve the time-reversed problem and swap the velocities back."""
        forward = self.solve(posigrade, boundary_conditions.reversed(), n_rev)
        return [
            LambertSolution(
                n_rev=s.n_rev,
                path_type=s.path_type,
                orbit_type=s.orbit_type,
                posigrade=s.posigrade,
                boundary_conditions=boundary_conditions,
                boundary_velocities=s.boundary_velocities.reversed(),
            )
            for s in forward
        ]

    def _solve_branch(self, geometry: TransferGeometry, n_rev: int,
                      path_type: PathType) -> BoundaryVelocities:
        low_path = path_type is PathType.LOW_PATH
        x0 = initial_guess_x(geometry.tau, geometry.sigma, n_rev, low_path)
        x = householder_solve(x0, geometry.tau, geometry.sigma, n_rev, self._settings)
        y = calculate_y(x, geometry.sigma)
        logger.debug("Branch n=%d %s: x0=%.12f x=%.12f", n_rev, path_type.name, x0, x)

        vr1, vt1, vr2, vt2 = reconstruct_vr_vt(x, y, geometry.r1, geometry.r2, geometry.sigma,
                                               geometry.gamma, geometry.rho, geometry.zeta)
        v1 = vr1 * geometry.ir1 + vt1 * geometry.it1
        v2 = vr2 * geometry.ir2 + vt2 * geometry.it2
        return BoundaryVelocities(v1, v2)

    def compute_jacobian(self, solution: Union[LambertSolution, BoundaryVelocities, None],
                         boundary_conditions: Optional[BoundaryConditions] = None) -> np.ndarray:
        """
        Sensitivity of the boundary velocities to the boundary conditions.

        Two-body motion is differentiated with ``jax.jacfwd`` with the initial
        velocity as free variable; the positions are then swapped into the
        independent variables by inverting the partials matrix.

        Args:
            solution: A Lambert solution, or its boundary velocities
            boundary_conditions: Required when ``solution`` is a
                :class:`BoundaryVelocities`; defaults to the solution's own

        Returns:
            6x8 matrix. Rows are (v1x, v1y, v1z, v2x, v2y, v2z), columns are
            (t1, r1x, r1y, r1z, t2, r2x, r2y, r2z). All NaN when the
            solution has no velocities.

        References:
            Di Lizia, P., Armellin, R., Zazzera, F. B., and Berz, M. High Order
            Expansion of the Solution of Two-Point Boundary Value Problems using
            Differential Algebra: Applications to Spacecraft Dynamics.
        """
        if isinstance(solution, LambertSolution):
            velocities = solution.boundary_velocities
            if boundary_conditions is None:
                boundary_conditions = solution.boundary_conditions
        else:
            velocities = solution
        if velocities is None:
            return np.full((6, N_FREE_PARAMETERS), np.nan)
        if boundary_conditions is None:
            raise ValueError("boundary_conditions are required with bare boundary velocities")

        p = np.concatenate([
            [0.0],
            velocities.initial_velocity,
            [boundary_conditions.time_of_flight],
            boundary_conditions.initial_position,
        ])
        partials = np.asarray(_boundary_partials(jnp.asarray(p), self._mu))

        intermediate = partials[0:6]
        matrix_to_invert = np.eye(N_FREE_PARAMETERS)
        matrix_to_invert[1:4] = partials[6:9]
        matrix_to_invert[5:8] = partials[9:12]

        # J = intermediate @ inv(M)  <=>  M^T J^T = intermediate^T
        lu, piv = lu_factor(matrix_to_invert)
        return lu_solve((lu, piv), intermediate.T, trans=1).T
