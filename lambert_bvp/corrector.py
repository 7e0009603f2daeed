"""
Shooting differential corrector for Lambert problems.

Starting from an initial velocity guess (typically a two-body Lambert
solution), the initial velocity is iteratively corrected so that the
trajectory computed by an arbitrary propagator reaches the terminal
position at the terminal epoch. Each Newton step uses the position/velocity
block of the state transition matrix returned by the propagator.
"""
import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve

from lambert_bvp.boundary import BoundaryConditions, BoundaryVelocities
from lambert_bvp.constants import (
    CORRECTOR_INITIAL_MASS,
    CORRECTOR_MAX_ITERATIONS,
    CORRECTOR_POSITION_TOLERANCE,
    CORRECTOR_STM_NAME,
    SAFE_MIN,
)
from lambert_bvp.propagation import Propagator
from lambert_bvp.spacecraft_state import SpacecraftState

logger = logging.getLogger(__name__)


class CorrectionFailure(Enum):
    """Why a differential correction did not produce velocities."""
    MAX_ITERATIONS = "max_iterations"
    PROPAGATION_STOPPED = "propagation_stopped"
    SINGULAR_SENSITIVITY = "singular_sensitivity"


@dataclass(frozen=True)
class Converged:
    velocities: BoundaryVelocities
    iterations: int

    @property
    def converged(self) -> bool:
        return True


@dataclass(frozen=True)
class NotConverged:
    reason: CorrectionFailure
    iterations: int

    @property
    def converged(self) -> bool:
        return False

    @property
    def velocities(self) -> None:
        return None


CorrectionResult = Union[Converged, NotConverged]


class LambertDifferentialCorrector:
    """
    Refine a Lambert transfer against the dynamics of a propagator.

    Args:
        boundary_conditions: Epochs and positions to connect

    Attributes:
        max_iter: Maximum number of corrections (default 10)
        position_tolerance: Terminal position miss below which the solution
            is accepted (m, default 1e-4)
        stm_name: Name under which propagators store the state transition
            matrix (default ``"stm"``)
        initial_mass: Mass of the propagated spacecraft state (kg)
        threshold_matrix_solver: Pivot magnitude below which the position
            sensitivity matrix is declared singular
    """

    def __init__(self, boundary_conditions: BoundaryConditions):
        self.boundary_conditions = boundary_conditions
        self._max_iter = CORRECTOR_MAX_ITERATIONS
        self._position_tolerance = CORRECTOR_POSITION_TOLERANCE
        self._initial_mass = CORRECTOR_INITIAL_MASS
        self._threshold_matrix_solver = SAFE_MIN
        self._stm_name = CORRECTOR_STM_NAME
        self._current_iter = 0

    @property
    def current_iter(self) -> int:
        """Number of corrections applied during the last call to :meth:`solve`."""
        return self._current_iter

    @property
    def max_iter(self) -> int:
        return self._max_iter

    @max_iter.setter
    def max_iter(self, value: int):
        if value < 0:
            raise ValueError(f"max_iter must be non-negative, got {value}")
        self._max_iter = int(value)

    @property
    def position_tolerance(self) -> float:
        return self._position_tolerance

    @position_tolerance.setter
    def position_tolerance(self, value: float):
        if not value > 0.0:
            raise ValueError(f"position_tolerance must be positive, got {value}")
        self._position_tolerance = float(value)

    @property
    def initial_mass(self) -> float:
        return self._initial_mass

    @initial_mass.setter
    def initial_mass(self, value: float):
        if not value > 0.0:
            raise ValueError(f"initial_mass must be positive, got {value}")
        self._initial_mass = float(value)

    @property
    def threshold_matrix_solver(self) -> float:
        return self._threshold_matrix_solver

    @threshold_matrix_solver.setter
    def threshold_matrix_solver(self, value: float):
        if not value > 0.0:
            raise ValueError(f"threshold_matrix_solver must be positive, got {value}")
        self._threshold_matrix_solver = float(value)

    @property
    def stm_name(self) -> str:
        return self._stm_name

    @stm_name.setter
    def stm_name(self, value: str):
        if not value:
            raise ValueError("stm_name must be a non-empty string")
        self._stm_name = value

    def solve(self, propagator: Propagator, initial_velocity_guess) -> CorrectionResult:
        """
        Correct the initial velocity until the terminal position is reached.

        Args:
            propagator: Any object implementing :class:`Propagator`
            initial_velocity_guess: Initial velocity guess (m/s)

        Returns:
            :class:`Converged` with the corrected boundary velocities, or
            :class:`NotConverged` with the failure reason
        """
        bc = self.boundary_conditions
        velocity = np.array(initial_velocity_guess, dtype=float).reshape(3)
        self._current_iter = 0

        while True:
            initial_state = SpacecraftState(
                epoch=bc.initial_epoch,
                r=np.array(bc.initial_position),
                v=velocity.copy(),
                mass=self._initial_mass,
                frame=bc.frame,
            )
            terminal_state = propagator.propagate(initial_state, bc.terminal_epoch,
                                                  stm_name=self._stm_name)

            if terminal_state.epoch != bc.terminal_epoch:
                logger.warning("Differential correction aborted: propagation stopped at %s "
                               "instead of %s", terminal_state.epoch, bc.terminal_epoch)
                return NotConverged(CorrectionFailure.PROPAGATION_STOPPED, self._current_iter)

            residual = bc.terminal_position - np.asarray(terminal_state.r, dtype=float)
            miss = float(np.linalg.norm(residual))
            logger.debug("Differential correction iteration %d: position miss %.6e m",
                         self._current_iter, miss)

            if miss < self._position_tolerance:
                return Converged(
                    BoundaryVelocities(velocity, np.asarray(terminal_state.v, dtype=float)),
                    self._current_iter,
                )

            if self._current_iter == self._max_iter:
                logger.warning("Differential correction did not converge after %d iterations "
                               "(position miss %.6e m)", self._max_iter, miss)
                return NotConverged(CorrectionFailure.MAX_ITERATIONS, self._current_iter)

            self._current_iter += 1

            stm = np.asarray(terminal_state.get_additional(self._stm_name), dtype=float)
            delta_v = self._solve_sensitivity(stm[0:3, 3:6], residual)
            if delta_v is None:
                logger.warning("Differential correction aborted: singular position sensitivity")
                return NotConverged(CorrectionFailure.SINGULAR_SENSITIVITY, self._current_iter)
            velocity = velocity + delta_v

    def _solve_sensitivity(self, phi_rv: np.ndarray, residual: np.ndarray) -> Optional[np.ndarray]:
        if not np.all(np.isfinite(phi_rv)):
            return None
        # exactly singular matrices are reported through the pivot check below
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", LinAlgWarning)
            lu, piv = lu_factor(phi_rv, check_finite=False)
        if np.min(np.abs(np.diag(lu))) < self._threshold_matrix_solver:
            return None
        return lu_solve((lu, piv), residual, check_finite=False)
