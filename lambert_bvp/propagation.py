"""
Propagators consumed by the Lambert differential corrector.

A propagator maps an initial :class:`SpacecraftState` to a target epoch and,
on request, stores the 6x6 state transition matrix of the propagation in the
returned state's ``additional`` mapping under a caller-chosen name. Stop
detectors may end a propagation before the target epoch; the returned state
then carries the epoch at which propagation stopped.
"""
import abc
import logging
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

import jax
import jax.numpy as jnp
import numpy as np
from diffrax import diffeqsolve, ODETerm, Dopri5, Dopri8, SaveAt, PIDController
from scipy.optimize import brentq

from lambert_bvp.analytic import kepler_state, kepler_stm
from lambert_bvp.odes import (
    Acceleration,
    ballistic_ode,
    point_mass_acceleration,
    total_acceleration,
    variational_ode,
)
from lambert_bvp.spacecraft_state import SpacecraftState

logger = logging.getLogger(__name__)

StateFn = Callable[[float], Tuple[np.ndarray, np.ndarray]]

_kepler_state = jax.jit(kepler_state, static_argnames="max_iter")
_kepler_stm = jax.jit(kepler_stm)


class StopDetector(Protocol):
    """Switching function g(t, r, v); propagation stops where g changes sign."""

    def g(self, t: float, r: np.ndarray, v: np.ndarray) -> float:
        ...


class DateDetector:
    """Stops propagation at a given epoch."""

    def __init__(self, epoch: float):
        self.epoch = float(epoch)

    def g(self, t, r, v):
        return t - self.epoch


class RadiusDetector:
    """Stops propagation when the orbital radius crosses ``min_radius`` (e.g. impact)."""

    def __init__(self, min_radius: float):
        self.min_radius = float(min_radius)

    def g(self, t, r, v):
        return float(np.linalg.norm(r)) - self.min_radius


class Propagator(Protocol):
    def propagate(self, state: SpacecraftState, target_epoch: float,
                  stm_name: Optional[str] = None) -> SpacecraftState:
        ...


class _DetectingPropagator(abc.ABC):
    """
    Shared stop-detector handling.

    Subclasses provide ``_trajectory`` (a callable giving the state at any
    epoch between the initial and target epochs) and ``_propagate_to``.
    """

    def __init__(self, detector_samples: int = 200):
        self.detector_samples = detector_samples
        self._detectors: List[StopDetector] = []

    def add_stop_detector(self, detector: StopDetector) -> None:
        self._detectors.append(detector)

    def clear_stop_detectors(self) -> None:
        self._detectors.clear()

    @property
    def stop_detectors(self) -> Sequence[StopDetector]:
        return tuple(self._detectors)

    def propagate(self, state: SpacecraftState, target_epoch: float,
                  stm_name: Optional[str] = None) -> SpacecraftState:
        """
        Propagate ``state`` to ``target_epoch`` (forward or backward).

        Args:
            state: Initial state
            target_epoch: Epoch to reach (s)
            stm_name: If given, the 6x6 state transition matrix is stored in
                the result's ``additional`` mapping under this name

        Returns:
            The final state; its epoch differs from ``target_epoch`` when a
            stop detector triggered first.
        """
        end_epoch = target_epoch
        if self._detectors and target_epoch != state.epoch:
            stop_epoch = self._find_stop_epoch(state, target_epoch)
            if stop_epoch is not None:
                logger.debug("Propagation stopped at %.6f s before reaching %.6f s",
                             stop_epoch, target_epoch)
                end_epoch = stop_epoch

        r0 = np.asarray(state.r, dtype=float)
        v0 = np.asarray(state.v, dtype=float)
        if end_epoch == state.epoch:
            r, v, stm = r0, v0, np.eye(6)
        else:
            r, v, stm = self._propagate_to(r0, v0, state.epoch, end_epoch, stm_name is not None)

        additional = dict(state.additional or {})
        if stm_name is not None:
            additional[stm_name] = stm
        return SpacecraftState(
            epoch=end_epoch,
            r=np.asarray(r, dtype=float),
            v=np.asarray(v, dtype=float),
            mass=state.mass,
            frame=state.frame,
            additional=additional,
        )

    def _find_stop_epoch(self, state: SpacecraftState, target_epoch: float) -> Optional[float]:
        trajectory = self._trajectory(np.asarray(state.r, dtype=float),
                                      np.asarray(state.v, dtype=float),
                                      state.epoch, target_epoch)
        times = np.linspace(state.epoch, target_epoch, self.detector_samples + 1)
        states = [trajectory(t) for t in times]

        stop_epoch = None
        for detector in self._detectors:
            g_values = [detector.g(t, r, v) for t, (r, v) in zip(times, states)]
            for i in range(1, len(times)):
                g_prev, g_next = g_values[i - 1], g_values[i]
                if g_prev == 0.0 or g_prev * g_next > 0.0:
                    continue

                def g_of_t(t, detector=detector):
                    r, v = trajectory(t)
                    return detector.g(t, r, v)

                if g_next == 0.0:
                    t_event = times[i]
                else:
                    t_event = brentq(g_of_t, times[i - 1], times[i], xtol=1e-9)
                # keep the event closest to the initial epoch
                if stop_epoch is None or abs(t_event - state.epoch) < abs(stop_epoch - state.epoch):
                    stop_epoch = t_event
                break
        if stop_epoch is not None and stop_epoch == target_epoch:
            return None
        return stop_epoch

    @abc.abstractmethod
    def _trajectory(self, r0, v0, t0, t1) -> StateFn:
        """State at any epoch between t0 and t1."""

    @abc.abstractmethod
    def _propagate_to(self, r0, v0, t0, t1, with_stm):
        """Return (r, v, stm) at t1; stm is None unless requested."""


class KeplerianPropagator(_DetectingPropagator):
    """
    Analytic two-body propagator.

    The state transition matrix is the exact derivative of the universal
    variable solution, obtained with ``jax.jacfwd``.
    """

    def __init__(self, mu: float, detector_samples: int = 200):
        super().__init__(detector_samples)
        self.mu = mu

    def _trajectory(self, r0, v0, t0, t1):
        def state_at(t):
            r, v = _kepler_state(r0, v0, t - t0, self.mu)
            return np.asarray(r), np.asarray(v)
        return state_at

    def _propagate_to(self, r0, v0, t0, t1, with_stm):
        r, v = _kepler_state(r0, v0, t1 - t0, self.mu)
        stm = np.asarray(_kepler_stm(r0, v0, t1 - t0, self.mu)) if with_stm else None
        return np.asarray(r), np.asarray(v), stm


class NumericalPropagator(_DetectingPropagator):
    """
    Numerical propagator integrating Cartesian equations of motion with diffrax.

    When the state transition matrix is requested the variational equations
    are integrated alongside the state.

    Args:
        mu: Central body gravitational parameter (m^3/s^2)
        force_models: Additional accelerations (see :mod:`lambert_bvp.odes`)
        rtol, atol: Step size controller tolerances
        high_order: Use Dopri8 (default) instead of Dopri5
        initial_step: Magnitude of the first integration step (s)
        max_steps: Maximum number of integration steps
    """

    def __init__(self, mu: float, force_models: Sequence[Acceleration] = (),
                 rtol: float = 1e-12, atol: float = 1e-6, high_order: bool = True,
                 initial_step: float = 60.0, max_steps: int = 16384,
                 detector_samples: int = 200):
        super().__init__(detector_samples)
        self.mu = mu
        self.force_models = tuple(force_models)
        self.initial_step = initial_step
        self.max_steps = max_steps
        self._acceleration = total_acceleration((point_mass_acceleration(mu),) + self.force_models)
        self._solver = Dopri8() if high_order else Dopri5()
        self._stepsize_controller = PIDController(rtol=rtol, atol=atol)
        self._state_term = ODETerm(ballistic_ode)
        self._variational_term = ODETerm(variational_ode)

    def _solve(self, term, y0, t0, t1, saveat):
        dt0 = min(self.initial_step, abs(t1 - t0)) * (1.0 if t1 > t0 else -1.0)
        return diffeqsolve(
            term,
            self._solver,
            t0=t0,
            t1=t1,
            dt0=dt0,
            y0=y0,
            args=(self._acceleration,),
            stepsize_controller=self._stepsize_controller,
            saveat=saveat,
            max_steps=self.max_steps,
        )

    def _trajectory(self, r0, v0, t0, t1):
        y0 = jnp.concatenate([jnp.asarray(r0), jnp.asarray(v0)])
        solution = self._solve(self._state_term, y0, t0, t1, SaveAt(t1=True, dense=True))

        def state_at(t):
            y = np.asarray(solution.evaluate(t))
            return y[:3], y[3:6]
        return state_at

    def _propagate_to(self, r0, v0, t0, t1, with_stm):
        y0 = jnp.concatenate([jnp.asarray(r0), jnp.asarray(v0)])
        if with_stm:
            y0 = jnp.concatenate([y0, jnp.ravel(jnp.eye(6))])
            term = self._variational_term
        else:
            term = self._state_term
        solution = self._solve(term, y0, t0, t1, SaveAt(t1=True))
        y = np.asarray(solution.ys[-1])
        stm = np.reshape(y[6:], (6, 6)) if with_stm else None
        return y[:3], y[3:6], stm
