"""
Tests for the analytic and numerical propagators.
"""
import math
import unittest

import jax.numpy as jnp
import numpy as np
import pytest
from diffrax import diffeqsolve, ODETerm, Dopri5, SaveAt, PIDController

from lambert_bvp import (
    J2_EARTH,
    MU_EARTH_EGM96,
    R_EARTH,
    DateDetector,
    KeplerianPropagator,
    NumericalPropagator,
    RadiusDetector,
    SpacecraftState,
    ballistic_ode,
    j2_acceleration,
    kepler_state,
    kepler_stm,
    point_mass_acceleration,
    propagate_ballistic,
)
from lambert_bvp.propagation import _DetectingPropagator

MU = MU_EARTH_EGM96
R0 = np.array([7.0e6, 0.0, 0.0])
V0 = np.array([0.0, 6.5e3, 4.0e3])


def _period(r, v, mu=MU):
    a = 1.0 / (2.0 / np.linalg.norm(r) - np.dot(v, v) / mu)
    return 2.0 * math.pi * math.sqrt(a ** 3 / mu)


class TestKeplerianPropagator(unittest.TestCase):

    def test_returns_after_one_period(self):
        period = _period(R0, V0)
        state = KeplerianPropagator(MU).propagate(SpacecraftState(0.0, R0, V0), period)

        self.assertEqual(state.epoch, period)
        np.testing.assert_allclose(state.r, R0, rtol=0.0, atol=1e-3)
        np.testing.assert_allclose(state.v, V0, rtol=0.0, atol=1e-6)

    def test_forward_then_backward(self):
        propagator = KeplerianPropagator(MU)
        forward = propagator.propagate(SpacecraftState(0.0, R0, V0), 2.5e4)
        backward = propagator.propagate(forward, 0.0)

        np.testing.assert_allclose(backward.r, R0, rtol=0.0, atol=1e-3)
        np.testing.assert_allclose(backward.v, V0, rtol=0.0, atol=1e-6)

    def test_hyperbolic(self):
        v_hyp = np.array([0.0, 11.0e3, 2.0e3])
        r, v = kepler_state(R0, v_hyp, 3600.0, MU)

        energy0 = 0.5 * np.dot(v_hyp, v_hyp) - MU / np.linalg.norm(R0)
        energy = 0.5 * float(jnp.dot(v, v)) - MU / float(jnp.linalg.norm(r))
        self.assertGreater(energy0, 0.0)
        self.assertAlmostEqual(energy / energy0, 1.0, places=10)
        np.testing.assert_allclose(np.cross(np.asarray(r), np.asarray(v)), np.cross(R0, v_hyp), rtol=1e-10)

    def test_stm_is_stored_under_name(self):
        state = KeplerianPropagator(MU).propagate(SpacecraftState(0.0, R0, V0), 1e3, stm_name="phi")

        self.assertEqual(state.get_additional("phi").shape, (6, 6))
        with self.assertRaises(KeyError):
            state.get_additional("stm")

    def test_no_stm_by_default(self):
        state = KeplerianPropagator(MU).propagate(SpacecraftState(0.0, R0, V0), 1e3)

        with self.assertRaises(KeyError):
            state.get_additional("stm")

    def test_stm_matches_finite_differences(self):
        dt = 2500.0
        stm = np.asarray(kepler_stm(R0, V0, dt, MU))

        y0 = np.concatenate([R0, V0])
        steps = np.array([1.0, 1.0, 1.0, 1e-3, 1e-3, 1e-3])
        for j in range(6):
            dy = np.zeros(6)
            dy[j] = steps[j]
            plus = np.concatenate(kepler_state((y0 + dy)[:3], (y0 + dy)[3:], dt, MU))
            minus = np.concatenate(kepler_state((y0 - dy)[:3], (y0 - dy)[3:], dt, MU))
            column = (np.asarray(plus) - np.asarray(minus)) / (2.0 * steps[j])
            np.testing.assert_allclose(stm[:, j], column, rtol=1e-5, atol=1e-9)

    def test_propagate_ballistic_matches_kepler_state(self):
        times = np.linspace(0.0, 8000.0, 9)
        positions, velocities = propagate_ballistic(R0, V0, times, MU)

        self.assertEqual(positions.shape, (9, 3))
        for i, t in enumerate(times):
            r, v = kepler_state(R0, V0, t, MU)
            np.testing.assert_allclose(positions[i], r, rtol=1e-12, atol=1e-6)
            np.testing.assert_allclose(velocities[i], v, rtol=1e-12, atol=1e-9)


class TestStopDetectors(unittest.TestCase):

    def test_date_detector(self):
        propagator = KeplerianPropagator(MU)
        propagator.add_stop_detector(DateDetector(100.0))

        state = propagator.propagate(SpacecraftState(0.0, R0, V0), 1e4, stm_name="stm")

        self.assertAlmostEqual(state.epoch, 100.0, places=6)
        r, _ = kepler_state(R0, V0, state.epoch, MU)
        np.testing.assert_allclose(state.r, r, rtol=0.0, atol=1e-6)
        self.assertEqual(state.get_additional("stm").shape, (6, 6))

    def test_date_detector_after_target_is_ignored(self):
        propagator = KeplerianPropagator(MU)
        propagator.add_stop_detector(DateDetector(2e4))

        state = propagator.propagate(SpacecraftState(0.0, R0, V0), 1e4)

        self.assertEqual(state.epoch, 1e4)

    def test_radius_detector(self):
        # start at perigee of an ellipse and stop on the way out
        r0 = np.array([7.0e6, 0.0, 0.0])
        v0 = np.array([0.0, 8.5e3, 0.0])
        propagator = KeplerianPropagator(MU)
        propagator.add_stop_detector(RadiusDetector(1.0e7))

        state = propagator.propagate(SpacecraftState(0.0, r0, v0), 1e4)

        self.assertLess(state.epoch, 1e4)
        self.assertAlmostEqual(np.linalg.norm(state.r), 1.0e7, delta=1e-3)

    def test_earliest_detector_wins(self):
        propagator = KeplerianPropagator(MU)
        propagator.add_stop_detector(DateDetector(500.0))
        propagator.add_stop_detector(DateDetector(200.0))

        state = propagator.propagate(SpacecraftState(0.0, R0, V0), 1e3)

        self.assertAlmostEqual(state.epoch, 200.0, places=6)
        propagator.clear_stop_detectors()
        self.assertEqual(len(propagator.stop_detectors), 0)

    def test_backward_date_detector(self):
        propagator = NumericalPropagator(MU)
        propagator.add_stop_detector(DateDetector(-300.0))

        state = propagator.propagate(SpacecraftState(0.0, R0, V0), -1e3)

        self.assertAlmostEqual(state.epoch, -300.0, places=6)


class TestNumericalPropagator(unittest.TestCase):

    def test_point_mass_matches_analytic(self):
        state = NumericalPropagator(MU).propagate(SpacecraftState(0.0, R0, V0), 5000.0)
        r, v = kepler_state(R0, V0, 5000.0, MU)

        np.testing.assert_allclose(state.r, r, rtol=0.0, atol=1e-3)
        np.testing.assert_allclose(state.v, v, rtol=0.0, atol=1e-6)

    def test_point_mass_stm_matches_analytic(self):
        state = NumericalPropagator(MU).propagate(SpacecraftState(0.0, R0, V0), 3000.0, stm_name="stm")
        expected = np.asarray(kepler_stm(R0, V0, 3000.0, MU))

        np.testing.assert_allclose(state.get_additional("stm"), expected, rtol=1e-6, atol=1e-9)

    def test_backward_propagation(self):
        propagator = NumericalPropagator(MU)
        forward = propagator.propagate(SpacecraftState(0.0, R0, V0), 4000.0)
        backward = propagator.propagate(forward, 0.0)

        np.testing.assert_allclose(backward.r, R0, rtol=0.0, atol=1e-3)
        self.assertEqual(backward.epoch, 0.0)

    def test_j2_changes_trajectory(self):
        perturbed = NumericalPropagator(MU, [j2_acceleration(MU, J2_EARTH, R_EARTH)])
        state = perturbed.propagate(SpacecraftState(0.0, R0, V0), 5000.0)
        r, _ = kepler_state(R0, V0, 5000.0, MU)

        miss = np.linalg.norm(state.r - np.asarray(r))
        self.assertGreater(miss, 100.0)
        self.assertLess(miss, 1e5)

    def test_mass_and_frame_are_preserved(self):
        initial = SpacecraftState(0.0, R0, V0, mass=250.0, frame="EME2000")
        state = NumericalPropagator(MU, high_order=False).propagate(initial, 100.0)

        self.assertEqual(state.mass, 250.0)
        self.assertEqual(state.frame, "EME2000")


def test_ballistic_ode_returns_after_one_period():
    acceleration = point_mass_acceleration(MU)
    period = _period(R0, V0)
    y0 = jnp.concatenate([jnp.asarray(R0), jnp.asarray(V0)])

    solution = diffeqsolve(ODETerm(ballistic_ode), Dopri5(), t0=0.0, t1=period, dt0=10.0, y0=y0,
                           args=(acceleration,), saveat=SaveAt(t1=True),
                           stepsize_controller=PIDController(rtol=1e-12, atol=1e-6),
                           max_steps=100000)

    np.testing.assert_allclose(solution.ys[-1, :3], R0, rtol=0.0, atol=1e-2)


@pytest.mark.parametrize("dt", [-3000.0, 0.0, 20000.0])
def test_kepler_stm_is_symplectic(dt):
    stm = np.asarray(kepler_stm(R0, V0, dt, MU))
    omega = np.block([[np.zeros((3, 3)), np.eye(3)], [-np.eye(3), np.zeros((3, 3))]])

    np.testing.assert_allclose(stm.T @ omega @ stm, omega, rtol=0.0, atol=1e-6)

# perigee of an orbit with e ~ 0.7
R_PERIGEE = np.array([7.0e6, 0.0, 0.0])
V_PERIGEE = np.array([0.0, 9.8e3, 1.0e3])


@pytest.mark.parametrize("fraction", [0.45, 0.55, 0.9, 0.97, 1.83, -0.9])
def test_eccentric_orbit_single_step_matches_chained_steps(fraction):
    dt = fraction * _period(R_PERIGEE, V_PERIGEE)
    r_single, v_single = kepler_state(R_PERIGEE, V_PERIGEE, dt, MU)

    r, v = R_PERIGEE, V_PERIGEE
    for _ in range(50):
        r, v = kepler_state(r, v, dt / 50.0, MU)

    np.testing.assert_allclose(np.asarray(r_single), np.asarray(r), rtol=0.0, atol=1.0)
    np.testing.assert_allclose(np.asarray(v_single), np.asarray(v), rtol=0.0, atol=1e-4)


@pytest.mark.parametrize("fraction", [0.6, 0.99, 2.7])
def test_eccentric_orbit_conserves_energy_and_angular_momentum(fraction):
    dt = fraction * _period(R_PERIGEE, V_PERIGEE)
    r, v = (np.asarray(x) for x in kepler_state(R_PERIGEE, V_PERIGEE, dt, MU))

    energy0 = 0.5 * np.dot(V_PERIGEE, V_PERIGEE) - MU / np.linalg.norm(R_PERIGEE)
    energy = 0.5 * np.dot(v, v) - MU / np.linalg.norm(r)
    np.testing.assert_allclose(energy, energy0, rtol=1e-9)
    np.testing.assert_allclose(np.cross(r, v), np.cross(R_PERIGEE, V_PERIGEE), rtol=1e-10)


def test_propagator_hooks_are_abstract():
    with pytest.raises(TypeError):
        _DetectingPropagator()


if __name__ == '__main__':
    unittest.main()
