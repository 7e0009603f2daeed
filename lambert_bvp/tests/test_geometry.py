import math
import unittest

import numpy as np
import pytest

from lambert_bvp import (
    MU_EARTH,
    MU_EARTH_EGM96,
    BoundaryConditions,
    DegenerateTransferError,
    OrbitType,
    PathType,
    transfer_geometry,
)
from lambert_bvp.geometry import minimum_energy_tau, parabolic_tau


class TestTransferGeometry(unittest.TestCase):

    def setUp(self):
        self.bc = BoundaryConditions(0.0, [7.0e6, 0.0, 0.0], 3600.0, [0.0, 7.0e6, 0.0])

    def test_posigrade_quarter_transfer(self):
        geometry = transfer_geometry(MU_EARTH_EGM96, True, self.bc)

        self.assertGreater(geometry.sigma, 0.0)
        self.assertAlmostEqual(geometry.sigma, math.sqrt(1.0 - math.sqrt(2.0) / (1.0 + math.sqrt(2.0) / 2.0)),
                               places=12)
        np.testing.assert_allclose(geometry.it1, [0.0, 1.0, 0.0], atol=1e-15)
        np.testing.assert_allclose(geometry.it2, [-1.0, 0.0, 0.0], atol=1e-15)
        self.assertEqual(geometry.r1, 7.0e6)
        self.assertEqual(geometry.rho, 0.0)
        self.assertEqual(geometry.zeta, 1.0)
        self.assertEqual(geometry.orbit_type, OrbitType.ELLIPTIC)

    def test_retrograde_flips_sigma_and_transverse_vectors(self):
        posigrade = transfer_geometry(MU_EARTH_EGM96, True, self.bc)
        retrograde = transfer_geometry(MU_EARTH_EGM96, False, self.bc)

        self.assertEqual(retrograde.sigma, -posigrade.sigma)
        np.testing.assert_array_equal(retrograde.it1, -posigrade.it1)
        np.testing.assert_array_equal(retrograde.it2, -posigrade.it2)
        self.assertEqual(retrograde.tau, posigrade.tau)

    def test_negative_angular_momentum(self):
        bc = BoundaryConditions(0.0, [7.0e6, 0.0, 0.0], 3600.0, [0.0, -7.0e6, 0.0])

        geometry = transfer_geometry(MU_EARTH_EGM96, True, bc)

        self.assertLess(geometry.sigma, 0.0)
        np.testing.assert_allclose(geometry.it1, [0.0, 1.0, 0.0], atol=1e-15)

    def test_short_time_of_flight_is_hyperbolic(self):
        bc = BoundaryConditions(0.0, [7.0e6, 0.0, 0.0], 60.0, [0.0, 7.0e6, 0.0])

        geometry = transfer_geometry(MU_EARTH_EGM96, True, bc)

        self.assertEqual(geometry.orbit_type, OrbitType.HYPERBOLIC)
        self.assertEqual(geometry.n_max, 0)
        self.assertEqual(geometry.shortest_path_type, PathType.LOW_PATH)

    def test_long_time_of_flight_is_high_path(self):
        geometry = transfer_geometry(MU_EARTH_EGM96, True, self.bc)

        self.assertGreater(geometry.tau, geometry.tau_me)
        self.assertEqual(geometry.shortest_path_type, PathType.HIGH_PATH)

    def test_maximum_revolutions(self):
        p1 = np.array([7231.58074563487, 218.02523761425, 11.79251215952]) * 1000.0
        p2 = np.array([7357.06485698842, 253.55724281562, 38.81222241557]) * 1000.0
        bc = BoundaryConditions(0.0, p1, 12300.0, p2)

        geometry = transfer_geometry(MU_EARTH, True, bc)

        self.assertEqual(geometry.n_max, 5)

    def test_backward_time_of_flight_gives_negative_tau(self):
        geometry = transfer_geometry(MU_EARTH_EGM96, True, self.bc.reversed())

        self.assertLess(geometry.tau, 0.0)


@pytest.mark.parametrize("p1, t2, p2", [
    ([7.0e6, 0.0, 0.0], 0.0, [0.0, 7.0e6, 0.0]),
    ([7.0e6, 0.0, 0.0], 600.0, [7.0e6, 0.0, 0.0]),
    ([0.0, 0.0, 0.0], 600.0, [0.0, 7.0e6, 0.0]),
])
def test_degenerate_boundary_conditions(p1, t2, p2):
    with pytest.raises(DegenerateTransferError):
        transfer_geometry(MU_EARTH_EGM96, True, BoundaryConditions(0.0, p1, t2, p2))


@pytest.mark.parametrize("sigma", [-0.9, -0.3, 0.0, 0.4, 0.95])
def test_reference_times_are_ordered(sigma):
    assert parabolic_tau(sigma) < minimum_energy_tau(sigma)


def test_reference_times_at_zero_sigma():
    assert minimum_energy_tau(0.0) == pytest.approx(math.pi / 2.0)
    assert parabolic_tau(0.0) == pytest.approx(2.0 / 3.0)
