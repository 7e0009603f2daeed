"""
Transfer geometry and dimensionless variables of a Lambert problem.

Follows the nondimensionalization of Izzo (2015): the chord and the
semi-perimeter of the transfer triangle define the shape parameter sigma
(lambda in Izzo's paper) and the time of flight is scaled into tau.
"""
import math
from typing import NamedTuple

import numpy as np

from lambert_bvp.boundary import BoundaryConditions
from lambert_bvp.constants import EPSILON
from lambert_bvp.errors import DegenerateTransferError
from lambert_bvp.solution import OrbitType, PathType


class TransferGeometry(NamedTuple):
    """
    Immutable working geometry of a single Lambert request.

    Attributes:
        ir1, ir2: Radial unit vectors at departure and arrival
        it1, it2: Transverse unit vectors, oriented with the transfer direction
        r1, r2: Radii at departure and arrival (m)
        sigma: Shape parameter in (-1, 1)
        tau: Dimensionless time of flight
        tau_me: Dimensionless time of flight of the minimum-energy transfer
        rho: (r1 - r2) / chord
        zeta: sqrt(1 - rho^2)
        gamma: sqrt(mu * s / 2), velocity scale (m^2/s)
        orbit_type: Conic type of the zero-revolution transfer
        shortest_path_type: Branch of the zero-revolution transfer
        n_max: Largest admissible number of complete revolutions
    """
    ir1: np.ndarray
    ir2: np.ndarray
    it1: np.ndarray
    it2: np.ndarray
    r1: float
    r2: float
    sigma: float
    tau: float
    tau_me: float
    rho: float
    zeta: float
    gamma: float
    orbit_type: OrbitType
    shortest_path_type: PathType
    n_max: int


def minimum_energy_tau(sigma: float) -> float:
    """Dimensionless time of flight of the minimum-energy transfer."""
    return math.acos(sigma) + sigma * math.sqrt(1.0 - sigma * sigma)


def parabolic_tau(sigma: float) -> float:
    """Dimensionless time of flight of the parabolic transfer."""
    return 2.0 / 3.0 * (1.0 - sigma ** 3)


def transfer_geometry(mu: float, posigrade: bool,
                      boundary_conditions: BoundaryConditions) -> TransferGeometry:
    """
    Compute the geometry and auxiliary variables for a Lambert request.

    Args:
        mu: Gravitational parameter (m^3/s^2)
        posigrade: Direction of motion
        boundary_conditions: Epochs and positions at both ends

    Returns:
        The working geometry. ``tau`` is negative when the terminal epoch
        precedes the initial one.

    Raises:
        DegenerateTransferError: if the time of flight is zero, or a position
            is at the origin or both positions coincide
    """
    p1 = boundary_conditions.initial_position
    p2 = boundary_conditions.terminal_position
    r1 = float(np.linalg.norm(p1))
    r2 = float(np.linalg.norm(p2))
    time_diff = boundary_conditions.time_of_flight
    distance = float(np.linalg.norm(p2 - p1))
    if time_diff == 0.0:
        raise DegenerateTransferError("Time of flight must be non-zero")
    if r1 == 0.0 or r2 == 0.0 or distance == 0.0:
        raise DegenerateTransferError(
            f"Positions must be distinct and away from the origin, got {p1} and {p2}")
    s = (r1 + r2 + distance) / 2.0

    ir1 = p1 / r1
    ir2 = p2 / r2
    ih = np.cross(ir1, ir2)
    ih = ih / np.linalg.norm(ih)

    sigma = math.sqrt(1.0 - min(1.0, distance / s))
    if ih[2] < 0.0:
        sigma = -sigma
        it1 = np.cross(ir1, ih)
        it2 = np.cross(ir2, ih)
    else:
        it1 = np.cross(ih, ir1)
        it2 = np.cross(ih, ir2)
    if not posigrade:
        sigma = -sigma
        it1 = -it1
        it2 = -it2

    tau_me = minimum_energy_tau(sigma)
    tau = math.sqrt(2.0 * mu / s ** 3) * time_diff
    gamma = math.sqrt(mu * s / 2.0)
    rho = (r1 - r2) / distance
    # zeta is Izzo's sigma; our sigma is Izzo's lambda
    zeta = math.sqrt(1.0 - rho * rho)

    diff_tau_parabolic = tau - parabolic_tau(sigma)
    if abs(diff_tau_parabolic) <= EPSILON:
        orbit_type = OrbitType.PARABOLIC
    elif diff_tau_parabolic > 0.0:
        orbit_type = OrbitType.ELLIPTIC
    else:
        orbit_type = OrbitType.HYPERBOLIC

    n_max = int(math.floor(tau / math.pi)) if orbit_type is OrbitType.ELLIPTIC else 0

    if abs(tau_me - tau) <= EPSILON:
        shortest_path_type = PathType.MIN_ENERGY_PATH
    elif tau < tau_me:
        shortest_path_type = PathType.LOW_PATH
    else:
        shortest_path_type = PathType.HIGH_PATH

    return TransferGeometry(
        ir1=ir1, ir2=ir2, it1=it1, it2=it2,
        r1=r1, r2=r2,
        sigma=sigma, tau=tau, tau_me=tau_me,
        rho=rho, zeta=zeta, gamma=gamma,
        orbit_type=orbit_type,
        shortest_path_type=shortest_path_type,
        n_max=n_max,
    )
