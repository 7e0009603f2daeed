"""
Householder iteration on the dimensionless Lambert time-of-flight equation.

All functions here are pure: they take the dimensionless parameters
(tau, sigma), the number of revolutions and the tolerances explicitly.

References:
    Izzo, D. (2015). Revisiting Lambert's problem. Celestial Mechanics and
    Dynamical Astronomy, 121(1), 1-15. https://arxiv.org/abs/1403.2705
"""
import math
from typing import Tuple

from lambert_bvp.errors import HouseholderConvergenceError
from lambert_bvp.hypergeometric import hyp2f1_lambert
from lambert_bvp.settings import HouseholderSettings

# band around x^2 = 1 where the series form of the time of flight is used
SERIES_X_MIN = math.sqrt(0.6)
SERIES_X_MAX = math.sqrt(1.4)


def calculate_y(x: float, sigma: float) -> float:
    """y = sqrt(1 - sigma^2 (1 - x^2))."""
    return math.sqrt(1.0 - sigma * sigma * (1.0 - x * x))


def initial_guess_x(tau: float, sigma: float, n_rev: int, low_path: bool) -> float:
    """
    Starting point of the Householder iteration.

    For zero revolutions the guess depends on where tau sits relative to the
    minimum-energy (tau0) and parabolic (tau1) times. For multi-revolution
    transfers the two asymptotic guesses bracket the low and high branches.
    """
    if n_rev == 0:
        tau0 = math.acos(sigma) + sigma * math.sqrt(1.0 - sigma * sigma)
        tau1 = 2.0 * (1.0 - sigma ** 3) / 3.0
        if tau >= tau0:
            return (tau0 / tau) ** (2.0 / 3.0) - 1.0
        if tau < tau1:
            return 2.5 * tau1 / tau * (tau1 - tau) / (1.0 - sigma ** 5) + 1.0
        return math.exp(math.log(tau / tau0) / math.log(tau1 / tau0) * math.log(2.0)) - 1.0

    ql = ((n_rev * math.pi + math.pi) / (8.0 * tau)) ** (2.0 / 3.0)
    qr = ((8.0 * tau) / (n_rev * math.pi)) ** (2.0 / 3.0)
    x0l = (ql - 1.0) / (ql + 1.0)
    x0r = (qr - 1.0) / (qr + 1.0)
    return max(x0l, x0r) if low_path else min(x0l, x0r)


def calculate_psi(x: float, y: float, sigma: float) -> float:
    if -1.0 <= x < 1.0:
        return math.acos(max(-1.0, min(1.0, x * y + sigma * (1.0 - x * x))))
    if x > 1.0:
        return math.asinh((y - x * sigma) * math.sqrt(x * x - 1.0))
    return 0.0


def tof_residual(x: float, y: float, n_rev: int, tau: float, sigma: float) -> float:
    """
    Dimensionless time of flight at x minus the target tau.

    Near x = 1 (zero revolutions only) the direct expression suffers from
    cancellation, so the hypergeometric form is used instead.
    """
    if n_rev == 0 and SERIES_X_MIN < x < SERIES_X_MAX:
        eta = y - sigma * x
        s1 = (1.0 - sigma - x * eta) / 2.0
        q = 4.0 / 3.0 * hyp2f1_lambert(s1)
        return (eta ** 3 * q + 4.0 * sigma * eta) / 2.0 - tau
    psi = calculate_psi(x, y, sigma)
    one_minus_x2 = 1.0 - x * x
    return ((psi + n_rev * math.pi) / math.sqrt(abs(one_minus_x2)) - x + sigma * y) / one_minus_x2 - tau


def tof_derivatives(x: float, y: float, tof: float, sigma: float) -> Tuple[float, float, float]:
    """
    First three derivatives of the time of flight with respect to x.

    Args:
        tof: Dimensionless time of flight at x (residual plus tau)
    """
    one_minus_x2 = 1.0 - x * x
    d1 = (3.0 * tof * x - 2.0 + 2.0 * sigma ** 3 * (x / y)) / one_minus_x2
    d2 = (3.0 * tof + 5.0 * x * d1 + 2.0 * (1.0 - sigma * sigma) * (sigma / y) ** 3) / one_minus_x2
    d3 = (7.0 * x * d2 + 8.0 * d1 - 6.0 * (1.0 - sigma * sigma) * (sigma / y) ** 5 * x) / one_minus_x2
    return d1, d2, d3


def householder_solve(x0: float, tau: float, sigma: float, n_rev: int,
                      settings: HouseholderSettings) -> float:
    """
    Solve the time-of-flight equation for x with a fourth-order Householder iteration.

    Args:
        x0: Initial guess
        tau: Target dimensionless time of flight
        sigma: Shape parameter
        n_rev: Number of complete revolutions
        settings: Iteration budget and tolerances

    Returns:
        The converged value of x

    Raises:
        HouseholderConvergenceError: if the step does not fall below
            ``rtol * |x| + atol`` within ``settings.max_iterations``
    """
    x = x0
    for _ in range(settings.max_iterations):
        y = calculate_y(x, sigma)
        f0 = tof_residual(x, y, n_rev, tau, sigma)
        f1, f2, f3 = tof_derivatives(x, y, f0 + tau, sigma)

        numerator = f1 * f1 - f0 * f2 / 2.0
        denominator = f1 * (f1 * f1 - f0 * f2) + f3 * f0 * f0 / 6.0
        x_new = x - f0 * (numerator / denominator)

        if abs(x_new - x) < settings.rtol * abs(x) + settings.atol:
            return x_new
        x = x_new
    raise HouseholderConvergenceError(settings.max_iterations)


def reconstruct_vr_vt(x: float, y: float, r1: float, r2: float, sigma: float,
                      gamma: float, rho: float, zeta: float) -> Tuple[float, float, float, float]:
    """
    Radial and transverse velocity components at both ends.

    Returns:
        (vr1, vt1, vr2, vt2) in m/s
    """
    vr1 = gamma * ((sigma * y - x) - rho * (sigma * y + x)) / r1
    vr2 = -gamma * ((sigma * y - x) + rho * (sigma * y + x)) / r2
    vt1 = gamma * zeta * (y + sigma * x) / r1
    vt2 = gamma * zeta * (y + sigma * x) / r2
    return vr1, vt1, vr2, vt2
