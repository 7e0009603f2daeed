"""
Analytic two-body propagation with universal variables.

Everything in this module is written with jax.numpy so that it can be
differentiated with ``jax.jacfwd``; it is used both as the Keplerian
propagator and as the dynamics behind the Lambert Jacobian.
"""
import jax
import jax.numpy as jnp
from jax import lax, vmap

from lambert_bvp.constants import MU_EARTH


def kepler_state(r0: jnp.ndarray, v0: jnp.ndarray, dt: float,
                 mu: float = MU_EARTH, max_iter: int = 100) -> tuple[jnp.ndarray, jnp.ndarray]:
    """
    Propagate a two-body state by ``dt`` using the Lagrange coefficients.

    Valid for elliptic, parabolic and hyperbolic motion, forward and backward
    in time. Differentiable with respect to ``r0``, ``v0``, ``dt`` and ``mu``.

    Args:
        r0: Initial position vector [x, y, z] in m
        v0: Initial velocity vector [vx, vy, vz] in m/s
        dt: Propagation duration in s (may be negative)
        mu: Gravitational parameter in m^3/s^2
        max_iter: Number of safeguarded Newton iterations on the universal
            Kepler equation

    Returns:
        (r, v): position and velocity after ``dt``

    References:
        Vallado, D. A. (2013). Fundamentals of Astrodynamics and Applications (4th ed.).
        Algorithm 8, Section 2.3.
    """
    r0 = jnp.asarray(r0, dtype=float)
    v0 = jnp.asarray(v0, dtype=float)

    r0_mag = jnp.linalg.norm(r0)
    v0_mag = jnp.linalg.norm(v0)
    sqrt_mu = jnp.sqrt(mu)

    # Radial velocity times r0
    r0_dot_v0 = jnp.dot(r0, v0)

    # Reciprocal of the semi-major axis (negative for hyperbolic motion)
    alpha = 2.0 / r0_mag - v0_mag**2 / mu

    # Reduce elliptic motion to (-P/2, P/2]; chi grows by 2*pi/sqrt(alpha) per period
    elliptic = alpha > 1e-12 / r0_mag
    alpha_safe = jnp.where(elliptic, alpha, 1.0)
    period = 2.0 * jnp.pi / (sqrt_mu * alpha_safe**1.5)
    n_periods = lax.stop_gradient(jnp.where(elliptic, jnp.round(dt / period), 0.0))
    dt_reduced = dt - n_periods * period

    # Periapsis radius bounds |chi|: dF/dchi = r >= q
    h_vec = jnp.cross(r0, v0)
    e_vec = ((v0_mag**2 - mu / r0_mag) * r0 - r0_dot_v0 * v0) / mu
    q = jnp.dot(h_vec, h_vec) / (mu * (1.0 + jnp.linalg.norm(e_vec)))
    chi_bound = 1.01 * sqrt_mu * jnp.abs(dt_reduced) / jnp.maximum(q, 1e-12 * r0_mag)
    chi_bound = jnp.where(elliptic, jnp.minimum(chi_bound, 2.0 * jnp.pi / jnp.sqrt(alpha_safe)),
                          chi_bound)

    chi_star = lax.stop_gradient(_solve_universal_kepler(
        r0_mag, r0_dot_v0, alpha, dt_reduced, mu, chi_bound, max_iter))

    # One Newton step from the converged root carries the implicit derivatives
    f, fp = _universal_kepler(chi_star, r0_mag, r0_dot_v0, alpha, dt_reduced, mu)
    chi = chi_star - f / fp
    chi = chi + n_periods * 2.0 * jnp.pi / jnp.sqrt(alpha_safe)

    z = alpha * chi**2
    c = _stumpff_c(z)
    s = _stumpff_s(z)

    # Lagrange coefficients
    f = 1.0 - (chi**2 / r0_mag) * c
    g = dt - (chi**3 / sqrt_mu) * s

    r = f * r0 + g * v0
    r_mag = jnp.linalg.norm(r)

    fdot = (sqrt_mu / (r_mag * r0_mag)) * chi * (z * s - 1.0)
    gdot = 1.0 - (chi**2 / r_mag) * c

    v = fdot * r0 + gdot * v0

    return r, v


def propagate_ballistic(r0: jnp.ndarray, v0: jnp.ndarray, times: jnp.ndarray,
                        mu: float = MU_EARTH) -> tuple[jnp.ndarray, jnp.ndarray]:
    """
    Propagate a ballistic (Keplerian) trajectory to several times.

    Args:
        r0: Initial position vector [x, y, z] in m
        v0: Initial velocity vector [vx, vy, vz] in m/s
        times: Array of times in s; times[0] is the epoch of (r0, v0)
        mu: Gravitational parameter in m^3/s^2

    Returns:
        positions: Array of shape (n_times, 3) in m
        velocities: Array of shape (n_times, 3) in m/s
    """
    times = jnp.asarray(times, dtype=float)
    t0 = times[0]

    def propagate_single_time(t):
        return kepler_state(r0, v0, t - t0, mu)

    return vmap(propagate_single_time)(times)


def kepler_stm(r0: jnp.ndarray, v0: jnp.ndarray, dt: float,
               mu: float = MU_EARTH) -> jnp.ndarray:
    """
    6x6 state transition matrix d(r, v)(t0 + dt) / d(r, v)(t0) of two-body motion.
    """
    def flat_state(y0):
        r, v = kepler_state(y0[:3], y0[3:], dt, mu)
        return jnp.concatenate([r, v])

    y0 = jnp.concatenate([jnp.asarray(r0, dtype=float), jnp.asarray(v0, dtype=float)])
    return jax.jacfwd(flat_state)(y0)


def _initial_universal_anomaly(r0_mag, r0_dot_v0, alpha, dt, mu):
    """Starting guess for the universal anomaly (Vallado, Algorithm 8)."""
    sqrt_mu = jnp.sqrt(mu)

    chi_elliptic = sqrt_mu * dt * alpha

    # Hyperbolic guess (safeguarded so the unused branch stays finite)
    a = 1.0 / jnp.where(jnp.abs(alpha) > 1e-30, alpha, -1e-30)
    sign_dt = jnp.where(dt >= 0.0, 1.0, -1.0)
    safe_a = jnp.where(alpha < 0.0, a, -1.0)
    denom = r0_dot_v0 + sign_dt * jnp.sqrt(-mu * safe_a) * (1.0 - r0_mag * alpha)
    log_arg = jnp.maximum((-2.0 * mu * alpha * dt) / jnp.where(denom == 0.0, 1e-30, denom), 1e-10)
    chi_hyperbolic = sign_dt * jnp.sqrt(-safe_a) * jnp.log(log_arg)

    # Near-parabolic guess
    chi_parabolic = sqrt_mu * dt / r0_mag

    return jnp.where(alpha > 1e-12 / r0_mag, chi_elliptic,
                     jnp.where(alpha < -1e-12 / r0_mag, chi_hyperbolic, chi_parabolic))


def _universal_kepler(chi, r0_mag, r0_dot_v0, alpha, dt, mu):
    """Residual of the universal Kepler equation and its derivative (the radius at chi)."""
    sqrt_mu = jnp.sqrt(mu)
    z = alpha * chi**2
    c = _stumpff_c(z)
    s = _stumpff_s(z)

    f = (r0_dot_v0 / sqrt_mu) * chi**2 * c \
        + (1.0 - r0_mag * alpha) * chi**3 * s \
        + r0_mag * chi \
        - sqrt_mu * dt

    fp = (r0_dot_v0 / sqrt_mu) * chi * (1.0 - z * s) \
         + (1.0 - r0_mag * alpha) * chi**2 * c \
         + r0_mag

    return f, fp


def _solve_universal_kepler(r0_mag, r0_dot_v0, alpha, dt, mu, chi_bound, max_iter):
    """
    Solve the universal Kepler equation for chi.

    The residual is increasing in chi and vanishes at chi = 0 for dt = 0, so
    the root lies in [0, chi_bound] for dt >= 0 and in [-chi_bound, 0]
    otherwise. Newton steps leaving the current bracket are replaced by
    bisection.
    """
    forward = dt >= 0.0
    lo = jnp.where(forward, 0.0, -chi_bound)
    hi = jnp.where(forward, chi_bound, 0.0)

    guess = _initial_universal_anomaly(r0_mag, r0_dot_v0, alpha, dt, mu)
    guess = jnp.where(jnp.isfinite(guess), guess, 0.5 * (lo + hi))
    chi = jnp.clip(guess, lo, hi)

    def safeguarded_step(i, carry):
        chi, lo, hi = carry
        f, fp = _universal_kepler(chi, r0_mag, r0_dot_v0, alpha, dt, mu)
        lo = jnp.where(f < 0.0, chi, lo)
        hi = jnp.where(f > 0.0, chi, hi)
        chi_newton = chi - f / fp
        inside = (chi_newton >= lo) & (chi_newton <= hi) & jnp.isfinite(chi_newton)
        chi = jnp.where(f == 0.0, chi, jnp.where(inside, chi_newton, 0.5 * (lo + hi)))
        return chi, lo, hi

    chi, _, _ = lax.fori_loop(0, max_iter, safeguarded_step, (chi, lo, hi))
    return chi


def _stumpff_c(z):
    """
    Stumpff C function.

    C(z) = (1 - cos(sqrt(z))) / z for z > 0
    C(z) = (cosh(sqrt(-z)) - 1) / (-z) for z < 0
    C(0) = 1/2
    """
    c_series = 0.5 - z/24 + z**2/720 - z**3/40320

    small = jnp.abs(z) <= 1e-6
    z_safe = jnp.where(small, 1.0, z)
    sqrt_z = jnp.sqrt(jnp.abs(z_safe))

    c_pos = (1 - jnp.cos(sqrt_z)) / z_safe
    c_neg = (jnp.cosh(sqrt_z) - 1) / (-z_safe)

    return jnp.where(small, c_series, jnp.where(z_safe > 0, c_pos, c_neg))


def _stumpff_s(z):
    """
    Stumpff S function.

    S(z) = (sqrt(z) - sin(sqrt(z))) / (sqrt(z))^3 for z > 0
    S(z) = (sinh(sqrt(-z)) - sqrt(-z)) / (sqrt(-z))^3 for z < 0
    S(0) = 1/6
    """
    s_series = 1/6 - z/120 + z**2/5040 - z**3/362880

    small = jnp.abs(z) <= 1e-6
    z_safe = jnp.where(small, 1.0, z)
    sqrt_z = jnp.sqrt(jnp.abs(z_safe))

    s_pos = (sqrt_z - jnp.sin(sqrt_z)) / (sqrt_z**3)
    s_neg = (jnp.sinh(sqrt_z) - sqrt_z) / (sqrt_z**3)

    return jnp.where(small, s_series, jnp.where(z_safe > 0, s_pos, s_neg))
