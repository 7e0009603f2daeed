from typing import Callable, Sequence

import jax
import jax.numpy as jnp

# acceleration(t, r, v) -> a
Acceleration = Callable[[float, jnp.ndarray, jnp.ndarray], jnp.ndarray]


def point_mass_acceleration(mu: float) -> Acceleration:
    """
    Newtonian attraction of a point mass.

    Args:
        mu: gravitational parameter (m^3/s^2)
    """
    def acceleration(t, r, v):
        r_mag = jnp.linalg.norm(r)
        return -mu * r / r_mag**3

    return acceleration


def j2_acceleration(mu: float, j2: float, r_eq: float) -> Acceleration:
    """
    Perturbation due to the second zonal harmonic of the central body.

    The body's polar axis is assumed aligned with the z axis of the
    integration frame.

    Args:
        mu: gravitational parameter (m^3/s^2)
        j2: unnormalized J2 coefficient
        r_eq: equatorial radius (m)
    """
    def acceleration(t, r, v):
        x, y, z = r[0], r[1], r[2]
        r2 = jnp.dot(r, r)
        r_mag = jnp.sqrt(r2)
        coeff = -1.5 * j2 * mu * r_eq**2 / r_mag**5
        z2_r2 = 5.0 * z**2 / r2
        return coeff * jnp.array([
            x * (1.0 - z2_r2),
            y * (1.0 - z2_r2),
            z * (3.0 - z2_r2),
        ])

    return acceleration


def total_acceleration(force_models: Sequence[Acceleration]) -> Acceleration:
    """Sum of the accelerations of several force models."""
    def acceleration(t, r, v):
        a = jnp.zeros(3)
        for model in force_models:
            a = a + model(t, r, v)
        return a

    return acceleration


def ballistic_ode(t: float, y: jnp.ndarray, args) -> jnp.ndarray:
    """
    Derivatives of the Cartesian state.
    y = [x, y, z, vx, vy, vz]
    args = (acceleration,)
    """
    acceleration = args[0]
    r = y[:3]
    v = y[3:6]
    return jnp.concatenate([v, acceleration(t, r, v)])


def variational_ode(t: float, y: jnp.ndarray, args) -> jnp.ndarray:
    """
    Derivatives of the Cartesian state augmented with its state transition matrix.

    y = [x, y, z, vx, vy, vz, phi_11, phi_12, ..., phi_66] (row-major 6x6)
    args = (acceleration,)

    The STM obeys dPhi/dt = A(t) Phi with A the Jacobian of the state
    derivative, obtained here by forward-mode differentiation of the
    acceleration.
    """
    acceleration = args[0]
    state = y[:6]
    phi = jnp.reshape(y[6:], (6, 6))

    def state_derivative(s):
        return jnp.concatenate([s[3:6], acceleration(t, s[:3], s[3:6])])

    a_matrix = jax.jacfwd(state_derivative)(state)
    phi_dot = a_matrix @ phi

    return jnp.concatenate([state_derivative(state), jnp.ravel(phi_dot)])
