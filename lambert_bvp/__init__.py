# Configure JAX to use double precision (64-bit floats) throughout the package
import jax
jax.config.update("jax_enable_x64", True)

from .constants import (
    # Constants
    MU_EARTH,
    MU_EARTH_EGM96,
    MU_SUN,
    J2_EARTH,
    R_EARTH,
    DAY,
    JULIAN_YEAR,
    AU,
    EPSILON,
    SAFE_MIN,
)

from .errors import (
    LambertError,
    InvalidRevolutionCountError,
    HypergeometricDomainError,
    DegenerateTransferError,
    NonChronologicalEpochsError,
    ConvergenceError,
    HouseholderConvergenceError,
    HypergeometricConvergenceError,
)

from .boundary import BoundaryConditions, BoundaryVelocities
from .settings import HouseholderSettings
from .solution import PathType, OrbitType, LambertSolution
from .spacecraft_state import SpacecraftState

from .geometry import TransferGeometry, transfer_geometry
from .hypergeometric import hyp2f1
from .householder import householder_solve

from .analytic import (
    # Two-body propagation
    kepler_state,
    kepler_stm,
    propagate_ballistic,
)

from .odes import (
    # Force models and ODE functions
    point_mass_acceleration,
    j2_acceleration,
    ballistic_ode,
    variational_ode,
)

from .propagation import (
    Propagator,
    KeplerianPropagator,
    NumericalPropagator,
    DateDetector,
    RadiusDetector,
)

from .solver import LambertSolver

from .corrector import (
    LambertDifferentialCorrector,
    CorrectionFailure,
    Converged,
    NotConverged,
)

from .iod import IodLambert

__all__ = [
    # Constants
    "MU_EARTH",
    "MU_EARTH_EGM96",
    "MU_SUN",
    "J2_EARTH",
    "R_EARTH",
    "DAY",
    "JULIAN_YEAR",
    "AU",
    "EPSILON",
    "SAFE_MIN",

    # Errors
    "LambertError",
    "InvalidRevolutionCountError",
    "HypergeometricDomainError",
    "DegenerateTransferError",
    "NonChronologicalEpochsError",
    "ConvergenceError",
    "HouseholderConvergenceError",
    "HypergeometricConvergenceError",

    # Data model
    "BoundaryConditions",
    "BoundaryVelocities",
    "HouseholderSettings",
    "PathType",
    "OrbitType",
    "LambertSolution",
    "SpacecraftState",

    # Numerical kernels
    "TransferGeometry",
    "transfer_geometry",
    "hyp2f1",
    "householder_solve",

    # Two-body propagation
    "kepler_state",
    "kepler_stm",
    "propagate_ballistic",

    # Force models and ODE functions
    "point_mass_acceleration",
    "j2_acceleration",
    "ballistic_ode",
    "variational_ode",

    # Propagators
    "Propagator",
    "KeplerianPropagator",
    "NumericalPropagator",
    "DateDetector",
    "RadiusDetector",

    # Solvers
    "LambertSolver",
    "LambertDifferentialCorrector",
    "CorrectionFailure",
    "Converged",
    "NotConverged",
    "IodLambert",
]
