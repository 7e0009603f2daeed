"""
Physical and numerical constants for the Lambert boundary value solver.

Gravitational parameters are expressed in SI units (m^3/s^2) and all
distances handled by the package are in meters, times in seconds.
"""

import sys

# Gravitational parameters
MU_EARTH = 398600435507000.0  # m^3/s^2 (JPL DE430 Earth)
MU_EARTH_EGM96 = 3.986004415e14  # m^3/s^2 (EGM96)
MU_SUN = 1.32712440018e20  # m^3/s^2

# Earth oblateness (EGM96, unnormalized)
J2_EARTH = 1.08262668355315e-3
R_EARTH = 6378136.3  # m, equatorial radius

# Time and distance units
DAY = 86400.0  # seconds per day
JULIAN_YEAR = 365.25 * DAY  # seconds per Julian year
AU = 149597870691.0  # m per astronomical unit

# Numerical tolerances
EPSILON = 2.0 ** -53  # largest relative gap between adjacent doubles / 2
SAFE_MIN = sys.float_info.min  # smallest positive normal double

# Householder solver defaults
HOUSEHOLDER_MAX_ITERATIONS = 2000
HOUSEHOLDER_ATOL = 1.0e-5
HOUSEHOLDER_RTOL = 1.0e-7

# Hypergeometric series budget used near x^2 = 1
HYPERGEOMETRIC_MAX_ITERATIONS = 30000

# Differential corrector defaults
CORRECTOR_MAX_ITERATIONS = 10
CORRECTOR_POSITION_TOLERANCE = 1.0e-4  # m
CORRECTOR_INITIAL_MASS = 1000.0  # kg
CORRECTOR_STM_NAME = "stm"
