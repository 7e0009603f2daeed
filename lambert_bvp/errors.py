"""
Exceptions raised by the Lambert solver.

Input contract violations derive from ``ValueError`` and numerical
non-convergence from ``ArithmeticError`` so callers can catch either family
without importing this module.
"""


class LambertError(Exception):
    """Base class for all errors raised by :mod:`lambert_bvp`."""


class InvalidRevolutionCountError(LambertError, ValueError):
    """Raised when the requested number of revolutions is not admissible."""

    def __init__(self, n_rev: int, n_max: int):
        super().__init__(
            f"Invalid number of complete revolutions {n_rev}: "
            f"admissible values for these boundary conditions are 0 to {n_max}"
        )
        self.n_rev = n_rev
        self.n_max = n_max


class HypergeometricDomainError(LambertError, ValueError):
    """Raised when the hypergeometric series is evaluated outside its domain."""


class DegenerateTransferError(LambertError, ValueError):
    """Raised for boundary conditions with no transfer: zero time of flight or coincident positions."""


class NonChronologicalEpochsError(LambertError, ValueError):
    """Raised when observation epochs are not in chronological order."""

    def __init__(self, t1: float, t2: float):
        super().__init__(
            f"Epochs are not in chronological order: {t1} is {t1 - t2} s after {t2}"
        )
        self.t1 = t1
        self.t2 = t2


class ConvergenceError(LambertError, ArithmeticError):
    """Raised when an iterative numerical method exhausts its iteration budget."""

    what = "Iteration"

    def __init__(self, max_iterations: int):
        super().__init__(f"{self.what} did not converge after {max_iterations} iterations")
        self.max_iterations = max_iterations


class HouseholderConvergenceError(ConvergenceError):
    """The Householder iteration on the time-of-flight equation did not converge."""

    what = "Householder solver for the Lambert problem"


class HypergeometricConvergenceError(ConvergenceError):
    """The 2F1 hypergeometric series did not converge."""

    what = "Hypergeometric function 2F1"
