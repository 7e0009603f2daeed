"""
Gaussian hypergeometric function evaluated by its raw power series.
"""
from lambert_bvp.constants import EPSILON, HYPERGEOMETRIC_MAX_ITERATIONS
from lambert_bvp.errors import HypergeometricDomainError, HypergeometricConvergenceError


def hyp2f1(a: float, b: float, c: float, z: float,
           eps: float = EPSILON,
           max_iter: int = HYPERGEOMETRIC_MAX_ITERATIONS) -> float:
    """
    Evaluate the Gaussian hypergeometric function 2F1(a, b; c; z).

    The series is summed term by term, so it is only valid for |z| < 1 and
    c > 0. Summation stops once the ratio of the last three terms to their
    partial sums all fall below ``eps``, which avoids stopping early on a
    single small term.

    Args:
        a, b, c: Parameters of the function (c must be positive)
        z: Argument, |z| < 1
        eps: Convergence threshold on the term / partial-sum ratio
        max_iter: Maximum number of series terms

    Returns:
        Value of 2F1(a, b; c; z)

    Raises:
        HypergeometricDomainError: if |z| >= 1 or c is not strictly positive
        HypergeometricConvergenceError: if the series does not converge
            within ``max_iter`` terms

    References:
        Pearson, J. (2009). Computation of Hypergeometric Functions.
        MSc thesis, University of Oxford. Section 4.2, Taylor series method (a).
    """
    if abs(z) >= 1.0:
        raise HypergeometricDomainError(f"abs(z) must be < 1, got z = {z}")
    if c <= 0.0 or abs(c) < EPSILON:
        raise HypergeometricDomainError(f"c must be positive and non-zero, got c = {c}")

    term = 1.0
    partial_sum = term

    # previous two terms and partial sums
    prev_term1 = prev_term2 = 0.0
    prev_sum1 = prev_sum2 = 0.0

    for j in range(1, max_iter):
        term *= (a + j - 1) * (b + j - 1) / ((c + j - 1) * j) * z
        new_sum = partial_sum + term

        if j >= 3:
            ratio1 = abs(term / partial_sum)
            ratio2 = abs(prev_term1 / prev_sum1)
            ratio3 = abs(prev_term2 / prev_sum2)
            if ratio1 < eps and ratio2 < eps and ratio3 < eps:
                return new_sum

        prev_term2, prev_term1 = prev_term1, term
        prev_sum2, prev_sum1 = prev_sum1, partial_sum
        partial_sum = new_sum

    raise HypergeometricConvergenceError(max_iter)


def hyp2f1_lambert(z: float) -> float:
    """2F1(3, 1; 5/2; z), the only instance needed by the time-of-flight equation."""
    return hyp2f1(3.0, 1.0, 2.5, z)
