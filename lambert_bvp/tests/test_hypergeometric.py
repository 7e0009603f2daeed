import math

import numpy as np
import pytest

from lambert_bvp import HypergeometricConvergenceError, HypergeometricDomainError, hyp2f1
from lambert_bvp.hypergeometric import hyp2f1_lambert


@pytest.mark.parametrize("z", [-0.9, -0.5, -0.01, 0.01, 0.3, 0.7])
def test_logarithm_closed_form(z):
    # 2F1(1, 1; 2; z) = -ln(1 - z) / z
    np.testing.assert_allclose(hyp2f1(1.0, 1.0, 2.0, z), -math.log(1.0 - z) / z, rtol=1e-12)


@pytest.mark.parametrize("z", [-0.6, 0.2, 0.5])
def test_binomial_closed_form(z):
    # 2F1(a, b; b; z) = (1 - z)^-a
    np.testing.assert_allclose(hyp2f1(2.0, 1.5, 1.5, z), (1.0 - z) ** -2.0, rtol=1e-12)


def test_zero_argument():
    assert hyp2f1(3.0, 1.0, 2.5, 0.0) == 1.0


def test_lambert_instance_series_coefficients():
    # 2F1(3, 1; 5/2; z) = 1 + 6/5 z + 48/35 z^2 + ...
    z = 1e-3
    expected = 1.0 + 1.2 * z + 48.0 / 35.0 * z ** 2 + 32.0 / 21.0 * z ** 3
    np.testing.assert_allclose(hyp2f1_lambert(z), expected, rtol=1e-11)


@pytest.mark.parametrize("z", [1.0, -1.0, 1.5])
def test_argument_outside_unit_disk(z):
    with pytest.raises(HypergeometricDomainError):
        hyp2f1(3.0, 1.0, 2.5, z)


@pytest.mark.parametrize("c", [0.0, -1.0, 1e-17])
def test_non_positive_c(c):
    with pytest.raises(ValueError):
        hyp2f1(3.0, 1.0, c, 0.5)


def test_non_convergence_reports_budget():
    with pytest.raises(HypergeometricConvergenceError) as excinfo:
        hyp2f1(3.0, 1.0, 2.5, 0.9, max_iter=5)

    assert excinfo.value.max_iterations == 5
    assert isinstance(excinfo.value, ArithmeticError)
