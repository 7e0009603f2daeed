"""
Configuration models for the iterative solvers.
"""
from pydantic import BaseModel, ConfigDict, Field

from lambert_bvp.constants import (
    HOUSEHOLDER_MAX_ITERATIONS,
    HOUSEHOLDER_ATOL,
    HOUSEHOLDER_RTOL,
)


class HouseholderSettings(BaseModel):
    """
    Parameters of the Householder iteration on the time-of-flight equation.

    The iteration stops when ``|x_new - x| < rtol * |x| + atol``.
    """
    model_config = ConfigDict(frozen=True)

    max_iterations: int = Field(
        HOUSEHOLDER_MAX_ITERATIONS,
        gt=0,
        description="Maximum number of Householder iterations"
    )
    atol: float = Field(
        HOUSEHOLDER_ATOL,
        gt=0.0,
        description="Absolute tolerance on the step in x"
    )
    rtol: float = Field(
        HOUSEHOLDER_RTOL,
        ge=0.0,
        description="Relative tolerance on the step in x"
    )
