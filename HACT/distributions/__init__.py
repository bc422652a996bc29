from HACT.distributions.kfe import (
    UnverifiedSolverError,
    solve_kfe,
    solve_kfe_iterative,
)
from HACT.distributions.markov import (
    IncomeMarkovProcess,
    compute_stationary_income_distribution,
    make_income_switching_matrix,
)

__all__ = [
    "UnverifiedSolverError",
    "solve_kfe",
    "solve_kfe_iterative",
    "IncomeMarkovProcess",
    "compute_stationary_income_distribution",
    "make_income_switching_matrix",
]
