"""Linear (extended) Kalman filter in covariance form."""
import numpy as np
from scipy import linalg
from .batch import run_batch
from ._common import (NumericalPreconditionError, check_options,
                      check_positive_semidefinite, cholesky_lower)


class CovarianceRecursion:
    """Kalman filter recursion operating on mean and covariance.

    Parameters
    ----------
    problem : BatchProblem
        Problem definition.
    """
    name = "LKF"

    def __init__(self, problem):
        check_positive_semidefinite(problem.P0, "Initial covariance")
        check_positive_semidefinite(problem.Q, "Process noise covariance")
        cholesky_lower(problem.R, "Measurement noise covariance")
        self.problem = problem
        n_states = problem.n_states
        self.history_fields = [('X', (n_states,)), ('P', (n_states, n_states))]

    def initialize(self, X, P):
        return X, P

    def propagate(self, state, X_pred, F, G, k):
        _, P = state
        return X_pred, F @ P @ F.T + G @ self.problem.Q @ G.T

    def update(self, state, X_pred, k):
        X, P = state
        Z_pred, H = self.problem.h(k + 1, X, with_jacobian=True)
        n_meas = self.problem.n_meas
        H = np.asarray(H, dtype=float).reshape(n_meas, -1)
        nu = self.problem.Z[k] - np.asarray(Z_pred, dtype=float).reshape(n_meas)
        S = H @ P @ H.T + self.problem.R
        try:
            S_factor = linalg.cho_factor(S)
        except linalg.LinAlgError as error:
            raise NumericalPreconditionError(
                "Innovation covariance is not positive definite", k + 1) from error
        K = linalg.cho_solve(S_factor, H @ P).T
        eta = np.dot(nu, linalg.cho_solve(S_factor, nu))
        return (X + K @ nu, P - K @ S @ K.T), eta

    def readout(self, state):
        X, P = state
        return {'X': X, 'P': P}


def run_lkf(problem, n_rk=10, start_epoch=0):
    """Run linear (extended) Kalman filter.

    The classical algorithm with covariance propagation is implemented. At each
    sample the dynamics are linearized at the previous estimate and the measurement
    model at the prior estimate, which makes it an Extended Kalman Filter for
    nonlinear problems. See [1]_ for the details.

    Parameters
    ----------
    problem : BatchProblem
        Problem definition. The process noise covariance might be positive
        semi-definite.
    n_rk : int, optional
        Number of Runge-Kutta substeps to discretize continuous dynamics over each
        sample interval, must be at least 5. Default is 10.
    start_epoch : int, optional
        Sample index at which `problem.X0` and `problem.P0` are set. The estimates
        before this sample are not computed and set to NaN. Default is 0.

    Returns
    -------
    Bunch with the following fields:

        X : ndarray, shape (n_samples + 1, n_states)
            State estimates.
        P : ndarray, shape (n_samples + 1, n_states, n_states)
            Error covariance estimates.
        eta : ndarray, shape (n_samples,)
            Normalized squared innovation at samples ``1, ..., n_samples``.

    References
    ----------
    .. [1] Y. Bar-Shalom, X. R. Li, T. Kirubarajan, "Estimation with Applications to
       Tracking and Navigation"
    """
    check_options(n_rk, start_epoch, problem.n_samples)
    return run_batch(problem, CovarianceRecursion(problem), n_rk, start_epoch)
