"""Extended square-root information filter."""
from dataclasses import dataclass
import numpy as np
from scipy import linalg
from .batch import run_batch
from ._common import NumericalPreconditionError, check_options, cholesky_lower


@dataclass(frozen=True)
class SquareRootNoise:
    """Square-root information form of process and measurement noise.

    Parameters
    ----------
    R_vv : ndarray, shape (n_noises, n_noises)
        Process noise square-root information matrix, ``R_vv.T @ R_vv = inv(Q)``.
    R_a : ndarray, shape (n_meas, n_meas)
        Upper triangular Cholesky factor of the measurement noise covariance,
        ``R_a.T @ R_a = R``.
    R_a_inv_T : ndarray, shape (n_meas, n_meas)
        Inverse of ``R_a.T``. It transforms measurement errors to have identity
        covariance.
    """
    R_vv : np.ndarray
    R_a : np.ndarray
    R_a_inv_T : np.ndarray

    @classmethod
    def from_covariances(cls, Q, R):
        L_Q = cholesky_lower(Q, "Process noise covariance")
        L_R = cholesky_lower(R, "Measurement noise covariance")
        R_vv = linalg.solve_triangular(L_Q, np.identity(len(Q)), lower=True)
        R_a_inv_T = linalg.solve_triangular(L_R, np.identity(len(R)), lower=True)
        return cls(R_vv, L_R.T, R_a_inv_T)

    def whiten(self, Z):
        """Transform measurements (stacked in rows) to the whitened space."""
        return np.asarray(Z) @ self.R_a_inv_T.T

    def unwhiten(self, Z_a):
        """Transform whitened measurements back to the original space."""
        return np.asarray(Z_a) @ self.R_a


class InformationRecursion:
    """Square-root information recursion operating on ``R_xx`` and ``zeta``.

    The state estimate is represented by the upper triangular information matrix
    ``R_xx`` and the information vector ``zeta = R_xx @ X``. The error covariance is
    ``inv(R_xx.T @ R_xx)``.

    All the noise transformations are computed on construction, and errors
    about not positive definite matrices are raised at this point.

    Parameters
    ----------
    problem : BatchProblem
        Problem definition.
    """
    name = "ESRIF"

    def __init__(self, problem):
        self.problem = problem
        self.noise = SquareRootNoise.from_covariances(problem.Q, problem.R)
        self.Z_a = self.noise.whiten(problem.Z)
        cholesky_lower(problem.P0, "Initial covariance")
        n_states = problem.n_states
        self.history_fields = [('X', (n_states,)), ('P', (n_states, n_states)),
                               ('R_xx', (n_states, n_states)), ('zeta', (n_states,))]

    def initialize(self, X, P):
        L = cholesky_lower(P, "Initial covariance")
        # inv(L) is lower triangular, QR brings it to upper triangular form.
        R_xx, = linalg.qr(linalg.solve_triangular(L, np.identity(len(P)), lower=True),
                          mode='r')
        return R_xx, R_xx @ X

    def propagate(self, state, X_pred, F, G, k):
        R_xx, _ = state
        n_states = self.problem.n_states
        n_noises = self.problem.n_noises
        try:
            RF = linalg.solve(F.T, R_xx.T).T
        except linalg.LinAlgError as error:
            raise NumericalPreconditionError("Transition matrix is singular",
                                             k) from error

        A = np.block([
            [self.noise.R_vv, np.zeros((n_noises, n_states))],
            [-RF @ G, RF]
        ])
        b = np.hstack((np.zeros(n_noises), RF @ X_pred))
        T, U = linalg.qr(A)
        b = T.T @ b
        return U[n_noises:, n_noises:], b[n_noises:]

    def update(self, state, X_pred, k):
        R_xx, zeta = state
        n_states = self.problem.n_states
        n_meas = self.problem.n_meas
        Z_pred, H = self.problem.h(k + 1, X_pred, with_jacobian=True)
        Z_pred = np.asarray(Z_pred, dtype=float).reshape(n_meas)
        H_a = self.noise.R_a_inv_T @ np.asarray(H, dtype=float).reshape(n_meas,
                                                                        n_states)
        z = self.Z_a[k] - self.noise.R_a_inv_T @ Z_pred + H_a @ X_pred

        T, U = linalg.qr(np.vstack((R_xx, H_a)))
        b = T.T @ np.hstack((zeta, z))
        zeta_r = b[n_states:]
        return (U[:n_states], b[:n_states]), np.dot(zeta_r, zeta_r)

    def readout(self, state):
        R_xx, zeta = state
        R_xx_inv = linalg.solve_triangular(R_xx, np.identity(len(R_xx)))
        return {'X': linalg.solve_triangular(R_xx, zeta),
                'P': R_xx_inv @ R_xx_inv.T,
                'R_xx': R_xx,
                'zeta': zeta}


def run_esrif(problem, n_rk=20, start_epoch=0):
    """Run extended square-root information filter.

    The algorithm represents the estimate by the square-root information matrix and
    the information vector and processes dynamics and measurements by QR
    factorizations [1]_. As orthogonal transformations don't amplify rounding errors,
    the algorithm is more numerically robust than the covariance form filter
    (see `run_lkf`), and the error covariance matrix is never inverted.

    The dynamic propagation requires the transition matrix to be invertible. The
    nonlinear measurements are handled by linearization at the prior estimate,
    which turns the algorithm into the extended filter.

    Parameters
    ----------
    problem : BatchProblem
        Problem definition. All covariance matrices must be positive definite.
    n_rk : int, optional
        Number of Runge-Kutta substeps to discretize continuous dynamics over each
        sample interval, must be at least 5. Default is 20.
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
        R_xx : ndarray, shape (n_samples + 1, n_states, n_states)
            Square-root information matrices.
        zeta : ndarray, shape (n_samples + 1, n_states)
            Information vectors.
        eta : ndarray, shape (n_samples,)
            Normalized squared innovation at samples ``1, ..., n_samples``, computed
            as the squared norm of the QR residual.

    References
    ----------
    .. [1] G. J. Bierman, "Factorization Methods for Discrete Sequential Estimation"
    """
    check_options(n_rk, start_epoch, problem.n_samples)
    return run_batch(problem, InformationRecursion(problem), n_rk, start_epoch)
