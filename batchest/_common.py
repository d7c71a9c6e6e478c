import numpy as np
from scipy import linalg


MIN_N_RK = 5


class ConfigurationError(ValueError):
    """Malformed problem definition or estimator options."""


class NumericalPreconditionError(np.linalg.LinAlgError):
    """Numerical precondition of an algorithm is violated.

    Parameters
    ----------
    message : str
        Description of the violation.
    epoch : int or None, optional
        Sample index at which the violation was detected. None (default) means
        that it was detected during the setup, before the recurrence started.
    """
    def __init__(self, message, epoch=None):
        if epoch is not None:
            message = f"{message} (sample {epoch})"
        super().__init__(message)
        self.epoch = epoch


def check_symmetric(A, name):
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ConfigurationError(f"{name} must be a square matrix")
    if not np.allclose(A, A.T, rtol=1e-10, atol=1e-14):
        raise ConfigurationError(f"{name} must be symmetric")


def cholesky_lower(A, name, epoch=None):
    """Compute lower triangular ``L`` such that ``A = L @ L.T``."""
    try:
        return linalg.cholesky(A, lower=True)
    except linalg.LinAlgError as error:
        raise NumericalPreconditionError(f"{name} is not positive definite",
                                         epoch) from error


def check_positive_semidefinite(A, name, epoch=None):
    if len(A) == 0:
        return
    eigenvalues = linalg.eigvalsh(A)
    if eigenvalues[0] < -1e-12 * max(eigenvalues[-1], 1.0):
        raise NumericalPreconditionError(f"{name} is not positive semi-definite",
                                         epoch)


def check_options(n_rk, start_epoch, n_samples):
    if isinstance(n_rk, bool) or not isinstance(n_rk, (int, np.integer)):
        raise ConfigurationError("`n_rk` must be integer")
    if n_rk < MIN_N_RK:
        raise ConfigurationError(
            f"Number of Runge-Kutta substeps must be at least {MIN_N_RK}, "
            f"got {n_rk}")
    if (isinstance(start_epoch, bool) or
            not isinstance(start_epoch, (int, np.integer))):
        raise ConfigurationError("`start_epoch` must be integer")
    if not 0 <= start_epoch <= n_samples:
        raise ConfigurationError(
            f"`start_epoch` must be within [0, {n_samples}], got {start_epoch}")
