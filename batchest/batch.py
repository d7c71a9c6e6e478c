"""Problem definition and the recurrence shared by the batch filters."""
from dataclasses import dataclass
import logging
import numpy as np
from .util import Bunch, c2d_nonlinear
from ._common import ConfigurationError, check_symmetric


logger = logging.getLogger(__name__)

MODEL_TYPES = ('CD', 'DD')


def _frozen_array(value, name):
    try:
        array = np.array(value, dtype=float)
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"`{name}` must be convertible to a float array"
                                 ) from error
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class BatchProblem:
    """Definition of a batch estimation problem.

    Sample 0 carries the prior estimate and happens at time `t0`. Samples
    ``1, ..., n_samples`` carry measurements, the row ``k`` of `Z` and `t` refers
    to the sample ``k + 1``. The row ``k`` of `u` is the control applied over the
    interval between the samples ``k`` and ``k + 1``.

    The problem is immutable: fields can't be reassigned and all arrays are copied
    and made read-only, thus one problem can be shared by independent runs. Use
    `dataclasses.replace` to create a modified problem. Scalar `P0`, `Q` and `R`
    are interpreted as 1 x 1 matrices.

    Parameters
    ----------
    f : callable
        Dynamics function. Must follow `batchest.util.continuous_dynamics_callable`
        interface when `model_type` is 'CD' and
        `batchest.util.discrete_dynamics_callable` when it is 'DD'.
    h : callable
        Measurement function, must follow `batchest.util.measurement_callable`
        interface.
    model_type : {'CD', 'DD'}
        'CD' for continuous dynamics with discrete measurements, 'DD' for fully
        discrete models.
    X0 : array_like, shape (n_states,)
        Initial state estimate.
    P0 : array_like, shape (n_states, n_states)
        Initial error covariance.
    Z : array_like, shape (n_samples, n_meas) or (n_samples,)
        Measurement history. One-dimensional input is interpreted as scalar
        measurements.
    t : array_like, shape (n_samples,)
        Times of samples, strictly increasing and greater than `t0`.
    Q : array_like, shape (n_noises, n_noises)
        Process noise covariance matrix.
    R : array_like, shape (n_meas, n_meas)
        Measurement noise covariance matrix.
    u : array_like, shape (n_samples, n_controls), (n_samples,) or None, optional
        Control history. None (default) corresponds to empty control vectors.
    t0 : float, optional
        Time of sample 0. Default is 0.
    """
    f : callable
    h : callable
    model_type : str
    X0 : np.ndarray
    P0 : np.ndarray
    Z : np.ndarray
    t : np.ndarray
    Q : np.ndarray
    R : np.ndarray
    u : np.ndarray = None
    t0 : float = 0.0

    def __post_init__(self):
        if not callable(self.f):
            raise ConfigurationError("`f` must be callable")
        if not callable(self.h):
            raise ConfigurationError("`h` must be callable")
        if self.model_type not in MODEL_TYPES:
            raise ConfigurationError(f"`model_type` must be one of {MODEL_TYPES}, "
                                     f"got {self.model_type!r}")

        X0 = _frozen_array(self.X0, 'X0')
        P0 = np.atleast_2d(_frozen_array(self.P0, 'P0'))
        Q = np.atleast_2d(_frozen_array(self.Q, 'Q'))
        R = np.atleast_2d(_frozen_array(self.R, 'R'))
        check_symmetric(P0, 'P0')
        check_symmetric(Q, 'Q')
        check_symmetric(R, 'R')

        if X0.ndim != 1 or P0.shape != (len(X0), len(X0)):
            raise ConfigurationError("Inconsistent shapes of `X0` and `P0`")

        Z = _frozen_array(self.Z, 'Z')
        if Z.ndim == 1:
            Z = Z.reshape(-1, len(R)) if Z.size == 0 else Z[:, None]
        if Z.ndim != 2 or Z.shape[1] != len(R):
            raise ConfigurationError("Inconsistent shapes of `Z` and `R`")
        n_samples = len(Z)

        t = _frozen_array(self.t, 't')
        t0 = float(self.t0)
        if t.shape != (n_samples,):
            raise ConfigurationError("`t` must have one entry per measurement sample")
        if np.any(np.diff(np.hstack((t0, t))) <= 0):
            raise ConfigurationError("Sample times must be strictly increasing")

        u = _frozen_array(np.zeros((n_samples, 0)) if self.u is None else self.u,
                          'u')
        if u.ndim == 1:
            u = u[:, None]
        if u.ndim != 2 or len(u) != n_samples:
            raise ConfigurationError("`u` must have one row per measurement sample")

        # The dataclass is frozen, validated fields are stored bypassing it.
        for name, value in [('X0', X0), ('P0', P0), ('Q', Q), ('R', R), ('Z', Z),
                            ('t', t), ('t0', t0), ('u', u)]:
            object.__setattr__(self, name, value)

    @property
    def n_states(self):
        return len(self.X0)

    @property
    def n_noises(self):
        return len(self.Q)

    @property
    def n_meas(self):
        return len(self.R)

    @property
    def n_samples(self):
        return len(self.Z)


def propagate_model(problem, k, X, t_k, t_kp1, n_rk):
    """Compute the predicted state and its sensitivities from sample k to k + 1.

    Returns
    -------
    X_pred : ndarray, shape (n_states,)
        State propagated with zero process noise.
    F : ndarray, shape (n_states, n_states)
        Transition matrix.
    G : ndarray, shape (n_states, n_noises)
        Noise input matrix.
    """
    n_states = problem.n_states
    n_noises = problem.n_noises
    W = np.zeros(n_noises)
    if problem.model_type == 'CD':
        X_pred, F, G = c2d_nonlinear(X, problem.u[k], W, t_k, t_kp1, n_rk, problem.f)
    elif problem.model_type == 'DD':
        X_pred, F, G = problem.f(k, X, problem.u[k], W)
    else:
        raise ConfigurationError(
            f"Incorrect model type {problem.model_type!r} for dynamics model")
    return (np.asarray(X_pred, dtype=float),
            np.asarray(F, dtype=float).reshape(n_states, n_states),
            np.asarray(G, dtype=float).reshape(n_states, n_noises))


def run_batch(problem, recursion, n_rk, start_epoch=0):
    """Run the filter recurrence over all samples of a problem.

    The algorithm specific part is provided by `recursion` object which must have
    the following attributes:

        - name : str
            Name of the algorithm used in log messages.
        - history_fields : list of tuple
            Names and shapes (per sample) of the arrays returned by `readout`.
        - initialize(X, P) -> state
            Create the algorithm state from a mean and covariance.
        - propagate(state, X_pred, F, G, k) -> state
            Prior state at sample ``k + 1`` given the linearized dynamics.
        - update(state, X_pred, k) -> (state, eta)
            Process the measurement at sample ``k + 1``, also return the
            innovation statistic.
        - readout(state) -> dict
            Values to store in the history, must include state estimate 'X'.

    Output arrays are allocated here and each element is written once. Elements
    before `start_epoch` are filled with NaN.

    Parameters
    ----------
    problem : BatchProblem
        Problem definition.
    recursion : object
        Algorithm implementation, see above.
    n_rk : int
        Number of Runge-Kutta substeps for continuous dynamics.
    start_epoch : int, optional
        Sample at which `problem.X0` and `problem.P0` are set and the recurrence
        starts. Default is 0.

    Returns
    -------
    Bunch with the arrays listed in `recursion.history_fields` with shape
    (n_samples + 1, ...) and the innovation statistic history ``eta`` with shape
    (n_samples,).
    """
    n_samples = problem.n_samples
    logger.info("Running %s: n_samples=%d, n_states=%d, n_noises=%d, n_meas=%d, "
                "start_epoch=%d", recursion.name, n_samples, problem.n_states,
                problem.n_noises, problem.n_meas, start_epoch)

    history = {name: np.full((n_samples + 1, *shape), np.nan)
               for name, shape in recursion.history_fields}
    eta = np.full(n_samples, np.nan)

    state = recursion.initialize(problem.X0, problem.P0)
    snapshot = recursion.readout(state)
    for name in history:
        history[name][start_epoch] = snapshot[name]

    t_k = problem.t0 if start_epoch == 0 else problem.t[start_epoch - 1]
    for k in range(start_epoch, n_samples):
        t_kp1 = problem.t[k]
        X_pred, F, G = propagate_model(problem, k, snapshot['X'], t_k, t_kp1, n_rk)
        state = recursion.propagate(state, X_pred, F, G, k)
        state, eta[k] = recursion.update(state, X_pred, k)

        snapshot = recursion.readout(state)
        for name in history:
            history[name][k + 1] = snapshot[name]
        logger.debug("%s sample %d: eta=%.6g", recursion.name, k + 1, eta[k])
        t_k = t_kp1

    logger.info("%s finished, mean innovation statistic %.6g", recursion.name,
                np.mean(eta[start_epoch:]) if n_samples > start_epoch else np.nan)
    return Bunch(**history, eta=eta)
