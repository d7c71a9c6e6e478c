"""Utility functions."""
import numpy as np


class Bunch(dict):
    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name)

    __setattr__ = dict.__setitem__
    __delattr__ = dict.__delitem__

    def __repr__(self):
        if self.keys():
            m = max(map(len, list(self.keys()))) + 1
            return '\n'.join(['{}: {}'.format(k.rjust(m), type(v))
                              for k, v in self.items()])
        else:
            return self.__class__.__name__ + "()"

    def __dir__(self):
        return list(self.keys())


def compute_rms(data):
    """Compute root-mean-square of data along 0 axis."""
    return np.mean(np.square(data), axis=0) ** 0.5


def c2d_nonlinear(X, u, W, t0, t1, n_rk, f, with_sensitivity=True):
    """Discretize continuous dynamics over a single sample interval.

    The state is integrated by the classical 4th-order Runge-Kutta method with
    `n_rk` equal substeps. The noise ``W`` is held constant over the interval.

    Sensitivities of the final state w.r.t. the initial state and the noise are
    computed along with the solution by integrating the augmented system::

        dX / dt = f(t, X, u, W)
        dF / dt = A(t) @ F,         F(t0) = I
        dG / dt = A(t) @ G + D(t),  G(t0) = 0

    where ``A`` and ``D`` are Jacobians of ``f`` with respect to ``X`` and ``W``.

    Parameters
    ----------
    X : array_like, shape (n_states,)
        State at `t0`.
    u : array_like, shape (n_controls,)
        Control vector, constant over the interval.
    W : array_like, shape (n_noises,)
        Process noise vector, constant over the interval.
    t0, t1 : float
        Start and end times.
    n_rk : int
        Number of Runge-Kutta substeps.
    f : callable
        Continuous dynamics, must follow `batchest.util.continuous_dynamics_callable`
        interface.
    with_sensitivity : bool, optional
        Whether to compute the sensitivity matrices. Default is True.

    Returns
    -------
    X : ndarray, shape (n_states,)
        State at `t1`.
    F : ndarray, shape (n_states, n_states)
        Jacobian of the state at `t1` w.r.t. the state at `t0`. Returned only
        when `with_sensitivity` is True.
    G : ndarray, shape (n_states, n_noises)
        Jacobian of the state at `t1` w.r.t. the noise vector. Returned only
        when `with_sensitivity` is True.
    """
    X = np.asarray(X, dtype=float)
    W = np.asarray(W, dtype=float)
    n_states = len(X)
    n_noises = len(W)
    dt = (t1 - t0) / n_rk

    if not with_sensitivity:
        def rhs(t, X):
            return np.asarray(f(t, X, u, W, with_jacobian=False), dtype=float)

        y = X
    else:
        def rhs(t, y):
            X = y[:n_states]
            F = y[n_states : n_states * (n_states + 1)].reshape(n_states, n_states)
            G = y[n_states * (n_states + 1):].reshape(n_states, n_noises)
            dXdt, A, D = f(t, X, u, W)
            A = np.asarray(A, dtype=float)
            dFdt = A @ F
            dGdt = A @ G + np.asarray(D, dtype=float).reshape(n_states, n_noises)
            return np.hstack((dXdt, dFdt.ravel(), dGdt.ravel()))

        y = np.hstack((X, np.identity(n_states).ravel(),
                       np.zeros(n_states * n_noises)))

    t = t0
    for _ in range(n_rk):
        k1 = rhs(t, y)
        k2 = rhs(t + 0.5 * dt, y + 0.5 * dt * k1)
        k3 = rhs(t + 0.5 * dt, y + 0.5 * dt * k2)
        k4 = rhs(t + dt, y + dt * k3)
        y = y + dt / 6 * (k1 + 2 * k2 + 2 * k3 + k4)
        t += dt

    if not with_sensitivity:
        return y
    return (y[:n_states],
            y[n_states : n_states * (n_states + 1)].reshape(n_states, n_states),
            y[n_states * (n_states + 1):].reshape(n_states, n_noises))


def continuous_dynamics_callable(t, X, u, W, with_jacobian=True):
    """Continuous dynamics callable interface.

    This function stub is included to conveniently describe the expected interface
    of dynamics callables (denoted as ``f``) used with ``model_type='CD'``.

    Parameters
    ----------
    t : float
        Time at which the function is evaluated.
    X : ndarray, shape (n_states,)
        State vector.
    u : ndarray, shape (n_controls,)
        Control vector.
    W : ndarray, shape (n_noises,)
        Process noise vector.
    with_jacobian : bool, optional
        Whether to return function Jacobians with respect to X and W.
        Default is True.

    Returns
    -------
    dXdt : ndarray, shape (n_states,)
        Time derivative of the state.
    A : ndarray, shape (n_states, n_states)
        Jacobian of ``f`` with respect to ``X``. Must be returned only when
        `with_jacobian` is True.
    D : ndarray, shape (n_states, n_noises)
        Jacobian of ``f`` with respect to ``W``. Must be returned only when
        `with_jacobian` is True.
    """
    pass


def discrete_dynamics_callable(k, X, u, W=None, with_jacobian=True):
    """Discrete dynamics callable interface.

    This function stub is included to conveniently describe the expected interface
    of dynamics callables (denoted as ``f``) used with ``model_type='DD'``.

    Parameters
    ----------
    k : int
        Sample index at which the function is evaluated, the function computes
        the state at sample ``k + 1``.
    X : ndarray, shape (n_states,)
        State vector.
    u : ndarray, shape (n_controls,)
        Control vector.
    W : ndarray, shape (n_noises,) or None, optional
        Noise vector. If None (default) must be interpreted as zeros with appropriate
        size.
    with_jacobian : bool, optional
        Whether to return function Jacobian with respect to X and W.
        Default is True.

    Returns
    -------
    X_next : ndarray, shape (n_states,)
        State at the next sample.
    F : ndarray, shape (n_states, n_states)
        Jacobian of ``f`` with respect to ``X``. Must be returned only when
        `with_jacobian` is True.
    G : ndarray, shape (n_states, n_noises)
        Jacobian of ``f`` with respect to ``W``. Must be returned only when
        `with_jacobian` is True.
    """
    pass


def measurement_callable(k, X, with_jacobian=True):
    """Measurement callable interface.

    This function stub is included to conveniently describe the expected interface
    of measurement callables (denoted as ``h``) used in the estimation algorithms
    provided in the package.

    Parameters
    ----------
    k : int
        Sample index at which the function is evaluated, that is the function might
        explicitly depend on the sample index.
    X : ndarray, shape (n_states,)
        State vector.
    with_jacobian : bool, optional
        Whether to return function Jacobian with respect to X. Default is True.

    Returns
    -------
    Z : ndarray, shape (n_meas,)
        Compute value of ``h_k(X)``.
    H : ndarray, shape (n_meas, n_states)
        Jacobian of ``h`` with respect to ``X``. Must be returned only when
        `with_jacobian` is True.
    """
    pass
