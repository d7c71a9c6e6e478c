"""Example of estimation problems."""
from dataclasses import dataclass
import numpy as np
from scipy._lib._util import check_random_state
from scipy.integrate import solve_ivp
from .batch import BatchProblem


@dataclass
class ProblemExample:
    """Example of an estimation problem with known true state.

    Parameters
    ----------
    problem : BatchProblem
        Problem definition to pass into the estimation algorithms.
    Xt : ndarray, shape (n_samples + 1, n_states)
        True state for each sample.
    """
    problem : BatchProblem
    Xt : np.ndarray


def _linear_model(F, G, H):
    def f(k, X, u, W=None, with_jacobian=True):
        if W is None:
            W = np.zeros(G.shape[1])
        X_next = F @ X + G @ W
        if not with_jacobian:
            return X_next
        return X_next, F, G

    def h(k, X, with_jacobian=True):
        return (H @ X, H) if with_jacobian else H @ X

    return f, h


def _simulate_discrete(f, h, X0, P0, Q, R, n_samples, rng):
    Xt = np.empty((n_samples + 1, len(X0)))
    Xt[0] = rng.multivariate_normal(X0, P0)
    Z = []
    for k in range(n_samples):
        W = rng.multivariate_normal(np.zeros(len(Q)), Q)
        Xt[k + 1] = f(k, Xt[k], np.empty(0), W, with_jacobian=False)
        Z.append(h(k + 1, Xt[k + 1], with_jacobian=False)
                 + rng.multivariate_normal(np.zeros(len(R)), R))
    return Xt, np.reshape(Z, (n_samples, len(R)))


def generate_constant_velocity(
    n_samples=10,
    X0=np.array([0.0, 1.0]),
    P0=np.identity(2),
    sigma_acceleration=0.1,
    sigma_position=1.0,
    rng=0,
):
    """Generate data for an example of a body moving along a line.

    The discrete system model with unit time step is::

        x1[k + 1] = x1[k] + x2[k] + 0.5 * w[k]
        x2[k + 1] = x2[k] + w[k]

    where ``x1`` is position, ``x2`` is velocity and ``w`` is random acceleration.
    Position measurements are available at each sample.

    Parameters
    ----------
    n_samples : int
        Number of measurement samples.
    X0 : array_like, shape (2,)
        Initial state estimate.
    P0 : array_like, shape (2, 2)
        Initial state covariance.
    sigma_acceleration : float
        Standard deviation of acceleration noise.
    sigma_position : float
        Accuracy of position measurements.
    rng : None, int or `numpy.random.RandomState`
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.

    Returns
    -------
    ProblemExample
    """
    rng = check_random_state(rng)
    F = np.array([[1.0, 1.0], [0.0, 1.0]])
    G = np.array([[0.5], [1.0]])
    H = np.array([[1.0, 0.0]])
    Q = np.array([[sigma_acceleration ** 2]])
    R = np.array([[sigma_position ** 2]])
    f, h = _linear_model(F, G, H)
    Xt, Z = _simulate_discrete(f, h, X0, P0, Q, R, n_samples, rng)
    problem = BatchProblem(f, h, 'DD', X0, P0, Z,
                           np.arange(1, n_samples + 1, dtype=float), Q, R)
    return ProblemExample(problem, Xt)


def generate_linear_pendulum(
    n_samples=1000,
    X0=np.array([1.0, 0.0]),
    P0=np.diag([0.1**2, 0.05**2]),
    tau=0.1,
    T=10.0,
    eta=0.1,
    qf=0.03,
    sigma_angle=0.2,
    sigma_rate=0.1,
    rng=0,
):
    """Generate data for an example of a linear pendulum with friction.

    The continuous system model is::

        dx1 / dt = x2
        dx2 / dt = -omega**2 * x1 - 2 * eta * omega * x2 + f

    with ``f`` being an external force. It is discretized with a time step `tau`,
    the external force is modeled as a random white sequence.

    The measurements consist of both x1 and x2 (angle and angular rate).

    Parameters
    ----------
    n_samples : int
        Number of measurement samples.
    X0 : array_like, shape (2,)
        Initial state estimate.
    P0 : array_like, shape (2, 2)
        Initial state covariance.
    tau : float
        Time step in seconds.
    T : float
        Pendulum period in seconds.
    eta : float
        Dimensionless friction coefficient.
    qf : float
        Intensity of force process in rad/s/sqrt(s)
    sigma_angle : float
        Accuracy of angle measurements in rad.
    sigma_rate : float
        Accuracy of angular rate measurements in rad/s.
    rng : None, int or `numpy.random.RandomState`
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.

    Returns
    -------
    ProblemExample
    """
    rng = check_random_state(rng)
    omega = 2 * np.pi / T
    F = np.array([[1, tau], [-(omega ** 2) * tau, 1 - 2 * eta * omega * tau]])
    G = np.array([[0], [1]])
    Q = np.array([[tau * qf**2]])
    R = np.diag([sigma_angle**2, sigma_rate**2])
    f, h = _linear_model(F, G, np.identity(2))
    Xt, Z = _simulate_discrete(f, h, X0, P0, Q, R, n_samples, rng)
    problem = BatchProblem(f, h, 'DD', X0, P0, Z, tau * np.arange(1, n_samples + 1),
                           Q, R)
    return ProblemExample(problem, Xt)


def generate_nonlinear_pendulum(
    n_samples=1000,
    X0=np.array([0.5 * np.pi, 0]),
    P0=np.diag([0.1**2, 0.05**2]),
    tau=0.1,
    T=10.0,
    eta=0.5,
    xi=1.0,
    sigma_omega=0.1,
    sigma_eta=0.01,
    sigma_f=0.5,
    sigma_angle=0.1,
    rng=0
):
    """Generate data for an example of a nonlinear pendulum with friction.

    The continuous time system model is::

        dx1 / dt = x2
        dx2 / dt = -omega**2 * sin(x1) - 2 * eta * omega * x2 * (1 + xi * x2**2) + f

    with ``f`` being an external force. It is discretized with a time step `tau`.
    The parameters ``omega`` and ``eta`` are randomly perturbed by noise at each
    sample, the external force is modeled as a random white sequence.

    Measurements of ``sin(x1)`` are available.

    Parameters
    ----------
    n_samples : int
        Number of measurement samples.
    X0 : array_like, shape (2,)
        Initial state estimate.
    P0 : array_like, shape (2, 2)
        Initial state covariance.
    tau : float
        Time step in seconds.
    T : float
        Pendulum period in seconds.
    eta : float
        Dimensionless friction coefficient.
    xi : float
        Friction nonlinearity coefficient.
    sigma_omega : float
        Standard deviation of ``omega`` disturbance.
    sigma_eta : float
        Standard deviation of ``eta`` disturbance.
    sigma_f : float
        Standard deviation of external force sequence.
    sigma_angle : float
        Accuracy of angle measurements in rad.
    rng : None, int or `numpy.random.RandomState`
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.

    Returns
    -------
    ProblemExample
    """
    rng = check_random_state(rng)
    omega = 2 * np.pi / T
    Q = np.diag([sigma_omega**2, sigma_eta**2, sigma_f**2])
    R = np.array([[sigma_angle ** 2]])

    def f(k, X, u, W=None, with_jacobian=True):
        if W is None:
            W = np.zeros(3)

        omega_ = omega + W[0]
        eta_ = eta + W[1]
        X_next = np.array([
            X[0] + tau * X[1],
            X[1] + tau * (-omega_ ** 2 * np.sin(X[0])
                          - 2 * eta_ * omega_ * X[1] * (1 + xi * X[1] ** 2)
                          + W[2])
        ])
        if not with_jacobian:
            return X_next
        F = np.array([
            [1, tau],
            [-tau * omega_ ** 2 * np.cos(X[0]),
             1 - 2 * tau * eta_ * omega_ * (1 + 3 * xi * X[1] ** 2)]
        ])
        G = np.array([
            [0, 0, 0],
            [-2 * tau * (omega_ * np.sin(X[0]) + eta_ * X[1] * (1 + xi * X[1] ** 2)),
             -2 * tau * omega_ * X[1] * (1 + xi * X[1] ** 2), tau]
        ])
        return X_next, F, G

    def h(k, X, with_jacobian=True):
        Z = np.array([np.sin(X[0])])
        if not with_jacobian:
            return Z
        return Z, np.array([[np.cos(X[0]), 0]])

    Xt, Z = _simulate_discrete(f, h, X0, P0, Q, R, n_samples, rng)
    problem = BatchProblem(f, h, 'DD', X0, P0, Z, tau * np.arange(1, n_samples + 1),
                           Q, R)
    return ProblemExample(problem, Xt)


def generate_falling_body(total_time=30, time_step=1,
                          X0t=np.array([3e5, 2e4, 1e-3]),
                          X0=np.array([3e5, 2e4, 3e-5]),
                          P0=np.diag([1e3**2, 2e3**2, 1e-2**2]),
                          sigma_drag=1e-7,
                          rtol=1e-10,
                          rng=0):
    """Generate data for an example with a falling body in dense air.

    This example is taken from "Optimal Estimation of Dynamic Systems", 2nd edition,
    sec. 3.7.

    The example models the fall of a body in air with changing density using 3 states:
    altitude, downward velocity and drag coefficient. The gravity is not included as a
    negligible effect for high velocities. The system evolution is described by ODEs::

        dx1 / dt = -x2
        dx2 / dt = -exp(-alpha * x1) * x2**2 * x3
        dx3 / dt = w

    The filter model includes a small noise ``w`` in the drag coefficient rate, which
    is held constant over each sample interval. The true trajectory is generated
    without it. Range measurements from a radar to the body are available
    every `time_step`.

    The problem is defined with continuous dynamics (``model_type='CD'``).

    Parameters
    ----------
    total_time : float
        Total simulation time.
    time_step : float
        Time between measurement samples.
    X0t : array_like, shape (3,)
        True initial state.
    X0 : array_like, shape (3,) or None
        Initial state for estimation. The concrete value proposed in [1] is set
        by default. If None, then it is randomly generated from `X0t` and `P0`.
    P0 : array_like, shape (3, 3)
        Initial covariance.
    sigma_drag : float
        Standard deviation of the drag coefficient rate noise.
    rtol : float
        Tolerance parameter (relative) for Runge-Kutta integrator generating the
        true trajectory.
    rng : None, int or `numpy.random.RandomState`
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.

    Returns
    -------
    ProblemExample
    """
    ALPHA = 5e-5
    RADAR_M = 1e5
    RADAR_Z = 1e5

    rng = check_random_state(rng)
    X0t = np.asarray(X0t)
    P0 = np.asarray(P0)
    if X0 is None:
        X0 = X0t + rng.multivariate_normal(np.zeros_like(X0t), P0)
    else:
        X0 = np.asarray(X0)

    def f(t, X, u, W, with_jacobian=True):
        density = np.exp(-ALPHA * X[0])
        dXdt = np.array([-X[1], -density * X[1] ** 2 * X[2], W[0]])
        if not with_jacobian:
            return dXdt
        A = np.array([
            [0, -1, 0],
            [ALPHA * density * X[1] ** 2 * X[2], -2 * density * X[1] * X[2],
             -density * X[1] ** 2],
            [0, 0, 0]
        ])
        D = np.array([[0], [0], [1]])
        return dXdt, A, D

    def h(k, X, with_jacobian=True):
        Z = np.atleast_1d(np.hypot(RADAR_M, X[0] - RADAR_Z))
        return (Z, np.array([[(X[0] - RADAR_Z) / Z[0], 0, 0]])) if with_jacobian else Z

    n_samples = int(np.round(total_time / time_step))
    t = time_step * np.arange(1, n_samples + 1)
    Xt = solve_ivp(lambda t, X: f(t, X, None, [0.0], with_jacobian=False),
                   [0, t[-1]], X0t, t_eval=np.hstack((0, t)), rtol=rtol).y.T
    R = np.array([[1e2**2]])
    Z = []
    for X in Xt[1:]:
        Z.append(h(None, X, with_jacobian=False) +
                 rng.multivariate_normal(np.zeros(1), R))

    problem = BatchProblem(f, h, 'CD', X0, P0, Z, t, [[sigma_drag ** 2]], R)
    return ProblemExample(problem, Xt)
