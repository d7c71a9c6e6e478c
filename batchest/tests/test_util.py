import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy.integrate import solve_ivp
from scipy.linalg import expm
from batchest import util


def test_c2d_nonlinear_linear_system():
    A = np.array([[0, 1], [-1, -0.2]])
    D = np.array([[0], [1]])

    def f(t, X, u, W, with_jacobian=True):
        dXdt = A @ X + D @ W
        return (dXdt, A, D) if with_jacobian else dXdt

    dt = 0.5
    augmented = np.zeros((3, 3))
    augmented[:2, :2] = A
    augmented[:2, 2:] = D
    transition = expm(augmented * dt)
    F_true = transition[:2, :2]
    G_true = transition[:2, 2:]

    X0 = np.array([1.0, -0.5])
    W = np.array([0.3])
    X, F, G = util.c2d_nonlinear(X0, np.empty(0), W, 1.0, 1.0 + dt, 20, f)
    assert_allclose(F, F_true, rtol=1e-7, atol=1e-9)
    assert_allclose(G, G_true, rtol=1e-7, atol=1e-9)
    assert_allclose(X, F_true @ X0 + G_true @ W, rtol=1e-7)

    X_only = util.c2d_nonlinear(X0, np.empty(0), W, 1.0, 1.0 + dt, 20, f,
                                with_sensitivity=False)
    assert_allclose(X_only, X, rtol=1e-15)


def test_c2d_nonlinear_van_der_pol():
    mu = 0.5

    def f(t, X, u, W, with_jacobian=True):
        dXdt = np.array([X[1], mu * (1 - X[0] ** 2) * X[1] - X[0] + u[0] + W[0]])
        if not with_jacobian:
            return dXdt
        A = np.array([[0, 1], [-2 * mu * X[0] * X[1] - 1, mu * (1 - X[0] ** 2)]])
        return dXdt, A, np.array([[0], [1]])

    X0 = np.array([1.0, 0.5])
    u = np.array([0.1])
    W = np.zeros(1)
    X, F, G = util.c2d_nonlinear(X0, u, W, 0, 1, 50, f)

    solution = solve_ivp(lambda t, X: f(t, X, u, W, with_jacobian=False), [0, 1], X0,
                         rtol=1e-12, atol=1e-12)
    assert_allclose(X, solution.y[:, -1], rtol=1e-7)

    step = 1e-6
    F_numerical = np.empty((2, 2))
    for i in range(2):
        dX = np.zeros(2)
        dX[i] = step
        F_numerical[:, i] = (
            util.c2d_nonlinear(X0 + dX, u, W, 0, 1, 50, f, with_sensitivity=False) -
            util.c2d_nonlinear(X0 - dX, u, W, 0, 1, 50, f, with_sensitivity=False)
        ) / (2 * step)
    assert_allclose(F, F_numerical, rtol=1e-6, atol=1e-8)

    G_numerical = (
        util.c2d_nonlinear(X0, u, W + step, 0, 1, 50, f, with_sensitivity=False) -
        util.c2d_nonlinear(X0, u, W - step, 0, 1, 50, f, with_sensitivity=False)
    ) / (2 * step)
    assert_allclose(G[:, 0], G_numerical, rtol=1e-6, atol=1e-8)


def test_c2d_nonlinear_propagates_model_errors():
    def f(t, X, u, W, with_jacobian=True):
        raise FloatingPointError("model failure")

    with pytest.raises(FloatingPointError, match="model failure"):
        util.c2d_nonlinear(np.zeros(2), np.empty(0), np.zeros(1), 0, 1, 10, f)


def test_compute_rms():
    data = np.array([[1.0, -2.0], [-1.0, 2.0]])
    assert_allclose(util.compute_rms(data), [1.0, 2.0])
