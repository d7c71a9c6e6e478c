import numpy as np
import pytest
from numpy.testing import assert_allclose
import batchest


def _static_model(H, G):
    def f(k, X, u, W=None, with_jacobian=True):
        return (X, np.identity(len(X)), G) if with_jacobian else X

    def h(k, X, with_jacobian=True):
        return (H @ X, H) if with_jacobian else H @ X

    return f, h


def test_innovation_covariance_not_positive_definite():
    f, h = _static_model(np.array([[0.0, 1.0]]), np.zeros((2, 1)))
    problem = batchest.BatchProblem(f, h, 'DD', np.zeros(2), np.diag([1.0, -1e-13]),
                                    np.zeros(5), np.arange(1.0, 6.0), [[1.0]],
                                    [[1e-14]])
    with pytest.raises(batchest.NumericalPreconditionError,
                       match="Innovation covariance") as error:
        batchest.run_lkf(problem)
    assert error.value.epoch == 1
    assert "sample 1" in str(error.value)


def test_semidefinite_initial_covariance():
    f, h = _static_model(np.array([[1.0, 0.0]]), np.array([[0.0], [1.0]]))
    problem = batchest.BatchProblem(f, h, 'DD', np.zeros(2), np.diag([1.0, 0.0]),
                                    [0.5, -0.2, 0.1], [1.0, 2.0, 3.0], [[1.0]], [[1.0]])
    result = batchest.run_lkf(problem)
    assert np.all(np.isfinite(result.X))
    assert np.all(np.isfinite(result.eta))
    assert_allclose(result.P[0], np.diag([1.0, 0.0]))
    assert result.P[-1, 1, 1] > 0

    with pytest.raises(batchest.NumericalPreconditionError,
                       match="Initial covariance") as error:
        batchest.run_esrif(problem)
    assert error.value.epoch is None
