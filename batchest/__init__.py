"""batchest: Batch state estimation with covariance and square-root information filters.

The package contains batch filtering algorithms for systems with dynamics given
either in continuous time (model type 'CD')::

    dX / dt = f(t, X, u, W)
    Z_k = h_k(X(t_k)) + V_k

or in discrete time (model type 'DD')::

    X_{k + 1} = f_k(X_k, u_k, W_k)
    Z_k = h_k(X_k) + V_k

Where

    - k   - integer sample index
    - X_k - state vector
    - u_k - control vector
    - W_k - process noise vector with covariance Q
    - Z_k - measurement vector
    - V_k - measurement noise vector with covariance R
    - f   - dynamics function
    - h_k - measurement function

Sample 0 carries the prior estimate, the measurements are available at samples
``1, ..., n_samples``. Continuous dynamics are discretized over each sample interval
by a fixed-step Runge-Kutta integrator, see `batchest.util.c2d_nonlinear`.

Two algorithms are provided, which give the same result up to rounding errors:

    - `run_lkf` - linear (extended) Kalman filter in covariance form
    - `run_esrif` - extended square-root information filter

The problem is defined by `BatchProblem`, the callables must follow the interfaces
given in `batchest.util`. Refer to `batchest.examples` for examples of correctly
defined problems.

References
----------
.. [1] G. J. Bierman, "Factorization Methods for Discrete Sequential Estimation"
.. [2] J. L. Crassidis, J. L. Junkins, "Optimal Estimation of Dynamic Systems",
   2nd edition
"""
from . import examples, util
from .batch import BatchProblem
from .lkf import run_lkf
from .esrif import run_esrif, SquareRootNoise
from ._common import ConfigurationError, NumericalPreconditionError
