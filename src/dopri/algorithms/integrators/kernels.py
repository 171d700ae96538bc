"""Numba kernels shared by the embedded Runge-Kutta drivers.

The kernels only see arrays and scalars; every call of the user supplied
right-hand side stays in Python.  All of them write into preallocated
workspace buffers.

References
----------
Hairer, E.; Norsett, S.; Wanner, G. (1993). "Solving Ordinary Differential
Equations I", Eq. (4.10)-(4.11) and the CONTD5 routine of DOPRI5.
"""

import numpy as np
from numba import njit

from dopri.algorithms.utils.config import FASTMATH


@njit(cache=False, fastmath=FASTMATH)
def stage_state(y0, ks, a_row, s, dt, out):
    """Write ``y0 + dt*sum_{j<s} a_row[j]*ks[:, j]`` into *out*."""
    n = y0.size
    for d in range(n):
        acc = 0.0
        for j in range(s):
            a_sj = a_row[j]
            if a_sj != 0.0:
                acc += a_sj * ks[d, j]
        out[d] = y0[d] + dt * acc


@njit(cache=False, fastmath=FASTMATH)
def combine_stages(y0, ks, b, dt, trial, err):
    """Form the propagated solution and the embedded error estimate.

    ``trial = y0 + dt*sum(b[0]*k)`` and ``err = dt*(sum(b[0]*k) - sum(b[1]*k))``.
    """
    n = y0.size
    s = b.shape[1]
    for d in range(n):
        high = 0.0
        low = 0.0
        for j in range(s):
            high += b[0, j] * ks[d, j]
            low += b[1, j] * ks[d, j]
        err[d] = dt * (high - low)
        trial[d] = y0[d] + dt * high


@njit(cache=False, fastmath=FASTMATH)
def scaled_error_norm(err, y0, trial, atol, rtol):
    """Euclidean norm of the error scaled by ``atol + rtol*max(|y0|, |y1|)``.

    The norm is not divided by ``sqrt(n)``: the effective tolerance tightens
    with the dimension of the system.
    """
    n = err.size
    acc = 0.0
    for d in range(n):
        sc = atol + rtol * max(abs(y0[d]), abs(trial[d]))
        e = err[d] / sc
        acc += e * e
    return np.sqrt(acc)


@njit(cache=False, fastmath=FASTMATH)
def hermite_coefficients(y0, y1, f0, f1, dt, cont):
    """Build the cubic Hermite interpolant of one step.

    The four columns of *cont* are chosen so that
    ``y(theta) = c0 + theta*(c1 + (1 - theta)*(c2 + theta*c3))`` matches
    ``y0, y1`` and ``dt*f0, dt*f1`` at ``theta = 0, 1``.
    """
    n = y0.size
    for d in range(n):
        dy = y1[d] - y0[d]
        bspl = dt * f0[d] - dy
        cont[d, 0] = y0[d]
        cont[d, 1] = dy
        cont[d, 2] = bspl
        cont[d, 3] = dy - dt * f1[d] - bspl


@njit(cache=False, fastmath=FASTMATH)
def hermite_evaluate(cont, theta, out):
    """Evaluate the Hermite interpolant at the normalised time *theta*."""
    n = cont.shape[0]
    theta1 = 1.0 - theta
    for d in range(n):
        out[d] = cont[d, 0] + theta * (cont[d, 1] + theta1 * (cont[d, 2] + theta * cont[d, 3]))
