"""Example script: Euler's equations of a free rigid body integrated with
DOPRI5, sampled on a grid and with dense output, together with a stiff
problem showing how early termination is reported.

Run with
    python examples/rigid_body.py
"""

import os
import sys

import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dopri import (IntegrationError, create_rhs_system, integrate_dense,
                   integrate_on_grid, setup_logging)

logger = setup_logging()


def rigid_body_rhs(t, y):
    return np.array([y[1] * y[2], -y[0] * y[2], -0.51 * y[0] * y[1]])


def robertson_rhs(t, y):
    dy1 = -0.04 * y[0] + 1e4 * y[1] * y[2]
    dy3 = 3e7 * y[1] ** 2
    return np.array([dy1, -dy1 - dy3, dy3])


def main() -> None:
    system = create_rhs_system(rigid_body_rhs, dim=3, name="Euler rigid body")
    y0 = np.array([0.0, 1.0, 1.0])

    t_out = np.linspace(0.0, 12.0, 10)
    grid = integrate_on_grid(system, y0, t_out, rtol=1e-4, atol=1e-4)
    logger.info("Grid solution at t=12: %s", grid.states[-1])
    logger.info("Accepted %d, rejected %d, rhs calls %d",
                grid.stats.n_accepted, grid.stats.n_rejected, grid.stats.n_evaluations)

    dense = integrate_dense(system, y0, (0.0, 12.0), rtol=1e-8, atol=1e-10)
    logger.info("Dense solution has %d segments", dense.n_segments)
    for t in (0.5, np.pi, 7.25):
        logger.info("y(%.4f) = %s", t, dense(t))

    stiff = create_rhs_system(robertson_rhs, dim=3, name="Robertson")
    try:
        integrate_on_grid(stiff, [1.0, 0.0, 0.0], [0.0, 1e11],
                          rtol=1e-8, atol=1e-8, max_steps=5000, strict=True)
    except IntegrationError as exc:
        partial = exc.partial
        logger.info("Stiff problem stopped after %d steps: %s",
                    partial.stats.n_accepted, exc)


if __name__ == "__main__":
    main()
