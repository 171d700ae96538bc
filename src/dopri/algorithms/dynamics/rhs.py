from typing import Callable, Optional

import numpy as np

from dopri.algorithms.dynamics.base import _DynamicalSystem


class RHSSystem(_DynamicalSystem):
    def __init__(self,
                 rhs_func: Callable[[float, np.ndarray], np.ndarray],
                 dim: int,
                 name: str = "Generic RHS",
                 domain: Optional[Callable[[np.ndarray], bool]] = None):
        """Expose a plain callable ``f(t, y)`` as an integrable system.

        Parameters
        ----------
        rhs_func : callable
            Right-hand side ``f(t, y)`` returning ``dim`` values.
        dim : int
            Dimension of the state space.
        name : str, optional
            Label used in ``repr`` and log messages.
        domain : callable or None, optional
            Predicate ``domain(y) -> bool`` returning True when *y* is out of
            the domain of the system.  ``None`` accepts every state.
        """

        super().__init__(dim)
        if not callable(rhs_func):
            raise TypeError("rhs_func must be callable")
        self._rhs_func = rhs_func
        self._domain = domain
        self.name = name

    @property
    def rhs(self) -> Callable[[float, np.ndarray], np.ndarray]:
        return self._rhs_func

    def is_out_of_domain(self, y: np.ndarray) -> bool:
        if self._domain is None:
            return False
        return bool(self._domain(y))

    def __repr__(self) -> str:
        return f"RHSSystem(name='{self.name}', dim={self.dim})"


def create_rhs_system(rhs_func: Callable[[float, np.ndarray], np.ndarray],
                      dim: int,
                      name: str = "Generic RHS",
                      domain: Optional[Callable[[np.ndarray], bool]] = None):
    return RHSSystem(rhs_func, dim, name, domain=domain)
