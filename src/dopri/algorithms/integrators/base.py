"""Abstract integrator interface shared by the adaptive Runge-Kutta classes.

Concrete integrators receive a system, an initial state and a set of times,
and must reject a malformed call before the first right-hand side
evaluation.  The checks live here so that every subclass raises the same
errors.
"""

from abc import ABC, abstractmethod

import numpy as np

from dopri.algorithms.dynamics.base import DynamicalSystemProtocol
from dopri.algorithms.utils.exceptions import (ConfigurationError,
                                               DegenerateIntervalError)


class _Integrator(ABC):
    """Base class of the integrators.

    Parameters
    ----------
    name : str
        Short label of the method, used in ``str`` and in log messages.
    **options
        Additional keyword arguments kept verbatim in ``self.options``.
    """

    def __init__(self, name: str, **options):
        self.name = name
        self.options = options

    @property
    @abstractmethod
    def order(self) -> int:
        """Formal order of the propagated solution."""
        pass

    @abstractmethod
    def integrate(
        self,
        system: DynamicalSystemProtocol,
        y0: np.ndarray,
        t_vals: np.ndarray,
        **kwargs
    ):
        """Propagate *y0* under *system* and sample it at *t_vals*.

        Parameters
        ----------
        system : :class:`~dopri.algorithms.dynamics.base.DynamicalSystemProtocol`
            Object exposing ``dim`` and ``rhs(t, y)``.
        y0 : numpy.ndarray
            State at ``t_vals[0]``, shape (system.dim,).
        t_vals : numpy.ndarray
            Output times; the first and last entries bound the interval.
        **kwargs
            Per-call option overrides.

        Returns
        -------
        :class:`~dopri.algorithms.integrators.types.GridSolution`
        """
        pass

    def validate_system(self, system: DynamicalSystemProtocol) -> None:
        """Raise :class:`~dopri.algorithms.utils.exceptions.ConfigurationError`
        unless *system* exposes both ``dim`` and ``rhs``."""
        missing = [attr for attr in ("dim", "rhs") if not hasattr(system, attr)]
        if missing:
            raise ConfigurationError(
                f"{type(system).__name__} cannot be integrated by {self.name}: "
                f"missing {', '.join(missing)}"
            )

    def validate_inputs(
        self,
        system: DynamicalSystemProtocol,
        y0: np.ndarray,
        t_vals: np.ndarray
    ) -> None:
        """Check the system, the initial state and the time nodes of a call.

        Raises
        ------
        :class:`~dopri.algorithms.utils.exceptions.DegenerateIntervalError`
            If ``t_vals[0] == t_vals[-1]``.
        :class:`~dopri.algorithms.utils.exceptions.ConfigurationError`
            If *y0* is not a vector of length ``system.dim``, or *t_vals*
            holds fewer than two finite values or is not strictly monotonic
            in the direction from ``t_vals[0]`` to ``t_vals[-1]``.
        """
        self.validate_system(system)

        if y0.shape != (system.dim,):
            raise ConfigurationError(
                f"y0 has shape {y0.shape}, expected ({system.dim},)"
            )

        if t_vals.ndim != 1 or t_vals.size < 2:
            raise ConfigurationError(
                f"At least two output times are required, got shape {t_vals.shape}"
            )
        if not np.all(np.isfinite(t_vals)):
            raise ConfigurationError("Output times must be finite")
        if t_vals[0] == t_vals[-1]:
            raise DegenerateIntervalError(float(t_vals[0]), float(t_vals[-1]))

        direction = 1.0 if t_vals[-1] > t_vals[0] else -1.0
        if np.any(direction * np.diff(t_vals) <= 0.0):
            raise ConfigurationError(
                "Output times must be strictly monotonic towards the end of the interval"
            )

    def __str__(self):
        return f"DOPRI-{self.name}"

    def __repr__(self):
        return f"{self.__class__.__name__}(name='{self.name}', options={self.options})"
