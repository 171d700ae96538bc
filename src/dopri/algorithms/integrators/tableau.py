"""Butcher tableaux of embedded FSAL Runge-Kutta pairs.

A tableau is plain, immutable data consumed read-only by the stepper. It is
kept in exact rational form (:class:`fractions.Fraction`) and converted once
to a working floating-point dtype with
:meth:`~dopri.algorithms.integrators.tableau.ButcherTableau.astype`.

References
----------
Hairer, E.; Norsett, S.; Wanner, G. (1993). "Solving Ordinary Differential
Equations I", p.134 and p.165-169.
"""

from dataclasses import dataclass
from fractions import Fraction
from typing import Sequence

import numpy as np

from dopri.algorithms.integrators.coefficients import bs32, dopri54


def _frozen(values, dtype) -> np.ndarray:
    arr = np.array(values, dtype=dtype)
    if dtype is not object:
        arr = np.ascontiguousarray(arr)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class ButcherTableau:
    """Coefficients of an embedded explicit Runge-Kutta pair with FSAL.

    Parameters
    ----------
    name : str
        Identifier of the pair.
    stages : int
        Number of stages s.
    a : numpy.ndarray of shape (s, s)
        Strictly lower triangular stage matrix.
    b : numpy.ndarray of shape (2, s)
        Output weights; row 0 is the propagated (high order) solution, row 1
        the embedded (low order) one.
    c : numpy.ndarray of shape (s,)
        Stage abscissae in units of the step size.
    order : int
        Order used in the error exponent of the controller and in the
        initial step heuristic.

    Raises
    ------
    ValueError
        If the arrays do not describe an explicit FSAL pair.
    """

    name: str
    stages: int
    a: np.ndarray
    b: np.ndarray
    c: np.ndarray
    order: int

    def __post_init__(self):
        s = self.stages
        if self.a.shape != (s, s):
            raise ValueError(f"Stage matrix must be {s}x{s}, got {self.a.shape}")
        if self.b.shape != (2, s):
            raise ValueError(f"Weight matrix must be 2x{s}, got {self.b.shape}")
        if self.c.shape != (s,):
            raise ValueError(f"Abscissae must have length {s}, got {self.c.shape}")
        if np.any(self.a[np.triu_indices(s)] != 0):
            raise ValueError("Stage matrix must be strictly lower triangular")
        if self.c[0] != 0:
            raise ValueError("First abscissa must be zero")
        if self.c[-1] != 1:
            raise ValueError("Last abscissa must be one for FSAL pairs")
        # FSAL: last stage is evaluated at the propagated solution
        if np.any(self.b[0] != self.a[-1]):
            raise ValueError("High order weights must equal the last row of the stage matrix (FSAL)")
        if self.order <= 0:
            raise ValueError(f"Order must be positive, got {self.order}")

    @classmethod
    def from_exact(cls,
                   name: str,
                   a: Sequence[Sequence],
                   b: Sequence[Sequence],
                   c: Sequence,
                   order: int) -> "ButcherTableau":
        """Build a tableau holding exact :class:`fractions.Fraction` entries."""
        def exact(rows):
            return [[Fraction(v) for v in row] for row in rows]

        return cls(
            name=name,
            stages=len(c),
            a=_frozen(exact(a), object),
            b=_frozen(exact(b), object),
            c=_frozen([Fraction(v) for v in c], object),
            order=order,
        )

    @property
    def dtype(self) -> np.dtype:
        return self.a.dtype

    def astype(self, dtype) -> "ButcherTableau":
        """Return a copy of the tableau converted to *dtype*.

        Each entry is rounded once from its exact value, so the FSAL equality
        between ``b[0]`` and ``a[-1]`` survives the conversion.
        """
        return ButcherTableau(
            name=self.name,
            stages=self.stages,
            a=_frozen(self.a, dtype),
            b=_frozen(self.b, dtype),
            c=_frozen(self.c, dtype),
            order=self.order,
        )

    def __repr__(self):
        return f"ButcherTableau(name='{self.name}', stages={self.stages}, order={self.order}, dtype={self.dtype})"


DORMAND_PRINCE_54_EXACT = ButcherTableau.from_exact(
    "DOPRI5", dopri54.A, dopri54.B, dopri54.C, dopri54.ORDER
)
BOGACKI_SHAMPINE_32_EXACT = ButcherTableau.from_exact(
    "BS3", bs32.A, bs32.B, bs32.C, bs32.ORDER
)

DORMAND_PRINCE_54 = DORMAND_PRINCE_54_EXACT.astype(np.float64)
BOGACKI_SHAMPINE_32 = BOGACKI_SHAMPINE_32_EXACT.astype(np.float64)
