"""Exact coefficients of the Bogacki-Shampine 3(2) pair.

Bogacki, P.; Shampine, L. F. (1989). "A 3(2) pair of Runge-Kutta formulas".
Applied Mathematics Letters, 2(4), 321-325.
"""
from fractions import Fraction as F

ORDER = 3

A = (
    (0, 0, 0, 0),
    (F(1, 2), 0, 0, 0),
    (0, F(3, 4), 0, 0),
    (F(2, 9), F(1, 3), F(4, 9), 0),
)

# row 0: 3rd order solution, row 1: embedded 2nd order solution
B = (
    (F(2, 9), F(1, 3), F(4, 9), 0),
    (F(7, 24), F(1, 4), F(1, 3), F(1, 8)),
)

C = (0, F(1, 2), F(3, 4), 1)
