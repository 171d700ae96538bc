from .base import DynamicalSystemProtocol, _DynamicalSystem
from .rhs import RHSSystem, create_rhs_system

__all__ = [
    "DynamicalSystemProtocol",
    "RHSSystem",
    "create_rhs_system",
]
